# ecotrack/ledger.py
"""
Points ledger.

A user's balance lives in ``users.total_points`` and only ever moves through
:meth:`Ledger.credit` (a waste entry) or :meth:`Ledger.debit` (a redemption).
Each of those is one transaction, and the balance change is a single
``UPDATE ... SET total_points = total_points +/- n`` so concurrent requests
for the same user can neither lose an update nor overdraw: the debit's
balance check is part of the UPDATE's WHERE clause, not a separate read.
"""
import logging
from contextlib import contextmanager

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .database import transaction
from .errors import (
    InvalidAmount, InsufficientPoints, RewardNotFound, StorageFailure, UserNotFound,
)

log = logging.getLogger("ecotrack.ledger")


class Ledger:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _atomic(self, op, email):
        try:
            with transaction(self.db):
                yield
        except SQLAlchemyError as e:
            log.exception("%s failed for %s", op, email)
            raise StorageFailure() from e

    def credit(self, email, waste_type, waste_amount, points) -> models.WasteEntry:
        """Add ``points`` to the balance and record the waste entry that earned them."""
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise InvalidAmount("Points must be a non-negative whole number.")

        with self._atomic("credit", email):
            result = self.db.execute(
                update(models.User)
                .where(models.User.email == email)
                .values(total_points=models.User.total_points + points)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise UserNotFound()
            entry = models.WasteEntry(
                user_email=email,
                waste_type=waste_type,
                waste_amount=waste_amount,
                points_earned=points,
            )
            self.db.add(entry)
        self.db.refresh(entry)
        log.info("credited %d points to %s (%s, %dg)", points, email, waste_type, waste_amount)
        return entry

    def debit(self, email, reward_id) -> models.Redemption:
        """Spend points on an available reward, or raise without touching the balance."""
        with self._atomic("debit", email):
            balance = self._balance(email)
            if balance is None:
                raise UserNotFound()
            reward = (
                self.db.query(models.Reward)
                .filter(models.Reward.id == reward_id, models.Reward.available.is_(True))
                .first()
            )
            if not reward:
                raise RewardNotFound()
            cost = reward.points_required

            result = self.db.execute(
                update(models.User)
                .where(models.User.email == email, models.User.total_points >= cost)
                .values(total_points=models.User.total_points - cost)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                log.warning("insufficient points for %s: balance %s, reward %s costs %d", email, balance, reward_id, cost)
                raise InsufficientPoints(balance=balance, required=cost)

            redemption = models.Redemption(user_email=email, reward_id=reward.id, points_spent=cost)
            self.db.add(redemption)
        self.db.refresh(redemption)
        log.info("debited %d points from %s for reward %s", cost, email, reward_id)
        return redemption

    def get_balance(self, email) -> int:
        balance = self._balance(email)
        if balance is None:
            raise UserNotFound()
        return balance

    def list_rewards(self):
        return (
            self.db.query(models.Reward)
            .filter(models.Reward.available.is_(True))
            .order_by(models.Reward.id)
            .all()
        )

    def history(self, email):
        return (
            self.db.query(models.WasteEntry)
            .filter(models.WasteEntry.user_email == email)
            .order_by(models.WasteEntry.created_at.desc(), models.WasteEntry.id.desc())
            .all()
        )

    def redemptions(self, email):
        return (
            self.db.query(models.Redemption)
            .filter(models.Redemption.user_email == email)
            .order_by(models.Redemption.created_at.desc(), models.Redemption.id.desc())
            .all()
        )

    def _balance(self, email):
        return (
            self.db.query(models.User.total_points)
            .filter(models.User.email == email)
            .scalar()
        )
