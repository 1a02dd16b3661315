# ecotrack/crud.py
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import logging

from . import models
from .database import transaction
from .errors import UserAlreadyExists, UserNotFound, InvalidCredentials
from .security import hash_password, verify_password

log = logging.getLogger("ecotrack.crud")

DEFAULT_REWARDS = [
    {"name": "Reusable Water Bottle", "description": "Stainless steel, 750 ml.", "points_required": 500},
    {"name": "Organic Cotton Tote Bag", "description": "Sturdy bag for groceries.", "points_required": 750},
    {"name": "Bamboo Cutlery Set", "description": "Fork, knife, spoon and straw in a travel pouch.", "points_required": 1000},
    {"name": "Compost Bin", "description": "Countertop bin with charcoal filter.", "points_required": 2500},
]

EDUCATION_CONTENT = [
    {"id": 1, "topic": "Recycling Basics", "description": "Learn how to recycle effectively."},
    {"id": 2, "topic": "Composting", "description": "The benefits of composting for the environment."},
    {"id": 3, "topic": "Plastic Reduction", "description": "Tips for reducing plastic usage in daily life."},
]


# Auth
def get_user_by_email(db: Session, email):
    return db.query(models.User).filter(models.User.email == email).first()


def create_user(db: Session, email, password):
    if get_user_by_email(db, email):
        raise UserAlreadyExists()
    user = models.User(email=email, password_hash=hash_password(password), total_points=0)
    try:
        with transaction(db):
            db.add(user)
    except IntegrityError:
        # lost a race with a concurrent registration for the same email
        raise UserAlreadyExists()
    db.refresh(user)
    log.info("registered user %s", email)
    return user


def authenticate_user(db: Session, email, password):
    user = get_user_by_email(db, email)
    if not user:
        raise UserNotFound()
    if not verify_password(password, user.password_hash):
        log.warning("failed login for %s", email)
        raise InvalidCredentials()
    return user


# Rewards catalog
def seed_rewards(db: Session, rewards=None):
    if db.query(models.Reward).count():
        return 0
    rows = [models.Reward(**{"available": True, **r}) for r in (rewards or DEFAULT_REWARDS)]
    with transaction(db):
        db.add_all(rows)
    log.info("seeded %d rewards", len(rows))
    return len(rows)


# Shipping
def create_shipping_address(db: Session, email, first_name, last_name, address, city, state, zip_code):
    addr = models.ShippingAddress(
        user_email=email, first_name=first_name, last_name=last_name,
        address=address, city=city, state=state, zip=zip_code,
    )
    with transaction(db):
        db.add(addr)
    db.refresh(addr)
    return addr


def get_shipping_addresses(db: Session, email):
    return (
        db.query(models.ShippingAddress)
        .filter(models.ShippingAddress.user_email == email)
        .order_by(models.ShippingAddress.created_at.desc(), models.ShippingAddress.id.desc())
        .all()
    )
