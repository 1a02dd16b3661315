# ecotrack/models.py
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = (CheckConstraint("total_points >= 0", name="ck_users_points_non_negative"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    total_points = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    waste_entries = relationship("WasteEntry", back_populates="user")
    redemptions = relationship("Redemption", back_populates="user")
    addresses = relationship("ShippingAddress", back_populates="user")


class WasteEntry(Base):
    __tablename__ = "waste_entries"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_email = Column(String, ForeignKey("users.email"), nullable=False, index=True)
    waste_type = Column(String, nullable=False)  # Plastic, Glass, Paper, Metal
    waste_amount = Column(Integer, nullable=False)  # grams
    points_earned = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="waste_entries")


class Reward(Base):
    __tablename__ = "rewards"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    description = Column(Text, default="")
    points_required = Column(Integer, nullable=False)
    available = Column(Boolean, nullable=False, default=True)


class Redemption(Base):
    __tablename__ = "redemptions"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_email = Column(String, ForeignKey("users.email"), nullable=False, index=True)
    reward_id = Column(Integer, ForeignKey("rewards.id"), nullable=False)
    points_spent = Column(Integer, nullable=False)  # cost at redemption time
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="redemptions")
    reward = relationship("Reward")


class ShippingAddress(Base):
    __tablename__ = "shipping_addresses"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_email = Column(String, ForeignKey("users.email"), nullable=False, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    address = Column(String, nullable=False)
    city = Column(String, nullable=False)
    state = Column(String, nullable=False)
    zip = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="addresses")
