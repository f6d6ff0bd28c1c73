import uuid
from sqlalchemy import Column, String, Boolean, Integer, Float, DateTime, ForeignKey, Enum, func, Text, JSON, Uuid
from sqlalchemy.orm import relationship
import enum
from app.core.db import Base

class SubscriptionStatus(str, enum.Enum):
    PENDING = "PENDING" # Order created, payment not verified yet
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"

class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    duration = Column(Integer, default=1, nullable=False) # Months
    features = Column(JSON, default=list, nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    plan_id = Column(Uuid, ForeignKey("subscription_plans.id"), nullable=True)

    status = Column(Enum(SubscriptionStatus), default=SubscriptionStatus.PENDING, nullable=False)
    price = Column(Float, nullable=False) # Plan price at purchase time

    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=False)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    plan = relationship("SubscriptionPlan", lazy="selectin")
    user = relationship("User", lazy="selectin")
