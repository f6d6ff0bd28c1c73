import uuid
from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Enum, func, JSON, Uuid
from sqlalchemy.orm import relationship
import enum
from app.core.db import Base

class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

class PaymentType(str, enum.Enum):
    BLOG = "BLOG"
    RESOURCE = "RESOURCE"
    SUBSCRIPTION = "SUBSCRIPTION"

class Payment(Base):
    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    subscription_id = Column(Uuid, ForeignKey("subscriptions.id"), nullable=True)

    amount = Column(Float, nullable=False) # Major units (rupees)
    currency = Column(String, default="INR", nullable=False)
    status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)

    # Gateway references
    razorpay_order_id = Column(String, unique=True, index=True, nullable=True)
    razorpay_payment_id = Column(String, nullable=True)
    razorpay_signature = Column(String, nullable=True)

    # {"type": "BLOG" | "RESOURCE" | "SUBSCRIPTION", "item_id" | "plan_id": ...}
    # Attribute renamed since Base reserves `metadata`
    meta = Column("metadata", JSON, default=dict, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", lazy="selectin")

    @property
    def type(self):
        return (self.meta or {}).get("type")
