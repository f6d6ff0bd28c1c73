from datetime import datetime
from typing import Optional, Dict, Any
from uuid import UUID
from pydantic import BaseModel, Field
from app.modules.payments.models import PaymentStatus

class OrderCreate(BaseModel):
    type: str = Field(pattern=r"^(BLOG|RESOURCE)$")
    item_id: UUID

class OrderResponse(BaseModel):
    order_id: str
    amount: int # Minor units
    currency: str
    payment_id: UUID
    key_id: str

class PaymentVerify(BaseModel):
    razorpay_order_id: str = Field(min_length=1)
    razorpay_payment_id: str = Field(min_length=1)
    razorpay_signature: str = Field(min_length=1)
    payment_id: UUID

class PaymentRead(BaseModel):
    id: UUID
    user_id: UUID
    subscription_id: Optional[UUID] = None
    amount: float
    currency: str
    status: PaymentStatus
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict, serialization_alias="metadata")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class VerifyResponse(BaseModel):
    success: bool
    message: str
    payment: PaymentRead
