from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field
from typing import Optional, List
from app.modules.subscriptions.models import SubscriptionStatus

class PlanBase(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: float = Field(gt=0, allow_inf_nan=False)
    duration: int = Field(1, ge=1) # Months
    features: List[str] = []
    active: bool = True

class PlanCreate(PlanBase):
    pass

class PlanUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    duration: Optional[int] = Field(None, ge=1)
    features: Optional[List[str]] = None
    active: Optional[bool] = None

class PlanRead(PlanBase):
    id: UUID
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class SubscriptionCreate(BaseModel):
    plan_id: UUID

class SubscriptionRead(BaseModel):
    id: UUID
    user_id: UUID
    plan_id: Optional[UUID] = None
    status: SubscriptionStatus
    price: float
    start_date: Optional[datetime] = None
    end_date: datetime
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    plan: Optional[PlanRead] = None

    class Config:
        from_attributes = True

class SubscriberRead(BaseModel):
    id: UUID
    email: str
    name: Optional[str] = None

    class Config:
        from_attributes = True

class SubscriptionAdminRead(SubscriptionRead):
    user: Optional[SubscriberRead] = None

class SubscriptionOrderResponse(BaseModel):
    subscription: SubscriptionRead
    order_id: str
    amount: int
    currency: str
    payment_id: UUID
    key_id: str
