from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field
from app.modules.auth.models import UserRole
from uuid import UUID
from datetime import datetime

class UserBase(BaseModel):
    email: EmailStr
    name: Optional[str] = None

class UserCreate(UserBase):
    password: str = Field(min_length=6)

class UserUpdate(BaseModel):
    name: Optional[str] = None

class UserRead(UserBase):
    id: UUID
    role: UserRole
    banned: bool = False
    email_verified: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class SignupResponse(BaseModel):
    message: str
    user: UserRead

class OTPVerify(BaseModel):
    email: EmailStr
    otp: str = Field(pattern=r"^\d{6}$")

class OTPResend(BaseModel):
    email: EmailStr

class PasswordChange(BaseModel):
    old_password: str
    new_password: str = Field(min_length=6)

class Token(BaseModel):
    access_token: str
    token_type: str

class TokenData(BaseModel):
    id: Optional[str] = None

# Profile pieces are kept light to avoid importing the content modules here
class ProfilePurchase(BaseModel):
    id: UUID
    item_id: UUID
    title: str
    slug: str
    created_at: Optional[datetime] = None

class ProfileSubscription(BaseModel):
    id: UUID
    plan_name: Optional[str] = None
    status: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

class ProfilePayment(BaseModel):
    id: UUID
    amount: float
    currency: str
    status: str
    type: Optional[str] = None
    created_at: Optional[datetime] = None

class ProfileBookmark(BaseModel):
    id: UUID
    blog_id: UUID
    title: str
    slug: str

class Profile(UserRead):
    blog_purchases: List[ProfilePurchase] = []
    resource_purchases: List[ProfilePurchase] = []
    subscriptions: List[ProfileSubscription] = []
    payments: List[ProfilePayment] = []
    bookmarks: List[ProfileBookmark] = []
