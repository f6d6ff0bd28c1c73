from pydantic import BaseModel, Field
from typing import Optional, List, Any

from app.modules.auth.schemas import UserRead, ProfilePurchase, ProfileSubscription
from app.modules.admin.models import SettingType

class MonthlyEarning(BaseModel):
    month: str # YYYY-MM
    amount: float

class AdminStats(BaseModel):
    total_users: int
    total_blogs: int
    total_categories: int
    total_payments: int
    active_subscriptions: int
    total_revenue: float
    monthly_earnings: List[MonthlyEarning]

class UserBan(BaseModel):
    banned: bool

class UserDetail(UserRead):
    blog_purchases: List[ProfilePurchase] = []
    resource_purchases: List[ProfilePurchase] = []
    subscriptions: List[ProfileSubscription] = []
    total_spent: float = 0.0


class SettingRead(BaseModel):
    key: str
    value: Any
    type: SettingType
    category: str
    description: Optional[str] = None
    read_only: bool = False

class SettingUpdate(BaseModel):
    key: str = Field(min_length=1)
    value: Any
    type: SettingType = SettingType.STRING
    category: str = "general"
    description: Optional[str] = None

class SettingsUpdate(BaseModel):
    settings: List[SettingUpdate]
