import json
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, List, Any, Dict
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import ValidationError, NotFound
from app.modules.admin import schemas
from app.modules.admin.models import Setting, SettingType
from app.modules.auth import models as auth_models
from app.modules.auth import service as auth_service
from app.modules.blogs.models import Blog
from app.modules.catalog.models import Category
from app.modules.payments.models import Payment, PaymentStatus, PaymentType
from app.modules.subscriptions.models import Subscription, SubscriptionStatus

logger = logging.getLogger(__name__)

STATS_MONTHS = 6

def _last_months(today: date, count: int) -> List[str]:
    months = []
    year, month = today.year, today.month
    for _ in range(count):
        months.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))

async def get_stats(db: AsyncSession) -> dict:
    async def count(query) -> int:
        return (await db.execute(query)).scalar() or 0

    total_users = await count(select(func.count(auth_models.User.id)))
    total_blogs = await count(select(func.count(Blog.id)))
    total_categories = await count(select(func.count(Category.id)))
    total_payments = await count(
        select(func.count(Payment.id)).where(Payment.status == PaymentStatus.SUCCESS)
    )
    active_subscriptions = await count(
        select(func.count(Subscription.id)).where(
            Subscription.status == SubscriptionStatus.ACTIVE,
            Subscription.end_date >= datetime.now(timezone.utc),
        )
    )
    revenue = (await db.execute(
        select(func.sum(Payment.amount)).where(Payment.status == PaymentStatus.SUCCESS)
    )).scalar() or 0.0

    # Monthly buckets are built in Python to stay portable across databases
    months = _last_months(datetime.now(timezone.utc).date(), STATS_MONTHS)
    first_year, first_month = (int(part) for part in months[0].split("-"))
    since = datetime(first_year, first_month, 1, tzinfo=timezone.utc)
    rows = await db.execute(
        select(Payment.amount, Payment.created_at).where(
            Payment.status == PaymentStatus.SUCCESS,
            Payment.created_at >= since,
        )
    )
    earnings: Dict[str, float] = {m: 0.0 for m in months}
    for amount, created_at in rows.all():
        key = f"{created_at.year:04d}-{created_at.month:02d}"
        if key in earnings:
            earnings[key] += amount

    return {
        "total_users": total_users,
        "total_blogs": total_blogs,
        "total_categories": total_categories,
        "total_payments": total_payments,
        "active_subscriptions": active_subscriptions,
        "total_revenue": float(revenue),
        "monthly_earnings": [{"month": m, "amount": round(a, 2)} for m, a in earnings.items()],
    }

# Users

async def get_all_users(db: AsyncSession, search: Optional[str] = None) -> List[auth_models.User]:
    query = select(auth_models.User)
    if search:
        pattern = f"%{search}%"
        query = query.where(auth_models.User.email.ilike(pattern) | auth_models.User.name.ilike(pattern))
    result = await db.execute(query.order_by(auth_models.User.created_at.desc()))
    return result.scalars().all()

async def get_user_details(db: AsyncSession, user_id: UUID) -> schemas.UserDetail:
    user = await db.get(auth_models.User, user_id)
    if not user:
        raise NotFound("User not found")

    profile = await auth_service.get_profile(db, user)
    total_spent = sum(p.amount for p in profile.payments if p.status == PaymentStatus.SUCCESS.value)
    return schemas.UserDetail(
        **profile.model_dump(include=set(schemas.UserDetail.model_fields) - {"total_spent"}),
        total_spent=total_spent,
    )

async def set_user_banned(db: AsyncSession, user_id: UUID, banned: bool, current_admin: auth_models.User) -> auth_models.User:
    if user_id == current_admin.id:
        raise ValidationError("You cannot ban yourself")

    user = await db.get(auth_models.User, user_id)
    if not user:
        raise NotFound("User not found")

    user.banned = banned
    await db.commit()
    await db.refresh(user)
    logger.info(f"User {user.email} {'banned' if banned else 'unbanned'} by {current_admin.email}")
    return user

# Payments

async def list_payments(
    db: AsyncSession,
    status: Optional[PaymentStatus] = None,
    payment_type: Optional[PaymentType] = None,
    user_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Payment]:
    query = select(Payment)
    if status:
        query = query.where(Payment.status == status)
    if payment_type:
        query = query.where(Payment.meta["type"].as_string() == payment_type.value)
    if user_id:
        query = query.where(Payment.user_id == user_id)
    if start_date:
        query = query.where(Payment.created_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc))
    if end_date:
        # Inclusive of the whole end day
        end = datetime.combine(end_date, time.min, tzinfo=timezone.utc) + timedelta(days=1)
        query = query.where(Payment.created_at < end)
    result = await db.execute(query.order_by(Payment.created_at.desc()))
    return result.scalars().all()

# Settings

def _mask(value: Optional[str]) -> str:
    if not value:
        return ""
    if len(value) <= 4:
        return "****"
    return value[:4] + "*" * 8

def _environment_settings() -> List[schemas.SettingRead]:
    values = {
        "razorpay_key_id": _mask(settings.RAZORPAY_KEY_ID),
        "razorpay_key_secret": _mask(settings.RAZORPAY_KEY_SECRET),
        "smtp_host": settings.SMTP_HOST,
        "smtp_port": str(settings.SMTP_PORT),
        "smtp_user": _mask(settings.SMTP_USER),
        "b2_bucket_name": settings.B2_BUCKET_NAME,
        "b2_application_key_id": _mask(settings.B2_APPLICATION_KEY_ID),
        "app_url": settings.APP_URL,
    }
    return [
        schemas.SettingRead(
            key=f"env.{key}",
            value=value,
            type=SettingType.STRING,
            category="environment",
            read_only=True,
        )
        for key, value in values.items()
    ]

def decode_value(raw: str, setting_type: SettingType) -> Any:
    if setting_type == SettingType.NUMBER:
        number = float(raw)
        return int(number) if number.is_integer() else number
    if setting_type == SettingType.BOOLEAN:
        return raw.lower() == "true"
    if setting_type == SettingType.JSON:
        return json.loads(raw)
    return raw

def encode_value(value: Any, setting_type: SettingType) -> str:
    if setting_type == SettingType.NUMBER:
        if isinstance(value, bool):
            raise ValueError("expected a number")
        return str(float(value) if not isinstance(value, int) else value)
    if setting_type == SettingType.BOOLEAN:
        if isinstance(value, str):
            if value.lower() not in ("true", "false"):
                raise ValueError("expected true or false")
            return value.lower()
        return "true" if value else "false"
    if setting_type == SettingType.JSON:
        return json.dumps(value)
    return str(value)

async def get_settings(db: AsyncSession) -> List[schemas.SettingRead]:
    result = await db.execute(select(Setting).order_by(Setting.category.asc(), Setting.key.asc()))
    stored = []
    for setting in result.scalars().all():
        setting_type = SettingType(setting.type)
        try:
            value = decode_value(setting.value, setting_type)
        except ValueError:
            logger.warning(f"Setting {setting.key} holds an invalid {setting_type.value} value")
            value = setting.value
        stored.append(schemas.SettingRead(
            key=setting.key,
            value=value,
            type=setting_type,
            category=setting.category,
            description=setting.description,
        ))
    return stored + _environment_settings()

async def update_settings(db: AsyncSession, updates: List[schemas.SettingUpdate]) -> List[schemas.SettingRead]:
    for item in updates:
        if item.key.startswith("env."):
            raise ValidationError(f"Setting {item.key} is read-only")
        try:
            raw = encode_value(item.value, item.type)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid value for {item.key}: {e}")

        result = await db.execute(select(Setting).where(Setting.key == item.key))
        setting = result.scalars().first()
        if not setting:
            setting = Setting(key=item.key)
            db.add(setting)
        setting.value = raw
        setting.type = item.type.value
        setting.category = item.category
        if item.description is not None:
            setting.description = item.description

    await db.commit()
    logger.info(f"Updated settings: {', '.join(item.key for item in updates)}")
    return await get_settings(db)
