import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import security
from app.core.errors import ValidationError, NotFound, Forbidden
from app.modules.auth import models, schemas

logger = logging.getLogger(__name__)

OTP_TTL = timedelta(minutes=10)

def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

async def get_by_email(db: AsyncSession, email: str) -> Optional[models.User]:
    result = await db.execute(select(models.User).where(models.User.email == email.lower()))
    return result.scalars().first()

def _issue_otp(user: models.User) -> str:
    otp = security.generate_otp()
    user.otp = otp
    user.otp_expires = datetime.now(timezone.utc) + OTP_TTL
    return otp

async def signup(db: AsyncSession, user_in: schemas.UserCreate) -> tuple[models.User, str]:
    if await get_by_email(db, user_in.email):
        raise ValidationError("User already exists")

    user = models.User(
        email=user_in.email.lower(),
        name=user_in.name,
        hashed_password=security.get_password_hash(user_in.password),
        role=models.UserRole.USER,
        email_verified=False,
    )
    otp = _issue_otp(user)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info(f"User {user.email} signed up, verification pending")
    return user, otp

async def verify_otp(db: AsyncSession, data: schemas.OTPVerify) -> models.User:
    user = await get_by_email(db, data.email)
    if not user:
        raise NotFound("User not found")
    if user.email_verified:
        return user
    if not user.otp or user.otp != data.otp:
        raise ValidationError("Invalid OTP")
    if not user.otp_expires or _as_utc(user.otp_expires) < datetime.now(timezone.utc):
        raise ValidationError("OTP has expired")

    user.email_verified = True
    user.otp = None
    user.otp_expires = None
    await db.commit()
    await db.refresh(user)
    logger.info(f"Email verified for {user.email}")
    return user

async def resend_otp(db: AsyncSession, email: str) -> tuple[models.User, str]:
    user = await get_by_email(db, email)
    if not user:
        raise NotFound("User not found")
    if user.email_verified:
        raise ValidationError("Email already verified")

    otp = _issue_otp(user)
    await db.commit()
    await db.refresh(user)
    return user, otp

async def authenticate(db: AsyncSession, email: str, password: str) -> models.User:
    user = await get_by_email(db, email)
    if not user or not security.verify_password(password, user.hashed_password):
        raise ValidationError("Incorrect email or password")
    if user.banned:
        raise Forbidden("Your account has been banned")
    if not user.email_verified:
        raise Forbidden("Please verify your email before logging in")
    return user

async def change_password(db: AsyncSession, user: models.User, data: schemas.PasswordChange) -> None:
    if not security.verify_password(data.old_password, user.hashed_password):
        raise ValidationError("Current password is incorrect")
    user.hashed_password = security.get_password_hash(data.new_password)
    await db.commit()
    logger.info(f"Password changed for {user.email}")

async def get_profile(db: AsyncSession, user: models.User) -> schemas.Profile:
    from app.modules.blogs.models import BlogPurchase
    from app.modules.resources.models import ResourcePurchase
    from app.modules.subscriptions.models import Subscription
    from app.modules.payments.models import Payment
    from app.modules.engagement.models import Bookmark

    blog_purchases = (await db.execute(
        select(BlogPurchase).where(BlogPurchase.user_id == user.id).order_by(BlogPurchase.created_at.desc())
    )).scalars().all()
    resource_purchases = (await db.execute(
        select(ResourcePurchase).where(ResourcePurchase.user_id == user.id).order_by(ResourcePurchase.created_at.desc())
    )).scalars().all()
    subscriptions = (await db.execute(
        select(Subscription).where(Subscription.user_id == user.id).order_by(Subscription.created_at.desc())
    )).scalars().all()
    payments = (await db.execute(
        select(Payment).where(Payment.user_id == user.id).order_by(Payment.created_at.desc()).limit(50)
    )).scalars().all()
    bookmarks = (await db.execute(
        select(Bookmark).where(Bookmark.user_id == user.id).order_by(Bookmark.created_at.desc())
    )).scalars().all()

    profile = schemas.Profile.model_validate(user)
    return profile.model_copy(update={
        "blog_purchases": [
            schemas.ProfilePurchase(id=p.id, item_id=p.blog_id, title=p.blog.title, slug=p.blog.slug, created_at=p.created_at)
            for p in blog_purchases
        ],
        "resource_purchases": [
            schemas.ProfilePurchase(id=p.id, item_id=p.resource_id, title=p.resource.title, slug=p.resource.slug, created_at=p.created_at)
            for p in resource_purchases
        ],
        "subscriptions": [
            schemas.ProfileSubscription(
                id=s.id,
                plan_name=s.plan.name if s.plan else None,
                status=s.status.value,
                start_date=s.start_date,
                end_date=s.end_date,
            )
            for s in subscriptions
        ],
        "payments": [
            schemas.ProfilePayment(
                id=p.id, amount=p.amount, currency=p.currency, status=p.status.value, type=p.type, created_at=p.created_at
            )
            for p in payments
        ],
        "bookmarks": [
            schemas.ProfileBookmark(id=b.id, blog_id=b.blog_id, title=b.blog.title, slug=b.blog.slug)
            for b in bookmarks
        ],
    })
