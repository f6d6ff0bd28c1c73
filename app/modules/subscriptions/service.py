import calendar
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import ValidationError, NotFound
from app.modules.auth.models import User
from app.modules.payments.gateway import RazorpayGateway, build_receipt, to_minor_units
from app.modules.payments.models import Payment, PaymentStatus, PaymentType
from app.modules.subscriptions import models, schemas

logger = logging.getLogger(__name__)

def add_months(start: datetime, months: int) -> datetime:
    """
    Calendar month arithmetic, clamping the day (Jan 31 + 1 month -> Feb 28/29).
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)

# Plans

async def list_plans(db: AsyncSession, include_inactive: bool = False) -> List[models.SubscriptionPlan]:
    query = select(models.SubscriptionPlan)
    if not include_inactive:
        query = query.where(models.SubscriptionPlan.active.is_(True))
    result = await db.execute(query.order_by(models.SubscriptionPlan.price.asc()))
    return result.scalars().all()

async def get_plan(db: AsyncSession, plan_id: UUID) -> models.SubscriptionPlan:
    plan = await db.get(models.SubscriptionPlan, plan_id)
    if not plan:
        raise NotFound("Plan not found")
    return plan

async def create_plan(db: AsyncSession, plan_in: schemas.PlanCreate) -> models.SubscriptionPlan:
    plan = models.SubscriptionPlan(**plan_in.model_dump())
    db.add(plan)
    await db.commit()
    await db.refresh(plan)
    logger.info(f"Subscription plan '{plan.name}' created")
    return plan

async def update_plan(db: AsyncSession, plan_id: UUID, plan_in: schemas.PlanUpdate) -> models.SubscriptionPlan:
    plan = await get_plan(db, plan_id)
    for field, value in plan_in.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(plan, field, value)
    await db.commit()
    await db.refresh(plan)
    return plan

async def delete_plan(db: AsyncSession, plan_id: UUID) -> None:
    plan = await get_plan(db, plan_id)
    in_use = await db.execute(
        select(models.Subscription.id).where(models.Subscription.plan_id == plan.id).limit(1)
    )
    if in_use.first():
        # Keep history intact, retire the plan instead
        plan.active = False
        logger.info(f"Plan '{plan.name}' has subscriptions, deactivated instead of deleted")
    else:
        await db.delete(plan)
    await db.commit()

# Subscriptions

async def get_active_subscription(db: AsyncSession, user_id: UUID) -> Optional[models.Subscription]:
    now = datetime.now(timezone.utc)
    result = await db.execute(
        select(models.Subscription).where(
            models.Subscription.user_id == user_id,
            models.Subscription.status == models.SubscriptionStatus.ACTIVE,
            models.Subscription.end_date >= now,
        )
    )
    return result.scalars().first()

async def create_subscription(
    db: AsyncSession,
    gateway_factory: Callable[[], RazorpayGateway],
    user: User,
    subscription_in: schemas.SubscriptionCreate,
) -> dict:
    plan = await db.get(models.SubscriptionPlan, subscription_in.plan_id)
    if not plan or not plan.active:
        raise NotFound("Plan not found or inactive")

    if await get_active_subscription(db, user.id):
        raise ValidationError("You already have an active subscription")

    amount = to_minor_units(plan.price)
    if amount < 1:
        raise ValidationError("Invalid amount")

    gateway = gateway_factory()
    order = await gateway.create_order(
        amount=amount,
        currency=settings.PAYMENT_CURRENCY,
        receipt=build_receipt("SUB"),
        notes={"type": PaymentType.SUBSCRIPTION.value, "plan_id": str(plan.id), "user_id": str(user.id)},
    )

    now = datetime.now(timezone.utc)
    subscription = models.Subscription(
        user_id=user.id,
        plan_id=plan.id,
        status=models.SubscriptionStatus.PENDING,
        price=plan.price,
        end_date=add_months(now, plan.duration),
    )
    db.add(subscription)
    await db.flush()

    payment = Payment(
        user_id=user.id,
        subscription_id=subscription.id,
        amount=plan.price,
        currency=settings.PAYMENT_CURRENCY,
        status=PaymentStatus.PENDING,
        razorpay_order_id=order["id"],
        meta={"type": PaymentType.SUBSCRIPTION.value, "plan_id": str(plan.id)},
    )
    db.add(payment)
    await db.commit()
    await db.refresh(subscription)
    await db.refresh(payment)

    logger.info(f"Subscription {subscription.id} pending for user {user.id}, order {order['id']}")
    return {
        "subscription": subscription,
        "order_id": order["id"],
        "amount": amount,
        "currency": settings.PAYMENT_CURRENCY,
        "payment_id": payment.id,
        "key_id": gateway.key_id,
    }

async def get_subscription(db: AsyncSession, subscription_id: Optional[UUID]) -> models.Subscription:
    subscription = await db.get(models.Subscription, subscription_id) if subscription_id else None
    if not subscription:
        raise NotFound("Subscription not found")
    return subscription

async def activation_conflict(db: AsyncSession, subscription: models.Subscription) -> Optional[str]:
    """
    Why a paid subscription cannot be activated, or None when it can.
    Only PENDING subscriptions activate, and never next to a live one.
    """
    if subscription.status != models.SubscriptionStatus.PENDING:
        return f"subscription_{subscription.status.value.lower()}"
    if await get_active_subscription(db, subscription.user_id):
        return "already_subscribed"
    return None

def activate_subscription(subscription: models.Subscription) -> models.Subscription:
    """
    Marks the subscription ACTIVE from now on. The caller commits.
    """
    now = datetime.now(timezone.utc)
    subscription.status = models.SubscriptionStatus.ACTIVE
    subscription.start_date = now
    if subscription.plan:
        # The paid period starts at activation, not at checkout
        subscription.end_date = add_months(now, subscription.plan.duration)
    return subscription

async def list_user_subscriptions(db: AsyncSession, user_id: UUID) -> List[models.Subscription]:
    result = await db.execute(
        select(models.Subscription)
        .where(models.Subscription.user_id == user_id)
        .order_by(models.Subscription.created_at.desc())
    )
    return result.scalars().all()

async def cancel_subscription(db: AsyncSession, user: User, subscription_id: UUID) -> models.Subscription:
    subscription = await db.get(models.Subscription, subscription_id)
    if not subscription or subscription.user_id != user.id:
        raise NotFound("Subscription not found")
    if subscription.status == models.SubscriptionStatus.CANCELLED:
        return subscription

    subscription.status = models.SubscriptionStatus.CANCELLED
    subscription.cancelled_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(subscription)
    logger.info(f"Subscription {subscription.id} cancelled by user {user.id}")
    return subscription

async def admin_list(db: AsyncSession, status: Optional[models.SubscriptionStatus] = None) -> List[models.Subscription]:
    query = select(models.Subscription)
    if status:
        query = query.where(models.Subscription.status == status)
    result = await db.execute(query.order_by(models.Subscription.created_at.desc()))
    return result.scalars().all()
