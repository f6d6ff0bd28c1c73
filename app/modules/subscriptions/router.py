from typing import Any, Callable, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core import deps
from app.modules.auth import models as auth_models
from app.modules.notifications import service as notifications
from app.modules.notifications.mail import Mailer, get_mailer
from app.modules.payments.gateway import RazorpayGateway, get_gateway_factory
from app.modules.subscriptions import schemas, service

router = APIRouter()

@router.get("/subscription-plans", response_model=List[schemas.PlanRead])
async def list_plans(
    current_user: Optional[auth_models.User] = Depends(deps.get_current_user_optional),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Active plans, cheapest first. Admins also see inactive plans.
    """
    include_inactive = current_user is not None and current_user.role == auth_models.UserRole.ADMIN
    return await service.list_plans(db, include_inactive=include_inactive)

@router.post("/subscriptions", response_model=schemas.SubscriptionOrderResponse)
async def create_subscription(
    subscription_in: schemas.SubscriptionCreate,
    current_user: auth_models.User = Depends(deps.get_current_user),
    gateway_factory: Callable[[], RazorpayGateway] = Depends(get_gateway_factory),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Start a subscription checkout. The subscription stays PENDING until
    the payment is verified.
    """
    return await service.create_subscription(db, gateway_factory, current_user, subscription_in)

@router.get("/subscriptions", response_model=List[schemas.SubscriptionRead])
async def list_my_subscriptions(
    current_user: auth_models.User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    return await service.list_user_subscriptions(db, current_user.id)

@router.delete("/subscriptions/{subscription_id}", response_model=schemas.SubscriptionRead)
async def cancel_subscription(
    subscription_id: UUID,
    background_tasks: BackgroundTasks,
    current_user: auth_models.User = Depends(deps.get_current_user),
    mailer: Mailer = Depends(get_mailer),
    db: AsyncSession = Depends(get_db)
) -> Any:
    subscription = await service.cancel_subscription(db, current_user, subscription_id)
    background_tasks.add_task(
        notifications.send_subscription_cancelled,
        mailer,
        current_user.email,
        current_user.name,
        subscription.plan.name if subscription.plan else "Premium",
    )
    return subscription
