from typing import Any, Callable, List
from fastapi import APIRouter, Depends, BackgroundTasks
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core import deps
from app.modules.auth import models as auth_models
from app.modules.notifications.mail import Mailer, get_mailer
from app.modules.payments import models, schemas, service
from app.modules.payments.gateway import RazorpayGateway, get_gateway, get_gateway_factory

router = APIRouter()

FAILURE_MESSAGES = {
    "already_purchased": "Already purchased",
    "already_subscribed": "Already subscribed",
}

@router.post("/order", response_model=schemas.OrderResponse)
async def create_order(
    order_in: schemas.OrderCreate,
    current_user: auth_models.User = Depends(deps.get_current_user),
    gateway_factory: Callable[[], RazorpayGateway] = Depends(get_gateway_factory),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Create a gateway order for a one-time blog or resource purchase.
    """
    return await service.create_order(db, gateway_factory, current_user, order_in)

@router.post("/verify", response_model=schemas.VerifyResponse)
async def verify_payment(
    verify_in: schemas.PaymentVerify,
    background_tasks: BackgroundTasks,
    current_user: auth_models.User = Depends(deps.get_current_user),
    gateway: RazorpayGateway = Depends(get_gateway),
    mailer: Mailer = Depends(get_mailer),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Checkout callback: verify the signature and grant access.
    """
    payment = await service.verify_payment(db, gateway, current_user, verify_in, background_tasks, mailer)
    if payment.status == models.PaymentStatus.FAILED:
        message = FAILURE_MESSAGES.get(payment.meta.get("reason"), "Subscription could not be activated")
    else:
        message = "Payment verified successfully"
    return {"success": True, "message": message, "payment": payment}

@router.get("", response_model=List[schemas.PaymentRead])
async def list_my_payments(
    current_user: auth_models.User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    result = await db.execute(
        select(models.Payment)
        .where(models.Payment.user_id == current_user.id)
        .order_by(models.Payment.created_at.desc())
    )
    return result.scalars().all()
