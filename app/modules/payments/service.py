import logging
from typing import Callable, Optional
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import ValidationError, AlreadyPurchased, InvalidSignature, NotFound
from app.modules.access import service as access_service
from app.modules.auth.models import User
from app.modules.blogs.models import Blog, BlogPurchase
from app.modules.catalog.models import AccessType
from app.modules.notifications import service as notifications
from app.modules.notifications.mail import Mailer
from app.modules.payments import models, schemas
from app.modules.payments.gateway import RazorpayGateway, build_receipt, to_minor_units
from app.modules.resources.models import Resource, ResourcePurchase
from app.modules.subscriptions import service as subscriptions_service

logger = logging.getLogger(__name__)

# type -> (item model, purchase model, purchase FK attribute, public path)
PURCHASABLE = {
    models.PaymentType.BLOG: (Blog, BlogPurchase, "blog_id", "blogs"),
    models.PaymentType.RESOURCE: (Resource, ResourcePurchase, "resource_id", "resources"),
}

async def create_order(
    db: AsyncSession,
    gateway_factory: Callable[[], RazorpayGateway],
    user: User,
    order_in: schemas.OrderCreate,
) -> dict:
    payment_type = models.PaymentType(order_in.type)
    item_model = PURCHASABLE[payment_type][0]

    # 1. Item must be a published PAID item
    item = await db.get(item_model, order_in.item_id)
    if not item or not item.published or item.access_type != AccessType.PAID:
        raise ValidationError(f"Invalid {payment_type.value.lower()} or not available for purchase")

    amount = to_minor_units(item.price or 0)
    if amount < 1:
        raise ValidationError("Invalid amount")

    # 2. Reject duplicates before talking to the gateway
    if await access_service.has_purchased(db, user.id, item):
        raise AlreadyPurchased()

    # 3. Gateway order
    gateway = gateway_factory()
    receipt = build_receipt(payment_type.value[:4])
    order = await gateway.create_order(
        amount=amount,
        currency=settings.PAYMENT_CURRENCY,
        receipt=receipt,
        notes={"type": payment_type.value, "item_id": str(item.id), "user_id": str(user.id)},
    )

    # 4. Pending payment
    payment = models.Payment(
        user_id=user.id,
        amount=item.price,
        currency=settings.PAYMENT_CURRENCY,
        status=models.PaymentStatus.PENDING,
        razorpay_order_id=order["id"],
        meta={"type": payment_type.value, "item_id": str(item.id)},
    )
    db.add(payment)
    await db.commit()
    await db.refresh(payment)

    logger.info(f"Order {order['id']} created for {payment_type.value} {item.id} by user {user.id} (payment {payment.id})")
    return {
        "order_id": order["id"],
        "amount": amount,
        "currency": settings.PAYMENT_CURRENCY,
        "payment_id": payment.id,
        "key_id": gateway.key_id,
    }

async def verify_payment(
    db: AsyncSession,
    gateway: RazorpayGateway,
    user: User,
    verify_in: schemas.PaymentVerify,
    background_tasks: Optional[BackgroundTasks] = None,
    mailer: Optional[Mailer] = None,
) -> models.Payment:
    """
    Check the checkout signature, mark the payment SUCCESS and grant the
    entitlement in the same transaction.
    """
    payment = await db.get(models.Payment, verify_in.payment_id)
    if not payment or payment.user_id != user.id:
        raise NotFound("Payment not found")

    if payment.razorpay_order_id != verify_in.razorpay_order_id:
        logger.warning(f"Order id mismatch on payment {payment.id}: got {verify_in.razorpay_order_id}")
        raise InvalidSignature()

    if not gateway.verify_signature(
        verify_in.razorpay_order_id,
        verify_in.razorpay_payment_id,
        verify_in.razorpay_signature,
    ):
        logger.warning(f"Signature rejected for payment {payment.id} (order {verify_in.razorpay_order_id})")
        raise InvalidSignature()

    if payment.status != models.PaymentStatus.PENDING:
        logger.info(f"Payment {payment.id} already {payment.status.value}, nothing to do")
        return payment

    payment.status = models.PaymentStatus.SUCCESS
    payment.razorpay_payment_id = verify_in.razorpay_payment_id
    payment.razorpay_signature = verify_in.razorpay_signature

    payment_type = models.PaymentType(payment.meta.get("type"))
    if payment_type == models.PaymentType.SUBSCRIPTION:
        return await _grant_subscription(db, user, payment, background_tasks, mailer)
    return await _grant_purchase(db, user, payment, payment_type, verify_in, background_tasks, mailer)

async def _grant_purchase(
    db: AsyncSession,
    user: User,
    payment: models.Payment,
    payment_type: models.PaymentType,
    verify_in: schemas.PaymentVerify,
    background_tasks: Optional[BackgroundTasks],
    mailer: Optional[Mailer],
) -> models.Payment:
    item_model, purchase_model, item_fk, path = PURCHASABLE[payment_type]
    item_id = UUID(payment.meta["item_id"])
    # rollback expires every loaded instance, keep plain values around
    user_id = user.id

    item = await db.get(item_model, item_id)
    if not item:
        logger.error(f"Payment {payment.id} verified but {payment_type.value} {item_id} no longer exists")
        await db.rollback()
        raise NotFound(f"{payment_type.value.capitalize()} not found")

    db.add(purchase_model(user_id=user_id, payment_id=payment.id, **{item_fk: item_id}))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        await db.refresh(payment)
        if payment.status == models.PaymentStatus.SUCCESS:
            # A concurrent verification of this same payment already granted it
            logger.info(f"Payment {payment.id} granted by a concurrent request")
            return payment

        # The user owns the item through another payment
        payment.status = models.PaymentStatus.FAILED
        payment.razorpay_payment_id = verify_in.razorpay_payment_id
        payment.razorpay_signature = verify_in.razorpay_signature
        payment.meta = {**payment.meta, "reason": "already_purchased"}
        await db.commit()
        await db.refresh(payment)
        logger.warning(
            f"Duplicate purchase of {payment_type.value} {item_id} by user {user_id}; "
            f"payment {payment.id} ({verify_in.razorpay_payment_id}) needs a manual refund"
        )
        return payment

    await db.refresh(payment)
    logger.info(f"Payment {payment.id} verified, {payment_type.value} {item_id} granted to user {user_id}")

    if background_tasks is not None and mailer is not None:
        background_tasks.add_task(
            notifications.send_purchase_confirmation,
            mailer,
            user.email,
            user.name,
            item.title,
            f"{settings.APP_URL}/{path}/{item.slug}",
            payment.amount,
            payment.currency,
        )
    return payment

async def _grant_subscription(
    db: AsyncSession,
    user: User,
    payment: models.Payment,
    background_tasks: Optional[BackgroundTasks],
    mailer: Optional[Mailer],
) -> models.Payment:
    subscription = await subscriptions_service.get_subscription(db, payment.subscription_id)

    reason = await subscriptions_service.activation_conflict(db, subscription)
    if reason:
        # Paid, but activating would break the one-live-subscription rule
        payment.status = models.PaymentStatus.FAILED
        payment.meta = {**payment.meta, "reason": reason}
        await db.commit()
        await db.refresh(payment)
        logger.warning(
            f"Subscription {subscription.id} not activated for user {user.id} ({reason}); "
            f"payment {payment.id} ({payment.razorpay_payment_id}) needs a manual refund"
        )
        return payment

    subscriptions_service.activate_subscription(subscription)
    await db.commit()
    await db.refresh(payment)
    await db.refresh(subscription)
    logger.info(f"Payment {payment.id} verified, subscription {subscription.id} active until {subscription.end_date}")

    if background_tasks is not None and mailer is not None:
        background_tasks.add_task(
            notifications.send_subscription_activated,
            mailer,
            user.email,
            user.name,
            subscription.plan.name if subscription.plan else "Premium",
            subscription.end_date,
        )
    return payment
