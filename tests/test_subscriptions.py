import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from app.modules.catalog.models import AccessType
from app.modules.payments.models import Payment, PaymentStatus
from app.modules.subscriptions.models import Subscription, SubscriptionStatus
from app.modules.subscriptions.service import add_months

from conftest import API, make_blog, make_plan, make_user, auth_headers

pytestmark = pytest.mark.payment


def test_add_months_clamps_to_month_end():
    start = datetime(2024, 1, 31, 12, 0, tzinfo=timezone.utc)
    assert add_months(start, 1) == datetime(2024, 2, 29, 12, 0, tzinfo=timezone.utc)
    assert add_months(start, 12) == datetime(2025, 1, 31, 12, 0, tzinfo=timezone.utc)
    assert add_months(datetime(2023, 11, 15, tzinfo=timezone.utc), 3) == datetime(2024, 2, 15, tzinfo=timezone.utc)


async def test_plans_listing_hides_inactive_from_users(client, db, admin_headers):
    await make_plan(db, name="Yearly", price=1999, duration=12)
    await make_plan(db, name="Monthly", price=199)
    await make_plan(db, name="Legacy", price=99, active=False)

    names = [p["name"] for p in (await client.get(f"{API}/subscription-plans")).json()]
    assert names == ["Monthly", "Yearly"]

    names = [p["name"] for p in (await client.get(f"{API}/subscription-plans", headers=admin_headers)).json()]
    assert names == ["Legacy", "Monthly", "Yearly"]


async def _subscribe(client, headers, plan):
    return await client.post(f"{API}/subscriptions", json={"plan_id": str(plan.id)}, headers=headers)


async def test_subscription_checkout_creates_pending_rows(client, db, gateway, user, user_headers):
    plan = await make_plan(db, price=199)

    response = await _subscribe(client, user_headers, plan)
    assert response.status_code == 200
    body = response.json()
    assert body["amount"] == 19900
    assert body["subscription"]["status"] == "PENDING"
    assert gateway.orders[0]["receipt"].startswith("SUB_")

    payment = await db.get(Payment, uuid.UUID(body["payment_id"]))
    assert payment.status == PaymentStatus.PENDING
    assert str(payment.subscription_id) == body["subscription"]["id"]
    assert payment.meta["type"] == "SUBSCRIPTION"


async def test_inactive_or_unknown_plan(client, db, user_headers):
    plan = await make_plan(db, active=False)

    response = await _subscribe(client, user_headers, plan)
    assert response.status_code == 404
    assert response.json() == {"error": "Plan not found or inactive"}

    response = await client.post(f"{API}/subscriptions", json={"plan_id": str(uuid.uuid4())}, headers=user_headers)
    assert response.status_code == 404


async def test_verified_subscription_unlocks_premium_content(client, db, gateway, mailer, user, user_headers):
    plan = await make_plan(db, duration=3)
    blog = await make_blog(db, slug="premium", access_type=AccessType.SUBSCRIPTION)

    checkout = (await _subscribe(client, user_headers, plan)).json()
    response = await client.post(
        f"{API}/payments/verify",
        json={
            "razorpay_order_id": checkout["order_id"],
            "razorpay_payment_id": "pay_sub",
            "razorpay_signature": gateway.sign(checkout["order_id"], "pay_sub"),
            "payment_id": checkout["payment_id"],
        },
        headers=user_headers,
    )
    assert response.status_code == 200
    assert response.json()["payment"]["status"] == "SUCCESS"

    subscriptions = (await db.execute(select(Subscription).where(Subscription.user_id == user.id))).scalars().all()
    assert len(subscriptions) == 1
    assert subscriptions[0].status == SubscriptionStatus.ACTIVE
    assert subscriptions[0].start_date is not None

    assert [m["subject"] for m in mailer.sent] == ["Subscription activated"]

    detail = (await client.get(f"{API}/blogs/premium", headers=user_headers)).json()
    assert detail["has_access"] is True
    assert detail["content"] == blog.content

    # A second checkout is refused while the first one is live
    response = await _subscribe(client, user_headers, plan)
    assert response.status_code == 400
    assert response.json() == {"error": "You already have an active subscription"}


async def _verify(client, gateway, headers, checkout, razorpay_payment_id):
    return await client.post(
        f"{API}/payments/verify",
        json={
            "razorpay_order_id": checkout["order_id"],
            "razorpay_payment_id": razorpay_payment_id,
            "razorpay_signature": gateway.sign(checkout["order_id"], razorpay_payment_id),
            "payment_id": checkout["payment_id"],
        },
        headers=headers,
    )


async def test_second_paid_checkout_does_not_stack_subscriptions(client, db, gateway, mailer, user, user_headers):
    plan = await make_plan(db)

    # Both checkouts opened before either was paid
    first = (await _subscribe(client, user_headers, plan)).json()
    second = (await _subscribe(client, user_headers, plan)).json()

    response = await _verify(client, gateway, user_headers, first, "pay_1")
    assert response.json()["payment"]["status"] == "SUCCESS"

    response = await _verify(client, gateway, user_headers, second, "pay_2")
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Already subscribed"
    assert body["payment"]["status"] == "FAILED"
    assert body["payment"]["metadata"]["reason"] == "already_subscribed"

    statuses = (await db.execute(
        select(Subscription.status).where(Subscription.user_id == user.id)
    )).scalars().all()
    assert sorted(s.value for s in statuses) == ["ACTIVE", "PENDING"]
    assert [m["subject"] for m in mailer.sent] == ["Subscription activated"]


async def test_cancelled_checkout_is_not_revived_by_payment(client, db, gateway, user, user_headers):
    plan = await make_plan(db)
    checkout = (await _subscribe(client, user_headers, plan)).json()
    subscription_id = checkout["subscription"]["id"]

    response = await client.delete(f"{API}/subscriptions/{subscription_id}", headers=user_headers)
    assert response.json()["status"] == "CANCELLED"

    response = await _verify(client, gateway, user_headers, checkout, "pay_late")
    assert response.status_code == 200
    payment = response.json()["payment"]
    assert payment["status"] == "FAILED"
    assert payment["metadata"]["reason"] == "subscription_cancelled"

    subscription = await db.get(Subscription, uuid.UUID(subscription_id))
    await db.refresh(subscription)
    assert subscription.status == SubscriptionStatus.CANCELLED


async def test_checkout_checks_run_before_gateway_config(client, db, user, user_headers, monkeypatch):
    from app.main import app
    from app.core.config import settings
    from app.modules.payments.gateway import get_gateway_factory

    app.dependency_overrides.pop(get_gateway_factory)
    monkeypatch.setattr(settings, "RAZORPAY_KEY_ID", "")

    plan = await make_plan(db)
    db.add(Subscription(
        user_id=user.id,
        plan_id=plan.id,
        status=SubscriptionStatus.ACTIVE,
        price=plan.price,
        start_date=datetime.now(timezone.utc),
        end_date=add_months(datetime.now(timezone.utc), 1),
    ))
    await db.commit()

    response = await _subscribe(client, user_headers, plan)
    assert response.status_code == 400
    assert response.json() == {"error": "You already have an active subscription"}


async def test_plan_price_must_be_finite(client, admin_headers):
    response = await client.post(
        f"{API}/admin/plans",
        content='{"name": "Forever", "price": 1e309, "duration": 1}',
        headers={**admin_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 400


async def test_cancel_subscription(client, db, mailer, user, user_headers):
    plan = await make_plan(db)
    subscription = Subscription(
        user_id=user.id,
        plan_id=plan.id,
        status=SubscriptionStatus.ACTIVE,
        price=plan.price,
        start_date=datetime.now(timezone.utc),
        end_date=add_months(datetime.now(timezone.utc), 1),
    )
    db.add(subscription)
    await db.commit()

    other = await make_user(db, email="other@example.com")
    response = await client.delete(f"{API}/subscriptions/{subscription.id}", headers=auth_headers(other))
    assert response.status_code == 404

    response = await client.delete(f"{API}/subscriptions/{subscription.id}", headers=user_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "CANCELLED"
    assert body["cancelled_at"] is not None
    assert [m["subject"] for m in mailer.sent] == ["Subscription cancelled"]

    listed = (await client.get(f"{API}/subscriptions", headers=user_headers)).json()
    assert [s["status"] for s in listed] == ["CANCELLED"]


async def test_admin_plan_management(client, db, user, admin_headers):
    response = await client.post(
        f"{API}/admin/plans",
        json={"name": "Quarterly", "price": 499, "duration": 3, "features": ["Everything"]},
        headers=admin_headers,
    )
    assert response.status_code == 201
    plan_id = response.json()["id"]

    response = await client.put(f"{API}/admin/plans/{plan_id}", json={"price": 449}, headers=admin_headers)
    assert response.json()["price"] == 449

    response = await client.post(f"{API}/admin/plans", json={"name": "Free?", "price": 0}, headers=admin_headers)
    assert response.status_code == 400

    # Plans with history are retired rather than removed
    db.add(Subscription(
        user_id=user.id,
        plan_id=uuid.UUID(plan_id),
        status=SubscriptionStatus.EXPIRED,
        price=449,
        end_date=datetime(2020, 1, 1, tzinfo=timezone.utc),
    ))
    await db.commit()

    response = await client.delete(f"{API}/admin/plans/{plan_id}", headers=admin_headers)
    assert response.status_code == 200
    plans = (await client.get(f"{API}/admin/plans", headers=admin_headers)).json()
    assert [(p["name"], p["active"]) for p in plans] == [("Quarterly", False)]

    subscriptions = (await client.get(f"{API}/admin/subscriptions", params={"status": "EXPIRED"}, headers=admin_headers)).json()
    assert len(subscriptions) == 1
    assert subscriptions[0]["user"]["email"] == user.email
