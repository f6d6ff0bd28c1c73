import uuid

import pytest
from sqlalchemy import select

from app.modules.blogs.models import BlogPurchase
from app.modules.catalog.models import AccessType
from app.modules.payments.models import Payment, PaymentStatus
from app.modules.resources.models import ResourcePurchase

from conftest import API, make_blog, make_resource

pytestmark = pytest.mark.payment


async def _order(client, headers, item, type_="BLOG"):
    return await client.post(f"{API}/payments/order", json={"type": type_, "item_id": str(item.id)}, headers=headers)


def _verify_payload(gateway, order, payment_id, razorpay_payment_id="pay_123"):
    return {
        "razorpay_order_id": order["order_id"],
        "razorpay_payment_id": razorpay_payment_id,
        "razorpay_signature": gateway.sign(order["order_id"], razorpay_payment_id),
        "payment_id": payment_id,
    }


async def test_order_for_paid_blog(client, db, gateway, user, user_headers):
    blog = await make_blog(db, access_type=AccessType.PAID, price=99.5)

    response = await _order(client, user_headers, blog)
    assert response.status_code == 200
    body = response.json()
    assert body["amount"] == 9950
    assert body["currency"] == "INR"
    assert body["key_id"] == "rzp_test_key"
    assert body["order_id"] == gateway.orders[0]["id"]
    assert len(gateway.orders[0]["receipt"]) <= 40

    payment = await db.get(Payment, uuid.UUID(body["payment_id"]))
    assert payment.status == PaymentStatus.PENDING
    assert payment.amount == 99.5
    assert payment.meta == {"type": "BLOG", "item_id": str(blog.id)}


async def test_order_requires_login(client, db):
    blog = await make_blog(db, access_type=AccessType.PAID, price=10)
    response = await client.post(f"{API}/payments/order", json={"type": "BLOG", "item_id": str(blog.id)})
    assert response.status_code == 401


@pytest.mark.parametrize("kwargs", [
    {"access_type": AccessType.FREE},
    {"access_type": AccessType.SUBSCRIPTION},
    {"access_type": AccessType.PAID, "price": 10, "published": False},
])
async def test_order_rejects_items_not_for_sale(client, db, gateway, user_headers, kwargs):
    blog = await make_blog(db, **kwargs)

    response = await _order(client, user_headers, blog)
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid blog or not available for purchase"}
    assert gateway.orders == []


async def test_order_rejects_unknown_type(client, db, user_headers):
    blog = await make_blog(db, access_type=AccessType.PAID, price=10)
    response = await _order(client, user_headers, blog, type_="COURSE")
    assert response.status_code == 400


async def test_already_purchased_is_rejected_before_gateway(client, db, gateway, user, user_headers):
    blog = await make_blog(db, access_type=AccessType.PAID, price=10)
    db.add(BlogPurchase(user_id=user.id, blog_id=blog.id))
    await db.commit()

    response = await _order(client, user_headers, blog)
    assert response.status_code == 400
    assert response.json() == {"error": "Already purchased"}
    assert gateway.orders == []


async def test_verify_grants_blog_purchase(client, db, gateway, mailer, user, user_headers):
    blog = await make_blog(db, access_type=AccessType.PAID, price=99)
    order = (await _order(client, user_headers, blog)).json()

    response = await client.post(
        f"{API}/payments/verify", json=_verify_payload(gateway, order, order["payment_id"]), headers=user_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["payment"]["status"] == "SUCCESS"
    assert body["payment"]["razorpay_payment_id"] == "pay_123"
    assert body["payment"]["metadata"]["type"] == "BLOG"

    purchases = (await db.execute(select(BlogPurchase).where(BlogPurchase.user_id == user.id))).scalars().all()
    assert len(purchases) == 1
    assert purchases[0].blog_id == blog.id
    assert str(purchases[0].payment_id) == order["payment_id"]

    assert [m["subject"] for m in mailer.sent] == ["Purchase confirmed"]

    detail = (await client.get(f"{API}/blogs/{blog.slug}", headers=user_headers)).json()
    assert detail["has_access"] is True


async def test_verify_grants_resource_purchase(client, db, gateway, user, user_headers):
    resource = await make_resource(db, access_type=AccessType.PAID, price=25)
    order = (await _order(client, user_headers, resource, type_="RESOURCE")).json()

    response = await client.post(
        f"{API}/payments/verify", json=_verify_payload(gateway, order, order["payment_id"]), headers=user_headers
    )
    assert response.status_code == 200

    purchase = (await db.execute(select(ResourcePurchase))).scalars().one()
    assert purchase.resource_id == resource.id


async def test_tampered_signature_changes_nothing(client, db, gateway, user, user_headers):
    blog = await make_blog(db, access_type=AccessType.PAID, price=99)
    order = (await _order(client, user_headers, blog)).json()

    payload = _verify_payload(gateway, order, order["payment_id"])
    payload["razorpay_payment_id"] = "pay_other"
    response = await client.post(f"{API}/payments/verify", json=payload, headers=user_headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid signature"}

    payment = await db.get(Payment, uuid.UUID(order["payment_id"]))
    await db.refresh(payment)
    assert payment.status == PaymentStatus.PENDING
    assert (await db.execute(select(BlogPurchase))).first() is None


async def test_signature_for_another_order_is_rejected(client, db, gateway, user, user_headers):
    first = await make_blog(db, slug="first", access_type=AccessType.PAID, price=10)
    second = await make_blog(db, slug="second", access_type=AccessType.PAID, price=10)
    first_order = (await _order(client, user_headers, first)).json()
    second_order = (await _order(client, user_headers, second)).json()

    # Valid signature, but for the other order
    payload = _verify_payload(gateway, second_order, first_order["payment_id"])
    response = await client.post(f"{API}/payments/verify", json=payload, headers=user_headers)
    assert response.status_code == 400
    assert (await db.execute(select(BlogPurchase))).first() is None


async def test_verify_someone_elses_payment(client, db, gateway, user_headers, admin_headers):
    blog = await make_blog(db, access_type=AccessType.PAID, price=10)
    order = (await _order(client, admin_headers, blog)).json()

    response = await client.post(
        f"{API}/payments/verify", json=_verify_payload(gateway, order, order["payment_id"]), headers=user_headers
    )
    assert response.status_code == 404


async def test_verify_is_idempotent(client, db, gateway, mailer, user, user_headers):
    blog = await make_blog(db, access_type=AccessType.PAID, price=99)
    order = (await _order(client, user_headers, blog)).json()
    payload = _verify_payload(gateway, order, order["payment_id"])

    first = await client.post(f"{API}/payments/verify", json=payload, headers=user_headers)
    second = await client.post(f"{API}/payments/verify", json=payload, headers=user_headers)
    assert first.status_code == second.status_code == 200
    assert second.json()["payment"]["status"] == "SUCCESS"

    purchases = (await db.execute(select(BlogPurchase))).scalars().all()
    assert len(purchases) == 1
    assert len(mailer.sent) == 1


async def test_second_paid_order_for_same_item_fails_without_duplicate_grant(client, db, gateway, user, user_headers):
    blog = await make_blog(db, access_type=AccessType.PAID, price=99)

    # Two checkouts opened before either was paid
    first = (await _order(client, user_headers, blog)).json()
    second = (await _order(client, user_headers, blog)).json()

    response = await client.post(
        f"{API}/payments/verify", json=_verify_payload(gateway, first, first["payment_id"], "pay_1"), headers=user_headers
    )
    assert response.json()["payment"]["status"] == "SUCCESS"

    response = await client.post(
        f"{API}/payments/verify", json=_verify_payload(gateway, second, second["payment_id"], "pay_2"), headers=user_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Already purchased"
    assert body["payment"]["status"] == "FAILED"
    assert body["payment"]["metadata"]["reason"] == "already_purchased"

    purchases = (await db.execute(select(BlogPurchase))).scalars().all()
    assert len(purchases) == 1


async def test_list_my_payments(client, db, user, user_headers, admin_headers):
    blog = await make_blog(db, access_type=AccessType.PAID, price=10)
    await _order(client, user_headers, blog)
    await _order(client, admin_headers, blog)

    response = await client.get(f"{API}/payments", headers=user_headers)
    assert response.status_code == 200
    payments = response.json()
    assert len(payments) == 1
    assert payments[0]["user_id"] == str(user.id)


@pytest.fixture
def unconfigured_gateway(client, monkeypatch):
    from app.main import app
    from app.core.config import settings
    from app.modules.payments.gateway import get_gateway_factory

    # Fall back to the real dependency with the keys blanked out
    app.dependency_overrides.pop(get_gateway_factory)
    monkeypatch.setattr(settings, "RAZORPAY_KEY_ID", "")


async def test_gateway_not_configured(client, db, user_headers, unconfigured_gateway):
    blog = await make_blog(db, access_type=AccessType.PAID, price=10)
    response = await _order(client, user_headers, blog)

    assert response.status_code == 500
    assert response.json() == {"error": "Payment gateway not configured. Please check server configuration."}


async def test_order_checks_run_before_gateway_config(client, db, user, user_headers, unconfigured_gateway):
    owned = await make_blog(db, slug="owned", access_type=AccessType.PAID, price=10)
    db.add(BlogPurchase(user_id=user.id, blog_id=owned.id))
    await db.commit()

    response = await _order(client, user_headers, owned)
    assert response.status_code == 400
    assert response.json() == {"error": "Already purchased"}

    free = await make_blog(db, slug="free")
    response = await _order(client, user_headers, free)
    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid blog")


async def test_concurrent_verify_of_same_payment_reports_success(db, session_factory, gateway, user):
    from app.modules.payments import schemas, service

    blog = await make_blog(db, access_type=AccessType.PAID, price=99)
    payment = Payment(
        user_id=user.id,
        amount=99,
        currency="INR",
        status=PaymentStatus.PENDING,
        razorpay_order_id="order_race",
        meta={"type": "BLOG", "item_id": str(blog.id)},
    )
    db.add(payment)
    await db.commit()

    # This session keeps its stale PENDING copy while another request wins
    assert (await db.get(Payment, payment.id)).status == PaymentStatus.PENDING
    await db.commit()
    async with session_factory() as other:
        winner = await other.get(Payment, payment.id)
        winner.status = PaymentStatus.SUCCESS
        winner.razorpay_payment_id = "pay_race"
        other.add(BlogPurchase(user_id=user.id, blog_id=blog.id, payment_id=payment.id))
        await other.commit()

    verify_in = schemas.PaymentVerify(
        razorpay_order_id="order_race",
        razorpay_payment_id="pay_race",
        razorpay_signature=gateway.sign("order_race", "pay_race"),
        payment_id=payment.id,
    )
    result = await service.verify_payment(db, gateway, user, verify_in)

    assert result.status == PaymentStatus.SUCCESS
    purchases = (await db.execute(select(BlogPurchase))).scalars().all()
    assert len(purchases) == 1


@pytest.mark.parametrize("price", ["1e309", "-1e309", "0.001"])
async def test_paid_blog_rejects_unchargeable_prices(client, db, admin_headers, price):
    body = '{"title": "Paid post", "slug": "paid-post", "content": "Body", "access_type": "PAID", "price": %s}' % price
    response = await client.post(
        f"{API}/admin/blogs",
        content=body,
        headers={**admin_headers, "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Price is required for paid content and must be greater than 0"}
