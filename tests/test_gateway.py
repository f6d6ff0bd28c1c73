import hashlib
import hmac

import pytest

from app.core.errors import GatewayError, ValidationError
from app.modules.payments.gateway import (
    RazorpayGateway,
    build_receipt,
    compute_signature,
    to_minor_units,
    verify_signature,
)


def test_signature_is_hmac_sha256_of_order_and_payment():
    expected = hmac.new(b"secret", b"order_1|pay_1", hashlib.sha256).hexdigest()
    assert compute_signature("order_1", "pay_1", "secret") == expected
    assert verify_signature("order_1", "pay_1", expected, "secret")


@pytest.mark.parametrize("order_id,payment_id,secret", [
    ("order_2", "pay_1", "secret"),
    ("order_1", "pay_2", "secret"),
    ("order_1", "pay_1", "other-secret"),
])
def test_signature_rejects_any_changed_input(order_id, payment_id, secret):
    signature = compute_signature("order_1", "pay_1", "secret")
    assert not verify_signature(order_id, payment_id, signature, secret)


def test_signature_rejects_missing_values():
    assert not verify_signature("order_1", "pay_1", "", "secret")
    assert not verify_signature("order_1", "pay_1", "abc", "")


def test_receipt_is_capped_at_40_characters():
    assert build_receipt("BLOG").startswith("BLOG_")
    assert len(build_receipt("X" * 60)) == 40


def test_minor_units_round_instead_of_truncating():
    assert to_minor_units(19.99) == 1999
    assert to_minor_units(0.29) == 29
    assert to_minor_units(100) == 10000


@pytest.mark.parametrize("price", [float("inf"), float("-inf"), float("nan")])
def test_minor_units_reject_non_finite_prices(price):
    with pytest.raises(ValidationError) as excinfo:
        to_minor_units(price)
    assert excinfo.value.message == "Invalid amount"


async def test_order_failure_becomes_gateway_error(monkeypatch):
    gateway = RazorpayGateway("rzp_test_key", "rzp_test_secret")

    def boom(data):
        raise RuntimeError("Authentication failed")

    monkeypatch.setattr(gateway.client.order, "create", boom)
    with pytest.raises(GatewayError) as excinfo:
        await gateway.create_order(amount=100, currency="INR", receipt="BLOG_1")
    assert excinfo.value.status_code == 500
    assert "Authentication failed" in excinfo.value.message


async def test_order_passes_payload_to_sdk(monkeypatch):
    gateway = RazorpayGateway("rzp_test_key", "rzp_test_secret")
    calls = []

    def fake_create(data):
        calls.append(data)
        return {"id": "order_abc", **data}

    monkeypatch.setattr(gateway.client.order, "create", fake_create)
    order = await gateway.create_order(amount=4900, currency="INR", receipt="RESO_1", notes={"item_id": "x"})
    assert order["id"] == "order_abc"
    assert calls == [{"amount": 4900, "currency": "INR", "receipt": "RESO_1", "notes": {"item_id": "x"}}]
