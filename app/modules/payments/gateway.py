import hashlib
import hmac
import logging
import math
import time
from functools import lru_cache
from typing import Callable, Dict, Optional

import razorpay
from fastapi.concurrency import run_in_threadpool
from razorpay.errors import SignatureVerificationError

from app.core.config import settings
from app.core.errors import ConfigError, GatewayError, ValidationError

logger = logging.getLogger(__name__)

def build_receipt(prefix: str) -> str:
    # Razorpay caps receipts at 40 characters
    return f"{prefix}_{int(time.time() * 1000)}"[:40]

def to_minor_units(price: float) -> int:
    if price is None or not math.isfinite(price):
        raise ValidationError("Invalid amount")
    return round(price * 100)

def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()

def verify_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    if not (order_id and payment_id and signature and secret):
        return False
    utility = razorpay.Client(auth=("", secret)).utility
    try:
        utility.verify_payment_signature({
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature,
        })
    except SignatureVerificationError:
        return False
    return True

class RazorpayGateway:
    """
    Thin async wrapper around the Razorpay SDK. The SDK is synchronous,
    so calls run in the threadpool.
    """

    def __init__(self, key_id: str, key_secret: str):
        self.key_id = key_id
        self.key_secret = key_secret
        self.client = razorpay.Client(auth=(key_id, key_secret))

    async def create_order(self, amount: int, currency: str, receipt: str, notes: Optional[Dict[str, str]] = None) -> dict:
        data = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            order = await run_in_threadpool(self.client.order.create, data=data)
        except Exception as e:
            logger.error(f"Razorpay order creation failed for receipt {receipt}: {e}")
            raise GatewayError(str(e) or GatewayError.message) from e
        return order

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        return verify_signature(order_id, payment_id, signature, self.key_secret)

@lru_cache()
def _build_gateway(key_id: str, key_secret: str) -> RazorpayGateway:
    return RazorpayGateway(key_id, key_secret)

def get_gateway() -> RazorpayGateway:
    if not settings.razorpay_configured:
        logger.error("Razorpay keys are not configured")
        raise ConfigError()
    return _build_gateway(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)

def get_gateway_factory() -> Callable[[], RazorpayGateway]:
    """
    Checkout endpoints resolve the gateway only after their own checks
    pass, so a missing key never hides a 400.
    """
    return get_gateway
