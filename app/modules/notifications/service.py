"""
Transactional emails. All of them are non-critical: failures are logged and
swallowed so they never affect the request that triggered them. They are
meant to run as FastAPI background tasks.
"""
import logging
from datetime import datetime
from typing import Optional

from app.core.config import settings
from app.modules.notifications.mail import Mailer

logger = logging.getLogger(__name__)

def safe_send(mailer: Mailer, to_email: str, subject: str, body: str) -> bool:
    try:
        return mailer.send(to_email, subject, body)
    except Exception as e:
        logger.error(f"Failed to send email '{subject}' to {to_email}: {e}")
        return False

def send_otp_email(mailer: Mailer, to_email: str, otp: str) -> bool:
    body = (
        f"Your verification code is: {otp}\n"
        "This code expires in 10 minutes.\n\n"
        "If you did not create an account, you can ignore this email."
    )
    return safe_send(mailer, to_email, f"Verify your email - {settings.PROJECT_NAME}", body)

def send_purchase_confirmation(
    mailer: Mailer,
    to_email: str,
    name: Optional[str],
    item_title: str,
    item_url: str,
    amount: float,
    currency: str,
) -> bool:
    body = (
        f"Hi {name or 'there'},\n\n"
        f"Thank you for your purchase of \"{item_title}\".\n"
        f"Amount paid: {currency} {amount:.2f}\n\n"
        f"You now have full access: {item_url}\n"
    )
    return safe_send(mailer, to_email, "Purchase confirmed", body)

def send_subscription_activated(
    mailer: Mailer,
    to_email: str,
    name: Optional[str],
    plan_name: str,
    end_date: datetime,
) -> bool:
    body = (
        f"Hi {name or 'there'},\n\n"
        f"Your {plan_name} subscription is now active.\n"
        f"It is valid until {end_date:%d %b %Y}.\n\n"
        f"Start reading: {settings.APP_URL}/blogs\n"
    )
    return safe_send(mailer, to_email, "Subscription activated", body)

def send_subscription_cancelled(
    mailer: Mailer,
    to_email: str,
    name: Optional[str],
    plan_name: str,
) -> bool:
    body = (
        f"Hi {name or 'there'},\n\n"
        f"Your {plan_name} subscription has been cancelled.\n"
        "We are sorry to see you go.\n"
    )
    return safe_send(mailer, to_email, "Subscription cancelled", body)
