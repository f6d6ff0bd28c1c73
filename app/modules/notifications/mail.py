import logging
import smtplib
from email.mime.text import MIMEText
from functools import lru_cache

from app.core.config import settings

logger = logging.getLogger(__name__)

class Mailer:
    """
    Plain-text SMTP sender. STARTTLS on 587, implicit TLS on 465.
    """

    def __init__(self, host: str, port: int, user: str, password: str, sender: str):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender

    @property
    def configured(self) -> bool:
        return bool(self.host and self.user)

    def send(self, to_email: str, subject: str, body: str) -> bool:
        if not self.configured:
            logger.warning(f"SMTP not configured, skipping email '{subject}' to {to_email}")
            return False

        msg = MIMEText(body)
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email

        if self.port == 465:
            server = smtplib.SMTP_SSL(self.host, self.port, timeout=30)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=30)
            server.starttls()
        try:
            server.login(self.user, self.password)
            server.send_message(msg)
        finally:
            server.quit()

        logger.info(f"Email '{subject}' sent to {to_email}")
        return True

@lru_cache()
def get_mailer() -> Mailer:
    return Mailer(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        user=settings.SMTP_USER,
        password=settings.SMTP_PASS,
        sender=settings.MAIL_FROM or settings.SMTP_USER,
    )
