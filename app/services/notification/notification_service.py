import logging
from typing import List
from app.core.config import settings
from app.services.notification.base import NotificationChannel
from app.services.notification.email import EmailNotification

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self):
        self.channels: dict[str, NotificationChannel] = {
            "email": EmailNotification(),
        }

    async def notify(
        self,
        *,
        email: str | None,
        subject: str,
        message: str,
        channels: List[str] | None = None,
        attachment: bytes | None = None,
        filename: str = "receipt.pdf"
    ):
        for channel in channels or ["email"]:
            if channel == "email" and email:
                await self.channels["email"].send(
                    email,
                    subject,
                    message,
                    attachment=attachment,
                    filename=filename,
                )
            elif channel not in self.channels:
                logger.warning(f"Unknown notification channel: {channel}")

    async def send_verification_email(self, *, email: str, full_name: str, token: str, verify_url: str):
        await self.notify(
            email=email,
            subject="Verify your email address",
            message=(
                f"Hello {full_name},\n\n"
                f"Please confirm your email address by opening the link below:\n"
                f"{verify_url}?token={token}\n\n"
                f"The link expires in {settings.verification_token_expire_hours} hours."
            ),
        )
