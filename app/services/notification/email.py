import base64
import logging

from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import (
    Attachment,
    Disposition,
    FileContent,
    FileName,
    FileType,
    Mail,
)
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.services.notification.base import NotificationChannel

logger = logging.getLogger(__name__)


class EmailNotification(NotificationChannel):
    async def send(self, recipient: str, subject: str, message: str, **kwargs) -> bool:
        attachment: bytes | None = kwargs.get("attachment")
        filename = kwargs.get("filename", "receipt.pdf")

        if not settings.sendgrid_api_key:
            logger.info(f"Email delivery disabled, skipping '{subject}' to {recipient}")
            return False

        mail = Mail(
            from_email=settings.email_from,
            to_emails=recipient,
            subject=subject,
            plain_text_content=message,
        )

        if attachment:
            encoded_file = base64.b64encode(attachment).decode()
            mail.add_attachment(
                Attachment(
                    FileContent(encoded_file),
                    FileName(filename),
                    FileType("application/pdf"),
                    Disposition("attachment"),
                )
            )

        try:
            sg = SendGridAPIClient(settings.sendgrid_api_key)
            # SendGrid's client is synchronous
            await run_in_threadpool(sg.send, mail)
            logger.info(f"Email '{subject}' sent to {recipient}")
            return True
        except HTTPError as e:
            logger.error(f"Email send failed: {e}")
            return False
