import logging
from decimal import Decimal
from typing import Dict, Any, Optional

import httpx
from app.core.config import get_settings
from app.core.exceptions import NotificationFailed
from app.core.i18n import Language, translate
from app.core.utils import build_public_url, mask_email
from app.models.application import ApplicationType
from app.services.fees import format_amount

settings = get_settings()
logger = logging.getLogger(__name__)


def build_confirmation_email(
    to: str,
    reference: str,
    name: str,
    amount: Decimal,
    application_type: ApplicationType,
    language: Language
) -> Dict[str, Any]:
    """
    Confirmation notice sent after a submission

    The template itself lives in the email service; this picks the
    language variant and fills its data.
    """
    language = Language(language)
    return {
        "to": to,
        "subject": translate("email_subject", language),
        "template": f"confirmation-{language.value}",
        "data": {
            "reference": reference,
            "name": name,
            "amount": str(amount),
            "formattedAmount": format_amount(amount),
            "type": ApplicationType(application_type).value,
            "statusUrl": build_public_url(
                settings.PUBLIC_BASE_URL, "/status", reference=reference
            )
        }
    }


class NotificationService:
    """Client for the transactional email service"""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport
        self.base_url = settings.EMAIL_SERVICE_URL.rstrip("/")
        self.timeout = settings.EXTERNAL_TIMEOUT_SECONDS
        self.headers = {"Content-Type": "application/json"}
        if settings.EMAIL_SERVICE_TOKEN:
            self.headers["Authorization"] = f"Bearer {settings.EMAIL_SERVICE_TOKEN}"

    async def send_email(self, email: Dict[str, Any]) -> bool:
        """
        Dispatch an email

        Args:
            email: {to, subject, template, data}

        Returns:
            True once the service accepted the message

        Raises:
            NotificationFailed: If the service rejects or cannot be reached
        """
        reference = email.get("data", {}).get("reference")

        if not self.base_url:
            logger.info(
                "Email service not configured, skipping %s to %s",
                email["template"], mask_email(email["to"])
            )
            return False

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/api/email/send",
                    headers=self.headers,
                    json=email
                )
            except httpx.TimeoutException:
                raise NotificationFailed("Email service timeout", reference=reference)
            except httpx.RequestError as e:
                raise NotificationFailed(f"Network error: {str(e)}", reference=reference)

        if response.status_code >= 400:
            raise NotificationFailed(
                f"Email service error: HTTP {response.status_code}",
                reference=reference
            )
        return True


def get_notification_service() -> NotificationService:
    """FastAPI dependency"""
    return NotificationService()
