import httpx
import logging
from typing import Any, Dict, List, Optional, Union

from app.config.settings import settings
from app.modules.notifications.email_templates import render_template
from app.modules.notifications.schemas import DeliveryResult

logger = logging.getLogger(__name__)


class EmailService:
    """Transactional email through the Resend REST API."""

    BASE_URL = "https://api.resend.com"

    def __init__(self, api_key: Optional[str] = None, default_from: Optional[str] = None, client: Optional[httpx.Client] = None):
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.default_from = default_from or settings.email_from
        self.client = client or httpx.Client(timeout=15.0)
        if not self.api_key:
            logger.warning("Resend API key not found - email service disabled")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def send(
        self,
        to: Union[str, List[str]],
        subject: str,
        html: str,
        text: Optional[str] = None,
        from_address: Optional[str] = None,
    ) -> DeliveryResult:
        if not self.enabled:
            return DeliveryResult(success=False, error="Email service not configured")

        payload = {
            "from": from_address or self.default_from,
            "to": to if isinstance(to, list) else [to],
            "subject": subject,
            "html": html,
        }
        if text:
            payload["text"] = text

        try:
            response = self.client.post(
                f"{self.BASE_URL}/emails",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
            message_id = response.json().get("id")
            logger.info(f"Email sent: {message_id}")
            return DeliveryResult(success=True, message_id=message_id)
        except httpx.HTTPStatusError as e:
            logger.error(f"Email send error: {e.response.status_code} {e.response.text}")
            return DeliveryResult(success=False, error=f"Resend returned {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Email send error: {e}")
            return DeliveryResult(success=False, error=str(e))

    def send_template(
        self,
        template_id: str,
        to: Union[str, List[str]],
        variables: Dict[str, Any],
        subject: Optional[str] = None,
    ) -> DeliveryResult:
        rendered = render_template(template_id, variables)
        if rendered is None:
            return DeliveryResult(success=False, error=f"Template {template_id} not found")
        template_subject, html = rendered
        return self.send(to=to, subject=subject or template_subject or "PadelGraph Notification", html=html)


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
