import httpx
import logging
from typing import Optional

from app.config.settings import settings
from app.modules.notifications.schemas import DeliveryResult

logger = logging.getLogger(__name__)


class WhatsAppService:
    """WhatsApp and SMS through the Twilio Messages REST API."""

    BASE_URL = "https://api.twilio.com/2010-04-01"

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        whatsapp_from: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.account_sid = account_sid if account_sid is not None else settings.twilio_account_sid
        self.auth_token = auth_token if auth_token is not None else settings.twilio_auth_token
        self.whatsapp_from = whatsapp_from or settings.twilio_whatsapp_from
        self.client = client or httpx.Client(timeout=15.0)
        if not self.enabled:
            logger.warning("Twilio credentials not found - WhatsApp service disabled")

    @property
    def enabled(self) -> bool:
        return bool(self.account_sid and self.auth_token)

    def _create_message(self, to: str, from_number: str, body: str) -> DeliveryResult:
        try:
            response = self.client.post(
                f"{self.BASE_URL}/Accounts/{self.account_sid}/Messages.json",
                data={"To": to, "From": from_number, "Body": body},
                auth=(self.account_sid, self.auth_token),
            )
            response.raise_for_status()
            sid = response.json().get("sid")
            logger.info(f"Twilio message sent: {sid}")
            return DeliveryResult(success=True, message_id=sid)
        except httpx.HTTPStatusError as e:
            logger.error(f"Twilio error: {e.response.status_code} {e.response.text}")
            return DeliveryResult(success=False, error=f"Twilio returned {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Twilio error: {e}")
            return DeliveryResult(success=False, error=str(e))

    def send(self, to: str, body: str) -> DeliveryResult:
        """Send a WhatsApp message; `to` is an E.164 number with or without the whatsapp: prefix"""
        if not self.enabled:
            return DeliveryResult(success=False, error="WhatsApp service not configured")
        if not to:
            return DeliveryResult(success=False, error="Missing phone number")
        recipient = to if to.startswith("whatsapp:") else f"whatsapp:{to}"
        return self._create_message(recipient, self.whatsapp_from, body)

    def send_sms(self, to: str, body: str) -> DeliveryResult:
        if not self.enabled or not settings.twilio_phone_from:
            return DeliveryResult(success=False, error="SMS service not configured")
        return self._create_message(to, settings.twilio_phone_from, body)


_whatsapp_service: Optional[WhatsAppService] = None


def get_whatsapp_service() -> WhatsAppService:
    global _whatsapp_service
    if _whatsapp_service is None:
        _whatsapp_service = WhatsAppService()
    return _whatsapp_service
