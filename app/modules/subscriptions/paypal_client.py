import httpx
import logging
import time
from typing import Any, Dict, Optional

from app.config.settings import settings

logger = logging.getLogger(__name__)

# Refresh the OAuth token this many seconds before PayPal expires it
TOKEN_EXPIRY_MARGIN = 60

WEBHOOK_HEADERS = {
    "auth_algo": "paypal-auth-algo",
    "cert_url": "paypal-cert-url",
    "transmission_id": "paypal-transmission-id",
    "transmission_sig": "paypal-transmission-sig",
    "transmission_time": "paypal-transmission-time",
}


class PayPalError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PayPalClient:
    """Billing subscriptions through the PayPal REST API."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        secret: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.client_id = client_id if client_id is not None else settings.paypal_client_id
        self.secret = secret if secret is not None else settings.paypal_secret
        self.base_url = base_url or settings.paypal_base_url
        self.client = client or httpx.Client(timeout=20.0)
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.secret)

    def get_access_token(self) -> str:
        if self._token and time.time() < self._token_expires_at:
            return self._token
        if not self.configured:
            raise PayPalError("PayPal credentials not configured")
        try:
            response = self.client.post(
                f"{self.base_url}/v1/oauth2/token",
                data={"grant_type": "client_credentials"},
                auth=(self.client_id, self.secret),
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"PayPal OAuth failed: {e.response.status_code}")
            raise PayPalError("PayPal OAuth failed", e.response.status_code)
        except httpx.HTTPError as e:
            logger.error(f"PayPal OAuth error: {e}")
            raise PayPalError("PayPal OAuth failed")

        data = response.json()
        self._token = data["access_token"]
        self._token_expires_at = time.time() + int(data.get("expires_in", 0)) - TOKEN_EXPIRY_MARGIN
        return self._token

    def _request(self, method: str, path: str, json: Optional[dict] = None) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.get_access_token()}",
            "Content-Type": "application/json",
        }
        try:
            response = self.client.request(method, f"{self.base_url}{path}", json=json, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"PayPal {method} {path} failed: {e.response.status_code} {e.response.text}")
            raise PayPalError(f"PayPal returned {e.response.status_code}", e.response.status_code)
        except httpx.HTTPError as e:
            logger.error(f"PayPal {method} {path} error: {e}")
            raise PayPalError(str(e))
        # cancel/activate answer 204 No Content
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def create_subscription(self, plan_id: str, email: Optional[str], return_url: str, cancel_url: str) -> Dict[str, Any]:
        body = {
            "plan_id": plan_id,
            "application_context": {
                "brand_name": "PadelGraph",
                "locale": "en-US",
                "shipping_preference": "NO_SHIPPING",
                "user_action": "SUBSCRIBE_NOW",
                "return_url": return_url,
                "cancel_url": cancel_url,
            },
        }
        if email:
            body["subscriber"] = {"email_address": email}
        return self._request("POST", "/v1/billing/subscriptions", body)

    def get_subscription(self, subscription_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/v1/billing/subscriptions/{subscription_id}")

    def cancel_subscription(self, subscription_id: str, reason: str = "User requested cancellation") -> None:
        self._request("POST", f"/v1/billing/subscriptions/{subscription_id}/cancel", {"reason": reason})

    def activate_subscription(self, subscription_id: str, reason: str = "User reactivated subscription") -> None:
        self._request("POST", f"/v1/billing/subscriptions/{subscription_id}/activate", {"reason": reason})

    def revise_subscription(self, subscription_id: str, plan_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/v1/billing/subscriptions/{subscription_id}/revise", {
            "plan_id": plan_id,
            "application_context": {"shipping_preference": "NO_SHIPPING"},
        })

    def verify_webhook_signature(self, headers: Dict[str, str], event: dict, webhook_id: str) -> bool:
        payload = {}
        for field, header in WEBHOOK_HEADERS.items():
            value = headers.get(header)
            if not value:
                logger.error(f"Missing PayPal webhook header {header}")
                return False
            payload[field] = value
        payload["webhook_id"] = webhook_id
        payload["webhook_event"] = event
        try:
            result = self._request("POST", "/v1/notifications/verify-webhook-signature", payload)
        except PayPalError as e:
            logger.error(f"PayPal webhook verification call failed: {e}")
            return False
        return result.get("verification_status") == "SUCCESS"


def approval_url(subscription: dict) -> Optional[str]:
    for link in subscription.get("links") or []:
        if link.get("rel") == "approve":
            return link.get("href")
    return None


_paypal_client: Optional[PayPalClient] = None


def get_paypal_client() -> PayPalClient:
    global _paypal_client
    if _paypal_client is None:
        _paypal_client = PayPalClient()
    return _paypal_client
