"""
Tests for subscriptions: PayPal client, subscription service, webhook
handling and monthly usage limits.
"""

from unittest.mock import MagicMock

import httpx
import pytest
from fastapi import HTTPException

from app.config.plans_config import PLAN_MATRIX
from app.config.settings import settings
from app.core.responses import ApiError
from app.main import app
from app.modules.subscriptions.paypal_client import PayPalClient, PayPalError, approval_url
from app.modules.subscriptions.routes import get_webhook_service
from app.modules.subscriptions.service import (
    SubscriptionService,
    default_subscription,
    map_paypal_status,
    plan_for_paypal_id,
)
from app.modules.subscriptions.usage import UsageLimiter
from app.scripts.seed_subscription_plans import seed_plans

WEBHOOK_HEADERS = {
    "paypal-auth-algo": "SHA256withRSA",
    "paypal-cert-url": "https://api.paypal.com/cert",
    "paypal-transmission-id": "tx-1",
    "paypal-transmission-sig": "sig",
    "paypal-transmission-time": "2026-10-01T10:00:00Z",
}


@pytest.fixture
def paypal_plans(monkeypatch):
    monkeypatch.setattr(settings, "paypal_pro_plan_id", "P-PRO")
    monkeypatch.setattr(settings, "paypal_premium_plan_id", "P-PREMIUM")


@pytest.fixture
def paypal():
    return MagicMock(spec=PayPalClient)


@pytest.fixture
def service(fake_db, paypal):
    return SubscriptionService(fake_db, paypal)


# =============================================================================
# PayPal client
# =============================================================================

class TestPayPalClient:
    """REST calls through a mocked transport"""

    def make_client(self, handler):
        return PayPalClient(
            "client-id", "secret", "https://paypal.test",
            httpx.Client(transport=httpx.MockTransport(handler)),
        )

    def test_token_is_cached_between_calls(self):
        seen = {"token_calls": 0, "auth": []}

        def handler(request):
            if request.url.path == "/v1/oauth2/token":
                seen["token_calls"] += 1
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
            seen["auth"].append(request.headers["Authorization"])
            return httpx.Response(201, json={
                "id": "I-1",
                "links": [{"rel": "approve", "href": "https://paypal.test/approve/I-1"}],
            })

        client = self.make_client(handler)
        first = client.create_subscription("P-PRO", "a@example.com", "https://app/ok", "https://app/cancel")
        client.create_subscription("P-PRO", None, "https://app/ok", "https://app/cancel")

        assert approval_url(first) == "https://paypal.test/approve/I-1"
        assert seen["token_calls"] == 1
        assert seen["auth"] == ["Bearer tok", "Bearer tok"]

    def test_no_content_response(self):
        def handler(request):
            if request.url.path == "/v1/oauth2/token":
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
            return httpx.Response(204)

        assert self.make_client(handler)._request("POST", "/v1/billing/subscriptions/I-1/cancel") == {}

    def test_error_status_is_raised(self):
        def handler(request):
            if request.url.path == "/v1/oauth2/token":
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
            return httpx.Response(404, json={"name": "RESOURCE_NOT_FOUND"})

        with pytest.raises(PayPalError) as exc:
            self.make_client(handler).get_subscription("I-404")
        assert exc.value.status_code == 404

    def test_missing_credentials(self):
        client = PayPalClient("", "", "https://paypal.test", MagicMock())
        assert not client.configured
        with pytest.raises(PayPalError, match="not configured"):
            client.get_access_token()

    def test_webhook_signature(self):
        def handler(request):
            if request.url.path == "/v1/oauth2/token":
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
            return httpx.Response(200, json={"verification_status": "SUCCESS"})

        client = self.make_client(handler)
        assert client.verify_webhook_signature(WEBHOOK_HEADERS, {"id": "WH-1"}, "WH-ID")

        partial = dict(WEBHOOK_HEADERS)
        del partial["paypal-transmission-sig"]
        assert not client.verify_webhook_signature(partial, {"id": "WH-1"}, "WH-ID")


# =============================================================================
# Helpers
# =============================================================================

class TestSubscriptionHelpers:
    """Status and plan mapping"""

    def test_map_paypal_status(self):
        assert map_paypal_status("ACTIVE") == "active"
        assert map_paypal_status("approval_pending") == "trialing"
        assert map_paypal_status(None) == "active"

    def test_plan_for_paypal_id(self, paypal_plans):
        assert plan_for_paypal_id("P-PREMIUM") == "premium"
        assert plan_for_paypal_id("P-UNKNOWN") == "pro"
        assert plan_for_paypal_id(None) == "pro"

    def test_default_subscription_is_free(self):
        subscription = default_subscription("user-1")
        assert subscription["plan"] == "free"
        assert subscription["status"] == "active"


# =============================================================================
# SubscriptionService
# =============================================================================

class TestSubscriptionService:
    """Create, cancel, reactivate and change plan"""

    def test_current_without_row_is_free(self, service):
        result = service.get_current("user-1")
        assert result["subscription"]["plan"] == "free"
        assert result["limits"]["tournaments"] == 10
        assert result["limits"]["analytics"] is False

    def test_create_rejects_free_plan(self, service):
        with pytest.raises(HTTPException) as exc:
            service.create({"id": "user-1"}, "free")
        assert exc.value.status_code == 400

    def test_create_requires_configured_plan(self, service, monkeypatch):
        monkeypatch.setattr(settings, "paypal_pro_plan_id", None)
        with pytest.raises(HTTPException) as exc:
            service.create({"id": "user-1"}, "pro")
        assert exc.value.detail == "Plan not configured"

    def test_create_returns_approval_url(self, service, paypal, paypal_plans):
        paypal.create_subscription.return_value = {
            "id": "I-1",
            "links": [{"rel": "approve", "href": "https://paypal.test/approve"}],
        }
        result = service.create({"id": "user-1", "email": "a@example.com"}, "pro")

        assert result == {"subscription_id": "I-1", "approval_url": "https://paypal.test/approve"}
        assert paypal.create_subscription.call_args.args[:2] == ("P-PRO", "a@example.com")

    def test_create_without_approval_link(self, service, paypal, paypal_plans):
        paypal.create_subscription.return_value = {"id": "I-1", "links": []}
        with pytest.raises(HTTPException) as exc:
            service.create({"id": "user-1"}, "pro")
        assert exc.value.detail == "No approval URL returned"

    def test_cancel_without_subscription(self, service):
        with pytest.raises(HTTPException) as exc:
            service.cancel("user-1")
        assert exc.value.status_code == 404

    def test_cancel_already_cancelled(self, service, fake_db):
        fake_db.queue("subscription", [{"status": "cancelled", "paypal_subscription_id": "I-1"}])
        with pytest.raises(HTTPException) as exc:
            service.cancel("user-1")
        assert exc.value.detail == "Subscription is already cancelled"

    def test_cancel_at_period_end(self, service, fake_db, paypal):
        fake_db.queue("subscription", [{
            "status": "active",
            "paypal_subscription_id": "I-1",
            "current_period_end": "2026-11-01T00:00:00",
        }])
        result = service.cancel("user-1")

        paypal.cancel_subscription.assert_called_once_with("I-1")
        assert result == {"cancel_at_period_end": True, "period_end": "2026-11-01T00:00:00"}
        update = fake_db.called("subscription", "update")[0][0]
        assert update["cancel_at_period_end"] is True
        assert update["canceled_at"]

    def test_cancel_paypal_failure(self, service, fake_db, paypal):
        fake_db.queue("subscription", [{"status": "active", "paypal_subscription_id": "I-1"}])
        paypal.cancel_subscription.side_effect = PayPalError("boom", 500)
        with pytest.raises(HTTPException) as exc:
            service.cancel("user-1")
        assert exc.value.status_code == 500
        assert fake_db.called("subscription", "update") == []

    def test_reactivate_requires_pending_cancellation(self, service, fake_db):
        fake_db.queue("subscription", [{"status": "active", "cancel_at_period_end": False}])
        with pytest.raises(HTTPException) as exc:
            service.reactivate("user-1")
        assert exc.value.detail == "Subscription is not set for cancellation"

    def test_reactivate_ended_subscription(self, service, fake_db):
        fake_db.queue("subscription", [{"status": "expired", "cancel_at_period_end": True}])
        with pytest.raises(HTTPException) as exc:
            service.reactivate("user-1")
        assert exc.value.detail.startswith("Subscription has already ended")

    def test_reactivate(self, service, fake_db, paypal):
        fake_db.queue("subscription", [{
            "status": "active",
            "cancel_at_period_end": True,
            "paypal_subscription_id": "I-1",
            "current_period_end": "2026-11-01T00:00:00",
        }])
        result = service.reactivate("user-1")

        paypal.activate_subscription.assert_called_once_with("I-1")
        assert result["status"] == "active"
        assert fake_db.called("subscription", "update")[0][0]["cancel_at_period_end"] is False

    def test_upgrade_applies_immediately(self, service, fake_db, paypal, paypal_plans):
        fake_db.queue("subscription", [{"status": "active", "plan": "pro", "paypal_subscription_id": "I-1"}])
        paypal.revise_subscription.return_value = {"links": []}
        result = service.change_plan("user-1", "premium")

        assert result["is_upgrade"] is True
        assert result["effective"] == "immediately"
        assert fake_db.called("subscription", "update")[0][0]["plan"] == "premium"
        assert fake_db.called("user_profile", "update") == [({"current_plan": "premium"},)]

    def test_downgrade_waits_for_period_end(self, service, fake_db, paypal, paypal_plans):
        fake_db.queue("subscription", [{
            "status": "active",
            "plan": "premium",
            "paypal_subscription_id": "I-1",
            "current_period_end": "2026-11-01T00:00:00",
        }])
        paypal.revise_subscription.return_value = {}
        result = service.change_plan("user-1", "pro")

        assert result["is_upgrade"] is False
        assert result["effective"] == "2026-11-01T00:00:00"
        update = fake_db.called("subscription", "update")[0][0]
        assert update["pending_plan"] == "pro"
        assert "plan" not in update
        assert fake_db.called("user_profile", "update") == []

    def test_change_to_same_plan(self, service, fake_db, paypal_plans):
        fake_db.queue("subscription", [{"status": "active", "plan": "pro", "paypal_subscription_id": "I-1"}])
        with pytest.raises(HTTPException) as exc:
            service.change_plan("user-1", "pro")
        assert exc.value.detail == "Already on pro plan"

    def test_sync_all(self, service, fake_db, paypal):
        fake_db.queue("subscription", [
            {"id": "s1", "user_id": "u1", "paypal_subscription_id": "I-1", "status": "active"},
            {"id": "s2", "user_id": "u2", "paypal_subscription_id": "I-2", "status": "active"},
            {"id": "s3", "user_id": "u3", "paypal_subscription_id": "I-3", "status": "active"},
        ])
        paypal.get_subscription.side_effect = [
            {"id": "I-1", "status": "SUSPENDED"},
            PayPalError("gone", 404),
            PayPalError("boom", 500),
        ]
        result = service.sync_all()

        assert result == {"checked": 1, "updated": 1, "expired": 1, "errors": ["s3"]}
        assert fake_db.called("subscription", "upsert")[0][0]["status"] == "suspended"


# =============================================================================
# Webhooks
# =============================================================================

class TestWebhookHandling:
    """PayPal event dispatch"""

    def test_activation_upserts_subscription(self, service, fake_db, paypal_plans):
        fake_db.queue("user_profile", [{"id": "user-1"}])
        service.handle_webhook({
            "event_type": "BILLING.SUBSCRIPTION.ACTIVATED",
            "resource": {
                "id": "I-1",
                "plan_id": "P-PRO",
                "status": "ACTIVE",
                "subscriber": {"email_address": "a@example.com"},
                "billing_info": {
                    "next_billing_time": "2026-11-01T00:00:00Z",
                    "last_payment": {"amount": {"value": "9.99", "currency_code": "EUR"}},
                },
            },
        })

        row, = fake_db.called("subscription", "upsert")[0]
        assert row["user_id"] == "user-1"
        assert row["plan"] == "pro"
        assert row["status"] == "active"
        assert row["amount"] == 999
        assert fake_db.called("user_profile", "update") == [({"current_plan": "pro"},)]

    def test_activation_for_unknown_subscriber_is_ignored(self, service, fake_db):
        service.handle_webhook({
            "event_type": "BILLING.SUBSCRIPTION.ACTIVATED",
            "resource": {"id": "I-1", "subscriber": {"email_address": "ghost@example.com"}},
        })
        assert fake_db.called("subscription", "upsert") == []

    def test_cancellation_resets_plan(self, service, fake_db):
        fake_db.queue("subscription", [{"user_id": "user-1"}])
        service.handle_webhook({"event_type": "BILLING.SUBSCRIPTION.CANCELLED", "resource": {"id": "I-1"}})

        assert fake_db.called("subscription", "update")[0][0]["status"] == "cancelled"
        assert fake_db.called("user_profile", "update") == [({"current_plan": "free"},)]

    def test_payment_completed_is_recorded(self, service, fake_db):
        fake_db.queue("subscription", [{"user_id": "user-1"}])
        service.handle_webhook({
            "event_type": "PAYMENT.SALE.COMPLETED",
            "resource": {"id": "PAY-1", "billing_agreement_id": "I-1", "amount": {"total": "9.99", "currency": "EUR"}},
        })
        payment, = fake_db.called("payment_history", "insert")[0]
        assert payment["user_id"] == "user-1"
        assert payment["amount"] == "9.99"

    def test_denied_payment_marks_past_due(self, service, fake_db):
        fake_db.queue("subscription", [{"user_id": "user-1"}])
        service.handle_webhook({"event_type": "PAYMENT.SALE.DENIED", "resource": {"billing_agreement_id": "I-1"}})
        assert fake_db.called("subscription", "update")[0][0]["status"] == "past_due"

    def test_verification_without_webhook_id(self, service, monkeypatch):
        monkeypatch.setattr(settings, "paypal_webhook_id", None)
        monkeypatch.setattr(settings, "environment", "development")
        assert service.verify_webhook({}, {})
        monkeypatch.setattr(settings, "environment", "production")
        assert not service.verify_webhook({}, {})

    def test_route_rejects_bad_signature(self, client):
        webhook_service = MagicMock()
        webhook_service.verify_webhook.return_value = False
        app.dependency_overrides[get_webhook_service] = lambda: webhook_service

        response = client.post("/api/v1/paypal/webhook", json={"event_type": "PAYMENT.SALE.COMPLETED"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid webhook signature"}
        webhook_service.handle_webhook.assert_not_called()

    def test_route_acknowledges_event(self, client):
        webhook_service = MagicMock()
        webhook_service.verify_webhook.return_value = True
        app.dependency_overrides[get_webhook_service] = lambda: webhook_service

        event = {"event_type": "BILLING.SUBSCRIPTION.ACTIVATED", "resource": {}}
        response = client.post("/api/v1/paypal/webhook", json=event)
        assert response.status_code == 200
        assert response.json() == {"received": True}
        webhook_service.handle_webhook.assert_called_once_with(event)

    def test_route_rejects_invalid_json(self, client):
        app.dependency_overrides[get_webhook_service] = lambda: MagicMock()
        response = client.post(
            "/api/v1/paypal/webhook", content="not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400


# =============================================================================
# Usage limits
# =============================================================================

class TestUsageLimiter:
    """Monthly quotas per plan"""

    def test_free_plan_quota_exhausted(self, fake_db):
        fake_db.queue("subscription", []).queue("usage_log", [], count=10)
        with pytest.raises(ApiError) as exc:
            UsageLimiter(fake_db).enforce("user-1", "tournament_created")

        assert exc.value.status_code == 403
        assert exc.value.details["limit"] == 10
        assert exc.value.details["remaining"] == 0
        assert exc.value.details["upgrade_url"] == "/pricing"

    def test_under_quota(self, fake_db):
        fake_db.queue("subscription", [{"plan": "pro", "status": "active"}]).queue("usage_log", [], count=3)
        check = UsageLimiter(fake_db).enforce("user-1", "booking_created")
        assert check["allowed"]
        assert check["remaining"] == 7

    def test_unlimited_plan_skips_counting(self, fake_db):
        fake_db.queue("subscription", [{"plan": "premium", "status": "active"}])
        check = UsageLimiter(fake_db).check_usage_limit("user-1", "tournament_created")
        assert check["allowed"]
        assert check["limit"] == -1
        assert fake_db.called("usage_log", "select") == []

    def test_inactive_subscription_blocks(self, fake_db):
        fake_db.queue("subscription", [{"plan": "pro", "status": "past_due"}])
        check = UsageLimiter(fake_db).check_usage_limit("user-1", "tournament_created")
        assert not check["allowed"]
        assert "not active" in check["error"]

    def test_increment_usage(self, fake_db):
        UsageLimiter(fake_db).increment_usage("user-1", "recommendation_created", {"count": 5})
        row, = fake_db.called("usage_log", "insert")[0]
        assert row["feature"] == "recommendation_created"
        assert row["metadata"] == {"count": 5}


class TestPlanSeeding:
    """subscription_plan rows mirror the plans config"""

    def test_existing_plans_are_updated(self, fake_db):
        plans = PLAN_MATRIX["plans"]
        fake_db.queue("subscription_plan", [{"name": plans[0]["name"]}])

        result = seed_plans(fake_db)

        assert result == {"created": len(plans) - 1, "updated": 1}
        inserted = [args[0]["name"] for args in fake_db.called("subscription_plan", "insert")]
        assert inserted == [plan["name"] for plan in plans[1:]]
        assert "pro" in inserted
