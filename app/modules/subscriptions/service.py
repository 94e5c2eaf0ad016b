from supabase import Client
from app.config.plans_config import PAID_PLANS, get_plan_limits
from app.config.settings import settings
from app.modules.subscriptions.paypal_client import PayPalClient, PayPalError, approval_url
from typing import Dict, Optional
from fastapi import HTTPException
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

PAYPAL_STATUSES = {
    "ACTIVE": "active",
    "CANCELLED": "cancelled",
    "SUSPENDED": "suspended",
    "EXPIRED": "expired",
    "APPROVAL_PENDING": "trialing",
    "APPROVED": "trialing",
}

PLAN_TIERS = {"free": 0, "pro": 1, "dual": 2, "premium": 3, "club": 4}

SYNCABLE_STATUSES = ["active", "suspended", "past_due", "trialing"]


def default_subscription(user_id: str) -> dict:
    return {
        "id": None,
        "user_id": user_id,
        "paypal_subscription_id": None,
        "paypal_plan_id": None,
        "plan": "free",
        "status": "active",
        "current_period_start": None,
        "current_period_end": None,
        "cancel_at_period_end": False,
        "canceled_at": None,
        "amount": None,
        "currency": "EUR",
        "interval": None,
    }


def plan_for_paypal_id(paypal_plan_id: Optional[str]) -> str:
    """Internal plan name for a PayPal plan id; unknown ids count as pro"""
    for plan in PAID_PLANS:
        if paypal_plan_id and settings.get_paypal_plan_id(plan) == paypal_plan_id:
            return plan
    return "pro"


def map_paypal_status(status: Optional[str]) -> str:
    return PAYPAL_STATUSES.get((status or "").upper(), "active")


class SubscriptionService:
    def __init__(self, supabase: Client, paypal: Optional[PayPalClient] = None):
        self.supabase = supabase
        self.paypal = paypal or PayPalClient()

    def _find(self, user_id: str) -> Optional[dict]:
        result = self.supabase.table("subscription")\
            .select("*")\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def _update(self, user_id: str, update: dict) -> None:
        update["updated_at"] = datetime.utcnow().isoformat()
        self.supabase.table("subscription")\
            .update(update)\
            .eq("user_id", user_id)\
            .execute()

    def _set_profile_plan(self, user_id: str, plan: str) -> None:
        try:
            self.supabase.table("user_profile")\
                .update({"current_plan": plan})\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to update profile plan for {user_id}: {e}")

    def get_current(self, user_id: str) -> Dict:
        try:
            subscription = self._find(user_id) or default_subscription(user_id)
        except Exception as e:
            logger.error(f"Error fetching subscription for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch subscription")
        return {"subscription": subscription, "limits": get_plan_limits(subscription.get("plan") or "free")}

    def create(self, user_data: dict, plan: str) -> Dict:
        if plan not in PAID_PLANS:
            raise HTTPException(status_code=400, detail="Invalid plan")
        paypal_plan_id = settings.get_paypal_plan_id(plan)
        if not paypal_plan_id:
            raise HTTPException(status_code=500, detail="Plan not configured")

        try:
            created = self.paypal.create_subscription(
                paypal_plan_id,
                user_data.get("email"),
                return_url=f"{settings.app_url}/account/billing?success=true",
                cancel_url=f"{settings.app_url}/pricing?cancelled=true",
            )
        except PayPalError as e:
            logger.error(f"PayPal subscription creation failed for {user_data['id']}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create subscription")

        url = approval_url(created)
        if not url:
            raise HTTPException(status_code=500, detail="No approval URL returned")
        logger.info(f"PayPal subscription {created.get('id')} created for {user_data['id']} ({plan})")
        return {"subscription_id": created.get("id"), "approval_url": url}

    def cancel(self, user_id: str) -> Dict:
        subscription = self._find(user_id)
        if not subscription:
            raise HTTPException(status_code=404, detail="No active subscription found")
        if subscription.get("status") in ("cancelled", "expired"):
            raise HTTPException(status_code=400, detail="Subscription is already cancelled")
        if not subscription.get("paypal_subscription_id"):
            raise HTTPException(status_code=400, detail="No PayPal subscription ID found")

        try:
            self.paypal.cancel_subscription(subscription["paypal_subscription_id"])
        except PayPalError as e:
            logger.error(f"PayPal cancellation failed for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to cancel subscription with PayPal")

        try:
            self._update(user_id, {"cancel_at_period_end": True, "canceled_at": datetime.utcnow().isoformat()})
        except Exception as e:
            logger.error(f"Failed to update subscription for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update subscription")
        logger.info(f"Subscription cancellation requested by {user_id}")
        return {"cancel_at_period_end": True, "period_end": subscription.get("current_period_end")}

    def reactivate(self, user_id: str) -> Dict:
        subscription = self._find(user_id)
        if not subscription:
            raise HTTPException(status_code=404, detail="No subscription found")
        status = subscription.get("status")
        pending_cancel = subscription.get("cancel_at_period_end") and status == "active"
        if not pending_cancel and status != "suspended":
            if status in ("cancelled", "expired"):
                raise HTTPException(status_code=400, detail="Subscription has already ended. Please subscribe again.")
            raise HTTPException(status_code=400, detail="Subscription is not set for cancellation")
        if not subscription.get("paypal_subscription_id"):
            raise HTTPException(status_code=400, detail="No PayPal subscription ID found")

        try:
            self.paypal.activate_subscription(subscription["paypal_subscription_id"])
        except PayPalError as e:
            logger.error(f"PayPal reactivation failed for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to reactivate subscription with PayPal")

        try:
            self._update(user_id, {"cancel_at_period_end": False, "canceled_at": None, "status": "active"})
        except Exception as e:
            logger.error(f"Failed to update subscription for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update subscription")
        logger.info(f"Subscription reactivated by {user_id}")
        return {"status": "active", "next_billing_date": subscription.get("current_period_end")}

    def change_plan(self, user_id: str, plan: str) -> Dict:
        if plan not in PAID_PLANS:
            raise HTTPException(status_code=400, detail="Invalid plan. Must be: pro, dual, premium, or club")
        paypal_plan_id = settings.get_paypal_plan_id(plan)
        if not paypal_plan_id:
            raise HTTPException(status_code=500, detail="Plan not configured")

        subscription = self._find(user_id)
        if not subscription:
            raise HTTPException(status_code=404, detail="No active subscription found. Please subscribe first.")
        if subscription.get("status") != "active":
            raise HTTPException(status_code=400, detail=f"Cannot change plan. Subscription status is: {subscription.get('status')}")
        if not subscription.get("paypal_subscription_id"):
            raise HTTPException(status_code=400, detail="No PayPal subscription ID found")
        if subscription.get("plan") == plan:
            raise HTTPException(status_code=400, detail=f"Already on {plan} plan")

        try:
            revision = self.paypal.revise_subscription(subscription["paypal_subscription_id"], paypal_plan_id)
        except PayPalError as e:
            logger.error(f"PayPal plan change failed for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to change plan with PayPal")

        # Upgrades apply now, downgrades at the end of the period
        is_upgrade = PLAN_TIERS.get(plan, 0) > PLAN_TIERS.get(subscription.get("plan"), 0)
        update = {"paypal_plan_id": paypal_plan_id}
        if is_upgrade:
            update["plan"] = plan
        else:
            update["pending_plan"] = plan
        try:
            self._update(user_id, update)
        except Exception as e:
            logger.error(f"Failed to update subscription plan for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update subscription")
        if is_upgrade:
            self._set_profile_plan(user_id, plan)

        logger.info(f"Plan change {subscription.get('plan')} -> {plan} for {user_id}")
        return {
            "old_plan": subscription.get("plan"),
            "new_plan": plan,
            "is_upgrade": is_upgrade,
            "effective": "immediately" if is_upgrade else subscription.get("current_period_end"),
            "approval_url": approval_url(revision),
        }

    def sync_from_paypal(self, user_id: str, resource: dict) -> dict:
        """Upsert the local subscription row from a PayPal subscription resource"""
        plan = plan_for_paypal_id(resource.get("plan_id"))
        billing = resource.get("billing_info") or {}
        last_payment = (billing.get("last_payment") or {}).get("amount") or {}
        row = {
            "user_id": user_id,
            "paypal_subscription_id": resource.get("id"),
            "paypal_plan_id": resource.get("plan_id"),
            "plan": plan,
            "status": map_paypal_status(resource.get("status")),
            "current_period_start": datetime.utcnow().isoformat(),
            "current_period_end": billing.get("next_billing_time"),
            "interval": "month",
            "updated_at": datetime.utcnow().isoformat(),
        }
        if last_payment.get("value") is not None:
            row["amount"] = int(round(float(last_payment["value"]) * 100))
            row["currency"] = last_payment.get("currency_code") or "EUR"
        self.supabase.table("subscription").upsert(row, on_conflict="user_id").execute()
        self._set_profile_plan(user_id, plan)
        return row

    def _subscription_owner(self, paypal_subscription_id: Optional[str]) -> Optional[str]:
        if not paypal_subscription_id:
            return None
        result = self.supabase.table("subscription")\
            .select("user_id")\
            .eq("paypal_subscription_id", paypal_subscription_id)\
            .limit(1)\
            .execute()
        return result.data[0]["user_id"] if result.data else None

    def verify_webhook(self, headers: Dict[str, str], event: dict) -> bool:
        webhook_id = settings.paypal_webhook_id
        if not webhook_id:
            if settings.is_production:
                logger.error("PAYPAL_WEBHOOK_ID is required in production")
                return False
            logger.warning("PAYPAL_WEBHOOK_ID not configured - skipping webhook verification")
            return True
        return self.paypal.verify_webhook_signature(headers, event, webhook_id)

    def handle_webhook(self, event: dict) -> None:
        event_type = event.get("event_type")
        resource = event.get("resource") or {}
        logger.info(f"PayPal webhook received: {event_type}")

        if event_type in ("BILLING.SUBSCRIPTION.ACTIVATED", "BILLING.SUBSCRIPTION.UPDATED"):
            self._on_subscription_activated(resource)
        elif event_type in ("BILLING.SUBSCRIPTION.CANCELLED", "BILLING.SUBSCRIPTION.SUSPENDED"):
            status = "cancelled" if event_type.endswith("CANCELLED") else "suspended"
            self._on_subscription_ended(resource, status)
        elif event_type == "PAYMENT.SALE.COMPLETED":
            self._on_payment_completed(resource)
        elif event_type in ("PAYMENT.SALE.DENIED", "PAYMENT.SALE.REFUNDED"):
            self._on_payment_failed(resource)
        else:
            logger.info(f"Unhandled PayPal event type: {event_type}")

    def _on_subscription_activated(self, resource: dict) -> None:
        email = (resource.get("subscriber") or {}).get("email_address")
        if not email:
            logger.error("No subscriber email in PayPal webhook")
            return
        profile = self.supabase.table("user_profile")\
            .select("id")\
            .eq("email", email)\
            .limit(1)\
            .execute()
        if not profile.data:
            logger.error(f"User not found for PayPal subscriber {email}")
            return
        user_id = profile.data[0]["id"]
        self.sync_from_paypal(user_id, resource)
        logger.info(f"Subscription {resource.get('id')} synced for {user_id}")

    def _on_subscription_ended(self, resource: dict, status: str) -> None:
        user_id = self._subscription_owner(resource.get("id"))
        if not user_id:
            logger.error(f"Subscription not found: {resource.get('id')}")
            return
        now = datetime.utcnow().isoformat()
        self.supabase.table("subscription")\
            .update({"status": status, "canceled_at": now, "updated_at": now})\
            .eq("paypal_subscription_id", resource["id"])\
            .execute()
        self._set_profile_plan(user_id, "free")
        logger.info(f"Subscription {resource['id']} {status} for {user_id}")

    def _on_payment_completed(self, resource: dict) -> None:
        subscription_id = resource.get("billing_agreement_id")
        amount = resource.get("amount") or {}
        self.supabase.table("payment_history").insert({
            "user_id": self._subscription_owner(subscription_id),
            "paypal_payment_id": resource.get("id"),
            "paypal_subscription_id": subscription_id,
            "amount": amount.get("total") or amount.get("value"),
            "currency": amount.get("currency") or amount.get("currency_code"),
            "status": "completed",
            "created_at": datetime.utcnow().isoformat(),
        }).execute()
        logger.info(f"Payment completed: {resource.get('id')}")

    def _on_payment_failed(self, resource: dict) -> None:
        subscription_id = resource.get("billing_agreement_id")
        if not subscription_id:
            logger.error("No billing_agreement_id in PayPal payment resource")
            return
        if not self._subscription_owner(subscription_id):
            return
        self.supabase.table("subscription")\
            .update({"status": "past_due", "updated_at": datetime.utcnow().isoformat()})\
            .eq("paypal_subscription_id", subscription_id)\
            .execute()
        logger.warning(f"Payment failed for subscription {subscription_id}")

    def sync_all(self) -> Dict:
        """Reconcile every live PayPal-backed subscription with PayPal's view of it"""
        subscriptions = self.supabase.table("subscription")\
            .select("*")\
            .not_.is_("paypal_subscription_id", "null")\
            .in_("status", SYNCABLE_STATUSES)\
            .execute()
        results = {"checked": 0, "updated": 0, "expired": 0, "errors": []}
        for subscription in subscriptions.data or []:
            try:
                remote = self.paypal.get_subscription(subscription["paypal_subscription_id"])
            except PayPalError as e:
                if e.status_code == 404:
                    self._update(subscription["user_id"], {"status": "expired"})
                    results["expired"] += 1
                    continue
                logger.error(f"Error syncing subscription {subscription['id']}: {e}")
                results["errors"].append(subscription["id"])
                continue
            results["checked"] += 1
            if map_paypal_status(remote.get("status")) != subscription.get("status"):
                logger.warning(
                    f"Subscription {subscription['id']} status drift: "
                    f"local {subscription.get('status')}, PayPal {remote.get('status')}"
                )
                self.sync_from_paypal(subscription["user_id"], remote)
                results["updated"] += 1
        return results
