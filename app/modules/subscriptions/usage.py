"""
Monthly usage quotas.

Each use of a metered feature writes a usage_log row; the quota is the
number of rows since the first day of the current month (UTC).
"""

from supabase import Client
from app.config.plans_config import FEATURE_LIMIT_KEYS, UNLIMITED, USAGE_LIMITS
from app.core.responses import ApiError
from datetime import datetime
from typing import Optional
import logging

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("active", "trialing")
UPGRADE_URL = "/pricing"


def month_start(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class UsageLimiter:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_subscription(self, user_id: str) -> dict:
        result = self.supabase.table("subscription")\
            .select("plan, status")\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        # No row means the default free plan
        return result.data[0] if result.data else {"plan": "free", "status": "active"}

    def _count_usage(self, user_id: str, feature: str) -> int:
        result = self.supabase.table("usage_log")\
            .select("id", count="exact")\
            .eq("user_id", user_id)\
            .eq("feature", feature)\
            .gte("timestamp", month_start().isoformat())\
            .execute()
        return result.count or 0

    def check_usage_limit(self, user_id: str, feature: str) -> dict:
        """{allowed, remaining, limit, current, plan, error?}. A limit of -1 means unlimited."""
        subscription = self._get_subscription(user_id)
        plan = subscription.get("plan") or "free"
        if subscription.get("status") not in ACTIVE_STATUSES:
            return {
                "allowed": False,
                "remaining": 0,
                "limit": 0,
                "current": 0,
                "plan": plan,
                "error": "Subscription is not active. Please update your payment method.",
            }

        quota_key = FEATURE_LIMIT_KEYS.get(feature)
        limits = USAGE_LIMITS.get(plan, USAGE_LIMITS["free"])
        limit = limits.get(quota_key, 0) if quota_key else UNLIMITED
        if limit == UNLIMITED:
            return {"allowed": True, "remaining": UNLIMITED, "limit": UNLIMITED, "current": 0, "plan": plan}

        current = self._count_usage(user_id, feature)
        result = {
            "allowed": current < limit,
            "remaining": max(limit - current, 0),
            "limit": limit,
            "current": current,
            "plan": plan,
        }
        if not result["allowed"]:
            result["error"] = f"You've reached your limit of {limit} {quota_key} for the {plan} plan. Upgrade to continue."
        return result

    def enforce(self, user_id: str, feature: str) -> dict:
        """Raise 403 with upgrade details when the feature quota is used up"""
        try:
            check = self.check_usage_limit(user_id, feature)
        except Exception as e:
            logger.error(f"Error checking usage limit for {user_id}/{feature}: {e}")
            raise ApiError(500, "Unable to verify your subscription status")
        if not check["allowed"]:
            logger.warning(f"Usage limit exceeded for {user_id}: {feature} ({check['current']}/{check['limit']})")
            raise ApiError(403, check["error"], {
                "remaining": check["remaining"],
                "limit": check["limit"],
                "current": check["current"],
                "upgrade_url": UPGRADE_URL,
            })
        return check

    def increment_usage(self, user_id: str, feature: str, metadata: Optional[dict] = None) -> None:
        """Log one use; failures are logged, never raised"""
        try:
            self.supabase.table("usage_log").insert({
                "user_id": user_id,
                "feature": feature,
                "action": "create",
                "metadata": metadata or {},
                "timestamp": datetime.utcnow().isoformat(),
            }).execute()
        except Exception as e:
            logger.error(f"Failed to record usage {feature} for {user_id}: {e}")

    def get_usage_stats(self, user_id: str) -> dict:
        subscription = self._get_subscription(user_id)
        stats = {}
        for feature, quota_key in FEATURE_LIMIT_KEYS.items():
            check = self.check_usage_limit(user_id, feature)
            stats[quota_key] = {
                "used": check["current"],
                "limit": check["limit"],
                "remaining": check["remaining"],
            }
        return {
            "plan": subscription.get("plan") or "free",
            "status": subscription.get("status") or "active",
            "period_start": month_start().isoformat(),
            "usage": stats,
        }
