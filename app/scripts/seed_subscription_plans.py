"""
Seed Subscription Plans Script
This script populates the subscription_plan table from the plans config.
Run it after changing quotas or feature flags in app/config/plans_config.py.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.config.plans_config import PLAN_MATRIX
from app.database.supabase_client import get_service_supabase
from supabase import Client
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_plans(supabase: Client) -> dict:
    """Create or update one subscription_plan row per configured plan"""
    logger.info("Seeding subscription plans...")

    created_count = 0
    updated_count = 0

    for plan in PLAN_MATRIX["plans"]:
        row = {
            "description": plan["description"],
            "paid": plan["paid"],
            "limits": plan["limits"],
            "features": plan["features"],
        }
        try:
            existing = supabase.table("subscription_plan")\
                .select("name")\
                .eq("name", plan["name"])\
                .execute()

            if existing.data:
                supabase.table("subscription_plan")\
                    .update(row)\
                    .eq("name", plan["name"])\
                    .execute()
                updated_count += 1
                logger.debug(f"Updated plan: {plan['name']}")
            else:
                supabase.table("subscription_plan").insert({"name": plan["name"], **row}).execute()
                created_count += 1
                logger.debug(f"Created plan: {plan['name']}")
        except Exception as e:
            logger.error(f"Error processing plan {plan['name']}: {e}")

    logger.info(f"Plans seeded: {created_count} created, {updated_count} updated")
    return {"created": created_count, "updated": updated_count}


def main():
    try:
        supabase = get_service_supabase()
        result = seed_plans(supabase)
        logger.info(f"Seeding completed: {result['created'] + result['updated']} plans processed")
    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
