from fastapi import APIRouter, Depends, HTTPException, Request
from app.database.supabase_client import get_service_supabase, get_supabase
from app.modules.subscriptions.schemas import ChangePlanRequest, CreateSubscriptionRequest
from app.modules.subscriptions.service import SubscriptionService
from app.modules.subscriptions.paypal_client import PayPalClient, get_paypal_client
from app.modules.subscriptions.usage import UsageLimiter
from app.core.dependencies import get_current_user_id
from app.core.responses import success_response
from supabase import Client
from typing import Dict
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["subscriptions"])


def get_subscription_service(
    supabase: Client = Depends(get_supabase),
    paypal: PayPalClient = Depends(get_paypal_client)
) -> SubscriptionService:
    return SubscriptionService(supabase, paypal)


def get_webhook_service(
    supabase: Client = Depends(get_service_supabase),
    paypal: PayPalClient = Depends(get_paypal_client)
) -> SubscriptionService:
    return SubscriptionService(supabase, paypal)


@router.get("/subscriptions/current")
async def get_current_subscription(
    current_user: Dict = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service)
):
    return success_response(service.get_current(current_user["id"]))


@router.post("/subscriptions/create")
async def create_subscription(
    request: CreateSubscriptionRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service)
):
    return success_response(service.create(current_user, request.plan_id))


@router.post("/subscriptions/cancel")
async def cancel_subscription(
    current_user: Dict = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service)
):
    return success_response(service.cancel(current_user["id"]), "Subscription cancelled successfully")


@router.post("/subscriptions/reactivate")
async def reactivate_subscription(
    current_user: Dict = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service)
):
    return success_response(service.reactivate(current_user["id"]), "Subscription reactivated successfully")


@router.post("/subscriptions/change-plan")
async def change_plan(
    request: ChangePlanRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service)
):
    return success_response(service.change_plan(current_user["id"], request.plan_id), "Plan changed successfully")


@router.post("/paypal/webhook")
async def paypal_webhook(
    request: Request,
    service: SubscriptionService = Depends(get_webhook_service)
):
    """PayPal event notifications; authenticated by PayPal's signature, not a user token"""
    try:
        event = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid webhook payload")

    if not service.verify_webhook(dict(request.headers), event):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        service.handle_webhook(event)
    except Exception as e:
        logger.error(f"Error processing PayPal webhook {event.get('event_type')}: {e}")
        raise HTTPException(status_code=500, detail="Webhook processing failed")
    return {"received": True}


@router.get("/usage/stats")
async def get_usage_stats(
    current_user: Dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase)
):
    try:
        stats = UsageLimiter(supabase).get_usage_stats(current_user["id"])
    except Exception as e:
        logger.error(f"Error fetching usage stats for {current_user['id']}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch usage stats")
    return success_response(stats)
