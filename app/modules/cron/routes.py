from fastapi import APIRouter, Depends, HTTPException
from app.database.supabase_client import get_service_supabase
from app.modules.cron import jobs
from app.core.dependencies import verify_cron_secret
from app.core.responses import success_response
from supabase import Client
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(verify_cron_secret)])


@router.get("/update-leaderboards")
async def update_leaderboards(supabase: Client = Depends(get_service_supabase)):
    try:
        return success_response(jobs.update_leaderboards(supabase))
    except Exception as e:
        logger.error(f"Leaderboard cron failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to update leaderboards")


@router.get("/check-in-reminders")
async def check_in_reminders(supabase: Client = Depends(get_service_supabase)):
    try:
        result = jobs.send_checkin_reminders(supabase)
    except Exception as e:
        logger.error(f"Check-in reminder cron failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to send check-in reminders")
    return success_response(result, f"Sent {result['sent']} check-in reminders")


@router.get("/calculate-stats")
async def calculate_stats(supabase: Client = Depends(get_service_supabase)):
    try:
        return success_response(jobs.calculate_stats(supabase))
    except Exception as e:
        logger.error(f"Stats cron failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to calculate stats")


@router.get("/cleanup-stories")
async def cleanup_stories(supabase: Client = Depends(get_service_supabase)):
    try:
        return success_response(jobs.cleanup_stories(supabase))
    except Exception as e:
        logger.error(f"Story cleanup cron failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to clean up stories")


@router.get("/sync-subscriptions")
async def sync_subscriptions(supabase: Client = Depends(get_service_supabase)):
    try:
        return success_response(jobs.sync_subscriptions(supabase))
    except Exception as e:
        logger.error(f"Subscription sync cron failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to sync subscriptions")
