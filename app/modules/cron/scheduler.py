import asyncio
import logging
from app.config.settings import settings
from app.database.supabase_client import get_service_supabase
from app.modules.cron import jobs

logger = logging.getLogger(__name__)


async def run_scheduled_jobs():
    """One pass of the periodic jobs; a failing job does not stop the next one"""
    supabase = get_service_supabase()
    for name, job in (("leaderboards", jobs.update_leaderboards), ("check-in reminders", jobs.send_checkin_reminders)):
        try:
            # Jobs use the blocking Supabase client, keep them off the event loop
            await asyncio.to_thread(job, supabase)
        except Exception as e:
            logger.error(f"Scheduled job {name} failed: {str(e)}")


async def scheduler_loop(interval_seconds: int = None):
    """Background task that runs the periodic jobs until cancelled"""
    interval = interval_seconds or settings.scheduler_interval_seconds
    logger.info(f"Scheduler started, running every {interval}s")
    while True:
        try:
            await run_scheduled_jobs()
        except Exception as e:
            logger.error(f"Error in scheduler loop: {str(e)}")

        await asyncio.sleep(interval)
