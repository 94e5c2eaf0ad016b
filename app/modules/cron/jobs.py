"""
Periodic maintenance jobs.

Each job takes a Supabase client (normally the service-role one) so the
cron endpoints and the in-process scheduler run exactly the same code.
"""

import logging
import time
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from supabase import Client

from app.modules.analytics.service import AnalyticsService
from app.modules.leaderboards.service import LeaderboardService
from app.modules.notifications.tournament_notifications import TournamentNotifier
from app.modules.stories.service import StoryService
from app.modules.subscriptions.service import SubscriptionService

logger = logging.getLogger(__name__)

REMINDER_WINDOW = timedelta(hours=2)
STATS_LOOKBACK = timedelta(hours=24)
STATS_PERIODS = ("week", "month", "all_time")


def update_leaderboards(supabase: Client) -> Dict:
    started = time.monotonic()
    stored = LeaderboardService(supabase).precalculate_leaderboards()
    duration_ms = int((time.monotonic() - started) * 1000)
    logger.info(f"Leaderboards updated in {duration_ms}ms")
    return {"success": True, "snapshots": stored, "duration_ms": duration_ms}


def send_checkin_reminders(supabase: Client, notifier: Optional[TournamentNotifier] = None, now: Optional[datetime] = None) -> Dict:
    """Remind registered players of published tournaments whose check-in closes within two hours"""
    now = now or datetime.utcnow()
    tournaments = supabase.table("tournament")\
        .select("id, name, org_id, check_in_closes_at")\
        .eq("status", "published")\
        .gte("check_in_closes_at", now.isoformat())\
        .lte("check_in_closes_at", (now + REMINDER_WINDOW).isoformat())\
        .execute()
    tournaments = tournaments.data or []
    if not tournaments:
        return {"sent": 0, "tournaments": 0}

    notifier = notifier or TournamentNotifier(supabase)
    sent = 0
    for tournament in tournaments:
        participants = supabase.table("tournament_participant")\
            .select("user_id, profile:user_profile!user_id(id, name, email, phone, preferences)")\
            .eq("tournament_id", tournament["id"])\
            .eq("status", "registered")\
            .execute()
        for participant in participants.data or []:
            profile = participant.get("profile")
            if not profile:
                continue
            try:
                if notifier.checkin_reminder(tournament, profile):
                    sent += 1
            except Exception as e:
                logger.error(f"Failed to send check-in reminder to {profile.get('id')}: {e}")
    logger.info(f"Sent {sent} check-in reminders for {len(tournaments)} tournament(s)")
    return {"sent": sent, "tournaments": len(tournaments)}


def _recently_active_players(supabase: Client, since: datetime) -> List[str]:
    tournaments = supabase.table("tournament")\
        .select("id")\
        .in_("status", ["in_progress", "completed"])\
        .gte("updated_at", since.isoformat())\
        .execute()
    tournament_ids = [t["id"] for t in tournaments.data or []]
    if not tournament_ids:
        return []
    participants = supabase.table("tournament_participant")\
        .select("user_id")\
        .in_("tournament_id", tournament_ids)\
        .execute()
    return list(dict.fromkeys(p["user_id"] for p in participants.data or []))


def calculate_stats(supabase: Client, now: Optional[datetime] = None) -> Dict:
    """Recompute week/month/all-time stats for players active in the last day, then refresh leaderboards"""
    now = now or datetime.utcnow()
    started = time.monotonic()
    analytics = AnalyticsService(supabase)
    players = _recently_active_players(supabase, now - STATS_LOOKBACK)
    updated = 0
    errors = []
    for user_id in players:
        try:
            for period in STATS_PERIODS:
                analytics.calculate_player_stats(user_id, period)
            updated += 1
        except Exception as e:
            logger.error(f"Error calculating stats for {user_id}: {e}")
            errors.append(user_id)
    leaderboards = LeaderboardService(supabase).precalculate_leaderboards() if updated else 0
    duration_ms = int((time.monotonic() - started) * 1000)
    logger.info(f"Stats recalculated for {updated}/{len(players)} players in {duration_ms}ms")
    return {
        "success": True,
        "updated_players": updated,
        "leaderboards": leaderboards,
        "errors": errors,
        "duration_ms": duration_ms,
    }


def cleanup_stories(supabase: Client) -> Dict:
    return {"deleted": StoryService(supabase).cleanup_expired()}


def sync_subscriptions(supabase: Client, service: Optional[SubscriptionService] = None) -> Dict:
    started = time.monotonic()
    results = (service or SubscriptionService(supabase)).sync_all()
    results["duration_ms"] = int((time.monotonic() - started) * 1000)
    logger.info(f"Subscription sync: {results['checked']} checked, {results['updated']} updated, {results['expired']} expired")
    return results
