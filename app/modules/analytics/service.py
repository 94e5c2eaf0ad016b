from supabase import Client
from app.modules.analytics.schemas import TrackEventRequest
from app.modules.analytics.stats import compute_player_stats, evolution_series, period_window
from typing import Dict, List, Optional
from fastapi import HTTPException
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

PLAYER_SLOTS = ("team1_player1_id", "team1_player2_id", "team2_player1_id", "team2_player2_id")


class AnalyticsService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def track_event(self, event: TrackEventRequest) -> None:
        if not event.event_name or not event.session_id:
            raise HTTPException(status_code=400, detail="Missing required fields: event_name, session_id")
        try:
            self.supabase.table("analytics_event").insert({
                **event.model_dump(),
                "created_at": datetime.utcnow().isoformat(),
            }).execute()
        except Exception as e:
            logger.error(f"Error tracking event {event.event_name}: {e}")
            raise HTTPException(status_code=500, detail="Failed to track event")

    def get_player_stats(self, user_id: str, period: str = "all_time") -> Optional[dict]:
        try:
            result = self.supabase.table("player_stats")\
                .select("*")\
                .eq("user_id", user_id)\
                .eq("period_type", period)\
                .order("period_start", desc=True)\
                .limit(1)\
                .execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error fetching player stats for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch player stats")

    def get_stats_evolution(self, user_id: str, period: str = "week", limit: int = 12) -> List[dict]:
        try:
            result = self.supabase.table("player_stats")\
                .select("period_start, win_rate, elo_rating, total_matches")\
                .eq("user_id", user_id)\
                .eq("period_type", period)\
                .order("period_start", desc=True)\
                .limit(limit)\
                .execute()
            return evolution_series(result.data or [])
        except Exception as e:
            logger.error(f"Error fetching stats evolution for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch stats evolution")

    def compare_players(self, user_a: str, user_b: str, period: str = "all_time") -> Dict:
        return {
            "user_a": self.get_player_stats(user_a, period),
            "user_b": self.get_player_stats(user_b, period),
        }

    def get_top_performers(self, metric: str = "elo_rating", limit: int = 100) -> List[dict]:
        try:
            result = self.supabase.table("player_stats")\
                .select("*, user_profile(username, name, avatar_url)")\
                .eq("period_type", "all_time")\
                .order(metric, desc=True)\
                .limit(limit)\
                .execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Error fetching top performers by {metric}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch top performers")

    def _completed_matches(self, user_id: str, start: datetime, end: datetime) -> List[dict]:
        player_filter = ",".join(f"{slot}.eq.{user_id}" for slot in PLAYER_SLOTS)
        result = self.supabase.table("tournament_match")\
            .select("*")\
            .or_(player_filter)\
            .eq("status", "completed")\
            .gte("completed_at", start.isoformat())\
            .lte("completed_at", end.isoformat())\
            .order("completed_at")\
            .execute()
        return result.data or []

    def _tournament_counts(self, user_id: str) -> Dict[str, int]:
        played = self.supabase.table("tournament_participant")\
            .select("id", count="exact")\
            .eq("user_id", user_id)\
            .eq("status", "checked_in")\
            .execute()
        won = self.supabase.table("tournament_standing")\
            .select("tournament_id, tournament!inner(status)", count="exact")\
            .eq("user_id", user_id)\
            .eq("rank", 1)\
            .eq("tournament.status", "completed")\
            .execute()
        fair_play = self.supabase.table("tournament_standing")\
            .select("fair_play_points")\
            .eq("user_id", user_id)\
            .execute()
        return {
            "tournaments_played": played.count or 0,
            "tournaments_won": won.count or 0,
            "fair_play_score": sum(row.get("fair_play_points") or 0 for row in fair_play.data or []),
        }

    def calculate_player_stats(self, user_id: str, period: str, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
        """Recompute one player's stats for a period and upsert them"""
        if start is None or end is None:
            start, end = period_window(period)
        try:
            stats = compute_player_stats(user_id, self._completed_matches(user_id, start, end))
            stats.update(self._tournament_counts(user_id))

            profile = self.supabase.table("user_profile")\
                .select("level, followers_count, following_count")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
            profile_row = profile.data[0] if profile.data else {}

            period_start = start.date().isoformat()
            previous = self.supabase.table("player_stats")\
                .select("elo_rating")\
                .eq("user_id", user_id)\
                .eq("period_type", period)\
                .eq("period_start", period_start)\
                .limit(1)\
                .execute()
            previous_elo = previous.data[0].get("elo_rating") if previous.data else None

            row = {
                "user_id": user_id,
                "period_type": period,
                "period_start": period_start,
                "period_end": end.date().isoformat(),
                **stats,
                "elo_change": stats["elo_rating"] - previous_elo if previous_elo is not None else 0,
                "connections_count": (profile_row.get("followers_count") or 0) + (profile_row.get("following_count") or 0),
                "skill_level": str(profile_row["level"]) if profile_row.get("level") is not None else "beginner",
                "calculated_at": datetime.utcnow().isoformat(),
            }
            self.supabase.table("player_stats")\
                .upsert(row, on_conflict="user_id,period_type,period_start")\
                .execute()
            return row
        except Exception as e:
            logger.error(f"Error calculating {period} stats for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to calculate player stats")
