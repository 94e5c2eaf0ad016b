from supabase import Client
from typing import Dict, List, Optional
from fastapi import HTTPException
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

METRIC_COLUMNS = {
    "elo_rating": "elo_rating",
    "win_rate": "win_rate",
    "tournaments_won": "tournaments_won",
    "win_streak": "current_win_streak",
    "connections_count": "connections_count",
    "cities_visited": "cities_visited",
    "fair_play_score": "fair_play_score",
}
PRECALCULATED_TYPES = ["global", "tournament_winners", "win_streak", "social_butterfly", "traveler", "fair_play"]
PRECALCULATED_METRICS = ["elo_rating", "win_rate", "tournaments_won", "win_streak"]
PERIODS = ["week", "month", "all_time"]
STATS_SELECT = (
    "user_id, elo_rating, elo_change, win_rate, tournaments_won, current_win_streak, "
    "connections_count, cities_visited, fair_play_score, "
    "user_profile!inner(username, name, avatar_url, city, level)"
)


def metric_value(row: dict, metric: str) -> float:
    value = row.get(METRIC_COLUMNS[metric])
    return value if isinstance(value, (int, float)) else 0


def build_entries(rows: List[dict], metric: str) -> List[dict]:
    entries = []
    for index, row in enumerate(rows):
        profile = row.get("user_profile") or {}
        if isinstance(profile, list):
            profile = profile[0] if profile else {}
        entries.append({
            "user_id": row["user_id"],
            "username": profile.get("username"),
            "avatar_url": profile.get("avatar_url"),
            "rank": index + 1,
            "value": metric_value(row, metric),
        })
    return entries


def apply_rank_changes(current: List[dict], previous: List[dict]) -> List[dict]:
    """Positive change means the player climbed since the previous snapshot"""
    previous_ranks = {entry["user_id"]: entry["rank"] for entry in previous}
    changed = []
    for entry in current:
        previous_rank = previous_ranks.get(entry["user_id"])
        changed.append({**entry, "change": previous_rank - entry["rank"] if previous_rank else 0})
    return changed


class LeaderboardService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _snapshots(self, type: str, metric: str, period: str, scope_id: Optional[str] = None, count: int = 1) -> List[dict]:
        query = self.supabase.table("leaderboard")\
            .select("rankings, calculated_at")\
            .eq("type", type)\
            .eq("metric", metric)\
            .eq("period_type", period)
        if scope_id:
            query = query.eq("scope_id", scope_id)
        else:
            query = query.is_("scope_id", "null")
        result = query.order("calculated_at", desc=True).limit(count).execute()
        return result.data or []

    def _club_member_ids(self, org_id: str) -> List[str]:
        result = self.supabase.table("org_member")\
            .select("user_id")\
            .eq("org_id", org_id)\
            .execute()
        return [m["user_id"] for m in result.data or []]

    def calculate_leaderboard(
        self,
        type: str,
        metric: str = "elo_rating",
        period: str = "all_time",
        limit: int = 100,
        scope_id: Optional[str] = None,
    ) -> List[dict]:
        """Rank straight from player_stats; a failed query yields an empty board"""
        try:
            query = self.supabase.table("player_stats")\
                .select(STATS_SELECT)\
                .eq("period_type", period)
            if type == "club" and scope_id:
                member_ids = self._club_member_ids(scope_id)
                if not member_ids:
                    return []
                query = query.in_("user_id", member_ids)
            elif type == "city" and scope_id:
                query = query.eq("user_profile.city", scope_id)
            result = query.order(METRIC_COLUMNS[metric], desc=True)\
                .limit(limit)\
                .execute()
            return build_entries(result.data or [], metric)
        except Exception as e:
            logger.error(f"Error calculating leaderboard {type}/{metric}/{period}: {e}")
            return []

    def get_leaderboard(
        self,
        type: str = "global",
        metric: str = "elo_rating",
        period: str = "all_time",
        limit: int = 100,
        scope_id: Optional[str] = None,
    ) -> List[dict]:
        try:
            snapshots = self._snapshots(type, metric, period, scope_id)
        except Exception as e:
            logger.warning(f"Leaderboard snapshot lookup failed, calculating on demand: {e}")
            snapshots = []
        if snapshots and snapshots[0].get("rankings"):
            return snapshots[0]["rankings"][:limit]
        return self.calculate_leaderboard(type, metric, period, limit, scope_id)

    def get_user_position(
        self,
        user_id: str,
        type: str,
        metric: str = "elo_rating",
        period: str = "all_time",
        scope_id: Optional[str] = None,
    ) -> Optional[Dict]:
        entries = self.get_leaderboard(type, metric, period, 10000, scope_id)
        for index, entry in enumerate(entries):
            if entry["user_id"] == user_id:
                return {"rank": index + 1, "value": entry["value"], "total": len(entries)}
        return None

    def get_leaderboard_with_changes(self, type: str, metric: str = "elo_rating", period: str = "week") -> List[dict]:
        current = self.get_leaderboard(type, metric, period)
        try:
            snapshots = self._snapshots(type, metric, period, count=2)
        except Exception as e:
            logger.error(f"Error fetching previous leaderboard snapshot: {e}")
            return current
        if len(snapshots) < 2:
            return current
        return apply_rank_changes(current, snapshots[1].get("rankings") or [])

    def precalculate_leaderboards(self) -> int:
        """Store a fresh snapshot for every type, metric and period. Returns the number stored."""
        stored = 0
        for type in PRECALCULATED_TYPES:
            for metric in PRECALCULATED_METRICS:
                for period in PERIODS:
                    rankings = self.calculate_leaderboard(type, metric, period, 100)
                    try:
                        self.supabase.table("leaderboard").upsert({
                            "type": type,
                            "scope_id": None,
                            "metric": metric,
                            "period_type": period,
                            "period_start": None,
                            "period_end": None,
                            "rankings": rankings,
                            "calculated_at": datetime.utcnow().isoformat(),
                        }, on_conflict="type,scope_id,metric,period_type,period_start").execute()
                        stored += 1
                    except Exception as e:
                        logger.error(f"Error storing leaderboard {type}/{metric}/{period}: {e}")
        logger.info(f"Leaderboards precalculated: {stored} snapshots")
        return stored

    def get_rankings(self, scope: str = "global", scope_id: Optional[str] = None, limit: int = 10) -> dict:
        """All-time player ranking by ELO"""
        try:
            query = self.supabase.table("player_stats")\
                .select(STATS_SELECT, count="exact")\
                .eq("period_type", "all_time")
            if scope == "club" and scope_id:
                member_ids = self._club_member_ids(scope_id)
                if not member_ids:
                    return {"players": [], "total": 0}
                query = query.in_("user_id", member_ids)
            elif scope == "city" and scope_id:
                query = query.eq("user_profile.city", scope_id)
            result = query.order("elo_rating", desc=True)\
                .limit(limit)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching rankings: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch rankings")

        players = []
        for index, row in enumerate(result.data or []):
            profile = row.get("user_profile") or {}
            players.append({
                "id": row["user_id"],
                "name": profile.get("name") or profile.get("username"),
                "avatar_url": profile.get("avatar_url"),
                "rank": index + 1,
                "points": row.get("elo_rating") or 0,
                "change": row.get("elo_change") or 0,
                "level": profile.get("level"),
            })
        return {"players": players, "total": result.count if result.count is not None else len(players)}
