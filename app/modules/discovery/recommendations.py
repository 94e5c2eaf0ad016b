from supabase import Client
from app.core.dependencies import is_super_user
from app.modules.discovery.collaborative_filtering import (
    FilteringConfig,
    PlayStyle,
    UserFeatures,
    calculate_user_similarity,
    level_label,
)
from app.modules.discovery.schemas import RECOMMENDED_TYPES, GenerateRecommendationsRequest, RecommendationFeedback
from app.modules.subscriptions.usage import UsageLimiter
from typing import Dict, List, Optional
from fastapi import HTTPException
from datetime import datetime, timedelta
import logging

logger = logging.getLogger(__name__)

PLAYER_THRESHOLD = 0.4
CANDIDATE_LIMIT = 50
CLUB_RADIUS_KM = 20
FRESH_WINDOW = timedelta(hours=24)
PROFILE_SELECT = "id, name, username, level, city, lat, lng, preferences"


def features_from_profile(profile: dict, clubs: Optional[List[str]] = None, rating: Optional[float] = None) -> UserFeatures:
    preferences = profile.get("preferences") or {}
    style = preferences.get("play_style")
    return UserFeatures(
        user_id=profile["id"],
        level=level_label(profile.get("level")),
        skill_rating=rating,
        city=profile.get("city"),
        lat=profile.get("lat"),
        lng=profile.get("lng"),
        play_style=PlayStyle(**style) if isinstance(style, dict) else None,
        preferred_time_slot=preferences.get("preferred_time_slot"),
        availability_days=preferences.get("availability_days"),
        club_memberships=clubs or [],
    )


def player_reason(user: UserFeatures, candidate: UserFeatures) -> str:
    if candidate.level and candidate.level == user.level:
        return f"Same level of play ({candidate.level})"
    if candidate.city and candidate.city == user.city:
        return f"Plays in {candidate.city}"
    return "Compatible player found"


class RecommendationService:
    def __init__(self, supabase: Client, config: Optional[FilteringConfig] = None):
        self.supabase = supabase
        self.config = config or FilteringConfig()

    def list_recommendations(self, user_id: str, type: Optional[str] = None, limit: int = 10, include_shown: bool = False) -> Dict:
        try:
            query = self.supabase.table("recommendation")\
                .select("*")\
                .eq("user_id", user_id)
            if type:
                query = query.eq("recommended_type", RECOMMENDED_TYPES[type])
            if not include_shown:
                query = query.eq("shown", False)
            result = query.order("score", desc=True)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .execute()
            recommendations = result.data or []
            if recommendations:
                self.supabase.table("recommendation")\
                    .update({"shown": True})\
                    .in_("id", [r["id"] for r in recommendations])\
                    .execute()
            return {"recommendations": recommendations, "total": len(recommendations)}
        except Exception as e:
            logger.error(f"Error fetching recommendations for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch recommendations")

    def _fresh_count(self, user_id: str, type: str) -> int:
        result = self.supabase.table("recommendation")\
            .select("id", count="exact")\
            .eq("user_id", user_id)\
            .eq("recommended_type", RECOMMENDED_TYPES[type])\
            .eq("shown", False)\
            .gte("created_at", (datetime.utcnow() - FRESH_WINDOW).isoformat())\
            .execute()
        return result.count or 0

    def request_recommendations(self, request: GenerateRecommendationsRequest, user_data: dict) -> Dict:
        target_id = request.user_id or user_data["id"]
        acting_for_other = target_id != user_data["id"]
        if acting_for_other and not is_super_user(user_data):
            raise HTTPException(status_code=403, detail="Not authorized to generate recommendations for other users")

        usage = UsageLimiter(self.supabase)
        usage.enforce(target_id, "recommendation_created")

        if not request.force_refresh:
            fresh = self._fresh_count(target_id, request.type)
            if fresh >= request.limit:
                return {"generated": 0, "count": fresh, "message": "Fresh recommendations already exist"}

        recommendations = self.generate(target_id, request.type, request.limit)
        usage.increment_usage(target_id, "recommendation_created", {
            "type": request.type,
            "count": len(recommendations),
            "force_refresh": request.force_refresh,
        })
        return {"recommendations": recommendations, "generated": len(recommendations)}

    def generate(self, user_id: str, type: str, limit: int = 10) -> List[dict]:
        generators = {
            "players": self._recommend_players,
            "clubs": self._recommend_clubs,
            "tournaments": self._recommend_tournaments,
        }
        try:
            recommendations = generators[type](user_id, limit)
            if recommendations:
                result = self.supabase.table("recommendation").insert([
                    {**rec, "user_id": user_id, "shown": False, "clicked": False}
                    for rec in recommendations
                ]).execute()
                return result.data or recommendations
            return recommendations
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error generating {type} recommendations for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to generate recommendations")

    def _get_profile(self, user_id: str, select: str = PROFILE_SELECT) -> Optional[dict]:
        result = self.supabase.table("user_profile")\
            .select(select)\
            .eq("id", user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def _club_memberships(self, user_ids: List[str]) -> Dict[str, List[str]]:
        result = self.supabase.table("org_member")\
            .select("user_id, org_id")\
            .in_("user_id", user_ids)\
            .execute()
        memberships: Dict[str, List[str]] = {}
        for row in result.data or []:
            memberships.setdefault(row["user_id"], []).append(row["org_id"])
        return memberships

    def _ratings(self, user_ids: List[str]) -> Dict[str, float]:
        result = self.supabase.table("player_stats")\
            .select("user_id, elo_rating")\
            .eq("period_type", "all_time")\
            .in_("user_id", user_ids)\
            .execute()
        return {row["user_id"]: row["elo_rating"] for row in result.data or [] if row.get("elo_rating") is not None}

    def _recommend_players(self, user_id: str, limit: int) -> List[dict]:
        profile = self._get_profile(user_id)
        if not profile:
            return []
        following = self.supabase.table("follow")\
            .select("following_id")\
            .eq("follower_id", user_id)\
            .execute()
        followed = {f["following_id"] for f in following.data or []}

        candidates = self.supabase.table("user_profile")\
            .select(PROFILE_SELECT)\
            .neq("id", user_id)\
            .limit(CANDIDATE_LIMIT)\
            .execute()
        candidates = [c for c in candidates.data or [] if c["id"] not in followed]
        if not candidates:
            return []

        ids = [user_id] + [c["id"] for c in candidates]
        clubs = self._club_memberships(ids)
        ratings = self._ratings(ids)
        user = features_from_profile(profile, clubs.get(user_id), ratings.get(user_id))

        recommendations = []
        for candidate in candidates:
            features = features_from_profile(candidate, clubs.get(candidate["id"]), ratings.get(candidate["id"]))
            similarity = calculate_user_similarity(user, features, self.config)
            score = similarity["overall_similarity"]
            if score <= PLAYER_THRESHOLD:
                continue
            recommendations.append({
                "recommended_type": "player",
                "recommended_id": candidate["id"],
                "score": round(score, 4),
                "reason": player_reason(user, features),
                "metadata": {
                    "name": candidate.get("name"),
                    "username": candidate.get("username"),
                    "level": candidate.get("level"),
                    "city": candidate.get("city"),
                    "breakdown": similarity["breakdown"],
                },
            })
        recommendations.sort(key=lambda r: r["score"], reverse=True)
        return recommendations[:limit]

    def _recommend_clubs(self, user_id: str, limit: int) -> List[dict]:
        profile = self._get_profile(user_id, "id, lat, lng, city")
        if not profile or profile.get("lat") is None or profile.get("lng") is None:
            return []
        result = self.supabase.rpc("get_nearby_clubs", {
            "center_location": f"POINT({profile['lng']} {profile['lat']})",
            "radius_km": CLUB_RADIUS_KM,
        }).execute()
        recommendations = []
        for club in (result.data or [])[:limit]:
            distance = club.get("distance_km") or 0
            recommendations.append({
                "recommended_type": "club",
                "recommended_id": club.get("club_id") or club.get("id"),
                "score": max(0, 1 - distance / CLUB_RADIUS_KM),
                "reason": f"Club {round(distance, 1)}km away",
                "metadata": {
                    "club_name": club.get("club_name") or club.get("name"),
                    "distance_km": distance,
                    "address": club.get("address"),
                },
            })
        return recommendations

    def _recommend_tournaments(self, user_id: str, limit: int) -> List[dict]:
        profile = self._get_profile(user_id, "id, city")
        query = self.supabase.table("tournament")\
            .select("id, name, type, starts_at, org_id, organization:organization(city)")\
            .eq("status", "published")\
            .gte("starts_at", datetime.utcnow().isoformat())
        city = (profile or {}).get("city")
        if city:
            query = query.eq("organization.city", city)
        result = query.order("starts_at").limit(limit).execute()
        return [
            {
                "recommended_type": "tournament",
                "recommended_id": tournament["id"],
                "score": 0.8 if city else 0.5,
                "reason": f"Upcoming tournament in {city}" if city else "Upcoming tournament",
                "metadata": {
                    "name": tournament.get("name"),
                    "format": tournament.get("type"),
                    "starts_at": tournament.get("starts_at"),
                },
            }
            for tournament in result.data or []
        ]

    def record_feedback(self, feedback: RecommendationFeedback, user_id: str) -> Dict:
        result = self.supabase.table("recommendation")\
            .select("user_id")\
            .eq("id", feedback.recommendation_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Recommendation not found")
        if result.data[0]["user_id"] != user_id:
            raise HTTPException(status_code=403, detail="Not authorized to update this recommendation")

        update = feedback.model_dump(exclude_none=True, exclude={"recommendation_id"})
        if update:
            try:
                self.supabase.table("recommendation")\
                    .update(update)\
                    .eq("id", feedback.recommendation_id)\
                    .execute()
            except Exception as e:
                logger.error(f"Error recording recommendation feedback: {e}")
                raise HTTPException(status_code=500, detail="Failed to record feedback")
        return {"recommendation_id": feedback.recommendation_id}
