from supabase import Client
from app.modules.discovery.schemas import NearbyQuery
from app.modules.tournaments.engine.geofencing import calculate_distance, get_geofence_bounding_box
from typing import Dict, List, Optional
from fastapi import HTTPException
from datetime import datetime, timedelta
import logging

logger = logging.getLogger(__name__)

AUTHOR_SELECT = "*, author:user_profile!user_id (id, name, username, avatar_url, level)"
USER_CARD_SELECT = "id, name, username, avatar_url, level, followers_count"


class DiscoveryService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _following_ids(self, user_id: str, candidate_ids: List[str]) -> set:
        if not candidate_ids:
            return set()
        result = self.supabase.table("follow")\
            .select("following_id")\
            .eq("follower_id", user_id)\
            .in_("following_id", candidate_ids)\
            .execute()
        return {f["following_id"] for f in result.data or []}

    def _with_following_flag(self, user_id: str, users: List[dict]) -> List[dict]:
        following = self._following_ids(user_id, [u["id"] for u in users])
        return [{**u, "is_following": u["id"] in following} for u in users]

    def _nearby_players(self, query: NearbyQuery, center: str) -> List[dict]:
        result = self.supabase.rpc("get_nearby_users", {
            "center_location": center,
            "radius_km": query.radius_km,
            "privacy_level": "public",
        }).execute()
        players = result.data or []
        if query.level is not None:
            players = [p for p in players if p.get("level") == query.level]
        if query.min_rating is not None:
            players = [p for p in players if (p.get("rating") or 0) >= query.min_rating]
        return players[query.offset:query.offset + query.limit]

    def _nearby_clubs(self, query: NearbyQuery, center: str) -> List[dict]:
        result = self.supabase.rpc("get_nearby_clubs", {
            "center_location": center,
            "radius_km": query.radius_km,
        }).execute()
        return (result.data or [])[query.offset:query.offset + query.limit]

    def _nearby_matches(self, query: NearbyQuery) -> List[dict]:
        """Upcoming published tournaments within the radius, nearest first"""
        box = get_geofence_bounding_box(query.lat, query.lng, query.radius_km * 1000)
        result = self.supabase.table("tournament")\
            .select("*")\
            .eq("status", "published")\
            .gte("starts_at", datetime.utcnow().isoformat())\
            .gte("location_lat", box["sw"]["lat"])\
            .lte("location_lat", box["ne"]["lat"])\
            .gte("location_lng", box["sw"]["lng"])\
            .lte("location_lng", box["ne"]["lng"])\
            .execute()
        matches = []
        for tournament in result.data or []:
            distance = calculate_distance(query.lat, query.lng, tournament["location_lat"], tournament["location_lng"])
            if distance <= query.radius_km * 1000:
                matches.append({**tournament, "distance_km": round(distance / 1000, 2)})
        matches.sort(key=lambda t: t["distance_km"])
        return matches[query.offset:query.offset + query.limit]

    def discover_nearby(self, query: NearbyQuery) -> Dict:
        center = f"POINT({query.lng} {query.lat})"
        lookups = {
            "players": lambda: self._nearby_players(query, center),
            "clubs": lambda: self._nearby_clubs(query, center),
            "matches": lambda: self._nearby_matches(query),
        }
        results = {}
        for kind, lookup in lookups.items():
            if query.type not in (kind, "all"):
                continue
            try:
                results[kind] = lookup()
            except Exception as e:
                # One failing source does not sink the others
                logger.error(f"Error finding nearby {kind}: {e}")
        return {
            "center": {"lat": query.lat, "lng": query.lng},
            "radius_km": query.radius_km,
            "results": results,
            "total_results": sum(len(items) for items in results.values()),
        }

    def people_you_may_play(self, user_id: str, city: Optional[str] = None, limit: int = 20) -> List[dict]:
        try:
            result = self.supabase.rpc("padelgraph_people_you_may_play", {
                "p_user": user_id,
                "p_city": city,
                "p_limit": limit,
            }).execute()
            return result.data or []
        except Exception as e:
            logger.info(f"people_you_may_play RPC unavailable, using fallback: {e}")
        try:
            fallback = self.supabase.table("user_profile")\
                .select("id, name, username, city, level, avatar_url")\
                .neq("id", user_id)\
                .limit(limit)\
                .execute()
            return fallback.data or []
        except Exception as e:
            logger.error(f"Error fetching people suggestions: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch suggestions")

    def _trending_posts(self, limit: int) -> List[dict]:
        try:
            ranked = self.supabase.rpc("get_trending_posts", {"limit_count": limit, "offset_count": 0}).execute()
            post_ids = [p["post_id"] for p in ranked.data or []]
            if not post_ids:
                return []
            posts = self.supabase.table("post")\
                .select(AUTHOR_SELECT)\
                .in_("id", post_ids)\
                .execute()
            return posts.data or []
        except Exception as e:
            logger.info(f"get_trending_posts RPC unavailable, using fallback: {e}")
        week_ago = (datetime.utcnow() - timedelta(days=7)).isoformat()
        fallback = self.supabase.table("post")\
            .select(AUTHOR_SELECT)\
            .eq("visibility", "public")\
            .gte("created_at", week_ago)\
            .order("likes_count", desc=True)\
            .order("comments_count", desc=True)\
            .limit(limit)\
            .execute()
        return fallback.data or []

    def _trending_hashtags(self, limit: int) -> List[dict]:
        try:
            result = self.supabase.table("mv_trending_hashtags")\
                .select("*")\
                .limit(limit)\
                .execute()
            return result.data or []
        except Exception as e:
            logger.info(f"mv_trending_hashtags unavailable, using fallback: {e}")
        fallback = self.supabase.table("hashtag")\
            .select("*")\
            .order("posts_count", desc=True)\
            .limit(limit)\
            .execute()
        return fallback.data or []

    def _trending_users(self, user_id: str, limit: int) -> List[dict]:
        result = self.supabase.table("user_profile")\
            .select(f"{USER_CARD_SELECT}, following_count")\
            .order("followers_count", desc=True)\
            .limit(limit)\
            .execute()
        return self._with_following_flag(user_id, result.data or [])

    def get_trending(self, user_id: str, type: str = "all", limit: int = 20) -> Dict:
        response = {}
        try:
            if type in ("all", "posts"):
                response["trending_posts"] = self._trending_posts(limit)
            if type in ("all", "hashtags"):
                response["trending_hashtags"] = self._trending_hashtags(limit)
            if type in ("all", "users"):
                response["trending_users"] = self._trending_users(user_id, limit)
        except Exception as e:
            logger.error(f"Error fetching trending {type}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch trending content")
        return response

    def search(self, user_id: str, q: str, type: str = "all", limit: int = 20) -> Dict:
        term = (q or "").strip()
        if len(term) < 2:
            raise HTTPException(status_code=400, detail="Search query must be at least 2 characters")
        response = {"query": term}
        if type in ("all", "posts"):
            try:
                posts = self.supabase.table("post")\
                    .select(AUTHOR_SELECT)\
                    .eq("visibility", "public")\
                    .ilike("content", f"%{term}%")\
                    .order("created_at", desc=True)\
                    .limit(limit)\
                    .execute()
                response["posts"] = posts.data or []
            except Exception as e:
                logger.error(f"Error searching posts: {e}")
                response["posts"] = []
        if type in ("all", "users"):
            try:
                users = self.supabase.table("user_profile")\
                    .select(USER_CARD_SELECT)\
                    .or_(f"name.ilike.%{term}%,username.ilike.%{term}%")\
                    .limit(limit)\
                    .execute()
                response["users"] = self._with_following_flag(user_id, users.data or [])
            except Exception as e:
                logger.error(f"Error searching users: {e}")
                response["users"] = []
        return response
