from supabase import Client
from app.modules.users.schemas import PublicUserResponse, FollowStatsResponse
from app.modules.feed.service import POST_SELECT
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

PUBLIC_PROFILE_FIELDS = "id, name, username, avatar_url, level, city, bio, created_at"


class UserService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def search_by_email(self, email: str) -> dict:
        """Exact match on the lowercased email"""
        try:
            result = self.supabase.table("user_profile")\
                .select("id, name, email, avatar_url")\
                .eq("email", email.strip().lower())\
                .limit(1)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="User not found")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"User search error: {e}")
            raise HTTPException(status_code=500, detail="Failed to search users")

    def get_user_by_id(self, user_id: str) -> PublicUserResponse:
        try:
            result = self.supabase.table("user_profile")\
                .select(PUBLIC_PROFILE_FIELDS)\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="User not found")
            return PublicUserResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error fetching user {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch user")

    def _count(self, table: str, column: str, value: str) -> int:
        result = self.supabase.table(table)\
            .select("id", count="exact")\
            .eq(column, value)\
            .execute()
        return result.count or 0

    def get_follow_stats(self, user_id: str) -> FollowStatsResponse:
        try:
            rpc_result = self.supabase.rpc("padelgraph_profile_counts", {"p_user": user_id}).execute()
            if rpc_result.data:
                return FollowStatsResponse(**rpc_result.data[0])
        except Exception as e:
            logger.info(f"padelgraph_profile_counts unavailable, using fallback: {e}")

        try:
            return FollowStatsResponse(
                followers=self._count("follow", "following_id", user_id),
                following=self._count("follow", "follower_id", user_id),
                posts=self._count("post", "user_id", user_id),
            )
        except Exception as e:
            logger.error(f"Error counting follow stats for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch follow stats")

    def list_user_posts(self, user_id: str, limit: int = 20, offset: int = 0) -> dict:
        try:
            result = self.supabase.table("post")\
                .select(POST_SELECT, count="exact")\
                .eq("user_id", user_id)\
                .eq("visibility", "public")\
                .order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
            return {
                "posts": result.data or [],
                "total": result.count or 0,
                "limit": limit,
                "offset": offset,
            }
        except Exception as e:
            logger.error(f"Error fetching posts for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch posts")
