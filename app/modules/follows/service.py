from supabase import Client
from app.modules.notifications.service import NotificationService
from fastapi import HTTPException
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

FOLLOW_PROFILE_FIELDS = "id, name, username, avatar_url, level, city"


class FollowService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.notifications = NotificationService(supabase)

    def follow(self, follower_id: str, following_id: str) -> dict:
        if follower_id == following_id:
            raise HTTPException(status_code=400, detail="You cannot follow yourself")

        target = self.supabase.table("user_profile")\
            .select("id, name, username")\
            .eq("id", following_id)\
            .limit(1)\
            .execute()
        if not target.data:
            raise HTTPException(status_code=404, detail="User not found")

        existing = self.supabase.table("follow")\
            .select("follower_id")\
            .eq("follower_id", follower_id)\
            .eq("following_id", following_id)\
            .limit(1)\
            .execute()
        if existing.data:
            raise HTTPException(status_code=409, detail="Already following this user")

        try:
            result = self.supabase.table("follow").insert({
                "follower_id": follower_id,
                "following_id": following_id,
                "created_at": datetime.utcnow().isoformat(),
            }).execute()
        except Exception as e:
            logger.error(f"Error following {following_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to follow user")

        self.notifications.create(
            following_id, "follow", "New follower", "Someone started following you",
            {"follower_id": follower_id},
        )
        return {"follow": result.data[0] if result.data else None, "user": target.data[0]}

    def unfollow(self, follower_id: str, following_id: str) -> None:
        try:
            result = self.supabase.table("follow")\
                .delete()\
                .eq("follower_id", follower_id)\
                .eq("following_id", following_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error unfollowing {following_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to unfollow user")
        if not result.data:
            raise HTTPException(status_code=404, detail="You are not following this user")

    def _list(self, match_column: str, profile_column: str, user_id: str, limit: int, offset: int) -> dict:
        try:
            result = self.supabase.table("follow")\
                .select(f"created_at, user:user_profile!{profile_column}({FOLLOW_PROFILE_FIELDS})", count="exact")\
                .eq(match_column, user_id)\
                .order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
            users = [
                {**(row.get("user") or {}), "followed_at": row.get("created_at")}
                for row in result.data or []
            ]
            return {"users": users, "total": result.count or 0, "limit": limit, "offset": offset}
        except Exception as e:
            logger.error(f"Error listing follows for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch follows")

    def list_followers(self, user_id: str, limit: int = 20, offset: int = 0) -> dict:
        return self._list("following_id", "follower_id", user_id, limit, offset)

    def list_following(self, user_id: str, limit: int = 20, offset: int = 0) -> dict:
        return self._list("follower_id", "following_id", user_id, limit, offset)
