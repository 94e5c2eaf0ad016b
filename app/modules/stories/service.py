from supabase import Client
from app.modules.stories.schemas import StoryCreate
from app.core.time_utils import parse_timestamp
from typing import Dict, List
from fastapi import HTTPException
from datetime import datetime, timedelta
import logging

logger = logging.getLogger(__name__)

STORY_TTL_HOURS = 24
STORY_SELECT = "*, author:user_profile!user_id(id, name, username, avatar_url), media:story_media(*)"


def group_stories_by_user(stories: List[dict]) -> Dict[str, List[dict]]:
    grouped: Dict[str, List[dict]] = {}
    for story in stories:
        grouped.setdefault(story["user_id"], []).append(story)
    return grouped


class StoryService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_story(self, story_data: StoryCreate, user_id: str) -> dict:
        expires_at = (datetime.utcnow() + timedelta(hours=STORY_TTL_HOURS)).isoformat()
        try:
            result = self.supabase.table("story").insert({
                "user_id": user_id,
                "expires_at": expires_at,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create story")
            story = result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating story: {e}")
            raise HTTPException(status_code=500, detail="Failed to create story")

        media_rows = [
            {
                "story_id": story["id"],
                "url": str(item.url),
                "type": item.type,
                "caption": item.caption,
                "order_index": index,
            }
            for index, item in enumerate(story_data.media)
        ]
        try:
            media_result = self.supabase.table("story_media").insert(media_rows).execute()
        except Exception as e:
            logger.error(f"Error adding media to story {story['id']}, rolling back: {e}")
            self.supabase.table("story").delete().eq("id", story["id"]).execute()
            raise HTTPException(status_code=500, detail="Failed to add story media")

        return {**story, "media": media_result.data or media_rows}

    def list_active_stories(self, user_id: str) -> dict:
        try:
            result = self.supabase.table("story")\
                .select(STORY_SELECT)\
                .gt("expires_at", datetime.utcnow().isoformat())\
                .order("created_at", desc=True)\
                .execute()
            stories = result.data or []

            viewed = set()
            if stories:
                views = self.supabase.table("story_view")\
                    .select("story_id")\
                    .in_("story_id", [s["id"] for s in stories])\
                    .eq("viewer_id", user_id)\
                    .execute()
                viewed = {v["story_id"] for v in views.data or []}

            for story in stories:
                story["has_viewed"] = story["id"] in viewed
                story["media"] = sorted(story.get("media") or [], key=lambda m: m.get("order_index", 0))

            return {
                "stories": stories,
                "stories_by_user": group_stories_by_user(stories),
                "total": len(stories),
            }
        except Exception as e:
            logger.error(f"Error fetching stories: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch stories")

    def _get_story(self, story_id: str) -> dict:
        result = self.supabase.table("story")\
            .select("id, user_id, expires_at, views_count")\
            .eq("id", story_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Story not found")
        return result.data[0]

    def mark_viewed(self, story_id: str, user_id: str) -> dict:
        story = self._get_story(story_id)
        expires_at = parse_timestamp(story.get("expires_at"))
        if expires_at is not None and expires_at <= datetime.utcnow():
            raise HTTPException(status_code=410, detail="Story has expired")

        try:
            existing = self.supabase.table("story_view")\
                .select("story_id")\
                .eq("story_id", story_id)\
                .eq("viewer_id", user_id)\
                .limit(1)\
                .execute()
            if existing.data:
                return {"already_viewed": True, "views_count": story.get("views_count") or 0}

            self.supabase.table("story_view").insert({
                "story_id": story_id,
                "viewer_id": user_id,
                "viewed_at": datetime.utcnow().isoformat(),
            }).execute()
            counted = self.supabase.table("story_view")\
                .select("story_id", count="exact")\
                .eq("story_id", story_id)\
                .execute()
            views_count = counted.count or 0
            self.supabase.table("story")\
                .update({"views_count": views_count})\
                .eq("id", story_id)\
                .execute()
            return {"already_viewed": False, "views_count": views_count}
        except Exception as e:
            logger.error(f"Error marking story {story_id} viewed: {e}")
            raise HTTPException(status_code=500, detail="Failed to mark story as viewed")

    def delete_story(self, story_id: str, user_id: str) -> None:
        story = self._get_story(story_id)
        if story["user_id"] != user_id:
            raise HTTPException(status_code=403, detail="You can only delete your own stories")
        try:
            self.supabase.table("story")\
                .delete()\
                .eq("id", story_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error deleting story {story_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete story")

    def cleanup_expired(self, grace_hours: int = 24) -> int:
        """Delete stories that expired more than grace_hours ago; returns the number removed"""
        cutoff = (datetime.utcnow() - timedelta(hours=grace_hours)).isoformat()
        result = self.supabase.table("story")\
            .delete()\
            .lt("expires_at", cutoff)\
            .execute()
        deleted = len(result.data or [])
        logger.info(f"Deleted {deleted} expired stories")
        return deleted
