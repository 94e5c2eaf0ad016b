from supabase import Client
from fastapi import HTTPException
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[dict]:
        """Insert an in-app notification. Failures are logged, never raised."""
        try:
            result = self.supabase.table("notification").insert({
                "user_id": user_id,
                "type": type,
                "title": title,
                "message": message,
                "data": data or {},
                "read": False,
                "created_at": datetime.utcnow().isoformat(),
            }).execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Failed to create {type} notification for {user_id}: {e}")
            return None

    def notify_unless_self(
        self,
        recipient_id: Optional[str],
        actor_id: str,
        type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[dict]:
        if not recipient_id or recipient_id == actor_id:
            return None
        return self.create(recipient_id, type, title, message, data)

    def list_notifications(self, user_id: str, limit: int = 50, offset: int = 0, unread_only: bool = False) -> dict:
        try:
            query = self.supabase.table("notification")\
                .select("*", count="exact")\
                .eq("user_id", user_id)
            if unread_only:
                query = query.eq("read", False)
            result = query.order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()

            unread_result = self.supabase.table("notification")\
                .select("id", count="exact")\
                .eq("user_id", user_id)\
                .eq("read", False)\
                .execute()

            return {
                "notifications": result.data or [],
                "unread_count": unread_result.count or 0,
                "total": result.count or 0,
            }
        except Exception as e:
            logger.error(f"Error listing notifications for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch notifications")

    def mark_read(self, user_id: str, notification_ids: List[str]) -> dict:
        try:
            result = self.supabase.table("notification")\
                .update({"read": True})\
                .in_("id", notification_ids)\
                .eq("user_id", user_id)\
                .execute()
            return {"updated": len(result.data or [])}
        except Exception as e:
            logger.error(f"Error marking notifications read for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update notifications")
