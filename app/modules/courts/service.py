from supabase import Client
from app.modules.courts.schemas import CourtCreate, CourtUpdate
from typing import Optional
from fastapi import HTTPException
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

COURT_SELECT = "*, organization:organization(id, name, city)"


class CourtService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_courts(self, org_id: Optional[str] = None, active: Optional[bool] = None, limit: int = 20, offset: int = 0) -> dict:
        try:
            query = self.supabase.table("court").select(COURT_SELECT, count="exact")
            if org_id:
                query = query.eq("org_id", org_id)
            if active is not None:
                query = query.eq("active", active)
            result = query.order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
            return {"courts": result.data or [], "total": result.count or 0, "limit": limit, "offset": offset}
        except Exception as e:
            logger.error(f"Error listing courts: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch courts")

    def create_court(self, court_data: CourtCreate) -> dict:
        try:
            result = self.supabase.table("court").insert({
                **court_data.model_dump(),
                "active": True,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create court")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating court: {e}")
            raise HTTPException(status_code=500, detail="Failed to create court")

    def get_court(self, court_id: str) -> dict:
        try:
            result = self.supabase.table("court")\
                .select(COURT_SELECT)\
                .eq("id", court_id)\
                .limit(1)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Court not found")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error fetching court {court_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch court")

    def update_court(self, court_id: str, court_data: CourtUpdate) -> dict:
        update_data = court_data.model_dump(exclude_unset=True)
        update_data["updated_at"] = datetime.utcnow().isoformat()
        try:
            result = self.supabase.table("court")\
                .update(update_data)\
                .eq("id", court_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Court not found")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating court {court_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update court")

    def deactivate_court(self, court_id: str) -> dict:
        """Soft delete: tournaments and history keep pointing at the row"""
        return self.update_court(court_id, CourtUpdate(active=False))

    def get_active_courts(self, org_id: str, court_ids: Optional[list] = None) -> list:
        query = self.supabase.table("court")\
            .select("*")\
            .eq("org_id", org_id)\
            .eq("active", True)
        if court_ids:
            query = query.in_("id", court_ids)
        result = query.order("name").execute()
        return result.data or []
