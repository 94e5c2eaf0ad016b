from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.courts.schemas import CourtCreate, CourtUpdate
from app.modules.courts.service import CourtService
from app.core.dependencies import get_current_user_id, check_org_admin, check_court_access
from app.core.responses import success_response
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/courts", tags=["courts"])


def get_court_service(supabase: Client = Depends(get_supabase)) -> CourtService:
    return CourtService(supabase)


@router.get("")
async def list_courts(
    org_id: Optional[str] = None,
    active: Optional[bool] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: CourtService = Depends(get_court_service)
):
    return success_response(service.list_courts(org_id, active, limit, offset))


@router.post("", status_code=201)
async def create_court(
    court_data: CourtCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: CourtService = Depends(get_court_service),
    supabase: Client = Depends(get_supabase)
):
    """Create a court (organization owner/admin only)"""
    check_org_admin(court_data.org_id, current_user, supabase)
    return success_response({"court": service.create_court(court_data)}, "Court created successfully")


@router.get("/{court_id}")
async def get_court(
    court_id: str,
    service: CourtService = Depends(get_court_service)
):
    return success_response({"court": service.get_court(court_id)})


@router.put("/{court_id}")
async def update_court(
    court_id: str,
    court_data: CourtUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: CourtService = Depends(get_court_service),
    supabase: Client = Depends(get_supabase)
):
    check_court_access(court_id, current_user, supabase)
    return success_response({"court": service.update_court(court_id, court_data)}, "Court updated successfully")


@router.delete("/{court_id}")
async def delete_court(
    court_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: CourtService = Depends(get_court_service),
    supabase: Client = Depends(get_supabase)
):
    """Deactivate a court (soft delete)"""
    check_court_access(court_id, current_user, supabase)
    return success_response({"court": service.deactivate_court(court_id)}, "Court deactivated successfully")
