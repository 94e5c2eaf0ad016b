from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.users.service import UserService
from app.core.dependencies import get_current_user_id
from app.core.responses import success_response
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(supabase: Client = Depends(get_supabase)) -> UserService:
    return UserService(supabase)


@router.get("/search")
async def search_user(
    email: str = Query(..., min_length=3),
    current_user: Dict = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service)
):
    """Find a user by email (authenticated users only)"""
    return success_response({"user": service.search_by_email(email)})


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    service: UserService = Depends(get_user_service)
):
    return success_response(service.get_user_by_id(user_id))


@router.get("/{user_id}/follow-stats")
async def get_follow_stats(
    user_id: str,
    service: UserService = Depends(get_user_service)
):
    return success_response(service.get_follow_stats(user_id))


@router.get("/{user_id}/posts")
async def get_user_posts(
    user_id: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: UserService = Depends(get_user_service)
):
    """Public posts of a user, newest first"""
    return success_response(service.list_user_posts(user_id, limit, offset))
