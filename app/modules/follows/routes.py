from fastapi import APIRouter, Depends, HTTPException, Query
from app.database.supabase_client import get_supabase
from app.modules.follows.schemas import FollowRequest
from app.modules.follows.service import FollowService
from app.core.dependencies import get_current_user_id
from app.core.responses import success_response
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/follow", tags=["follows"])


def get_follow_service(supabase: Client = Depends(get_supabase)) -> FollowService:
    return FollowService(supabase)


@router.post("", status_code=201)
async def follow_user(
    request: FollowRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: FollowService = Depends(get_follow_service)
):
    return success_response(service.follow(current_user["id"], request.following_id), "User followed successfully")


@router.delete("")
async def unfollow_user(
    following_id: Optional[str] = None,
    current_user: Dict = Depends(get_current_user_id),
    service: FollowService = Depends(get_follow_service)
):
    if not following_id:
        raise HTTPException(status_code=400, detail="following_id is required")
    service.unfollow(current_user["id"], following_id)
    return success_response(None, "User unfollowed successfully")


@router.get("/followers/{user_id}")
async def list_followers(
    user_id: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: FollowService = Depends(get_follow_service)
):
    return success_response(service.list_followers(user_id, limit, offset))


@router.get("/following/{user_id}")
async def list_following(
    user_id: str,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: FollowService = Depends(get_follow_service)
):
    return success_response(service.list_following(user_id, limit, offset))
