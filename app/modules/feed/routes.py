from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.feed.schemas import PostCreate, LikeRequest, CommentCreate, ShareRequest
from app.modules.feed.service import FeedService
from app.core.dependencies import get_current_user_id
from app.core.responses import success_response
from supabase import Client
from typing import Dict, Optional

router = APIRouter(tags=["feed"])


def get_feed_service(supabase: Client = Depends(get_supabase)) -> FeedService:
    return FeedService(supabase)


@router.get("/feed")
async def get_feed(
    limit: int = Query(20, ge=1, le=100),
    cursor: Optional[str] = None,
    user_id: Optional[str] = None,
    org_id: Optional[str] = None,
    current_user: Dict = Depends(get_current_user_id),
    service: FeedService = Depends(get_feed_service)
):
    """Timeline with cursor pagination (cursor is the id of the last post seen)"""
    return success_response(service.get_feed(current_user, limit, cursor, user_id, org_id))


@router.post("/feed", status_code=201)
async def create_feed_post(
    post_data: PostCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: FeedService = Depends(get_feed_service)
):
    return success_response({"post": service.create_post(post_data, current_user)}, "Post created successfully")


@router.post("/posts", status_code=201)
async def create_post(
    post_data: PostCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: FeedService = Depends(get_feed_service)
):
    return success_response({"post": service.create_post(post_data, current_user)}, "Post created successfully")


@router.get("/posts/{post_id}")
async def get_post(
    post_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: FeedService = Depends(get_feed_service)
):
    return success_response(service.get_post(post_id, current_user))


@router.post("/feed/like")
async def like_post(
    request: LikeRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: FeedService = Depends(get_feed_service)
):
    """Toggle the caller's like on a post"""
    result = service.toggle_like(request.post_id, current_user["id"])
    message = "Post liked successfully" if result["liked"] else "Post unliked successfully"
    return success_response(result, message)


@router.post("/comments", status_code=201)
async def create_comment(
    comment_data: CommentCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: FeedService = Depends(get_feed_service)
):
    return success_response({"comment": service.create_comment(comment_data, current_user)}, "Comment created successfully")


@router.get("/comments")
async def list_comments(
    post_id: str,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: Dict = Depends(get_current_user_id),
    service: FeedService = Depends(get_feed_service)
):
    """Comments of a post as a threaded tree"""
    return success_response(service.list_comments(post_id, current_user, limit, offset))


@router.get("/comments/{comment_id}")
async def get_comment(
    comment_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: FeedService = Depends(get_feed_service)
):
    return success_response({"comment": service.get_comment(comment_id, current_user)})


@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: FeedService = Depends(get_feed_service)
):
    service.delete_comment(comment_id, current_user["id"])
    return success_response(None, "Comment deleted successfully")


@router.post("/comments/{comment_id}/like")
async def like_comment(
    comment_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: FeedService = Depends(get_feed_service)
):
    return success_response(service.toggle_comment_like(comment_id, current_user["id"]))


@router.post("/share", status_code=201)
async def share_post(
    share_data: ShareRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: FeedService = Depends(get_feed_service)
):
    return success_response(service.share_post(share_data, current_user), "Post shared successfully")
