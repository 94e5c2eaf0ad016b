from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.stories.schemas import StoryCreate
from app.modules.stories.service import StoryService
from app.core.dependencies import get_current_user_id
from app.core.responses import success_response
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/stories", tags=["stories"])


def get_story_service(supabase: Client = Depends(get_supabase)) -> StoryService:
    return StoryService(supabase)


@router.post("", status_code=201)
async def create_story(
    story_data: StoryCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: StoryService = Depends(get_story_service)
):
    """Create a story that expires after 24 hours"""
    return success_response({"story": service.create_story(story_data, current_user["id"])}, "Story created successfully")


@router.get("")
async def list_stories(
    current_user: Dict = Depends(get_current_user_id),
    service: StoryService = Depends(get_story_service)
):
    return success_response(service.list_active_stories(current_user["id"]))


@router.post("/{story_id}/view")
async def view_story(
    story_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: StoryService = Depends(get_story_service)
):
    result = service.mark_viewed(story_id, current_user["id"])
    message = "Story already viewed" if result["already_viewed"] else "Story marked as viewed"
    return success_response(result, message)


@router.delete("/{story_id}")
async def delete_story(
    story_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: StoryService = Depends(get_story_service)
):
    service.delete_story(story_id, current_user["id"])
    return success_response(None, "Story deleted successfully")
