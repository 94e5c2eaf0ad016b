from fastapi import APIRouter, Depends
from app.modules.media.schemas import SignMediaRequest
from app.modules.media.service import MediaService
from app.modules.media.storage import MediaStorage
from app.core.dependencies import get_current_user_id
from app.core.responses import success_response
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/media", tags=["media"])


def get_media_storage() -> Optional[MediaStorage]:
    try:
        return MediaStorage()
    except ValueError as e:
        logger.warning(f"Media storage unavailable: {e}")
        return None


def get_media_service(storage: Optional[MediaStorage] = Depends(get_media_storage)) -> MediaService:
    return MediaService(storage)


@router.post("/sign", status_code=201)
async def sign_media_upload(
    request: SignMediaRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: MediaService = Depends(get_media_service)
):
    """Presigned upload URL for a post or story attachment"""
    return success_response(service.sign_upload(current_user["id"], request), "Signed URL created successfully")
