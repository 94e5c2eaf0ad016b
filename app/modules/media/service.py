from app.modules.media.schemas import SignMediaRequest
from app.modules.media.storage import MediaStorage
from fastapi import HTTPException
from typing import Dict, Optional
from botocore.exceptions import BotoCoreError, ClientError
import time
import uuid
import logging

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = [
    "image/jpeg", "image/jpg", "image/png", "image/gif",
    "image/webp", "image/heic", "image/heif",
]
ALLOWED_VIDEO_TYPES = ["video/mp4", "video/mpeg", "video/quicktime", "video/webm"]

MAX_IMAGE_BYTES = 5 * 1024 * 1024
MAX_VIDEO_BYTES = 50 * 1024 * 1024
UPLOAD_URL_TTL = 300


def media_path(user_id: str, filename: str, now_ms: Optional[int] = None) -> str:
    """{user_id}/{timestamp}_{hex}.{ext}"""
    extension = filename.rsplit(".", 1)[-1] if "." in filename else "jpg"
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{user_id}/{timestamp}_{uuid.uuid4().hex}.{extension}"


class MediaService:
    def __init__(self, storage: Optional[MediaStorage]):
        self.storage = storage

    def sign_upload(self, user_id: str, request: SignMediaRequest) -> Dict:
        is_video = request.content_type in ALLOWED_VIDEO_TYPES
        if not is_video and request.content_type not in ALLOWED_IMAGE_TYPES:
            raise HTTPException(
                status_code=400,
                detail="Invalid file type. Allowed: images (JPEG, PNG, GIF, WebP, HEIC) and videos (MP4, MPEG, QuickTime, WebM)"
            )
        max_size = MAX_VIDEO_BYTES if is_video else MAX_IMAGE_BYTES
        if request.file_size > max_size:
            raise HTTPException(status_code=400, detail=f"File too large. Max size: {'50MB' if is_video else '5MB'}")

        if self.storage is None:
            raise HTTPException(status_code=500, detail="Media storage is not configured")

        path = media_path(user_id, request.filename)
        try:
            signed_url = self.storage.create_upload_url(path, request.content_type, UPLOAD_URL_TTL)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error creating upload URL for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create upload URL")
        return {
            "signed_url": signed_url,
            "path": path,
            "public_url": self.storage.public_url(path),
            "expires_in": UPLOAD_URL_TTL,
        }
