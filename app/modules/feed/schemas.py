from pydantic import BaseModel, Field, HttpUrl
from typing import Optional, List, Literal


class PostCreate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)
    media_urls: List[HttpUrl] = Field(default_factory=list, max_length=10)
    visibility: Literal["public", "friends", "private", "org"] = "public"
    org_id: Optional[str] = None


class LikeRequest(BaseModel):
    post_id: str


class CommentCreate(BaseModel):
    post_id: str
    content: str = Field(min_length=1, max_length=2000)
    parent_id: Optional[str] = None


class ShareRequest(BaseModel):
    post_id: str
    content: Optional[str] = Field(default=None, min_length=1, max_length=5000)
