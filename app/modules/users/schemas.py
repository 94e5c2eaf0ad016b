from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class PublicUserResponse(BaseModel):
    id: str
    name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    level: Optional[float] = None
    city: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FollowStatsResponse(BaseModel):
    followers: int = 0
    following: int = 0
    posts: int = 0
