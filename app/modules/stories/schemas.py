from pydantic import BaseModel, Field, HttpUrl
from typing import Optional, List, Literal


class StoryMediaItem(BaseModel):
    url: HttpUrl
    type: Literal["image", "video"]
    caption: Optional[str] = Field(default=None, max_length=500)


class StoryCreate(BaseModel):
    media: List[StoryMediaItem] = Field(min_length=1, max_length=10)
