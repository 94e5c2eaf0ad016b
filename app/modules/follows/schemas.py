from pydantic import BaseModel, Field


class FollowRequest(BaseModel):
    following_id: str = Field(min_length=1)
