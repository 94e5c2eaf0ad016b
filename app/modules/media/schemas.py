from pydantic import BaseModel, Field

MAX_UPLOAD_BYTES = 50 * 1024 * 1024


class SignMediaRequest(BaseModel):
    filename: str = Field(min_length=1, max_length=255)
    content_type: str = Field(min_length=1)
    file_size: int = Field(ge=1, le=MAX_UPLOAD_BYTES)
