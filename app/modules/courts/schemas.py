from pydantic import BaseModel, Field
from typing import Optional, Literal

CourtType = Literal["indoor", "outdoor", "covered"]
CourtSurface = Literal["carpet", "concrete", "grass", "crystal", "synthetic"]


class CourtCreate(BaseModel):
    org_id: str
    name: str = Field(min_length=1, max_length=100)
    type: CourtType = "outdoor"
    surface: CourtSurface = "concrete"
    description: Optional[str] = Field(default=None, max_length=500)


class CourtUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[CourtType] = None
    surface: Optional[CourtSurface] = None
    description: Optional[str] = Field(default=None, max_length=500)
    active: Optional[bool] = None
