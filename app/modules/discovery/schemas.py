from pydantic import BaseModel, Field
from typing import Literal, Optional

NearbyType = Literal["players", "clubs", "matches", "all"]
TrendingType = Literal["all", "posts", "hashtags", "users"]
SearchType = Literal["all", "users", "posts"]
RecommendationKind = Literal["players", "clubs", "tournaments"]

# Stored recommended_type for each requested kind
RECOMMENDED_TYPES = {"players": "player", "clubs": "club", "tournaments": "tournament"}


class NearbyQuery(BaseModel):
    type: NearbyType = "all"
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    radius_km: float = Field(default=10, ge=1, le=100)
    level: Optional[float] = None
    min_rating: Optional[float] = None
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class GenerateRecommendationsRequest(BaseModel):
    user_id: Optional[str] = None
    type: RecommendationKind
    limit: int = Field(default=10, ge=1, le=50)
    force_refresh: bool = False


class RecommendationFeedback(BaseModel):
    recommendation_id: str
    shown: Optional[bool] = None
    clicked: Optional[bool] = None
    dismissed: Optional[bool] = None
