from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from app.modules.tournaments.engine.types import CourtStrategy, SeedingMethod, TournamentType

TournamentStatus = Literal["draft", "published", "in_progress", "completed", "cancelled"]
IncidentType = Literal[
    "yellow_card",
    "red_card",
    "code_violation",
    "time_violation",
    "unsportsmanlike_conduct",
    "equipment_abuse",
    "positive_conduct",
]


class TournamentCreate(BaseModel):
    org_id: str
    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    type: TournamentType
    starts_at: datetime
    ends_at: Optional[datetime] = None
    check_in_opens_at: Optional[datetime] = None
    check_in_closes_at: Optional[datetime] = None
    max_participants: int = Field(ge=4, le=100)
    location_lat: float = Field(ge=-90, le=90)
    location_lng: float = Field(ge=-180, le=180)
    geofence_radius_meters: int = Field(default=100, ge=10, le=1000)
    match_duration_minutes: int = Field(default=90, ge=30, le=180)
    points_per_win: int = Field(default=3, ge=1, le=10)
    points_per_draw: int = Field(default=1, ge=0, le=5)
    points_per_loss: int = Field(default=0, ge=0, le=5)
    settings: Dict[str, Any] = Field(default_factory=dict)
    status: Literal["draft", "published"] = "draft"


class TournamentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    check_in_opens_at: Optional[datetime] = None
    check_in_closes_at: Optional[datetime] = None
    max_participants: Optional[int] = Field(default=None, ge=4, le=100)
    location_lat: Optional[float] = Field(default=None, ge=-90, le=90)
    location_lng: Optional[float] = Field(default=None, ge=-180, le=180)
    geofence_radius_meters: Optional[int] = Field(default=None, ge=10, le=1000)
    match_duration_minutes: Optional[int] = Field(default=None, ge=30, le=180)
    points_per_win: Optional[int] = Field(default=None, ge=1, le=10)
    points_per_draw: Optional[int] = Field(default=None, ge=0, le=5)
    points_per_loss: Optional[int] = Field(default=None, ge=0, le=5)
    settings: Optional[Dict[str, Any]] = None
    status: Optional[Literal["draft", "published"]] = None


class NearbyFilter(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    radius_km: float = Field(gt=0)

    @classmethod
    def parse(cls, value: str) -> "NearbyFilter":
        """'lat,lng,radius_km' -> NearbyFilter; raises ValueError on bad input"""
        parts = value.split(",")
        if len(parts) != 3:
            raise ValueError("nearby must be lat,lng,radius_km")
        lat, lng, radius = (float(p) for p in parts)
        return cls(lat=lat, lng=lng, radius_km=radius)


class CheckInRequest(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class StartTournamentRequest(BaseModel):
    court_ids: Optional[List[str]] = Field(default=None, min_length=1)
    court_strategy: CourtStrategy = "balanced"


class ScoreSubmission(BaseModel):
    team1_score: int = Field(ge=0, le=99)
    team2_score: int = Field(ge=0, le=99)


class GenerateBracketRequest(BaseModel):
    seeding: SeedingMethod = "ranked"
    seed_order: Optional[List[str]] = None
    bronze_match: bool = False
    court_ids: Optional[List[str]] = Field(default=None, min_length=1)
    court_strategy: CourtStrategy = "balanced"

    @field_validator("seed_order")
    @classmethod
    def unique_seed_order(cls, value):
        if value is not None and len(set(value)) != len(value):
            raise ValueError("seed_order contains duplicates")
        return value


class FairPlayIncidentCreate(BaseModel):
    user_id: str
    match_id: Optional[str] = None
    incident_type: IncidentType
    severity: int = Field(ge=1, le=5)
    description: Optional[str] = Field(default=None, max_length=500)
    penalty_points: Optional[int] = Field(default=None, ge=0, le=50)
    bonus_points: Optional[int] = Field(default=None, ge=0, le=50)


class FairPlayIncidentUpdate(BaseModel):
    incident_type: Optional[IncidentType] = None
    severity: Optional[int] = Field(default=None, ge=1, le=5)
    description: Optional[str] = Field(default=None, max_length=500)
    penalty_points: Optional[int] = Field(default=None, ge=0, le=50)
    bonus_points: Optional[int] = Field(default=None, ge=0, le=50)
