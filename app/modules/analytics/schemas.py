from pydantic import BaseModel, Field
from typing import Any, Dict, Literal, Optional

StatsPeriod = Literal["day", "week", "month", "all_time"]
EvolutionPeriod = Literal["week", "month"]
PerformerMetric = Literal["elo_rating", "win_rate", "matches_won"]


class TrackEventRequest(BaseModel):
    event_name: Optional[str] = Field(default=None, max_length=100)
    session_id: Optional[str] = Field(default=None, max_length=100)
    user_id: Optional[str] = None
    properties: Optional[Dict[str, Any]] = None
    page_url: Optional[str] = None
    referrer: Optional[str] = None
    device_info: Optional[Dict[str, Any]] = None
