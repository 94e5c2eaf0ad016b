from pydantic import BaseModel
from typing import List, Literal, Optional

LeaderboardType = Literal[
    "global",
    "club",
    "city",
    "tournament_winners",
    "win_streak",
    "social_butterfly",
    "traveler",
    "fair_play",
]
LeaderboardMetric = Literal[
    "elo_rating",
    "win_rate",
    "tournaments_won",
    "win_streak",
    "connections_count",
    "cities_visited",
    "fair_play_score",
]
LeaderboardPeriod = Literal["week", "month", "all_time"]
RankingScope = Literal["global", "club", "city"]


class LeaderboardEntry(BaseModel):
    user_id: str
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    rank: int
    value: float = 0
    change: Optional[int] = None


class LeaderboardResponse(BaseModel):
    type: LeaderboardType
    metric: LeaderboardMetric
    period: LeaderboardPeriod
    entries: List[LeaderboardEntry]
    total: int


class LeaderboardPosition(BaseModel):
    rank: int
    value: float
    total: int
