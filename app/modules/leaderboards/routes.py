from fastapi import APIRouter, Depends, HTTPException, Query
from app.database.supabase_client import get_supabase
from app.modules.leaderboards.schemas import LeaderboardMetric, LeaderboardPeriod, LeaderboardType, RankingScope
from app.modules.leaderboards.service import LeaderboardService
from app.core.dependencies import get_current_user_id
from app.core.responses import success_response
from supabase import Client
from typing import Dict, Literal, Optional

router = APIRouter(tags=["leaderboards"])


def get_leaderboard_service(supabase: Client = Depends(get_supabase)) -> LeaderboardService:
    return LeaderboardService(supabase)


@router.get("/leaderboards")
async def get_leaderboard(
    type: LeaderboardType = "global",
    metric: LeaderboardMetric = "elo_rating",
    period: LeaderboardPeriod = "all_time",
    limit: int = Query(100, ge=1, le=1000),
    scope_id: Optional[str] = None,
    service: LeaderboardService = Depends(get_leaderboard_service)
):
    entries = service.get_leaderboard(type, metric, period, limit, scope_id)
    return success_response({
        "type": type,
        "metric": metric,
        "period": period,
        "entries": entries,
        "total": len(entries),
    })


@router.get("/leaderboards/{type}/position")
async def get_leaderboard_position(
    type: LeaderboardType,
    metric: LeaderboardMetric = "elo_rating",
    period: LeaderboardPeriod = "all_time",
    scope_id: Optional[str] = None,
    current_user: Dict = Depends(get_current_user_id),
    service: LeaderboardService = Depends(get_leaderboard_service)
):
    """The caller's rank on a leaderboard"""
    position = service.get_user_position(current_user["id"], type, metric, period, scope_id)
    if position is None:
        raise HTTPException(status_code=404, detail="User not found in leaderboard")
    return success_response(position)


@router.get("/leaderboards/{type}/changes")
async def get_leaderboard_changes(
    type: LeaderboardType,
    metric: LeaderboardMetric = "elo_rating",
    period: Literal["week", "month"] = "week",
    service: LeaderboardService = Depends(get_leaderboard_service)
):
    entries = service.get_leaderboard_with_changes(type, metric, period)
    return success_response({"type": type, "metric": metric, "period": period, "entries": entries, "total": len(entries)})


@router.get("/rankings")
async def get_rankings(
    scope: RankingScope = "global",
    scope_id: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    service: LeaderboardService = Depends(get_leaderboard_service)
):
    return success_response(service.get_rankings(scope, scope_id, limit))
