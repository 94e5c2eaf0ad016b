from fastapi import APIRouter, Depends, HTTPException, Query
from app.database.supabase_client import get_supabase
from app.modules.analytics.schemas import EvolutionPeriod, PerformerMetric, StatsPeriod, TrackEventRequest
from app.modules.analytics.service import AnalyticsService
from app.core.responses import success_response
from supabase import Client

router = APIRouter(prefix="/analytics", tags=["analytics"])


def get_analytics_service(supabase: Client = Depends(get_supabase)) -> AnalyticsService:
    return AnalyticsService(supabase)


@router.post("/track")
async def track_event(
    event: TrackEventRequest,
    service: AnalyticsService = Depends(get_analytics_service)
):
    """Client-side event tracking; anonymous sessions allowed"""
    service.track_event(event)
    return success_response({"success": True})


@router.get("/player/{user_id}")
async def get_player_stats(
    user_id: str,
    period: StatsPeriod = "all_time",
    service: AnalyticsService = Depends(get_analytics_service)
):
    stats = service.get_player_stats(user_id, period)
    if stats is None:
        raise HTTPException(status_code=404, detail="Stats not found for user")
    return success_response(stats)


@router.get("/player/{user_id}/evolution")
async def get_stats_evolution(
    user_id: str,
    period: EvolutionPeriod = "week",
    limit: int = Query(12, ge=1, le=52),
    service: AnalyticsService = Depends(get_analytics_service)
):
    return success_response({"evolution": service.get_stats_evolution(user_id, period, limit)})


@router.get("/compare")
async def compare_players(
    user_a: str,
    user_b: str,
    period: StatsPeriod = "all_time",
    service: AnalyticsService = Depends(get_analytics_service)
):
    return success_response(service.compare_players(user_a, user_b, period))


@router.get("/leaderboard")
async def get_top_performers(
    metric: PerformerMetric = "elo_rating",
    limit: int = Query(100, ge=1, le=500),
    service: AnalyticsService = Depends(get_analytics_service)
):
    return success_response({"metric": metric, "players": service.get_top_performers(metric, limit)})
