from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.discovery.schemas import (
    GenerateRecommendationsRequest,
    NearbyQuery,
    NearbyType,
    RecommendationFeedback,
    RecommendationKind,
    SearchType,
    TrendingType,
)
from app.modules.discovery.service import DiscoveryService
from app.modules.discovery.recommendations import RecommendationService
from app.core.dependencies import get_current_user_id
from app.core.responses import success_response
from supabase import Client
from typing import Dict, Optional

router = APIRouter(tags=["discovery"])


def get_discovery_service(supabase: Client = Depends(get_supabase)) -> DiscoveryService:
    return DiscoveryService(supabase)


def get_recommendation_service(supabase: Client = Depends(get_supabase)) -> RecommendationService:
    return RecommendationService(supabase)


@router.get("/discover/nearby")
async def discover_nearby(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    type: NearbyType = "all",
    radius_km: float = Query(10, ge=1, le=100),
    level: Optional[float] = None,
    min_rating: Optional[float] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: Dict = Depends(get_current_user_id),
    service: DiscoveryService = Depends(get_discovery_service)
):
    query = NearbyQuery(
        type=type, lat=lat, lng=lng, radius_km=radius_km,
        level=level, min_rating=min_rating, limit=limit, offset=offset,
    )
    return success_response(service.discover_nearby(query))


@router.get("/discover/people")
async def people_you_may_play(
    city: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    current_user: Dict = Depends(get_current_user_id),
    service: DiscoveryService = Depends(get_discovery_service)
):
    return success_response({"people": service.people_you_may_play(current_user["id"], city, limit)})


@router.get("/discover/trending")
async def get_trending(
    type: TrendingType = "all",
    limit: int = Query(20, ge=1, le=100),
    current_user: Dict = Depends(get_current_user_id),
    service: DiscoveryService = Depends(get_discovery_service)
):
    return success_response(service.get_trending(current_user["id"], type, limit))


@router.get("/discover/search")
async def search(
    q: str = "",
    type: SearchType = "all",
    limit: int = Query(20, ge=1, le=100),
    current_user: Dict = Depends(get_current_user_id),
    service: DiscoveryService = Depends(get_discovery_service)
):
    return success_response(service.search(current_user["id"], q, type, limit))


@router.get("/recommendations")
async def list_recommendations(
    type: Optional[RecommendationKind] = None,
    limit: int = Query(10, ge=1, le=50),
    include_shown: bool = False,
    current_user: Dict = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service)
):
    return success_response(service.list_recommendations(current_user["id"], type, limit, include_shown))


@router.post("/recommendations", status_code=201)
async def generate_recommendations(
    request: GenerateRecommendationsRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service)
):
    result = service.request_recommendations(request, current_user)
    message = result.pop("message", None)
    return success_response(result, message or "Recommendations generated")


@router.post("/recommendations/feedback")
async def recommendation_feedback(
    feedback: RecommendationFeedback,
    current_user: Dict = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service)
):
    return success_response(service.record_feedback(feedback, current_user["id"]), "Feedback recorded")
