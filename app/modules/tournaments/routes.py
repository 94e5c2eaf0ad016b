from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from app.database.supabase_client import get_supabase
from app.modules.tournaments.schemas import (
    CheckInRequest,
    FairPlayIncidentCreate,
    FairPlayIncidentUpdate,
    GenerateBracketRequest,
    NearbyFilter,
    ScoreSubmission,
    StartTournamentRequest,
    TournamentCreate,
    TournamentStatus,
    TournamentUpdate,
)
from app.modules.tournaments.service import TournamentService
from app.modules.tournaments.rounds import RoundService
from app.modules.tournaments.fair_play import FairPlayService
from app.modules.tournaments.engine.types import TournamentType
from app.modules.notifications.tournament_notifications import TournamentNotifier
from app.core.dependencies import get_current_user_id
from app.core.responses import success_response
from pydantic import ValidationError
from supabase import Client
from typing import Dict, Optional
from datetime import datetime

router = APIRouter(prefix="/tournaments", tags=["tournaments"])
fair_play_router = APIRouter(prefix="/fair-play", tags=["tournaments"])


def get_tournament_service(supabase: Client = Depends(get_supabase)) -> TournamentService:
    return TournamentService(supabase)


def get_round_service(supabase: Client = Depends(get_supabase)) -> RoundService:
    return RoundService(supabase)


def get_fair_play_service(supabase: Client = Depends(get_supabase)) -> FairPlayService:
    return FairPlayService(supabase)


def get_notifier(supabase: Client = Depends(get_supabase)) -> TournamentNotifier:
    return TournamentNotifier(supabase)


@router.get("")
async def list_tournaments(
    org_id: Optional[str] = None,
    status: Optional[TournamentStatus] = None,
    type: Optional[TournamentType] = None,
    starts_after: Optional[datetime] = None,
    starts_before: Optional[datetime] = None,
    nearby: Optional[str] = Query(None, description="lat,lng,radius_km"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: TournamentService = Depends(get_tournament_service)
):
    nearby_filter = None
    if nearby:
        try:
            nearby_filter = NearbyFilter.parse(nearby)
        except (ValueError, ValidationError):
            raise HTTPException(status_code=400, detail="nearby must be lat,lng,radius_km")
    return success_response(service.list_tournaments(
        org_id, status, type, starts_after, starts_before, nearby_filter, page, limit
    ))


@router.post("", status_code=201)
async def create_tournament(
    tournament_data: TournamentCreate,
    background_tasks: BackgroundTasks,
    current_user: Dict = Depends(get_current_user_id),
    service: TournamentService = Depends(get_tournament_service),
    notifier: TournamentNotifier = Depends(get_notifier)
):
    """Create a tournament (organization owner/admin only)"""
    tournament = service.create_tournament(tournament_data, current_user)
    if tournament.get("status") == "published":
        background_tasks.add_task(notifier.tournament_published, tournament["id"])
    return success_response({"tournament": tournament}, "Tournament created successfully")


@router.get("/{tournament_id}")
async def get_tournament(
    tournament_id: str,
    service: TournamentService = Depends(get_tournament_service)
):
    return success_response(service.get_tournament_details(tournament_id))


@router.put("/{tournament_id}")
async def update_tournament(
    tournament_id: str,
    tournament_data: TournamentUpdate,
    background_tasks: BackgroundTasks,
    current_user: Dict = Depends(get_current_user_id),
    service: TournamentService = Depends(get_tournament_service),
    notifier: TournamentNotifier = Depends(get_notifier)
):
    tournament = service.update_tournament(tournament_id, tournament_data, current_user)
    if tournament_data.status == "published":
        background_tasks.add_task(notifier.tournament_published, tournament_id)
    return success_response({"tournament": tournament}, "Tournament updated successfully")


@router.delete("/{tournament_id}")
async def cancel_tournament(
    tournament_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: TournamentService = Depends(get_tournament_service)
):
    """Cancel a tournament (soft delete)"""
    return success_response({"tournament": service.cancel_tournament(tournament_id, current_user)}, "Tournament cancelled")


@router.post("/{tournament_id}/join", status_code=201)
async def join_tournament(
    tournament_id: str,
    background_tasks: BackgroundTasks,
    current_user: Dict = Depends(get_current_user_id),
    service: TournamentService = Depends(get_tournament_service),
    notifier: TournamentNotifier = Depends(get_notifier)
):
    participant = service.join_tournament(tournament_id, current_user["id"])
    background_tasks.add_task(notifier.registration_confirmed, tournament_id, current_user["id"])
    return success_response({"participant": participant}, "Successfully joined tournament")


@router.post("/{tournament_id}/leave")
async def leave_tournament(
    tournament_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: TournamentService = Depends(get_tournament_service)
):
    participant = service.leave_tournament(tournament_id, current_user["id"])
    return success_response({"participant": participant}, "Successfully left tournament")


@router.post("/{tournament_id}/check-in")
async def check_in(
    tournament_id: str,
    request: CheckInRequest,
    current_user: Dict = Depends(get_current_user_id),
    service: TournamentService = Depends(get_tournament_service)
):
    participant = service.check_in(tournament_id, current_user["id"], request.lat, request.lng)
    return success_response({"participant": participant}, "Successfully checked in")


@router.post("/{tournament_id}/start")
async def start_tournament(
    tournament_id: str,
    background_tasks: BackgroundTasks,
    request: Optional[StartTournamentRequest] = None,
    current_user: Dict = Depends(get_current_user_id),
    service: RoundService = Depends(get_round_service),
    notifier: TournamentNotifier = Depends(get_notifier)
):
    """Start a round-based tournament and generate its first round"""
    result = service.start_tournament(tournament_id, request or StartTournamentRequest(), current_user)
    background_tasks.add_task(notifier.tournament_started, tournament_id)
    background_tasks.add_task(notifier.round_started, tournament_id, 1, result["matches"])
    return success_response(result, "Tournament started successfully")


@router.post("/{tournament_id}/rounds/{round_id}/matches/{match_id}/score")
async def submit_score(
    tournament_id: str,
    round_id: str,
    match_id: str,
    score: ScoreSubmission,
    background_tasks: BackgroundTasks,
    current_user: Dict = Depends(get_current_user_id),
    service: RoundService = Depends(get_round_service),
    notifier: TournamentNotifier = Depends(get_notifier)
):
    result = service.submit_score(tournament_id, round_id, match_id, score, current_user)
    background_tasks.add_task(notifier.score_submitted, tournament_id, result["match"], current_user["id"])
    return success_response(result, "Score submitted successfully")


@router.post("/{tournament_id}/rounds/{round_id}/complete")
async def complete_round(
    tournament_id: str,
    round_id: str,
    background_tasks: BackgroundTasks,
    current_user: Dict = Depends(get_current_user_id),
    service: RoundService = Depends(get_round_service),
    notifier: TournamentNotifier = Depends(get_notifier)
):
    result = service.complete_round(tournament_id, round_id, current_user)
    if result.get("tournament_complete"):
        background_tasks.add_task(notifier.tournament_completed, tournament_id, result["final_standings"])
        return success_response(result, "Tournament completed")
    background_tasks.add_task(
        notifier.round_started, tournament_id, result["next_round"]["round_number"], result["next_matches"]
    )
    return success_response(result, "Round completed successfully")


@router.get("/{tournament_id}/standings")
async def get_standings(
    tournament_id: str,
    service: TournamentService = Depends(get_tournament_service)
):
    return success_response({"standings": service.get_standings(tournament_id)})


@router.get("/{tournament_id}/rounds/current")
async def get_current_round(
    tournament_id: str,
    service: TournamentService = Depends(get_tournament_service)
):
    """Current round with its matches and the court rotation board"""
    return success_response(service.get_current_round(tournament_id))


@router.post("/{tournament_id}/generate/knockout")
async def generate_knockout(
    tournament_id: str,
    request: GenerateBracketRequest,
    background_tasks: BackgroundTasks,
    current_user: Dict = Depends(get_current_user_id),
    service: RoundService = Depends(get_round_service),
    notifier: TournamentNotifier = Depends(get_notifier)
):
    result = service.generate_knockout(tournament_id, request, current_user)
    background_tasks.add_task(notifier.tournament_started, tournament_id)
    return success_response(result, "Knockout bracket generated successfully")


@router.post("/{tournament_id}/generate/compass")
async def generate_compass(
    tournament_id: str,
    request: GenerateBracketRequest,
    background_tasks: BackgroundTasks,
    current_user: Dict = Depends(get_current_user_id),
    service: RoundService = Depends(get_round_service),
    notifier: TournamentNotifier = Depends(get_notifier)
):
    result = service.generate_compass(tournament_id, request, current_user)
    background_tasks.add_task(notifier.tournament_started, tournament_id)
    return success_response(result, "Compass draw generated successfully")


@router.post("/{tournament_id}/fair-play", status_code=201)
async def create_fair_play_incident(
    tournament_id: str,
    incident: FairPlayIncidentCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: FairPlayService = Depends(get_fair_play_service)
):
    """Record a fair play incident (organization owner/admin only)"""
    created = service.create_incident(tournament_id, incident, current_user)
    return success_response({"incident": created}, "Incident recorded")


@router.get("/{tournament_id}/fair-play")
async def list_fair_play_incidents(
    tournament_id: str,
    user_id: Optional[str] = None,
    current_user: Dict = Depends(get_current_user_id),
    service: FairPlayService = Depends(get_fair_play_service)
):
    return success_response({"incidents": service.list_incidents(tournament_id, user_id)})


@fair_play_router.put("/{incident_id}")
async def update_fair_play_incident(
    incident_id: str,
    update: FairPlayIncidentUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: FairPlayService = Depends(get_fair_play_service)
):
    return success_response({"incident": service.update_incident(incident_id, update, current_user)}, "Incident updated")


@fair_play_router.delete("/{incident_id}")
async def delete_fair_play_incident(
    incident_id: str,
    current_user: Dict = Depends(get_current_user_id),
    service: FairPlayService = Depends(get_fair_play_service)
):
    service.delete_incident(incident_id, current_user)
    return success_response(None, "Incident deleted")
