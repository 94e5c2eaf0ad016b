from supabase import Client
from app.core.dependencies import check_org_admin
from app.core.time_utils import parse_timestamp
from app.modules.subscriptions.usage import UsageLimiter
from app.modules.tournaments.engine.geofencing import (
    calculate_distance,
    get_geofence_bounding_box,
    validate_geofence,
)
from app.modules.tournaments.engine.types import BYE, Match, Participant, Standing, is_placeholder
from app.modules.tournaments.schemas import NearbyFilter, TournamentCreate, TournamentUpdate
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
from datetime import datetime
import math
import logging

logger = logging.getLogger(__name__)

PLAYER_SLOTS = ("team1_player1_id", "team1_player2_id", "team2_player1_id", "team2_player2_id")
MATCH_FIELDS = PLAYER_SLOTS + (
    "id",
    "round_id",
    "court_id",
    "team1_score",
    "team2_score",
    "winner_team",
    "is_draw",
    "status",
    "bracket_position",
)
PLAYER_SELECT = "id, name, avatar_url"
MATCH_SELECT = (
    "*, court:court(id, name), "
    f"team1_player1:user_profile!team1_player1_id({PLAYER_SELECT}), "
    f"team1_player2:user_profile!team1_player2_id({PLAYER_SELECT}), "
    f"team2_player1:user_profile!team2_player1_id({PLAYER_SELECT}), "
    f"team2_player2:user_profile!team2_player2_id({PLAYER_SELECT})"
)
ACTIVE_PARTICIPANT_STATUSES = ["registered", "checked_in", "no_show"]


def match_from_row(row: dict) -> Match:
    match = Match(**{k: row[k] for k in MATCH_FIELDS if row.get(k) is not None})
    for number in (1, 2):
        if row.get(f"team{number}_bye"):
            match.set_team(number, [BYE, BYE])
    return match


def match_to_row(match: Match) -> dict:
    row = {slot: None if is_placeholder(getattr(match, slot)) else getattr(match, slot) for slot in PLAYER_SLOTS}
    row.update({
        "team1_bye": match.team1_player1_id == BYE,
        "team2_bye": match.team2_player1_id == BYE,
        "court_id": match.court_id,
        "bracket_position": match.bracket_position,
        "team1_score": match.team1_score,
        "team2_score": match.team2_score,
        "winner_team": match.winner_team,
        "is_draw": match.is_draw,
        "status": match.status,
    })
    return row


def standing_to_row(standing: Standing, tournament_id: str) -> dict:
    row = standing.model_dump()
    row["tournament_id"] = tournament_id
    row["updated_at"] = datetime.utcnow().isoformat()
    return row


def empty_standing_row(tournament_id: str, user_id: str) -> dict:
    return standing_to_row(Standing(user_id=user_id), tournament_id)


def participants_from_rows(rows: List[dict]) -> List[Participant]:
    return [Participant(**{k: v for k, v in row.items() if k in ("id", "user_id", "tournament_id", "status")}) for row in rows]


class TournamentService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_tournament(self, tournament_id: str) -> dict:
        try:
            result = self.supabase.table("tournament")\
                .select("*")\
                .eq("id", tournament_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching tournament {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch tournament")
        if not result.data:
            raise HTTPException(status_code=404, detail="Tournament not found")
        return result.data[0]

    def require_admin(self, tournament: dict, user_data: dict) -> None:
        check_org_admin(tournament["org_id"], user_data, self.supabase)

    def list_tournaments(
        self,
        org_id: Optional[str] = None,
        status: Optional[str] = None,
        type: Optional[str] = None,
        starts_after: Optional[datetime] = None,
        starts_before: Optional[datetime] = None,
        nearby: Optional[NearbyFilter] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        try:
            query = self.supabase.table("tournament").select("*", count="exact")
            if org_id:
                query = query.eq("org_id", org_id)
            if status:
                query = query.eq("status", status)
            if type:
                query = query.eq("type", type)
            if starts_after:
                query = query.gte("starts_at", starts_after.isoformat())
            if starts_before:
                query = query.lte("starts_at", starts_before.isoformat())

            offset = (page - 1) * limit
            if nearby is None:
                result = query.order("starts_at")\
                    .range(offset, offset + limit - 1)\
                    .execute()
                tournaments = result.data or []
                total = result.count or 0
            else:
                # Box filter in the database, exact radius here, then paginate
                box = get_geofence_bounding_box(nearby.lat, nearby.lng, nearby.radius_km * 1000)
                result = query.gte("location_lat", box["sw"]["lat"])\
                    .lte("location_lat", box["ne"]["lat"])\
                    .gte("location_lng", box["sw"]["lng"])\
                    .lte("location_lng", box["ne"]["lng"])\
                    .order("starts_at")\
                    .execute()
                within = []
                for tournament in result.data or []:
                    if tournament.get("location_lat") is None or tournament.get("location_lng") is None:
                        continue
                    distance = calculate_distance(nearby.lat, nearby.lng, tournament["location_lat"], tournament["location_lng"])
                    if distance <= nearby.radius_km * 1000:
                        within.append({**tournament, "distance_km": round(distance / 1000, 2)})
                total = len(within)
                tournaments = within[offset:offset + limit]

            return {
                "tournaments": tournaments,
                "pagination": {
                    "page": page,
                    "limit": limit,
                    "total": total,
                    "pages": math.ceil(total / limit) if limit else 0,
                },
            }
        except Exception as e:
            logger.error(f"Error listing tournaments: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch tournaments")

    def create_tournament(self, tournament_data: TournamentCreate, user_data: dict) -> dict:
        check_org_admin(tournament_data.org_id, user_data, self.supabase)
        usage = UsageLimiter(self.supabase)
        usage.enforce(user_data["id"], "tournament_created")
        try:
            result = self.supabase.table("tournament").insert({
                **tournament_data.model_dump(mode="json"),
                "created_by": user_data["id"],
                "format_settings": {},
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create tournament")
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating tournament: {e}")
            raise HTTPException(status_code=500, detail="Failed to create tournament")
        tournament = result.data[0]
        usage.increment_usage(user_data["id"], "tournament_created", {"tournament_id": tournament["id"]})
        logger.info(f"Tournament {tournament['id']} created by {user_data['id']}")
        return tournament

    def get_tournament_details(self, tournament_id: str) -> dict:
        tournament = self.get_tournament(tournament_id)
        try:
            participants = self.supabase.table("tournament_participant")\
                .select(f"*, user:user_profile!user_id({PLAYER_SELECT}, level)")\
                .eq("tournament_id", tournament_id)\
                .order("registered_at")\
                .execute()
            standings = self.supabase.table("tournament_standing")\
                .select(f"*, user:user_profile!user_id({PLAYER_SELECT})")\
                .eq("tournament_id", tournament_id)\
                .order("rank")\
                .execute()
            current_round = self.supabase.table("tournament_round")\
                .select("*")\
                .eq("tournament_id", tournament_id)\
                .in_("status", ["pending", "in_progress"])\
                .order("round_number")\
                .limit(1)\
                .execute()
            matches = self.supabase.table("tournament_match")\
                .select("status")\
                .eq("tournament_id", tournament_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching tournament details {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch tournament")

        total = len(matches.data or [])
        completed = len([m for m in matches.data or [] if m.get("status") == "completed"])
        return {
            "tournament": tournament,
            "participants": participants.data or [],
            "standings": standings.data or [],
            "current_round": current_round.data[0] if current_round.data else None,
            "stats": {
                "total_matches": total,
                "completed_matches": completed,
                "progress_percentage": round(completed / total * 100) if total else 0,
            },
        }

    def update_tournament(self, tournament_id: str, tournament_data: TournamentUpdate, user_data: dict) -> dict:
        tournament = self.get_tournament(tournament_id)
        self.require_admin(tournament, user_data)
        if tournament["status"] != "draft":
            raise HTTPException(status_code=400, detail="Can only edit draft tournaments")

        update_data = tournament_data.model_dump(mode="json", exclude_unset=True)
        update_data["updated_at"] = datetime.utcnow().isoformat()
        try:
            result = self.supabase.table("tournament")\
                .update(update_data)\
                .eq("id", tournament_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Tournament not found")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error updating tournament {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update tournament")

    def cancel_tournament(self, tournament_id: str, user_data: dict) -> dict:
        tournament = self.get_tournament(tournament_id)
        self.require_admin(tournament, user_data)
        if tournament["status"] == "completed":
            raise HTTPException(status_code=400, detail="Cannot cancel a completed tournament")
        try:
            result = self.supabase.table("tournament")\
                .update({"status": "cancelled", "updated_at": datetime.utcnow().isoformat()})\
                .eq("id", tournament_id)\
                .execute()
            logger.info(f"Tournament {tournament_id} cancelled by {user_data['id']}")
            return result.data[0] if result.data else {**tournament, "status": "cancelled"}
        except Exception as e:
            logger.error(f"Error cancelling tournament {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to cancel tournament")

    def _get_participant(self, tournament_id: str, user_id: str) -> Optional[dict]:
        result = self.supabase.table("tournament_participant")\
            .select("*")\
            .eq("tournament_id", tournament_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def join_tournament(self, tournament_id: str, user_id: str) -> dict:
        tournament = self.get_tournament(tournament_id)
        if tournament["status"] != "published":
            raise HTTPException(status_code=400, detail="Tournament is not open for registration")
        try:
            existing = self._get_participant(tournament_id, user_id)
            if existing and existing["status"] != "withdrawn":
                raise HTTPException(status_code=409, detail="Already registered for this tournament")

            count_result = self.supabase.table("tournament_participant")\
                .select("id", count="exact")\
                .eq("tournament_id", tournament_id)\
                .neq("status", "withdrawn")\
                .execute()
            if (count_result.count or 0) >= tournament["max_participants"]:
                raise HTTPException(status_code=400, detail="Tournament is at full capacity")

            now = datetime.utcnow().isoformat()
            if existing:
                result = self.supabase.table("tournament_participant")\
                    .update({"status": "registered", "registered_at": now, "updated_at": now})\
                    .eq("id", existing["id"])\
                    .execute()
            else:
                result = self.supabase.table("tournament_participant").insert({
                    "tournament_id": tournament_id,
                    "user_id": user_id,
                    "status": "registered",
                    "registered_at": now,
                }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to join tournament")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error joining tournament {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to join tournament")

    def leave_tournament(self, tournament_id: str, user_id: str) -> dict:
        tournament = self.get_tournament(tournament_id)
        if tournament["status"] in ("in_progress", "completed"):
            raise HTTPException(status_code=400, detail="Cannot leave a tournament that has already started")
        try:
            participant = self._get_participant(tournament_id, user_id)
            if not participant or participant["status"] == "withdrawn":
                raise HTTPException(status_code=404, detail="Not registered for this tournament")
            result = self.supabase.table("tournament_participant")\
                .update({"status": "withdrawn", "updated_at": datetime.utcnow().isoformat()})\
                .eq("id", participant["id"])\
                .execute()
            return result.data[0] if result.data else {**participant, "status": "withdrawn"}
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error leaving tournament {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to leave tournament")

    def check_in(self, tournament_id: str, user_id: str, lat: float, lng: float, now: Optional[datetime] = None) -> dict:
        tournament = self.get_tournament(tournament_id)
        participant = self._get_participant(tournament_id, user_id)
        if not participant or participant["status"] == "withdrawn":
            raise HTTPException(status_code=403, detail="Not registered for this tournament")

        now = now or datetime.utcnow()
        opens_at = parse_timestamp(tournament.get("check_in_opens_at"))
        closes_at = parse_timestamp(tournament.get("check_in_closes_at"))
        if opens_at and now < opens_at:
            raise HTTPException(status_code=400, detail="Check-in has not opened yet")
        if closes_at and now > closes_at:
            raise HTTPException(status_code=400, detail="Check-in period has closed")
        if participant["status"] == "checked_in":
            raise HTTPException(status_code=400, detail="Already checked in")

        radius = tournament.get("geofence_radius_meters") or 100
        if tournament.get("location_lat") is not None and tournament.get("location_lng") is not None:
            valid, distance = validate_geofence(lat, lng, tournament["location_lat"], tournament["location_lng"], radius)
            if not valid:
                raise HTTPException(
                    status_code=400,
                    detail=f"You must be within {radius}m of the venue to check in. You are {distance}m away."
                )

        try:
            timestamp = now.isoformat()
            result = self.supabase.table("tournament_participant")\
                .update({
                    "status": "checked_in",
                    "checked_in_at": timestamp,
                    "checked_in_lat": lat,
                    "checked_in_lng": lng,
                    "updated_at": timestamp,
                })\
                .eq("id", participant["id"])\
                .execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to check in")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error checking in {user_id} to {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to check in")

    def get_standings(self, tournament_id: str) -> List[dict]:
        self.get_tournament(tournament_id)
        try:
            result = self.supabase.table("tournament_standing")\
                .select(f"*, user:user_profile!user_id({PLAYER_SELECT})")\
                .eq("tournament_id", tournament_id)\
                .order("rank")\
                .execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Error fetching standings for {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch standings")

    def get_current_round(self, tournament_id: str) -> dict:
        self.get_tournament(tournament_id)
        try:
            round_result = self.supabase.table("tournament_round")\
                .select("*")\
                .eq("tournament_id", tournament_id)\
                .in_("status", ["pending", "in_progress"])\
                .order("round_number")\
                .limit(1)\
                .execute()
            if not round_result.data:
                raise HTTPException(status_code=404, detail="No active round found")
            current = round_result.data[0]
            matches = self.supabase.table("tournament_match")\
                .select(MATCH_SELECT)\
                .eq("round_id", current["id"])\
                .execute()
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error fetching current round for {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch current round")

        match_rows = matches.data or []
        return {
            "round": current,
            "matches": match_rows,
            "rotation_board": [rotation_entry(m) for m in match_rows],
        }


def rotation_entry(match: Dict[str, Any]) -> dict:
    court = match.get("court") or {}
    return {
        "court_id": court.get("id") or match.get("court_id"),
        "court_name": court.get("name"),
        "match": {
            "id": match.get("id"),
            "team1": [match.get("team1_player1"), match.get("team1_player2")],
            "team2": [match.get("team2_player1"), match.get("team2_player2")],
            "team1_score": match.get("team1_score"),
            "team2_score": match.get("team2_score"),
            "status": match.get("status"),
        },
    }
