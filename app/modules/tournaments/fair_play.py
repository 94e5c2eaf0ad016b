from supabase import Client
from app.core.dependencies import is_org_admin
from app.modules.tournaments.schemas import FairPlayIncidentCreate, FairPlayIncidentUpdate
from app.modules.tournaments.service import TournamentService
from typing import Dict, List, Optional
from fastapi import HTTPException
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

FAIR_PLAY_SELECT = (
    "*, user_profile:user_id (name, avatar_url), "
    "issuer_profile:issued_by (name, avatar_url)"
)


def incident_points(
    incident_type: str,
    severity: int,
    penalty_points: Optional[int] = None,
    bonus_points: Optional[int] = None,
) -> Dict[str, int]:
    """Positive conduct earns a bonus (default: severity), anything else costs a penalty (default: 2x severity)"""
    if incident_type == "positive_conduct":
        return {"penalty_points": 0, "bonus_points": bonus_points if bonus_points is not None else severity}
    return {"penalty_points": penalty_points if penalty_points is not None else severity * 2, "bonus_points": 0}


def standing_adjustment(incident: dict, sign: int = 1) -> Dict[str, int]:
    """Counter deltas an incident applies to its player's standing; sign=-1 reverts it"""
    bonus = incident.get("bonus_points") or 0
    penalty = incident.get("penalty_points") or 0
    return {
        "fair_play_points": sign * (bonus - penalty),
        "yellow_cards": sign if incident.get("incident_type") == "yellow_card" else 0,
        "red_cards": sign if incident.get("incident_type") == "red_card" else 0,
        "conduct_bonus": sign * bonus,
    }


def apply_adjustment(standing: dict, adjustment: Dict[str, int]) -> Dict[str, int]:
    return {field: (standing.get(field) or 0) + delta for field, delta in adjustment.items()}


class FairPlayService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.tournaments = TournamentService(supabase)

    def _adjust_standing(self, tournament_id: str, user_id: str, adjustment: Dict[str, int]) -> None:
        result = self.supabase.table("tournament_standing")\
            .select("*")\
            .eq("tournament_id", tournament_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        if not result.data:
            # Standings are created when the tournament starts
            return
        self.supabase.table("tournament_standing")\
            .update({**apply_adjustment(result.data[0], adjustment), "updated_at": datetime.utcnow().isoformat()})\
            .eq("tournament_id", tournament_id)\
            .eq("user_id", user_id)\
            .execute()

    def _get_incident(self, incident_id: str) -> dict:
        result = self.supabase.table("tournament_fair_play")\
            .select("*")\
            .eq("id", incident_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Incident not found")
        return result.data[0]

    def _check_can_modify(self, tournament: dict, incident: dict, user_data: dict) -> None:
        if incident.get("issued_by") == user_data["id"]:
            return
        if not is_org_admin(tournament["org_id"], user_data, self.supabase):
            raise HTTPException(status_code=403, detail="Only the issuer or an organization admin can change this incident")

    def create_incident(self, tournament_id: str, incident: FairPlayIncidentCreate, user_data: dict) -> dict:
        tournament = self.tournaments.get_tournament(tournament_id)
        self.tournaments.require_admin(tournament, user_data)

        participant = self.supabase.table("tournament_participant")\
            .select("id")\
            .eq("tournament_id", tournament_id)\
            .eq("user_id", incident.user_id)\
            .limit(1)\
            .execute()
        if not participant.data:
            raise HTTPException(status_code=400, detail="User is not a tournament participant")

        points = incident_points(incident.incident_type, incident.severity, incident.penalty_points, incident.bonus_points)
        try:
            result = self.supabase.table("tournament_fair_play").insert({
                "tournament_id": tournament_id,
                "user_id": incident.user_id,
                "match_id": incident.match_id,
                "incident_type": incident.incident_type,
                "severity": incident.severity,
                "description": incident.description,
                **points,
                "issued_by": user_data["id"],
                "issued_at": datetime.utcnow().isoformat(),
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create incident")
            created = result.data[0]
            self._adjust_standing(tournament_id, incident.user_id, standing_adjustment(created))
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating fair play incident in {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create incident")

        logger.info(f"Fair play {incident.incident_type} issued to {incident.user_id} in {tournament_id}")
        return created

    def list_incidents(self, tournament_id: str, user_id: Optional[str] = None) -> List[dict]:
        self.tournaments.get_tournament(tournament_id)
        try:
            query = self.supabase.table("tournament_fair_play")\
                .select(FAIR_PLAY_SELECT)\
                .eq("tournament_id", tournament_id)
            if user_id:
                query = query.eq("user_id", user_id)
            result = query.order("issued_at", desc=True).execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Error listing fair play incidents for {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch incidents")

    def update_incident(self, incident_id: str, update: FairPlayIncidentUpdate, user_data: dict) -> dict:
        current = self._get_incident(incident_id)
        tournament_id = current["tournament_id"]
        tournament = self.tournaments.get_tournament(tournament_id)
        self._check_can_modify(tournament, current, user_data)

        changes = update.model_dump(exclude_unset=True)
        merged = {**current, **changes}
        points_changed = any(k in changes for k in ("incident_type", "severity", "penalty_points", "bonus_points"))
        if points_changed:
            # Defaults are recomputed unless the caller pinned the points
            points = incident_points(
                merged["incident_type"],
                merged["severity"],
                changes.get("penalty_points"),
                changes.get("bonus_points"),
            )
            changes.update(points)
            merged.update(points)

        try:
            result = self.supabase.table("tournament_fair_play")\
                .update(changes)\
                .eq("id", incident_id)\
                .execute()
            if points_changed:
                reverted = standing_adjustment(current, -1)
                applied = standing_adjustment(merged)
                delta = {field: reverted[field] + applied[field] for field in reverted}
                self._adjust_standing(tournament_id, current["user_id"], delta)
            return result.data[0] if result.data else merged
        except Exception as e:
            logger.error(f"Error updating fair play incident {incident_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update incident")

    def delete_incident(self, incident_id: str, user_data: dict) -> None:
        current = self._get_incident(incident_id)
        tournament_id = current["tournament_id"]
        tournament = self.tournaments.get_tournament(tournament_id)
        self._check_can_modify(tournament, current, user_data)
        try:
            self.supabase.table("tournament_fair_play")\
                .delete()\
                .eq("id", incident_id)\
                .execute()
            self._adjust_standing(tournament_id, current["user_id"], standing_adjustment(current, -1))
        except Exception as e:
            logger.error(f"Error deleting fair play incident {incident_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete incident")
