"""
Tournament notification triggers.

Every trigger is best effort: it runs as a FastAPI background task, logs
delivery failures and never raises into the request that scheduled it.
Channel delivery honours preferences.notifications.{email,whatsapp}.
"""

import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from app.config.settings import settings
from app.modules.notifications.email import EmailService, get_email_service
from app.modules.notifications.service import NotificationService
from app.modules.notifications.whatsapp import WhatsAppService, get_whatsapp_service

logger = logging.getLogger(__name__)

PROFILE_FIELDS = "id, name, email, phone, preferences"


def channel_enabled(profile: Optional[dict], channel: str) -> bool:
    """A channel is on unless the player explicitly switched it off"""
    if not profile:
        return False
    preferences = profile.get("preferences") or {}
    notifications = preferences.get("notifications") or {}
    return notifications.get(channel) is not False


class TournamentNotifier:
    def __init__(
        self,
        supabase: Client,
        email: Optional[EmailService] = None,
        whatsapp: Optional[WhatsAppService] = None,
    ):
        self.supabase = supabase
        self.email = email or get_email_service()
        self.whatsapp = whatsapp or get_whatsapp_service()
        self.notifications = NotificationService(supabase)

    def _tournament_url(self, tournament_id: str, suffix: str = "") -> str:
        return f"{settings.app_url}/tournaments/{tournament_id}{suffix}"

    def _get_tournament(self, tournament_id: str) -> Optional[dict]:
        result = self.supabase.table("tournament")\
            .select("*")\
            .eq("id", tournament_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def _get_profiles(self, user_ids: List[str]) -> List[dict]:
        if not user_ids:
            return []
        result = self.supabase.table("user_profile")\
            .select(PROFILE_FIELDS)\
            .in_("id", list(dict.fromkeys(user_ids)))\
            .execute()
        return result.data or []

    def _participant_ids(self, tournament_id: str, status: str) -> List[str]:
        result = self.supabase.table("tournament_participant")\
            .select("user_id")\
            .eq("tournament_id", tournament_id)\
            .eq("status", status)\
            .execute()
        return [p["user_id"] for p in result.data or []]

    def _deliver(
        self,
        profiles: List[dict],
        template_id: str,
        variables: Dict[str, Any],
        whatsapp_body: Optional[str] = None,
        in_app: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Send to each profile over its enabled channels; returns deliveries that succeeded"""
        sent = 0
        for profile in profiles:
            if in_app:
                self.notifications.create(profile["id"], "tournament", in_app["title"], in_app["message"], in_app.get("data"))
            if channel_enabled(profile, "email") and profile.get("email"):
                personal = {**variables, "name": profile.get("name")}
                if self.email.send_template(template_id, profile["email"], personal).success:
                    sent += 1
            if whatsapp_body and channel_enabled(profile, "whatsapp") and profile.get("phone"):
                if self.whatsapp.send(profile["phone"], whatsapp_body).success:
                    sent += 1
        return sent

    def tournament_published(self, tournament_id: str) -> None:
        try:
            tournament = self._get_tournament(tournament_id)
            if not tournament:
                return
            org_result = self.supabase.table("organization")\
                .select("name")\
                .eq("id", tournament["org_id"])\
                .limit(1)\
                .execute()
            org_name = org_result.data[0]["name"] if org_result.data else None
            members = self.supabase.table("org_member")\
                .select("user_id")\
                .eq("org_id", tournament["org_id"])\
                .execute()
            profiles = self._get_profiles([m["user_id"] for m in members.data or []])
            sent = self._deliver(profiles, "tournament-published", {
                "org_name": org_name,
                "tournament_name": tournament["name"],
                "tournament_type": tournament.get("type"),
                "starts_at": tournament.get("starts_at"),
                "tournament_url": self._tournament_url(tournament_id),
            })
            logger.info(f"Tournament published notification sent for {tournament_id} ({sent} deliveries)")
        except Exception as e:
            logger.error(f"Failed tournament published notification for {tournament_id}: {e}")

    def registration_confirmed(self, tournament_id: str, user_id: str) -> None:
        try:
            tournament = self._get_tournament(tournament_id)
            if not tournament:
                return
            body = (
                f"Registration confirmed!\n\nYou are entered in: {tournament['name']}\n"
                f"Date: {tournament.get('starts_at')}\n\n"
                "Remember to check in before the start. See you on the court!"
            )
            self._deliver(
                self._get_profiles([user_id]),
                "registration-confirmed",
                {
                    "tournament_name": tournament["name"],
                    "tournament_type": tournament.get("type"),
                    "starts_at": tournament.get("starts_at"),
                    "tournament_url": self._tournament_url(tournament_id),
                },
                whatsapp_body=body,
                in_app={
                    "title": "Registration confirmed",
                    "message": f"You are registered for {tournament['name']}",
                    "data": {"tournament_id": tournament_id},
                },
            )
            logger.info(f"Registration confirmed for user {user_id} in tournament {tournament_id}")
        except Exception as e:
            logger.error(f"Failed registration notification for {user_id} in {tournament_id}: {e}")

    def tournament_started(self, tournament_id: str) -> None:
        try:
            tournament = self._get_tournament(tournament_id)
            if not tournament:
                return
            profiles = self._get_profiles(self._participant_ids(tournament_id, "checked_in"))
            board_url = self._tournament_url(tournament_id, "/board")
            body = f"{tournament['name']} starts now!\n\nCheck the rotation board for your first match:\n{board_url}\n\nGood luck!"
            self._deliver(
                profiles,
                "tournament-started",
                {"tournament_name": tournament["name"], "tournament_url": board_url},
                whatsapp_body=body,
                in_app={
                    "title": "Tournament started",
                    "message": f"{tournament['name']} has started",
                    "data": {"tournament_id": tournament_id},
                },
            )
            logger.info(f"Tournament start notification sent to {len(profiles)} participants")
        except Exception as e:
            logger.error(f"Failed tournament start notification for {tournament_id}: {e}")

    def round_started(self, tournament_id: str, round_number: int, matches: List[dict]) -> None:
        try:
            court_ids = [m["court_id"] for m in matches if m.get("court_id")]
            courts = {}
            if court_ids:
                court_result = self.supabase.table("court")\
                    .select("id, name")\
                    .in_("id", court_ids)\
                    .execute()
                courts = {c["id"]: c["name"] for c in court_result.data or []}
            player_court = {}
            for match in matches:
                for key in ("team1_player1_id", "team1_player2_id", "team2_player1_id", "team2_player2_id"):
                    if match.get(key):
                        player_court[match[key]] = courts.get(match.get("court_id"), "TBD")
            for profile in self._get_profiles(list(player_court)):
                court_name = player_court.get(profile["id"], "TBD")
                message = f"Round {round_number} is ready. Court: {court_name}"
                self.notifications.create(profile["id"], "tournament", "Your match is ready", message, {
                    "tournament_id": tournament_id,
                    "round_number": round_number,
                })
                if channel_enabled(profile, "whatsapp") and profile.get("phone"):
                    self.whatsapp.send(profile["phone"], f"Your match is ready!\n\n{message}\n\nGood luck!")
            logger.info(f"Round {round_number} start notifications sent for {tournament_id}")
        except Exception as e:
            logger.error(f"Failed round start notification for {tournament_id}: {e}")

    def score_submitted(self, tournament_id: str, match: dict, submitted_by: str) -> None:
        try:
            player_ids = [
                match.get(key) for key in ("team1_player1_id", "team1_player2_id", "team2_player1_id", "team2_player2_id")
            ]
            recipients = [p for p in dict.fromkeys(player_ids) if p and p != submitted_by]
            score = f"{match.get('team1_score')} - {match.get('team2_score')}"
            for profile in self._get_profiles(recipients):
                self.notifications.create(profile["id"], "tournament", "Score submitted", f"Final score: {score}", {
                    "tournament_id": tournament_id,
                    "match_id": match.get("id"),
                })
                if channel_enabled(profile, "whatsapp") and profile.get("phone"):
                    self.whatsapp.send(profile["phone"], f"Score submitted for your match: {score}")
            logger.info(f"Score notification sent for match {match.get('id')}")
        except Exception as e:
            logger.error(f"Failed score notification for match {match.get('id')}: {e}")

    def tournament_completed(self, tournament_id: str, final_standings: List[dict]) -> None:
        try:
            tournament = self._get_tournament(tournament_id)
            if not tournament:
                return
            top_three = sorted(final_standings, key=lambda s: s.get("rank") or 0)[:3]
            profiles = self._get_profiles([s["user_id"] for s in final_standings])
            names = {p["id"]: p.get("name") for p in profiles}
            podium = [{"rank": s.get("rank"), "user_id": s["user_id"], "name": names.get(s["user_id"])} for s in top_three]
            lines = "\n".join(f"#{p['rank']} {p['name'] or p['user_id']}" for p in podium)
            self._deliver(
                profiles,
                "tournament-completed",
                {
                    "tournament_name": tournament["name"],
                    "podium": podium,
                    "tournament_url": self._tournament_url(tournament_id, "/standings"),
                },
                whatsapp_body=f"{tournament['name']} is over!\n\nFinal standings:\n{lines}",
                in_app={
                    "title": "Tournament completed",
                    "message": f"{tournament['name']} is over. Check the final standings.",
                    "data": {"tournament_id": tournament_id},
                },
            )
            logger.info(f"Tournament completed notification sent for {tournament_id}")
        except Exception as e:
            logger.error(f"Failed tournament completed notification for {tournament_id}: {e}")

    def checkin_reminder(self, tournament: dict, profile: dict) -> int:
        """Remind one registered player; returns the number of channels that delivered"""
        message = (
            f"{tournament['name']} starts soon. Check-in closes at {tournament.get('check_in_closes_at')}. "
            "Open the app at the venue to check in."
        )
        return self._deliver(
            [profile],
            "checkin-reminder",
            {"tournament_name": tournament["name"], "message": message},
            whatsapp_body=f"Check-in reminder\n\n{message}",
        )
