"""
Round lifecycle of a running tournament.

Formats that pair round by round (americano, mexicano, round robin, swiss and
the swiss phase of monrad) get one tournament_round per round, generated when
the previous one is completed. Bracket formats store the whole draw up front:
every bracket round becomes a tournament_round in play order, placeholder
slots stay NULL and byes are flagged, and results move players forward
through BracketAdvancement.
"""

from supabase import Client
from app.core.dependencies import is_org_admin
from app.core.responses import ApiError
from app.modules.courts.service import CourtService
from app.modules.tournaments.engine.bracket_advancement import (
    BracketAdvancement,
    BracketKey,
    bracket_play_order,
)
from app.modules.tournaments.engine.compass import generate_compass_draw, validate_compass_draw
from app.modules.tournaments.engine.court_rotation import assign_courts
from app.modules.tournaments.engine.knockout import (
    generate_double_elimination_bracket,
    generate_knockout_bracket,
    validate_double_elimination_bracket,
    validate_knockout_bracket,
)
from app.modules.tournaments.engine.monrad import generate_monrad_knockout, validate_monrad_config
from app.modules.tournaments.engine.tournament_engine import TournamentEngine, monrad_config_from_settings
from app.modules.tournaments.engine.types import (
    BRACKET_FORMATS,
    BracketRound,
    Court,
    KnockoutBracket,
    Match,
    MatchPairing,
    Participant,
    Standing,
    TournamentConfig,
    ValidationResult,
    checked_in_ids,
)
from app.modules.tournaments.schemas import GenerateBracketRequest, ScoreSubmission, StartTournamentRequest
from app.modules.tournaments.service import (
    TournamentService,
    empty_standing_row,
    match_from_row,
    match_to_row,
    participants_from_rows,
    standing_to_row,
)
from typing import Any, Dict, List, Optional, Tuple
from fastapi import HTTPException
from datetime import datetime
import uuid
import logging

logger = logging.getLogger(__name__)


def _setting(tournament: dict, key: str, default: int) -> int:
    value = tournament.get(key)
    return default if value is None else value


def tournament_config(tournament: dict) -> TournamentConfig:
    return TournamentConfig(
        type=tournament["type"],
        points_per_win=_setting(tournament, "points_per_win", 3),
        points_per_draw=_setting(tournament, "points_per_draw", 1),
        points_per_loss=_setting(tournament, "points_per_loss", 0),
        match_duration_minutes=_setting(tournament, "match_duration_minutes", 90),
        format_settings={**(tournament.get("settings") or {}), **(tournament.get("format_settings") or {})},
    )


def is_playable(match: MatchPairing) -> bool:
    return match.status != "completed" and match.is_team_decided(1) and match.is_team_decided(2)


def knockout_brackets(bracket: KnockoutBracket, main: str = "main") -> Dict[str, List[BracketRound]]:
    brackets = {main: bracket.rounds}
    if bracket.bronze_match is not None:
        brackets["third_place"] = [
            BracketRound(round_number=1, round_name="Third Place", matches=[bracket.bronze_match])
        ]
    return brackets


def build_draw(
    tournament_type: str,
    participants: List[Participant],
    request: GenerateBracketRequest,
) -> Tuple[Any, Dict[str, List[BracketRound]], ValidationResult]:
    """(draw as generated, rounds per bracket type, validation). Raises ValueError on bad input."""
    if tournament_type == "knockout_single":
        bracket = generate_knockout_bracket(participants, request.seeding, request.seed_order, request.bronze_match)
        return bracket, knockout_brackets(bracket), validate_knockout_bracket(bracket)
    if tournament_type == "knockout_double":
        draw = generate_double_elimination_bracket(participants, request.seeding, request.seed_order)
        brackets = {
            "winners": draw.winners.rounds,
            "losers": draw.losers,
            "grand_final": [BracketRound(round_number=1, round_name="Grand Final", matches=[draw.grand_final])],
        }
        return draw, brackets, validate_double_elimination_bracket(draw)
    draw = generate_compass_draw(participants, request.seeding, request.seed_order)
    brackets = {"main": draw.main.rounds}
    brackets.update({name: consolation.rounds for name, consolation in draw.consolation.items()})
    return draw, brackets, validate_compass_draw(draw)


class RoundService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.tournaments = TournamentService(supabase)

    # Loading

    def _participants(self, tournament_id: str) -> List[Participant]:
        result = self.supabase.table("tournament_participant")\
            .select("*")\
            .eq("tournament_id", tournament_id)\
            .neq("status", "withdrawn")\
            .order("registered_at")\
            .execute()
        return participants_from_rows(result.data or [])

    def _courts(self, tournament: dict, court_ids: Optional[List[str]] = None) -> List[Court]:
        rows = CourtService(self.supabase).get_active_courts(tournament["org_id"], court_ids)
        return [
            Court(id=row["id"], name=row.get("name") or "", org_id=row.get("org_id"), active=row.get("active", True))
            for row in rows
        ]

    def _round_rows(self, tournament_id: str) -> List[dict]:
        result = self.supabase.table("tournament_round")\
            .select("*")\
            .eq("tournament_id", tournament_id)\
            .order("round_number")\
            .execute()
        return result.data or []

    def _get_round(self, tournament_id: str, round_id: str) -> dict:
        result = self.supabase.table("tournament_round")\
            .select("*")\
            .eq("id", round_id)\
            .eq("tournament_id", tournament_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Round not found")
        return result.data[0]

    def _match_rows(self, tournament_id: str, round_id: Optional[str] = None) -> List[dict]:
        query = self.supabase.table("tournament_match")\
            .select("*")\
            .eq("tournament_id", tournament_id)
        if round_id:
            query = query.eq("round_id", round_id)
        return query.execute().data or []

    def _standings(self, tournament_id: str) -> List[Standing]:
        result = self.supabase.table("tournament_standing")\
            .select("*")\
            .eq("tournament_id", tournament_id)\
            .execute()
        return [Standing(**row) for row in result.data or []]

    def _ensure_no_rounds(self, tournament_id: str) -> None:
        result = self.supabase.table("tournament_round")\
            .select("id")\
            .eq("tournament_id", tournament_id)\
            .limit(1)\
            .execute()
        if result.data:
            raise HTTPException(status_code=400, detail="Tournament already has generated rounds")

    # Storing

    def _insert_round(self, tournament_id: str, round_number: int, name: str, status: str = "in_progress") -> dict:
        result = self.supabase.table("tournament_round").insert({
            "id": str(uuid.uuid4()),
            "tournament_id": tournament_id,
            "round_number": round_number,
            "name": name,
            "status": status,
            "starts_at": datetime.utcnow().isoformat() if status == "in_progress" else None,
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create round")
        return result.data[0]

    def _insert_matches(self, tournament_id: str, round_id: str, pairings: List[MatchPairing]) -> List[dict]:
        if not pairings:
            return []
        rows = [
            {**match_to_row(Match(**pairing.model_dump())), "id": str(uuid.uuid4()), "tournament_id": tournament_id, "round_id": round_id}
            for pairing in pairings
        ]
        result = self.supabase.table("tournament_match").insert(rows).execute()
        return result.data or rows

    def _init_standings(self, tournament_id: str, user_ids: List[str]) -> None:
        if not user_ids:
            return
        self.supabase.table("tournament_standing")\
            .upsert([empty_standing_row(tournament_id, user_id) for user_id in user_ids], on_conflict="tournament_id,user_id")\
            .execute()

    def _save_standings(self, tournament_id: str, standings: List[Standing]) -> List[dict]:
        rows = [standing_to_row(s, tournament_id) for s in standings]
        if rows:
            self.supabase.table("tournament_standing")\
                .upsert(rows, on_conflict="tournament_id,user_id")\
                .execute()
        return rows

    def _update_tournament(self, tournament_id: str, values: dict) -> dict:
        result = self.supabase.table("tournament")\
            .update({**values, "updated_at": datetime.utcnow().isoformat()})\
            .eq("id", tournament_id)\
            .execute()
        return result.data[0] if result.data else values

    def _mark_no_shows(self, tournament_id: str) -> None:
        self.supabase.table("tournament_participant")\
            .update({"status": "no_show", "updated_at": datetime.utcnow().isoformat()})\
            .eq("tournament_id", tournament_id)\
            .eq("status", "registered")\
            .execute()

    # Starting

    def start_tournament(self, tournament_id: str, request: StartTournamentRequest, user_data: dict) -> dict:
        tournament = self.tournaments.get_tournament(tournament_id)
        self.tournaments.require_admin(tournament, user_data)
        if tournament["status"] != "published":
            raise HTTPException(status_code=400, detail="Tournament must be published before it can start")
        if tournament["type"] in BRACKET_FORMATS:
            raise HTTPException(status_code=400, detail="Bracket tournaments start by generating their bracket")
        self._ensure_no_rounds(tournament_id)

        participants = self._participants(tournament_id)
        courts = self._courts(tournament, request.court_ids)
        validation = TournamentEngine.validate_tournament_start(participants, courts)
        if not validation.valid:
            raise ApiError(400, "Cannot start tournament", {"errors": validation.errors, "warnings": validation.warnings})

        player_ids = checked_in_ids(participants)
        format_settings = {
            **(tournament.get("format_settings") or {}),
            "court_ids": [c.id for c in courts],
            "court_strategy": request.court_strategy,
        }
        if tournament["type"] == "monrad":
            monrad = monrad_config_from_settings({**(tournament.get("settings") or {}), **format_settings}, len(player_ids))
            monrad_check = validate_monrad_config(monrad, len(player_ids))
            if not monrad_check.valid:
                raise ApiError(400, "Cannot start tournament", {"errors": monrad_check.errors})
            format_settings["monrad"] = monrad.model_dump()

        config = tournament_config({**tournament, "format_settings": format_settings})
        try:
            pairings = TournamentEngine.generate_next_round(
                config, participants, 1, [], [], courts, request.court_strategy
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        try:
            round_row = self._insert_round(tournament_id, 1, "Round 1")
            match_rows = self._insert_matches(tournament_id, round_row["id"], pairings)
            self._init_standings(tournament_id, player_ids)
            self._mark_no_shows(tournament_id)
            self._update_tournament(tournament_id, {"status": "in_progress", "format_settings": format_settings})
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error starting tournament {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to start tournament")

        logger.info(f"Tournament {tournament_id} started with {len(player_ids)} players")
        return {"round": round_row, "matches": match_rows, "warnings": validation.warnings}

    # Brackets

    def generate_knockout(self, tournament_id: str, request: GenerateBracketRequest, user_data: dict) -> dict:
        return self._generate_bracket(
            tournament_id, request, user_data,
            ("knockout_single", "knockout_double"),
            "Tournament type must be knockout_single or knockout_double",
        )

    def generate_compass(self, tournament_id: str, request: GenerateBracketRequest, user_data: dict) -> dict:
        return self._generate_bracket(
            tournament_id, request, user_data, ("compass",), "Tournament type must be compass"
        )

    def _generate_bracket(
        self,
        tournament_id: str,
        request: GenerateBracketRequest,
        user_data: dict,
        allowed_types: Tuple[str, ...],
        type_error: str,
    ) -> dict:
        tournament = self.tournaments.get_tournament(tournament_id)
        self.tournaments.require_admin(tournament, user_data)
        if tournament["type"] not in allowed_types:
            raise HTTPException(status_code=400, detail=type_error)
        if tournament["status"] != "published":
            raise HTTPException(status_code=400, detail="Tournament must be published to generate a bracket")
        self._ensure_no_rounds(tournament_id)

        participants = self._participants(tournament_id)
        player_ids = checked_in_ids(participants)
        if not player_ids:
            raise HTTPException(status_code=400, detail="No checked-in participants found")

        try:
            draw, brackets, validation = build_draw(tournament["type"], participants, request)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if not validation.valid:
            raise ApiError(400, "Generated bracket is invalid", {"errors": validation.errors})

        courts = self._courts(tournament, request.court_ids)
        format_settings = {
            **(tournament.get("format_settings") or {}),
            "seeding": request.seeding,
            "bronze_match": request.bronze_match,
            "court_ids": [c.id for c in courts],
            "court_strategy": request.court_strategy,
        }
        try:
            round_rows, match_rows = self._persist_bracket(tournament, brackets, 1, courts, request.court_strategy)
            self._init_standings(tournament_id, player_ids)
            self._mark_no_shows(tournament_id)
            self._update_tournament(tournament_id, {"status": "in_progress", "format_settings": format_settings})
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error generating bracket for {tournament_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to generate bracket")

        logger.info(f"Bracket generated for {tournament_id}: {len(round_rows)} rounds, {len(match_rows)} matches")
        return {
            "bracket": draw.model_dump(),
            "rounds": round_rows,
            "matches": match_rows,
            "participants": len(player_ids),
        }

    def _persist_bracket(
        self,
        tournament: dict,
        brackets: Dict[str, List[BracketRound]],
        first_round_number: int,
        courts: List[Court],
        court_strategy: str = "balanced",
    ) -> Tuple[List[dict], List[dict]]:
        tournament_id = tournament["id"]
        matches: Dict[BracketKey, Match] = {}
        names: Dict[Tuple[str, int], str] = {}
        for bracket_type, rounds in brackets.items():
            for bracket_round in rounds:
                names[(bracket_type, bracket_round.round_number)] = bracket_round.round_name
                for index, pairing in enumerate(bracket_round.matches):
                    position = pairing.bracket_position if pairing.bracket_position is not None else index
                    data = pairing.model_dump()
                    data.update(id=str(uuid.uuid4()), bracket_position=position)
                    matches[(bracket_type, bracket_round.round_number, position)] = Match(**data)

        advancement = BracketAdvancement(tournament["type"], matches)
        advancement.resolve_walkovers()
        order = bracket_play_order(tournament["type"], advancement.rounds)

        now = datetime.utcnow().isoformat()
        round_ids: Dict[Tuple[str, int], str] = {}
        round_rows = []
        for index, (bracket_type, bracket_round) in enumerate(order):
            round_id = str(uuid.uuid4())
            round_ids[(bracket_type, bracket_round)] = round_id
            round_rows.append({
                "id": round_id,
                "tournament_id": tournament_id,
                "round_number": first_round_number + index,
                "name": names.get((bracket_type, bracket_round), f"Round {bracket_round}"),
                "bracket_type": bracket_type,
                "bracket_round": bracket_round,
                "status": "in_progress" if index == 0 else "pending",
                "starts_at": now if index == 0 else None,
            })

        opening = [k for k in sorted(matches) if k[:2] == order[0] and is_playable(matches[k])]
        if courts and opening:
            assigned = assign_courts([matches[k] for k in opening], courts, court_strategy, allow_waiting=True)
            for key, match in zip(opening, assigned):
                matches[key].court_id = match.court_id

        match_rows = []
        bracket_rows = []
        for key, match in sorted(matches.items()):
            match_rows.append({
                **match_to_row(match),
                "id": match.id,
                "tournament_id": tournament_id,
                "round_id": round_ids[key[:2]],
                "completed_at": now if match.status == "completed" else None,
            })
            bracket_rows.append({
                "tournament_id": tournament_id,
                "bracket_type": key[0],
                "round_number": key[1],
                "position": key[2],
                "match_id": match.id,
            })

        self.supabase.table("tournament_round").insert(round_rows).execute()
        self.supabase.table("tournament_match").insert(match_rows).execute()
        self.supabase.table("tournament_bracket").insert(bracket_rows).execute()
        return round_rows, match_rows

    def _bracket_state(self, tournament: dict) -> BracketAdvancement:
        rounds = {r["id"]: r for r in self._round_rows(tournament["id"]) if r.get("bracket_type")}
        matches: Dict[BracketKey, Match] = {}
        for row in self._match_rows(tournament["id"]):
            round_row = rounds.get(row.get("round_id"))
            if round_row is None or row.get("bracket_position") is None:
                continue
            matches[(round_row["bracket_type"], round_row["bracket_round"], row["bracket_position"])] = match_from_row(row)
        return BracketAdvancement(tournament["type"], matches)

    def _save_bracket_changes(self, advancement: BracketAdvancement) -> None:
        now = datetime.utcnow().isoformat()
        for key in sorted(advancement.changed):
            match = advancement.matches[key]
            row = match_to_row(match)
            if match.status == "completed":
                row["completed_at"] = now
            self.supabase.table("tournament_match")\
                .update(row)\
                .eq("id", match.id)\
                .execute()
        advancement.changed.clear()

    # Scores

    def submit_score(self, tournament_id: str, round_id: str, match_id: str, score: ScoreSubmission, user_data: dict) -> dict:
        tournament = self.tournaments.get_tournament(tournament_id)
        if tournament["status"] != "in_progress":
            raise HTTPException(status_code=400, detail="Tournament is not in progress")
        round_row = self._get_round(tournament_id, round_id)
        if round_row["status"] == "pending":
            raise HTTPException(status_code=400, detail="Round has not started yet")

        result = self.supabase.table("tournament_match")\
            .select("*")\
            .eq("id", match_id)\
            .eq("round_id", round_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Match not found")
        row = result.data[0]
        match = match_from_row(row)

        if user_data["id"] not in match.players() and not is_org_admin(tournament["org_id"], user_data, self.supabase):
            raise HTTPException(status_code=403, detail="Unauthorized to submit score")
        if match.status == "completed":
            raise HTTPException(status_code=400, detail="Score already submitted for this match")
        if not (match.is_team_decided(1) and match.is_team_decided(2)):
            raise HTTPException(status_code=400, detail="Match players are not decided yet")

        is_draw = score.team1_score == score.team2_score
        if is_draw and round_row.get("bracket_type"):
            raise HTTPException(status_code=400, detail="Bracket matches cannot end in a draw")

        match.team1_score = score.team1_score
        match.team2_score = score.team2_score
        match.is_draw = is_draw
        match.winner_team = None if is_draw else (1 if score.team1_score > score.team2_score else 2)
        match.status = "completed"

        try:
            updated = self.supabase.table("tournament_match")\
                .update({
                    "team1_score": match.team1_score,
                    "team2_score": match.team2_score,
                    "winner_team": match.winner_team,
                    "is_draw": match.is_draw,
                    "status": "completed",
                    "completed_at": datetime.utcnow().isoformat(),
                })\
                .eq("id", match_id)\
                .execute()

            standings = TournamentEngine.update_standings_for_match(
                match, self._standings(tournament_id), tournament_config(tournament)
            )
            standing_rows = self._save_standings(tournament_id, standings)

            if round_row.get("bracket_type"):
                advancement = self._bracket_state(tournament)
                key = (round_row["bracket_type"], round_row["bracket_round"], row["bracket_position"])
                # The stored row may lag behind the update above
                advancement.matches[key] = match.model_copy()
                advancement.record_result(key, match.winner_team)
                self._save_bracket_changes(advancement)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error submitting score for match {match_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to submit score")

        return {
            "match": updated.data[0] if updated.data else {**row, **match_to_row(match)},
            "standings": standing_rows,
        }

    # Completing rounds

    def complete_round(self, tournament_id: str, round_id: str, user_data: dict) -> dict:
        tournament = self.tournaments.get_tournament(tournament_id)
        self.tournaments.require_admin(tournament, user_data)
        if tournament["status"] != "in_progress":
            raise HTTPException(status_code=400, detail="Tournament is not in progress")
        round_row = self._get_round(tournament_id, round_id)
        if round_row["status"] == "completed":
            raise HTTPException(status_code=400, detail="Round already completed")
        if round_row["status"] == "pending":
            raise HTTPException(status_code=400, detail="Round has not started yet")

        match_rows = self._match_rows(tournament_id, round_id)
        if any(m.get("status") != "completed" for m in match_rows):
            raise HTTPException(status_code=400, detail="Not all matches in this round are completed")

        try:
            completed_round = self._close_round_row(round_row)
            if round_row.get("bracket_type"):
                return self._advance_bracket(tournament, completed_round)
            return self._advance_rounds(tournament, completed_round)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error completing round {round_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to complete round")

    def _close_round_row(self, round_row: dict) -> dict:
        result = self.supabase.table("tournament_round")\
            .update({"status": "completed", "ends_at": datetime.utcnow().isoformat()})\
            .eq("id", round_row["id"])\
            .execute()
        return result.data[0] if result.data else {**round_row, "status": "completed"}

    def _advance_rounds(self, tournament: dict, completed_round: dict) -> dict:
        tournament_id = tournament["id"]
        config = tournament_config(tournament)
        participants = self._participants(tournament_id)
        player_count = len(checked_in_ids(participants))
        total = TournamentEngine.total_rounds(config, player_count)
        round_number = completed_round["round_number"]

        if total is not None and round_number >= total:
            if tournament["type"] == "monrad":
                return self._start_monrad_knockout(tournament, completed_round, config)
            return self._finish(tournament, completed_round)

        previous = [match_from_row(row) for row in self._match_rows(tournament_id)]
        settings = config.format_settings
        courts = self._courts(tournament, settings.get("court_ids") or None)
        try:
            pairings = TournamentEngine.generate_next_round(
                config,
                participants,
                round_number + 1,
                previous,
                self._standings(tournament_id),
                courts,
                settings.get("court_strategy", "balanced"),
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        next_round = self._insert_round(tournament_id, round_number + 1, f"Round {round_number + 1}")
        next_matches = self._insert_matches(tournament_id, next_round["id"], pairings)
        return {"completed_round": completed_round, "next_round": next_round, "next_matches": next_matches}

    def _start_monrad_knockout(self, tournament: dict, completed_round: dict, config: TournamentConfig) -> dict:
        tournament_id = tournament["id"]
        settings = config.format_settings
        standings = sorted(self._standings(tournament_id), key=lambda s: s.rank or 0)
        monrad = monrad_config_from_settings(settings, len(standings))
        try:
            bracket = generate_monrad_knockout(monrad, standings, bool(settings.get("bronze_match")))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        courts = self._courts(tournament, settings.get("court_ids") or None)
        round_rows, match_rows = self._persist_bracket(
            tournament,
            knockout_brackets(bracket),
            completed_round["round_number"] + 1,
            courts,
            settings.get("court_strategy", "balanced"),
        )
        logger.info(f"Monrad tournament {tournament_id} moved to its knockout phase")
        first = round_rows[0]
        return {
            "completed_round": completed_round,
            "next_round": first,
            "next_matches": [m for m in match_rows if m["round_id"] == first["id"]],
            "phase": "knockout",
        }

    def _advance_bracket(self, tournament: dict, completed_round: dict) -> dict:
        advancement = self._bracket_state(tournament)
        advancement.close_round(completed_round["bracket_type"], completed_round["bracket_round"])
        self._save_bracket_changes(advancement)

        settings = tournament_config(tournament).format_settings
        for round_row in self._round_rows(tournament["id"]):
            if round_row["status"] != "pending":
                continue
            keys = [
                k for k in sorted(advancement.matches)
                if k[0] == round_row["bracket_type"] and k[1] == round_row["bracket_round"]
            ]
            if all(advancement.matches[k].status == "completed" for k in keys):
                # Decided entirely by walkovers
                self._close_round_row(round_row)
                advancement.close_round(round_row["bracket_type"], round_row["bracket_round"])
                self._save_bracket_changes(advancement)
                continue
            return self._activate_bracket_round(tournament, completed_round, round_row, advancement, keys, settings)

        return self._finish(tournament, completed_round)

    def _activate_bracket_round(
        self,
        tournament: dict,
        completed_round: dict,
        round_row: dict,
        advancement: BracketAdvancement,
        keys: List[BracketKey],
        settings: dict,
    ) -> dict:
        result = self.supabase.table("tournament_round")\
            .update({"status": "in_progress", "starts_at": datetime.utcnow().isoformat()})\
            .eq("id", round_row["id"])\
            .execute()
        next_round = result.data[0] if result.data else {**round_row, "status": "in_progress"}

        playable = [k for k in keys if is_playable(advancement.matches[k])]
        courts = self._courts(tournament, settings.get("court_ids") or None)
        if courts and playable:
            assigned = assign_courts(
                [advancement.matches[k] for k in playable],
                courts,
                settings.get("court_strategy", "balanced"),
                allow_waiting=True,
            )
            for key, match in zip(playable, assigned):
                advancement.matches[key].court_id = match.court_id
                advancement.changed.add(key)
            self._save_bracket_changes(advancement)

        next_matches = [
            {**match_to_row(advancement.matches[k]), "id": advancement.matches[k].id, "round_id": round_row["id"]}
            for k in keys
        ]
        return {"completed_round": completed_round, "next_round": next_round, "next_matches": next_matches}

    def _finish(self, tournament: dict, completed_round: dict) -> dict:
        tournament_id = tournament["id"]
        self._update_tournament(tournament_id, {"status": "completed", "ends_at": datetime.utcnow().isoformat()})
        final_standings = self.supabase.table("tournament_standing")\
            .select("*, user:user_profile!user_id(id, name, avatar_url)")\
            .eq("tournament_id", tournament_id)\
            .order("rank")\
            .execute()
        logger.info(f"Tournament {tournament_id} completed")
        return {
            "completed_round": completed_round,
            "tournament_complete": True,
            "final_standings": final_standings.data or [],
        }
