"""
Entry point used by the tournaments service. Dispatches round generation on
the tournament type and wraps the format modules behind one interface.
"""

from app.modules.tournaments.engine.americano import (
    generate_americano_round,
    has_paired_before,
    total_americano_rounds,
    validate_americano_round,
)
from app.modules.tournaments.engine.court_rotation import (
    assign_courts,
    get_court_usage_stats,
    get_least_used_courts,
    validate_court_assignments,
)
from app.modules.tournaments.engine.mexicano import (
    calculate_optimal_rounds,
    generate_mexicano_round,
    validate_mexicano_round,
)
from app.modules.tournaments.engine.monrad import (
    calculate_monrad_config,
    generate_monrad_swiss_round,
)
from app.modules.tournaments.engine.round_robin import (
    calculate_round_robin_rounds,
    generate_round_robin_round,
    validate_round_robin_round,
)
from app.modules.tournaments.engine.standings import (
    calculate_standings,
    get_player_rank,
    get_top_players,
    is_tournament_complete,
    update_standings_for_match,
)
from app.modules.tournaments.engine.swiss import (
    calculate_swiss_rounds,
    generate_swiss_round,
    validate_swiss_round,
)
from app.modules.tournaments.engine.types import (
    BRACKET_FORMATS,
    Court,
    CourtStrategy,
    Match,
    MatchPairing,
    MonradConfig,
    Participant,
    Standing,
    TournamentConfig,
    ValidationResult,
    checked_in_ids,
)
from typing import Dict, List, Optional
import random


def monrad_config_from_settings(format_settings: Dict, player_count: int) -> MonradConfig:
    stored = format_settings.get("monrad")
    if stored:
        return MonradConfig(**stored)
    return calculate_monrad_config(player_count)


def _swiss_standings(participants: List[Participant], standings: List[Standing]) -> List[Standing]:
    """Standings of the players still in, with an empty row for anyone missing one"""
    by_user = {s.user_id: s for s in standings}
    return [by_user.get(p, Standing(user_id=p)) for p in checked_in_ids(participants)]


class TournamentEngine:
    @staticmethod
    def validate_tournament_start(participants: List[Participant], courts: List[Court]) -> ValidationResult:
        result = ValidationResult()
        player_count = len(checked_in_ids(participants))
        if player_count < 4:
            result.add_error(f"Need at least 4 players, only {player_count} checked in")
        if player_count % 2 != 0:
            result.add_error(f"Need even number of players, currently {player_count}")

        active = [c for c in courts if c.active]
        if not active:
            result.add_error("No active courts available")

        required = player_count // 4
        if len(active) < required:
            result.warnings.append(f"Only {len(active)} courts for {required} matches. Some matches will wait.")

        registered = [p for p in participants if p.status == "registered"]
        if registered:
            result.warnings.append(f"{len(registered)} participants registered but not checked in")
        return result

    @staticmethod
    def generate_round_matches(
        config: TournamentConfig,
        participants: List[Participant],
        round_number: int,
        previous_matches: List[MatchPairing],
        standings: List[Standing],
        rng: Optional[random.Random] = None,
    ) -> List[MatchPairing]:
        tournament_type = config.type
        settings = config.format_settings or {}

        if tournament_type == "americano":
            matches = generate_americano_round(participants, round_number, previous_matches)
            validation = validate_americano_round(matches, participants)
        elif tournament_type == "mexicano":
            matches = generate_mexicano_round(participants, round_number, standings, rng=rng)
            validation = validate_mexicano_round(matches, participants)
        elif tournament_type == "round_robin":
            matches = generate_round_robin_round(participants, round_number, settings.get("is_doubles", True))
            validation = validate_round_robin_round(matches, participants)
        elif tournament_type == "swiss":
            swiss_round = generate_swiss_round(
                round_number,
                _swiss_standings(participants, standings),
                previous_matches,
                settings.get("pairing_method", "slide"),
            )
            matches = swiss_round.matches
            validation = validate_swiss_round(matches, previous_matches)
        elif tournament_type == "monrad":
            monrad = monrad_config_from_settings(settings, len(checked_in_ids(participants)))
            swiss_round = generate_monrad_swiss_round(
                monrad, round_number, _swiss_standings(participants, standings), previous_matches
            )
            matches = swiss_round.matches
            validation = validate_swiss_round(matches, previous_matches)
        elif tournament_type in BRACKET_FORMATS:
            raise ValueError(f"{tournament_type} rounds come from the generated bracket")
        else:
            raise ValueError(f"Unknown tournament type: {tournament_type}")

        if not validation.valid:
            label = tournament_type.replace("_", " ").title()
            raise ValueError(f"Invalid {label} round: {', '.join(validation.errors)}")
        return matches

    @staticmethod
    def generate_next_round(
        config: TournamentConfig,
        participants: List[Participant],
        round_number: int,
        previous_matches: List[MatchPairing],
        standings: List[Standing],
        courts: List[Court],
        court_strategy: CourtStrategy = "balanced",
        rng: Optional[random.Random] = None,
    ) -> List[MatchPairing]:
        matches = TournamentEngine.generate_round_matches(
            config, participants, round_number, previous_matches, standings, rng
        )
        assigned = assign_courts(
            matches, courts, court_strategy, history=previous_matches, rng=rng, allow_waiting=True
        )
        validation = validate_court_assignments(assigned, courts)
        if not validation.valid:
            raise ValueError(f"Invalid court assignments: {', '.join(validation.errors)}")
        return assigned

    @staticmethod
    def total_rounds(config: TournamentConfig, player_count: int) -> Optional[int]:
        """Rounds before the tournament ends. None for bracket formats, which end on their final."""
        settings = config.format_settings or {}
        if config.type == "americano":
            return settings.get("rounds") or total_americano_rounds(player_count)
        if config.type == "mexicano":
            return settings.get("rounds") or calculate_optimal_rounds(player_count)
        if config.type == "round_robin":
            return calculate_round_robin_rounds(max(player_count, 2))
        if config.type == "swiss":
            return settings.get("rounds") or calculate_swiss_rounds(player_count)
        if config.type == "monrad":
            return monrad_config_from_settings(settings, player_count).swiss_rounds
        return None

    @staticmethod
    def update_standings(tournament_id: str, matches: List[Match], config: TournamentConfig) -> List[Standing]:
        return calculate_standings(tournament_id, matches, config)

    @staticmethod
    def update_standings_for_match(match: Match, current: List[Standing], config: TournamentConfig) -> List[Standing]:
        return update_standings_for_match(match, current, config)

    @staticmethod
    def get_top_players(standings: List[Standing], count: int) -> List[Standing]:
        return get_top_players(standings, count)

    @staticmethod
    def get_player_rank(user_id: str, standings: List[Standing]) -> Optional[int]:
        return get_player_rank(user_id, standings)

    @staticmethod
    def is_tournament_complete(matches: List[Match]) -> bool:
        return is_tournament_complete(matches)

    @staticmethod
    def get_court_usage_stats(matches: List[MatchPairing]) -> Dict[str, int]:
        return get_court_usage_stats(matches)

    @staticmethod
    def get_least_used_courts(courts: List[Court], usage: Dict[str, int]) -> List[Court]:
        return get_least_used_courts(courts, usage)

    @staticmethod
    def calculate_optimal_rounds(player_count: int) -> int:
        return calculate_optimal_rounds(player_count)

    @staticmethod
    def has_paired_before(player1: str, player2: str, previous_matches: List[MatchPairing]) -> bool:
        return has_paired_before(player1, player2, previous_matches)
