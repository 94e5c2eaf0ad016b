"""
Monrad: a fixed number of Swiss rounds decides who qualifies, then the top
of the table plays a knockout seeded by the Swiss ranking.
"""

from app.modules.tournaments.engine.bracket_progression import is_power_of_two
from app.modules.tournaments.engine.knockout import build_bracket
from app.modules.tournaments.engine.swiss import generate_swiss_round
from app.modules.tournaments.engine.types import (
    KnockoutBracket,
    MatchPairing,
    MonradConfig,
    Standing,
    SwissRound,
    ValidationResult,
)
from typing import List, Optional
import math


def calculate_monrad_config(total_players: int) -> MonradConfig:
    if total_players <= 16:
        return MonradConfig(swiss_rounds=3, final_bracket_size=8 if total_players >= 8 else 4)
    if total_players <= 32:
        return MonradConfig(swiss_rounds=4, final_bracket_size=16)
    if total_players <= 64:
        return MonradConfig(swiss_rounds=5, final_bracket_size=32)
    bracket = min(64, 2 ** math.floor(math.log2(total_players / 2)))
    return MonradConfig(swiss_rounds=6, final_bracket_size=bracket)


def validate_monrad_config(config: MonradConfig, total_players: int) -> ValidationResult:
    result = ValidationResult()
    if not 3 <= config.swiss_rounds <= 7:
        result.add_error("Monrad Swiss rounds must be between 3 and 7")
    if not is_power_of_two(config.final_bracket_size):
        result.add_error(f"Final bracket size {config.final_bracket_size} must be power of 2 (4, 8, 16, 32)")
    if config.final_bracket_size > total_players:
        result.add_error(
            f"Final bracket size {config.final_bracket_size} cannot exceed total players {total_players}"
        )
    if total_players and config.final_bracket_size < total_players / 4:
        share = round(config.final_bracket_size / total_players * 100)
        result.warnings.append(
            f"Only {config.final_bracket_size} of {total_players} players ({share}%) advance to knockout. "
            "Consider larger bracket."
        )
    return result


def is_swiss_phase(config: MonradConfig, round_number: int) -> bool:
    return round_number <= config.swiss_rounds


def generate_monrad_swiss_round(
    config: MonradConfig,
    round_number: int,
    standings: List[Standing],
    previous_matches: Optional[List[MatchPairing]] = None,
) -> SwissRound:
    if not is_swiss_phase(config, round_number):
        raise ValueError(f"Round {round_number} is past the {config.swiss_rounds} Swiss rounds")
    return generate_swiss_round(round_number, standings, previous_matches, config.pairing_method)


def get_top_qualifiers(standings: List[Standing], count: int) -> List[Standing]:
    ranked = sorted(standings, key=lambda s: (-s.points, -s.games_diff, -s.games_won))
    return ranked[:count]


def has_qualified_for_knockout(user_id: str, qualifiers: List[Standing]) -> bool:
    return any(q.user_id == user_id for q in qualifiers)


def get_qualification_cutoff(qualifiers: List[Standing]) -> int:
    return qualifiers[-1].points if qualifiers else 0


def generate_monrad_knockout(config: MonradConfig, standings: List[Standing], bronze_match: bool = False) -> KnockoutBracket:
    """Knockout phase, seeded by the Swiss table"""
    validation = validate_monrad_config(config, len(standings))
    if not validation.valid:
        raise ValueError(validation.errors[0])
    qualifiers = get_top_qualifiers(standings, config.final_bracket_size)
    return build_bracket([q.user_id for q in qualifiers], bronze_match)
