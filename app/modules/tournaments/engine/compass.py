"""
Compass draw: a main knockout plus consolation brackets fed by its early
round losers, so every entry plays at least twice.
"""

from app.modules.tournaments.engine.bracket_progression import is_power_of_two
from app.modules.tournaments.engine.knockout import generate_knockout_bracket
from app.modules.tournaments.engine.types import (
    BracketRound,
    CompassDraw,
    ConsolationBracket,
    MatchPairing,
    Participant,
    SeedingMethod,
    ValidationResult,
)
from typing import Dict, List, Optional
import random

CONSOLATION_ORDER = ["east", "west", "north_east", "south_east", "north_west", "south_west"]


def bracket_label(name: str) -> str:
    return "-".join(word.capitalize() for word in name.split("_"))


def consolation_round_name(name: str, round_number: int, remaining: int) -> str:
    label = bracket_label(name)
    if remaining == 2:
        return f"{label} Final"
    if remaining == 4:
        return f"{label} Semifinals"
    return f"{label} Round {round_number}"


def generate_consolation_bracket(name: str, source_round: int, size: int) -> ConsolationBracket:
    rounds = []
    remaining = size
    round_number = 1
    while remaining > 1:
        rounds.append(BracketRound(
            round_number=round_number,
            round_name=consolation_round_name(name, round_number, remaining),
            matches=[MatchPairing(bracket_position=p) for p in range(remaining // 2)],
        ))
        remaining //= 2
        round_number += 1
    return ConsolationBracket(
        name=name,
        label=bracket_label(name),
        source_round=source_round,
        bracket_size=size,
        rounds=rounds,
    )


def consolation_layout(bracket_size: int) -> Dict[str, tuple]:
    """Consolation bracket name -> (main round feeding it, bracket size)"""
    layout = {
        "east": (1, bracket_size // 4),
        "west": (1, bracket_size // 4),
    }
    if bracket_size > 16:
        layout["north_east"] = (2, bracket_size // 8)
        layout["south_east"] = (2, bracket_size // 8)
    if bracket_size > 32:
        layout["north_west"] = (2, bracket_size // 8)
        layout["south_west"] = (2, bracket_size // 8)
    return layout


def generate_compass_draw(
    participants: List[Participant],
    seeding: SeedingMethod = "ranked",
    seed_order: Optional[List[str]] = None,
    rng: Optional[random.Random] = None,
) -> CompassDraw:
    main = generate_knockout_bracket(participants, seeding, seed_order, rng=rng, min_players=4)
    consolation = {
        name: generate_consolation_bracket(name, source_round, size)
        for name, (source_round, size) in consolation_layout(main.bracket_size).items()
    }
    return CompassDraw(main=main, consolation=consolation)


def validate_compass_draw(compass: CompassDraw) -> ValidationResult:
    result = ValidationResult()
    main_size = compass.main.bracket_size
    if not is_power_of_two(main_size):
        result.add_error(f"Main bracket size {main_size} is not power of 2")

    for name, bracket in compass.consolation.items():
        if not is_power_of_two(bracket.bracket_size):
            result.add_error(f"Consolation bracket {name} size {bracket.bracket_size} is not power of 2")
        if bracket.bracket_size > main_size // 2:
            result.add_error(
                f"Consolation bracket {name} ({bracket.bracket_size}) too large for main bracket ({main_size})"
            )

    if not 1 <= compass.total_brackets <= 7:
        result.add_error(f"Invalid total brackets count: {compass.total_brackets} (expected 1-7)")
    return result


def get_minimum_matches_per_player(total_players: int = 0) -> int:
    return 2


def get_all_finals(compass: CompassDraw) -> List[dict]:
    finals = []
    if compass.main.rounds and compass.main.rounds[-1].matches:
        finals.append({"bracket": "Main Draw", "match": compass.main.rounds[-1].matches[0]})
    for name in CONSOLATION_ORDER:
        bracket = compass.consolation.get(name)
        if bracket and bracket.rounds and bracket.rounds[-1].matches:
            finals.append({"bracket": name, "match": bracket.rounds[-1].matches[0]})
    return finals
