from app.modules.tournaments.engine.types import (
    Court,
    CourtStrategy,
    MatchPairing,
    ValidationResult,
)
from typing import Dict, List, Optional
import random


def get_court_usage_stats(all_matches: List[MatchPairing]) -> Dict[str, int]:
    usage: Dict[str, int] = {}
    for match in all_matches:
        if match.court_id:
            usage[match.court_id] = usage.get(match.court_id, 0) + 1
    return usage


def get_least_used_courts(courts: List[Court], usage: Dict[str, int]) -> List[Court]:
    # sorted() is stable, so equally used courts keep their order
    return sorted(courts, key=lambda c: usage.get(c.id, 0))


def assign_courts(
    matches: List[MatchPairing],
    courts: List[Court],
    strategy: CourtStrategy = "balanced",
    history: Optional[List[MatchPairing]] = None,
    rng: Optional[random.Random] = None,
    allow_waiting: bool = False,
) -> List[MatchPairing]:
    """
    Give each match of a round its own active court.

    balanced puts the round on the courts used least so far, sequential
    follows the court list, random shuffles it. With allow_waiting, matches
    beyond the number of courts are returned without a court and wait for
    one to free up.
    """
    active = [c for c in courts if c.active]
    if not active:
        raise ValueError("No active courts available for assignment")
    if len(matches) > len(active) and not allow_waiting:
        raise ValueError(f"Not enough courts: {len(matches)} matches need {len(active)} courts")

    if strategy == "balanced":
        ordered = get_least_used_courts(active, get_court_usage_stats(history or []))
    elif strategy == "sequential":
        ordered = list(active)
    elif strategy == "random":
        ordered = list(active)
        (rng or random.Random()).shuffle(ordered)
    else:
        raise ValueError(f"Unknown rotation strategy: {strategy}")

    assigned = []
    for index, match in enumerate(matches):
        court_id = ordered[index].id if index < len(ordered) else None
        assigned.append(match.model_copy(update={"court_id": court_id}))
    return assigned


def validate_court_assignments(matches: List[MatchPairing], courts: List[Court]) -> ValidationResult:
    result = ValidationResult()
    by_id = {c.id: c for c in courts}
    booked = set()
    for match in matches:
        if match.court_id is None:
            continue
        court = by_id.get(match.court_id)
        if court is None:
            result.add_error(f"Match assigned to non-existent court: {match.court_id}")
        elif not court.active:
            result.add_error(f"Match assigned to inactive court: {court.name}")
        if match.court_id in booked:
            result.add_error(f"Court {match.court_id} is double-booked in this round")
        booked.add(match.court_id)
    return result
