"""
Americano: doubles where partners rotate every round so that, over n-1
rounds, every player partners every other player once.
"""

from app.modules.tournaments.engine.types import (
    MatchPairing,
    Participant,
    ValidationResult,
    checked_in_ids,
    duplicate_player_errors,
)
from typing import List, Optional, Tuple


def validate_player_count(count: int, format_name: str = "Americano") -> None:
    if count < 4:
        raise ValueError(f"{format_name} requires at least 4 players")
    if count % 2 != 0:
        raise ValueError(f"{format_name} requires an even number of players")


def rotate_pairs(player_ids: List[str], round_number: int) -> List[Tuple[str, str]]:
    """
    Circle method: the first player stays fixed, the rest rotate by
    (round - 1) % (n - 1), then i is paired with n - 1 - i.
    """
    n = len(player_ids)
    offset = (round_number - 1) % (n - 1)
    rotating = player_ids[1:]
    rotated = [player_ids[0]] + rotating[offset:] + rotating[:offset]
    return [(rotated[i], rotated[n - 1 - i]) for i in range(n // 2)]


def generate_americano_round(
    participants: List[Participant],
    round_number: int,
    previous_matches: Optional[List[MatchPairing]] = None,
) -> List[MatchPairing]:
    player_ids = checked_in_ids(participants)
    validate_player_count(len(player_ids))

    pairs = rotate_pairs(player_ids, round_number)
    # A leftover pair (n % 4 == 2) rests this round
    return [
        MatchPairing.doubles(list(pairs[i]), list(pairs[i + 1]))
        for i in range(0, len(pairs) - 1, 2)
    ]


def total_americano_rounds(player_count: int) -> int:
    return max(player_count - 1, 1)


def has_paired_before(player1: str, player2: str, previous_matches: List[MatchPairing]) -> bool:
    for match in previous_matches:
        for number in (1, 2):
            team = match.team(number)
            if player1 in team and player2 in team:
                return True
    return False


def validate_americano_round(matches: List[MatchPairing], participants: List[Participant]) -> ValidationResult:
    result = ValidationResult()
    for error in duplicate_player_errors(matches):
        result.add_error(error)

    expected = len(checked_in_ids(participants))
    actual = len({p for match in matches for p in match.players()})
    # Only a resting pair may be missing
    if expected - actual > expected % 4 or actual > expected:
        result.add_error(f"Expected {expected} players but found {actual} in matches")
    return result
