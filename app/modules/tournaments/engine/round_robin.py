"""
Round robin: everyone meets everyone once using the circle method. An odd
field gets a BYE seat, and whoever draws it rests that round.
"""

from app.modules.tournaments.engine.types import (
    BYE,
    BracketRound,
    MatchPairing,
    Participant,
    ValidationResult,
    checked_in_ids,
    duplicate_player_errors,
)
from typing import List, Tuple


def _circle_rotation(player_ids: List[str], round_index: int) -> List[str]:
    if not player_ids:
        return []
    rotating = player_ids[1:]
    offset = round_index % len(rotating) if rotating else 0
    return [player_ids[0]] + rotating[offset:] + rotating[:offset]


def _round_pairs(player_ids: List[str], round_index: int) -> List[Tuple[str, str]]:
    rotation = _circle_rotation(player_ids, round_index)
    n = len(rotation)
    return [(rotation[i], rotation[n - 1 - i]) for i in range(n // 2)]


def _seated_players(participants: List[Participant], is_doubles: bool) -> List[str]:
    player_ids = checked_in_ids(participants)
    min_players = 4 if is_doubles else 2
    if len(player_ids) < min_players:
        mode = "doubles" if is_doubles else "singles"
        raise ValueError(f"Round Robin requires at least {min_players} players for {mode}")
    if len(player_ids) % 2 != 0:
        player_ids.append(BYE)
    return player_ids


def _matches_for_pairs(pairs: List[Tuple[str, str]], is_doubles: bool) -> List[MatchPairing]:
    playing = [pair for pair in pairs if BYE not in pair]
    if not is_doubles:
        return [MatchPairing.singles(a, b) for a, b in playing]
    # Consecutive pairs play each other; a leftover pair rests
    return [
        MatchPairing.doubles(list(playing[i]), list(playing[i + 1]))
        for i in range(0, len(playing) - 1, 2)
    ]


def generate_round_robin(participants: List[Participant], is_doubles: bool = True) -> List[BracketRound]:
    """Full schedule, one entry per round"""
    player_ids = _seated_players(participants, is_doubles)
    return [
        BracketRound(
            round_number=index + 1,
            round_name=f"Round {index + 1}",
            matches=_matches_for_pairs(_round_pairs(player_ids, index), is_doubles),
        )
        for index in range(len(player_ids) - 1)
    ]


def generate_round_robin_round(
    participants: List[Participant],
    round_number: int,
    is_doubles: bool = True,
) -> List[MatchPairing]:
    player_ids = _seated_players(participants, is_doubles)
    total = len(player_ids) - 1
    if round_number < 1 or round_number > total:
        raise ValueError(f"Invalid round number {round_number}. Must be between 1 and {total}")
    return _matches_for_pairs(_round_pairs(player_ids, round_number - 1), is_doubles)


def has_played_against(player1: str, player2: str, previous_matches: List[MatchPairing]) -> bool:
    for match in previous_matches:
        team1, team2 = match.team(1), match.team(2)
        if (player1 in team1 and player2 in team2) or (player1 in team2 and player2 in team1):
            return True
    return False


def validate_round_robin_round(matches: List[MatchPairing], participants: List[Participant]) -> ValidationResult:
    result = ValidationResult()
    for error in duplicate_player_errors(matches):
        result.add_error(error)
    return result


def calculate_round_robin_rounds(participant_count: int) -> int:
    if participant_count < 2:
        raise ValueError("Need at least 2 participants for round robin")
    seats = participant_count if participant_count % 2 == 0 else participant_count + 1
    return seats - 1


def get_bye_players_for_round(participants: List[Participant], round_number: int) -> List[str]:
    player_ids = checked_in_ids(participants)
    if len(player_ids) % 2 == 0:
        return []
    for a, b in _round_pairs(player_ids + [BYE], round_number - 1):
        if a == BYE:
            return [b]
        if b == BYE:
            return [a]
    return []
