"""
Mexicano: the first round is drawn at random, later rounds group players of
similar standing so that every court plays a balanced match.
"""

from app.modules.tournaments.engine.americano import validate_player_count, validate_americano_round
from app.modules.tournaments.engine.types import (
    MatchPairing,
    Participant,
    Standing,
    ValidationResult,
    checked_in_ids,
)
from typing import List, Optional
import random


def generate_mexicano_round(
    participants: List[Participant],
    round_number: int,
    standings: Optional[List[Standing]] = None,
    rng: Optional[random.Random] = None,
) -> List[MatchPairing]:
    player_ids = checked_in_ids(participants)
    validate_player_count(len(player_ids), "Mexicano")

    if round_number == 1:
        shuffled = list(player_ids)
        (rng or random.Random()).shuffle(shuffled)
        return [
            MatchPairing.doubles(group[:2], group[2:])
            for group in _groups_of_four(shuffled)
        ]

    ranked = sort_by_standing(player_ids, standings or [])
    # Best with worst of the group keeps the teams even: 1&4 vs 2&3
    return [
        MatchPairing.doubles([group[0], group[3]], [group[1], group[2]])
        for group in _groups_of_four(ranked)
    ]


def _groups_of_four(player_ids: List[str]) -> List[List[str]]:
    # Players past the last full group rest
    return [player_ids[i:i + 4] for i in range(0, len(player_ids) - 3, 4)]


def sort_by_standing(player_ids: List[str], standings: List[Standing]) -> List[str]:
    """Points, then games difference, both descending. Players without a standing go last."""
    by_user = {s.user_id: s for s in standings}
    known = [p for p in player_ids if p in by_user]
    unknown = [p for p in player_ids if p not in by_user]
    known.sort(key=lambda p: (-by_user[p].points, -by_user[p].games_diff))
    return known + unknown


def validate_mexicano_round(matches: List[MatchPairing], participants: List[Participant]) -> ValidationResult:
    return validate_americano_round(matches, participants)


def calculate_optimal_rounds(player_count: int) -> int:
    if player_count <= 8:
        return 5
    if player_count <= 16:
        return 7
    if player_count <= 24:
        return 9
    return 10
