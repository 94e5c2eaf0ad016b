"""
Swiss system: players with the same score meet each other, and nobody
meets the same opponent twice when it can be avoided.
"""

from app.modules.tournaments.engine.round_robin import has_played_against
from app.modules.tournaments.engine.types import (
    MatchPairing,
    Standing,
    SwissPairingMethod,
    SwissRound,
    ValidationResult,
    duplicate_player_errors,
)
from itertools import groupby
from typing import List, Optional, Tuple
import math


def has_played_before(player1: str, player2: str, previous_matches: List[MatchPairing]) -> bool:
    return has_played_against(player1, player2, previous_matches)


def group_by_score(standings: List[Standing]) -> List[List[Standing]]:
    """Score groups, best first. Inside a group: games difference, then games won."""
    ordered = sorted(standings, key=lambda s: -s.points)
    return [
        sorted(group, key=lambda s: (-s.games_diff, -s.games_won))
        for _, group in groupby(ordered, key=lambda s: s.points)
    ]


def _pair_indexes(count: int, method: SwissPairingMethod) -> List[Tuple[int, int]]:
    half = count // 2
    if method == "fold":
        return [(i, count - 1 - i) for i in range(half)]
    if method == "adjacent":
        return [(i, i + 1) for i in range(0, count - 1, 2)]
    # slide, and accelerated pairs the same way once groups are formed
    return [(i, i + half) for i in range(half)]


def _avoid_repeats(pairs: List[List[str]], previous_matches: List[MatchPairing]) -> List[List[str]]:
    for i, pair in enumerate(pairs):
        if not has_played_before(pair[0], pair[1], previous_matches):
            continue
        for later in pairs[i + 1:]:
            if not has_played_before(pair[0], later[1], previous_matches) \
                    and not has_played_before(later[0], pair[1], previous_matches):
                pair[1], later[1] = later[1], pair[1]
                break
    return pairs


def pair_players(
    player_ids: List[str],
    method: SwissPairingMethod = "slide",
    previous_matches: Optional[List[MatchPairing]] = None,
) -> List[MatchPairing]:
    pairs = [[player_ids[a], player_ids[b]] for a, b in _pair_indexes(len(player_ids), method)]
    pairs = _avoid_repeats(pairs, previous_matches or [])
    return [MatchPairing.singles(a, b) for a, b in pairs]


def generate_swiss_round(
    round_number: int,
    standings: List[Standing],
    previous_matches: Optional[List[MatchPairing]] = None,
    pairing_method: SwissPairingMethod = "slide",
) -> SwissRound:
    matches: List[MatchPairing] = []
    floater: Optional[str] = None
    for group in group_by_score(standings):
        players = ([floater] if floater else []) + [s.user_id for s in group]
        # The lowest player of an odd group drops into the next group
        floater = players.pop() if len(players) % 2 else None
        matches.extend(pair_players(players, pairing_method, previous_matches))

    return SwissRound(round_number=round_number, matches=matches, byes=[floater] if floater else [])


def calculate_swiss_rounds(participant_count: int) -> int:
    if participant_count < 4:
        return 3
    return min(max(math.ceil(math.log2(participant_count)), 5), 7)


def validate_swiss_round(matches: List[MatchPairing], previous_matches: List[MatchPairing]) -> ValidationResult:
    result = ValidationResult()
    for error in duplicate_player_errors(matches):
        result.add_error(error)
    for match in matches:
        player1, player2 = match.team1_player1_id, match.team2_player1_id
        if has_played_before(player1, player2, previous_matches):
            result.warnings.append(f"Players {player1} and {player2} have played before (repeat pairing)")
    return result


def get_bye_player_for_swiss_round(matches: List[MatchPairing], standings: List[Standing]) -> Optional[str]:
    playing = {p for match in matches for p in match.players()}
    for standing in standings:
        if standing.user_id not in playing:
            return standing.user_id
    return None
