from app.modules.tournaments.engine.types import (
    Match,
    Standing,
    TournamentConfig,
    is_placeholder,
)
from typing import Dict, List, Optional, Tuple


def match_outcome(match: Match) -> Tuple[bool, Optional[int]]:
    """(is_draw, winning team). Equal scores count as a draw."""
    if match.is_draw or match.team1_score == match.team2_score:
        return True, None
    if match.winner_team in (1, 2):
        return False, match.winner_team
    return False, 1 if match.team1_score > match.team2_score else 2


def _team_players(match: Match, number: int) -> List[str]:
    # A singles entry fills both slots but only plays once
    players = []
    for player in match.team(number):
        if not is_placeholder(player) and player not in players:
            players.append(player)
    return players


def _apply_result(standing: Standing, games_for: int, games_against: int, result: str, config: TournamentConfig) -> None:
    standing.matches_played += 1
    standing.games_won += games_for
    standing.games_lost += games_against
    standing.games_diff = standing.games_won - standing.games_lost
    if result == "draw":
        standing.matches_drawn += 1
        standing.points += config.points_per_draw
    elif result == "win":
        standing.matches_won += 1
        standing.points += config.points_per_win
    else:
        standing.matches_lost += 1
        standing.points += config.points_per_loss


def _apply_match(by_user: Dict[str, Standing], match: Match, config: TournamentConfig) -> None:
    is_draw, winner = match_outcome(match)
    scores = {1: match.team1_score or 0, 2: match.team2_score or 0}
    for number, other in ((1, 2), (2, 1)):
        if is_draw:
            result = "draw"
        else:
            result = "win" if winner == number else "loss"
        for player in _team_players(match, number):
            standing = by_user.get(player)
            if standing is None:
                continue
            _apply_result(standing, scores[number], scores[other], result, config)


def sort_key(standing: Standing):
    return (
        -standing.points,
        -standing.games_diff,
        -standing.games_won,
        -standing.matches_won,
        -standing.fair_play_points,
    )


def rank_standings(standings: List[Standing]) -> List[Standing]:
    ordered = sorted(standings, key=sort_key)
    for index, standing in enumerate(ordered):
        standing.rank = index + 1
    return ordered


def calculate_standings(tournament_id: str, matches: List[Match], config: TournamentConfig) -> List[Standing]:
    """Rebuild the whole table from scratch"""
    by_user: Dict[str, Standing] = {}
    for match in matches:
        for number in (1, 2):
            for player in _team_players(match, number):
                by_user.setdefault(player, Standing(user_id=player, tournament_id=tournament_id))

    for match in matches:
        if match.status != "completed" or match.team1_score is None or match.team2_score is None:
            continue
        _apply_match(by_user, match, config)
    return rank_standings(list(by_user.values()))


def update_standings_for_match(match: Match, current: List[Standing], config: TournamentConfig) -> List[Standing]:
    """Apply one result on top of the current table. Players without a row are skipped."""
    if match.team1_score is None or match.team2_score is None:
        raise ValueError("Match must have scores to update standings")
    by_user = {s.user_id: s.model_copy() for s in current}
    _apply_match(by_user, match, config)
    return rank_standings(list(by_user.values()))


def get_top_players(standings: List[Standing], count: int) -> List[Standing]:
    return standings[:max(count, 0)]


def get_player_rank(user_id: str, standings: List[Standing]) -> Optional[int]:
    for standing in standings:
        if standing.user_id == user_id:
            return standing.rank
    return None


def is_tournament_complete(matches: List[Match]) -> bool:
    return bool(matches) and all(m.status == "completed" for m in matches)
