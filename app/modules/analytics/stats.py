"""
Player statistics from completed matches.

Kept free of database access so the numbers can be checked in isolation;
AnalyticsService feeds it the rows and stores the result.
"""

from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

BASE_ELO = 1200
ELO_WIN = 20
ELO_LOSS = 15
ALL_TIME_START = date(2024, 1, 1)


def player_team(match: dict, user_id: str) -> Optional[int]:
    if user_id in (match.get("team1_player1_id"), match.get("team1_player2_id")):
        return 1
    if user_id in (match.get("team2_player1_id"), match.get("team2_player2_id")):
        return 2
    return None


def compute_player_stats(user_id: str, matches: List[dict]) -> Dict:
    """Aggregate a player's matches, oldest first. Anything but a win counts as a loss."""
    won = lost = games_won = games_lost = 0
    streak = best_streak = 0
    played = 0
    for match in matches:
        team = player_team(match, user_id)
        if team is None:
            continue
        played += 1
        own = match.get(f"team{team}_score") or 0
        other = match.get(f"team{3 - team}_score") or 0
        if own > other:
            won += 1
            streak += 1
            best_streak = max(best_streak, streak)
        else:
            lost += 1
            streak = 0
        games_won += own
        games_lost += other

    return {
        "total_matches": played,
        "matches_won": won,
        "matches_lost": lost,
        "win_rate": round(won / played * 100, 2) if played else 0,
        "total_games_won": games_won,
        "total_games_lost": games_lost,
        "games_diff": games_won - games_lost,
        "avg_score_per_match": round((games_won + games_lost) / played, 2) if played else 0,
        "current_win_streak": streak,
        "best_win_streak": best_streak,
        "elo_rating": calculate_elo(won, lost),
    }


def calculate_elo(won: int, lost: int) -> int:
    return BASE_ELO + ELO_WIN * won - ELO_LOSS * lost


def period_window(period: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """(start, end) of the period containing now; weeks start on Monday"""
    now = now or datetime.utcnow()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "day":
        return midnight, now
    if period == "week":
        return midnight - timedelta(days=midnight.weekday()), now
    if period == "month":
        return midnight.replace(day=1), now
    return datetime.combine(ALL_TIME_START, datetime.min.time()), now


def evolution_series(rows: List[dict]) -> List[dict]:
    """Newest-first player_stats rows -> chronological chart points"""
    return [
        {
            "date": row.get("period_start"),
            "win_rate": row.get("win_rate"),
            "elo_rating": row.get("elo_rating"),
            "matches_played": row.get("total_matches"),
        }
        for row in reversed(rows)
    ]
