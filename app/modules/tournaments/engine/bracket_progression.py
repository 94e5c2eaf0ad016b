"""
Position arithmetic for elimination brackets.

Positions are zero-based inside a round. The winner of match (round, p)
moves to (round + 1, p // 2), sitting in team1 when p is even and team2
when p is odd.
"""

from typing import Optional, Tuple
import math

BracketTarget = Tuple[int, int, int]  # (round_number, position, team number)


def next_power_of_two(n: int) -> int:
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def calculate_bracket_size(participant_count: int) -> int:
    return next_power_of_two(participant_count)


def calculate_bye_count(participant_count: int) -> int:
    return calculate_bracket_size(participant_count) - participant_count


def calculate_total_rounds(bracket_size: int) -> int:
    return int(math.log2(bracket_size)) if bracket_size > 1 else 0


def get_round_name(round_number: int, total_rounds: int) -> str:
    remaining = 2 ** (total_rounds - round_number + 1)
    if remaining == 2:
        return "Final"
    if remaining == 4:
        return "Semifinals"
    if remaining == 8:
        return "Quarterfinals"
    return f"Round of {remaining}"


def team_for_position(position: int) -> int:
    return 1 if position % 2 == 0 else 2


def next_match_position(round_number: int, position: int) -> BracketTarget:
    return round_number + 1, position // 2, team_for_position(position)


def losers_round_count(winners_rounds: int) -> int:
    return max(2 * (winners_rounds - 1), 0)


def losers_round_match_count(bracket_size: int, losers_round: int) -> int:
    """Losers rounds come in pairs of equal size, halving after each pair"""
    return bracket_size >> ((losers_round + 1) // 2 + 1)


def losers_drop_position(winners_round: int, position: int) -> BracketTarget:
    """Where the loser of a winners bracket match lands in the losers bracket"""
    if winners_round == 1:
        return 1, position // 2, team_for_position(position)
    # Later drops meet the survivors of the previous losers round
    return 2 * (winners_round - 1), position, 2


def losers_next_position(losers_round: int, position: int) -> BracketTarget:
    if losers_round % 2 == 1:
        # Odd rounds feed a round of the same size that takes winners-bracket drops
        return losers_round + 1, position, 1
    return next_match_position(losers_round, position)


def route_loser_to_consolation(main_round: int, position: int) -> Optional[str]:
    """Compass draw: which consolation bracket takes the loser of a main draw match"""
    if main_round == 1:
        return "east" if position % 2 == 0 else "west"
    if main_round == 2:
        if position < 4:
            return "north_east" if position % 2 == 0 else "south_east"
        return "north_west" if position % 2 == 0 else "south_west"
    return None
