"""
Single and double elimination brackets.

Entries are seeded into a power-of-two draw with the standard seeding order
(1 v N, 2 v N-1, ...), so the two top seeds can only meet in the final.
Missing entries become byes that go to the top seeds: a bye winner is
placed straight into its round 2 slot and round 1 only holds real matches.
"""

from app.modules.tournaments.engine.bracket_progression import (
    calculate_bracket_size,
    calculate_total_rounds,
    get_round_name,
    is_power_of_two,
    losers_drop_position,
    losers_round_count,
    losers_round_match_count,
)
from app.modules.tournaments.engine.types import (
    BYE,
    TBD,
    BracketRound,
    DoubleEliminationBracket,
    KnockoutBracket,
    MatchPairing,
    Participant,
    SeedingMethod,
    ValidationResult,
    checked_in_ids,
)
from typing import List, Optional
import random


def order_entries(
    player_ids: List[str],
    seeding: SeedingMethod = "ranked",
    seed_order: Optional[List[str]] = None,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Seed list, best first. "ranked" keeps registration order."""
    if seeding == "random":
        shuffled = list(player_ids)
        (rng or random.Random()).shuffle(shuffled)
        return shuffled
    if seeding == "manual":
        if not seed_order or len(seed_order) != len(player_ids) or set(seed_order) != set(player_ids):
            raise ValueError("Manual seeding requires exact seed order for all participants")
        return list(seed_order)
    return list(player_ids)


def standard_seed_order(bracket_size: int) -> List[int]:
    """Seed numbers in draw order, e.g. 8 -> [1, 8, 4, 5, 2, 7, 3, 6]"""
    seeds = [1]
    while len(seeds) < bracket_size:
        mirror = len(seeds) * 2 + 1
        seeds = [s for seed in seeds for s in (seed, mirror - seed)]
    return seeds


def seed_bracket_slots(entries: List[str], bracket_size: int) -> List[str]:
    return [
        entries[seed - 1] if seed <= len(entries) else BYE
        for seed in standard_seed_order(bracket_size)
    ]


def build_bracket(entries: List[str], bronze_match: bool = False) -> KnockoutBracket:
    bracket_size = calculate_bracket_size(len(entries))
    total_rounds = calculate_total_rounds(bracket_size)
    slots = seed_bracket_slots(entries, bracket_size)

    first_round: List[MatchPairing] = []
    advancing: List[str] = []
    bye_players: List[str] = []
    for position in range(bracket_size // 2):
        a, b = slots[2 * position], slots[2 * position + 1]
        if a != BYE and b != BYE:
            first_round.append(MatchPairing.singles(a, b, bracket_position=position))
            advancing.append(TBD)
        else:
            winner = b if a == BYE else a
            bye_players.append(winner)
            advancing.append(winner)

    rounds = [BracketRound(round_number=1, round_name=get_round_name(1, total_rounds), matches=first_round)]
    for round_number in range(2, total_rounds + 1):
        matches = [
            MatchPairing.singles(advancing[2 * p], advancing[2 * p + 1], bracket_position=p)
            for p in range(len(advancing) // 2)
        ]
        rounds.append(BracketRound(
            round_number=round_number,
            round_name=get_round_name(round_number, total_rounds),
            matches=matches,
        ))
        advancing = [TBD] * len(matches)

    return KnockoutBracket(
        rounds=rounds,
        bracket_size=bracket_size,
        total_byes=bracket_size - len(entries),
        bye_players=bye_players,
        bronze_match=MatchPairing(bracket_position=0) if bronze_match and total_rounds >= 2 else None,
    )


def generate_knockout_bracket(
    participants: List[Participant],
    seeding: SeedingMethod = "ranked",
    seed_order: Optional[List[str]] = None,
    bronze_match: bool = False,
    rng: Optional[random.Random] = None,
    min_players: int = 2,
) -> KnockoutBracket:
    player_ids = checked_in_ids(participants)
    if len(player_ids) < min_players:
        raise ValueError(f"Knockout requires at least {min_players} players")
    return build_bracket(order_entries(player_ids, seeding, seed_order, rng), bronze_match)


def calculate_knockout_rounds(participant_count: int) -> int:
    if participant_count < 2:
        raise ValueError("Need at least 2 participants for knockout")
    return calculate_total_rounds(calculate_bracket_size(participant_count))


def validate_knockout_bracket(bracket: KnockoutBracket) -> ValidationResult:
    result = ValidationResult()
    if not is_power_of_two(bracket.bracket_size):
        result.add_error(f"Bracket size {bracket.bracket_size} is not a power of 2")

    expected = bracket.bracket_size // 2
    for round_ in bracket.rounds:
        if len(round_.matches) > expected:
            result.add_error(
                f"Round {round_.round_number} has {len(round_.matches)} matches, expected max {expected}"
            )
        seen = set()
        for match in round_.matches:
            for player in match.players():
                if player in seen:
                    result.add_error(f"Player {player} appears twice in round {round_.round_number}")
                seen.add(player)
        expected = max(expected // 2, 1)
    return result


def get_bye_players_for_knockout(participants: List[Participant], bracket_size: int) -> List[str]:
    player_ids = checked_in_ids(participants)
    total_byes = bracket_size - len(player_ids)
    if total_byes <= 0:
        return []
    return player_ids[:total_byes]


def generate_double_elimination_bracket(
    participants: List[Participant],
    seeding: SeedingMethod = "ranked",
    seed_order: Optional[List[str]] = None,
    rng: Optional[random.Random] = None,
) -> DoubleEliminationBracket:
    winners = generate_knockout_bracket(participants, seeding, seed_order, rng=rng, min_players=4)
    losers = [
        BracketRound(
            round_number=losers_round,
            round_name=f"Losers Round {losers_round}",
            matches=[
                MatchPairing(bracket_position=p)
                for p in range(losers_round_match_count(winners.bracket_size, losers_round))
            ],
        )
        for losers_round in range(1, losers_round_count(len(winners.rounds)) + 1)
    ]

    # Round 1 byes never produce a loser: their seats in the losers bracket are byes too
    played = {m.bracket_position for m in winners.rounds[0].matches}
    for position in range(winners.bracket_size // 2):
        if position not in played:
            _, target_position, team = losers_drop_position(1, position)
            losers[0].matches[target_position].set_team(team, [BYE, BYE])

    return DoubleEliminationBracket(winners=winners, losers=losers, grand_final=MatchPairing(bracket_position=0))


def validate_double_elimination_bracket(bracket: DoubleEliminationBracket) -> ValidationResult:
    result = validate_knockout_bracket(bracket.winners)
    if result.errors:
        result.errors.insert(0, "Winners bracket invalid:")

    expected_rounds = losers_round_count(len(bracket.winners.rounds))
    if len(bracket.losers) != expected_rounds:
        result.add_error(f"Losers bracket should have {expected_rounds} rounds, found {len(bracket.losers)}")
    for round_ in bracket.losers:
        expected = losers_round_match_count(bracket.winners.bracket_size, round_.round_number)
        if len(round_.matches) != expected:
            result.add_error(
                f"Losers round {round_.round_number} has {len(round_.matches)} matches, expected {expected}"
            )
    if bracket.grand_final is None:
        result.add_error("Grand final is missing")
    return result
