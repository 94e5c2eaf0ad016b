"""
Tests for elimination brackets: seeding, byes, double elimination,
compass draws and applying results to a stored bracket.
"""

import pytest

from app.modules.tournaments.engine.bracket_advancement import BracketAdvancement, bracket_play_order
from app.modules.tournaments.engine.bracket_progression import (
    calculate_bye_count,
    get_round_name,
    losers_drop_position,
    losers_next_position,
    next_match_position,
    next_power_of_two,
    route_loser_to_consolation,
)
from app.modules.tournaments.engine.compass import (
    consolation_layout,
    generate_compass_draw,
    get_all_finals,
    validate_compass_draw,
)
from app.modules.tournaments.engine.knockout import (
    build_bracket,
    calculate_knockout_rounds,
    generate_double_elimination_bracket,
    generate_knockout_bracket,
    standard_seed_order,
    validate_double_elimination_bracket,
    validate_knockout_bracket,
)
from app.modules.tournaments.engine.types import BYE, TBD, Match, Participant


def make_participants(count):
    return [Participant(user_id=f"p{i}", status="checked_in") for i in range(1, count + 1)]


def knockout_matches(bracket):
    matches = {}
    for round_ in bracket.rounds:
        for match in round_.matches:
            matches[("main", round_.round_number, match.bracket_position)] = Match(**match.model_dump())
    if bracket.bronze_match is not None:
        matches[("third_place", 1, 0)] = Match(**bracket.bronze_match.model_dump())
    return matches


def double_elimination_matches(bracket):
    matches = {}
    for round_ in bracket.winners.rounds:
        for match in round_.matches:
            matches[("winners", round_.round_number, match.bracket_position)] = Match(**match.model_dump())
    for round_ in bracket.losers:
        for match in round_.matches:
            matches[("losers", round_.round_number, match.bracket_position)] = Match(**match.model_dump())
    matches[("grand_final", 1, 0)] = Match(**bracket.grand_final.model_dump())
    return matches


# =============================================================================
# Position arithmetic
# =============================================================================

class TestBracketProgression:
    """Sizes, round names and where players move next"""

    @pytest.mark.parametrize("n,size", [(1, 1), (2, 2), (3, 4), (5, 8), (8, 8), (9, 16)])
    def test_next_power_of_two(self, n, size):
        assert next_power_of_two(n) == size

    def test_bye_count(self):
        assert calculate_bye_count(6) == 2
        assert calculate_bye_count(8) == 0

    def test_round_names(self):
        assert get_round_name(4, 4) == "Final"
        assert get_round_name(3, 4) == "Semifinals"
        assert get_round_name(2, 4) == "Quarterfinals"
        assert get_round_name(1, 4) == "Round of 16"

    def test_next_match_position(self):
        assert next_match_position(1, 0) == (2, 0, 1)
        assert next_match_position(1, 3) == (2, 1, 2)

    def test_losers_positions(self):
        assert losers_drop_position(1, 3) == (1, 1, 2)
        assert losers_drop_position(2, 1) == (2, 1, 2)
        assert losers_next_position(1, 1) == (2, 1, 1)
        assert losers_next_position(2, 1) == (3, 0, 2)

    def test_consolation_routing(self):
        assert route_loser_to_consolation(1, 0) == "east"
        assert route_loser_to_consolation(1, 1) == "west"
        assert route_loser_to_consolation(2, 5) == "south_west"
        assert route_loser_to_consolation(3, 0) is None


# =============================================================================
# Single elimination
# =============================================================================

class TestKnockout:
    """Seeding and byes"""

    def test_standard_seed_order(self):
        assert standard_seed_order(8) == [1, 8, 4, 5, 2, 7, 3, 6]

    def test_byes_go_to_top_seeds(self):
        bracket = build_bracket([f"p{i}" for i in range(1, 7)])

        assert bracket.bracket_size == 8
        assert bracket.total_byes == 2
        assert bracket.bye_players == ["p1", "p2"]
        assert [r.round_name for r in bracket.rounds] == ["Quarterfinals", "Semifinals", "Final"]

        first_round = bracket.rounds[0].matches
        assert [m.bracket_position for m in first_round] == [1, 3]
        assert (first_round[0].team1_player1_id, first_round[0].team2_player1_id) == ("p4", "p5")

        semis = bracket.rounds[1].matches
        assert semis[0].team(1) == ["p1", "p1"]
        assert semis[0].team(2) == [TBD, TBD]
        assert semis[1].team(1) == ["p2", "p2"]
        assert validate_knockout_bracket(bracket).valid

    def test_bronze_match(self):
        assert build_bracket(["a", "b", "c", "d"], bronze_match=True).bronze_match is not None
        assert build_bracket(["a", "b"], bronze_match=True).bronze_match is None

    def test_manual_seeding_must_cover_everyone(self):
        with pytest.raises(ValueError, match="Manual seeding requires exact seed order"):
            generate_knockout_bracket(make_participants(4), seeding="manual", seed_order=["p1", "p2"])

    def test_manual_seeding_order_is_used(self):
        bracket = generate_knockout_bracket(
            make_participants(4), seeding="manual", seed_order=["p4", "p3", "p2", "p1"]
        )
        first = bracket.rounds[0].matches[0]
        assert (first.team1_player1_id, first.team2_player1_id) == ("p4", "p1")

    def test_too_few_players(self):
        with pytest.raises(ValueError, match="at least 2 players"):
            generate_knockout_bracket(make_participants(1))
        with pytest.raises(ValueError):
            calculate_knockout_rounds(1)

    def test_round_count(self):
        assert calculate_knockout_rounds(5) == 3


# =============================================================================
# Double elimination
# =============================================================================

class TestDoubleElimination:
    """Winners bracket, losers bracket and grand final"""

    def test_losers_bracket_shape(self):
        bracket = generate_double_elimination_bracket(make_participants(8))
        assert len(bracket.winners.rounds) == 3
        assert [len(r.matches) for r in bracket.losers] == [2, 2, 1, 1]
        assert validate_double_elimination_bracket(bracket).valid

    def test_bye_seats_are_prefilled(self):
        bracket = generate_double_elimination_bracket(make_participants(6))
        losers_first = bracket.losers[0].matches
        assert losers_first[0].team(1) == [BYE, BYE]
        assert losers_first[1].team(1) == [BYE, BYE]
        assert losers_first[0].team(2) == [TBD, TBD]

    def test_needs_four_players(self):
        with pytest.raises(ValueError, match="at least 4 players"):
            generate_double_elimination_bracket(make_participants(3))


# =============================================================================
# Compass draw
# =============================================================================

class TestCompassDraw:
    """Main draw plus consolation brackets"""

    def test_layout_grows_with_bracket_size(self):
        assert set(consolation_layout(8)) == {"east", "west"}
        assert set(consolation_layout(32)) == {"east", "west", "north_east", "south_east"}
        assert len(consolation_layout(64)) == 6
        assert consolation_layout(32)["north_east"] == (2, 4)

    def test_eight_player_draw(self):
        compass = generate_compass_draw(make_participants(8))
        assert compass.total_brackets == 3
        assert compass.consolation["east"].bracket_size == 2
        assert validate_compass_draw(compass).valid

        finals = get_all_finals(compass)
        assert [f["bracket"] for f in finals] == ["Main Draw", "east", "west"]

    def test_needs_four_players(self):
        with pytest.raises(ValueError):
            generate_compass_draw(make_participants(3))


# =============================================================================
# Applying results
# =============================================================================

class TestBracketAdvancement:
    """Winners move on, losers drop, byes resolve as walkovers"""

    def test_semifinal_results_fill_final_and_bronze(self):
        matches = knockout_matches(build_bracket(["a", "b", "c", "d"], bronze_match=True))
        advancement = BracketAdvancement("knockout_single", matches)

        advancement.record_result(("main", 1, 0), 1)
        advancement.record_result(("main", 1, 1), 2)

        final = matches[("main", 2, 0)]
        bronze = matches[("third_place", 1, 0)]
        assert final.team(1) == ["a", "a"]
        assert final.team(2) == ["c", "c"]
        assert bronze.team(1) == ["d", "d"]
        assert bronze.team(2) == ["b", "b"]
        assert advancement.changed == {("main", 2, 0), ("third_place", 1, 0)}

    def test_champion_is_final_winner(self):
        matches = knockout_matches(build_bracket(["a", "b"]))
        advancement = BracketAdvancement("knockout_single", matches)
        assert advancement.champion() is None

        final = matches[("main", 1, 0)]
        final.status = "completed"
        final.winner_team = 2
        assert advancement.champion() == "b"
        assert advancement.is_complete()

    def test_loser_against_bye_seat_walks_over(self):
        bracket = generate_double_elimination_bracket(make_participants(6))
        matches = double_elimination_matches(bracket)
        advancement = BracketAdvancement("knockout_double", matches)

        # p4 v p5 in the winners first round
        advancement.record_result(("winners", 1, 1), 1)

        assert matches[("winners", 2, 0)].team(2) == ["p4", "p4"]
        walkover = matches[("losers", 1, 0)]
        assert walkover.status == "completed"
        assert walkover.winner_team == 2
        assert matches[("losers", 2, 0)].team(1) == ["p5", "p5"]

    def test_close_round_seals_unfillable_slots(self):
        matches = knockout_matches(build_bracket(["a", "b", "c", "d"], bronze_match=True))
        advancement = BracketAdvancement("knockout_single", matches)
        advancement.record_result(("main", 1, 0), 1)

        advancement.seal("third_place", 1, (2,))
        bronze = matches[("third_place", 1, 0)]
        assert bronze.team(2) == [BYE, BYE]
        assert bronze.status == "completed"
        assert bronze.winner_team == 1

    def test_play_order_single_elimination(self):
        order = bracket_play_order("knockout_single", {"main": 3, "third_place": 1})
        assert order == [("main", 1), ("main", 2), ("third_place", 1), ("main", 3)]

    def test_play_order_double_elimination(self):
        order = bracket_play_order("knockout_double", {"winners": 3, "losers": 4, "grand_final": 1})
        assert order == [
            ("winners", 1), ("losers", 1),
            ("winners", 2), ("losers", 2), ("losers", 3),
            ("winners", 3), ("losers", 4),
            ("grand_final", 1),
        ]
