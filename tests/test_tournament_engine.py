"""
Tests for standings, court rotation, geofencing and the TournamentEngine
dispatcher.
"""

import pytest

from app.modules.tournaments.engine.court_rotation import (
    assign_courts,
    get_court_usage_stats,
    validate_court_assignments,
)
from app.modules.tournaments.engine.geofencing import (
    calculate_distance,
    get_geofence_bounding_box,
    is_valid_coordinates,
    validate_geofence,
)
from app.modules.tournaments.engine.standings import (
    calculate_standings,
    get_player_rank,
    is_tournament_complete,
    match_outcome,
    rank_standings,
    update_standings_for_match,
)
from app.modules.tournaments.engine.tournament_engine import TournamentEngine, monrad_config_from_settings
from app.modules.tournaments.engine.types import (
    Court,
    Match,
    MatchPairing,
    Participant,
    Standing,
    TournamentConfig,
)

AMERICANO = TournamentConfig(type="americano")


def make_participants(count, status="checked_in"):
    return [Participant(user_id=f"p{i}", status=status) for i in range(1, count + 1)]


def make_courts(count):
    return [Court(id=f"c{i}", name=f"Court {i}") for i in range(1, count + 1)]


# =============================================================================
# Standings
# =============================================================================

class TestStandings:
    """Points, games and tie-breaks"""

    def test_doubles_win(self):
        match = Match.doubles(["a", "b"], ["c", "d"], status="completed", team1_score=6, team2_score=3)
        table = {s.user_id: s for s in calculate_standings("t1", [match], AMERICANO)}

        assert table["a"].points == 3
        assert table["a"].games_diff == 3
        assert table["a"].matches_won == 1
        assert table["c"].points == 0
        assert table["c"].matches_lost == 1
        assert table["a"].rank in (1, 2)
        assert table["c"].rank in (3, 4)

    def test_equal_scores_are_a_draw(self):
        match = Match.doubles(["a", "b"], ["c", "d"], status="completed", team1_score=4, team2_score=4)
        assert match_outcome(match) == (True, None)

        table = {s.user_id: s for s in calculate_standings("t1", [match], AMERICANO)}
        assert table["a"].points == 1
        assert table["d"].matches_drawn == 1

    def test_singles_entry_counted_once(self):
        match = Match.singles("a", "b", status="completed", team1_score=6, team2_score=2)
        table = {s.user_id: s for s in calculate_standings("t1", [match], AMERICANO)}
        assert table["a"].matches_played == 1
        assert table["a"].games_won == 6

    def test_pending_matches_do_not_score(self):
        match = Match.doubles(["a", "b"], ["c", "d"])
        table = calculate_standings("t1", [match], AMERICANO)
        assert all(s.matches_played == 0 for s in table)
        assert not is_tournament_complete([match])

    def test_update_requires_scores(self):
        with pytest.raises(ValueError, match="Match must have scores"):
            update_standings_for_match(Match.singles("a", "b"), [], AMERICANO)

    def test_update_applies_on_top_of_current_table(self):
        current = [Standing(user_id="a", points=3, matches_played=1), Standing(user_id="b")]
        match = Match.singles("a", "b", status="completed", team1_score=2, team2_score=6)
        updated = update_standings_for_match(match, current, AMERICANO)

        assert get_player_rank("b", updated) == 1
        assert updated[0].points == 3
        # The input list is left untouched
        assert current[1].points == 0

    def test_tie_breaks(self):
        ranked = rank_standings([
            Standing(user_id="x", points=3, games_diff=1),
            Standing(user_id="y", points=3, games_diff=4),
            Standing(user_id="z", points=3, games_diff=4, fair_play_points=2),
        ])
        assert [s.user_id for s in ranked] == ["z", "y", "x"]
        assert [s.rank for s in ranked] == [1, 2, 3]

    def test_custom_points(self):
        config = TournamentConfig(type="round_robin", points_per_win=2, points_per_loss=1)
        match = Match.singles("a", "b", status="completed", team1_score=6, team2_score=1)
        table = {s.user_id: s for s in calculate_standings("t1", [match], config)}
        assert table["a"].points == 2
        assert table["b"].points == 1


# =============================================================================
# Court rotation
# =============================================================================

class TestCourtRotation:
    """Assigning a round's matches to courts"""

    def test_balanced_prefers_least_used_courts(self):
        history = [
            MatchPairing(court_id="c1"),
            MatchPairing(court_id="c1"),
            MatchPairing(court_id="c2"),
        ]
        assert get_court_usage_stats(history) == {"c1": 2, "c2": 1}

        assigned = assign_courts([MatchPairing(), MatchPairing()], make_courts(3), history=history)
        assert [m.court_id for m in assigned] == ["c3", "c2"]

    def test_sequential(self):
        assigned = assign_courts([MatchPairing(), MatchPairing()], make_courts(3), "sequential")
        assert [m.court_id for m in assigned] == ["c1", "c2"]

    def test_inactive_courts_are_skipped(self):
        courts = [Court(id="c1", active=False), Court(id="c2")]
        assigned = assign_courts([MatchPairing()], courts, "sequential")
        assert assigned[0].court_id == "c2"

    def test_not_enough_courts(self):
        with pytest.raises(ValueError, match="Not enough courts"):
            assign_courts([MatchPairing(), MatchPairing()], make_courts(1))

        assigned = assign_courts([MatchPairing(), MatchPairing()], make_courts(1), allow_waiting=True)
        assert [m.court_id for m in assigned] == ["c1", None]

    def test_no_active_courts(self):
        with pytest.raises(ValueError, match="No active courts"):
            assign_courts([MatchPairing()], [Court(id="c1", active=False)])

    def test_validation_flags_double_booking(self):
        courts = make_courts(2) + [Court(id="c3", name="Closed", active=False)]
        matches = [
            MatchPairing(court_id="c1"),
            MatchPairing(court_id="c1"),
            MatchPairing(court_id="c3"),
            MatchPairing(court_id="c9"),
        ]
        result = validate_court_assignments(matches, courts)
        assert not result.valid
        assert len(result.errors) == 3


# =============================================================================
# Geofencing
# =============================================================================

class TestGeofencing:
    """Check-in distance from the venue"""

    def test_distance_madrid_barcelona(self):
        distance = calculate_distance(40.4168, -3.7038, 41.3874, 2.1686)
        assert 495_000 < distance < 510_000

    def test_inside_and_outside(self):
        assert validate_geofence(40.4168, -3.7038, 40.4168, -3.7038, 100) == (True, 0)
        inside, distance = validate_geofence(40.4168, -3.7038, 40.4268, -3.7038, 500)
        assert not inside
        assert 1100 < distance < 1120

    def test_coordinate_validation(self):
        assert is_valid_coordinates(40.0, -3.0)
        assert not is_valid_coordinates(91.0, 0.0)
        assert not is_valid_coordinates(0.0, 181.0)
        assert not is_valid_coordinates(float("nan"), 0.0)

    def test_bounding_box_contains_center(self):
        box = get_geofence_bounding_box(40.4168, -3.7038, 1000)
        assert box["sw"]["lat"] < 40.4168 < box["ne"]["lat"]
        assert box["sw"]["lng"] < -3.7038 < box["ne"]["lng"]


# =============================================================================
# TournamentEngine
# =============================================================================

class TestTournamentEngine:
    """Start validation, round generation and round counts"""

    def test_start_validation_errors(self):
        participants = make_participants(3) + [Participant(user_id="late")]
        result = TournamentEngine.validate_tournament_start(participants, [])

        assert not result.valid
        assert "Need at least 4 players, only 3 checked in" in result.errors
        assert "Need even number of players, currently 3" in result.errors
        assert "No active courts available" in result.errors
        assert "1 participants registered but not checked in" in result.warnings

    def test_start_validation_warns_about_waiting_matches(self):
        result = TournamentEngine.validate_tournament_start(make_participants(8), make_courts(1))
        assert result.valid
        assert result.warnings == ["Only 1 courts for 2 matches. Some matches will wait."]

    def test_next_round_gets_courts(self):
        matches = TournamentEngine.generate_next_round(
            AMERICANO, make_participants(8), 1, [], [], make_courts(2)
        )
        assert len(matches) == 2
        assert {m.court_id for m in matches} == {"c1", "c2"}
        assert matches[0].team(1) == ["p1", "p8"]

    def test_next_round_with_too_few_courts_waits(self):
        matches = TournamentEngine.generate_next_round(
            AMERICANO, make_participants(8), 1, [], [], make_courts(1)
        )
        assert [m.court_id for m in matches] == ["c1", None]

    def test_swiss_round_fills_missing_standings(self):
        config = TournamentConfig(type="swiss")
        matches = TournamentEngine.generate_round_matches(config, make_participants(4), 1, [], [])
        assert len(matches) == 2

    def test_bracket_formats_are_rejected(self):
        with pytest.raises(ValueError, match="generated bracket"):
            TournamentEngine.generate_round_matches(
                TournamentConfig(type="knockout_single"), make_participants(4), 1, [], []
            )

    @pytest.mark.parametrize("config,players,rounds", [
        (TournamentConfig(type="americano"), 8, 7),
        (TournamentConfig(type="americano", format_settings={"rounds": 4}), 8, 4),
        (TournamentConfig(type="mexicano"), 8, 5),
        (TournamentConfig(type="round_robin"), 5, 5),
        (TournamentConfig(type="swiss"), 8, 5),
        (TournamentConfig(type="monrad"), 12, 3),
        (TournamentConfig(type="knockout_single"), 8, None),
    ])
    def test_total_rounds(self, config, players, rounds):
        assert TournamentEngine.total_rounds(config, players) == rounds

    def test_stored_monrad_settings_win(self):
        config = monrad_config_from_settings({"monrad": {"swiss_rounds": 5, "final_bracket_size": 8}}, 12)
        assert config.swiss_rounds == 5
        assert monrad_config_from_settings({}, 12).swiss_rounds == 3
