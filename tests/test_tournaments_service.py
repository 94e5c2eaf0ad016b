"""
Tests for the tournament services: registration, geofenced check-in,
starting a tournament and score submission.
"""

from datetime import datetime

import pytest
from fastapi import HTTPException

from app.core.responses import ApiError
from app.modules.tournaments.engine.types import BYE, TBD, Match
from app.modules.tournaments.rounds import RoundService, tournament_config
from app.modules.tournaments.schemas import ScoreSubmission, StartTournamentRequest
from app.modules.tournaments.service import TournamentService, match_from_row, match_to_row

VENUE = {"location_lat": 40.4168, "location_lng": -3.7038, "geofence_radius_meters": 200}
NOW = datetime(2026, 10, 1, 9, 0, 0)


def tournament_row(**kwargs):
    row = {
        "id": "t1",
        "org_id": "org-1",
        "type": "americano",
        "status": "published",
        "max_participants": 16,
    }
    row.update(kwargs)
    return row


def participant_rows(*statuses):
    return [
        {"id": f"tp{i}", "user_id": "user-1" if i == 1 else f"p{i}", "tournament_id": "t1", "status": status}
        for i, status in enumerate(statuses, start=1)
    ]


def standing_rows(*user_ids):
    return [{"user_id": user_id, "tournament_id": "t1"} for user_id in user_ids]


# =============================================================================
# Row conversion
# =============================================================================

class TestRowConversion:
    """Placeholders are NULL in the database, byes are flags"""

    def test_bye_flags_become_bye_slots(self):
        match = match_from_row({
            "id": "m1",
            "team1_player1_id": "a",
            "team1_player2_id": "a",
            "team1_bye": False,
            "team2_bye": True,
            "bracket_position": 2,
        })
        assert match.team(2) == [BYE, BYE]
        assert match.bracket_position == 2

    def test_placeholders_are_stored_as_null(self):
        row = match_to_row(Match.singles("a", BYE))
        assert row["team2_player1_id"] is None
        assert row["team2_bye"] is True
        assert row["team1_bye"] is False

        row = match_to_row(Match())
        assert row["team1_player1_id"] is None
        assert match_from_row(row).team(1) == [TBD, TBD]

    def test_config_merges_settings(self):
        config = tournament_config({
            "type": "americano",
            "points_per_win": 2,
            "points_per_draw": None,
            "settings": {"rounds": 3, "court_strategy": "sequential"},
            "format_settings": {"rounds": 5},
        })
        assert config.points_per_win == 2
        assert config.points_per_draw == 1
        assert config.format_settings == {"rounds": 5, "court_strategy": "sequential"}


# =============================================================================
# Registration
# =============================================================================

class TestRegistration:
    """Joining and leaving"""

    def test_join_requires_published_tournament(self, fake_db):
        fake_db.queue("tournament", [tournament_row(status="draft")])
        with pytest.raises(HTTPException) as exc:
            TournamentService(fake_db).join_tournament("t1", "user-1")
        assert exc.value.detail == "Tournament is not open for registration"

    def test_join_twice(self, fake_db):
        fake_db.queue("tournament", [tournament_row()])
        fake_db.queue("tournament_participant", participant_rows("registered"))
        with pytest.raises(HTTPException) as exc:
            TournamentService(fake_db).join_tournament("t1", "user-1")
        assert exc.value.status_code == 409

    def test_join_full_tournament(self, fake_db):
        fake_db.queue("tournament", [tournament_row(max_participants=8)])
        fake_db.queue("tournament_participant", [])
        fake_db.queue("tournament_participant", [], count=8)
        with pytest.raises(HTTPException) as exc:
            TournamentService(fake_db).join_tournament("t1", "user-1")
        assert exc.value.detail == "Tournament is at full capacity"

    def test_join(self, fake_db):
        fake_db.queue("tournament", [tournament_row()])
        fake_db.queue("tournament_participant", [])
        fake_db.queue("tournament_participant", [], count=3)
        fake_db.queue("tournament_participant", [{"id": "tp1", "status": "registered"}])

        participant = TournamentService(fake_db).join_tournament("t1", "user-1")
        assert participant["status"] == "registered"
        inserted, = fake_db.called("tournament_participant", "insert")[0]
        assert inserted["user_id"] == "user-1"

    def test_withdrawn_player_rejoins(self, fake_db):
        fake_db.queue("tournament", [tournament_row()])
        fake_db.queue("tournament_participant", participant_rows("withdrawn"))
        fake_db.queue("tournament_participant", [], count=0)
        fake_db.queue("tournament_participant", [{"id": "tp1", "status": "registered"}])

        TournamentService(fake_db).join_tournament("t1", "user-1")
        assert fake_db.called("tournament_participant", "insert") == []
        assert fake_db.called("tournament_participant", "update")[0][0]["status"] == "registered"

    def test_cannot_leave_started_tournament(self, fake_db):
        fake_db.queue("tournament", [tournament_row(status="in_progress")])
        with pytest.raises(HTTPException) as exc:
            TournamentService(fake_db).leave_tournament("t1", "user-1")
        assert exc.value.status_code == 400

    def test_leave_when_not_registered(self, fake_db):
        fake_db.queue("tournament", [tournament_row()])
        with pytest.raises(HTTPException) as exc:
            TournamentService(fake_db).leave_tournament("t1", "user-1")
        assert exc.value.status_code == 404


# =============================================================================
# Check-in
# =============================================================================

class TestCheckIn:
    """Check-in window and venue geofence"""

    def test_must_be_registered(self, fake_db):
        fake_db.queue("tournament", [tournament_row(**VENUE)])
        with pytest.raises(HTTPException) as exc:
            TournamentService(fake_db).check_in("t1", "user-1", 40.4168, -3.7038, now=NOW)
        assert exc.value.status_code == 403

    def test_window_not_open(self, fake_db):
        fake_db.queue("tournament", [tournament_row(check_in_opens_at="2026-10-01T10:00:00Z", **VENUE)])
        fake_db.queue("tournament_participant", participant_rows("registered"))
        with pytest.raises(HTTPException) as exc:
            TournamentService(fake_db).check_in("t1", "user-1", 40.4168, -3.7038, now=NOW)
        assert exc.value.detail == "Check-in has not opened yet"

    def test_window_closed(self, fake_db):
        fake_db.queue("tournament", [tournament_row(check_in_closes_at="2026-10-01T08:30:00+00:00", **VENUE)])
        fake_db.queue("tournament_participant", participant_rows("registered"))
        with pytest.raises(HTTPException) as exc:
            TournamentService(fake_db).check_in("t1", "user-1", 40.4168, -3.7038, now=NOW)
        assert exc.value.detail == "Check-in period has closed"

    def test_already_checked_in(self, fake_db):
        fake_db.queue("tournament", [tournament_row(**VENUE)])
        fake_db.queue("tournament_participant", participant_rows("checked_in"))
        with pytest.raises(HTTPException) as exc:
            TournamentService(fake_db).check_in("t1", "user-1", 40.4168, -3.7038, now=NOW)
        assert exc.value.detail == "Already checked in"

    def test_outside_geofence(self, fake_db):
        fake_db.queue("tournament", [tournament_row(**VENUE)])
        fake_db.queue("tournament_participant", participant_rows("registered"))
        with pytest.raises(HTTPException) as exc:
            TournamentService(fake_db).check_in("t1", "user-1", 40.4268, -3.7038, now=NOW)
        assert exc.value.status_code == 400
        assert exc.value.detail.startswith("You must be within 200m of the venue to check in.")
        assert fake_db.called("tournament_participant", "update") == []

    def test_check_in_at_the_venue(self, fake_db):
        fake_db.queue("tournament", [tournament_row(
            check_in_opens_at="2026-10-01T08:00:00Z", check_in_closes_at="2026-10-01T10:00:00Z", **VENUE
        )])
        fake_db.queue("tournament_participant", participant_rows("registered"))
        fake_db.queue("tournament_participant", [{"id": "tp1", "status": "checked_in"}])

        participant = TournamentService(fake_db).check_in("t1", "user-1", 40.4169, -3.7038, now=NOW)
        assert participant["status"] == "checked_in"
        update, = fake_db.called("tournament_participant", "update")[0]
        assert update["checked_in_lat"] == 40.4169
        assert update["checked_in_at"] == NOW.isoformat()

    def test_route_returns_participant(self, client, fake_db):
        fake_db.queue("tournament", [tournament_row()])
        fake_db.queue("tournament_participant", participant_rows("registered"))
        fake_db.queue("tournament_participant", [{"id": "tp1", "status": "checked_in"}])

        response = client.post("/api/v1/tournaments/t1/check-in", json={"lat": 40.4, "lng": -3.7})
        assert response.status_code == 200
        assert response.json() == {
            "data": {"participant": {"id": "tp1", "status": "checked_in"}},
            "message": "Successfully checked in",
        }


# =============================================================================
# Starting
# =============================================================================

class TestStartTournament:
    """First round generation"""

    def queue_start(self, fake_db, participants, courts, **tournament):
        fake_db.queue("tournament", [tournament_row(**tournament)])
        fake_db.queue("org_member", [{"role": "owner"}])
        fake_db.queue("tournament_round", [])
        fake_db.queue("tournament_participant", participants)
        fake_db.queue("court", courts)

    def test_only_admins_start(self, fake_db, current_user):
        fake_db.queue("tournament", [tournament_row()])
        fake_db.queue("org_member", [{"role": "member"}])
        with pytest.raises(HTTPException) as exc:
            RoundService(fake_db).start_tournament("t1", StartTournamentRequest(), current_user)
        assert exc.value.status_code == 403

    def test_bracket_formats_generate_instead(self, fake_db, current_user):
        fake_db.queue("tournament", [tournament_row(type="knockout_single")])
        fake_db.queue("org_member", [{"role": "admin"}])
        with pytest.raises(HTTPException) as exc:
            RoundService(fake_db).start_tournament("t1", StartTournamentRequest(), current_user)
        assert exc.value.detail == "Bracket tournaments start by generating their bracket"

    def test_validation_failure_carries_errors(self, fake_db, current_user):
        self.queue_start(fake_db, participant_rows("checked_in", "checked_in", "checked_in"), [])
        with pytest.raises(ApiError) as exc:
            RoundService(fake_db).start_tournament("t1", StartTournamentRequest(), current_user)
        assert exc.value.detail == "Cannot start tournament"
        assert "No active courts available" in exc.value.details["errors"]

    def test_start_generates_first_round(self, fake_db, current_user):
        participants = participant_rows("checked_in", "checked_in", "checked_in", "checked_in", "registered")
        self.queue_start(fake_db, participants, [{"id": "c1", "name": "Court 1", "org_id": "org-1", "active": True}])
        fake_db.queue("tournament_round", [{"id": "r1", "round_number": 1, "status": "in_progress"}])

        result = RoundService(fake_db).start_tournament("t1", StartTournamentRequest(), current_user)

        assert result["round"]["id"] == "r1"
        match, = result["matches"]
        assert match["round_id"] == "r1"
        assert match["court_id"] == "c1"
        assert [match["team1_player1_id"], match["team1_player2_id"]] == ["user-1", "p4"]
        assert result["warnings"] == ["1 participants registered but not checked in"]

        standings, = fake_db.called("tournament_standing", "upsert")[0]
        assert {row["user_id"] for row in standings} == {"user-1", "p2", "p3", "p4"}
        assert fake_db.called("tournament_participant", "update")[0][0]["status"] == "no_show"
        update, = fake_db.called("tournament", "update")[0]
        assert update["status"] == "in_progress"
        assert update["format_settings"]["court_ids"] == ["c1"]

    def test_route_renders_validation_details(self, client, fake_db):
        self.queue_start(fake_db, participant_rows("checked_in"), [])

        response = client.post("/api/v1/tournaments/t1/start")
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Cannot start tournament"
        assert "Need at least 4 players, only 1 checked in" in body["details"]["errors"]
        assert body["details"]["warnings"] == []


# =============================================================================
# Scores
# =============================================================================

class TestSubmitScore:
    """Score entry, standings and bracket advancement"""

    match_row = {
        "id": "m1",
        "round_id": "r1",
        "team1_player1_id": "user-1",
        "team1_player2_id": "p2",
        "team2_player1_id": "p3",
        "team2_player2_id": "p4",
        "status": "pending",
    }

    def test_tournament_must_be_running(self, fake_db, current_user):
        fake_db.queue("tournament", [tournament_row()])
        with pytest.raises(HTTPException) as exc:
            RoundService(fake_db).submit_score("t1", "r1", "m1", ScoreSubmission(team1_score=6, team2_score=2), current_user)
        assert exc.value.detail == "Tournament is not in progress"

    def test_round_must_have_started(self, fake_db, current_user):
        fake_db.queue("tournament", [tournament_row(type="knockout_single", status="in_progress")])
        fake_db.queue("tournament_round", [{"id": "r2", "bracket_type": "main", "bracket_round": 2, "status": "pending"}])
        with pytest.raises(HTTPException) as exc:
            RoundService(fake_db).submit_score("t1", "r2", "m3", ScoreSubmission(team1_score=6, team2_score=2), current_user)
        assert exc.value.detail == "Round has not started yet"
        assert fake_db.called("tournament_match", "select") == []

    def test_outsiders_cannot_submit(self, fake_db, current_user):
        fake_db.queue("tournament", [tournament_row(status="in_progress")])
        fake_db.queue("tournament_round", [{"id": "r1", "status": "in_progress"}])
        fake_db.queue("tournament_match", [{**self.match_row, "team1_player1_id": "p1"}])
        with pytest.raises(HTTPException) as exc:
            RoundService(fake_db).submit_score("t1", "r1", "m1", ScoreSubmission(team1_score=6, team2_score=2), current_user)
        assert exc.value.status_code == 403

    def test_score_only_once(self, fake_db, current_user):
        fake_db.queue("tournament", [tournament_row(status="in_progress")])
        fake_db.queue("tournament_round", [{"id": "r1", "status": "in_progress"}])
        fake_db.queue("tournament_match", [{**self.match_row, "status": "completed"}])
        with pytest.raises(HTTPException) as exc:
            RoundService(fake_db).submit_score("t1", "r1", "m1", ScoreSubmission(team1_score=6, team2_score=2), current_user)
        assert exc.value.detail == "Score already submitted for this match"

    def test_bracket_match_cannot_be_drawn(self, fake_db, current_user):
        fake_db.queue("tournament", [tournament_row(type="knockout_single", status="in_progress")])
        fake_db.queue("tournament_match", [{
            "id": "m1", "round_id": "r1", "bracket_position": 0,
            "team1_player1_id": "user-1", "team1_player2_id": "user-1",
            "team2_player1_id": "p2", "team2_player2_id": "p2",
        }])
        fake_db.queue("tournament_round", [{"id": "r1", "bracket_type": "main", "bracket_round": 1, "status": "in_progress"}])
        with pytest.raises(HTTPException) as exc:
            RoundService(fake_db).submit_score("t1", "r1", "m1", ScoreSubmission(team1_score=5, team2_score=5), current_user)
        assert exc.value.detail == "Bracket matches cannot end in a draw"

    def test_score_updates_standings(self, fake_db, current_user):
        fake_db.queue("tournament", [tournament_row(status="in_progress")])
        fake_db.queue("tournament_match", [self.match_row])
        fake_db.queue("tournament_round", [{"id": "r1", "round_number": 1, "status": "in_progress"}])
        fake_db.queue("tournament_match", [{**self.match_row, "status": "completed", "team1_score": 6, "team2_score": 3}])
        fake_db.queue("tournament_standing", standing_rows("user-1", "p2", "p3", "p4"))

        result = RoundService(fake_db).submit_score(
            "t1", "r1", "m1", ScoreSubmission(team1_score=6, team2_score=3), current_user
        )

        assert result["match"]["status"] == "completed"
        table = {row["user_id"]: row for row in result["standings"]}
        assert table["user-1"]["points"] == 3
        assert table["user-1"]["games_diff"] == 3
        assert table["p3"]["matches_lost"] == 1
        update, = fake_db.called("tournament_match", "update")[0]
        assert update["winner_team"] == 1
        assert update["is_draw"] is False

    def test_bracket_winner_moves_to_next_round(self, fake_db, current_user):
        semifinal = {
            "id": "m1", "round_id": "r1", "bracket_position": 0, "status": "pending",
            "team1_player1_id": "a", "team1_player2_id": "a",
            "team2_player1_id": "user-1", "team2_player2_id": "user-1",
        }
        other_semifinal = {
            "id": "m2", "round_id": "r1", "bracket_position": 1, "status": "pending",
            "team1_player1_id": "c", "team1_player2_id": "c",
            "team2_player1_id": "d", "team2_player2_id": "d",
        }
        final = {"id": "m3", "round_id": "r2", "bracket_position": 0, "status": "pending"}
        rounds = [
            {"id": "r1", "round_number": 1, "bracket_type": "main", "bracket_round": 1, "status": "in_progress"},
            {"id": "r2", "round_number": 2, "bracket_type": "main", "bracket_round": 2, "status": "pending"},
        ]
        fake_db.queue("tournament", [tournament_row(type="knockout_single", status="in_progress")])
        fake_db.queue("tournament_match", [semifinal])
        fake_db.queue("tournament_round", rounds[:1])
        fake_db.queue("tournament_match", [])
        fake_db.queue("tournament_standing", standing_rows("a", "user-1", "c", "d"))
        fake_db.queue("tournament_round", rounds)
        fake_db.queue("tournament_match", [semifinal, other_semifinal, final])

        result = RoundService(fake_db).submit_score(
            "t1", "r1", "m1", ScoreSubmission(team1_score=2, team2_score=6), current_user
        )

        assert result["match"]["winner_team"] == 2
        updates = [args[0] for args in fake_db.called("tournament_match", "update")]
        final_update = updates[-1]
        assert final_update["team1_player1_id"] == "user-1"
        assert final_update["team2_player1_id"] is None
        assert ("id", "m3") in fake_db.called("tournament_match", "eq")


class TestCompleteRound:
    """Closing a round only while the tournament runs"""

    @pytest.mark.parametrize("status", ["cancelled", "completed", "published"])
    def test_tournament_must_be_running(self, fake_db, current_user, status):
        fake_db.queue("tournament", [tournament_row(status=status)])
        fake_db.queue("org_member", [{"role": "admin"}])
        with pytest.raises(HTTPException) as exc:
            RoundService(fake_db).complete_round("t1", "r1", current_user)
        assert exc.value.status_code == 400
        assert exc.value.detail == "Tournament is not in progress"
        assert fake_db.called("tournament_round", "update") == []
        assert fake_db.called("tournament_round", "insert") == []

    def test_pending_round_cannot_be_completed(self, fake_db, current_user):
        fake_db.queue("tournament", [tournament_row(type="knockout_single", status="in_progress")])
        fake_db.queue("org_member", [{"role": "owner"}])
        fake_db.queue("tournament_round", [{"id": "r2", "bracket_type": "main", "bracket_round": 2, "status": "pending"}])
        with pytest.raises(HTTPException) as exc:
            RoundService(fake_db).complete_round("t1", "r2", current_user)
        assert exc.value.detail == "Round has not started yet"

    def test_open_matches_block_completion(self, fake_db, current_user):
        fake_db.queue("tournament", [tournament_row(status="in_progress")])
        fake_db.queue("org_member", [{"role": "admin"}])
        fake_db.queue("tournament_round", [{"id": "r1", "round_number": 1, "status": "in_progress"}])
        fake_db.queue("tournament_match", [{"id": "m1", "status": "completed"}, {"id": "m2", "status": "pending"}])
        with pytest.raises(HTTPException) as exc:
            RoundService(fake_db).complete_round("t1", "r1", current_user)
        assert exc.value.detail == "Not all matches in this round are completed"

    def test_route_rejects_cancelled_tournament(self, client, fake_db):
        fake_db.queue("tournament", [tournament_row(status="cancelled")])
        fake_db.queue("org_member", [{"role": "admin"}])
        response = client.post("/api/v1/tournaments/t1/rounds/r1/complete")
        assert response.status_code == 400
        assert response.json() == {"error": "Tournament is not in progress"}
