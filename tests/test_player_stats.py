"""
Tests for fair play scoring, player statistics and leaderboards.
"""

from datetime import datetime

import pytest
from fastapi import HTTPException

from app.modules.analytics.service import AnalyticsService
from app.modules.analytics.stats import compute_player_stats, evolution_series, period_window
from app.modules.leaderboards.service import (
    LeaderboardService,
    apply_rank_changes,
    build_entries,
    metric_value,
)
from app.modules.tournaments.fair_play import (
    FairPlayService,
    apply_adjustment,
    incident_points,
    standing_adjustment,
)
from app.modules.tournaments.schemas import FairPlayIncidentCreate


def played(team1, team2, score1, score2):
    return {
        "team1_player1_id": team1[0],
        "team1_player2_id": team1[1],
        "team2_player1_id": team2[0],
        "team2_player2_id": team2[1],
        "team1_score": score1,
        "team2_score": score2,
    }


# =============================================================================
# Fair play
# =============================================================================

class TestFairPlay:
    """Penalties, bonuses and their effect on standings"""

    def test_default_points(self):
        assert incident_points("yellow_card", 2) == {"penalty_points": 4, "bonus_points": 0}
        assert incident_points("positive_conduct", 3) == {"penalty_points": 0, "bonus_points": 3}

    def test_pinned_points_win(self):
        assert incident_points("red_card", 5, penalty_points=1) == {"penalty_points": 1, "bonus_points": 0}
        assert incident_points("positive_conduct", 1, bonus_points=0) == {"penalty_points": 0, "bonus_points": 0}

    def test_adjustment_and_revert(self):
        incident = {"incident_type": "red_card", "penalty_points": 6, "bonus_points": 0}
        assert standing_adjustment(incident) == {
            "fair_play_points": -6, "yellow_cards": 0, "red_cards": 1, "conduct_bonus": 0,
        }
        standing = {"fair_play_points": -6, "red_cards": 1, "yellow_cards": None}
        reverted = apply_adjustment(standing, standing_adjustment(incident, -1))
        assert reverted == {"fair_play_points": 0, "yellow_cards": 0, "red_cards": 0, "conduct_bonus": 0}

    def test_incident_requires_participant(self, fake_db, current_user):
        fake_db.queue("tournament", [{"id": "t1", "org_id": "org-1", "status": "in_progress"}])
        fake_db.queue("org_member", [{"role": "admin"}])
        incident = FairPlayIncidentCreate(user_id="p2", incident_type="code_violation", severity=1)
        with pytest.raises(HTTPException) as exc:
            FairPlayService(fake_db).create_incident("t1", incident, current_user)
        assert exc.value.detail == "User is not a tournament participant"

    def test_incident_updates_standing(self, fake_db, current_user):
        fake_db.queue("tournament", [{"id": "t1", "org_id": "org-1", "status": "in_progress"}])
        fake_db.queue("org_member", [{"role": "owner"}])
        fake_db.queue("tournament_participant", [{"id": "tp2"}])
        fake_db.queue("tournament_fair_play", [{
            "id": "i1", "user_id": "p2", "incident_type": "yellow_card", "penalty_points": 4, "bonus_points": 0,
        }])
        fake_db.queue("tournament_standing", [{"user_id": "p2", "fair_play_points": 0, "yellow_cards": 1}])

        created = FairPlayService(fake_db).create_incident(
            "t1", FairPlayIncidentCreate(user_id="p2", incident_type="yellow_card", severity=2), current_user
        )

        assert created["id"] == "i1"
        inserted, = fake_db.called("tournament_fair_play", "insert")[0]
        assert inserted["penalty_points"] == 4
        assert inserted["issued_by"] == "user-1"
        update, = fake_db.called("tournament_standing", "update")[0]
        assert update["fair_play_points"] == -4
        assert update["yellow_cards"] == 2

    def test_only_issuer_or_admin_deletes(self, fake_db, current_user):
        fake_db.queue("tournament_fair_play", [{"id": "i1", "tournament_id": "t1", "issued_by": "someone", "user_id": "p2"}])
        fake_db.queue("tournament", [{"id": "t1", "org_id": "org-1"}])
        with pytest.raises(HTTPException) as exc:
            FairPlayService(fake_db).delete_incident("i1", current_user)
        assert exc.value.status_code == 403
        assert fake_db.called("tournament_fair_play", "delete") == []


# =============================================================================
# Player statistics
# =============================================================================

class TestPlayerStats:
    """Aggregates over completed matches"""

    def test_compute_player_stats(self):
        matches = [
            played(["me", "a"], ["b", "c"], 6, 2),
            played(["b", "c"], ["me", "d"], 3, 6),
            played(["me", "a"], ["b", "c"], 4, 6),
            played(["x", "y"], ["b", "c"], 6, 0),
        ]
        stats = compute_player_stats("me", matches)

        assert stats["total_matches"] == 3
        assert stats["matches_won"] == 2
        assert stats["matches_lost"] == 1
        assert stats["win_rate"] == pytest.approx(66.67)
        assert stats["games_diff"] == 16 - 11
        assert stats["best_win_streak"] == 2
        assert stats["current_win_streak"] == 0
        assert stats["elo_rating"] == 1200 + 2 * 20 - 15

    def test_no_matches(self):
        stats = compute_player_stats("me", [])
        assert stats["win_rate"] == 0
        assert stats["elo_rating"] == 1200

    def test_period_windows(self):
        now = datetime(2026, 10, 15, 18, 30)  # a Thursday
        assert period_window("day", now)[0] == datetime(2026, 10, 15)
        assert period_window("week", now)[0] == datetime(2026, 10, 12)
        assert period_window("month", now)[0] == datetime(2026, 10, 1)
        assert period_window("all_time", now) == (datetime(2024, 1, 1), now)

    def test_evolution_is_chronological(self):
        series = evolution_series([
            {"period_start": "2026-10-12", "win_rate": 50, "elo_rating": 1210, "total_matches": 4},
            {"period_start": "2026-10-05", "win_rate": 25, "elo_rating": 1190, "total_matches": 4},
        ])
        assert [point["date"] for point in series] == ["2026-10-05", "2026-10-12"]
        assert series[0]["matches_played"] == 4

    def test_calculate_and_store(self, fake_db):
        fake_db.queue("tournament_match", [
            played(["u1", "a"], ["b", "c"], 6, 4),
            played(["u1", "a"], ["b", "c"], 6, 1),
            played(["u1", "a"], ["b", "c"], 2, 6),
        ])
        fake_db.queue("tournament_participant", [], count=3)
        fake_db.queue("tournament_standing", [], count=1)
        fake_db.queue("tournament_standing", [{"fair_play_points": 2}, {"fair_play_points": -4}])
        fake_db.queue("user_profile", [{"level": 3.5, "followers_count": 10, "following_count": 5}])
        fake_db.queue("player_stats", [{"elo_rating": 1200}])

        row = AnalyticsService(fake_db).calculate_player_stats(
            "u1", "week", datetime(2026, 10, 12), datetime(2026, 10, 15)
        )

        assert row["elo_rating"] == 1225
        assert row["elo_change"] == 25
        assert row["tournaments_played"] == 3
        assert row["tournaments_won"] == 1
        assert row["fair_play_score"] == -2
        assert row["connections_count"] == 15
        assert row["skill_level"] == "3.5"
        assert row["period_start"] == "2026-10-12"
        stored, = fake_db.called("player_stats", "upsert")[0]
        assert stored["user_id"] == "u1"


# =============================================================================
# Leaderboards
# =============================================================================

class TestLeaderboards:
    """Snapshots, on-demand ranking and rank movement"""

    rows = [
        {"user_id": "a", "elo_rating": 1400, "user_profile": {"username": "ana"}},
        {"user_id": "b", "elo_rating": 1300, "user_profile": [{"username": "bea", "avatar_url": "b.png"}]},
        {"user_id": "c", "elo_rating": None, "user_profile": None},
    ]

    def test_build_entries(self):
        entries = build_entries(self.rows, "elo_rating")
        assert [e["rank"] for e in entries] == [1, 2, 3]
        assert entries[1]["username"] == "bea"
        assert entries[1]["avatar_url"] == "b.png"
        assert entries[2]["value"] == 0

    def test_metric_columns(self):
        assert metric_value({"current_win_streak": 4}, "win_streak") == 4

    def test_rank_changes(self):
        current = [{"user_id": "a", "rank": 1}, {"user_id": "b", "rank": 2}, {"user_id": "new", "rank": 3}]
        previous = [{"user_id": "b", "rank": 1}, {"user_id": "a", "rank": 4}]
        assert [e["change"] for e in apply_rank_changes(current, previous)] == [3, -1, 0]

    def test_snapshot_is_served_when_present(self, fake_db):
        fake_db.queue("leaderboard", [{"rankings": [{"user_id": "a", "rank": 1, "value": 1400}]}])
        assert LeaderboardService(fake_db).get_leaderboard("global") == [{"user_id": "a", "rank": 1, "value": 1400}]
        assert fake_db.called("player_stats", "select") == []

    def test_calculated_without_snapshot(self, fake_db):
        fake_db.queue("player_stats", self.rows)
        entries = LeaderboardService(fake_db).get_leaderboard("global")
        assert [e["user_id"] for e in entries] == ["a", "b", "c"]

    def test_club_without_members_is_empty(self, fake_db):
        assert LeaderboardService(fake_db).calculate_leaderboard("club", scope_id="org-1") == []

    def test_user_position(self, fake_db):
        fake_db.queue("player_stats", self.rows)
        position = LeaderboardService(fake_db).get_user_position("b", "global")
        assert position == {"rank": 2, "value": 1300, "total": 3}

    def test_changes_against_previous_snapshot(self, fake_db):
        current = [{"user_id": "a", "rank": 1}, {"user_id": "b", "rank": 2}]
        previous = [{"user_id": "b", "rank": 1}, {"user_id": "a", "rank": 2}]
        fake_db.queue("leaderboard", [{"rankings": current}])
        fake_db.queue("leaderboard", [{"rankings": current}, {"rankings": previous}])

        entries = LeaderboardService(fake_db).get_leaderboard_with_changes("global")
        assert [e["change"] for e in entries] == [1, -1]

    def test_precalculate_stores_every_combination(self, fake_db):
        stored = LeaderboardService(fake_db).precalculate_leaderboards()
        assert stored == 6 * 4 * 3
        assert len(fake_db.called("leaderboard", "upsert")) == stored
