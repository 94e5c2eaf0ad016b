"""
Tests for the application shell (health probes, error envelope, auth)
and the cron jobs behind /api/v1/cron.
"""

import asyncio
from datetime import datetime
from unittest.mock import MagicMock

import app.main as main
from app.config.settings import settings
from app.modules.cron import jobs
from app.modules.cron.scheduler import run_scheduled_jobs


class TestProbes:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["message"] == "Welcome to the PadelGraph API"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_ready(self, client, fake_db, monkeypatch):
        monkeypatch.setattr(main, "get_supabase", lambda: fake_db)
        monkeypatch.setattr(settings, "supabase_url", "https://db.padelgraph.test")
        monkeypatch.setattr(settings, "supabase_key", "anon-key")

        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json()["checks"] == {"database": True, "environment": True}

    def test_not_ready_without_database(self, client, monkeypatch):
        def unreachable():
            raise RuntimeError("connection refused")

        monkeypatch.setattr(main, "get_supabase", unreachable)
        response = client.get("/ready")
        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["checks"]["database"] is False


class TestErrorEnvelope:
    def test_missing_token(self, anonymous_client):
        response = anonymous_client.post(
            "/api/v1/media/sign",
            json={"filename": "a.png", "content_type": "image/png", "file_size": 10},
        )
        assert response.status_code == 401
        assert response.json() == {"error": "Not authenticated"}

    def test_validation_error(self, client):
        response = client.post("/api/v1/tournaments/t1/check-in", json={"lat": "north"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request data"
        assert body["details"]

    def test_not_found(self, client):
        response = client.get("/api/v1/tournaments/missing")
        assert response.status_code == 404
        assert response.json() == {"error": "Tournament not found"}


# =============================================================================
# Cron
# =============================================================================

class TestCronAuth:
    def test_open_outside_production_without_secret(self, client, monkeypatch):
        monkeypatch.setattr(settings, "cron_secret", None)
        monkeypatch.setattr(settings, "environment", "development")
        response = client.get("/api/v1/cron/cleanup-stories")
        assert response.status_code == 200
        assert response.json()["data"] == {"deleted": 0}

    def test_closed_in_production_without_secret(self, client, monkeypatch):
        monkeypatch.setattr(settings, "cron_secret", None)
        monkeypatch.setattr(settings, "environment", "production")
        assert client.get("/api/v1/cron/cleanup-stories").status_code == 401

    def test_secret_required(self, client, monkeypatch):
        monkeypatch.setattr(settings, "cron_secret", "s3cret")
        assert client.get("/api/v1/cron/cleanup-stories").status_code == 401
        assert client.get(
            "/api/v1/cron/cleanup-stories", headers={"Authorization": "Bearer wrong"}
        ).status_code == 401

        response = client.get("/api/v1/cron/cleanup-stories", headers={"Authorization": "Bearer s3cret"})
        assert response.status_code == 200

    def test_reminder_route_message(self, client, monkeypatch):
        monkeypatch.setattr(settings, "cron_secret", None)
        monkeypatch.setattr(settings, "environment", "development")
        response = client.get("/api/v1/cron/check-in-reminders")
        assert response.json() == {"data": {"sent": 0, "tournaments": 0}, "message": "Sent 0 check-in reminders"}


class TestCronJobs:
    def test_checkin_reminders(self, fake_db):
        fake_db.queue("tournament", [
            {"id": "t1", "name": "Open Madrid", "check_in_closes_at": "2026-10-01T10:00:00Z"},
        ])
        fake_db.queue("tournament_participant", [
            {"user_id": "p1", "profile": {"id": "p1", "email": "p1@example.com"}},
            {"user_id": "p2", "profile": {"id": "p2"}},
            {"user_id": "p3", "profile": None},
        ])
        notifier = MagicMock()
        notifier.checkin_reminder.side_effect = [1, 0]

        result = jobs.send_checkin_reminders(fake_db, notifier, now=datetime(2026, 10, 1, 9, 0))

        assert result == {"sent": 1, "tournaments": 1}
        assert notifier.checkin_reminder.call_count == 2
        assert ("check_in_closes_at", "2026-10-01T11:00:00") in fake_db.called("tournament", "lte")

    def test_reminder_failure_does_not_stop_the_batch(self, fake_db):
        fake_db.queue("tournament", [{"id": "t1", "name": "Open"}])
        fake_db.queue("tournament_participant", [
            {"user_id": "p1", "profile": {"id": "p1"}},
            {"user_id": "p2", "profile": {"id": "p2"}},
        ])
        notifier = MagicMock()
        notifier.checkin_reminder.side_effect = [RuntimeError("smtp down"), 2]

        assert jobs.send_checkin_reminders(fake_db, notifier)["sent"] == 1

    def test_cleanup_stories(self, fake_db):
        fake_db.queue("story", [{"id": "s1"}, {"id": "s2"}])
        assert jobs.cleanup_stories(fake_db) == {"deleted": 2}
        assert fake_db.called("story", "delete") == [()]

    def test_sync_subscriptions(self, fake_db):
        service = MagicMock()
        service.sync_all.return_value = {"checked": 3, "updated": 1, "expired": 1}

        result = jobs.sync_subscriptions(fake_db, service)
        assert result["checked"] == 3
        assert result["duration_ms"] >= 0

    def test_calculate_stats_without_activity(self, fake_db):
        result = jobs.calculate_stats(fake_db, now=datetime(2026, 10, 1))
        assert result["updated_players"] == 0
        assert result["leaderboards"] == 0
        assert fake_db.called("leaderboard", "upsert") == []

    def test_update_leaderboards(self, fake_db):
        result = jobs.update_leaderboards(fake_db)
        assert result["success"] is True
        assert result["snapshots"] == len(fake_db.called("leaderboard", "upsert"))

    def test_scheduler_pass_survives_failing_job(self, monkeypatch, fake_db):
        ran = []

        def broken(supabase):
            raise RuntimeError("boom")

        monkeypatch.setattr("app.modules.cron.scheduler.get_service_supabase", lambda: fake_db)
        monkeypatch.setattr(jobs, "update_leaderboards", broken)
        monkeypatch.setattr(jobs, "send_checkin_reminders", lambda supabase: ran.append(supabase))

        asyncio.run(run_scheduled_jobs())
        assert ran == [fake_db]
