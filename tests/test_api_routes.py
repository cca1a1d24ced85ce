"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Covers the public economy reads and the admin economy endpoints using the
FastAPI TestClient with the engine dependency pointed at SQLite.

These tests verify:
- Auth guards on admin endpoints
- Error mapping (404 / 409 / 422) for award and lifecycle calls
- Response structure of public endpoints
"""

from __future__ import annotations

import jwt
import pytest
from fastapi.testclient import TestClient

from forkman.api.deps import JWT_ALGORITHM, JWT_SECRET, get_engine
from forkman.constants import ECONOMY_COMMANDS, ECONOMY_MODULE
from forkman.services.award_service import award_event
from forkman.services.module_service import load_module

GUILD = "100"


@pytest.fixture
def client(seeded_engine):
    """TestClient whose routes use the in-memory SQLite engine."""
    from forkman.api.main import app

    app.dependency_overrides[get_engine] = lambda: seeded_engine
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_token():
    return jwt.encode(
        {"sub": "12345", "username": "TestAdmin", "is_admin": True},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


@pytest.fixture
def non_admin_token():
    return jwt.encode(
        {"sub": "67890", "username": "RegularUser", "is_admin": False},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


@pytest.fixture
def loaded_guild(seeded_engine):
    load_module(seeded_engine, GUILD, ECONOMY_MODULE, ECONOMY_COMMANDS)
    return GUILD


def _auth(token: str) -> dict:
    return _auth_raw(f"Bearer {token}")


def _auth_raw(value: str) -> dict:
    return {"Authorization": value}


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ===========================================================================
# Auth guards
# ===========================================================================
class TestAdminAuthGuards:
    ADMIN_GET_ENDPOINTS = [
        f"/api/admin/guilds/{GUILD}/economy/status",
        f"/api/admin/guilds/{GUILD}/economy/config",
    ]

    ADMIN_POST_ENDPOINTS = [
        f"/api/admin/guilds/{GUILD}/economy/enable",
        f"/api/admin/guilds/{GUILD}/economy/disable",
        f"/api/admin/guilds/{GUILD}/economy/award",
        f"/api/admin/guilds/{GUILD}/economy/award-all",
        f"/api/admin/guilds/{GUILD}/economy/reconcile",
    ]

    @pytest.mark.parametrize("endpoint", ADMIN_GET_ENDPOINTS)
    def test_get_without_token_returns_401(self, client, endpoint):
        assert client.get(endpoint).status_code == 401

    @pytest.mark.parametrize("endpoint", ADMIN_POST_ENDPOINTS)
    def test_post_without_token_returns_401(self, client, endpoint):
        assert client.post(endpoint, json={}).status_code == 401

    @pytest.mark.parametrize("endpoint", ADMIN_GET_ENDPOINTS)
    def test_invalid_token_returns_401(self, client, endpoint):
        resp = client.get(endpoint, headers=_auth("not-a-jwt"))
        assert resp.status_code == 401

    def test_garbage_bearer_returns_401(self, client):
        resp = client.get(self.ADMIN_GET_ENDPOINTS[0], headers=_auth_raw("Bearer garbage"))
        assert resp.status_code == 401

    def test_token_without_subject_returns_401(self, client):
        token = jwt.encode({"is_admin": True}, JWT_SECRET, algorithm=JWT_ALGORITHM)
        resp = client.get(self.ADMIN_GET_ENDPOINTS[0], headers=_auth(token))
        assert resp.status_code == 401

    def test_wrong_signature_returns_401(self, client):
        token = jwt.encode(
            {"sub": "1", "is_admin": True}, "another-secret-" + "z" * 40, algorithm=JWT_ALGORITHM,
        )
        resp = client.get(self.ADMIN_GET_ENDPOINTS[0], headers=_auth(token))
        assert resp.status_code == 401

    @pytest.mark.parametrize("endpoint", ADMIN_GET_ENDPOINTS)
    def test_non_admin_returns_403(self, client, non_admin_token, endpoint):
        resp = client.get(endpoint, headers=_auth(non_admin_token))
        assert resp.status_code == 403


# ===========================================================================
# Public reads
# ===========================================================================
class TestPublicEndpoints:
    def test_events_catalog(self, client):
        resp = client.get("/api/economy/events")
        assert resp.status_code == 200
        events = {e["key"]: e for e in resp.json()["events"]}
        assert events["DAILY"] == {
            "key": "DAILY", "name": "Daily Reward", "points": 85, "max_occurrence": 1,
        }

    def test_leaderboard(self, client, seeded_engine):
        award_event(seeded_engine, GUILD, "1", "DAILY")
        award_event(seeded_engine, GUILD, "2", "BOOST_SERVER")

        resp = client.get(f"/api/guilds/{GUILD}/economy/leaderboard", params={"limit": 5})

        assert resp.status_code == 200
        assert resp.json()["leaderboard"] == [
            {"rank": 1, "user_id": "2", "points": 3570},
            {"rank": 2, "user_id": "1", "points": 85},
        ]

    def test_leaderboard_bad_limit(self, client):
        resp = client.get(f"/api/guilds/{GUILD}/economy/leaderboard", params={"limit": 0})
        assert resp.status_code == 422

    def test_user_points(self, client, seeded_engine):
        award_event(seeded_engine, GUILD, "1", "DAILY")

        body = client.get(f"/api/guilds/{GUILD}/economy/users/1/points").json()
        assert body["points"] == 85
        assert body["rank"] == 1

    def test_user_history(self, client, seeded_engine):
        award_event(seeded_engine, GUILD, "1", "DAILY")
        award_event(seeded_engine, GUILD, "1", "JOIN_SERVER")

        history = client.get(f"/api/guilds/{GUILD}/economy/users/1/history").json()["history"]
        assert [h["event_key"] for h in history] == ["DAILY", "JOIN_SERVER"]

    def test_user_points_unknown_user(self, client):
        body = client.get(f"/api/guilds/{GUILD}/economy/users/404/points").json()
        assert body["points"] == 0
        assert body["rank"] is None


# ===========================================================================
# Admin — awards
# ===========================================================================
class TestAdminAward:
    URL = f"/api/admin/guilds/{GUILD}/economy/award"

    def test_award_success(self, client, admin_token):
        resp = client.post(
            self.URL, json={"user_id": "1", "event_key": "DAILY"}, headers=_auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json()["new_total"] == 85

    def test_award_limit_returns_409(self, client, admin_token):
        body = {"user_id": "1", "event_key": "DAILY"}
        client.post(self.URL, json=body, headers=_auth(admin_token))

        resp = client.post(self.URL, json=body, headers=_auth(admin_token))
        assert resp.status_code == 409

    def test_award_unknown_event_returns_404(self, client, admin_token):
        resp = client.post(
            self.URL, json={"user_id": "1", "event_key": "NOPE"}, headers=_auth(admin_token),
        )
        assert resp.status_code == 404

    def test_award_missing_field_returns_422(self, client, admin_token):
        resp = client.post(self.URL, json={"user_id": "1"}, headers=_auth(admin_token))
        assert resp.status_code == 422

    def test_award_all(self, client, admin_token, seeded_engine):
        award_event(seeded_engine, GUILD, "2", "JOIN_SERVER")

        resp = client.post(
            f"/api/admin/guilds/{GUILD}/economy/award-all",
            json={"event_key": "JOIN_SERVER", "user_ids": ["1", "2", "3"], "concurrency": 1},
            headers=_auth(admin_token),
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "event_key": "JOIN_SERVER",
            "awarded": 2,
            "attempted": 3,
            "limit_reached": 1,
            "unknown_event": 0,
            "failed": 0,
        }

    def test_award_all_unknown_event(self, client, admin_token):
        resp = client.post(
            f"/api/admin/guilds/{GUILD}/economy/award-all",
            json={"event_key": "NOPE", "user_ids": ["1"], "concurrency": 1},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 404

    def test_reconcile(self, client, admin_token, seeded_engine):
        award_event(seeded_engine, GUILD, "1", "DAILY")

        resp = client.post(
            f"/api/admin/guilds/{GUILD}/economy/reconcile", headers=_auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json()["checked"] == 1
        assert resp.json()["corrected"] == 0


# ===========================================================================
# Admin — module lifecycle
# ===========================================================================
class TestAdminModule:
    def _url(self, action: str) -> str:
        return f"/api/admin/guilds/{GUILD}/economy/{action}"

    def test_status_not_loaded(self, client, admin_token):
        resp = client.get(self._url("status"), headers=_auth(admin_token))
        assert resp.status_code == 404

    def test_status(self, client, admin_token, loaded_guild):
        body = client.get(self._url("status"), headers=_auth(admin_token)).json()
        assert body["status"] is True
        assert body["message"] == "ECONOMY"
        assert set(body["commands"]) == set(ECONOMY_COMMANDS)

    def test_enable_already_enabled(self, client, admin_token, loaded_guild):
        resp = client.post(self._url("enable"), headers=_auth(admin_token))
        assert resp.status_code == 200
        assert resp.json()["message"] == "Module already enabled!"

    def test_disable_then_disable_again(self, client, admin_token, loaded_guild):
        first = client.post(self._url("disable"), headers=_auth(admin_token))
        second = client.post(self._url("disable"), headers=_auth(admin_token))

        assert first.json() == {"message": "Module disabled!", "status": False}
        assert second.json()["message"] == "Module already disabled!"

    def test_get_config_defaults(self, client, admin_token):
        body = client.get(self._url("config"), headers=_auth(admin_token)).json()
        assert body["config"]["leaderboard_size"] == 10

    def test_update_config(self, client, admin_token, loaded_guild):
        resp = client.put(
            self._url("config"), json={"leaderboard_size": 20}, headers=_auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json()["config"]["leaderboard_size"] == 20

    @pytest.mark.parametrize("body", [{"leaderboard_size": 0}, {"colour": "red"}])
    def test_update_config_invalid(self, client, admin_token, loaded_guild, body):
        resp = client.put(self._url("config"), json=body, headers=_auth(admin_token))
        assert resp.status_code == 422
