"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Integration tests for public and admin API routes using the FastAPI
TestClient against in-memory SQLite.

These tests verify:
- Auth guards on admin endpoints
- The response envelope and pagination block
- Status-code mapping for domain errors
- The event → mission → reward → leaderboard flow over HTTP
"""

from __future__ import annotations

import jwt
import pytest
from conftest import add_event, add_mission, add_reward, add_task

from questline.api.deps import JWT_ALGORITHM, JWT_SECRET


@pytest.fixture
def non_admin_token():
    return jwt.encode(
        {"sub": "67890", "username": "RegularUser", "is_admin": False},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def catalogue(db_engine):
    event_id = add_event(db_engine, "order_create")
    mission_id = add_mission(db_engine, "First Sale", affects_leaderboard=True,
                             leaderboard_points=30)
    required = add_task(db_engine, mission_id, event_id, "Order", points=10)
    optional = add_task(db_engine, mission_id, event_id, "Bonus", points=5, is_optional=True,
                        sort_order=1)
    reward_id = add_reward(db_engine, mission_id)
    return {
        "event_id": event_id,
        "mission_id": mission_id,
        "required": required,
        "optional": optional,
        "reward_id": reward_id,
    }


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


# ===========================================================================
# Auth guards — admin endpoints should reject unauthenticated/non-admin users
# ===========================================================================
class TestAdminAuthGuards:
    """Admin endpoints must return 401/403 for missing/invalid/non-admin tokens."""

    ADMIN_ENDPOINTS = [
        ("get", "/api/events/logs"),
        ("post", "/api/events/register"),
        ("post", "/api/events/processing"),
        ("post", "/api/missions"),
        ("delete", "/api/missions/1"),
        ("post", "/api/rewards/grant"),
        ("post", "/api/rewards/expire"),
        ("post", "/api/leaderboard/recalculate"),
        ("post", "/api/players"),
        ("post", "/api/games"),
        ("get", "/api/settings"),
    ]

    @pytest.mark.parametrize("method,endpoint", ADMIN_ENDPOINTS)
    def test_no_token_returns_401(self, client, method, endpoint):
        resp = getattr(client, method)(endpoint)
        assert resp.status_code == 401
        assert resp.json()["success"] is False

    @pytest.mark.parametrize("method,endpoint", ADMIN_ENDPOINTS)
    def test_non_admin_returns_403(self, client, non_admin_token, method, endpoint):
        resp = getattr(client, method)(endpoint, headers=_auth(non_admin_token))
        assert resp.status_code == 403

    def test_garbage_token_returns_401(self, client):
        resp = client.get("/api/events/logs", headers=_auth("not-a-jwt"))
        assert resp.status_code == 401


# ===========================================================================
# Events
# ===========================================================================
class TestEvents:
    def test_submit_event_runs_cascade(self, client, catalogue):
        resp = client.post("/api/events", json={"event": "order_create", "store_id": 7})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert len(body["data"]["task_updates"]) == 2
        assert body["data"]["reward_updates"][0]["reward_id"] == catalogue["reward_id"]

    def test_segment_shape(self, client, catalogue):
        resp = client.post("/api/events/segment", json={
            "event": {"name": "order_create"},
            "merchant": {"id": "7"},
        })
        assert resp.status_code == 200
        assert resp.json()["data"]["player_id"] == 7

    def test_unregistered_event_is_404(self, client):
        resp = client.post("/api/events", json={"event": "mystery", "player_id": 1})
        assert resp.status_code == 404
        assert resp.json() == {
            "success": False,
            "message": 'Event "mystery" is not registered in the system',
        }

    def test_invalid_payload_is_400(self, client):
        resp = client.post("/api/events", json={"event": "order_create"})
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_register_duplicate_is_409(self, client, admin_token):
        first = client.post("/api/events/register", json={"name": "review_create"},
                            headers=_auth(admin_token))
        assert first.status_code == 200
        dup = client.post("/api/events/register", json={"name": "review_create"},
                          headers=_auth(admin_token))
        assert dup.status_code == 409

    def test_kill_switch_roundtrip(self, client, admin_token, catalogue):
        resp = client.post("/api/events/processing", json={"enabled": False},
                           headers=_auth(admin_token))
        assert resp.json()["data"] == {"enabled": False}
        assert client.get("/api/events/processing").json()["data"] == {"enabled": False}

        skipped = client.post("/api/events", json={"event": "order_create", "player_id": 7})
        assert skipped.json()["data"]["skipped"] is True

    def test_event_logs_paginated(self, client, admin_token, catalogue):
        for _ in range(3):
            client.post("/api/events", json={"event": "order_create", "player_id": 7})
        resp = client.get("/api/events/logs?limit=2", headers=_auth(admin_token))
        body = resp.json()
        assert len(body["data"]) == 2
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    def test_get_unknown_event_type(self, client):
        assert client.get("/api/events/999").status_code == 404


# ===========================================================================
# Missions & tasks
# ===========================================================================
class TestMissionsAndTasks:
    def test_missions_require_player_id(self, client):
        resp = client.get("/api/missions")
        assert resp.status_code == 400
        assert resp.json()["message"].startswith("Validation error")

    def test_missions_list(self, client, catalogue):
        resp = client.get("/api/missions?player_id=7")
        body = resp.json()
        assert body["pagination"]["total"] == 1
        assert body["data"][0]["player_progress"]["status"] == "not_started"

    def test_mission_detail_404(self, client):
        assert client.get("/api/missions/404?player_id=1").status_code == 404

    def test_skip_required_is_rule_violation(self, client, catalogue):
        resp = client.patch(f"/api/tasks/{catalogue['required']}/skip", json={"player_id": 7})
        assert resp.status_code == 200
        assert resp.json()["success"] is False

    def test_skip_unknown_task_is_404(self, client):
        resp = client.patch("/api/tasks/999/skip", json={"player_id": 7})
        assert resp.status_code == 404

    def test_complete_task(self, client, catalogue):
        resp = client.post(f"/api/tasks/{catalogue['required']}/complete", json={"player_id": 7})
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["mission_updates"][0]["just_completed"] is True

    def test_admin_creates_mission_and_task(self, client, admin_token, catalogue):
        created = client.post("/api/missions", json={"name": "Second Sale"},
                              headers=_auth(admin_token))
        assert created.status_code == 200
        mission_id = created.json()["data"]["id"]

        task = client.post(f"/api/missions/{mission_id}/tasks",
                           json={"name": "Order again", "event_name": "order_create"},
                           headers=_auth(admin_token))
        assert task.status_code == 200
        assert task.json()["data"]["event_id"] == catalogue["event_id"]

    def test_task_needs_event_reference(self, client, admin_token, catalogue):
        resp = client.post(f"/api/missions/{catalogue['mission_id']}/tasks",
                           json={"name": "Nothing"}, headers=_auth(admin_token))
        assert resp.status_code == 400


# ===========================================================================
# Rewards
# ===========================================================================
class TestRewards:
    def test_claim_flow(self, client, catalogue):
        client.post("/api/events", json={"event": "order_create", "player_id": 7})

        listed = client.get("/api/rewards?player_id=7&status=earned").json()
        assert listed["pagination"]["total"] == 1

        claim = client.post(f"/api/rewards/{catalogue['reward_id']}/claim",
                            json={"player_id": 7})
        assert claim.json()["success"] is True

        again = client.post(f"/api/rewards/{catalogue['reward_id']}/claim",
                            json={"player_id": 7})
        assert again.status_code == 200
        assert again.json()["message"] == "Reward has already been claimed"

    def test_claim_unknown_is_404(self, client):
        resp = client.post("/api/rewards/999/claim", json={"player_id": 7})
        assert resp.status_code == 404

    def test_reward_types_public(self, client):
        resp = client.get("/api/rewards/types")
        assert resp.status_code == 200
        assert any(t["name"] == "badge" for t in resp.json()["data"])

    def test_admin_grant(self, client, admin_token, catalogue):
        resp = client.post("/api/rewards/grant",
                           json={"player_id": 9, "mission_id": catalogue["mission_id"]},
                           headers=_auth(admin_token))
        assert resp.json()["success"] is True


# ===========================================================================
# Leaderboard
# ===========================================================================
class TestLeaderboard:
    def test_leaderboard_after_events(self, client, admin_token, catalogue):
        for player_id in (7, 8):
            client.post("/api/events", json={"event": "order_create", "player_id": player_id})

        recalc = client.post("/api/leaderboard/recalculate", headers=_auth(admin_token))
        assert recalc.json()["data"] == {"updated": 2}

        board = client.get("/api/leaderboard").json()
        assert [e["rank"] for e in board["data"]] == [1, 2]
        assert board["data"][0]["player_id"] == 7

        ctx = client.get("/api/leaderboard/players/8").json()["data"]
        assert ctx["player"]["position"] == 2
        assert [e["player_id"] for e in ctx["above"]] == [7]

    def test_player_not_on_board(self, client):
        assert client.get("/api/leaderboard/players/5").status_code == 404

    def test_stats(self, client):
        body = client.get("/api/leaderboard/stats").json()
        assert body["data"]["total_players"] == 0


# ===========================================================================
# Players & games
# ===========================================================================
class TestPlayersAndGames:
    def test_create_and_fetch_player(self, client, admin_token):
        created = client.post("/api/players", json={"id": 501, "name": "Corner Shop"},
                              headers=_auth(admin_token))
        assert created.status_code == 200

        dup = client.post("/api/players", json={"id": 501, "name": "Again"},
                          headers=_auth(admin_token))
        assert dup.status_code == 409

        fetched = client.get("/api/players/501").json()["data"]
        assert fetched["name"] == "Corner Shop"
        assert fetched["leaderboard"] is None

    def test_update_player(self, client, admin_token):
        client.post("/api/players", json={"id": 502, "name": "Old"}, headers=_auth(admin_token))
        resp = client.put("/api/players/502", json={"name": "New"}, headers=_auth(admin_token))
        assert resp.json()["data"]["name"] == "New"

    def test_unknown_player_is_404(self, client):
        assert client.get("/api/players/404").status_code == 404

    def test_games(self, client, admin_token):
        created = client.post("/api/games", json={"name": "Summer"}, headers=_auth(admin_token))
        game_id = created.json()["data"]["id"]

        assert client.get("/api/games").json()["pagination"]["total"] == 1
        assert client.get(f"/api/games/{game_id}/missions").json()["data"] == []
        assert client.get("/api/games/404/missions").status_code == 404


# ===========================================================================
# Settings
# ===========================================================================
class TestSettings:
    def test_seeded_settings_listed(self, client, admin_token):
        body = client.get("/api/settings", headers=_auth(admin_token)).json()
        keys = {s["key"] for s in body["data"]}
        assert "events.processing_enabled" in keys

    def test_bulk_update(self, client, admin_token):
        resp = client.put(
            "/api/settings",
            json=[{"key": "events.enforce_mission_availability", "value": True}],
            headers=_auth(admin_token),
        )
        assert resp.json()["data"] == {"updated": 1}
