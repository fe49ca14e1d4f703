"""
Integration tests for the HTTP surface using the SQLite test database.

Every response carries the envelope {"success": bool, "data" | "error"}.
"""
from datetime import date, timedelta

import pytest

START = "2026-01-05"


def _create_cycle(client, headers, **overrides) -> dict:
    payload = {
        "name": "Q1 execution",
        "start_date": START,
        "vision": "Build things that outlive me",
        "goals": [
            {"title": "Run a marathon", "priority": 2},
            {"title": "Ship v1", "priority": 1, "target_metric": "users", "target_value": "100"},
        ],
    }
    payload.update(overrides)
    r = client.post("/cycles", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestCycles:
    def test_create_cycle(self, client, headers):
        data = _create_cycle(client, headers)
        assert data["days_generated"] == 84
        assert data["cycle"]["status"] == "active"
        assert data["cycle"]["end_date"] == "2026-03-29"
        assert len(data["goals"]) == 2

    def test_active_cycle_empty(self, client, headers):
        r = client.get("/cycles/active", headers=headers)
        assert r.status_code == 200
        assert r.json() == {"success": True, "data": None, "error": None}

    def test_active_cycle(self, client, headers):
        created = _create_cycle(client, headers)
        r = client.get("/cycles/active?today=2026-01-13", headers=headers)
        data = r.json()["data"]
        assert data["id"] == created["cycle"]["id"]
        assert data["current_week"] == 2
        assert data["remaining_days"] == 75

    def test_second_cycle_conflicts(self, client, headers):
        _create_cycle(client, headers)
        r = client.post("/cycles", json={
            "name": "Another", "start_date": START, "goals": [{"title": "X"}],
        }, headers=headers)
        assert r.status_code == 409
        assert r.json()["error"]["code"] == "CONFLICT"

    def test_four_goals_rejected(self, client, headers):
        r = client.post("/cycles", json={
            "name": "Greedy",
            "start_date": START,
            "goals": [{"title": f"Goal {i}"} for i in range(4)],
        }, headers=headers)
        assert r.status_code == 422
        assert r.json()["success"] is False

    def test_goals_sorted_by_priority(self, client, headers):
        cycle_id = _create_cycle(client, headers)["cycle"]["id"]
        r = client.get(f"/cycles/{cycle_id}/goals", headers=headers)
        assert [g["title"] for g in r.json()["data"]] == ["Ship v1", "Run a marathon"]

    def test_close_cycle(self, client, headers):
        cycle_id = _create_cycle(client, headers)["cycle"]["id"]
        r = client.post(f"/cycles/{cycle_id}/close", headers=headers)
        assert r.status_code == 200
        assert r.json()["data"]["status"] == "closed"

        r = client.post(f"/cycles/{cycle_id}/close", headers=headers)
        assert r.status_code == 409
        assert r.json()["error"]["code"] == "INVALID_STATE"

    def test_other_owner_cannot_see_cycle(self, client, headers):
        cycle_id = _create_cycle(client, headers)["cycle"]["id"]
        r = client.get(f"/cycles/{cycle_id}/summary", headers={"X-User-Id": "intruder"})
        assert r.status_code == 404


class TestGoals:
    def test_update_progress(self, client, headers):
        goal = _create_cycle(client, headers)["goals"][0]
        r = client.patch(f"/goals/{goal['id']}", json={"current_value": "12.5"}, headers=headers)
        assert r.status_code == 200
        assert float(r.json()["data"]["current_value"]) == 12.5

    def test_empty_patch_rejected(self, client, headers):
        goal = _create_cycle(client, headers)["goals"][0]
        r = client.patch(f"/goals/{goal['id']}", json={}, headers=headers)
        assert r.status_code == 422
        assert r.json()["error"]["code"] == "VALIDATION_ERROR"


class TestTactics:
    def test_fork_flow(self, client, headers):
        goal = _create_cycle(client, headers)["goals"][0]
        r = client.post("/tactics", json={
            "goal_id": goal["id"], "title": "Run 5k", "weight": 2,
        }, headers=headers)
        assert r.status_code == 201
        v1 = r.json()["data"]

        r = client.patch(f"/tactics/{v1['id']}", json={"title": "Run 10k"}, headers=headers)
        assert r.status_code == 200
        fork = r.json()["data"]
        assert fork["new_tactic_id"] != v1["id"]
        assert fork["original_id_closed"] == v1["id"]
        assert fork["version"] == 2
        assert fork["tactic"]["weight"] == 2

        # The old id is read-only now.
        r = client.patch(f"/tactics/{v1['id']}", json={"title": "Run 21k"}, headers=headers)
        assert r.status_code == 409
        assert r.json()["error"]["code"] == "INVALID_STATE"

        r = client.get(f"/tactics/{fork['new_tactic_id']}/history", headers=headers)
        assert [t["version"] for t in r.json()["data"]] == [2, 1]

        r = client.get(f"/goals/{goal['id']}/tactics", headers=headers)
        assert [t["id"] for t in r.json()["data"]] == [fork["new_tactic_id"]]


class TestActionsAndSummary:
    def test_check_off_and_summary(self, client, headers):
        cycle_id = _create_cycle(client, headers)["cycle"]["id"]
        r = client.get(f"/cycles/{cycle_id}/today?today={START}", headers=headers)
        actions = r.json()["data"]
        assert len(actions) == 1

        r = client.post(
            f"/actions/{actions[0]['id']}/check", json={"energy_level": 5}, headers=headers
        )
        assert r.status_code == 200
        assert r.json()["data"]["is_completed"] is True

        r = client.get(f"/cycles/{cycle_id}/summary?today={START}", headers=headers)
        summary = r.json()["data"]
        assert summary["daily_score"] == 33
        assert summary["streak"] == {"winning": 1, "losing": 0}
        assert summary["execution_status"] == "CRITICAL"
        assert summary["momentum_state"] == "NEUTRAL"
        assert summary["coach_context"]["current_goal"] == "Ship v1"
        assert summary["coach_context"]["vision"] == "Build things that outlive me"

    def test_uncheck(self, client, headers):
        cycle_id = _create_cycle(client, headers)["cycle"]["id"]
        action = client.get(f"/cycles/{cycle_id}/today?today={START}", headers=headers).json()["data"][0]
        client.post(f"/actions/{action['id']}/check", headers=headers)
        r = client.post(f"/actions/{action['id']}/uncheck", headers=headers)
        assert r.json()["data"]["is_completed"] is False
        assert r.json()["data"]["completed_at"] is None

    def test_bad_energy_level(self, client, headers):
        cycle_id = _create_cycle(client, headers)["cycle"]["id"]
        action = client.get(f"/cycles/{cycle_id}/today?today={START}", headers=headers).json()["data"][0]
        r = client.post(f"/actions/{action['id']}/check", json={"energy_level": 9}, headers=headers)
        assert r.status_code == 422

    def test_weekly_score(self, client, headers):
        cycle_id = _create_cycle(client, headers)["cycle"]["id"]
        r = client.get(f"/cycles/{cycle_id}/weekly-scores/1", headers=headers)
        assert r.status_code == 200
        assert r.json()["data"]["score"] == 0
        assert r.json()["data"]["tasks_total"] == 7

    def test_coach_context(self, client, headers):
        cycle_id = _create_cycle(client, headers)["cycle"]["id"]
        r = client.get(f"/cycles/{cycle_id}/coach-context?today=2026-01-15", headers=headers)
        data = r.json()["data"]
        assert data["context"]["current_week"] == 2
        assert "Legacy Partner" in data["system_prompt"]
        assert "Week 2 of 12" in data["user_message"]


class TestShields:
    REASON = "Sick with the flu all week"

    def test_activate_and_status(self, client, headers):
        cycle_id = _create_cycle(client, headers)["cycle"]["id"]
        r = client.post("/shields", json={
            "cycle_id": cycle_id, "week_number": 3, "reason": self.REASON,
        }, headers=headers)
        assert r.status_code == 201
        assert r.json()["data"]["remaining_credits"] == 2

        r = client.get(f"/shields/{cycle_id}", headers=headers)
        data = r.json()["data"]
        assert data["remaining"] == 2
        assert data["quota"] == 3
        assert [c["week_number"] for c in data["credits"]] == [3]

    def test_validate_is_not_an_error(self, client, headers):
        cycle_id = _create_cycle(client, headers)["cycle"]["id"]
        client.post("/shields", json={
            "cycle_id": cycle_id, "week_number": 3, "reason": self.REASON,
        }, headers=headers)
        r = client.get(f"/shields/{cycle_id}/validate?week_number=3", headers=headers)
        assert r.status_code == 200
        assert r.json()["data"]["allowed"] is False
        assert r.json()["data"]["code"] == "ALREADY_SHIELDED"

    def test_duplicate_week(self, client, headers):
        cycle_id = _create_cycle(client, headers)["cycle"]["id"]
        body = {"cycle_id": cycle_id, "week_number": 4, "reason": self.REASON}
        assert client.post("/shields", json=body, headers=headers).status_code == 201
        r = client.post("/shields", json=body, headers=headers)
        assert r.status_code == 409
        assert r.json()["error"]["code"] == "CONFLICT"

    def test_short_reason(self, client, headers):
        cycle_id = _create_cycle(client, headers)["cycle"]["id"]
        r = client.post("/shields", json={
            "cycle_id": cycle_id, "week_number": 1, "reason": "meh",
        }, headers=headers)
        assert r.status_code == 422

    def test_admin_revoke(self, client, headers, admin_headers):
        cycle_id = _create_cycle(client, headers)["cycle"]["id"]
        credit = client.post("/shields", json={
            "cycle_id": cycle_id, "week_number": 2, "reason": self.REASON,
        }, headers=headers).json()["data"]["credit"]

        r = client.post(f"/admin/shields/{credit['id']}/revoke", headers=admin_headers)
        assert r.status_code == 200
        assert r.json()["data"]["revoked"] is True

        r = client.get(f"/shields/{cycle_id}", headers=headers)
        assert r.json()["data"]["remaining"] == 3

    def test_revoke_requires_admin_token(self, client, headers):
        cycle_id = _create_cycle(client, headers)["cycle"]["id"]
        credit = client.post("/shields", json={
            "cycle_id": cycle_id, "week_number": 2, "reason": self.REASON,
        }, headers=headers).json()["data"]["credit"]

        r = client.post(
            f"/admin/shields/{credit['id']}/revoke",
            headers={"X-User-Id": "admin-operator", "X-Admin-Token": "wrong"},
        )
        assert r.status_code == 403
        assert r.json()["error"]["code"] == "UNAUTHORIZED"
