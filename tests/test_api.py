from __future__ import annotations

import time

import pytest

from vacation_planner import dependencies
from vacation_planner.state import get_process_state

HEADERS = {
    "X-User-ID": "u1",
    "X-User-Name": "Ada",
    "X-User-Email": "ada@example.com",
}
LINKED = {**HEADERS, "X-Account-Linked": "true"}
ADMIN = {"X-User-ID": "admin", "X-User-Email": "admin@example.com"}


@pytest.fixture
def admin_allowed(monkeypatch):
    monkeypatch.setattr(dependencies.settings, "admin_emails", ["admin@example.com"])


def test_vacation_days_requires_session(client):
    resp = client.get("/v1/vacation-days")
    assert resp.status_code == 401
    assert resp.json()["detail"]["code"] == "UNAUTHORIZED"


def test_vacation_days_round_trip(client, mock_redis):
    body = {"plannedDays": ["2025-06-20", "2025-06-23"], "weekNotes": {"2025-25": "Beach"}}
    resp = client.post("/v1/vacation-days", json=body, headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert "vacation-days:u1" in mock_redis.store

    resp = client.get("/v1/vacation-days", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json() == {**body, "success": True}


def test_vacation_days_rejects_non_array(client):
    resp = client.post("/v1/vacation-days", json={"plannedDays": "2025-06-20"}, headers=HEADERS)
    assert resp.status_code == 400
    assert resp.json()["detail"] == {
        "code": "BAD_REQUEST",
        "message": "plannedDays must be an array",
    }


def test_vacation_days_rejects_non_date_entries(client):
    resp = client.post("/v1/vacation-days", json={"plannedDays": [1, "2025-06-20"]}, headers=HEADERS)
    assert resp.status_code == 400
    assert resp.json()["detail"]["message"] == "plannedDays must contain date strings"

    resp = client.post(
        "/v1/vacation-days",
        json={"plannedDays": ["2025-06-20"], "weekNotes": {"summer": "Beach"}},
        headers=HEADERS,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["message"] == "Invalid week key: 'summer'"

    resp = client.get("/v1/vacation-days", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json()["plannedDays"] == []


def test_vacation_days_rejects_invalid_json(client):
    resp = client.post(
        "/v1/vacation-days",
        content=b"{not json",
        headers={**HEADERS, "Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"]["message"] == "Invalid JSON in request body"


def test_vacation_days_survive_redis_outage(client, mock_redis):
    client.post("/v1/vacation-days", json={"plannedDays": ["2025-06-20"]}, headers=HEADERS)
    mock_redis.fail = True

    resp = client.get("/v1/vacation-days", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json()["plannedDays"] == ["2025-06-20"]


def test_planner_state_for_new_user(client):
    resp = client.get("/v1/planner", headers=HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["plannedDays"] == []
    assert data["status"]["state"] == "loaded"
    assert data["status"]["remoteLinked"] is False
    assert [c["id"] for c in data["categories"]][:2] == ["beach", "mountains"]


def test_planner_edits(client):
    resp = client.put("/v1/planner/days", json={"plannedDays": ["2025-07-01"]}, headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json()["plannedDays"] == ["2025-07-01"]

    resp = client.post("/v1/planner/days/2025-07-02/toggle", headers=HEADERS)
    assert resp.json()["plannedDays"] == ["2025-07-01", "2025-07-02"]

    resp = client.put(
        "/v1/planner/days/2025-07-02/category", json={"categoryId": "beach"}, headers=HEADERS
    )
    assert resp.json()["success"] is True

    resp = client.put("/v1/planner/week-notes/2025/27", json={"note": "Coast"}, headers=HEADERS)
    assert resp.json()["success"] is True

    data = client.get("/v1/planner", headers=HEADERS).json()
    assert data["dayCategories"] == {"2025-07-02": "beach"}
    assert data["weekNotes"] == {"2025-27": "Coast"}


def test_planner_rejects_malformed_days(client):
    resp = client.put("/v1/planner/days", json={"plannedDays": "2025-07-01"}, headers=HEADERS)
    assert resp.status_code == 400
    assert resp.json()["detail"]["message"] == "plannedDays must be an array"

    resp = client.post("/v1/planner/days/tomorrow/toggle", headers=HEADERS)
    assert resp.status_code == 400

    resp = client.put("/v1/planner/week-notes/2025/60", json={"note": "x"}, headers=HEADERS)
    assert resp.status_code == 400


def test_planner_add_category(client):
    resp = client.post("/v1/planner/categories", json={"name": "Road trip"}, headers=HEADERS)
    assert resp.status_code == 201
    category = resp.json()
    assert category["id"].startswith("category-")

    data = client.get("/v1/planner", headers=HEADERS).json()
    assert category in data["categories"]


def test_linked_planner_pulls_remote_days(client):
    client.post("/v1/vacation-days", json={"plannedDays": ["2025-06-20"]}, headers=HEADERS)

    data = client.get("/v1/planner", headers=LINKED).json()

    assert data["plannedDays"] == ["2025-06-20"]
    assert data["status"]["remoteLinked"] is True
    assert data["status"]["lastSynced"] is not None


def test_linked_planner_pushes_after_quiet_period(client):
    client.post("/v1/planner/days/2025-08-01/toggle", headers=LINKED)
    client.post("/v1/planner/days/2025-08-02/toggle", headers=LINKED)
    time.sleep(0.3)

    resp = client.get("/v1/vacation-days", headers=HEADERS)
    assert resp.json()["plannedDays"] == ["2025-08-01", "2025-08-02"]


def test_manual_sync(client):
    client.put("/v1/planner/days", json={"plannedDays": ["2025-09-09"]}, headers=LINKED)

    resp = client.post("/v1/planner/sync/push", headers=LINKED)
    assert resp.json()["success"] is True
    assert resp.json()["direction"] == "push"

    resp = client.post("/v1/planner/sync/pull", headers=LINKED)
    assert resp.json()["success"] is True
    assert client.get("/v1/vacation-days", headers=HEADERS).json()["plannedDays"] == ["2025-09-09"]


def test_push_requires_linked_account(client):
    resp = client.post("/v1/planner/sync/push", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json()["success"] is False


def test_admin_routes_forbidden_for_regular_user(client):
    assert client.get("/v1/admin/logs").status_code == 401
    resp = client.get("/v1/admin/logs", headers=HEADERS)
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "FORBIDDEN"


def test_login_event_recorded_and_listed(client, admin_allowed):
    client.put("/v1/planner/days", json={"plannedDays": ["2025-07-01"]}, headers=HEADERS)

    resp = client.post(
        "/v1/auth/login-events",
        headers={**HEADERS, "User-Agent": "pytest"},
    )
    assert resp.status_code == 202
    assert resp.json() == {"recorded": True, "plannedDaysCount": 1}

    logs = client.get("/v1/admin/logs", headers=ADMIN).json()
    assert len(logs) == 1
    assert logs[0]["source"] == "database"
    assert logs[0]["ip"] == "testclient"
    assert logs[0]["userAgent"] == "pytest"
    assert logs[0]["plannedDaysCount"] == 1


def test_forwarded_for_ignored_from_untrusted_peer(client, admin_allowed):
    resp = client.post(
        "/v1/auth/login-events",
        headers={**HEADERS, "X-Forwarded-For": "203.0.113.7"},
    )
    assert resp.status_code == 202

    logs = client.get("/v1/admin/logs", headers=ADMIN).json()
    assert logs[0]["ip"] == "testclient"


def test_forwarded_for_honoured_through_trusted_proxies(client, admin_allowed, monkeypatch):
    monkeypatch.setattr(dependencies.settings, "trusted_proxies", ["testclient", "10.0.0.1"])
    client.post(
        "/v1/auth/login-events",
        headers={**HEADERS, "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
    )
    client.post(
        "/v1/auth/login-events",
        headers={**HEADERS, "X-Forwarded-For": "203.0.113.7, 198.51.100.9"},
    )

    ips = sorted(entry["ip"] for entry in client.get("/v1/admin/logs", headers=ADMIN).json())
    assert ips == ["203.0.113.7", "testclient"]


def test_admin_delete_log(client, admin_allowed):
    client.post("/v1/admin/logs/memory", headers=ADMIN)
    entry = client.get("/v1/admin/logs", headers=ADMIN).json()[0]
    assert entry["source"] == "memory"

    params = {"timestamp": entry["timestamp"], "source": "memory"}
    resp = client.delete("/v1/admin/logs", params=params, headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json()["success"] is True

    resp = client.delete("/v1/admin/logs", params=params, headers=ADMIN)
    assert resp.status_code == 404

    resp = client.delete(
        "/v1/admin/logs", params={**params, "source": "disk"}, headers=ADMIN
    )
    assert resp.status_code == 400

    resp = client.delete("/v1/admin/logs", params={"source": "memory"}, headers=ADMIN)
    assert resp.status_code == 400


def test_admin_test_log(client, admin_allowed):
    resp = client.post("/v1/admin/logs/test", params={"label": "ci"}, headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Test log saved to database"


def test_admin_redis_status(client, admin_allowed):
    resp = client.get("/v1/admin/redis-status", headers=ADMIN)
    assert resp.status_code == 200
    data = resp.json()
    assert data["config"]["success"] is False
    assert data["connection"]["success"] is True


def test_metrics_exposed(client):
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "remote_sync_total" in resp.text


def test_admin_account_status(client, admin_allowed, mock_redis):
    resp = client.get("/v1/admin/account-status", headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Account store is reachable"}

    mock_redis.fail = True
    resp = client.get("/v1/admin/account-status", headers=ADMIN)
    assert resp.json() == {"success": False, "message": "Account store is unreachable"}


def test_account_status_requires_admin(client):
    assert client.get("/v1/admin/account-status", headers=HEADERS).status_code == 403


def test_planner_sessions_are_capped(client, monkeypatch):
    monkeypatch.setattr(dependencies.settings, "max_planner_sessions", 1)
    client.put("/v1/planner/days", json={"plannedDays": ["2025-07-01"]}, headers=HEADERS)
    assert list(get_process_state().sessions) == ["u1:local"]

    resp = client.get("/v1/planner", headers={"X-User-ID": "u2"})
    assert resp.status_code == 200
    assert list(get_process_state().sessions) == ["u2:local"]

    # the evicted user's days come back from the durable tiers
    resp = client.get("/v1/planner", headers=HEADERS)
    assert resp.json()["plannedDays"] == ["2025-07-01"]
    assert list(get_process_state().sessions) == ["u1:local"]
