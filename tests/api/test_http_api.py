from __future__ import annotations

import pytest

from src.attendance_engine.attendance_engine.challenges.store import InMemoryChallengeStore
from src.attendance_engine.attendance_engine.main import create_app
from tests.fakes import build_test_container

SETTINGS = {
    "SECRET_KEY": "test-secret",
    "TESTING": True,
    "APP_URL": "https://att.example.edu",
    "CRON_SECRET": "s3cret",
    "CRON_REQUIRE_AUTH": True,
    "SESSION_DEFAULT_MINUTES": 5,
}

TEACHER = {"X-User-Id": "1", "X-User-Role": "teacher"}
ADMIN = {"X-User-Id": "2", "X-User-Role": "admin"}
STUDENT = {"X-User-Id": "10", "X-User-Role": "student"}


@pytest.fixture
def store():
    return InMemoryChallengeStore()


@pytest.fixture
def container(store):
    c = build_test_container(challenge_store=store)
    yield c
    c.shutdown()


@pytest.fixture
def client(container):
    app = create_app(container, settings=SETTINGS)
    return app.test_client()


def _open(client, **body):
    payload = {"class_id": 7, "subject_id": 3, **body}
    return client.post("/api/sessions", json=payload, headers=TEACHER)


def test_teacher_opens_session_and_gets_join_url(client):
    resp = _open(client)
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["status"] == "active"
    assert data["join_url"] == f"https://att.example.edu/student/attendance?code={data['session_code']}"
    assert 0 < data["seconds_remaining"] <= 300


def test_role_headers_are_required(client):
    assert client.post("/api/sessions", json={"class_id": 7, "subject_id": 3}).status_code == 401
    assert client.post("/api/sessions", json={"class_id": 7, "subject_id": 3}, headers=STUDENT).status_code == 403


def test_invalid_duration_is_a_validation_error(client):
    resp = _open(client, duration_minutes=0)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "InvalidDuration"

    for bad in ("nan", "inf", "-inf", 1e300, "soon"):
        resp = _open(client, duration_minutes=bad)
        assert resp.status_code == 400, bad
        assert resp.get_json()["error"] == "InvalidDuration"


def test_lookup_distinguishes_unknown_and_closed_codes(client):
    data = _open(client).get_json()["data"]

    assert client.get(f"/api/sessions/code/{data['session_code'].lower()}").status_code == 200
    assert client.get("/api/sessions/code/ZZZZ0000").status_code == 404

    closed = client.post(f"/api/sessions/{data['session_id']}/close", json={"reason": "completed"}, headers=TEACHER)
    assert closed.get_json()["data"]["status"] == "completed"
    resp = client.get(f"/api/sessions/code/{data['session_code']}")
    assert resp.status_code == 410
    assert resp.get_json()["error"] == "SessionNotActive"


def test_challenge_and_check_in_flow(client, store):
    data = _open(client).get_json()["data"]

    resp = client.post("/api/attendance/challenge", json={"email": "Sam@School.edu", "session_code": data["session_code"]})
    assert resp.status_code == 201
    assert "otp" not in resp.get_json()["data"]
    code = store.get("sam@school.edu").code

    bad = client.post("/api/attendance/check-in", json={"email": "sam@school.edu", "session_id": data["session_id"], "otp": "xx"})
    assert bad.status_code == 400
    assert bad.get_json()["result"] == "mismatch"

    ok = client.post("/api/attendance/check-in", json={"email": "sam@school.edu", "session_id": data["session_id"], "otp": code})
    assert ok.status_code == 201
    assert ok.get_json()["data"]["status"] == "present"

    detail = client.get(f"/api/sessions/{data['session_id']}", headers=TEACHER).get_json()["data"]
    assert detail["summary"]["present"] == 1
    assert [r["student_id"] for r in detail["records"]] == [10]


def test_student_from_other_class_cannot_request_challenge(client):
    data = _open(client).get_json()["data"]
    resp = client.post("/api/attendance/challenge", json={"email": "other@school.edu", "session_code": data["session_code"]})
    assert resp.status_code == 403


def test_manual_mark_and_ownership(client):
    data = _open(client).get_json()["data"]
    resp = client.post(f"/api/sessions/{data['session_id']}/records", json={"student_id": 11, "status": "late"}, headers=TEACHER)
    assert resp.status_code == 201
    assert resp.get_json()["data"]["marked_by"] == "teacher:1"

    stranger = {"X-User-Id": "99", "X-User-Role": "teacher"}
    assert client.get(f"/api/sessions/{data['session_id']}", headers=stranger).status_code == 403


def test_session_qr_code_is_png(client):
    data = _open(client).get_json()["data"]
    resp = client.get(f"/api/sessions/{data['session_id']}/qr.png", headers=TEACHER)
    assert resp.status_code == 200
    assert resp.mimetype == "image/png"
    assert resp.data[:8] == b"\x89PNG\r\n\x1a\n"


def test_od_request_dual_approval_over_http(client):
    filed = client.post(
        "/api/od-requests",
        json={"class_id": 7, "subject_id": 3, "teacher_id": 1, "admin_id": 2, "od_date": "2026-03-02", "reason": "Sports meet"},
        headers=STUDENT,
    )
    assert filed.status_code == 201
    request_id = filed.get_json()["data"]["request_id"]

    wrong = client.post(f"/api/od-requests/{request_id}/teacher-decision", json={"decision": "approve"}, headers={"X-User-Id": "5", "X-User-Role": "teacher"})
    assert wrong.status_code == 403

    t = client.post(f"/api/od-requests/{request_id}/teacher-decision", json={"decision": "approve"}, headers=TEACHER)
    assert t.get_json()["data"]["status"] == "pending"
    a = client.post(f"/api/od-requests/{request_id}/admin-decision", json={"decision": "approve", "note": "ok"}, headers=ADMIN)
    body = a.get_json()["data"]
    assert body["status"] == "approved" and body["changed"] is True

    again = client.post(f"/api/od-requests/{request_id}/admin-decision", json={"decision": "reject"}, headers=ADMIN)
    assert again.status_code == 200
    assert again.get_json()["data"]["changed"] is False

    mine = client.get("/api/od-requests", headers=STUDENT).get_json()["data"]
    assert [r["status"] for r in mine] == ["approved"]


def test_od_request_bad_input(client):
    resp = client.post("/api/od-requests", json={"class_id": 7, "subject_id": 3, "teacher_id": 1, "admin_id": 2, "reason": "x"}, headers=STUDENT)
    assert resp.status_code == 400
    resp = client.post("/api/od-requests/1/teacher-decision", json={"decision": "maybe"}, headers=TEACHER)
    assert resp.status_code == 400


def test_cron_endpoint_requires_bearer_secret(client):
    assert client.post("/api/cron/create-scheduled-sessions").status_code == 401
    assert client.get("/api/cron/create-scheduled-sessions", headers={"Authorization": "Bearer nope"}).status_code == 401

    resp = client.get("/api/cron/create-scheduled-sessions", headers={"Authorization": "Bearer s3cret"})
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["failures"] == []
    assert data["maintenance"]["errors"] == []


def test_cron_auth_can_be_disabled(container):
    app = create_app(container, settings={**SETTINGS, "CRON_REQUIRE_AUTH": False})
    assert app.test_client().post("/api/cron/create-scheduled-sessions").status_code == 200


def test_teacher_scheduled_sessions(client):
    resp = client.get("/api/teacher/scheduled-sessions", headers=TEACHER)
    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"scheduled": [], "active_sessions": []}


def test_unknown_route_is_json_404(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False
