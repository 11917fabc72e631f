"""
HTTP tests: bearer identity, report workflow endpoints and error translation.
"""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

import config
from app import app, init_services
from auth.security import create_access_token, issue_actor_token
from core.schemas import Actor
from database.connection import Database
from database.models import Campus, UserRole
from storage.local_store import LocalReportStore


def _bearer(user_id, role, campus=None, name=""):
    actor = Actor(user_id=user_id, role=role, campus=campus, display_name=name)
    return {"Authorization": f"Bearer {issue_actor_token(actor)}"}


def _raw(claims, **kwargs):
    return {"Authorization": f"Bearer {create_access_token(claims, **kwargs)}"}


GV = _bearer("gv-hn-1", UserRole.LECTURER, Campus.HN, "Tran Thi B")
GV_DN = _bearer("gv-dn-1", UserRole.LECTURER, Campus.DN, "Le Van C")
CNBM_HN = _bearer("cnbm-hn", UserRole.DEPARTMENT_MANAGER, Campus.HN)
CNBM_DN = _bearer("cnbm-dn", UserRole.DEPARTMENT_MANAGER, Campus.DN)
HO = _bearer("ho-1", UserRole.HEAD_OFFICE)
DVSV_HN = _bearer("dvsv-hn", UserRole.STUDENT_AFFAIRS, Campus.HN)


@pytest.fixture
def client():
    """App wired to an in-memory database; lifespan is not run."""
    database = Database("sqlite://")
    database.create_tables()
    init_services(database, LocalReportStore())
    yield TestClient(app)
    database.dispose()
    for name in ("db", "store", "notifications", "repository", "audit", "versioning", "lifecycle", "student_affairs"):
        setattr(config, name, None)


def _create(client, headers=GV, **fields):
    body = {"student_code": "SV001", "student_name": "Nguyen Van A"}
    body.update(fields)
    response = client.post("/api/reports", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestIdentity:

    def test_missing_token(self, client):
        assert client.get("/api/reports").status_code in (401, 403)

    def test_garbage_token(self, client):
        response = client.get("/api/reports", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_unknown_role_claim(self, client):
        response = client.get("/api/reports", headers=_raw({"sub": "x", "role": "superuser"}))
        assert response.status_code == 401
        assert "superuser" in response.json()["detail"]

    def test_unknown_campus_claim(self, client):
        response = client.get("/api/reports", headers=_raw({"sub": "x", "role": "gv", "campus": "SG"}))
        assert response.status_code == 401

    def test_expired_token(self, client):
        headers = _raw({"sub": "x", "role": "ho"}, expires_delta=timedelta(seconds=-5))
        assert client.get("/api/reports", headers=headers).status_code == 401

    def test_token_signed_with_other_key(self, client):
        headers = _raw({"sub": "x", "role": "ho"}, secret_key="someone-else")
        assert client.get("/api/reports", headers=headers).status_code == 401

    def test_only_lecturers_create(self, client):
        response = client.post("/api/reports", json={"student_code": "A", "student_name": "B"}, headers=CNBM_HN)
        assert response.status_code == 403


class TestReportEndpoints:

    def test_create_uses_token_owner_and_campus(self, client):
        report = _create(client)

        assert report["lecturer_id"] == "gv-hn-1"
        assert report["campus"] == "HN"
        assert report["status"] == "draft"

    def test_create_ignores_campus_in_body(self, client):
        report = _create(client, campus="DN")

        assert report["campus"] == "HN"
        assert client.get("/api/reports", headers=CNBM_DN).json() == []
        assert client.get("/api/notifications", headers=CNBM_DN).json()["unread"] == 0
        assert client.get("/api/notifications", headers=CNBM_HN).json()["unread"] == 1

    def test_validation_error_names_field(self, client):
        response = client.post("/api/reports", json={"student_code": "SV1", "student_name": " "}, headers=GV)

        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "student_name"

    def test_listing_is_role_scoped(self, client):
        hn = _create(client)
        dn = _create(client, headers=GV_DN)

        assert [r["id"] for r in client.get("/api/reports", headers=CNBM_HN).json()] == [hn["id"]]
        assert {r["id"] for r in client.get("/api/reports", headers=HO).json()} == {hn["id"], dn["id"]}

    def test_other_campus_cannot_read(self, client):
        report = _create(client)
        assert client.get(f"/api/reports/{report['id']}", headers=CNBM_DN).status_code == 403

    def test_missing_report(self, client):
        assert client.get("/api/reports/nope", headers=HO).status_code == 404

    def test_update_by_owner_only(self, client):
        report = _create(client)

        assert client.put(f"/api/reports/{report['id']}", json={"subject": "X"}, headers=GV_DN).status_code == 403
        response = client.put(f"/api/reports/{report['id']}", json={"subject": "Co so du lieu"}, headers=GV)
        assert response.status_code == 200
        assert response.json()["subject"] == "Co so du lieu"

    def test_delete_and_clear_drafts(self, client):
        first = _create(client)
        _create(client)

        assert client.delete(f"/api/reports/{first['id']}", headers=GV).status_code == 204
        assert client.delete("/api/reports/drafts", headers=GV).json() == {"deleted": 1}
        assert client.get("/api/reports", headers=GV).json() == []


class TestWorkflow:

    def test_submit_approve_finalize(self, client):
        report = _create(client)
        rid = report["id"]

        submitted = client.post("/api/reports/submit", json={"ids": [rid, "ghost"]}, headers=GV).json()
        assert submitted == {"submitted": [rid], "skipped": ["ghost"]}

        assert client.post(f"/api/reports/{rid}/approve", headers=CNBM_DN).status_code == 403
        approved = client.post(f"/api/reports/{rid}/approve", headers=CNBM_HN).json()
        assert approved["applied"] is True
        assert approved["to_status"] == "approved"

        again = client.post(f"/api/reports/{rid}/approve", headers=CNBM_HN).json()
        assert again["applied"] is False

        assert client.post("/api/reports/finalize", headers=CNBM_HN).status_code == 403
        finalized = client.post("/api/reports/finalize", headers=HO).json()
        assert finalized == {"finalized": [rid], "count": 1}

        response = client.put(f"/api/reports/{rid}", json={"teacher_note": "late"}, headers=GV)
        assert response.status_code == 409

    def test_cycles_and_notes(self, client):
        rid = _create(client)["id"]

        response = client.post(
            f"/api/reports/{rid}/cycles",
            json={"status_detail": "Absent 2 sessions", "warn_10": True, "assessment_date": "2024-04-15"},
            headers=GV,
        )
        assert response.status_code == 200
        assert response.json()["warn_10"] is True

        cycles = client.get(f"/api/reports/{rid}/cycles", headers=CNBM_HN).json()
        assert len(cycles) == 1
        assert cycles[0]["payload"]["kind"] == "snapshot"
        assert cycles[0]["payload"]["warn_10"] is False

        note = client.post(f"/api/reports/{rid}/notes/teacher_note", json={"content": "Goi dien"}, headers=GV)
        assert note.status_code == 201
        notes = client.get(f"/api/reports/{rid}/notes/teacher_note", headers=GV).json()
        assert [n["content"] for n in notes] == ["Goi dien"]
        assert client.get(f"/api/reports/{rid}", headers=GV).json()["teacher_note"] == "Goi dien"

    def test_note_permissions(self, client):
        rid = _create(client)["id"]

        assert client.post(
            f"/api/reports/{rid}/notes/dvsv_note", json={"content": "x"}, headers=GV
        ).status_code == 403
        assert client.post(
            f"/api/reports/{rid}/notes/dvsv_note", json={"content": "Da tu van"}, headers=DVSV_HN
        ).status_code == 201
        assert client.post(
            f"/api/reports/{rid}/notes/full_update", json={"content": "x"}, headers=GV
        ).status_code == 422

    def test_care_outcome(self, client):
        rid = _create(client)["id"]

        response = client.post(f"/api/reports/{rid}/care", json={"dvsv_status": "success", "note": "Ok"}, headers=DVSV_HN)

        assert response.status_code == 200
        assert response.json()["dvsv_status"] == "success"
        assert response.json()["dvsv_note"] == "Ok"
        assert client.post(f"/api/reports/{rid}/care", json={"dvsv_status": "success"}, headers=GV).status_code == 403


class TestNotificationsAndDashboard:

    def test_feed_and_mark_read(self, client):
        _create(client)

        feed = client.get("/api/notifications", headers=CNBM_HN).json()
        assert feed["unread"] == 1
        assert feed["pollIntervalSeconds"] == config.NOTIFICATION_POLL_INTERVAL_SECONDS
        notification_id = feed["notifications"][0]["id"]

        assert client.post(f"/api/notifications/{notification_id}/read", headers=CNBM_DN).status_code == 404
        for _ in range(2):
            read = client.post(f"/api/notifications/{notification_id}/read", headers=CNBM_HN)
            assert read.json()["read_by"] == ["cnbm-hn"]
        assert client.get("/api/notifications", headers=CNBM_HN).json()["unread"] == 0

    def test_dashboard_stats(self, client):
        _create(client, banned=True)
        _create(client, headers=GV_DN)

        stats = client.get("/api/dashboard/stats", headers=GV).json()
        assert stats["total"] == 1
        assert stats["banned"] == 1
        assert stats["draft"] == 1
        assert client.get("/api/dashboard/stats", headers=HO).json()["total"] == 2


def test_health_reports_answering_store(client):
    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["checks"]["store"]["answering"] == "database"


def test_security_headers(client):
    response = client.get("/")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Cache-Control"] == "no-store"
    assert response.headers["X-API-Version"] == config.APP_VERSION
