from __future__ import annotations

import io

import pytest
from werkzeug.security import generate_password_hash

from school_attendance.container import build_memory_container
from school_attendance.core.enums import Role
from school_attendance.main import create_app


@pytest.fixture
def app(clock):
    container = build_memory_container(clock=clock)
    container.users_repo.create_user(
        email="admin@school.test", name="Admin", password_hash=generate_password_hash("admin123"), role=Role.ADMIN
    )
    return create_app("config.testing", container=container)


def _register(app, email, name="Teacher"):
    client = app.test_client()
    resp = client.post("/api/auth/register", json={"email": email, "password": "secret123", "name": name})
    assert resp.status_code == 201
    return client


def _login(app, email, password):
    client = app.test_client()
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200
    return client


@pytest.fixture
def teacher_client(app):
    return _register(app, "t1@school.test", "Teacher One")


@pytest.fixture
def setup(teacher_client):
    """One class with one student and one session at 09:00 today."""
    klass = teacher_client.post("/api/classes", json={"name": "Programming", "code": "INFO-101"}).get_json()["class"]
    student = teacher_client.post(
        "/api/students",
        json={"firstName": "Alice", "lastName": "Martin", "studentId": "STU001", "classId": klass["id"]},
    ).get_json()["student"]
    session = teacher_client.post(
        "/api/attendance/sessions",
        json={"classId": klass["id"], "date": "2026-03-02", "startTime": "09:00", "endTime": "10:00"},
    ).get_json()["session"]
    return klass, student, session


def test_health(app):
    resp = app.test_client().get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}


def test_register_then_me(teacher_client):
    user = teacher_client.get("/api/auth/me").get_json()["user"]
    assert user["email"] == "t1@school.test"
    assert user["role"] == "TEACHER"
    assert "passwordHash" not in user


def test_me_requires_login(app):
    resp = app.test_client().get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.get_json()["error"]["kind"] == "authentication_failed"


def test_login_rejects_bad_password(app):
    resp = app.test_client().post("/api/auth/login", json={"email": "admin@school.test", "password": "nope123"})
    assert resp.status_code == 401
    assert resp.get_json()["error"]["message"] == "Invalid credentials"


def test_logout_clears_session(teacher_client):
    teacher_client.post("/api/auth/logout")
    assert teacher_client.get("/api/auth/me").status_code == 401


def test_created_entities_use_wire_names(setup):
    klass, student, session = setup
    assert klass["code"] == "INFO-101"
    assert student["studentId"] == "STU001"
    assert student["classId"] == klass["id"]
    assert session == {
        "id": session["id"],
        "classId": klass["id"],
        "date": "2026-03-02",
        "startTime": "09:00",
        "endTime": "10:00",
        "topic": None,
    }


def test_mark_and_roster(teacher_client, setup):
    _, student, session = setup
    resp = teacher_client.post(
        "/api/attendance/mark", json={"sessionId": session["id"], "studentId": student["id"], "status": "PRESENT"}
    )
    assert resp.status_code == 200
    assert resp.get_json()["attendance"]["status"] == "PRESENT"

    roster = teacher_client.get(f"/api/attendance/sessions/{session['id']}").get_json()
    assert roster["session"]["class"]["code"] == "INFO-101"
    assert [s["attendance"]["status"] for s in roster["students"]] == ["PRESENT"]


def test_mark_rejects_unknown_status(teacher_client, setup):
    _, student, session = setup
    for status in ("SICK", "present"):
        resp = teacher_client.post(
            "/api/attendance/mark", json={"sessionId": session["id"], "studentId": student["id"], "status": status}
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"]["kind"] == "validation_failure"


def test_mark_bulk_reports_failures(teacher_client, setup):
    _, student, session = setup
    resp = teacher_client.post(
        "/api/attendance/mark-bulk",
        json={
            "sessionId": session["id"],
            "attendances": [
                {"studentId": student["id"], "status": "LATE"},
                {"studentId": 999, "status": "PRESENT"},
            ],
        },
    )
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["count"] == 1
    assert body["failures"][0]["studentId"] == 999
    assert body["failures"][0]["kind"] == "not_found"


def test_mark_bulk_atomic_rejects_everything(teacher_client, setup):
    _, student, session = setup
    resp = teacher_client.post(
        "/api/attendance/mark-bulk",
        json={
            "sessionId": session["id"],
            "atomic": True,
            "attendances": [
                {"studentId": student["id"], "status": "LATE"},
                {"studentId": 999, "status": "PRESENT"},
            ],
        },
    )
    assert resp.status_code == 409
    assert resp.get_json()["error"]["kind"] == "batch_rejected"

    roster = teacher_client.get(f"/api/attendance/sessions/{session['id']}").get_json()
    assert roster["students"][0]["attendance"] is None


def test_quick_attendance_and_patch(teacher_client, setup):
    klass, student, _ = setup
    resp = teacher_client.post(
        "/api/attendance/quick",
        json={"classId": klass["id"], "attendances": [{"studentId": student["id"], "status": "ABSENT"}]},
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["session"]["startTime"] == "09:15"
    assert body["session"]["endTime"] == "10:15"

    attendance_id = body["attendances"][0]["id"]
    resp = teacher_client.patch(f"/api/attendance/{attendance_id}", json={"status": "EXCUSED", "notes": "doctor"})
    assert resp.status_code == 200
    assert resp.get_json()["attendance"]["status"] == "EXCUSED"
    assert resp.get_json()["attendance"]["notes"] == "doctor"


def test_quick_attendance_rejects_duplicate_students(teacher_client, setup):
    klass, student, _ = setup
    resp = teacher_client.post(
        "/api/attendance/quick",
        json={
            "classId": klass["id"],
            "attendances": [
                {"studentId": student["id"], "status": "PRESENT"},
                {"studentId": student["id"], "status": "LATE"},
            ],
        },
    )
    assert resp.status_code == 409
    assert resp.get_json()["error"]["failures"][0]["studentId"] == student["id"]

    sessions = teacher_client.get(f"/api/attendance/sessions?classId={klass['id']}").get_json()["sessions"]
    assert len(sessions) == 1


def test_class_report_and_alerts(teacher_client, setup):
    klass, student, session = setup
    teacher_client.post(
        "/api/attendance/mark", json={"sessionId": session["id"], "studentId": student["id"], "status": "LATE"}
    )

    report = teacher_client.get(f"/api/classes/{klass['id']}/report").get_json()
    assert report["totalSessions"] == 1
    assert report["report"][0]["stats"]["late"] == 1
    assert report["report"][0]["stats"]["attendanceRate"] == 100

    alerts = teacher_client.get("/api/reports/alerts").get_json()
    assert alerts["alerts"] == []


def test_report_rejects_inverted_window(teacher_client, setup):
    klass, _, _ = setup
    resp = teacher_client.get(f"/api/classes/{klass['id']}/report?startDate=2026-03-05&endDate=2026-03-01")
    assert resp.status_code == 400


def test_import_non_utf8_csv_is_400(teacher_client, setup):
    klass, _, _ = setup
    resp = teacher_client.post(
        "/api/students/import",
        data={"classId": str(klass["id"]), "file": (io.BytesIO(b"studentId,firstName,lastName\nS1,Al\xe9,Bo\n"), "s.csv")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"]["kind"] == "validation_failure"


def test_export_csv(teacher_client, setup):
    klass, student, session = setup
    teacher_client.post(
        "/api/attendance/mark", json={"sessionId": session["id"], "studentId": student["id"], "status": "PRESENT"}
    )
    resp = teacher_client.get(f"/api/reports/export/{klass['id']}?format=csv")
    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert "attendance-INFO-101-2026-03-02.csv" in resp.headers["Content-Disposition"]
    header = resp.data.decode("utf-8").splitlines()[0]
    assert header.startswith("Student ID,Last Name,First Name,2026-03-02")


def test_other_teacher_gets_403(app, setup):
    klass, _, _ = setup
    other = _register(app, "t2@school.test", "Teacher Two")
    resp = other.get(f"/api/classes/{klass['id']}")
    assert resp.status_code == 403
    assert resp.get_json()["error"]["kind"] == "access_denied"


def test_admin_sees_every_class(app, setup):
    admin = _login(app, "admin@school.test", "admin123")
    classes = admin.get("/api/classes").get_json()["classes"]
    assert [c["code"] for c in classes] == ["INFO-101"]
    assert classes[0]["studentCount"] == 1


def test_missing_class_is_404(teacher_client):
    resp = teacher_client.get("/api/classes/4242")
    assert resp.status_code == 404
    assert resp.get_json()["error"]["kind"] == "not_found"


def test_duplicate_class_code_is_409(teacher_client, setup):
    resp = teacher_client.post("/api/classes", json={"name": "Again", "code": "INFO-101"})
    assert resp.status_code == 409


def test_admin_endpoints_need_admin(app, teacher_client):
    assert teacher_client.get("/api/admin/users").status_code == 403
    assert teacher_client.get("/api/admin/stats").status_code == 403

    admin = _login(app, "admin@school.test", "admin123")
    users = admin.get("/api/admin/users").get_json()["users"]
    assert {u["email"] for u in users} == {"admin@school.test", "t1@school.test"}
    stats = admin.get("/api/admin/stats").get_json()
    assert stats["totals"]["users"] == 2


def test_admin_cannot_delete_self(app):
    admin = _login(app, "admin@school.test", "admin123")
    me = admin.get("/api/auth/me").get_json()["user"]
    resp = admin.delete(f"/api/admin/users/{me['id']}")
    assert resp.status_code == 409
