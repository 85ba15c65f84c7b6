from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import bool_arg, current_actor, date_arg, json_body, login_required
from ..common.serialization import attendance_json, class_json, session_json, student_json, to_json_value
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/sessions", methods=["GET"], endpoint="attendance_sessions")
    @login_required
    def attendance_sessions():
        rows = container.attendance_service.list_sessions(
            current_actor(), request.args.get("classId"), day=date_arg("date")
        )
        sessions = [
            {
                **session_json(r.session),
                "attendanceCount": len(r.records),
                "attendances": [attendance_json(a) for a in r.records],
            }
            for r in rows
        ]
        return jsonify({"sessions": sessions})

    @app.route("/api/attendance/sessions", methods=["POST"], endpoint="attendance_create_session")
    @login_required
    def attendance_create_session():
        data = json_body()
        if not data.get("date"):
            raise ValidationError("date is required")
        created = container.attendance_service.create_session(
            current_actor(),
            class_id=data.get("classId"),
            session_date=parse_iso_date(data["date"]),
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
            topic=data.get("topic"),
        )
        return jsonify({"session": session_json(created)}), 201

    @app.route("/api/attendance/sessions/<int:session_id>", methods=["GET"], endpoint="attendance_roster")
    @login_required
    def attendance_roster(session_id: int):
        roster = container.attendance_service.roster(current_actor(), session_id)
        c = roster.school_class
        return jsonify(
            {
                "session": {
                    **session_json(roster.session),
                    "class": {"id": c.class_id, "name": c.name, "code": c.code},
                },
                "students": [
                    {**student_json(line.student), "attendance": attendance_json(line.attendance)}
                    for line in roster.lines
                ],
            }
        )

    @app.route("/api/attendance/mark", methods=["POST"], endpoint="attendance_mark")
    @login_required
    def attendance_mark():
        data = json_body()
        record = container.attendance_service.mark(
            current_actor(),
            session_id=data.get("sessionId"),
            student_id=data.get("studentId"),
            status=data.get("status"),
            notes=data.get("notes"),
        )
        return jsonify({"attendance": attendance_json(record)})

    @app.route("/api/attendance/mark-bulk", methods=["POST"], endpoint="attendance_mark_bulk")
    @login_required
    def attendance_mark_bulk():
        data = json_body()
        result = container.attendance_service.mark_bulk(
            current_actor(),
            session_id=data.get("sessionId"),
            items=data.get("attendances"),
            atomic=bool_arg(data.get("atomic")),
        )
        return jsonify(
            {
                "attendances": [attendance_json(r) for r in result.records],
                "count": len(result.records),
                "failures": [f.to_dict() for f in result.failures],
            }
        )

    @app.route("/api/attendance/quick", methods=["POST"], endpoint="attendance_quick")
    @login_required
    def attendance_quick():
        data = json_body()
        result = container.attendance_service.quick(
            current_actor(),
            class_id=data.get("classId"),
            items=data.get("attendances"),
            topic=data.get("topic"),
        )
        return (
            jsonify(
                {
                    "session": session_json(result.session),
                    "attendances": [attendance_json(r) for r in result.records],
                }
            ),
            201,
        )

    @app.route("/api/attendance/<int:attendance_id>", methods=["PATCH"], endpoint="attendance_update")
    @login_required
    def attendance_update(attendance_id: int):
        data = json_body()
        record = container.attendance_service.update(
            current_actor(), attendance_id, status=data.get("status"), notes=data.get("notes")
        )
        return jsonify({"attendance": attendance_json(record)})

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @login_required
    def attendance_today():
        view = container.attendance_service.today(current_actor())
        sessions = [
            {
                **session_json(cs),
                "class": class_json(school_class),
                "attendances": [attendance_json(a) for a in records],
            }
            for cs, school_class, records in view.sessions
        ]
        return jsonify({"date": to_json_value(view.day), "sessions": sessions, "summary": to_json_value(view.summary)})
