from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import current_actor, date_arg, json_body, login_required
from ..common.serialization import class_json, session_json, stats_json, student_json, to_json_value, user_json
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/classes", methods=["GET"], endpoint="classes_list")
    @login_required
    def classes_list():
        summaries = container.class_service.list_classes(current_actor())
        classes = []
        for s in summaries:
            item = class_json(s.school_class)
            item["teacher"] = user_json(s.teacher)
            item["studentCount"] = s.student_count
            item["sessionCount"] = s.session_count
            classes.append(item)
        return jsonify({"classes": classes})

    @app.route("/api/classes", methods=["POST"], endpoint="classes_create")
    @login_required
    def classes_create():
        data = json_body()
        created = container.class_service.create_class(
            current_actor(), name=data.get("name", ""), code=data.get("code", "")
        )
        return jsonify({"class": class_json(created)}), 201

    @app.route("/api/classes/<int:class_id>", methods=["GET"], endpoint="classes_detail")
    @login_required
    def classes_detail(class_id: int):
        detail = container.class_service.get_detail(current_actor(), class_id)
        item = class_json(detail.school_class)
        item["teacher"] = user_json(detail.teacher)
        item["students"] = [student_json(s) for s in detail.students]
        item["sessions"] = [
            {**session_json(r.session), "attendanceCount": r.attendance_count} for r in detail.recent_sessions
        ]
        return jsonify(
            {
                "class": item,
                "attendanceStats": to_json_value(detail.status_counts),
                "attendanceRate": detail.attendance_rate,
            }
        )

    @app.route("/api/classes/<int:class_id>", methods=["PUT"], endpoint="classes_update")
    @login_required
    def classes_update(class_id: int):
        data = json_body()
        updated = container.class_service.update_class(
            current_actor(), class_id, name=data.get("name"), code=data.get("code")
        )
        return jsonify({"class": class_json(updated)})

    @app.route("/api/classes/<int:class_id>", methods=["DELETE"], endpoint="classes_delete")
    @login_required
    def classes_delete(class_id: int):
        container.class_service.delete_class(current_actor(), class_id)
        return jsonify({"message": "Class deleted successfully"})

    @app.route("/api/classes/<int:class_id>/report", methods=["GET"], endpoint="classes_report")
    @login_required
    def classes_report(class_id: int):
        report = container.report_service.class_report(
            current_actor(), class_id, start=date_arg("startDate"), end=date_arg("endDate")
        )
        c = report.school_class
        return jsonify(
            {
                "class": {"id": c.class_id, "name": c.name, "code": c.code},
                "totalSessions": report.total_sessions,
                "report": [
                    {"student": student_json(row.student), "stats": stats_json(row.stats)} for row in report.rows
                ],
            }
        )
