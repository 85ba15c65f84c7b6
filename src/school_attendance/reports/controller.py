from __future__ import annotations

import io

from flask import Flask, jsonify, request, send_file

from ..common.http import current_actor, date_arg, login_required
from ..common.serialization import to_dict, to_json_value
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/admin/stats", methods=["GET"], endpoint="admin_stats")
    @login_required
    def admin_stats():
        stats = container.report_service.admin_stats(current_actor())
        return jsonify(
            {
                "totals": {
                    "users": stats.users,
                    "students": stats.students,
                    "classes": stats.classes,
                    "sessions": stats.sessions,
                },
                "today": to_dict(stats.today),
                "weeklyTrend": [to_dict(p, rename={"day": "date"}) for p in stats.weekly_trend],
            }
        )

    @app.route("/api/reports/alerts", methods=["GET"], endpoint="reports_alerts")
    @login_required
    def reports_alerts():
        alerts, threshold = container.report_service.alerts(current_actor(), request.args.get("threshold"))
        payload = []
        for a in alerts:
            s = a.student
            c = a.school_class
            payload.append(
                {
                    "student": {
                        "id": s.student_id,
                        "firstName": s.first_name,
                        "lastName": s.last_name,
                        "studentId": s.student_number,
                    },
                    "class": {"id": c.class_id, "name": c.name, "code": c.code} if c else None,
                    "attendanceRate": a.rate,
                    "totalSessions": a.total_sessions,
                    "absences": a.absences,
                }
            )
        return jsonify({"alerts": payload, "threshold": to_json_value(threshold)})

    @app.route("/api/reports/export/<int:class_id>", methods=["GET"], endpoint="reports_export")
    @login_required
    def reports_export(class_id: int):
        export = container.report_service.export(
            current_actor(),
            class_id,
            fmt=request.args.get("format", "xlsx"),
            start=date_arg("startDate"),
            end=date_arg("endDate"),
        )
        return send_file(
            io.BytesIO(export.content),
            mimetype=export.mimetype,
            as_attachment=True,
            download_name=export.filename,
        )
