from __future__ import annotations

from dataclasses import asdict

from flask import Flask, jsonify, request

from ..common.http import current_actor, json_body, login_required
from ..common.serialization import attendance_json, class_json, session_json, stats_json, student_json
from ..container import Container
from ..core.exceptions import ValidationError

# camelCase request keys -> service field names
_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "studentId": "student_number",
    "classId": "class_id",
    "email": "email",
    "phone": "phone",
}


def register(app: Flask, container: Container) -> None:
    @app.route("/api/students", methods=["GET"], endpoint="students_list")
    @login_required
    def students_list():
        class_id = request.args.get("classId", type=int)
        rows = container.student_service.list_students(
            current_actor(), class_id=class_id, search=request.args.get("search")
        )
        students = []
        for student, school_class in rows:
            item = student_json(student)
            item["class"] = {"id": school_class.class_id, "name": school_class.name, "code": school_class.code}
            students.append(item)
        return jsonify({"students": students})

    @app.route("/api/students", methods=["POST"], endpoint="students_create")
    @login_required
    def students_create():
        data = json_body()
        student = container.student_service.create_student(
            current_actor(),
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            student_number=data.get("studentId", ""),
            class_id=data.get("classId"),
            email=data.get("email"),
            phone=data.get("phone"),
        )
        return jsonify({"student": student_json(student)}), 201

    @app.route("/api/students/<int:student_id>", methods=["GET"], endpoint="students_profile")
    @login_required
    def students_profile(student_id: int):
        profile = container.student_service.get_profile(current_actor(), student_id)
        item = student_json(profile.student)
        item["class"] = class_json(profile.school_class)
        item["attendances"] = [
            {**attendance_json(h.record), "session": session_json(h.session)} for h in profile.history
        ]
        return jsonify({"student": item, "stats": stats_json(profile.stats)})

    @app.route("/api/students/<int:student_id>", methods=["PUT"], endpoint="students_update")
    @login_required
    def students_update(student_id: int):
        data = json_body()
        changes = {field: data[key] for key, field in _FIELDS.items() if key in data}
        student = container.student_service.update_student(current_actor(), student_id, changes)
        return jsonify({"student": student_json(student)})

    @app.route("/api/students/<int:student_id>", methods=["DELETE"], endpoint="students_delete")
    @login_required
    def students_delete(student_id: int):
        container.student_service.delete_student(current_actor(), student_id)
        return jsonify({"message": "Student deleted successfully"})

    @app.route("/api/students/import", methods=["POST"], endpoint="students_import")
    @login_required
    def students_import():
        upload = request.files.get("file")
        if not upload:
            raise ValidationError("No file uploaded")
        result = container.student_service.import_csv(current_actor(), request.form.get("classId"), upload.read())
        return jsonify({"message": "Import completed", "results": asdict(result)})
