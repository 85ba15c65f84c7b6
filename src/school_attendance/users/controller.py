from __future__ import annotations

from datetime import timedelta

from flask import Flask, jsonify, session

from ..common.http import current_actor, json_body, login_required
from ..common.serialization import to_json_value, user_json
from ..container import Container


def _start_session(app: Flask, user, remember: bool) -> None:
    session.clear()
    session.permanent = bool(remember)
    app.permanent_session_lifetime = timedelta(days=7)
    session["user_id"] = user.user_id
    session["role"] = user.role.value


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/register", methods=["POST"], endpoint="auth_register")
    def auth_register():
        data = json_body()
        user = container.auth_service.register(
            email=data.get("email", ""),
            password=data.get("password", ""),
            name=data.get("name", ""),
        )
        _start_session(app, user, remember=False)
        return jsonify({"user": user_json(user)}), 201

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def auth_login():
        data = json_body()
        user = container.auth_service.authenticate(data.get("email", ""), data.get("password", ""))
        _start_session(app, user, remember=bool(data.get("rememberMe")))
        return jsonify({"user": user_json(user)})

    @app.route("/api/auth/logout", methods=["POST"], endpoint="auth_logout")
    def auth_logout():
        session.clear()
        return jsonify({"message": "Logged out"})

    @app.route("/api/auth/me", endpoint="auth_me")
    @login_required
    def auth_me():
        return jsonify({"user": user_json(container.auth_service.current_user(current_actor().user_id))})

    @app.route("/api/auth/profile", methods=["PUT"], endpoint="auth_profile")
    @login_required
    def auth_profile():
        user = container.auth_service.update_profile(current_actor(), name=json_body().get("name"))
        return jsonify({"user": user_json(user)})

    @app.route("/api/auth/password", methods=["PUT"], endpoint="auth_password")
    @login_required
    def auth_password():
        data = json_body()
        container.auth_service.change_password(
            current_actor(),
            current_password=data.get("currentPassword", ""),
            new_password=data.get("newPassword", ""),
        )
        return jsonify({"message": "Password updated successfully"})

    # Admin: user management

    @app.route("/api/admin/users", methods=["GET"], endpoint="admin_users")
    @login_required
    def admin_users():
        rows = container.user_service.list_users(current_actor())
        users = [
            {
                "id": r["user_id"],
                "email": r["email"],
                "name": r["name"],
                "role": to_json_value(r["role"]),
                "createdAt": to_json_value(r["created_at"]),
                "classCount": int(r["class_count"]),
            }
            for r in rows
        ]
        return jsonify({"users": users})

    @app.route("/api/admin/users", methods=["POST"], endpoint="admin_create_user")
    @login_required
    def admin_create_user():
        data = json_body()
        user = container.user_service.create_user(
            current_actor(),
            email=data.get("email", ""),
            password=data.get("password", ""),
            name=data.get("name", ""),
            role=data.get("role", "TEACHER"),
        )
        return jsonify({"user": user_json(user)}), 201

    @app.route("/api/admin/users/<int:user_id>", methods=["PUT"], endpoint="admin_update_user")
    @login_required
    def admin_update_user(user_id: int):
        data = json_body()
        user = container.user_service.update_user(
            current_actor(), user_id, name=data.get("name"), role=data.get("role")
        )
        return jsonify({"user": user_json(user)})

    @app.route("/api/admin/users/<int:user_id>", methods=["DELETE"], endpoint="admin_delete_user")
    @login_required
    def admin_delete_user(user_id: int):
        container.user_service.delete_user(current_actor(), user_id)
        return jsonify({"message": "User deleted successfully"})
