"""Flask glue shared by the feature controllers."""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import Flask, current_app, g, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.exceptions import AuthenticationError, DomainError, ValidationError
from ..users.model import Actor
from .datetime_utils import parse_optional_date

logger = logging.getLogger(__name__)

EXTENSION_KEY = "school_attendance"

STATUS_BY_KIND = {
    "validation_failure": 400,
    "authentication_failed": 401,
    "access_denied": 403,
    "not_found": 404,
    "conflict": 409,
    "batch_rejected": 409,
}


def get_container():
    return current_app.extensions[EXTENSION_KEY]


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            raise AuthenticationError("Authentication required")

        user = get_container().users_repo.get_by_id(int(session["user_id"]))
        if not user:
            session.clear()
            raise AuthenticationError("Authentication required")

        g.user = user
        g.actor = Actor.of(user)
        return view(*args, **kwargs)

    return wrapper


def current_actor() -> Actor:
    return g.actor


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def date_arg(name: str, source: Optional[dict] = None):
    source = request.args if source is None else source
    return parse_optional_date(source.get(name))


def bool_arg(value: Any) -> Optional[bool]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def error_response(kind: str, message: str, status: int, **extra):
    return jsonify({"error": {"kind": kind, "message": message, **extra}}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return jsonify({"error": e.to_dict()}), STATUS_BY_KIND.get(e.kind, 400)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return error_response("http_error", e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return error_response("internal_error", "Internal server error", 500)
