from __future__ import annotations

import re
from datetime import datetime, time
from typing import Any, Optional

from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_email(value: str, field_name: str = "Email") -> str:
    email = require_non_empty(value, field_name).lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError(f"{field_name} is not a valid email address")
    return email


def optional_email(value: Optional[str], field_name: str = "Email") -> Optional[str]:
    if value is None or not str(value).strip():
        return None
    return require_email(value, field_name)


def optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip() or None


def require_id(value: Any, field_name: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is required") from None
    if parsed <= 0:
        raise ValidationError(f"{field_name} is not valid")
    return parsed


def coerce_status(value: Any) -> AttendanceStatus:
    """Exact match on the four statuses; anything else is rejected, never defaulted."""

    if isinstance(value, AttendanceStatus):
        return value
    try:
        return AttendanceStatus(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid attendance status: {value!r}") from None


def coerce_role(value: Any) -> Role:
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid role: {value!r}") from None


def parse_hhmm(value: Any, field_name: str) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    v = require_non_empty(value, field_name)
    try:
        return datetime.strptime(v, "%H:%M").time()
    except ValueError:
        raise ValidationError(f"{field_name} must be HH:MM") from None


def parse_threshold(value: Any, default: int) -> float:
    if value is None or value == "":
        return default
    try:
        threshold = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Threshold must be a number") from None
    if not 0 <= threshold <= 100:
        raise ValidationError("Threshold must be between 0 and 100")
    return threshold
