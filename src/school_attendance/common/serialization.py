from __future__ import annotations

import dataclasses
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Mapping, Optional

# Never leaves the server.
HIDDEN_FIELDS = frozenset({"password_hash"})


def camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_json_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_dict(value)
    if isinstance(value, Mapping):
        return {to_json_value(k) if isinstance(k, Enum) else k: to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    return value


def to_dict(instance: Any, *, rename: Optional[Mapping[str, str]] = None, include_hidden: bool = False) -> dict:
    """Dataclass -> JSON-ready dict with camelCase keys."""
    rename = rename or {}
    output = {}
    for f in dataclasses.fields(instance):
        key = f.name
        if not include_hidden and key in HIDDEN_FIELDS:
            continue
        output[rename.get(key, camel(key))] = to_json_value(getattr(instance, key))
    return output


def user_json(user) -> Optional[dict]:
    return to_dict(user, rename={"user_id": "id"}) if user else None


def class_json(school_class) -> Optional[dict]:
    return to_dict(school_class, rename={"class_id": "id"}) if school_class else None


def student_json(student) -> Optional[dict]:
    # ``studentId`` on the wire is the school-issued number.
    return to_dict(student, rename={"student_id": "id", "student_number": "studentId"}) if student else None


def session_json(session) -> Optional[dict]:
    return to_dict(session, rename={"session_id": "id", "session_date": "date"}) if session else None


def attendance_json(record) -> Optional[dict]:
    return to_dict(record, rename={"attendance_id": "id"}) if record else None


def stats_json(stats) -> dict:
    data = to_dict(stats)
    data["attendanceRate"] = data.pop("rate")
    return data
