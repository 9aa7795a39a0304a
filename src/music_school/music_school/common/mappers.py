"""Field renaming between database rows (snake_case) and UI payloads (camelCase)."""

from __future__ import annotations

import json
import re
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


def camel_to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _ui_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return to_ui(value)
    if isinstance(value, (list, tuple)):
        return [_ui_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _ui_value(v) for k, v in value.items()}
    return value


def to_ui(obj: Any, *, renames: Optional[Mapping[str, str]] = None) -> dict:
    """Convert a domain dataclass into a camelCase dict for JSON responses.

    `renames` overrides the generated key for specific fields, e.g.
    {"student_id": "id"}.
    """

    renames = renames or {}
    out: dict[str, Any] = {}
    for f in fields(obj):
        key = renames.get(f.name) or snake_to_camel(f.name)
        out[key] = _ui_value(getattr(obj, f.name))
    return out


def to_ui_list(items: Iterable[Any], *, renames: Optional[Mapping[str, str]] = None) -> list[dict]:
    return [to_ui(i, renames=renames) for i in items]


def from_ui(payload: Mapping[str, Any], *, allowed: Iterable[str]) -> dict:
    """Keep only known fields of a UI payload, renamed to snake_case."""

    allowed_set = set(allowed)
    out: dict[str, Any] = {}
    for key, value in (payload or {}).items():
        name = camel_to_snake(key)
        if name in allowed_set:
            out[name] = value
    return out


def load_json_list(value: Any) -> list:
    """JSON columns come back as str (or bytes) from mysql-connector."""

    if value is None or value == "":
        return []
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        value = json.loads(value)
    return list(value or [])


def load_json_dict(value: Any) -> dict:
    if value is None or value == "":
        return {}
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        value = json.loads(value)
    return dict(value or {})


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(_ui_value(value), ensure_ascii=False)
