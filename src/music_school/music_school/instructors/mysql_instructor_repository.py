from __future__ import annotations

from typing import Any, Optional, Sequence

from ..common.mappers import dump_json, load_json_dict, load_json_list
from ..core.enums import RecordStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_update, db_cursor, fetchall, fetchone
from .model import Instructor, TimeSlot
from .repository import InstructorRepository

_COLUMNS = (
    "instructor_id, name, specialties, color, email, phone, bio, availability, "
    "hourly_rate, profile_picture_url, status"
)
_WRITABLE = (
    "name",
    "specialties",
    "color",
    "email",
    "phone",
    "bio",
    "availability",
    "hourly_rate",
    "profile_picture_url",
    "status",
)
_JSON_COLUMNS = {"specialties", "availability"}


def _to_instructor(r: dict) -> Instructor:
    availability = {
        day: [TimeSlot(start=s["start"], end=s["end"]) for s in slots or []]
        for day, slots in load_json_dict(r.get("availability")).items()
    }
    return Instructor(
        instructor_id=int(r["instructor_id"]),
        name=r["name"],
        specialties=[str(s) for s in load_json_list(r.get("specialties"))],
        color=r.get("color") or "#60a5fa",
        email=r.get("email"),
        phone=r.get("phone"),
        bio=r.get("bio"),
        availability=availability,
        hourly_rate=float(r["hourly_rate"]) if r.get("hourly_rate") is not None else None,
        profile_picture_url=r.get("profile_picture_url"),
        status=RecordStatus(r.get("status") or "active"),
    )


def _to_columns(data: dict[str, Any]) -> dict[str, Any]:
    out = {}
    for k, v in data.items():
        if k in _JSON_COLUMNS:
            v = dump_json(v)
        elif isinstance(v, RecordStatus):
            v = v.value
        out[k] = v
    return out


class MySQLInstructorRepository(InstructorRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, instructor_id: int) -> Optional[Instructor]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM instructors WHERE instructor_id=%s", (int(instructor_id),))
            r = fetchone(cur)
            return _to_instructor(r) if r else None

    def list_all(self) -> Sequence[Instructor]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM instructors ORDER BY name ASC")
            return [_to_instructor(r) for r in fetchall(cur)]

    def create(self, data: dict[str, Any]) -> int:
        row = _to_columns({k: v for k, v in data.items() if k in _WRITABLE})
        cols = list(row)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO instructors({', '.join(cols)}) VALUES({', '.join(['%s'] * len(cols))})",
                tuple(row[c] for c in cols),
            )
            return int(cur.lastrowid)

    def update(self, instructor_id: int, changes: dict[str, Any]) -> bool:
        stmt = build_update("instructors", "instructor_id", int(instructor_id), _to_columns(changes), allowed=_WRITABLE)
        if not stmt:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(*stmt)
            return cur.rowcount > 0

    def delete(self, instructor_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM instructors WHERE instructor_id=%s", (int(instructor_id),))
            return cur.rowcount > 0

    def count_active(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM instructors WHERE status='active'")
            r = fetchone(cur)
            return int(r["n"]) if r else 0
