from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..core.enums import RecordStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_update, db_cursor, fetchall, fetchone
from .model import Student, parse_student_number
from .repository import StudentRepository

_WRITABLE = (
    "student_id_number",
    "name",
    "nickname",
    "birthdate",
    "age",
    "gender",
    "email",
    "contact_number",
    "facebook",
    "guardian_full_name",
    "guardian_relationship",
    "guardian_phone",
    "guardian_email",
    "guardian_facebook",
    "address_country",
    "address_province",
    "address_city",
    "address_barangay",
    "address_line1",
    "address_line2",
    "instrument",
    "level",
    "instructor_id",
    "sessions_attended",
    "sessions_billed",
    "credit_balance",
    "status",
    "notes",
    "parent_student_id",
    "last_attendance_marked_at",
)
_COLUMNS = "student_id, " + ", ".join(_WRITABLE)


def _to_student(r: dict) -> Student:
    data = {k: r.get(k) for k in _WRITABLE}
    data["student_id"] = int(r["student_id"])
    data["sessions_attended"] = int(r.get("sessions_attended") or 0)
    data["sessions_billed"] = int(r.get("sessions_billed") or 0)
    data["credit_balance"] = float(r.get("credit_balance") or 0)
    data["status"] = RecordStatus(r.get("status") or "active")
    return Student(**data)


def _to_columns(data: dict[str, Any]) -> dict[str, Any]:
    return {k: (v.value if isinstance(v, RecordStatus) else v) for k, v in data.items()}


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE student_id=%s", (int(student_id),))
            r = fetchone(cur)
            return _to_student(r) if r else None

    def list_all(self) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students ORDER BY name ASC")
            return [_to_student(r) for r in fetchall(cur)]

    def search(self, query: str) -> Sequence[Student]:
        like = f"%{query.lower()}%"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM students
                WHERE LOWER(name) LIKE %s
                   OR LOWER(COALESCE(email, '')) LIKE %s
                   OR LOWER(COALESCE(guardian_full_name, '')) LIKE %s
                ORDER BY name ASC
                """,
                (like, like, like),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def max_student_number(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT student_id_number FROM students")
            return max((parse_student_number(r["student_id_number"]) for r in fetchall(cur)), default=0)

    def create(self, data: dict[str, Any]) -> int:
        row = _to_columns({k: v for k, v in data.items() if k in _WRITABLE})
        cols = list(row)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO students({', '.join(cols)}) VALUES({', '.join(['%s'] * len(cols))})",
                tuple(row[c] for c in cols),
            )
            return int(cur.lastrowid)

    def update(self, student_id: int, changes: dict[str, Any]) -> bool:
        stmt = build_update("students", "student_id", int(student_id), _to_columns(changes), allowed=_WRITABLE)
        if not stmt:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(*stmt)
            return cur.rowcount > 0

    def delete(self, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM students WHERE student_id=%s", (int(student_id),))
            return cur.rowcount > 0

    def record_attendance(self, student_id: int, *, marked_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE students
                SET sessions_attended = sessions_attended + 1, last_attendance_marked_at=%s
                WHERE student_id=%s
                """,
                (marked_at, int(student_id)),
            )

    def count_active(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM students WHERE status='active'")
            r = fetchone(cur)
            return int(r["n"]) if r else 0
