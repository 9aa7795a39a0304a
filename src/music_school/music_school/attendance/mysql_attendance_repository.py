from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Optional, Sequence

from ..common.time_utils import normalize_hhmm
from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_update, db_cursor, fetchall, fetchone, in_clause
from .model import AttendanceRecord
from .repository import AttendanceRepository

_SELECT = """
    SELECT a.record_id, a.lesson_id, a.student_id, a.instructor_id, a.status,
           a.arrival_time, a.departure_time, a.notes, a.makeup_required, a.marked_at, a.marked_by,
           s.name AS student_name, l.lesson_date, l.start_time AS lesson_time
    FROM attendance_records a
    JOIN lessons l ON l.lesson_id = a.lesson_id
    LEFT JOIN students s ON s.student_id = a.student_id
"""
_WRITABLE = (
    "lesson_id",
    "student_id",
    "instructor_id",
    "status",
    "arrival_time",
    "departure_time",
    "notes",
    "makeup_required",
    "marked_at",
    "marked_by",
)


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        lesson_id=int(r["lesson_id"]),
        student_id=int(r["student_id"]),
        instructor_id=int(r["instructor_id"]),
        status=AttendanceStatus(r["status"]),
        arrival_time=normalize_hhmm(r.get("arrival_time")),
        departure_time=normalize_hhmm(r.get("departure_time")),
        notes=r.get("notes"),
        makeup_required=bool(r.get("makeup_required")),
        marked_at=r.get("marked_at"),
        marked_by=r.get("marked_by"),
        student_name=r.get("student_name"),
        lesson_date=r.get("lesson_date"),
        lesson_time=normalize_hhmm(r.get("lesson_time")),
    )


def _to_columns(data: dict[str, Any]) -> dict[str, Any]:
    return {k: (v.value if isinstance(v, AttendanceStatus) else v) for k, v in data.items()}


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE a.record_id=%s", (int(record_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_lesson_and_student(self, lesson_id: int, student_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE a.lesson_id=%s AND a.student_id=%s", (int(lesson_id), int(student_id)))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_for_lesson(self, lesson_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE a.lesson_id=%s ORDER BY s.name ASC", (int(lesson_id),))
            return [_to_record(r) for r in fetchall(cur)]

    def list_range(
        self,
        *,
        start: date,
        end: date,
        student_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        where = ["l.lesson_date BETWEEN %s AND %s"]
        params: list[Any] = [start, end]
        if student_id:
            where.append("a.student_id=%s")
            params.append(int(student_id))
        if instructor_id:
            where.append("a.instructor_id=%s")
            params.append(int(instructor_id))

        sql = _SELECT + " WHERE " + " AND ".join(where) + " ORDER BY l.lesson_date DESC, l.start_time DESC"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_record(r) for r in fetchall(cur)]

    def statuses_for_lessons(self, lesson_ids: Iterable[int]) -> dict[int, AttendanceStatus]:
        ids = [int(i) for i in lesson_ids]
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT lesson_id, status FROM attendance_records WHERE lesson_id IN ({in_clause(ids)})",
                tuple(ids),
            )
            return {int(r["lesson_id"]): AttendanceStatus(r["status"]) for r in fetchall(cur)}

    def create(self, data: dict[str, Any]) -> int:
        row = _to_columns({k: v for k, v in data.items() if k in _WRITABLE})
        cols = list(row)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO attendance_records({', '.join(cols)}) VALUES({', '.join(['%s'] * len(cols))})",
                tuple(row[c] for c in cols),
            )
            return int(cur.lastrowid)

    def update(self, record_id: int, changes: dict[str, Any]) -> bool:
        stmt = build_update("attendance_records", "record_id", int(record_id), _to_columns(changes), allowed=_WRITABLE)
        if not stmt:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(*stmt)
            return cur.rowcount > 0

    def delete(self, record_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_records WHERE record_id=%s", (int(record_id),))
            return cur.rowcount > 0
