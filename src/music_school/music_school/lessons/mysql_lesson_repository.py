from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

from ..common.time_utils import normalize_hhmm
from ..core.enums import LessonStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_update, db_cursor, fetchall, fetchone
from .model import Lesson
from .repository import LessonRepository

_SELECT = """
    SELECT l.lesson_id, l.student_id, l.instructor_id, l.room_id, l.lesson_date,
           l.start_time, l.end_time, l.title, l.notes, l.status, l.rate, l.parent_lesson_id,
           s.name AS student_name, i.name AS instructor_name
    FROM lessons l
    LEFT JOIN students s ON s.student_id = l.student_id
    LEFT JOIN instructors i ON i.instructor_id = l.instructor_id
"""
_WRITABLE = (
    "student_id",
    "instructor_id",
    "room_id",
    "lesson_date",
    "start_time",
    "end_time",
    "title",
    "notes",
    "status",
    "rate",
    "parent_lesson_id",
)


def _to_lesson(r: dict) -> Lesson:
    return Lesson(
        lesson_id=int(r["lesson_id"]),
        student_id=int(r["student_id"]),
        instructor_id=int(r["instructor_id"]),
        room_id=int(r["room_id"]),
        lesson_date=r["lesson_date"],
        start_time=normalize_hhmm(r["start_time"]),
        end_time=normalize_hhmm(r["end_time"]),
        title=r.get("title"),
        notes=r.get("notes"),
        status=LessonStatus(r["status"]),
        rate=float(r["rate"]) if r.get("rate") is not None else None,
        parent_lesson_id=int(r["parent_lesson_id"]) if r.get("parent_lesson_id") else None,
        student_name=r.get("student_name"),
        instructor_name=r.get("instructor_name"),
    )


def _to_columns(data: dict[str, Any]) -> dict[str, Any]:
    return {k: (v.value if isinstance(v, LessonStatus) else v) for k, v in data.items()}


class MySQLLessonRepository(LessonRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, lesson_id: int) -> Optional[Lesson]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE l.lesson_id=%s", (int(lesson_id),))
            r = fetchone(cur)
            return _to_lesson(r) if r else None

    def list_range(
        self,
        *,
        start: date,
        end: date,
        instructor_id: Optional[int] = None,
        student_id: Optional[int] = None,
        include_deleted: bool = False,
    ) -> Sequence[Lesson]:
        where = ["l.lesson_date BETWEEN %s AND %s"]
        params: list[Any] = [start, end]
        if instructor_id:
            where.append("l.instructor_id=%s")
            params.append(int(instructor_id))
        if student_id:
            where.append("l.student_id=%s")
            params.append(int(student_id))
        if not include_deleted:
            where.append("l.status <> 'deleted'")

        sql = _SELECT + " WHERE " + " AND ".join(where) + " ORDER BY l.lesson_date ASC, l.start_time ASC"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_lesson(r) for r in fetchall(cur)]

    def list_deleted(self) -> Sequence[Lesson]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE l.status='deleted' ORDER BY l.lesson_date DESC, l.start_time ASC")
            return [_to_lesson(r) for r in fetchall(cur)]

    def create(self, data: dict[str, Any]) -> int:
        row = _to_columns({k: v for k, v in data.items() if k in _WRITABLE})
        cols = list(row)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO lessons({', '.join(cols)}) VALUES({', '.join(['%s'] * len(cols))})",
                tuple(row[c] for c in cols),
            )
            return int(cur.lastrowid)

    def update(self, lesson_id: int, changes: dict[str, Any]) -> bool:
        stmt = build_update("lessons", "lesson_id", int(lesson_id), _to_columns(changes), allowed=_WRITABLE)
        if not stmt:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(*stmt)
            return cur.rowcount > 0

    def delete(self, lesson_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM lessons WHERE lesson_id=%s", (int(lesson_id),))
            return cur.rowcount > 0
