from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Optional, Sequence

from ..common.mappers import dump_json, load_json_list
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_update, db_cursor, fetchall, fetchone, in_clause
from .model import PracticeAssignment, SessionSummary
from .repository import SessionSummaryRepository

_SELECT = """
    SELECT ss.*, l.student_id, l.lesson_date, s.name AS student_name
    FROM session_summaries ss
    JOIN lessons l ON l.lesson_id = ss.lesson_id
    LEFT JOIN students s ON s.student_id = l.student_id
"""
_WRITABLE = (
    "lesson_id",
    "instructor_id",
    "summary_text",
    "topics_covered",
    "homework_assigned",
    "student_progress",
    "next_lesson_focus",
    "achievements",
    "student_performance_rating",
    "lesson_difficulty_rating",
    "practice_assignments",
    "recommended_practice_time",
    "is_complete",
    "requires_admin_review",
    "submitted_at",
)
_JSON_COLUMNS = {"topics_covered", "practice_assignments"}


def _to_summary(r: dict) -> SessionSummary:
    return SessionSummary(
        summary_id=int(r["summary_id"]),
        lesson_id=int(r["lesson_id"]),
        instructor_id=int(r["instructor_id"]),
        summary_text=r["summary_text"],
        topics_covered=[str(t) for t in load_json_list(r.get("topics_covered"))],
        homework_assigned=r.get("homework_assigned"),
        student_progress=r.get("student_progress"),
        next_lesson_focus=r.get("next_lesson_focus"),
        achievements=r.get("achievements"),
        student_performance_rating=r.get("student_performance_rating"),
        lesson_difficulty_rating=r.get("lesson_difficulty_rating"),
        practice_assignments=[
            PracticeAssignment(title=a.get("title", ""), description=a.get("description", ""), duration=a.get("duration"))
            for a in load_json_list(r.get("practice_assignments"))
        ],
        recommended_practice_time=r.get("recommended_practice_time"),
        is_complete=bool(r.get("is_complete", 1)),
        requires_admin_review=bool(r.get("requires_admin_review", 0)),
        admin_reviewed_at=r.get("admin_reviewed_at"),
        admin_reviewed_by=r.get("admin_reviewed_by"),
        submitted_at=r.get("submitted_at"),
        student_id=r.get("student_id"),
        student_name=r.get("student_name"),
        lesson_date=r.get("lesson_date"),
    )


def _to_columns(data: dict[str, Any]) -> dict[str, Any]:
    return {k: (dump_json(v) if k in _JSON_COLUMNS else v) for k, v in data.items()}


class MySQLSessionSummaryRepository(SessionSummaryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, summary_id: int) -> Optional[SessionSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE ss.summary_id=%s", (int(summary_id),))
            r = fetchone(cur)
            return _to_summary(r) if r else None

    def get_by_lesson(self, lesson_id: int) -> Optional[SessionSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE ss.lesson_id=%s", (int(lesson_id),))
            r = fetchone(cur)
            return _to_summary(r) if r else None

    def lesson_ids_with_summary(self, lesson_ids: Iterable[int]) -> set[int]:
        ids = [int(i) for i in lesson_ids]
        if not ids:
            return set()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT lesson_id FROM session_summaries WHERE lesson_id IN ({in_clause(ids)})", tuple(ids))
            return {int(r["lesson_id"]) for r in fetchall(cur)}

    def create(self, data: dict[str, Any]) -> int:
        row = _to_columns({k: v for k, v in data.items() if k in _WRITABLE})
        cols = list(row)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO session_summaries({', '.join(cols)}) VALUES({', '.join(['%s'] * len(cols))})",
                tuple(row[c] for c in cols),
            )
            return int(cur.lastrowid)

    def update(self, summary_id: int, changes: dict[str, Any]) -> bool:
        stmt = build_update("session_summaries", "summary_id", int(summary_id), _to_columns(changes), allowed=_WRITABLE)
        if not stmt:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(*stmt)
            return cur.rowcount > 0

    def delete(self, summary_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM session_summaries WHERE summary_id=%s", (int(summary_id),))
            return cur.rowcount > 0

    def list_all(self) -> Sequence[SessionSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " ORDER BY ss.submitted_at DESC")
            return [_to_summary(r) for r in fetchall(cur)]

    def list_for_instructor(self, instructor_id: int, *, limit: int) -> Sequence[SessionSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE ss.instructor_id=%s ORDER BY ss.submitted_at DESC LIMIT %s",
                (int(instructor_id), int(limit)),
            )
            return [_to_summary(r) for r in fetchall(cur)]

    def list_for_student(self, student_id: int, *, limit: int) -> Sequence[SessionSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE l.student_id=%s ORDER BY ss.submitted_at DESC LIMIT %s",
                (int(student_id), int(limit)),
            )
            return [_to_summary(r) for r in fetchall(cur)]

    def count_for_instructor(self, instructor_id: int, *, start: date, end: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n FROM session_summaries
                WHERE instructor_id=%s AND DATE(submitted_at) BETWEEN %s AND %s
                """,
                (int(instructor_id), start, end),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def mark_reviewed(self, summary_id: int, *, reviewed_by: int, reviewed_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE session_summaries
                SET requires_admin_review=0, admin_reviewed_at=%s, admin_reviewed_by=%s
                WHERE summary_id=%s
                """,
                (reviewed_at, int(reviewed_by), int(summary_id)),
            )
            return cur.rowcount > 0
