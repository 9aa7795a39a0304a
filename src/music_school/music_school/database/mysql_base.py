"""Cursor and SQL-building helpers shared by the MySQL repositories."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .connection import DatabaseConnection

Row = Dict[str, Any]


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield `(conn, cursor)` for one unit of work; commit on success, roll back on error."""

    conn = conn_factory.connect()
    cur = conn.cursor(dictionary=dictionary)
    try:
        yield conn, cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
        conn.close()


def fetchone(cur) -> Optional[Row]:
    return cur.fetchone() or None


def fetchall(cur) -> List[Row]:
    return list(cur.fetchall() or [])


def build_update(
    table: str, key_col: str, key: Any, changes: Dict[str, Any], *, allowed: Iterable[str]
) -> Optional[Tuple[str, tuple]]:
    """Build `UPDATE table SET a=%s, b=%s WHERE key=%s` for the allowed columns only.

    Returns (sql, params) or None when nothing is left to update.
    """

    writable = frozenset(allowed)
    cols = [c for c in changes if c in writable]
    if not cols:
        return None
    assignments = ", ".join(f"{c}=%s" for c in cols)
    return f"UPDATE {table} SET {assignments} WHERE {key_col}=%s", (*[changes[c] for c in cols], key)


def in_clause(values: Sequence[Any]) -> str:
    """Placeholders for `col IN (...)`; callers must not pass an empty sequence."""

    return ", ".join(["%s"] * len(values))
