"""Schema and demo-data setup used by `flask init-db`, `flask seed-db` and scripts/."""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from werkzeug.security import generate_password_hash

from .connection import DBConfig, DatabaseConnection

logger = logging.getLogger(__name__)

# (full name, email, password, role); the instructor login links to the seeded profile with the same email.
DEMO_ACCOUNTS = [
    ("School Admin", "admin@musicschool.test", "admin123", "admin"),
    ("Maria Santos", "maria@musicschool.test", "teacher123", "instructor"),
]

_DB_SELECTION = re.compile(r"^\s*(CREATE\s+DATABASE|USE)\b", re.IGNORECASE)
_QUOTES = "'\"`"


@contextmanager
def _session(db_config: dict, *, with_database: bool = True, dictionary: bool = False):
    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect(with_database=with_database)
    try:
        cur = conn.cursor(dictionary=dictionary)
        yield cur
        conn.commit()
    finally:
        conn.close()


def split_sql(sql: str) -> Iterator[str]:
    """Yield the statements of a .sql file.

    Understands `--` line comments and quoted strings/identifiers, so a `;`
    inside a seed value does not end the statement. `CREATE DATABASE` and
    `USE` statements are dropped; the target database comes from settings.
    """

    current: List[str] = []
    quote: Optional[str] = None
    i = 0
    while i < len(sql):
        ch = sql[i]
        if quote:
            current.append(ch)
            if ch == "\\" and quote != "`" and i + 1 < len(sql):
                current.append(sql[i + 1])
                i += 1
            elif ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
            current.append(ch)
        elif sql.startswith("--", i):
            end = sql.find("\n", i)
            i = len(sql) if end == -1 else end
            continue
        elif ch == ";":
            yield from _keep("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    yield from _keep("".join(current))


def _keep(statement: str) -> Iterator[str]:
    statement = statement.strip()
    if statement and not _DB_SELECTION.match(statement):
        yield statement


def run_sql_file(db_config: dict, path: str | Path) -> int:
    path = Path(path)
    count = 0
    with _session(db_config) as cur:
        for statement in split_sql(path.read_text(encoding="utf-8")):
            cur.execute(statement)
            count += 1
    logger.info("Applied %s (%d statements)", path.name, count)
    return count


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    with _session(db_config, with_database=False) as cur:
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` "
            f"CHARACTER SET {target.charset} COLLATE {target.collation}"
        )


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    run_sql_file(db_config, schema_path)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    run_sql_file(db_config, seed_path)


def ensure_demo_users(db_config: dict) -> None:
    """Create the demo logins, or reset their passwords if they already exist."""

    with _session(db_config, dictionary=True) as cur:
        for full_name, email, password, role in DEMO_ACCOUNTS:
            instructor_id = None
            if role == "instructor":
                cur.execute("SELECT instructor_id FROM instructors WHERE email=%s", (email,))
                profile = cur.fetchone()
                if not profile:
                    raise RuntimeError(f"No instructor profile for {email}; run seed.sql first")
                instructor_id = int(profile["instructor_id"])

            cur.execute(
                """
                INSERT INTO users (full_name, email, password_hash, role, instructor_id, is_active)
                VALUES (%s, %s, %s, %s, %s, 1)
                ON DUPLICATE KEY UPDATE
                    full_name=VALUES(full_name), password_hash=VALUES(password_hash),
                    role=VALUES(role), instructor_id=VALUES(instructor_id), is_active=1
                """,
                (full_name, email, generate_password_hash(password), role, instructor_id),
            )
    logger.info("Demo accounts ready: %s", ", ".join(a[1] for a in DEMO_ACCOUNTS))


def list_tables(db_config: dict) -> list[str]:
    with _session(db_config) as cur:
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
