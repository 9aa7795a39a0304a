from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .billing.controller import register as register_billing
from .calendar.controller import register as register_calendar
from .chat.controller import register as register_chat
from .common.logging_setup import configure_logging
from .common.web import register_error_handlers
from .container import Container, build_container
from .core.constants import DEFAULT_LATE_GRACE_MINUTES, LESSON_PRICE
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .database.connection import DBConfig
from .instructors.controller import register as register_instructors
from .lessons.controller import register as register_lessons
from .reports.controller import register as register_reports
from .session_summaries.controller import register as register_summaries
from .students.controller import register as register_students
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def register_routes(app: Flask, container: Container) -> None:
    register_users(app, container)
    register_students(app, container)
    register_instructors(app, container)
    register_lessons(app, container)
    register_calendar(app, container)
    register_summaries(app, container)
    register_attendance(app, container)
    register_billing(app, container)
    register_reports(app, container)
    register_chat(app, container)
    register_error_handlers(app)


def create_app(container: Optional[Container] = None) -> Flask:
    """Application factory. Tests pass a prebuilt container to skip MySQL."""

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.json.sort_keys = False

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    logger.info("Starting with settings=%s db=%s", settings_module, DBConfig.from_dict(db_config).label())

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=DATABASE_DIR / "seed.sql")
            ensure_demo_users(db_config)

        container = build_container(
            db_config=db_config,
            grace_minutes=int(getattr(settings, "LATE_GRACE_MINUTES", DEFAULT_LATE_GRACE_MINUTES)),
            lesson_price=float(getattr(settings, "LESSON_PRICE", LESSON_PRICE)),
        )

    register_routes(app, container)
    return app
