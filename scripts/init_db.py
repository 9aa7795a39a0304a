"""Create the database (if missing) and apply database/schema.sql."""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.music_school.music_school.common.logging_setup import configure_logging
from src.music_school.music_school.database.bootstrap import apply_schema, list_tables
from src.music_school.music_school.database.connection import DBConfig

logger = logging.getLogger("src.music_school.music_school.scripts.init_db")


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    db_config = dict(settings.DB_CONFIG)

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
    tables = list_tables(db_config)
    logger.info("Schema applied to %s (tables=%d)", DBConfig.from_dict(db_config).label(), len(tables))


if __name__ == "__main__":
    main()
