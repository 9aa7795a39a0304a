from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict

import mysql.connector

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "music_school"


@dataclass(frozen=True)
class DBConfig:
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = DEFAULT_DATABASE
    charset: str = "utf8mb4"
    collation: str = "utf8mb4_unicode_ci"

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        """Build from the `DB_*` settings dict produced by `config.db_config()`."""

        return cls(
            host=str(db_config.get("host") or "localhost"),
            port=int(db_config.get("port") or 3306),
            user=str(db_config.get("user") or "root"),
            password=str(db_config.get("password") or ""),
            database=str(db_config.get("database") or DEFAULT_DATABASE),
        )

    def label(self) -> str:
        return f"{self.user}@{self.host}:{self.port}/{self.database}"


class DatabaseConnection:
    """Hands out short-lived MySQL connections for one school database.

    Repositories open a connection per operation through `db_cursor`, so
    nothing here is shared between requests except the settings.
    """

    _by_config: Dict[DBConfig, "DatabaseConnection"] = {}

    def __init__(self, config: DBConfig):
        self.config = config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        existing = cls._by_config.get(config)
        if existing is None:
            logger.info("Using database %s", config.label())
            existing = cls._by_config[config] = cls(config)
        return existing

    def connect(self, *, with_database: bool = True):
        """Open a connection; `with_database=False` is for creating the schema itself."""

        cfg = self.config
        options = {
            "host": cfg.host,
            "port": cfg.port,
            "user": cfg.user,
            "password": cfg.password,
            "charset": cfg.charset,
            "collation": cfg.collation,
            "use_pure": True,
        }
        if with_database:
            options["database"] = cfg.database
        return mysql.connector.connect(**options)
