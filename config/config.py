"""Settings shared by every environment, read from environment variables."""

import os


def env_flag(name: str, default: str = "0") -> bool:
    return bool(int(os.getenv(name, default)))


def db_config(default_name: str = "music_school") -> dict:
    return {
        "host": os.getenv("DB_HOST", "localhost"),
        "port": int(os.getenv("DB_PORT", "3306")),
        "user": os.getenv("DB_USER", "root"),
        "password": os.getenv("DB_PASSWORD", ""),
        "database": os.getenv("DB_NAME", default_name),
    }


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Minutes after the lesson start that still count as "present".
LATE_GRACE_MINUTES = int(os.getenv("LATE_GRACE_MINUTES", "10"))

LESSON_PRICE = float(os.getenv("LESSON_PRICE", "500"))
