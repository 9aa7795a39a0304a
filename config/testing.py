from .config import LESSON_PRICE, db_config  # noqa: F401

SECRET_KEY = "test-secret"

DB_CONFIG = db_config("music_school_test")

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"
LATE_GRACE_MINUTES = 10

AUTO_INIT_DB = False
AUTO_SEED_DB = False
