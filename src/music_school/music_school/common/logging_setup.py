"""Logging setup shared by the Flask app and the maintenance scripts."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Parent of every module logger in this package, however the package is imported.
PACKAGE_LOGGER = __name__.rsplit(".common.", 1)[0]


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the package logger.

    Calling it twice (app factory in tests) does not duplicate handlers.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    if any(getattr(h, "_music_school", False) for h in logger.handlers):
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._music_school = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False


def mask_email(email: str) -> str:
    """Mask email address for safe logging ("u***@example.com")."""

    if not email or "@" not in email:
        return "***"
    local, domain = email.split("@", 1)
    return f"{local[0]}***@{domain}" if local else f"***@{domain}"
