"""
Logging configuration.
Sets up a structured console logger compatible with uvicorn's log format.
"""

import logging
import sys

from toxguard.core.config import settings


def configure_logging(level: str | None = None) -> None:
    """Configure root logger with level from settings (or an explicit override)."""
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Quieten noisy third-party loggers
    for noisy in ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
