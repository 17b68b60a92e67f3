# catalog_proxy/core/logging_config.py
"""
Centralized logging configuration for the application.

App loggers follow LOG_LEVEL (default INFO); HTTP client, database and
scheduler libraries are kept at WARNING so sync runs stay readable.
"""

import logging
import os

NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "sqlalchemy",
    "sqlalchemy.engine",
    "asyncpg",
    "aiosqlite",
    "apscheduler",
    "apscheduler.scheduler",
    "apscheduler.executors.default",
)


def configure_logging():
    """Configure root logging once and quiet verbose libraries."""
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, log_level, logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # Keep app loggers at configured level
    logging.getLogger("catalog_proxy").setLevel(level)
    logging.getLogger("__main__").setLevel(level)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at level: {log_level}")
