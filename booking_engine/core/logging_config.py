import logging
import sys

from booking_engine.core.config import Settings, get_settings

NOISY_LOGGERS = [
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "aiosqlite",
    "alembic",
    "httpx",
]


def setup_logging(settings: Settings | None = None) -> None:
    """Configure application logging"""
    settings = settings or get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    if not settings.DB_ECHO:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
