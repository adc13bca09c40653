# ===== agendando/utils/my_logging.py =====
"""Logging configuration"""
import logging
import sys
from agendando.config.settings import get_settings

NOISY_LOGGERS = [
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "sqlalchemy.orm",
    "alembic",
    "httpx",
    "googleapiclient.discovery_cache",
    "celery.beat",
    "uvicorn",
    "uvicorn.access",
]


def setup_logging(verbose=True):
    """Configure application logging once for API, worker and scripts"""
    settings = get_settings()

    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    if not verbose:
        level = max(level, logging.WARNING)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    if not verbose:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.ERROR)
