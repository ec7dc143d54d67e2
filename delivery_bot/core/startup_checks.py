from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from delivery_bot.core.config import DATABASE_URL, IS_PROD
from delivery_bot.core.database import Base

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"


def validate_database_environment() -> None:
    if IS_PROD and DATABASE_URL.startswith("sqlite"):
        logger.critical("%s SQLite is forbidden in production", STARTUP_PREFIX)
        raise RuntimeError("SQLite is forbidden in production environment")


def ensure_schema(engine: Engine) -> None:
    """Cria as tabelas em SQLite (dev); nos demais bancos apenas verifica, use alembic upgrade head."""
    if DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
        return

    existing = set(inspect(engine).get_table_names())
    missing = sorted(set(Base.metadata.tables) - existing)
    if missing:
        logger.critical("%s missing tables=%s (run alembic upgrade head)", STARTUP_PREFIX, missing)
        raise RuntimeError("Database schema is not up to date")
    logger.info("%s schema verified", STARTUP_PREFIX)
