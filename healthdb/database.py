"""Database configuration and connection management."""

from typing import Any

import structlog
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine

from healthdb.config import get_settings
from healthdb.models import metadata

logger = structlog.get_logger(__name__)


def set_sqlite_pragma(dbapi_conn: Any, connection_record: Any) -> None:
    """Enforce foreign keys on every SQLite connection."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def create_db_engine(database_url: str | None = None, echo: bool | None = None) -> Engine:
    """
    Create a synchronous engine for the data store.

    Args:
        database_url: SQLAlchemy URL, defaults to the configured DATABASE_URL
        echo: Log emitted SQL, defaults to the DEBUG setting

    Returns:
        Engine handle to pass to the store and analytics services
    """
    settings = get_settings()
    if database_url:
        settings = settings.model_copy(update={"database_url": database_url})

    options: dict[str, Any] = {"echo": settings.debug if echo is None else echo}
    if not settings.is_sqlite:
        # Connection pooling for server databases
        options.update(pool_pre_ping=True, pool_size=10, max_overflow=20, pool_recycle=3600)

    engine = create_engine(settings.database_url, **options)

    if settings.is_sqlite:
        event.listen(engine, "connect", set_sqlite_pragma)

    return engine


def init_database(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    metadata.create_all(engine)
    logger.info("database_initialized", url=engine.url.render_as_string(hide_password=True))


def drop_database(engine: Engine) -> None:
    """Drop all tables."""
    metadata.drop_all(engine)
    logger.info("database_dropped", url=engine.url.render_as_string(hide_password=True))


def check_database_connection(engine: Engine) -> bool:
    """Check if database connection is healthy."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.warning("database_unreachable", exc_info=True)
        return False
