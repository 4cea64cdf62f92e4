import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from projexa.core.config import get_settings
from projexa.db.schema import metadata

logger = logging.getLogger(__name__)

settings = get_settings()


def build_engine(url: str, echo: bool = False) -> Engine:
    """
    Create the engine for a database URL.
    SQLite (used by the test-suite) gets a single shared connection,
    everything else a regular connection pool.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo
        )
    # pool_size=5: maintain 5 connections ready
    # max_overflow=10: allow 10 extra connections under load
    return create_engine(url, pool_size=5, max_overflow=10, echo=echo)


engine = build_engine(settings.sqlalchemy_url, echo=settings.debug)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM users"))
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_schema():
    """Create all tables that do not exist yet."""
    metadata.create_all(engine)
    logger.info("Relational schema ready")


def check_postgres_connection() -> bool:
    """True when a trivial query round-trips."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Database connection failed: %s", e)
        return False
    return True


def execute_raw_sql(sql: str, params: dict = None) -> list:
    """
    Execute raw SQL and return results as list of dicts.
    This is useful for joins and aggregate queries.
    """
    with get_db_session() as db:
        result = db.execute(text(sql), params or {})
        # Convert rows to dicts
        columns = result.keys()
        return [dict(zip(columns, row)) for row in result.fetchall()]


def as_datetime(value) -> Optional[datetime]:
    """
    Normalise a timestamp column value.
    Drivers without native timestamps (SQLite) hand back ISO strings.
    """
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
