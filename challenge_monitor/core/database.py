"""
SQLAlchemy engine, sessions and the schema of the daily log.

Only the SQL event store touches this module. The in-memory store is the
default, so nothing here runs unless DATABASE_URL is configured (or a test
initializes an engine explicitly).
"""
import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    text,
    true,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.sql import func

from challenge_monitor.core.config import settings

logger = logging.getLogger("challenge_monitor")

metadata = MetaData()

# Pool sizing for server databases (sqlite uses a single static connection)
POOL_SIZE = 5
MAX_OVERFLOW = 10
POOL_TIMEOUT = 30
POOL_RECYCLE = 1800

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


challenges = Table(
    "challenges",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False),
    Column("description", Text, nullable=True),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date, nullable=False),
    Column("duration_days", Integer, nullable=False),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("days_logged", Integer, nullable=False, server_default="0"),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column("deleted_at", DateTime(timezone=True), nullable=True),
    # Auto-skip candidates: active challenges covering a date
    Index("idx_challenges_active_range", "is_active", "start_date", "end_date"),
)

# Append-only: rows are inserted, never updated or deleted
daily_log_events = Table(
    "daily_log_events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("challenge_id", Integer, ForeignKey("challenges.id"), nullable=False),
    Column("log_date", Date, nullable=False),
    Column("status", String(32), nullable=False),
    Column("notes", Text, nullable=True),
    Column("appended_at", DateTime(timezone=True), nullable=False),
    Index("idx_daily_log_events_challenge_date", "challenge_id", "log_date"),
    Index("idx_daily_log_events_log_date", "log_date"),
)


def get_database_url() -> Optional[str]:
    """TEST_DATABASE_URL wins, then the DATABASE_URL env var, then settings."""
    return os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL") or settings.DATABASE_URL


def init_engine(database_url: Optional[str] = None) -> Engine:
    global _engine, _SessionLocal

    url = database_url or get_database_url()
    if not url:
        raise ValueError("DATABASE_URL is not configured. Set it in the environment or .env file.")

    if url.startswith("sqlite"):
        # One shared connection, otherwise every session would see its own empty :memory: db
        _engine = create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        _engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            pool_pre_ping=True,
        )

    _SessionLocal = sessionmaker(bind=_engine, autoflush=False)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        init_engine()
    return _engine


def dispose_engine() -> None:
    """Drop the cached engine so the next call re-initializes. Used by tests."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


@contextmanager
def get_db_session() -> Iterator[Session]:
    """Session scope: commit on success, roll back and re-raise on error."""
    if _SessionLocal is None:
        init_engine()
    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables() -> None:
    """Idempotent: existing tables are left alone."""
    metadata.create_all(bind=get_engine())


def check_connection() -> bool:
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False
