"""
Database persistence layer for key-value blobs.

This module provides an optional SQL-backed key-value table that can be
enabled by setting the DATABASE_URL environment variable. If DATABASE_URL is not
set, db_is_enabled() returns False and the application falls back to the JSON
file store (storage.store.JsonFileStore).

When DATABASE_URL is set:
- Every (session_id, key) pair is one row in the kv_entries table
- Values are stored as JSON text, exactly as the file store writes them

When DATABASE_URL is not set:
- db_is_enabled() returns False
- All DB operations are skipped
"""

import logging
from typing import List, Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.sql import func

from api.config import StorageConfig

logger = logging.getLogger(__name__)

Base = declarative_base()

# Database engine and session factory (only created when a URL is configured)
engine = None
SessionLocal = None


class KeyValueRow(Base):
    """Key-value table - one row per session and storage key."""
    __tablename__ = "kv_entries"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(255), nullable=False, index=True)
    key = Column(String(100), nullable=False)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("session_id", "key", name="uq_kv_session_key"),
    )


def configure_database(database_url: Optional[str]) -> None:
    """
    Create (or drop) the engine and session factory for a database URL.

    Passing None disables the database layer.

    Args:
        database_url: SQLAlchemy database URL, or None
    """
    global engine, SessionLocal

    if engine is not None:
        engine.dispose()
    engine = None
    SessionLocal = None

    if not database_url:
        return

    try:
        engine = create_engine(database_url, pool_pre_ping=True, echo=False)
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        logger.info("Database connection initialized (DATABASE_URL is set)")
    except Exception as e:
        logger.error(f"Failed to initialize database connection: {e}")
        engine = None
        SessionLocal = None


configure_database(StorageConfig.get_database_url())


def db_is_enabled() -> bool:
    """
    Check if database persistence is enabled.

    Returns:
        True if an engine has been configured, False otherwise
    """
    return engine is not None and SessionLocal is not None


def init_db() -> None:
    """
    Initialize database tables (create if they don't exist).

    Safe to call multiple times.

    Raises:
        Exception: If database connection fails or table creation fails
    """
    if not db_is_enabled():
        logger.debug("Database not enabled, skipping init_db()")
        return

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables initialized (or already exist)")
    except Exception as e:
        logger.error(f"Failed to initialize database tables: {e}")
        raise


def get_db_session():
    """
    Get a database session.

    Raises:
        RuntimeError: If database is not enabled
    """
    if not db_is_enabled():
        raise RuntimeError("Database is not enabled. Set DATABASE_URL environment variable.")

    return SessionLocal()


# ============================================================================
# Key-Value Repository Functions
# ============================================================================

def db_get_value(session_id: str, key: str) -> Optional[str]:
    """
    Get the raw JSON text stored for a session and key.

    Returns:
        Stored text, or None if the key has never been written
    """
    if not db_is_enabled():
        return None

    db = get_db_session()
    try:
        row = (
            db.query(KeyValueRow)
            .filter(KeyValueRow.session_id == session_id, KeyValueRow.key == key)
            .first()
        )
        return row.value if row else None
    finally:
        db.close()


def db_set_value(session_id: str, key: str, value: str) -> None:
    """
    Insert or replace the raw JSON text for a session and key.

    Raises:
        Exception: If the write fails (after rolling back)
    """
    if not db_is_enabled():
        return

    db = get_db_session()
    try:
        row = (
            db.query(KeyValueRow)
            .filter(KeyValueRow.session_id == session_id, KeyValueRow.key == key)
            .first()
        )
        if row is None:
            db.add(KeyValueRow(session_id=session_id, key=key, value=value))
        else:
            row.value = value
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error writing key {key!r} to database: {e}")
        raise
    finally:
        db.close()


def db_delete_value(session_id: str, key: str) -> None:
    """Delete a key for a session. Missing keys are ignored."""
    if not db_is_enabled():
        return

    db = get_db_session()
    try:
        db.query(KeyValueRow).filter(
            KeyValueRow.session_id == session_id, KeyValueRow.key == key
        ).delete()
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error deleting key {key!r} from database: {e}")
        raise
    finally:
        db.close()


def db_list_keys(session_id: str) -> List[str]:
    """List the keys stored for a session, sorted alphabetically."""
    if not db_is_enabled():
        return []

    db = get_db_session()
    try:
        rows = db.query(KeyValueRow.key).filter(KeyValueRow.session_id == session_id).all()
        return sorted(row[0] for row in rows)
    finally:
        db.close()


def get_sessions_count() -> int:
    """
    Get the number of distinct sessions with stored data.

    Returns:
        Number of sessions (0 if DB is not enabled or on error)
    """
    if not db_is_enabled():
        return 0

    db = get_db_session()
    try:
        return db.query(KeyValueRow.session_id).distinct().count()
    except Exception as e:
        logger.debug(f"Error counting sessions: {e}")
        return 0
    finally:
        db.close()
