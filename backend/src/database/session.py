"""
Database session management.

Provides the FastAPI dependency used by the access gates, plus a
transactional scope for scripts.

Usage:
    from src.database.session import get_db_session

    @router.get("/items")
    async def get_items(db: Session = Depends(get_db_session)):
        return db.query(Item).all()

    from src.database.session import session_scope

    with session_scope() as db:
        ensure_catalog(db)
"""

import os
import logging
from contextlib import contextmanager
from typing import Generator, Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from fastapi import HTTPException, status

logger = logging.getLogger(__name__)

# Module-level engine singleton
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_database_url(database_url: Optional[str] = None) -> str:
    """
    Resolve and normalize the database URL.

    Handles the legacy postgres:// scheme by converting to postgresql://.

    Raises:
        ValueError: If neither an explicit URL nor DATABASE_URL is set
    """
    database_url = database_url or os.getenv("DATABASE_URL")
    if not database_url:
        raise ValueError("DATABASE_URL environment variable is not set")

    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    return database_url


def enable_sqlite_savepoints(engine: Engine) -> Engine:
    """
    Make SAVEPOINT (Session.begin_nested) work on pysqlite.

    pysqlite defers BEGIN until the first DML statement, so a SAVEPOINT
    issued earlier is not nested in any transaction. The driver's own
    transaction handling is turned off and BEGIN is emitted explicitly.
    """
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Get or create the database engine singleton.

    PostgreSQL gets a pooled engine with pre-ping; SQLite gets working savepoints.
    """
    global _engine
    if _engine is None:
        try:
            url = get_database_url(database_url)
        except ValueError as e:
            logger.error("Failed to create database engine", extra={"error": str(e)})
            raise

        if url.startswith("sqlite"):
            _engine = enable_sqlite_savepoints(create_engine(url))
        else:
            _engine = create_engine(
                url,
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,  # Verify connection health
                pool_recycle=1800,   # Recycle connections after 30 minutes
            )
        logger.info("Database engine created", extra={"dialect": _engine.dialect.name})
    return _engine


def get_session_factory(database_url: Optional[str] = None) -> sessionmaker:
    """Get or create the session factory singleton."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=get_engine(database_url)
        )
    return _SessionLocal


def reset_engine() -> None:
    """Dispose the engine singleton (for tests and scripts switching URLs)."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


async def get_db_session() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Creates a new session for each request and ensures proper cleanup.
    Raises HTTP 503 if database is not configured.
    """
    try:
        SessionLocal = get_session_factory()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not configured"
        )

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextmanager
def session_scope(database_url: Optional[str] = None) -> Iterator[Session]:
    """
    Transactional scope: commit on success, roll back on error.

    Raises:
        RuntimeError: If the database is not configured
    """
    try:
        SessionLocal = get_session_factory(database_url)
    except ValueError as e:
        raise RuntimeError(f"Database not configured: {e}")

    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
