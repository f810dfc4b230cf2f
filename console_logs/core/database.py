"""Database configuration and session management."""

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from console_logs.core.config import settings
from console_logs.core.errors import StorageError

logger = logging.getLogger(__name__)

_engine = None
_session_maker = None

LOG_SEARCH_TABLE = "log_search"
SESSION_SEARCH_TABLE = "session_search"

# Derived full-text projections, keyed by the primary table's integer id.
FTS_TABLES = {
    LOG_SEARCH_TABLE: (
        "CREATE VIRTUAL TABLE IF NOT EXISTS log_search "
        "USING fts5(message, raw_output, process_name)"
    ),
    SESSION_SEARCH_TABLE: (
        "CREATE VIRTUAL TABLE IF NOT EXISTS session_search "
        "USING fts5(title, description, tags, project)"
    ),
}


def _configure_sqlite(engine) -> None:
    """Apply connection pragmas and take over transaction control from pysqlite.

    pysqlite's implicit BEGIN handling breaks SAVEPOINT, so autocommit is
    switched off at the driver level and BEGIN is emitted explicitly. Sessions
    read before they write, so the write lock is taken up front: a deferred
    transaction upgraded after another writer commits fails without waiting
    on the busy timeout.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode = WAL")
        cursor.execute("PRAGMA synchronous = NORMAL")
        cursor.execute("PRAGMA cache_size = 1000")
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_engine():
    """Get or create the engine."""
    global _engine, _session_maker

    if _engine is None:
        settings.database_path.parent.mkdir(parents=True, exist_ok=True)

        pool_kwargs = {}
        if settings.env == "test":
            pool_kwargs["poolclass"] = NullPool

        _engine = create_engine(
            settings.database_url,
            echo=False,
            connect_args={
                "timeout": settings.busy_timeout,
                "check_same_thread": False,
            },
            **pool_kwargs,
        )
        _configure_sqlite(_engine)

        _session_maker = sessionmaker(
            bind=_engine,
            class_=Session,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    return _engine


@contextmanager
def get_session():
    """Get database session.

    Any SQLAlchemy error escaping the block rolls the transaction back and is
    re-raised as StorageError.
    """
    get_engine()  # Ensure engine is initialized

    with _session_maker() as session:
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(f"Storage operation failed: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def create_tables() -> bool:
    """Create all database tables. Safe to call on an initialized store.

    Returns:
        True if the full-text search tables are available
    """
    from console_logs import models  # noqa: F401  registers table metadata

    engine = get_engine()
    try:
        SQLModel.metadata.create_all(engine)
    except SQLAlchemyError as e:
        raise StorageError(f"Failed to initialize schema: {e}") from e

    try:
        with engine.begin() as conn:
            for ddl in FTS_TABLES.values():
                conn.execute(text(ddl))
    except OperationalError as e:
        logger.warning(f"Full-text search unavailable, running degraded: {e}")
        return False
    return True


def clean_database() -> None:
    """Clean all tables before each test."""
    with get_session() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            session.execute(table.delete())
        for name in FTS_TABLES:
            session.execute(text(f"DELETE FROM {name}"))


def close_db() -> None:
    """Close database connections."""
    global _engine, _session_maker

    if _engine:
        _engine.dispose()
        _engine = None
        _session_maker = None
