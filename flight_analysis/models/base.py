"""
SQLAlchemy base configuration and engine/session factories.

Uses SQLAlchemy 2.0 style with type hints and declarative base.
Engines are created per store rather than at import time, so tests and
the application can each point at their own canonical database.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _set_sqlite_pragma(dbapi_connection, connection_record):
    """
    Configure SQLite for the import/copy workload.

    WAL mode lets the presentation layer keep reading while an import
    transaction is writing.
    """
    cursor = dbapi_connection.cursor()
    # Write-Ahead Logging for concurrent access
    cursor.execute('PRAGMA journal_mode=WAL')
    # Synchronous=NORMAL balances safety and speed
    cursor.execute('PRAGMA synchronous=NORMAL')
    # Larger cache for bulk telemetry copies
    cursor.execute('PRAGMA cache_size=-64000')  # 64MB
    # Enable foreign keys
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the canonical database.

    For file-backed SQLite the parent directory is created first and the
    PRAGMA listener is attached.
    """
    engine_kwargs = {
        'echo': echo,  # Log SQL in debug mode
    }

    is_sqlite = url.startswith('sqlite')
    if is_sqlite:
        engine_kwargs['connect_args'] = {'check_same_thread': False}

    engine = create_engine(url, **engine_kwargs)

    if is_sqlite:
        database = engine.url.database
        if database and database != ':memory:':
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        event.listen(engine, 'connect', _set_sqlite_pragma)

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to one engine."""
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,  # Avoid lazy loading issues
    )


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with session_scope(store.Session) as session:
            session.execute(...)

    Commits on success, rolls back on any exception, always closes.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
