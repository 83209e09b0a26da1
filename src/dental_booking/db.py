"""Database setup and session management for the dental booking system."""

import os
import shutil
import warnings
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import load_settings
from .exceptions import DatabaseConnectionError


class Base(DeclarativeBase):
    """Base class for all ORM models."""


_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _is_writable(path: Path) -> bool:
    return os.access(path if path.exists() else path.parent, os.W_OK)


def _relocate_sqlite_file(db_path: Path) -> Path:
    """Move the database under ~/.dental_booking, carrying over existing data if readable."""
    fallback = Path.home() / ".dental_booking" / db_path.name
    fallback.parent.mkdir(parents=True, exist_ok=True)
    if db_path.exists() and not fallback.exists():
        try:
            shutil.copy2(db_path, fallback)
        except OSError:
            pass  # start empty
    warnings.warn(
        f"Database path {db_path} not writable; using fallback {fallback}",
        RuntimeWarning,
        stacklevel=3,
    )
    return fallback


def _ensure_writable_sqlite_url(url: str) -> str:
    """Point a file-backed SQLite URL at a writable location; other URLs pass through."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite" or parsed.database in (None, "", ":memory:"):
        return url

    db_path = Path(parsed.database)
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass  # reported as not writable below
    if _is_writable(db_path):
        return url
    return parsed.set(database=str(_relocate_sqlite_file(db_path))).render_as_string(
        hide_password=False
    )


def create_engine_for(database_url: str, **engine_kwargs) -> Engine:
    """Create an engine and verify the connection."""
    db_url = _ensure_writable_sqlite_url(database_url)
    try:
        engine = create_engine(db_url, echo=False, **engine_kwargs)
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return engine
    except SQLAlchemyError as exc:
        raise DatabaseConnectionError("Failed to connect to the database.") from exc


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def configure(database_url: str | None = None) -> Engine:
    """Bind the process-wide engine and session factory; called by entry points."""
    global _engine, _session_factory
    url = database_url or load_settings().database_url
    _engine = create_engine_for(url)
    _session_factory = make_session_factory(_engine)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        configure()
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        configure()
    return _session_factory


def init_db(engine: Engine | None = None) -> None:
    """Create database tables."""
    # Register the mapped classes on Base.metadata
    from . import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine or get_engine())
    except SQLAlchemyError as exc:
        raise DatabaseConnectionError("Failed to initialize database schema.") from exc


def check_health(engine: Engine | None = None) -> dict[str, str]:
    try:
        with (engine or get_engine()).connect() as connection:
            connection.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise DatabaseConnectionError("Database is not reachable.") from exc
    return {"status": "OK", "message": "Database is reachable"}


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """Commit what the block did, or roll it back if the block raised."""
    with (factory or get_session_factory())() as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        session.commit()
