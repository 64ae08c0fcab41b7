"""Database engine and sessions shared by the config store and the SQL writer."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from importlib import import_module
from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, close_all_sessions, sessionmaker

from ..utils.config import DatabasePoolSettings, GlobalSettings, get_settings

DEFAULT_DATABASE_URL = "sqlite:///./sift_sync.db"
SQLITE_BUSY_TIMEOUT_SECONDS = 30


class Base(DeclarativeBase):
    """Declarative base for data source, sync log and imported record tables."""


@dataclass
class _EngineState:
    engine: Engine | None = None
    session_factory: sessionmaker[Session] | None = None


_STATE = _EngineState()
_STATE_LOCK = threading.RLock()


def resolve_database_url(settings: GlobalSettings | None = None) -> str:
    settings = settings or get_settings()
    return settings.database_url or DEFAULT_DATABASE_URL


def engine_options(database_url: str, pool: DatabasePoolSettings) -> dict[str, Any]:
    """Keyword arguments for ``create_engine``.

    SQLite connections are shared across cleaning threads and wait on lease
    updates from other workers; server databases use the configured pool.
    """

    if database_url.startswith("sqlite"):
        return {
            "connect_args": {
                "check_same_thread": False,
                "timeout": SQLITE_BUSY_TIMEOUT_SECONDS,
            }
        }

    options: dict[str, Any] = {
        "pool_size": pool.pool_size,
        "max_overflow": pool.max_overflow,
        "pool_timeout": pool.timeout,
        "pool_pre_ping": pool.pre_ping,
    }
    if pool.recycle_seconds > 0:
        options["pool_recycle"] = pool.recycle_seconds
    return options


def get_engine() -> Engine:
    """Return the shared engine, creating the sync tables on first use."""

    with _STATE_LOCK:
        if _STATE.engine is None:
            settings = get_settings()
            database_url = resolve_database_url(settings)
            engine = create_engine(database_url, **engine_options(database_url, settings.database))
            import_module("sift_sync.models.records")
            Base.metadata.create_all(bind=engine)
            _STATE.engine = engine
        return _STATE.engine


def get_session_factory() -> sessionmaker[Session]:
    with _STATE_LOCK:
        if _STATE.session_factory is None:
            _STATE.session_factory = sessionmaker(
                bind=get_engine(), autoflush=False, expire_on_commit=False
            )
        return _STATE.session_factory


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """Commit on success and roll back on any error."""

    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def reset_engine() -> None:
    """Dispose the shared engine so the next use reads settings again."""

    with _STATE_LOCK:
        if _STATE.session_factory is not None:
            close_all_sessions()
        if _STATE.engine is not None:
            _STATE.engine.dispose()
        _STATE.engine = None
        _STATE.session_factory = None


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends without zone support."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
