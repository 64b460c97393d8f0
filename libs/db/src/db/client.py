"""SQLAlchemy engine and session helpers shared across the workspace.

Two ways in:

- ``make_engine(url)`` / ``session_factory(engine)`` for callers that own
  their engine (stores constructed with an explicit engine, tests).
- ``get_engine()`` / ``session_scope()`` for the process-wide engine bound to
  ``DATABASE_URL``.

Usage
-----
from db.client import session_scope

with session_scope() as s:
    s.execute(...)
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


@dataclass(slots=True)
class _Shared:
    url: str | None = None
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None


_shared = _Shared()


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.rstrip("/") == "sqlite:")


def make_engine(url: str) -> Engine:
    """Create an engine for ``url``.

    In-memory SQLite gets one connection shared by every session (and thread),
    otherwise each session would see its own empty database.
    """

    if _is_memory_sqlite(url):
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(url, pool_pre_ping=True)


def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False, class_=Session)


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the process-wide engine, creating it from ``DATABASE_URL`` on first use.

    Raises ``RuntimeError`` when no URL is available, or when a different URL
    is requested after the engine exists.
    """

    url = database_url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot initialize database client")
    if _shared.engine is None:
        _shared.engine = make_engine(url)
        _shared.sessions = session_factory(_shared.engine)
        _shared.url = url
    elif url != _shared.url:
        raise RuntimeError(
            "get_engine() already initialized with a different DATABASE_URL; "
            "call reset_engine() first"
        )
    return _shared.engine


def reset_engine() -> None:
    """Dispose the process-wide engine; the next ``get_engine`` starts fresh."""

    if _shared.engine is not None:
        _shared.engine.dispose()
    _shared.url = _shared.engine = _shared.sessions = None


@contextmanager
def session_scope(
    *,
    database_url: str | None = None,
    factory: sessionmaker[Session] | None = None,
) -> Iterator[Session]:
    """Yield a session that commits on success and rolls back on error.

    Sessions come from ``factory`` when given, else from the process-wide
    engine.
    """

    if factory is None:
        get_engine(database_url=database_url)
        assert _shared.sessions is not None  # bound by get_engine
        factory = _shared.sessions
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "get_engine",
    "make_engine",
    "reset_engine",
    "session_factory",
    "session_scope",
]
