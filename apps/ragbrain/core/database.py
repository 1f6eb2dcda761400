"""Engine and session plumbing shared by the API, the worker and migrations.

SQLite is the default store for a single-user install; Postgres (psycopg 3) is
used when `DATABASE_URL` points at it. Every connection gets the same pragmas so
the message foreign key and concurrent worker writes behave alike everywhere.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import Session

from ragbrain.core.exceptions import ConfigurationError
from ragbrain.core.settings import settings

SQLITE_BUSY_TIMEOUT_MS = 5000


def normalize_db_url(url: str) -> str:
    """Route bare Postgres URLs to the psycopg 3 driver; other schemes pass through."""
    scheme, sep, rest = url.partition("://")
    if not sep:
        raise ConfigurationError("DATABASE_URL must include a scheme, e.g. sqlite:///ragbrain.db")
    if scheme in ("postgres", "postgresql"):
        return f"postgresql+psycopg://{rest}"
    return url


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def _install_sqlite_pragmas(engine: Engine, *, file_backed: bool) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if file_backed:
            # API and worker processes write the same file.
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
        cursor.close()


def build_engine(url: str, **engine_kwargs: Any) -> Engine:
    """Create an engine for `url` with ragbrain's connection settings.

    Extra keyword arguments go to `create_engine` (tests pass `poolclass`).
    """
    url = normalize_db_url(url)
    if is_sqlite(url):
        connect_args = engine_kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        engine = create_engine(url, connect_args=connect_args, **engine_kwargs)
        _install_sqlite_pragmas(engine, file_backed=not _is_memory_sqlite(url))
        return engine

    try:
        return create_engine(url, pool_pre_ping=True, **engine_kwargs)
    except ModuleNotFoundError as exc:  # pragma: no cover - runtime dependency hint
        raise ConfigurationError(
            'PostgreSQL driver missing. Run: pip install "psycopg[binary]" '
            "or use SQLite locally: DATABASE_URL=sqlite:///apps/ragbrain/ragbrain.db",
        ) from exc


DB_URL = normalize_db_url(settings.database_url)
engine = build_engine(DB_URL)
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
    class_=Session,
)


def get_session() -> Generator[Session, None, None]:
    """Yield a session that is closed when the request finishes."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


__all__ = [
    "DB_URL",
    "SessionLocal",
    "build_engine",
    "engine",
    "get_session",
    "is_sqlite",
    "normalize_db_url",
]
