"""Alembic environment for the ragbrain schema.

The URL always comes from `DATABASE_URL` (via settings); `alembic.ini` carries
no credentials. Online migrations use the application's engine builder so they
see the same SQLite pragmas as the API and worker.
"""

from __future__ import annotations

from logging.config import fileConfig
from typing import Any

import ragbrain.models  # noqa: F401 - registers every table on SQLModel.metadata
from alembic import context
from ragbrain.core.database import build_engine, is_sqlite, normalize_db_url
from ragbrain.core.settings import settings
from sqlalchemy import pool
from sqlmodel import SQLModel

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

DATABASE_URL = normalize_db_url(settings.database_url)
target_metadata = SQLModel.metadata


def _configure_options(url: str) -> dict[str, Any]:
    # SQLite cannot ALTER most constraints in place; batch mode recreates the table.
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": is_sqlite(url),
    }


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting."""
    context.configure(
        url=DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(DATABASE_URL),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = build_engine(DATABASE_URL, poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_options(DATABASE_URL))
        with context.begin_transaction():
            context.run_migrations()
    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
