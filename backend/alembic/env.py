"""Alembic environment for the clientboard schema."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from logging.config import fileConfig
from pathlib import Path
import sys

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config
from sqlmodel import SQLModel

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from clientboard.core.config import settings  # noqa: E402
from clientboard.db import base  # noqa: F401,E402  # register table metadata

config = context.config

if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name)

# run_migrations() sets the URL itself; the CLI falls back to settings
if not config.attributes.get("url_configured"):
    config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

target_metadata = SQLModel.metadata


def _next_revision_id(context, revision, directives):
    """Name new revisions YYYYMMDD_NNNN with a repo-wide sequence number."""
    if not directives:
        return
    versions_dir = Path(__file__).parent / "versions"
    sequence = 0
    for path in versions_dir.glob("*.py"):
        stem = path.stem
        if len(stem) >= 13 and stem[:8].isdigit() and stem[8] == "_" and stem[9:13].isdigit():
            sequence = max(sequence, int(stem[9:13]))
    today = datetime.now(timezone.utc).strftime("%Y%m%d")
    directives[0].rev_id = f"{today}_{sequence + 1:04d}"


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=True,
        process_revision_directives=_next_revision_id,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    # Postgres enum types must be committed before later revisions use them
    _configure(connection=connection, transaction_per_migration=True)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section) or {},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
