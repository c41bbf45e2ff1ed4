from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine

from folio import models  # noqa: F401  (registers tables on Base.metadata)
from folio.db import Base

config = context.config

if config.config_file_name:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata


def get_admin_url() -> str:
    """Get the database URL for migrations (requires DDL privileges)."""
    url = config.get_main_option("sqlalchemy.url") or os.getenv("DB_ADMIN_URL") or os.getenv("DATABASE_URL")
    if url:
        return url

    raise RuntimeError("sqlalchemy.url, DB_ADMIN_URL or DATABASE_URL must be set.")


def run_migrations_offline() -> None:
    url = get_admin_url()

    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(get_admin_url(), pool_pre_ping=True)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
