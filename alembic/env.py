# alembic/env.py
from __future__ import annotations

import os
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# models are loaded lazily (init_models) so string relationships resolve
from app.db.base import Base, init_models  # noqa: E402
from app.db.session import normalize_sync_dsn  # noqa: E402


def include_object(obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any) -> bool:
    """
    Objects that exist in the DB but not in the models are left alone
    (no autogenerated drops).
    """
    if reflected and compare_to is None:
        return False
    return True


def get_url() -> str:
    """
    DATABASE_URL (the same DSN the app uses, async driver allowed) first,
    then sqlalchemy.url from alembic.ini. Always returned as a sync DSN.
    """
    url = os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url")
    if not url:
        raise RuntimeError("Alembic: set DATABASE_URL or sqlalchemy.url in alembic.ini")
    return normalize_sync_dsn(url)


def run_migrations_offline() -> None:
    """Offline: emit SQL only."""
    init_models()
    context.configure(
        url=get_url(),
        target_metadata=Base.metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=False,
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    init_models()
    url = get_url()
    engine = create_engine(url, poolclass=NullPool, future=True)

    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=Base.metadata,
            compare_type=True,
            compare_server_default=False,
            include_object=include_object,
            render_as_batch=url.startswith("sqlite"),
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
