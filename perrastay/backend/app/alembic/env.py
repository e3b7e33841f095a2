# backend/app/alembic/env.py
from __future__ import annotations

from alembic import context

from app.config import settings
from app.db import Base, make_engine
from app import models  # noqa: F401  registers tables on Base.metadata

config = context.config
target_metadata = Base.metadata


def _database_url() -> str:
    # -x database_url=... wins, then alembic.ini, then settings
    x = context.get_x_argument(as_dictionary=True)
    return x.get("database_url") or config.get_main_option("sqlalchemy.url") or settings.database_url


def run_migrations_offline() -> None:
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = make_engine(_database_url())
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()
    engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
