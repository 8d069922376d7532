"""
backend/migrations/env.py: Alembic environment.

Two entry points:
  - Programmatic (the normal path): schema_service.upgrade_schema() passes an
    open connection through config.attributes["connection"]. The migration
    runs inside the caller's transaction, so the whole upgrade commits or
    rolls back as one unit.
  - Command line: `alembic -c <ini> upgrade head` with no connection attribute.
    The URL is read from DATABASE_URL / the active config class.
"""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from backend.app.extensions import db
from backend.app.models import category, split_bill, split_bill_member, transaction  # noqa: F401
from backend.config import ActiveConfig

target_metadata = db.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url") or ActiveConfig.SQLALCHEMY_DATABASE_URI,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_with_connection(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=True,
        transactional_ddl=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    shared = config.attributes.get("connection")
    if shared is not None:
        _run_with_connection(shared)
        return

    section = config.get_section(config.config_ini_section, {})
    section.setdefault("sqlalchemy.url", ActiveConfig.SQLALCHEMY_DATABASE_URI)
    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        _run_with_connection(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
