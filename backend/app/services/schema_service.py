"""
services/schema_service.py — Store schema versioning.

The persisted schema version is the integer prefix of the Alembic revision
recorded in `alembic_version` (0 for a fresh store):

    0001_categories_and_transactions → 1
    0004_split_bills                 → 4

upgrade_schema() applies every pending revision in order on ONE connection
inside ONE transaction. Either every step and the version marker commit, or
nothing does. SQLite DDL is transactional here because extensions.py emits an
explicit BEGIN on every connection.

Layer rules:
  - No Flask imports. Receives an Engine or Connection.
  - Failures surface as AppError(MIGRATION_FAILED); callers at startup let it
    propagate so the app refuses to start on a half-migrated store.
"""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Connection, Engine

from backend.app.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"

SCHEMA_VERSION = 4


def _alembic_config(connection: Connection | None = None) -> Config:
    """Builds an in-memory Alembic config; no alembic.ini is needed."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    if connection is not None:
        cfg.attributes["connection"] = connection
    return cfg


def revision_to_version(revision: str | None) -> int:
    """Maps "0003_expand_default_categories" → 3 and None → 0."""
    if revision is None:
        return 0
    prefix = revision.split("_", 1)[0]
    try:
        return int(prefix)
    except ValueError:
        raise AppError(
            ErrorCode.MIGRATION_FAILED,
            f"Unrecognised schema revision {revision!r}.",
            500,
        ) from None


def head_version() -> int:
    """Returns the version the bundled revisions upgrade to."""
    script = ScriptDirectory.from_config(_alembic_config())
    return revision_to_version(script.get_current_head())


def current_schema_version(connection: Connection) -> int:
    """Reads the persisted version marker without modifying anything."""
    context = MigrationContext.configure(connection)
    return revision_to_version(context.get_current_revision())


def upgrade_schema(engine: Engine, target: str = "head") -> int:
    """
    Brings the store up to `target` (default: the latest revision).

    Args:
        engine: The SQLAlchemy engine of the store.
        target: Alembic revision id or "head". Tests use an intermediate id to
                build legacy stores.

    Returns:
        The schema version after the upgrade.

    Raises:
        AppError(MIGRATION_FAILED, 500) if any step fails. Nothing is
        committed in that case, including earlier steps of the same run.
    """
    try:
        with engine.begin() as connection:
            before = current_schema_version(connection)
            command.upgrade(_alembic_config(connection), target)
            after = current_schema_version(connection)
    except AppError:
        raise
    except Exception as exc:
        logger.exception("Schema upgrade to %s failed; store left unchanged.", target)
        raise AppError(
            ErrorCode.MIGRATION_FAILED,
            f"Schema upgrade to {target!r} failed: {exc}",
            500,
        ) from exc

    if after != before:
        logger.info("Schema upgraded from version %d to %d.", before, after)
    else:
        logger.debug("Schema already at version %d.", after)
    return after
