"""Reserved slot for a future data backfill.

Revision: 0002_reserved_backfill
Schema version: 2

Intentionally empty. Stores already at version 2 must keep working, so the
slot stays in the chain; new work goes into a new revision.
"""

from __future__ import annotations

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "0002_reserved_backfill"
down_revision: str | None = "0001_categories_and_transactions"
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:
    pass


def downgrade() -> None:
    pass
