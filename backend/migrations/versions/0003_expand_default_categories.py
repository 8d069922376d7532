"""Expand the legacy 5-category default set to the current 13.

Revision: 0003_expand_default_categories
Schema version: 3

Stores created before the category expansion shipped with exactly five
defaults (Makan, Transport, Belanja, Hiburan, Lainnya). This step:
  1. inserts the eight categories those stores never received,
  2. renames "Makan" to "Makanan & Minuman" with the burger icon,
  3. sets the "Hiburan" icon to the clapperboard.

Guard: runs only when the category count is EXACTLY 5. Any other count means
the set was seeded at version 1 with all 13, or the user has customised it,
and the step is a no-op.

Known risk: a user who independently reaches exactly five categories before
upgrading from version 2 triggers the repair. Accepted as-is; see DESIGN.md.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "0003_expand_default_categories"
down_revision: str | None = "0002_reserved_backfill"
branch_labels: tuple | None = None
depends_on: tuple | None = None


LEGACY_DEFAULT_COUNT = 5

MISSING_CATEGORIES: list[tuple[str, str]] = [
    ("Kesehatan",        "emoji:💊"),
    ("Pendidikan",       "emoji:📚"),
    ("Tagihan",          "emoji:📄"),
    ("Pulsa & Internet", "emoji:📱"),
    ("Olahraga",         "emoji:⚽"),
    ("Kecantikan",       "emoji:💄"),
    ("Hewan Peliharaan", "emoji:🐶"),
    ("Donasi",           "emoji:🎁"),
]
DEFAULT_COLOR = "#000000"


def upgrade() -> None:
    bind = op.get_bind()

    count = bind.execute(sa.text("SELECT COUNT(*) FROM categories")).scalar_one()
    if count != LEGACY_DEFAULT_COUNT:
        return

    categories = sa.table(
        "categories",
        sa.column("name", sa.String),
        sa.column("icon", sa.String),
        sa.column("color", sa.String),
    )
    op.bulk_insert(
        categories,
        [
            {"name": name, "icon": icon, "color": DEFAULT_COLOR}
            for name, icon in MISSING_CATEGORIES
        ],
    )

    bind.execute(
        sa.text(
            "UPDATE categories SET name = :new_name, icon = :icon "
            "WHERE name = :old_name"
        ),
        {"new_name": "Makanan & Minuman", "icon": "emoji:🍔", "old_name": "Makan"},
    )
    bind.execute(
        sa.text("UPDATE categories SET icon = :icon WHERE name = :name"),
        {"icon": "emoji:🎬", "name": "Hiburan"},
    )


def downgrade() -> None:
    # Data repair; there is no meaningful inverse.
    pass
