"""Categories and transactions, seeded with the default category set.

Revision: 0001_categories_and_transactions
Schema version: 1

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Idempotence:
  schema_service only knows the current version, never "re-run step N", so
  every step must be safe on a store that already has its effects. Tables are
  created only when missing and defaults are seeded only into an empty
  categories table.

ON DELETE policies:
  transactions.category_id → CASCADE (deleting a category removes its expenses)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "0001_categories_and_transactions"
down_revision: str | None = None      # first migration, no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


# Frozen copy of the defaults as they shipped with schema version 1.
DEFAULT_CATEGORIES: list[tuple[str, str]] = [
    ("Makanan & Minuman", "emoji:🍔"),
    ("Transport",         "emoji:🚗"),
    ("Belanja",           "emoji:🛒"),
    ("Hiburan",           "emoji:🎬"),
    ("Kesehatan",         "emoji:💊"),
    ("Pendidikan",        "emoji:📚"),
    ("Tagihan",           "emoji:📄"),
    ("Pulsa & Internet",  "emoji:📱"),
    ("Olahraga",          "emoji:⚽"),
    ("Kecantikan",        "emoji:💄"),
    ("Hewan Peliharaan",  "emoji:🐶"),
    ("Donasi",            "emoji:🎁"),
    ("Lainnya",           "emoji:✨"),
]
DEFAULT_COLOR = "#000000"


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    # ── Step 1: categories ─────────────────────────────────────────────────
    if not inspector.has_table("categories"):
        op.create_table(
            "categories",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(100), nullable=False),
            sa.Column("icon", sa.String(64), nullable=True),
            sa.Column("color", sa.String(32), nullable=True),
            sa.Column(
                "budget_limit",
                sa.Numeric(14, 2),
                nullable=False,
                server_default="0",
            ),
            sa.PrimaryKeyConstraint("id", name="pk_categories"),
            sa.CheckConstraint(
                "LENGTH(TRIM(name)) > 0",
                name="ck_categories_name_nonempty",
            ),
            sa.CheckConstraint(
                "budget_limit >= 0",
                name="ck_categories_budget_nonnegative",
            ),
        )

    # ── Step 2: transactions ───────────────────────────────────────────────
    if not inspector.has_table("transactions"):
        op.create_table(
            "transactions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column(
                "category_id",
                sa.Integer(),
                sa.ForeignKey(
                    "categories.id",
                    ondelete="CASCADE",
                    name="fk_transactions_category",
                ),
                nullable=False,
            ),
            sa.Column("amount", sa.Numeric(14, 2), nullable=False),
            sa.Column("date", sa.DateTime(timezone=False), nullable=False),
            sa.Column("note", sa.String(255), nullable=False),
            sa.Column("image_uri", sa.String(1024), nullable=True),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=False),
                nullable=False,
                server_default=sa.text("CURRENT_TIMESTAMP"),
            ),
            sa.PrimaryKeyConstraint("id", name="pk_transactions"),
            sa.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        )
        op.create_index("ix_transactions_category_id", "transactions", ["category_id"])
        op.create_index("idx_transactions_date", "transactions", ["date"])

    # ── Step 3: seed defaults exactly once ─────────────────────────────────
    existing = bind.execute(sa.text("SELECT COUNT(*) FROM categories")).scalar_one()
    if existing == 0:
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
                for name, icon in DEFAULT_CATEGORIES
            ],
        )


def downgrade() -> None:
    op.drop_index("idx_transactions_date", table_name="transactions")
    op.drop_index("ix_transactions_category_id", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("categories")
