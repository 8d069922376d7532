"""Split bills and their members.

Revision: 0004_split_bills
Schema version: 4

ON DELETE policies:
  split_bill_members.split_bill_id → CASCADE (members are owned by their bill)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "0004_split_bills"
down_revision: str | None = "0003_expand_default_categories"
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:
    inspector = sa.inspect(op.get_bind())

    if not inspector.has_table("split_bills"):
        op.create_table(
            "split_bills",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("date", sa.DateTime(timezone=False), nullable=False),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column(
                "total_amount",
                sa.Numeric(14, 2),
                nullable=False,
                server_default="0",
            ),
            sa.Column("image_uri", sa.String(1024), nullable=True),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=False),
                nullable=False,
                server_default=sa.text("CURRENT_TIMESTAMP"),
            ),
            sa.PrimaryKeyConstraint("id", name="pk_split_bills"),
            sa.CheckConstraint(
                "total_amount >= 0",
                name="ck_split_bills_total_nonnegative",
            ),
            sa.CheckConstraint(
                "LENGTH(TRIM(name)) > 0",
                name="ck_split_bills_name_nonempty",
            ),
        )

    if not inspector.has_table("split_bill_members"):
        op.create_table(
            "split_bill_members",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column(
                "split_bill_id",
                sa.Integer(),
                sa.ForeignKey(
                    "split_bills.id",
                    ondelete="CASCADE",
                    name="fk_split_bill_members_bill",
                ),
                nullable=False,
            ),
            sa.Column("name", sa.String(100), nullable=False),
            sa.Column(
                "share_amount",
                sa.Numeric(14, 2),
                nullable=False,
                server_default="0",
            ),
            sa.Column(
                "is_me",
                sa.Boolean(),
                nullable=False,
                server_default=sa.text("0"),
            ),
            sa.PrimaryKeyConstraint("id", name="pk_split_bill_members"),
            sa.CheckConstraint(
                "share_amount >= 0",
                name="ck_split_bill_members_share_nonnegative",
            ),
        )
        op.create_index(
            "ix_split_bill_members_split_bill_id",
            "split_bill_members",
            ["split_bill_id"],
        )


def downgrade() -> None:
    op.drop_index("ix_split_bill_members_split_bill_id", table_name="split_bill_members")
    op.drop_table("split_bill_members")
    op.drop_table("split_bills")
