"""
models/category.py — Category table definition.

No business logic. No imports from services or routes.

Key design points:
  - `name` is NOT unique. Duplicate names are allowed at the store level.
  - `budget_limit` uses Numeric(14, 2), never Float. Informational only.
  - Deleting a category deletes its transactions: ORM cascade plus
    ON DELETE CASCADE on transactions.category_id.
  - Derived figures (total spent, percentage of month) are NOT columns.
    They are computed by aggregation_service on demand.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


class Category(db.Model):
    __tablename__ = "categories"

    __table_args__ = (
        # Also enforced by the marshmallow schema; the schema is the primary gate.
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_categories_name_nonempty",
        ),
        CheckConstraint("budget_limit >= 0", name="ck_categories_budget_nonnegative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Opaque glyph reference, e.g. "emoji:🍔".
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)

    color: Mapped[str | None] = mapped_column(String(32), nullable=True)

    budget_limit: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        default=Decimal("0"),
        server_default="0",
    )

    # ── Relationships ──────────────────────────────────────────────────────

    # ON DELETE CASCADE: transactions are owned by their category.
    transactions: Mapped[list["Transaction"]] = relationship(  # noqa: F821
        "Transaction",
        back_populates="category",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Category id={self.id} name={self.name!r}>"
