"""
models/transaction.py — Transaction (expense) table definition.

No business logic. No imports from services or routes.

Key design points:
  - `amount` uses Numeric(14, 2), never Float. CHECK(amount > 0) backs up the
    schema and service checks.
  - category_id is ON DELETE CASCADE and NOT NULL: a transaction always
    references a live category.
  - `date` is a naive datetime. Aware input is converted to UTC before it gets
    here (transaction_schema); aggregation uses the stored value as-is.
  - Rows are immutable once created; the only mutation is deletion.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


class Transaction(db.Model):
    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),

        # Recent list and monthly windows both scan by date.
        Index("idx_transactions_date", "date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
    )

    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
    )

    note: Mapped[str] = mapped_column(String(255), nullable=False)

    # Reference to the source receipt image, if any.
    image_uri: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    category: Mapped["Category"] = relationship(  # noqa: F821
        "Category",
        back_populates="transactions",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Transaction id={self.id} "
            f"category_id={self.category_id} "
            f"amount={self.amount} "
            f"date={self.date.isoformat() if self.date else None}>"
        )
