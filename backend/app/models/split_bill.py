"""
models/split_bill.py — SplitBill table definition.

No business logic. No imports from services or routes.

A SplitBill and its SplitBillMember rows are one aggregate: they are created
together inside a single savepoint (split_bill_service.save_split_bill) and
deleted together (ON DELETE CASCADE on split_bill_members.split_bill_id).

`total_amount` is the sum of ALL line items, assigned or not. It can exceed
the sum of member shares when some items were left unassigned.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


class SplitBill(db.Model):
    __tablename__ = "split_bills"

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_split_bills_total_nonnegative"),
        CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_split_bills_name_nonempty"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        default=Decimal("0"),
        server_default="0",
    )

    image_uri: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    members: Mapped[list["SplitBillMember"]] = relationship(  # noqa: F821
        "SplitBillMember",
        back_populates="split_bill",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SplitBillMember.id",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<SplitBill id={self.id} "
            f"name={self.name!r} "
            f"total_amount={self.total_amount}>"
        )
