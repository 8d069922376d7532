"""
models/split_bill_member.py — SplitBillMember table definition.

No business logic. No imports from services or routes.

  - split_bill_id is ON DELETE CASCADE: members are owned by their bill.
  - share_amount is the member's final share, already rounded up to the
    configured currency unit by split_allocator.round_share().
  - is_me marks the local user. Exactly one per bill in normal usage; this is
    not a hard constraint.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


class SplitBillMember(db.Model):
    __tablename__ = "split_bill_members"

    __table_args__ = (
        CheckConstraint("share_amount >= 0", name="ck_split_bill_members_share_nonnegative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    split_bill_id: Mapped[int] = mapped_column(
        ForeignKey("split_bills.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    share_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        default=Decimal("0"),
        server_default="0",
    )

    is_me: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="0",
    )

    # ── Relationships ──────────────────────────────────────────────────────

    split_bill: Mapped["SplitBill"] = relationship(  # noqa: F821
        "SplitBill",
        back_populates="members",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<SplitBillMember id={self.id} "
            f"split_bill_id={self.split_bill_id} "
            f"share_amount={self.share_amount} "
            f"is_me={self.is_me}>"
        )
