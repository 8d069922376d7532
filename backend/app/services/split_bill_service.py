"""
services/split_bill_service.py — Persisting split bills.

Atomicity:
  save_split_bill() writes the bill, all members and (optionally) the
  "my share" expense inside ONE session.begin_nested() savepoint. If any
  insert fails, the savepoint is rolled back and nothing of the bill remains
  in the session. A partially written bill is never visible.

"My share" rules:
  - The member flagged is_me supplies the amount (their rounded share).
  - Share must be > 0; otherwise a NO_SHARE_FOR_ME warning is returned and no
    expense is written.
  - Category: the explicit category_id if given, else the first category whose
    name contains one of the configured hints ("makan", "food"), else the
    first category. No categories → NO_CATEGORY warning.
  - Note: "Split Bill: <bill name>". Date: now.

Layer rules:
  - No Flask imports. Configuration arrives as arguments.
  - Commits are the route's responsibility; only flush here.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from backend.app.errors import AppError, ErrorCode, WarningCode, warning
from backend.app.models.category import Category
from backend.app.models.split_bill import SplitBill
from backend.app.models.split_bill_member import SplitBillMember
from backend.app.services import split_allocator, transaction_service

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_HINTS = ("makan", "food")
DEFAULT_NOTE_PREFIX = "Split Bill"


def _pick_share_category(
        categories: list[Category],
        hints: tuple[str, ...],
) -> Category | None:
    for category in categories:
        lowered = category.name.lower()
        if any(hint in lowered for hint in hints):
            return category
    return categories[0] if categories else None


def build_draft(
        data: dict,
        rounding_unit: Decimal = Decimal("1"),
        default_category: str = split_allocator.DEFAULT_ITEM_CATEGORY,
        me_name: str = split_allocator.DEFAULT_ME_NAME,
) -> split_allocator.SplitBillDraft:
    """
    Turns a validated split-bill payload into a draft at the SUMMARY step.

    Items without a category get `default_category`; an is_me member sent
    without a name gets `me_name`.
    """
    items = [
        split_allocator.BillLineItem(
            name=item["name"].strip(),
            amount=item["amount"],
            category=item.get("category") or default_category,
            assigned_to=set(item["assigned_to"]),
        )
        for item in data["items"]
    ]
    members = [
        split_allocator.BillMember(
            key=member["key"],
            name=(member.get("name") or me_name).strip(),
            is_me=member["is_me"],
        )
        for member in data["members"]
    ]
    return split_allocator.SplitBillDraft.build(
        name=data.get("name", ""),
        items=items,
        members=members,
        image_uri=data.get("image_uri"),
        rounding_unit=rounding_unit,
    )


def unassigned_warning(summary: split_allocator.DraftSummary) -> list[dict]:
    if not summary.unassigned:
        return []
    return [warning(
        WarningCode.UNASSIGNED_ITEMS,
        f"{len(summary.unassigned)} item(s) are not assigned to anyone; "
        f"their cost is in the total but in nobody's share.",
        items=[item.name for item in summary.unassigned],
    )]


def apply_my_share_to_expenses(
        session: Session,
        bill: SplitBill,
        category_id: int | None = None,
        category_hints: tuple[str, ...] = DEFAULT_CATEGORY_HINTS,
        note_prefix: str = DEFAULT_NOTE_PREFIX,
        now: datetime | None = None,
):
    """
    Records the local user's share of `bill` as an ordinary expense.

    Returns:
        (Transaction | None, warnings list)
    """
    me = next((m for m in bill.members if m.is_me), None)
    if me is None:
        return None, [warning(
            WarningCode.NO_ME_MEMBER,
            "The bill has no member marked as you; nothing was added to expenses.",
        )]

    if me.share_amount <= Decimal("0"):
        return None, [warning(
            WarningCode.NO_SHARE_FOR_ME,
            "No items are assigned to you; nothing was added to expenses.",
        )]

    if category_id is None:
        categories = list(
            session.execute(select(Category).order_by(Category.id.asc())).scalars().all()
        )
        category = _pick_share_category(categories, category_hints)
        if category is None:
            return None, [warning(
                WarningCode.NO_CATEGORY,
                "No categories exist; nothing was added to expenses.",
            )]
        category_id = category.id

    transaction = transaction_service.create_transaction(
        session,
        category_id=category_id,
        amount=me.share_amount,
        date=now or datetime.now(),
        note=f"{note_prefix}: {bill.name}",
        image_uri=bill.image_uri,
    )
    return transaction, []


def save_split_bill(
        session: Session,
        draft: split_allocator.SplitBillDraft,
        add_my_share: bool = False,
        category_id: int | None = None,
        category_hints: tuple[str, ...] = DEFAULT_CATEGORY_HINTS,
        note_prefix: str = DEFAULT_NOTE_PREFIX,
        now: datetime | None = None,
):
    """
    Persists a draft that has reached the SUMMARY step.

    Returns:
        (SplitBill, warnings list). The draft is marked SAVED only after the
        savepoint has been released.

    Raises:
        AppError(INVALID_DRAFT_STATE, 409) if the draft is not at SUMMARY.
        AppError(NO_ITEMS / NO_MEMBERS, 422) for an empty draft.
        AppError(CATEGORY_NOT_FOUND, 404) if category_id is given but unknown;
        the bill is rolled back with it.
    """
    draft.validate_complete()
    summary = draft.summary()
    now = now or datetime.now()

    warnings = unassigned_warning(summary)

    with session.begin_nested():
        bill = SplitBill(
            name=summary.name,
            date=now,
            total_amount=summary.total,
            image_uri=draft.image_uri,
        )
        bill.members = [
            SplitBillMember(
                name=member.name,
                share_amount=summary.shares[member.key],
                is_me=member.is_me,
            )
            for member in draft.members
        ]
        session.add(bill)
        session.flush()

        if add_my_share:
            _, share_warnings = apply_my_share_to_expenses(
                session,
                bill,
                category_id=category_id,
                category_hints=category_hints,
                note_prefix=note_prefix,
                now=now,
            )
            warnings.extend(share_warnings)

    draft.mark_saved()
    logger.info(
        "Saved split bill %s (%r): total=%s members=%d",
        bill.id,
        bill.name,
        bill.total_amount,
        len(bill.members),
    )
    return bill, warnings


def list_split_bills(session: Session) -> list[SplitBill]:
    """Newest first: date DESC, id DESC. Members are loaded eagerly."""
    stmt = (
        select(SplitBill)
        .options(selectinload(SplitBill.members))
        .order_by(SplitBill.date.desc(), SplitBill.id.desc())
    )
    return list(session.execute(stmt).scalars().all())


def get_split_bill(session: Session, split_bill_id: int) -> SplitBill:
    """Returns the bill with its members or raises SPLIT_BILL_NOT_FOUND (404)."""
    bill = session.get(SplitBill, split_bill_id)
    if bill is None:
        raise AppError(
            ErrorCode.SPLIT_BILL_NOT_FOUND,
            f"Split bill {split_bill_id} does not exist.",
            404,
        )
    return bill


def delete_split_bill(session: Session, split_bill_id: int) -> bool:
    """Idempotent delete of a bill and its members. Returns whether it existed."""
    bill = session.get(SplitBill, split_bill_id)
    if bill is None:
        return False
    session.delete(bill)
    session.flush()
    return True
