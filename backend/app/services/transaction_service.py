"""
services/transaction_service.py — Transaction (expense) business logic.

Rules enforced here:
  - CATEGORY_NOT_FOUND (404): the referenced category must exist. Checked
    explicitly before the write; the FK is the last line of defence.
  - INVALID_AMOUNT (422): amount must be > 0. The schema rejects it first;
    this check covers callers that bypass the HTTP layer (split-bill
    "my share", the expense book). CHECK(amount > 0) backs both.
  - An empty or blank note is stored as the configured placeholder.
  - Transactions are immutable; the only mutation is an idempotent delete.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Commits are the route's responsibility; only flush here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from backend.app.errors import AppError, ErrorCode
from backend.app.models.transaction import Transaction
from backend.app.services.category_service import get_category_or_404

DEFAULT_NOTE = "No note"
DEFAULT_RECENT_LIMIT = 20


def to_naive_utc(value: datetime) -> datetime:
    """Aware datetimes are converted to UTC and stored naive; naive pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _validate_amount(amount: Decimal) -> None:
    if amount is None or amount <= Decimal("0"):
        raise AppError(
            ErrorCode.INVALID_AMOUNT,
            f"Amount must be greater than zero (got {amount}).",
            422,
            field="amount",
        )


def create_transaction(
        session: Session,
        category_id: int,
        amount: Decimal,
        date: datetime,
        note: str | None = None,
        image_uri: str | None = None,
        default_note: str = DEFAULT_NOTE,
) -> Transaction:
    """
    Records one expense.

    Raises:
        AppError(CATEGORY_NOT_FOUND, 404) if category_id is unknown.
        AppError(INVALID_AMOUNT, 422) if amount <= 0.
    """
    _validate_amount(amount)
    category = get_category_or_404(category_id, session)

    cleaned_note = (note or "").strip() or default_note

    transaction = Transaction(
        category_id=category.id,
        amount=amount,
        date=to_naive_utc(date),
        note=cleaned_note,
        image_uri=image_uri,
    )
    session.add(transaction)
    session.flush()  # populate transaction.id and server defaults
    return transaction


def list_recent_transactions(
        session: Session,
        limit: int = DEFAULT_RECENT_LIMIT,
) -> list[Transaction]:
    """
    Newest first (date DESC, id DESC), each row joined with its category so
    name, icon and color are available without a second query.
    """
    stmt = (
        select(Transaction)
        .options(joinedload(Transaction.category))
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .limit(limit)
    )
    return list(session.execute(stmt).scalars().all())


def list_transactions(
        session: Session,
        start: datetime | None = None,
        end: datetime | None = None,
) -> list[Transaction]:
    """
    Every transaction, optionally bounded by [start, end] on the stored date.
    Bounds are used as given; day rounding belongs to aggregation_service.
    """
    stmt = select(Transaction).options(joinedload(Transaction.category))
    if start is not None:
        stmt = stmt.where(Transaction.date >= start)
    if end is not None:
        stmt = stmt.where(Transaction.date <= end)
    stmt = stmt.order_by(Transaction.date.asc(), Transaction.id.asc())
    return list(session.execute(stmt).scalars().all())


def delete_transaction(session: Session, transaction_id: int) -> bool:
    """
    Idempotent delete.

    Returns:
        True if a row was removed, False if it did not exist.
    """
    transaction = session.get(Transaction, transaction_id)
    if transaction is None:
        return False
    session.delete(transaction)
    session.flush()
    return True
