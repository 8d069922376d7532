"""
services/category_service.py — Category business logic.

Rules enforced here:
  - CATEGORY_NOT_FOUND (404) for unknown ids on update/delete.
  - Deleting a category removes every transaction that references it; the
    number removed is returned so the caller can report it.
  - Names are not unique. Two categories called "Food" are both kept.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives plain values and dicts; returns ORM objects or raises AppError.
  - Commits are the route's responsibility; only flush here.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.category import Category
from backend.app.models.transaction import Transaction

logger = logging.getLogger(__name__)

# Fields a PATCH may touch. Anything else in `data` is ignored.
_UPDATABLE_FIELDS = ("name", "icon", "color", "budget_limit")


def get_category_or_404(category_id: int, session: Session) -> Category:
    """Returns the Category or raises CATEGORY_NOT_FOUND (404)."""
    category = session.get(Category, category_id)
    if category is None:
        raise AppError(
            ErrorCode.CATEGORY_NOT_FOUND,
            f"Category {category_id} does not exist.",
            404,
            field="category_id",
        )
    return category


def list_categories(session: Session) -> list[Category]:
    """All categories in creation order."""
    stmt = select(Category).order_by(Category.id.asc())
    return list(session.execute(stmt).scalars().all())


def create_category(
        session: Session,
        name: str,
        icon: str | None = None,
        color: str | None = None,
        budget_limit: Decimal = Decimal("0"),
) -> Category:
    category = Category(
        name=name.strip(),
        icon=icon,
        color=color,
        budget_limit=budget_limit,
    )
    session.add(category)
    session.flush()  # populate category.id
    return category


def update_category(session: Session, category_id: int, data: dict) -> Category:
    """
    Partial update. Only keys present in `data` change; a key with value None
    clears icon/color but is ignored for name and budget_limit.
    """
    category = get_category_or_404(category_id, session)

    for field_name in _UPDATABLE_FIELDS:
        if field_name not in data:
            continue
        value = data[field_name]
        if value is None and field_name in ("name", "budget_limit"):
            continue
        if field_name == "name":
            value = value.strip()
        setattr(category, field_name, value)

    session.flush()
    return category


def delete_category(session: Session, category_id: int) -> int:
    """
    Deletes the category and all its transactions.

    The transactions are removed with an explicit bulk DELETE first so the
    count is exact and the outcome does not depend on the store honouring
    ON DELETE CASCADE.

    Returns:
        Number of transactions removed.
    """
    category = get_category_or_404(category_id, session)

    result = session.execute(
        delete(Transaction).where(Transaction.category_id == category_id)
    )
    removed = result.rowcount or 0

    # The rows are gone; drop any collection loaded before the bulk DELETE.
    session.expire(category, ["transactions"])
    session.delete(category)
    session.flush()

    logger.info(
        "Deleted category %d (%r) and %d transaction(s).",
        category_id,
        category.name,
        removed,
    )
    return removed
