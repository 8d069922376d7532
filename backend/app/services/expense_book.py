"""
services/expense_book.py — Explicit holder of the dashboard view state.

The expense book keeps the last loaded categories, recent transactions and
monthly figures for one session, and makes the refresh contract explicit:

  - refresh() ALWAYS loads categories before computing anything that is
    keyed by category, then notifies listeners once with the new snapshot.
  - Asking for category-dependent figures before categories have been
    loaded raises CATEGORIES_NOT_LOADED (500). This is a caller bug, not a
    user error.
  - Every mutating helper (add_expense, remove_category, ...) writes through
    the record store and then refreshes, so the held state never lags the
    store after a write made through the book.

The book itself owns no persistent state; dropping it loses nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.services import (
    aggregation_service,
    category_service,
    transaction_service,
)

logger = logging.getLogger(__name__)

Listener = Callable[[dict], None]


class ExpenseBook:

    def __init__(
            self,
            session: Session,
            recent_limit: int = transaction_service.DEFAULT_RECENT_LIMIT,
            default_note: str = transaction_service.DEFAULT_NOTE,
    ) -> None:
        self.session = session
        self.recent_limit = recent_limit
        self.default_note = default_note

        self.categories: list | None = None
        self.recent_transactions: list = []
        self.month: datetime | None = None
        self.month_summary: dict | None = None
        self.week_total: Decimal = Decimal("0")

        self._listeners: list[Listener] = []

    # ── Listeners ──────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers `listener`; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    # ── Loading ────────────────────────────────────────────────────────────

    def load_categories(self) -> list:
        self.categories = category_service.list_categories(self.session)
        return self.categories

    def _require_categories(self) -> list:
        if self.categories is None:
            raise AppError(
                ErrorCode.CATEGORIES_NOT_LOADED,
                "Categories must be loaded before computing category figures.",
                500,
            )
        return self.categories

    def compute_month(self, reference_date: datetime, now: datetime | None = None) -> dict:
        categories = self._require_categories()
        start, end = aggregation_service.month_bounds(reference_date)
        in_month = transaction_service.list_transactions(self.session, start=start, end=end)
        self.month = reference_date
        self.month_summary = aggregation_service.month_category_summary(
            categories, in_month, reference_date
        )

        now = now or datetime.now()
        this_week = transaction_service.list_transactions(
            self.session,
            start=aggregation_service.week_start(now),
            end=now,
        )
        self.week_total = aggregation_service.total_for_week(this_week, now, now=now)
        return self.month_summary

    def refresh(self, reference_date: datetime | None = None, now: datetime | None = None) -> dict:
        """
        Reloads everything, categories first, and notifies listeners.

        Args:
            reference_date: Month to summarise. Defaults to the month last
                            shown, or the current month.
        """
        now = now or datetime.now()
        reference_date = reference_date or self.month or now

        self.load_categories()
        self.recent_transactions = transaction_service.list_recent_transactions(
            self.session, limit=self.recent_limit
        )
        self.compute_month(reference_date, now=now)

        logger.debug(
            "Expense book refreshed: %d categories, %d recent, month total %s",
            len(self.categories),
            len(self.recent_transactions),
            self.month_summary["total"],
        )
        self._notify()
        return self.snapshot()

    def snapshot(self) -> dict:
        summary = self.month_summary or {}
        return {
            "month": summary.get("month"),
            "total_month": summary.get("total", Decimal("0")),
            "total_week": self.week_total,
            "categories": summary.get("categories", []),
            "recent_transactions": list(self.recent_transactions),
        }

    # ── Write-through helpers ──────────────────────────────────────────────

    def add_expense(
            self,
            category_id: int,
            amount: Decimal,
            date: datetime,
            note: str | None = None,
            image_uri: str | None = None,
    ):
        transaction = transaction_service.create_transaction(
            self.session,
            category_id=category_id,
            amount=amount,
            date=date,
            note=note,
            image_uri=image_uri,
            default_note=self.default_note,
        )
        self.refresh()
        return transaction

    def remove_transaction(self, transaction_id: int) -> bool:
        removed = transaction_service.delete_transaction(self.session, transaction_id)
        self.refresh()
        return removed

    def add_category(self, name: str, icon: str | None = None, color: str | None = None,
                     budget_limit: Decimal = Decimal("0")):
        category = category_service.create_category(
            self.session, name=name, icon=icon, color=color, budget_limit=budget_limit
        )
        self.refresh()
        return category

    def edit_category(self, category_id: int, data: dict):
        category = category_service.update_category(self.session, category_id, data)
        self.refresh()
        return category

    def remove_category(self, category_id: int) -> int:
        removed = category_service.delete_category(self.session, category_id)
        self.refresh()
        return removed
