"""
tests/unit/test_aggregation.py — Unit tests for aggregation_service.

What this file proves:
  - Month totals only count transactions in the reference month
  - The week window runs from Monday 00:00 to `now`; later-dated rows are out
  - Range filtering is inclusive of both days and rejects start > end
  - Breakdown percentages never sum above 100, and sum to exactly 100 for a
    non-empty breakdown
  - An empty transaction list yields an empty breakdown (no division by zero)

No database, no Flask. Transactions and categories are SimpleNamespace doubles.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from backend.app.errors import AppError, ErrorCode
from backend.app.services import aggregation_service as agg


# ── Helpers ────────────────────────────────────────────────────────────────

def _txn(amount: str, when: datetime, category_id: int = 1) -> SimpleNamespace:
    return SimpleNamespace(amount=Decimal(amount), date=when, category_id=category_id)


def _cat(id: int, name: str, budget: str = "0") -> SimpleNamespace:
    return SimpleNamespace(
        id=id,
        name=name,
        icon=f"emoji:{id}",
        color="#000000",
        budget_limit=Decimal(budget),
    )


# ═══════════════════════════════════════════════════════════════════════════
# Month and week totals
# ═══════════════════════════════════════════════════════════════════════════

class TestMonthTotal:

    def test_only_reference_month_counts(self):
        transactions = [
            _txn("15000", datetime(2024, 3, 5, 9, 0)),
            _txn("20000", datetime(2024, 3, 20, 18, 30)),
            _txn("5000", datetime(2024, 4, 1, 0, 0)),
        ]
        assert agg.total_for_month(transactions, date(2024, 3, 15)) == Decimal("35000")

    def test_same_month_other_year_excluded(self):
        transactions = [
            _txn("100", datetime(2023, 3, 10)),
            _txn("250", datetime(2024, 3, 10)),
        ]
        assert agg.total_for_month(transactions, datetime(2024, 3, 1)) == Decimal("250")

    def test_empty_month_is_zero(self):
        assert agg.total_for_month([], date(2024, 3, 1)) == Decimal("0")

    def test_month_bounds_cover_whole_month(self):
        start, end = agg.month_bounds(date(2024, 2, 14))
        assert start == datetime(2024, 2, 1, 0, 0)
        assert end.date() == date(2024, 2, 29)
        assert end.hour == 23 and end.minute == 59

    def test_month_bounds_december_rolls_year(self):
        start, end = agg.month_bounds(date(2024, 12, 3))
        assert start == datetime(2024, 12, 1)
        assert end.date() == date(2024, 12, 31)


class TestWeekTotal:

    # Wednesday 2024-03-13; the week starts Monday 2024-03-11.
    NOW = datetime(2024, 3, 13, 12, 0)

    def test_week_start_is_monday_midnight(self):
        assert agg.week_start(self.NOW) == datetime(2024, 3, 11, 0, 0)

    def test_week_start_on_a_sunday(self):
        assert agg.week_start(date(2024, 3, 17)) == datetime(2024, 3, 11, 0, 0)

    def test_counts_monday_through_now(self):
        transactions = [
            _txn("100", datetime(2024, 3, 11, 0, 0)),     # Monday 00:00, in
            _txn("200", datetime(2024, 3, 10, 23, 59)),   # Sunday before, out
            _txn("300", datetime(2024, 3, 13, 11, 0)),    # earlier today, in
            _txn("400", datetime(2024, 3, 15, 9, 0)),     # Friday, future, out
        ]
        total = agg.total_for_week(transactions, self.NOW, now=self.NOW)
        assert total == Decimal("400")

    def test_no_transactions_is_zero(self):
        assert agg.total_for_week([], self.NOW, now=self.NOW) == Decimal("0")


# ═══════════════════════════════════════════════════════════════════════════
# Range filter
# ═══════════════════════════════════════════════════════════════════════════

class TestFilterByDateRange:

    def test_both_days_inclusive(self):
        first = _txn("1", datetime(2024, 3, 5, 0, 0))
        last = _txn("2", datetime(2024, 3, 20, 23, 59, 59))
        outside = _txn("3", datetime(2024, 3, 21, 0, 0))

        result = agg.filter_by_date_range(
            [first, last, outside], date(2024, 3, 5), date(2024, 3, 20)
        )

        assert result == [first, last]

    def test_single_day_range(self):
        inside = _txn("1", datetime(2024, 3, 5, 14, 0))
        result = agg.filter_by_date_range([inside], date(2024, 3, 5), date(2024, 3, 5))
        assert result == [inside]

    def test_start_after_end_rejected(self):
        with pytest.raises(AppError) as exc_info:
            agg.filter_by_date_range([], date(2024, 3, 21), date(2024, 3, 20))

        err = exc_info.value
        assert err.code == ErrorCode.INVALID_DATE_RANGE
        assert err.http_status == 400
        assert err.field == "start"


# ═══════════════════════════════════════════════════════════════════════════
# Percentages and breakdown
# ═══════════════════════════════════════════════════════════════════════════

class TestApportionPercentages:

    def test_thirds_sum_to_exactly_100(self):
        totals = [Decimal("100"), Decimal("100"), Decimal("100")]
        result = agg.apportion_percentages(totals, Decimal("300"))
        assert result == [34, 33, 33]
        assert sum(result) == 100

    def test_largest_remainder_gets_the_point(self):
        result = agg.apportion_percentages([Decimal("10"), Decimal("20")], Decimal("30"))
        assert result == [33, 67]

    def test_empty_list(self):
        assert agg.apportion_percentages([], Decimal("0")) == []

    def test_zero_grand_total_gives_zeros(self):
        result = agg.apportion_percentages([Decimal("0"), Decimal("0")], Decimal("0"))
        assert result == [0, 0]

    def test_partial_totals_never_exceed_100(self):
        # Entries cover only half of the grand total.
        result = agg.apportion_percentages([Decimal("25"), Decimal("25")], Decimal("100"))
        assert result == [25, 25]


class TestCategoryBreakdown:

    def test_empty_transactions_empty_breakdown(self):
        assert agg.category_breakdown([], [_cat(1, "Food")]) == []

    def test_groups_sums_and_sorts_by_total(self):
        when = datetime(2024, 3, 5)
        transactions = [
            _txn("5000", when, category_id=1),
            _txn("20000", when, category_id=2),
            _txn("5000", when, category_id=1),
        ]
        categories = [_cat(1, "Food"), _cat(2, "Transport")]

        result = agg.category_breakdown(transactions, categories)

        assert [entry["category_id"] for entry in result] == [2, 1]
        assert result[0]["total"] == Decimal("20000")
        assert result[1]["total"] == Decimal("10000")
        assert result[0]["name"] == "Transport"
        assert result[0]["percentage"] + result[1]["percentage"] == 100

    def test_percentages_sum_exactly_100_with_odd_split(self):
        when = datetime(2024, 3, 5)
        transactions = [
            _txn("1", when, category_id=1),
            _txn("1", when, category_id=2),
            _txn("1", when, category_id=3),
            _txn("1", when, category_id=4),
            _txn("1", when, category_id=5),
            _txn("1", when, category_id=6),
            _txn("1", when, category_id=7),
        ]
        result = agg.category_breakdown(transactions, [_cat(i, f"C{i}") for i in range(1, 8)])
        assert sum(entry["percentage"] for entry in result) == 100

    def test_tie_broken_by_category_id(self):
        when = datetime(2024, 3, 5)
        transactions = [_txn("10", when, category_id=9), _txn("10", when, category_id=3)]
        result = agg.category_breakdown(transactions)
        assert [entry["category_id"] for entry in result] == [3, 9]

    def test_without_categories_no_display_fields(self):
        result = agg.category_breakdown([_txn("10", datetime(2024, 3, 5))])
        assert set(result[0]) == {"category_id", "total", "percentage"}
        assert result[0]["percentage"] == 100

    def test_unknown_category_is_uncategorized(self):
        result = agg.category_breakdown([_txn("10", datetime(2024, 3, 5), category_id=42)], [])
        assert result[0]["name"] == agg.UNCATEGORIZED
        assert result[0]["icon"] is None


class TestMonthCategorySummary:

    def test_every_category_listed_in_category_order(self):
        categories = [_cat(1, "Food", budget="500000"), _cat(2, "Transport"), _cat(3, "Other")]
        transactions = [
            _txn("10", datetime(2024, 3, 2), category_id=2),
            _txn("20", datetime(2024, 3, 3), category_id=3),
            _txn("999", datetime(2024, 2, 28), category_id=1),   # previous month
        ]

        summary = agg.month_category_summary(categories, transactions, date(2024, 3, 9))

        assert summary["month"] == "2024-03"
        assert summary["total"] == Decimal("30")
        assert [c["id"] for c in summary["categories"]] == [1, 2, 3]
        assert [c["total_spent"] for c in summary["categories"]] == [
            Decimal("0"), Decimal("10"), Decimal("20"),
        ]
        assert [c["percentage"] for c in summary["categories"]] == [0, 33, 67]
        assert summary["categories"][0]["budget_limit"] == Decimal("500000")

    def test_empty_month(self):
        summary = agg.month_category_summary([_cat(1, "Food")], [], date(2024, 3, 1))
        assert summary["total"] == Decimal("0")
        assert summary["categories"][0]["percentage"] == 0
