"""
services/aggregation_service.py — Time-windowed totals and category breakdowns.

Pure functions: no DB session, no Flask, no I/O. Input is any iterable of
objects exposing `.amount` (Decimal), `.date` (naive datetime) and
`.category_id`; categories expose `.id`, `.name`, `.icon`, `.color` and
`.budget_limit`. ORM rows and SimpleNamespace test doubles both qualify.

Design:
  - All sums are Decimal and start from Decimal("0"); float never appears.
  - Stored dates are compared as-is (naive). No timezone shifting happens here.
  - Percentages are whole numbers apportioned by largest remainder, so a
    breakdown never sums above 100 and sums to exactly 100 whenever it is
    non-empty and the grand total is at least 1. Naive per-entry rounding
    (33 + 33 + 33, or 50 + 50 + 1) is never used.
  - Nothing computed here is written back to the store.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

from backend.app.errors import AppError, ErrorCode

ZERO = Decimal("0")
HUNDRED = Decimal("100")
UNCATEGORIZED = "Uncategorized"


# ── Date helpers ───────────────────────────────────────────────────────────

def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def start_of_day(value: date | datetime) -> datetime:
    return datetime.combine(_as_date(value), time.min)


def end_of_day(value: date | datetime) -> datetime:
    """23:59:59.999999 of the same calendar day."""
    return datetime.combine(_as_date(value), time.max)


def week_start(reference_date: date | datetime) -> datetime:
    """00:00 on the Monday of the week containing reference_date."""
    day = _as_date(reference_date)
    return start_of_day(day - timedelta(days=day.weekday()))


def month_bounds(reference_date: date | datetime) -> tuple[datetime, datetime]:
    """First instant and last instant of reference_date's calendar month."""
    day = _as_date(reference_date)
    first = day.replace(day=1)
    if first.month == 12:
        next_first = first.replace(year=first.year + 1, month=1)
    else:
        next_first = first.replace(month=first.month + 1)
    return start_of_day(first), end_of_day(next_first - timedelta(days=1))


# ── Totals ─────────────────────────────────────────────────────────────────

def sum_amounts(transactions: Iterable) -> Decimal:
    return sum((t.amount for t in transactions), ZERO)


def total_for_month(transactions: Iterable, reference_date: date | datetime) -> Decimal:
    """Sum of amounts whose stored date has the same year and month."""
    year, month = reference_date.year, reference_date.month
    return sum_amounts(
        t for t in transactions
        if t.date.year == year and t.date.month == month
    )


def total_for_week(
        transactions: Iterable,
        reference_date: date | datetime,
        now: datetime | None = None,
) -> Decimal:
    """
    Rolling current-week total: amounts dated on or after Monday 00:00 of
    reference_date's week and not after `now`.

    Args:
        now: Upper bound. Defaults to the current local time. Transactions
             dated later in the week (future-dated) are excluded.
    """
    lower = week_start(reference_date)
    upper = now if now is not None else datetime.now()
    return sum_amounts(t for t in transactions if lower <= t.date <= upper)


def filter_by_date_range(
        transactions: Iterable,
        start: date | datetime,
        end: date | datetime,
) -> list:
    """
    Transactions dated within [start_of_day(start), end_of_day(end)].

    Raises:
        AppError(INVALID_DATE_RANGE, 400) if start falls on a later day than end.
    """
    if _as_date(start) > _as_date(end):
        raise AppError(
            ErrorCode.INVALID_DATE_RANGE,
            f"Start date {_as_date(start).isoformat()} is after end date "
            f"{_as_date(end).isoformat()}.",
            400,
            field="start",
        )
    lower, upper = start_of_day(start), end_of_day(end)
    return [t for t in transactions if lower <= t.date <= upper]


# ── Percentages ────────────────────────────────────────────────────────────

def apportion_percentages(totals: list[Decimal], grand_total: Decimal) -> list[int]:
    """
    Whole-number share of grand_total for each entry in `totals`.

    Raw value is 100 * total / max(grand_total, 1). Every entry receives the
    floor of its raw value; the points still missing from the rounded raw sum
    go one each to the largest fractional remainders, earlier entries first
    on ties.
    """
    if not totals:
        return []

    denominator = max(grand_total, Decimal("1"))
    raw = [total * HUNDRED / denominator for total in totals]
    floors = [int(value.to_integral_value(rounding=ROUND_FLOOR)) for value in raw]

    target = int(sum(raw, ZERO).to_integral_value(rounding=ROUND_HALF_UP))
    target = min(target, 100)
    missing = max(target - sum(floors), 0)

    by_remainder = sorted(
        range(len(raw)),
        key=lambda i: (-(raw[i] - floors[i]), i),
    )
    for i in by_remainder[:missing]:
        floors[i] += 1
    return floors


# ── Breakdown ──────────────────────────────────────────────────────────────

def category_breakdown(transactions: Iterable, categories: Iterable | None = None) -> list[dict]:
    """
    Groups transactions by category and sums each group.

    Returns:
        One dict per category that has transactions, sorted by total
        descending (ties by category_id ascending):
            {"category_id", "total", "percentage"}
        plus "name", "icon", "color" when `categories` is given. An id that
        is not among `categories` is reported as "Uncategorized".
        Empty input yields [].
    """
    totals: dict[int, Decimal] = {}
    for t in transactions:
        totals[t.category_id] = totals.get(t.category_id, ZERO) + t.amount

    if not totals:
        return []

    ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    grand_total = sum(totals.values(), ZERO)
    percentages = apportion_percentages([total for _, total in ordered], grand_total)

    by_id = {c.id: c for c in categories} if categories is not None else None

    breakdown = []
    for (category_id, total), percentage in zip(ordered, percentages):
        entry = {
            "category_id": category_id,
            "total": total,
            "percentage": percentage,
        }
        if by_id is not None:
            category = by_id.get(category_id)
            entry["name"] = category.name if category is not None else UNCATEGORIZED
            entry["icon"] = category.icon if category is not None else None
            entry["color"] = category.color if category is not None else None
        breakdown.append(entry)
    return breakdown


def month_category_summary(
        categories: Iterable,
        transactions: Iterable,
        reference_date: date | datetime,
) -> dict:
    """
    Monthly dashboard figures: the month total and, for EVERY category (spent
    in or not, in category order), its total_spent and percentage.

    Returns:
        {"month": "YYYY-MM", "total": Decimal, "categories": [
            {"id", "name", "icon", "color", "budget_limit",
             "total_spent", "percentage"}, ...]}
    """
    categories = list(categories)
    year, month = reference_date.year, reference_date.month
    in_month = [
        t for t in transactions
        if t.date.year == year and t.date.month == month
    ]

    spent: dict[int, Decimal] = {}
    for t in in_month:
        spent[t.category_id] = spent.get(t.category_id, ZERO) + t.amount

    total = sum_amounts(in_month)
    category_totals = [spent.get(c.id, ZERO) for c in categories]
    percentages = apportion_percentages(category_totals, total)

    return {
        "month": f"{year:04d}-{month:02d}",
        "total": total,
        "categories": [
            {
                "id": c.id,
                "name": c.name,
                "icon": c.icon,
                "color": c.color,
                "budget_limit": c.budget_limit,
                "total_spent": category_total,
                "percentage": percentage,
            }
            for c, category_total, percentage in zip(categories, category_totals, percentages)
        ],
    }
