"""
routes/analysis.py — Read-only spending analysis.

Registered at url_prefix=/api/v1 because it owns both /analysis/* and
/dashboard.

Endpoints:
  GET /analysis/month?date=YYYY-MM-DD          → month total + every category
  GET /analysis/week?date=YYYY-MM-DD           → rolling week total
  GET /analysis/range?start=...&end=...        → inclusive range total + breakdown
  GET /dashboard?month=YYYY-MM                 → expense book snapshot

Nothing here writes, so nothing here commits.
"""

from __future__ import annotations

from datetime import date, datetime

from flask import Blueprint, current_app, jsonify, request

from backend.app.extensions import db
from backend.app.routes.transactions import serialize_transaction
from backend.app.schemas.analysis_schema import (
    DashboardQuerySchema,
    DateRangeQuerySchema,
    ReferenceDateQuerySchema,
)
from backend.app.services import aggregation_service, category_service, transaction_service
from backend.app.services.expense_book import ExpenseBook

analysis_bp = Blueprint("analysis", __name__)


def _serialize_summary_categories(entries: list[dict]) -> list[dict]:
    return [
        {
            **entry,
            "budget_limit": str(entry["budget_limit"]),
            "total_spent": str(entry["total_spent"]),
        }
        for entry in entries
    ]


@analysis_bp.route("/analysis/month", methods=["GET"])
def month_analysis():
    query = ReferenceDateQuerySchema().load(request.args.to_dict())
    reference = query["date"] or date.today()

    categories = category_service.list_categories(db.session)
    start, end = aggregation_service.month_bounds(reference)
    transactions = transaction_service.list_transactions(db.session, start=start, end=end)
    summary = aggregation_service.month_category_summary(categories, transactions, reference)

    return jsonify({
        "data": {
            "month": summary["month"],
            "total": str(summary["total"]),
            "categories": _serialize_summary_categories(summary["categories"]),
        },
        "warnings": [],
    }), 200


@analysis_bp.route("/analysis/week", methods=["GET"])
def week_analysis():
    """Monday 00:00 of the reference week up to now."""
    query = ReferenceDateQuerySchema().load(request.args.to_dict())
    reference = query["date"] or date.today()
    now = datetime.now()

    start = aggregation_service.week_start(reference)
    transactions = transaction_service.list_transactions(db.session, start=start, end=now)
    total = aggregation_service.total_for_week(transactions, reference, now=now)

    return jsonify({
        "data": {
            "week_start": start.isoformat(),
            "until": now.isoformat(),
            "total": str(total),
        },
        "warnings": [],
    }), 200


@analysis_bp.route("/analysis/range", methods=["GET"])
def range_analysis():
    """Inclusive of both days. start after end → 400 INVALID_DATE_RANGE."""
    query = DateRangeQuerySchema().load(request.args.to_dict())
    start, end = query["start"], query["end"]

    transactions = transaction_service.list_transactions(
        db.session,
        start=aggregation_service.start_of_day(start),
        end=aggregation_service.end_of_day(end),
    )
    in_range = aggregation_service.filter_by_date_range(transactions, start, end)
    categories = category_service.list_categories(db.session)
    breakdown = aggregation_service.category_breakdown(in_range, categories)

    return jsonify({
        "data": {
            "start": start.isoformat(),
            "end": end.isoformat(),
            "total": str(aggregation_service.sum_amounts(in_range)),
            "breakdown": [{**entry, "total": str(entry["total"])} for entry in breakdown],
        },
        "warnings": [],
    }), 200


@analysis_bp.route("/dashboard", methods=["GET"])
def dashboard():
    """Everything the home screen shows, loaded categories-first."""
    query = DashboardQuerySchema().load(request.args.to_dict())

    book = ExpenseBook(
        db.session,
        recent_limit=current_app.config["RECENT_TRANSACTIONS_LIMIT"],
        default_note=current_app.config["DEFAULT_TRANSACTION_NOTE"],
    )
    snapshot = book.refresh(query["month"])

    return jsonify({
        "data": {
            "month": snapshot["month"],
            "total_month": str(snapshot["total_month"]),
            "total_week": str(snapshot["total_week"]),
            "categories": _serialize_summary_categories(snapshot["categories"]),
            "recent_transactions": [
                serialize_transaction(t) for t in snapshot["recent_transactions"]
            ],
        },
        "warnings": [],
    }), 200
