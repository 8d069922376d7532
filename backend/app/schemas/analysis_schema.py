"""
schemas/analysis_schema.py — Query-string schemas for analysis endpoints.

Dates are calendar dates (YYYY-MM-DD); months are YYYY-MM. The start > end
check is NOT done here: aggregation_service.filter_by_date_range owns it and
raises INVALID_DATE_RANGE, so direct callers get the same rule.
"""

from __future__ import annotations

from datetime import date

from marshmallow import Schema, fields, post_load, validate


class ReferenceDateQuerySchema(Schema):
    """GET /analysis/month?date=, GET /analysis/week?date= (default: today)"""

    date = fields.Date(load_default=None)


class DateRangeQuerySchema(Schema):
    """GET /analysis/range?start=&end="""

    start = fields.Date(required=True)
    end = fields.Date(required=True)


class DashboardQuerySchema(Schema):
    """GET /dashboard?month=YYYY-MM (default: current month)"""

    month = fields.Str(
        load_default=None,
        validate=validate.Regexp(
            r"^\d{4}-(0[1-9]|1[0-2])$",
            error="month must be formatted as YYYY-MM.",
        ),
    )

    @post_load
    def to_reference_date(self, data: dict, **kwargs) -> dict:
        month = data.get("month")
        if month is not None:
            year, month_number = month.split("-")
            data["month"] = date(int(year), int(month_number), 1)
        return data
