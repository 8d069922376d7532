"""
schemas/transaction_schema.py — Marshmallow schemas for transaction endpoints.

Validation responsibility:
  - This file:
      - amount: Decimal, strictly positive, max 2 dp (INVALID_AMOUNT_PRECISION)
      - category_id: positive integer
      - date: ISO 8601; timezone-aware values are converted to naive UTC
      - note / image_uri lengths
  - services/transaction_service.py:
      - CATEGORY_NOT_FOUND (404), requires a DB lookup
      - the placeholder note for empty notes

IMPORTANT: Inherits from marshmallow.Schema directly, never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, fields, post_load, validate

from backend.app.schemas.validators import validate_positive_amount
from backend.app.services.transaction_service import to_naive_utc


class CreateTransactionSchema(Schema):
    """POST /transactions"""

    category_id = fields.Int(
        required=True,
        strict=True,   # reject floats like 1.0
        validate=validate.Range(min=1, error="category_id must be a positive integer."),
    )

    amount = fields.Decimal(
        required=True,
        validate=validate_positive_amount,
    )

    # Omitted → the route stamps the current time.
    date = fields.DateTime(load_default=None, allow_none=True)

    note = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=255))

    image_uri = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=1024))

    @post_load
    def normalise_date(self, data: dict, **kwargs) -> dict:
        if data.get("date") is not None:
            data["date"] = to_naive_utc(data["date"])
        return data


class RecentTransactionsQuerySchema(Schema):
    """GET /transactions?limit=N"""

    limit = fields.Int(
        load_default=None,
        validate=validate.Range(min=1, max=500, error="limit must be between 1 and 500."),
    )
