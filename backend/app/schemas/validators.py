"""
schemas/validators.py — Field validators shared by the request schemas.

Monetary amounts:
  Input with more than 2 decimal places is REJECTED with
  INVALID_AMOUNT_PRECISION, never rounded or truncated. Anything above
  MAX_AMOUNT, the largest value a Numeric(14, 2) column holds, is rejected
  with AMOUNT_TOO_LARGE. The error handler in app/__init__.py recognises
  both messages as registered error codes.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import ValidationError

from backend.app.errors import ErrorCode

MAX_AMOUNT = Decimal("999999999999.99")


def _check_precision(value: Decimal) -> None:
    # Decimal("10.123").as_tuple().exponent == -3  → 3 dp → REJECT
    # Decimal("10.12").as_tuple().exponent  == -2  → 2 dp → accept
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _check_magnitude(value: Decimal) -> None:
    if value > MAX_AMOUNT:
        raise ValidationError(ErrorCode.AMOUNT_TOO_LARGE)


def validate_positive_amount(value: Decimal) -> None:
    """Strictly greater than zero, at most MAX_AMOUNT, at most 2 decimal places."""
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")
    _check_magnitude(value)
    _check_precision(value)


def validate_non_negative_amount(value: Decimal) -> None:
    """Zero allowed (budget limits, unpriced receipt lines), at most 2 dp."""
    if value < Decimal("0"):
        raise ValidationError("Amount must not be negative.")
    _check_magnitude(value)
    _check_precision(value)


def validate_non_empty_after_trim(value: str) -> None:
    """
    validate.Length(min=1) alone allows "   ". Mirrors the
    CHECK(LENGTH(TRIM(...)) > 0) constraints at the API layer.
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")
