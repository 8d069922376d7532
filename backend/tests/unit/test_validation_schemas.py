"""
tests/unit/test_validation_schemas.py — Unit tests for all marshmallow schemas.

What this file proves:
  - Every schema accepts valid input without raising
  - Every schema rejects invalid input with the correct ValidationError
  - Field-level rules (type, length, decimal precision, date formats) are
    enforced by schemas
  - Error codes used as ValidationError messages are the registered constants
  - Existence checks (category ids) are NOT tested here; they belong in services

No database. No Flask application context: schemas inherit from
marshmallow.Schema directly.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest
from marshmallow import ValidationError

from backend.app.errors import ErrorCode
from backend.app.schemas.analysis_schema import (
    DashboardQuerySchema,
    DateRangeQuerySchema,
    ReferenceDateQuerySchema,
)
from backend.app.schemas.category_schema import CreateCategorySchema, PatchCategorySchema
from backend.app.schemas.parse_schema import ParseRequestSchema
from backend.app.schemas.split_bill_schema import SaveSplitBillSchema, SplitBillInputSchema
from backend.app.schemas.transaction_schema import (
    CreateTransactionSchema,
    RecentTransactionsQuerySchema,
)


# ═══════════════════════════════════════════════════════════════════════════
# Categories
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateCategorySchema:

    def _load(self, data: dict):
        return CreateCategorySchema().load(data)

    def test_valid_payload(self):
        result = self._load({
            "name": "Food",
            "icon": "emoji:🍔",
            "color": "#ff0000",
            "budget_limit": "500000.00",
        })
        assert result["name"] == "Food"
        assert result["budget_limit"] == Decimal("500000.00")
        assert isinstance(result["budget_limit"], Decimal)

    def test_defaults(self):
        result = self._load({"name": "Food"})
        assert result["icon"] is None
        assert result["color"] is None
        assert result["budget_limit"] == Decimal("0")

    def test_missing_name(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load({})
        assert "name" in exc_info.value.messages

    def test_blank_name(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"name": "   "})
        assert "name" in exc_info.value.messages

    def test_name_too_long(self):
        with pytest.raises(ValidationError):
            self._load({"name": "x" * 101})

    def test_negative_budget(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"name": "Food", "budget_limit": "-1"})
        assert "budget_limit" in exc_info.value.messages

    def test_budget_precision(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"name": "Food", "budget_limit": "10.001"})
        assert exc_info.value.messages["budget_limit"] == [ErrorCode.INVALID_AMOUNT_PRECISION]

    def test_budget_above_column_bound(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"name": "Food", "budget_limit": "1000000000000"})
        assert exc_info.value.messages["budget_limit"] == [ErrorCode.AMOUNT_TOO_LARGE]


class TestPatchCategorySchema:

    def test_partial(self):
        result = PatchCategorySchema().load({"color": "#00ff00"})
        assert result == {"color": "#00ff00"}

    def test_icon_can_be_cleared(self):
        assert PatchCategorySchema().load({"icon": None}) == {"icon": None}

    def test_empty_body_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            PatchCategorySchema().load({})
        assert "_schema" in exc_info.value.messages

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            PatchCategorySchema().load({"name": " "})


# ═══════════════════════════════════════════════════════════════════════════
# Transactions
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateTransactionSchema:

    def _load(self, data: dict):
        return CreateTransactionSchema().load(data)

    def test_valid_payload(self):
        result = self._load({
            "category_id": 1,
            "amount": "15000.50",
            "date": "2024-03-05T10:00:00",
            "note": "Lunch",
        })
        assert result["amount"] == Decimal("15000.50")
        assert result["date"] == datetime(2024, 3, 5, 10, 0)
        assert result["image_uri"] is None

    def test_date_optional(self):
        result = self._load({"category_id": 1, "amount": "1"})
        assert result["date"] is None
        assert result["note"] is None

    def test_aware_date_converted_to_naive_utc(self):
        result = self._load({
            "category_id": 1,
            "amount": "1",
            "date": "2024-03-05T10:00:00+07:00",
        })
        assert result["date"] == datetime(2024, 3, 5, 3, 0)
        assert result["date"].tzinfo is None

    @pytest.mark.parametrize("amount", ["0", "-5", "0.00"])
    def test_non_positive_amount(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"category_id": 1, "amount": amount})
        assert "amount" in exc_info.value.messages

    def test_amount_precision(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"category_id": 1, "amount": "10.123"})
        assert exc_info.value.messages["amount"] == [ErrorCode.INVALID_AMOUNT_PRECISION]

    @pytest.mark.parametrize("amount", ["1000000000000", "12345678901234567.89", "1e20"])
    def test_amount_above_column_bound(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"category_id": 1, "amount": amount})
        assert exc_info.value.messages["amount"] == [ErrorCode.AMOUNT_TOO_LARGE]

    def test_largest_storable_amount_accepted(self):
        result = self._load({"category_id": 1, "amount": "999999999999.99"})
        assert result["amount"] == Decimal("999999999999.99")

    def test_missing_category(self):
        with pytest.raises(ValidationError) as exc_info:
            self._load({"amount": "10"})
        assert "category_id" in exc_info.value.messages

    @pytest.mark.parametrize("category_id", ["1", 1.5, 0])
    def test_bad_category_id(self, category_id):
        with pytest.raises(ValidationError):
            self._load({"category_id": category_id, "amount": "10"})

    def test_note_too_long(self):
        with pytest.raises(ValidationError):
            self._load({"category_id": 1, "amount": "10", "note": "x" * 256})


class TestRecentTransactionsQuerySchema:

    def test_limit_from_query_string(self):
        assert RecentTransactionsQuerySchema().load({"limit": "5"}) == {"limit": 5}

    def test_limit_optional(self):
        assert RecentTransactionsQuerySchema().load({}) == {"limit": None}

    @pytest.mark.parametrize("limit", ["0", "501", "abc"])
    def test_bad_limit(self, limit):
        with pytest.raises(ValidationError):
            RecentTransactionsQuerySchema().load({"limit": limit})


# ═══════════════════════════════════════════════════════════════════════════
# Analysis queries
# ═══════════════════════════════════════════════════════════════════════════

class TestAnalysisQuerySchemas:

    def test_reference_date(self):
        result = ReferenceDateQuerySchema().load({"date": "2024-03-15"})
        assert result["date"] == date(2024, 3, 15)

    def test_reference_date_optional(self):
        assert ReferenceDateQuerySchema().load({}) == {"date": None}

    def test_range_requires_both_ends(self):
        with pytest.raises(ValidationError) as exc_info:
            DateRangeQuerySchema().load({"start": "2024-03-01"})
        assert "end" in exc_info.value.messages

    def test_range_start_after_end_is_not_a_schema_error(self):
        result = DateRangeQuerySchema().load({"start": "2024-03-20", "end": "2024-03-01"})
        assert result["start"] > result["end"]

    def test_dashboard_month(self):
        result = DashboardQuerySchema().load({"month": "2024-03"})
        assert result["month"] == date(2024, 3, 1)

    @pytest.mark.parametrize("month", ["2024-13", "2024-3", "March"])
    def test_dashboard_bad_month(self, month):
        with pytest.raises(ValidationError):
            DashboardQuerySchema().load({"month": month})


# ═══════════════════════════════════════════════════════════════════════════
# Split bills
# ═══════════════════════════════════════════════════════════════════════════

def _bill_payload(**overrides) -> dict:
    payload = {
        "name": "Dinner",
        "items": [
            {"name": "Pizza", "amount": "15000", "assigned_to": ["me", "b"]},
            {"name": "Tea", "amount": "5000", "assigned_to": ["me"]},
        ],
        "members": [
            {"key": "me", "name": "Saya", "is_me": True},
            {"key": "b", "name": "Budi"},
        ],
    }
    payload.update(overrides)
    return payload


class TestSplitBillInputSchema:

    def test_valid_payload(self):
        result = SplitBillInputSchema().load(_bill_payload())
        assert result["items"][0]["amount"] == Decimal("15000")
        assert result["items"][0]["category"] is None
        assert result["members"][1]["is_me"] is False
        assert result["image_uri"] is None

    def test_zero_amount_item_allowed(self):
        payload = _bill_payload(items=[{"name": "Free", "amount": "0"}])
        result = SplitBillInputSchema().load(payload)
        assert result["items"][0]["assigned_to"] == []

    def test_negative_item_amount(self):
        payload = _bill_payload(items=[{"name": "Refund", "amount": "-1"}])
        with pytest.raises(ValidationError) as exc_info:
            SplitBillInputSchema().load(payload)
        assert "items" in exc_info.value.messages

    def test_item_amount_above_column_bound(self):
        payload = _bill_payload(items=[{"name": "Yacht", "amount": "1e15"}])
        with pytest.raises(ValidationError) as exc_info:
            SplitBillInputSchema().load(payload)
        assert exc_info.value.messages["items"][0]["amount"] == [ErrorCode.AMOUNT_TOO_LARGE]

    def test_duplicate_member_key(self):
        payload = _bill_payload(members=[
            {"key": "me", "name": "Saya"},
            {"key": "me", "name": "Again"},
        ])
        with pytest.raises(ValidationError) as exc_info:
            SplitBillInputSchema().load(payload)
        assert exc_info.value.messages == {"members": [ErrorCode.DUPLICATE_MEMBER]}

    def test_unknown_member_in_assignment(self):
        payload = _bill_payload(items=[{"name": "Tea", "amount": "1", "assigned_to": ["zed"]}])
        with pytest.raises(ValidationError) as exc_info:
            SplitBillInputSchema().load(payload)
        assert exc_info.value.messages == {"items": [ErrorCode.UNKNOWN_MEMBER]}

    def test_blank_member_name(self):
        payload = _bill_payload(members=[{"key": "me", "name": "  "}], items=[])
        with pytest.raises(ValidationError):
            SplitBillInputSchema().load(payload)

    def test_me_member_name_optional(self):
        payload = _bill_payload(members=[
            {"key": "me", "is_me": True},
            {"key": "b", "name": "Budi"},
        ])
        result = SplitBillInputSchema().load(payload)
        assert result["members"][0]["name"] is None

    def test_other_member_name_required(self):
        payload = _bill_payload(members=[
            {"key": "me", "is_me": True},
            {"key": "b"},
        ])
        with pytest.raises(ValidationError) as exc_info:
            SplitBillInputSchema().load(payload)
        assert exc_info.value.messages["members"][1]["name"] == [
            "Missing data for required field."
        ]


class TestSaveSplitBillSchema:

    def test_defaults(self):
        result = SaveSplitBillSchema().load(_bill_payload())
        assert result["add_my_share"] is False
        assert result["category_id"] is None

    def test_explicit_category(self):
        result = SaveSplitBillSchema().load(_bill_payload(add_my_share=True, category_id=3))
        assert result["category_id"] == 3


# ═══════════════════════════════════════════════════════════════════════════
# Parse requests
# ═══════════════════════════════════════════════════════════════════════════

class TestParseRequestSchema:

    def test_valid(self):
        assert ParseRequestSchema().load({"raw_text": "[]"}) == {"raw_text": "[]"}

    @pytest.mark.parametrize("payload", [{}, {"raw_text": ""}])
    def test_missing_or_empty(self, payload):
        with pytest.raises(ValidationError):
            ParseRequestSchema().load(payload)
