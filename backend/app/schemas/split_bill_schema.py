"""
schemas/split_bill_schema.py — Marshmallow schemas for split-bill endpoints.

The client keeps the draft (items, members, assignments) and sends it whole.
Validation responsibility:
  - This file (request shape, 400):
      - item amounts >= 0 with max 2 dp
      - member keys unique                 → DUPLICATE_MEMBER
      - assigned_to only names known keys  → UNKNOWN_MEMBER
  - services/split_allocator.py (draft rules):
      - NO_ITEMS / NO_MEMBERS (422) when saving an empty draft
  - services/split_bill_service.py:
      - CATEGORY_NOT_FOUND (404) for an explicit my-share category

IMPORTANT: Inherits from marshmallow.Schema directly, never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from backend.app.errors import ErrorCode
from backend.app.schemas.validators import (
    validate_non_empty_after_trim,
    validate_non_negative_amount,
)


class MemberInputSchema(Schema):

    key = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=64), validate_non_empty_after_trim],
    )
    # Optional for the is_me member only; it then gets SPLIT_BILL_ME_NAME.
    name = fields.Str(
        load_default=None,
        validate=[validate.Length(min=1, max=100), validate_non_empty_after_trim],
    )
    is_me = fields.Bool(load_default=False)

    @validates_schema
    def validate_name_present(self, data: dict, **kwargs) -> None:
        if data.get("name") is None and not data.get("is_me"):
            raise ValidationError("Missing data for required field.", "name")


class LineItemInputSchema(Schema):

    name = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=255), validate_non_empty_after_trim],
    )
    # Missing → SPLIT_BILL_ITEM_CATEGORY, filled in when the draft is built.
    category = fields.Str(load_default=None, allow_none=True)

    # Zero is allowed: a freshly added line has no price yet.
    amount = fields.Decimal(required=True, validate=validate_non_negative_amount)

    assigned_to = fields.List(fields.Str(), load_default=list)


class SplitBillInputSchema(Schema):
    """POST /split-bills/preview"""

    name = fields.Str(load_default="", validate=validate.Length(max=255))
    image_uri = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=1024))
    items = fields.List(fields.Nested(LineItemInputSchema), required=True)
    members = fields.List(fields.Nested(MemberInputSchema), required=True)

    @validates_schema
    def validate_member_references(self, data: dict, **kwargs) -> None:
        keys = [m["key"] for m in data.get("members", [])]
        if len(keys) != len(set(keys)):
            raise ValidationError({"members": [ErrorCode.DUPLICATE_MEMBER]})

        known = set(keys)
        for item in data.get("items", []):
            if not set(item.get("assigned_to", [])) <= known:
                raise ValidationError({"items": [ErrorCode.UNKNOWN_MEMBER]})


class SaveSplitBillSchema(SplitBillInputSchema):
    """
    POST /split-bills

    add_my_share: also record the is_me member's share as an expense.
    category_id:  category for that expense; omitted → food hint / first.
    """

    add_my_share = fields.Bool(load_default=False)
    category_id = fields.Int(
        load_default=None,
        allow_none=True,
        strict=True,
        validate=validate.Range(min=1, error="category_id must be a positive integer."),
    )
