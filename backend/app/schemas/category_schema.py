"""
schemas/category_schema.py — Marshmallow schemas for category endpoints.

Validation responsibility:
  - This file: types, lengths, non-blank names, budget precision.
  - services/category_service.py: existence (CATEGORY_NOT_FOUND, 404).

Names are deliberately NOT checked for uniqueness.

IMPORTANT: Inherits from marshmallow.Schema directly, never ma.Schema.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from backend.app.schemas.validators import (
    validate_non_empty_after_trim,
    validate_non_negative_amount,
)


class CreateCategorySchema(Schema):
    """POST /categories"""

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=100, error="Name must be between 1 and 100 characters."),
            validate_non_empty_after_trim,
        ],
    )

    # Opaque glyph reference such as "emoji:🍔".
    icon = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=64))

    color = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=32))

    budget_limit = fields.Decimal(
        load_default=Decimal("0"),
        validate=validate_non_negative_amount,
    )


class PatchCategorySchema(Schema):
    """
    PATCH /categories/:id

    All fields optional; only the ones sent are changed. An empty body is
    rejected so a no-op PATCH is never mistaken for a successful edit.
    """

    name = fields.Str(
        validate=[
            validate.Length(min=1, max=100, error="Name must be between 1 and 100 characters."),
            validate_non_empty_after_trim,
        ],
    )
    icon = fields.Str(allow_none=True, validate=validate.Length(max=64))
    color = fields.Str(allow_none=True, validate=validate.Length(max=32))
    budget_limit = fields.Decimal(validate=validate_non_negative_amount)

    @validates_schema
    def validate_not_empty(self, data: dict, **kwargs) -> None:
        if not data:
            raise ValidationError("Provide at least one of: name, icon, color, budget_limit.")
