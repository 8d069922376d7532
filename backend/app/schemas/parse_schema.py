"""
schemas/parse_schema.py — Marshmallow schemas for external parser output.

Two kinds of schema live here:
  - Request schemas for POST /parse/receipt and POST /parse/text. The body
    carries the raw text the external parser returned.
  - ParsedCandidateSchema, used by parse_normalizer to check each candidate
    record pulled out of that text. Unknown keys are ignored; a candidate
    that fails to load is dropped, never fixed up.

IMPORTANT: Inherits from marshmallow.Schema directly, never ma.Schema.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate


class ParsedCandidateSchema(Schema):
    """One `{name, category, amount}` record from the external parser."""

    class Meta:
        unknown = EXCLUDE

    name = fields.Str(required=True)

    # Missing or null category falls back during normalisation.
    category = fields.Str(load_default="", allow_none=True)

    # Accepts 15000, 15000.5 and "15000"; rejects "15k", NaN and Infinity.
    amount = fields.Decimal(required=True, allow_nan=False)


class ParseRequestSchema(Schema):
    """
    POST /parse/receipt and POST /parse/text

    raw_text: the parser's response verbatim, markdown fences and all.
    """

    raw_text = fields.Str(
        required=True,
        validate=validate.Length(min=1, error="raw_text must not be empty."),
    )
