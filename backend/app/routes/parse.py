"""
routes/parse.py — Normalise output of the external OCR / free-text parser.

The parser call itself is made by the client. These endpoints only validate
and clean what it returned; nothing is written to the store.

Endpoints:
  POST /parse/receipt  → 200  merged line items (ready for split-bill review)
  POST /parse/text     → 200  one expense candidate
  Both → 422 PARSE_FAILED when nothing usable is found (retry prompt).
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from backend.app.extensions import db
from backend.app.schemas.parse_schema import ParseRequestSchema
from backend.app.services import category_service, parse_normalizer

parse_bp = Blueprint("parse", __name__)


def _serialize_parsed(parsed: parse_normalizer.ParsedExpense, categories) -> dict:
    return {
        "name": parsed.name,
        "category": parsed.category,
        "category_id": parse_normalizer.resolve_category_id(parsed.category, categories),
        "amount": str(parsed.amount),                   # Decimal → string
    }


@parse_bp.route("/receipt", methods=["POST"])
def parse_receipt():
    data = ParseRequestSchema().load(request.get_json(force=True) or {})
    categories = category_service.list_categories(db.session)
    parsed, warnings = parse_normalizer.parse_receipt(
        data["raw_text"],
        [c.name for c in categories],
        fallback=current_app.config["FALLBACK_CATEGORY_NAME"],
    )
    return jsonify({
        "data": [_serialize_parsed(p, categories) for p in parsed],
        "warnings": warnings,
    }), 200


@parse_bp.route("/text", methods=["POST"])
def parse_text():
    data = ParseRequestSchema().load(request.get_json(force=True) or {})
    categories = category_service.list_categories(db.session)
    parsed = parse_normalizer.parse_free_text(
        data["raw_text"],
        [c.name for c in categories],
        fallback=current_app.config["FALLBACK_CATEGORY_NAME"],
    )
    return jsonify({"data": _serialize_parsed(parsed, categories), "warnings": []}), 200
