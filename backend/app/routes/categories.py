"""
routes/categories.py — Category route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints:
  GET    /categories        → 200  list (creation order)
  POST   /categories        → 201  create
  PATCH  /categories/:id    → 200  partial update
  DELETE /categories/:id    → 200  delete + cascade to its transactions
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from backend.app.extensions import db
from backend.app.models.category import Category
from backend.app.schemas.category_schema import CreateCategorySchema, PatchCategorySchema
from backend.app.services import category_service

categories_bp = Blueprint("categories", __name__)


def serialize_category(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "icon": category.icon,
        "color": category.color,
        "budget_limit": str(category.budget_limit),     # Decimal → string
    }


@categories_bp.route("", methods=["GET"])
def list_categories():
    categories = category_service.list_categories(db.session)
    return jsonify({
        "data": [serialize_category(c) for c in categories],
        "warnings": [],
    }), 200


@categories_bp.route("", methods=["POST"])
def create_category():
    """POST /categories: duplicate names are accepted."""
    data = CreateCategorySchema().load(request.get_json(force=True) or {})
    category = category_service.create_category(db.session, **data)
    db.session.commit()
    return jsonify({"data": serialize_category(category), "warnings": []}), 201


@categories_bp.route("/<int:category_id>", methods=["PATCH"])
def update_category(category_id: int):
    data = PatchCategorySchema().load(request.get_json(force=True) or {})
    category = category_service.update_category(db.session, category_id, data)
    db.session.commit()
    return jsonify({"data": serialize_category(category), "warnings": []}), 200


@categories_bp.route("/<int:category_id>", methods=["DELETE"])
def delete_category(category_id: int):
    """
    DELETE /categories/:id: hard delete. Every transaction in the category
    goes with it; the count is reported so the UI can confirm what happened.
    """
    removed = category_service.delete_category(db.session, category_id)
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "category_id": category_id,
            "transactions_removed": removed,
        },
        "warnings": [],
    }), 200
