"""
routes/transactions.py — Transaction (expense) route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - serialize_transaction() is a pure data-shape helper, not business logic.

Endpoints:
  GET    /transactions?limit=N   → 200  most recent first (default 20)
  POST   /transactions           → 201  record an expense
  DELETE /transactions/:id       → 200  idempotent hard delete
"""

from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, jsonify, request

from backend.app.extensions import db
from backend.app.models.transaction import Transaction
from backend.app.schemas.transaction_schema import (
    CreateTransactionSchema,
    RecentTransactionsQuerySchema,
)
from backend.app.services import transaction_service

transactions_bp = Blueprint("transactions", __name__)


# ── Serialization helper ───────────────────────────────────────────────────
# Pure data-shaping. No DB access, no logic. Amounts as strings.

def serialize_transaction(transaction: Transaction) -> dict:
    """Transaction plus the display fields of its category."""
    category = transaction.category
    return {
        "id": transaction.id,
        "category_id": transaction.category_id,
        "category_name": category.name if category is not None else None,
        "category_icon": category.icon if category is not None else None,
        "category_color": category.color if category is not None else None,
        "amount": str(transaction.amount),              # Decimal → string
        "date": transaction.date.isoformat(),
        "note": transaction.note,
        "image_uri": transaction.image_uri,
        "created_at": transaction.created_at.isoformat() if transaction.created_at else None,
    }


@transactions_bp.route("", methods=["GET"])
def list_recent_transactions():
    query = RecentTransactionsQuerySchema().load(request.args.to_dict())
    limit = query["limit"] or current_app.config["RECENT_TRANSACTIONS_LIMIT"]
    transactions = transaction_service.list_recent_transactions(db.session, limit=limit)
    return jsonify({
        "data": [serialize_transaction(t) for t in transactions],
        "warnings": [],
    }), 200


@transactions_bp.route("", methods=["POST"])
def create_transaction():
    """POST /transactions: date defaults to now; an empty note gets the placeholder."""
    data = CreateTransactionSchema().load(request.get_json(force=True) or {})
    transaction = transaction_service.create_transaction(
        db.session,
        category_id=data["category_id"],
        amount=data["amount"],
        date=data["date"] or datetime.now(),
        note=data["note"],
        image_uri=data["image_uri"],
        default_note=current_app.config["DEFAULT_TRANSACTION_NOTE"],
    )
    db.session.commit()
    return jsonify({"data": serialize_transaction(transaction), "warnings": []}), 201


@transactions_bp.route("/<int:transaction_id>", methods=["DELETE"])
def delete_transaction(transaction_id: int):
    """DELETE /transactions/:id: 200 whether or not the row existed."""
    removed = transaction_service.delete_transaction(db.session, transaction_id)
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": removed,
            "transaction_id": transaction_id,
        },
        "warnings": [],
    }), 200
