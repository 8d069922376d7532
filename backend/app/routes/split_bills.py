"""
routes/split_bills.py — Split-bill route handlers.

The client holds the draft (items, members, assignments) and posts it whole:
  - /preview computes the shares without writing anything;
  - POST /split-bills saves bill + members (+ optional "my share" expense)
    atomically.

Endpoints:
  GET    /split-bills           → 200  list, newest first
  POST   /split-bills           → 201  save
  POST   /split-bills/preview   → 200  compute shares only
  GET    /split-bills/:id       → 200  bill with members
  DELETE /split-bills/:id       → 200  idempotent delete (members cascade)
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from backend.app.extensions import db
from backend.app.models.split_bill import SplitBill
from backend.app.schemas.split_bill_schema import SaveSplitBillSchema, SplitBillInputSchema
from backend.app.services import split_bill_service

split_bills_bp = Blueprint("split_bills", __name__)


def _build_draft(data: dict):
    config = current_app.config
    return split_bill_service.build_draft(
        data,
        config["SHARE_ROUNDING_UNIT"],
        default_category=config["SPLIT_BILL_ITEM_CATEGORY"],
        me_name=config["SPLIT_BILL_ME_NAME"],
    )


def _serialize_split_bill(bill: SplitBill) -> dict:
    return {
        "id": bill.id,
        "name": bill.name,
        "date": bill.date.isoformat(),
        "total_amount": str(bill.total_amount),         # Decimal → string
        "image_uri": bill.image_uri,
        "created_at": bill.created_at.isoformat() if bill.created_at else None,
        "members": [
            {
                "id": m.id,
                "name": m.name,
                "share_amount": str(m.share_amount),    # Decimal → string
                "is_me": m.is_me,
            }
            for m in bill.members
        ],
    }


@split_bills_bp.route("", methods=["GET"])
def list_split_bills():
    bills = split_bill_service.list_split_bills(db.session)
    return jsonify({
        "data": [_serialize_split_bill(b) for b in bills],
        "warnings": [],
    }), 200


@split_bills_bp.route("/preview", methods=["POST"])
def preview_split_bill():
    """Shares rounded up to SHARE_ROUNDING_UNIT, exactly as they would be saved."""
    data = SplitBillInputSchema().load(request.get_json(force=True) or {})
    draft = _build_draft(data)
    summary = draft.summary()

    return jsonify({
        "data": {
            "name": summary.name,
            "total_amount": str(summary.total),
            "members": [
                {
                    "key": m.key,
                    "name": m.name,
                    "is_me": m.is_me,
                    "share_amount": str(summary.shares[m.key]),
                }
                for m in draft.members
            ],
            "unassigned_items": [item.name for item in summary.unassigned],
        },
        "warnings": split_bill_service.unassigned_warning(summary),
    }), 200


@split_bills_bp.route("", methods=["POST"])
def save_split_bill():
    """
    POST /split-bills: bill, members and the optional "my share" expense are
    written in one savepoint; any failure leaves nothing behind.
    """
    data = SaveSplitBillSchema().load(request.get_json(force=True) or {})
    draft = _build_draft(data)
    bill, warnings = split_bill_service.save_split_bill(
        db.session,
        draft,
        add_my_share=data["add_my_share"],
        category_id=data["category_id"],
        category_hints=tuple(current_app.config["MY_SHARE_CATEGORY_HINTS"]),
        note_prefix=current_app.config["MY_SHARE_NOTE_PREFIX"],
    )
    db.session.commit()
    return jsonify({"data": _serialize_split_bill(bill), "warnings": warnings}), 201


@split_bills_bp.route("/<int:split_bill_id>", methods=["GET"])
def get_split_bill(split_bill_id: int):
    bill = split_bill_service.get_split_bill(db.session, split_bill_id)
    return jsonify({"data": _serialize_split_bill(bill), "warnings": []}), 200


@split_bills_bp.route("/<int:split_bill_id>", methods=["DELETE"])
def delete_split_bill(split_bill_id: int):
    removed = split_bill_service.delete_split_bill(db.session, split_bill_id)
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": removed,
            "split_bill_id": split_bill_id,
        },
        "warnings": [],
    }), 200
