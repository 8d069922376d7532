"""
Unit tests for split_bill_service helpers and the "my share" rules.

DB-free: bills and members are SimpleNamespace rows, the session is a
MagicMock, and transaction_service.create_transaction is patched where a
write would happen.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from backend.app.errors import AppError, ErrorCode, WarningCode
from backend.app.services import split_bill_service
from backend.app.services.split_allocator import DraftStep

NOW = datetime(2024, 3, 5, 19, 30)


def _bill(*members, name: str = "Dinner") -> SimpleNamespace:
    return SimpleNamespace(name=name, image_uri=None, members=list(members))


def _member(share: str, is_me: bool = False) -> SimpleNamespace:
    return SimpleNamespace(share_amount=Decimal(share), is_me=is_me)


def _payload() -> dict:
    """Shape produced by SplitBillInputSchema().load()."""
    return {
        "name": "Dinner",
        "image_uri": None,
        "items": [
            {"name": " Pizza ", "category": "Lainnya", "amount": Decimal("15000"),
             "assigned_to": ["me", "b"]},
            {"name": "Tea", "category": "Lainnya", "amount": Decimal("5000"),
             "assigned_to": ["me"]},
            {"name": "Tip", "category": "Lainnya", "amount": Decimal("2000"),
             "assigned_to": []},
        ],
        "members": [
            {"key": "me", "name": "Saya", "is_me": True},
            {"key": "b", "name": "Budi", "is_me": False},
        ],
    }


# ═══════════════════════════════════════════════════════════════════════════
# Draft building and warnings
# ═══════════════════════════════════════════════════════════════════════════

def test_build_draft_reaches_summary():
    draft = split_bill_service.build_draft(_payload())

    assert draft.step == DraftStep.SUMMARY
    assert draft.items[0].name == "Pizza"
    summary = draft.summary()
    assert summary.total == Decimal("22000")
    assert summary.shares == {"me": Decimal("12500"), "b": Decimal("7500")}


def test_build_draft_fills_configured_defaults():
    payload = _payload()
    payload["items"][0]["category"] = None
    payload["members"][0]["name"] = None

    draft = split_bill_service.build_draft(
        payload, default_category="Lainnya", me_name="Saya",
    )

    assert draft.items[0].category == "Lainnya"
    assert draft.items[1].category == "Lainnya"
    assert draft.members[0].name == "Saya"


def test_build_draft_neutral_defaults():
    payload = _payload()
    payload["items"][0]["category"] = None
    payload["members"][0]["name"] = None

    draft = split_bill_service.build_draft(payload)

    assert draft.items[0].category == "Other"
    assert draft.members[0].name == "Me"


def test_unassigned_warning_lists_items():
    summary = split_bill_service.build_draft(_payload()).summary()

    warnings = split_bill_service.unassigned_warning(summary)

    assert len(warnings) == 1
    assert warnings[0]["code"] == WarningCode.UNASSIGNED_ITEMS
    assert warnings[0]["items"] == ["Tip"]


def test_no_warning_when_everything_assigned():
    payload = _payload()
    payload["items"] = payload["items"][:2]
    summary = split_bill_service.build_draft(payload).summary()

    assert split_bill_service.unassigned_warning(summary) == []


# ═══════════════════════════════════════════════════════════════════════════
# Category choice for "my share"
# ═══════════════════════════════════════════════════════════════════════════

def test_pick_share_category_prefers_hint_match():
    categories = [
        SimpleNamespace(id=1, name="Transport"),
        SimpleNamespace(id=2, name="Makanan & Minuman"),
    ]
    picked = split_bill_service._pick_share_category(categories, ("makan", "food"))
    assert picked.id == 2


def test_pick_share_category_falls_back_to_first():
    categories = [SimpleNamespace(id=4, name="Transport"), SimpleNamespace(id=5, name="Other")]
    picked = split_bill_service._pick_share_category(categories, ("makan", "food"))
    assert picked.id == 4


def test_pick_share_category_empty():
    assert split_bill_service._pick_share_category([], ("food",)) is None


# ═══════════════════════════════════════════════════════════════════════════
# apply_my_share_to_expenses
# ═══════════════════════════════════════════════════════════════════════════

def test_no_me_member_warns():
    txn, warnings = split_bill_service.apply_my_share_to_expenses(
        MagicMock(), _bill(_member("100")), now=NOW
    )
    assert txn is None
    assert [w["code"] for w in warnings] == [WarningCode.NO_ME_MEMBER]


def test_zero_share_warns():
    txn, warnings = split_bill_service.apply_my_share_to_expenses(
        MagicMock(), _bill(_member("0", is_me=True), _member("100")), now=NOW
    )
    assert txn is None
    assert [w["code"] for w in warnings] == [WarningCode.NO_SHARE_FOR_ME]


def test_no_categories_warns():
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = []

    txn, warnings = split_bill_service.apply_my_share_to_expenses(
        session, _bill(_member("12500", is_me=True)), now=NOW
    )

    assert txn is None
    assert [w["code"] for w in warnings] == [WarningCode.NO_CATEGORY]


def test_share_recorded_in_hinted_category():
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = [
        SimpleNamespace(id=1, name="Transport"),
        SimpleNamespace(id=7, name="Food & Drinks"),
    ]

    with patch.object(
        split_bill_service.transaction_service, "create_transaction"
    ) as create:
        create.return_value = SimpleNamespace(id=99)
        txn, warnings = split_bill_service.apply_my_share_to_expenses(
            session, _bill(_member("12500", is_me=True)), now=NOW
        )

    assert txn.id == 99
    assert warnings == []
    create.assert_called_once_with(
        session,
        category_id=7,
        amount=Decimal("12500"),
        date=NOW,
        note="Split Bill: Dinner",
        image_uri=None,
    )


def test_explicit_category_skips_lookup():
    session = MagicMock()

    with patch.object(
        split_bill_service.transaction_service, "create_transaction"
    ) as create:
        split_bill_service.apply_my_share_to_expenses(
            session,
            _bill(_member("500", is_me=True)),
            category_id=3,
            note_prefix="Patungan",
            now=NOW,
        )

    session.execute.assert_not_called()
    assert create.call_args.kwargs["category_id"] == 3
    assert create.call_args.kwargs["note"] == "Patungan: Dinner"


# ═══════════════════════════════════════════════════════════════════════════
# save_split_bill / lookups
# ═══════════════════════════════════════════════════════════════════════════

def test_save_requires_summary_step():
    from backend.app.services.split_allocator import SplitBillDraft

    session = MagicMock()
    with pytest.raises(AppError) as exc_info:
        split_bill_service.save_split_bill(session, SplitBillDraft())

    assert exc_info.value.code == ErrorCode.INVALID_DRAFT_STATE
    session.add.assert_not_called()


def test_save_persists_bill_and_members_in_savepoint():
    session = MagicMock()
    draft = split_bill_service.build_draft(_payload())

    bill, warnings = split_bill_service.save_split_bill(session, draft, now=NOW)

    session.begin_nested.assert_called_once()
    session.add.assert_called_once_with(bill)
    assert bill.total_amount == Decimal("22000")
    assert [(m.name, m.share_amount, m.is_me) for m in bill.members] == [
        ("Saya", Decimal("12500"), True),
        ("Budi", Decimal("7500"), False),
    ]
    assert [w["code"] for w in warnings] == [WarningCode.UNASSIGNED_ITEMS]
    assert draft.step == DraftStep.SAVED


def test_get_split_bill_missing():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        split_bill_service.get_split_bill(session, 3)

    assert exc_info.value.code == ErrorCode.SPLIT_BILL_NOT_FOUND
    assert exc_info.value.http_status == 404


def test_delete_split_bill_missing_is_noop():
    session = MagicMock()
    session.get.return_value = None

    assert split_bill_service.delete_split_bill(session, 3) is False
    session.delete.assert_not_called()
