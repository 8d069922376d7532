"""
services/split_allocator.py — Split-bill draft and share computation.

Pure module: no DB session, no Flask.

A bill is built up as a draft that walks through five steps:

    UPLOAD → REVIEW → MEMBERS → ASSIGN → SUMMARY → SAVED
                                                 ↘ DISCARDED (from any open step)

Moving forward skips nothing: go_to() only accepts the next step. Moving back
is always allowed. SAVED and DISCARDED are terminal; any operation on a
closed draft raises INVALID_DRAFT_STATE (409).

Share computation:
  - Each line item is divided equally among the members assigned to it.
  - Items with nobody assigned contribute to the bill total but to nobody's
    share. The caller warns about them; saving is not blocked.
  - Accumulation is exact (fractions.Fraction). The result is the same for
    any order of items or members, the shares never sum above the bill total,
    and they equal it exactly when every item is assigned.
  - round_share() rounds UP to the currency unit; that is the figure shown
    and persisted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from fractions import Fraction

from backend.app.errors import AppError, ErrorCode

ME_KEY = "me"
DEFAULT_ME_NAME = "Me"
DEFAULT_ITEM_CATEGORY = "Other"
DEFAULT_BILL_NAME = "Split Bill"


class DraftStep(str, Enum):
    UPLOAD = "upload"
    REVIEW = "review"
    MEMBERS = "members"
    ASSIGN = "assign"
    SUMMARY = "summary"
    SAVED = "saved"
    DISCARDED = "discarded"


_FLOW = [
    DraftStep.UPLOAD,
    DraftStep.REVIEW,
    DraftStep.MEMBERS,
    DraftStep.ASSIGN,
    DraftStep.SUMMARY,
]
_CLOSED = (DraftStep.SAVED, DraftStep.DISCARDED)


@dataclass
class BillLineItem:
    name: str
    amount: Decimal
    category: str = DEFAULT_ITEM_CATEGORY
    assigned_to: set[str] = field(default_factory=set)


@dataclass(frozen=True)
class BillMember:
    key: str
    name: str
    is_me: bool = False


@dataclass
class DraftSummary:
    name: str
    total: Decimal
    shares: dict[str, Decimal]            # rounded, keyed by member key
    exact_shares: dict[str, Fraction]
    unassigned: list[BillLineItem]


# ── Share arithmetic ───────────────────────────────────────────────────────

def bill_total(items: list[BillLineItem]) -> Decimal:
    """Sum of every item amount, assigned or not."""
    return sum((item.amount for item in items), Decimal("0"))


def unassigned_items(items: list[BillLineItem]) -> list[BillLineItem]:
    return [item for item in items if not item.assigned_to]


def compute_shares(
        items: list[BillLineItem],
        members: list[BillMember],
) -> dict[str, Fraction]:
    """
    Exact, unrounded share per member key. Every member appears in the
    result, with Fraction(0) when nothing is assigned to them.

    Raises:
        AppError(UNKNOWN_MEMBER, 400) if an item is assigned to a key that is
        not among `members`.
    """
    shares: dict[str, Fraction] = {member.key: Fraction(0) for member in members}

    for item in items:
        if not item.assigned_to:
            continue
        unknown = item.assigned_to - set(shares)
        if unknown:
            raise AppError(
                ErrorCode.UNKNOWN_MEMBER,
                f"Item {item.name!r} is assigned to unknown member(s) "
                f"{', '.join(sorted(unknown))}.",
                400,
                field="assigned_to",
            )
        portion = Fraction(item.amount) / len(item.assigned_to)
        for key in item.assigned_to:
            shares[key] += portion

    return shares


def round_share(share: Fraction | Decimal, unit: Decimal = Decimal("1")) -> Decimal:
    """Ceiling of `share` to a whole multiple of `unit`. 12499.01 → 12500."""
    if unit <= 0:
        raise ValueError("Rounding unit must be positive.")
    steps = math.ceil(Fraction(share) / Fraction(unit))
    return Decimal(steps) * unit


# ── Draft ──────────────────────────────────────────────────────────────────

class SplitBillDraft:
    """In-progress split bill. Holds items, members and the current step."""

    def __init__(
            self,
            name: str = "",
            image_uri: str | None = None,
            me_name: str = DEFAULT_ME_NAME,
            rounding_unit: Decimal = Decimal("1"),
    ) -> None:
        self.name = name
        self.image_uri = image_uri
        self.rounding_unit = rounding_unit
        self.step = DraftStep.UPLOAD
        self.items: list[BillLineItem] = []
        self.members: list[BillMember] = [BillMember(ME_KEY, me_name, is_me=True)]
        self._next_member_id = 1

    @classmethod
    def build(
            cls,
            name: str,
            items: list[BillLineItem],
            members: list[BillMember],
            image_uri: str | None = None,
            rounding_unit: Decimal = Decimal("1"),
    ) -> "SplitBillDraft":
        """
        Builds a draft from a complete payload and walks it to SUMMARY,
        applying the same checks an interactive session would.
        """
        draft = cls(name=name, image_uri=image_uri, rounding_unit=rounding_unit)
        assignments = [set(item.assigned_to) for item in items]
        draft.load_items(
            [BillLineItem(i.name, i.amount, i.category) for i in items]
        )
        draft.go_to(DraftStep.MEMBERS)
        draft.set_members(members)
        draft.go_to(DraftStep.ASSIGN)
        for index, keys in enumerate(assignments):
            for key in sorted(keys):
                draft.toggle_assignment(index, key)
        draft.go_to(DraftStep.SUMMARY)
        return draft

    # ── State guards ───────────────────────────────────────────────────────

    @property
    def is_closed(self) -> bool:
        return self.step in _CLOSED

    def _require_open(self) -> None:
        if self.is_closed:
            raise AppError(
                ErrorCode.INVALID_DRAFT_STATE,
                f"Split bill draft is already {self.step.value}.",
                409,
            )

    def _require_step(self, *steps: DraftStep) -> None:
        self._require_open()
        if self.step not in steps:
            allowed = ", ".join(s.value for s in steps)
            raise AppError(
                ErrorCode.INVALID_DRAFT_STATE,
                f"Operation not allowed in step {self.step.value!r} (allowed: {allowed}).",
                409,
            )

    def _item(self, index: int) -> BillLineItem:
        if not 0 <= index < len(self.items):
            raise AppError(
                ErrorCode.INVALID_FIELD,
                f"No line item at position {index}.",
                400,
                field="items",
            )
        return self.items[index]

    def _member_keys(self) -> set[str]:
        return {member.key for member in self.members}

    # ── Navigation ─────────────────────────────────────────────────────────

    def go_to(self, step: DraftStep) -> None:
        """Forward to the next step only; backward to any earlier step."""
        self._require_open()
        if step not in _FLOW:
            raise AppError(
                ErrorCode.INVALID_DRAFT_STATE,
                f"Cannot navigate to {step.value!r}; use mark_saved() or discard().",
                409,
            )
        current, target = _FLOW.index(self.step), _FLOW.index(step)
        if target > current + 1:
            raise AppError(
                ErrorCode.INVALID_DRAFT_STATE,
                f"Cannot skip from {self.step.value!r} to {step.value!r}.",
                409,
            )
        self.step = step

    def next_step(self) -> None:
        self._require_open()
        current = _FLOW.index(self.step)
        if current + 1 >= len(_FLOW):
            raise AppError(
                ErrorCode.INVALID_DRAFT_STATE,
                "Already at the summary step.",
                409,
            )
        self.go_to(_FLOW[current + 1])

    # ── Items ──────────────────────────────────────────────────────────────

    @staticmethod
    def _check_amount(amount: Decimal) -> None:
        if amount < 0:
            raise AppError(
                ErrorCode.INVALID_AMOUNT,
                f"Line item amount must not be negative (got {amount}).",
                422,
                field="amount",
            )

    def load_items(self, items: list[BillLineItem]) -> None:
        """Replaces the item list (e.g. from a parsed receipt) and opens REVIEW."""
        self._require_step(DraftStep.UPLOAD, DraftStep.REVIEW)
        for item in items:
            self._check_amount(item.amount)
        self.items = list(items)
        self.step = DraftStep.REVIEW

    def add_item(
            self,
            name: str,
            amount: Decimal,
            category: str = DEFAULT_ITEM_CATEGORY,
    ) -> int:
        """Appends an unassigned item and returns its position."""
        self._require_open()
        self._check_amount(amount)
        self.items.append(BillLineItem(name=name, amount=amount, category=category))
        return len(self.items) - 1

    def update_item(self, index: int, **changes) -> BillLineItem:
        """Changes name, amount and/or category. Assignments are kept."""
        self._require_open()
        item = self._item(index)
        for key in ("name", "amount", "category"):
            if key not in changes:
                continue
            if key == "amount":
                self._check_amount(changes[key])
            setattr(item, key, changes[key])
        return item

    def remove_item(self, index: int) -> BillLineItem:
        self._require_open()
        self._item(index)
        return self.items.pop(index)

    # ── Members ────────────────────────────────────────────────────────────

    def set_members(self, members: list[BillMember]) -> None:
        """
        Replaces the member list. Assignments to keys that are no longer
        present are dropped.
        """
        self._require_open()
        seen: set[str] = set()
        for member in members:
            if member.key in seen:
                raise AppError(
                    ErrorCode.DUPLICATE_MEMBER,
                    f"Member key {member.key!r} appears more than once.",
                    400,
                    field="members",
                )
            if not member.name.strip():
                raise AppError(
                    ErrorCode.INVALID_FIELD,
                    "Member name must not be blank.",
                    400,
                    field="members",
                )
            seen.add(member.key)
        self.members = list(members)
        for item in self.items:
            item.assigned_to &= seen

    def add_member(self, name: str, key: str | None = None, is_me: bool = False) -> BillMember:
        self._require_open()
        if not name.strip():
            raise AppError(
                ErrorCode.INVALID_FIELD,
                "Member name must not be blank.",
                400,
                field="name",
            )
        if key is None:
            key = f"m{self._next_member_id}"
            while key in self._member_keys():
                self._next_member_id += 1
                key = f"m{self._next_member_id}"
            self._next_member_id += 1
        if key in self._member_keys():
            raise AppError(
                ErrorCode.DUPLICATE_MEMBER,
                f"Member key {key!r} already exists.",
                400,
                field="key",
            )
        member = BillMember(key=key, name=name.strip(), is_me=is_me)
        self.members.append(member)
        return member

    def remove_member(self, key: str) -> None:
        """Removes the member and strips them from every item assignment."""
        self._require_open()
        if key not in self._member_keys():
            raise AppError(
                ErrorCode.UNKNOWN_MEMBER,
                f"No member with key {key!r}.",
                400,
                field="key",
            )
        self.members = [m for m in self.members if m.key != key]
        for item in self.items:
            item.assigned_to.discard(key)

    # ── Assignment ─────────────────────────────────────────────────────────

    def _require_member(self, key: str) -> None:
        if key not in self._member_keys():
            raise AppError(
                ErrorCode.UNKNOWN_MEMBER,
                f"No member with key {key!r}.",
                400,
                field="assigned_to",
            )

    def toggle_assignment(self, index: int, key: str) -> bool:
        """Flips one member on one item. Returns True if now assigned."""
        self._require_open()
        self._require_member(key)
        item = self._item(index)
        if key in item.assigned_to:
            item.assigned_to.discard(key)
            return False
        item.assigned_to.add(key)
        return True

    def toggle_member_on_all_items(self, key: str) -> bool:
        """
        If the member is on every item, removes them from all; otherwise adds
        them to all. Returns True if the member is now on every item.
        """
        self._require_open()
        self._require_member(key)
        on_all = bool(self.items) and all(key in item.assigned_to for item in self.items)
        for item in self.items:
            if on_all:
                item.assigned_to.discard(key)
            else:
                item.assigned_to.add(key)
        return not on_all and bool(self.items)

    # ── Results ────────────────────────────────────────────────────────────

    def summary(self) -> DraftSummary:
        exact = compute_shares(self.items, self.members)
        return DraftSummary(
            name=self.name.strip() or DEFAULT_BILL_NAME,
            total=bill_total(self.items),
            shares={key: round_share(value, self.rounding_unit) for key, value in exact.items()},
            exact_shares=exact,
            unassigned=unassigned_items(self.items),
        )

    def validate_complete(self) -> None:
        """Checks a SUMMARY draft has something to save."""
        self._require_step(DraftStep.SUMMARY)
        if not self.items:
            raise AppError(ErrorCode.NO_ITEMS, "The bill has no line items.", 422, field="items")
        if not self.members:
            raise AppError(ErrorCode.NO_MEMBERS, "The bill has no members.", 422, field="members")

    def mark_saved(self) -> None:
        self.validate_complete()
        self.step = DraftStep.SAVED

    def discard(self) -> None:
        self._require_open()
        self.step = DraftStep.DISCARDED
