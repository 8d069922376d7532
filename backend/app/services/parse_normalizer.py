"""
services/parse_normalizer.py — Validation and clean-up of external parser output.

The OCR/LLM call itself happens elsewhere. This module receives its raw text
response and turns it into trustworthy records:

  1. extract_candidates() digs JSON out of noisy text (markdown fences,
     leading prose, trailing chatter).
  2. Each candidate is loaded through ParsedCandidateSchema. Failures, blank
     names and non-positive or out-of-range amounts are dropped.
  3. Categories are matched against the user's existing category names.
  4. Receipt lines with the same name are merged.

Nothing here touches the store. PARSE_FAILED (422) means "try again"; the
caller shows a retry prompt and writes nothing.
"""

from __future__ import annotations

import json
import re
import string
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from marshmallow import ValidationError

from backend.app.errors import AppError, ErrorCode, WarningCode, warning
from backend.app.schemas.parse_schema import ParsedCandidateSchema
from backend.app.schemas.validators import MAX_AMOUNT
from backend.app.services.split_allocator import BillLineItem

FALLBACK_CATEGORY = "Other"

_CENT = Decimal("0.01")

# Greedy first so nested brackets survive; lazy as a second chance when the
# greedy span swallows trailing text with another bracket in it.
_ARRAY_PATTERNS = (re.compile(r"\[[\s\S]*\]"), re.compile(r"\[[\s\S]*?\]"))
_OBJECT_PATTERNS = (re.compile(r"\{[\s\S]*\}"), re.compile(r"\{[^{}]*\}"))

_candidate_schema = ParsedCandidateSchema()


@dataclass
class ParsedExpense:
    name: str
    category: str
    amount: Decimal
    count: int = 1      # how many raw candidates were merged into this one


# ── Extraction ─────────────────────────────────────────────────────────────

def _as_candidate_list(value) -> list[dict] | None:
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        return [entry for entry in value if isinstance(entry, dict)]
    return None


def _try_json(text: str) -> list[dict] | None:
    try:
        return _as_candidate_list(json.loads(text))
    except (ValueError, RecursionError):
        return None


def extract_candidates(raw_text: str, expect_list: bool = True) -> list[dict]:
    """
    Pulls candidate records out of `raw_text`.

    Order: the whole text as JSON, then the first [...] span, then the first
    {...} span (object first, array second when expect_list is False).
    A lone object is returned as a one-element list.

    Raises:
        AppError(PARSE_FAILED, 422) if no attempt yields a JSON object or
        array of objects.
    """
    text = (raw_text or "").strip()

    candidates = _try_json(text) if text else None
    if candidates is not None:
        return candidates

    groups = (_ARRAY_PATTERNS, _OBJECT_PATTERNS) if expect_list else (_OBJECT_PATTERNS, _ARRAY_PATTERNS)
    for patterns in groups:
        for pattern in patterns:
            match = pattern.search(text)
            if match is None:
                continue
            candidates = _try_json(match.group(0))
            if candidates is not None:
                return candidates

    raise AppError(
        ErrorCode.PARSE_FAILED,
        "Could not read any expense from the parser response. Please try again.",
        422,
        field="raw_text",
    )


# ── Field normalisation ────────────────────────────────────────────────────

def normalize_category(
        name: str | None,
        available: list[str],
        fallback: str = FALLBACK_CATEGORY,
) -> str:
    """Exact match, then case-insensitive match, then the first available name."""
    name = (name or "").strip()
    if name in available:
        return name
    folded = name.casefold()
    for candidate in available:
        if candidate.casefold() == folded:
            return candidate
    return available[0] if available else fallback


def _pretty_name(name: str) -> str:
    """'NASI GORENG' / 'nasi goreng' → 'Nasi Goreng'; mixed case is kept."""
    if name == name.upper() or name == name.lower():
        return string.capwords(name)
    return name


def _load_candidate(candidate: dict) -> dict | None:
    """Schema-validated candidate, or None if it must be dropped."""
    try:
        loaded = _candidate_schema.load(candidate)
    except ValidationError:
        return None
    name = loaded["name"].strip()
    amount = loaded["amount"]
    if not name or not amount.is_finite() or amount <= 0 or amount > MAX_AMOUNT:
        return None
    loaded["name"] = name
    loaded["amount"] = amount.quantize(_CENT, rounding=ROUND_HALF_UP)
    if loaded["amount"] <= 0:
        return None
    return loaded


def normalize_single(
        candidate: dict,
        available: list[str],
        fallback: str = FALLBACK_CATEGORY,
) -> ParsedExpense | None:
    """Free-text parser result → one ParsedExpense, or None if unusable."""
    loaded = _load_candidate(candidate) if isinstance(candidate, dict) else None
    if loaded is None:
        return None
    return ParsedExpense(
        name=loaded["name"],
        category=normalize_category(loaded["category"], available, fallback),
        amount=loaded["amount"],
    )


def normalize_candidates(
        candidates: list[dict],
        available: list[str],
        fallback: str = FALLBACK_CATEGORY,
) -> list[ParsedExpense]:
    """
    Receipt lines → merged ParsedExpense list, in first-seen order.

    Lines whose trimmed, case-folded names match are merged: amounts are
    summed and the display name gets a " (×N)" suffix. The first line's
    category and display name win.
    """
    merged: dict[str, ParsedExpense] = {}

    for candidate in candidates:
        parsed = normalize_single(candidate, available, fallback)
        if parsed is None:
            continue
        key = parsed.name.casefold()
        existing = merged.get(key)
        if existing is None:
            parsed.name = _pretty_name(parsed.name)
            merged[key] = parsed
        else:
            existing.amount += parsed.amount
            existing.count += 1

    result = list(merged.values())
    for parsed in result:
        if parsed.count > 1:
            parsed.name = f"{parsed.name} (×{parsed.count})"
    return result


# ── Hand-off helpers ───────────────────────────────────────────────────────

def to_line_items(parsed: list[ParsedExpense]) -> list[BillLineItem]:
    """Receipt lines → unassigned split-bill items for the review step."""
    return [
        BillLineItem(name=p.name, amount=p.amount, category=p.category)
        for p in parsed
    ]


def resolve_category_id(name: str, categories) -> int | None:
    """Id of the category called `name` (exact, then case-insensitive)."""
    for category in categories:
        if category.name == name:
            return category.id
    folded = name.casefold()
    for category in categories:
        if category.name.casefold() == folded:
            return category.id
    return None


# ── Entry points used by the parse routes ─────────────────────────────────

def parse_receipt(raw_text: str, available: list[str], fallback: str = FALLBACK_CATEGORY):
    """
    Receipt response → (merged ParsedExpense list, warnings).

    Raises:
        AppError(PARSE_FAILED, 422) if nothing usable survives normalisation.
    """
    candidates = extract_candidates(raw_text, expect_list=True)
    parsed = normalize_candidates(candidates, available, fallback)
    if not parsed:
        raise AppError(
            ErrorCode.PARSE_FAILED,
            "The receipt did not contain any usable line items. Please try again.",
            422,
            field="raw_text",
        )

    warnings = []
    dropped = len(candidates) - sum(p.count for p in parsed)
    if dropped:
        warnings.append(warning(
            WarningCode.CANDIDATES_DROPPED,
            f"{dropped} line(s) had no name or no usable amount and were skipped.",
            dropped=dropped,
        ))
    return parsed, warnings


def parse_free_text(
        raw_text: str,
        available: list[str],
        fallback: str = FALLBACK_CATEGORY,
) -> ParsedExpense:
    """
    Free-text response → exactly one ParsedExpense.

    Raises:
        AppError(PARSE_FAILED, 422) if no usable record is found.
    """
    candidates = extract_candidates(raw_text, expect_list=False)
    for candidate in candidates:
        parsed = normalize_single(candidate, available, fallback)
        if parsed is not None:
            return parsed
    raise AppError(
        ErrorCode.PARSE_FAILED,
        "Could not find an expense with a name and a positive amount. Please try again.",
        422,
        field="raw_text",
    )
