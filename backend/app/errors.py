"""
errors.py — AppError base class and error code registry.

Every error returned by the Spendbook API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - New error codes require: add constant here + add a test that raises it.
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    AMOUNT_TOO_LARGE           = "AMOUNT_TOO_LARGE"
    INVALID_DATE_RANGE         = "INVALID_DATE_RANGE"
    DUPLICATE_MEMBER           = "DUPLICATE_MEMBER"
    UNKNOWN_MEMBER             = "UNKNOWN_MEMBER"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    CATEGORY_NOT_FOUND         = "CATEGORY_NOT_FOUND"
    SPLIT_BILL_NOT_FOUND       = "SPLIT_BILL_NOT_FOUND"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    INVALID_DRAFT_STATE        = "INVALID_DRAFT_STATE"

    # ── Business Rule Violations (422) ────────────────────────────────────
    INVALID_AMOUNT             = "INVALID_AMOUNT"         # amount must be > 0
    NO_MEMBERS                 = "NO_MEMBERS"
    NO_ITEMS                   = "NO_ITEMS"

    # ── External Parser Errors (422, recoverable) ─────────────────────────
    PARSE_FAILED               = "PARSE_FAILED"

    # ── System Errors (500) ────────────────────────────────────────────────
    CATEGORIES_NOT_LOADED      = "CATEGORIES_NOT_LOADED"
    MIGRATION_FAILED           = "MIGRATION_FAILED"
    STORAGE_ERROR              = "STORAGE_ERROR"
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings are returned alongside a 2xx response in the `warnings` array.
# They do not block the request.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # Some line items have nobody assigned; their cost is in total_amount
    # but in nobody's share.
    UNASSIGNED_ITEMS = "UNASSIGNED_ITEMS"

    # "Add my share to expenses" was requested but could not be applied.
    NO_ME_MEMBER     = "NO_ME_MEMBER"
    NO_SHARE_FOR_ME  = "NO_SHARE_FOR_ME"
    NO_CATEGORY      = "NO_CATEGORY"

    # Candidate records dropped by the parse normaliser.
    CANDIDATES_DROPPED = "CANDIDATES_DROPPED"


def warning(code: str, message: str, **details) -> dict:
    """Builds one entry of the `warnings` array."""
    payload = {"code": code, "message": message}
    payload.update(details)
    return payload
