"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against an in-memory SQLite store. Flask-SQLAlchemy pins it to
    one static connection, so every request in the session sees the same data.
  - The app is created once per session using create_app("testing"). The app
    factory runs the real migrations (AUTO_MIGRATE), so the schema under test
    is exactly the one users get, default categories included.
  - Before each test, all rows are deleted in FK-safe order, the seeded
    default categories included, so every test starts from an empty store and
    creates what it needs. Migration seeding is covered separately in
    test_migrations.py against a file store.

Helper functions (not fixtures) are provided for common operations:
  - make_category(client, ...)     → category dict
  - make_transaction(client, ...)  → HTTP response
  - amount(value)                  → Decimal of a string amount from a response

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import text

from backend.app import create_app
from backend.app.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.

    create_app() migrates the in-memory store to the latest schema version.
    """
    flask_app = create_app("testing")
    yield flask_app

    with flask_app.app_context():
        _db.session.remove()
        _db.engine.dispose()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows before every test in FK-safe order.

    autouse=True means this runs before EVERY test in the integration suite
    without needing to be declared in each test function.

    The session is removed first: the store has a single shared connection and
    any transaction left open by a failed test would block the DELETEs.
    """
    with app.app_context():
        _db.session.remove()
        with _db.engine.begin() as conn:
            conn.execute(text("DELETE FROM split_bill_members"))
            conn.execute(text("DELETE FROM split_bills"))
            conn.execute(text("DELETE FROM transactions"))
            conn.execute(text("DELETE FROM categories"))

    yield  # run the test

    with app.app_context():
        _db.session.remove()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def make_category(
    client,
    name: str = "Food",
    icon: str | None = "emoji:🍔",
    color: str | None = "#ff9900",
    budget_limit: str | None = None,
) -> dict:
    """Creates a category and returns the category data dict."""
    payload = {"name": name, "icon": icon, "color": color}
    if budget_limit is not None:
        payload["budget_limit"] = budget_limit
    resp = client.post("/api/v1/categories", json=payload)
    assert resp.status_code == 201, f"make_category failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_transaction(
    client,
    category_id: int,
    amount: str = "15000",
    date: str | None = None,
    note: str | None = None,
    image_uri: str | None = None,
):
    """Records an expense. Returns the HTTP response (status not asserted)."""
    payload = {"category_id": category_id, "amount": amount}
    if date is not None:
        payload["date"] = date
    if note is not None:
        payload["note"] = note
    if image_uri is not None:
        payload["image_uri"] = image_uri
    return client.post("/api/v1/transactions", json=payload)


def amount(value: str) -> Decimal:
    """Amounts are serialised as strings; compare them as Decimals."""
    return Decimal(value)
