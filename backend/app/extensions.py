"""
extensions.py — Flask extension singletons.

Initialises SQLAlchemy as a module-level object so it can be imported anywhere
without creating circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `db` from here wherever needed.

    from backend.app.extensions import db

Do not pass the app object directly to SQLAlchemy() at import time; that
would prevent running tests with a separate test app instance.

SQLite connection setup
-----------------------
The store is a single SQLite file (in-memory for tests). Two listeners are
registered on every Engine:

  - "connect": turns on PRAGMA foreign_keys (off by default in SQLite, so the
    ON DELETE CASCADE clauses and FK checks would otherwise be ignored) and
    disables pysqlite's own transaction handling.
  - "begin": emits an explicit BEGIN, so DDL run by migrations and the
    SAVEPOINTs used by split_bill_service are really transactional.
"""

from __future__ import annotations

import sqlite3

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine

db = SQLAlchemy()


@event.listens_for(Engine, "connect")
def _sqlite_on_connect(dbapi_connection, connection_record) -> None:
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    # Must run outside a transaction; PRAGMA foreign_keys is a no-op inside one.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    dbapi_connection.isolation_level = None


@event.listens_for(Engine, "begin")
def _sqlite_on_begin(conn) -> None:
    if conn.dialect.name == "sqlite":
        conn.exec_driver_sql("BEGIN")
