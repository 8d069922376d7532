"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time, which gives:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - `flask schema ...` commands without starting the full server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging from LOG_LEVEL
  3. Initialise SQLAlchemy via init_app()
  4. Bring the store schema up to date (AUTO_MIGRATE); a failure aborts
     startup by propagating AppError(MIGRATION_FAILED) out of the factory
  5. Register all route blueprints under /api/v1
  6. Register global error handlers (AppError → JSON, Exception → 500)
  7. Register a custom JSON provider to serialise Decimal as string
  8. Register the `flask schema` CLI group

Note on model imports:
  All model classes are imported inside create_app() so that SQLAlchemy's
  metadata is populated before Alembic inspects it. They are not used
  directly here; the import side-effect is sufficient.
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

import click
from flask import Flask, jsonify, request
from flask.cli import AppGroup
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from backend.config import config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────
# Flask's default JSON encoder does not handle Decimal.
# All monetary amounts are serialised as strings to preserve precision.

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Example: Decimal("15000.50") → "15000.50" (not 15000.5)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".

    Returns:
        A fully configured Flask app ready to serve requests.

    Raises:
        AppError(MIGRATION_FAILED) if AUTO_MIGRATE is on and the schema
        upgrade fails. The store is left exactly as it was.
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from backend.app.extensions import db
    db.init_app(app)

    # ── Model registration + schema ────────────────────────────────────────
    with app.app_context():
        from backend.app.models import (  # noqa: F401
            category,
            split_bill,
            split_bill_member,
            transaction,
        )

        if app.config.get("AUTO_MIGRATE", True):
            from backend.app.services.schema_service import upgrade_schema
            version = upgrade_schema(db.engine)
            app.logger.info("Store schema at version %d.", version)

    # ── Blueprints ─────────────────────────────────────────────────────────
    _register_blueprints(app)

    # ── Error handlers ─────────────────────────────────────────────────────
    _register_error_handlers(app)
    _register_cors(app)

    # ── CLI ────────────────────────────────────────────────────────────────
    _register_cli(app)

    return app


def _configure_logging(app: Flask) -> None:
    """
    Applies LOG_LEVEL to the app logger and to every `backend.*` module
    logger. A basic stderr handler is installed only if the host process has
    not configured logging itself.
    """
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    app.logger.setLevel(level)
    logging.getLogger("backend").setLevel(level)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    The url_prefix is set here so individual route files only specify
    the path relative to their resource (e.g. "" and "/<int:id>").
    """
    from backend.app.routes.analysis import analysis_bp
    from backend.app.routes.categories import categories_bp
    from backend.app.routes.parse import parse_bp
    from backend.app.routes.split_bills import split_bills_bp
    from backend.app.routes.transactions import transactions_bp

    app.register_blueprint(categories_bp,   url_prefix="/api/v1/categories")
    app.register_blueprint(transactions_bp, url_prefix="/api/v1/transactions")
    app.register_blueprint(split_bills_bp,  url_prefix="/api/v1/split-bills")
    app.register_blueprint(parse_bp,        url_prefix="/api/v1/parse")
    # analysis_bp owns both /analysis/* and /dashboard.
    app.register_blueprint(analysis_bp,     url_prefix="/api/v1")


def _first_validation_error(messages, field: str | None = None):
    """
    Walks marshmallow's nested messages to the first leaf.

    {"items": {0: {"amount": ["..."]}}} → ("items.0.amount", "...")
    """
    if isinstance(messages, dict):
        for key, value in messages.items():
            if key == "_schema":
                return _first_validation_error(value, field)
            path = f"{field}.{key}" if field else str(key)
            return _first_validation_error(value, path)
        return field, "Invalid input."
    if isinstance(messages, list):
        if not messages:
            return field, "Invalid value."
        return _first_validation_error(messages[0], field)
    return field, str(messages)


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → marshmallow errors as MISSING_FIELD / INVALID_FIELD or a
                        registered code raised by a validator (400)
      SQLAlchemyError → session rolled back, STORAGE_ERROR (500)
      Exception       → generic INTERNAL_ERROR (500); traceback logged only

    Stack traces never leave the server.
    """
    from backend.app.errors import AppError, ErrorCode
    from backend.app.extensions import db

    known_codes = {
        value for name, value in vars(ErrorCode).items() if not name.startswith("_")
    }

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        (service, route) into the standard error envelope.

        Routes never catch AppError; they let it propagate here.
        """
        if error.http_status >= 500:
            app.logger.error("%r", error)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Returns the FIRST error only ("one error, not many").

        If the message is itself a registered ErrorCode (e.g.
        INVALID_AMOUNT_PRECISION raised by a validator), it is used as the code.
        """
        field, raw_message = _first_validation_error(error.messages)

        if raw_message in known_codes:
            code = raw_message
            message = _code_to_message(code)
        elif raw_message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
            message = raw_message
        else:
            code = ErrorCode.INVALID_FIELD
            message = raw_message

        response_body = {"error": {"code": code, "message": message}}
        if field is not None:
            response_body["error"]["field"] = field
        return jsonify(response_body), 400

    @app.errorhandler(SQLAlchemyError)
    def handle_storage_error(error: SQLAlchemyError):
        """
        A write the service checks did not catch (constraint, locked file...).
        The session is rolled back so the next request starts clean.
        """
        db.session.rollback()
        app.logger.error(
            "Storage error: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.STORAGE_ERROR,
                "message": "The expense store could not complete the operation.",
            }
        }), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.
        The full traceback goes to the application logger only.
        """
        if isinstance(error, HTTPException):
            return error  # 404 / 405 keep their own status
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled when DEBUG or TESTING is true so a frontend served from another
    local port can call the API.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"

        return response


def _register_cli(app: Flask) -> None:
    """
    flask --app "backend.app:create_app()" schema upgrade [TARGET]
    flask --app "backend.app:create_app()" schema version
    """
    from backend.app.extensions import db
    from backend.app.services import schema_service

    schema_cli = AppGroup("schema", help="Inspect and upgrade the store schema.")

    @schema_cli.command("upgrade")
    @click.argument("target", default="head")
    def upgrade_command(target: str) -> None:
        version = schema_service.upgrade_schema(db.engine, target)
        click.echo(f"Schema at version {version}.")

    @schema_cli.command("version")
    def version_command() -> None:
        with db.engine.connect() as connection:
            current = schema_service.current_schema_version(connection)
        click.echo(f"Current: {current}  Latest: {schema_service.head_version()}")

    app.cli.add_command(schema_cli)


def _code_to_message(code: str) -> str:
    """
    Returns a human-readable default message for a known error code.
    Used when a ValidationError message IS the error code constant itself.
    """
    _messages = {
        "INVALID_AMOUNT_PRECISION": "Amount must have at most 2 decimal places.",
        "AMOUNT_TOO_LARGE": "Amount must not exceed 999999999999.99.",
        "DUPLICATE_MEMBER": "The same member key appears more than once.",
        "UNKNOWN_MEMBER": "An item is assigned to a member that is not in the members list.",
    }
    return _messages.get(code, "Invalid input.")
