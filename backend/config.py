import os
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv


_BACKEND_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _BACKEND_DIR.parent

# Root .env is canonical; backend/.env remains a backward-compatible fallback.
load_dotenv(_PROJECT_ROOT / ".env")
load_dotenv(_BACKEND_DIR / ".env")


def _first_non_empty_env(*names: str, default: str) -> str:
    """Returns the first non-empty env var value from `names`, else `default`."""
    for name in names:
        value = os.getenv(name)
        if value is not None and value != "":
            return value
    return default


def _parse_int_env(*names: str, default: int) -> int:
    """Parses the first non-empty env var in `names` as int, else returns `default`."""
    raw = _first_non_empty_env(*names, default=str(default))
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _parse_bool_env(*names: str, default: bool) -> bool:
    """Parses the first non-empty env var in `names` as a boolean flag."""
    raw = _first_non_empty_env(*names, default="1" if default else "0")
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _default_sqlite_uri() -> str:
    """
    Resolves the store location.

    Preferred var:
      DATABASE_URL (any SQLAlchemy URL)

    Fallback:
      SPENDBOOK_DB_PATH (path to a SQLite file), else backend/spendbook.db
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    db_path = _first_non_empty_env(
        "SPENDBOOK_DB_PATH",
        default=str(_BACKEND_DIR / "spendbook.db"),
    )
    return f"sqlite:///{db_path}"


class BaseConfig:

    SECRET_KEY: str = _first_non_empty_env(
        "SECRET_KEY",
        default="change-me-in-production",
    )

    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False

    JSON_SORT_KEYS: bool = False

    # Run pending schema migrations inside create_app(). A failure aborts startup.
    AUTO_MIGRATE: bool = _parse_bool_env("AUTO_MIGRATE", default=True)

    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="INFO")

    # ── Record store defaults ──────────────────────────────────────────────
    RECENT_TRANSACTIONS_LIMIT: int = _parse_int_env(
        "RECENT_TRANSACTIONS_LIMIT", default=20
    )
    DEFAULT_TRANSACTION_NOTE: str = "No note"

    # ── Split bill ─────────────────────────────────────────────────────────
    # Member shares are rounded UP to a multiple of this unit when persisted.
    SHARE_ROUNDING_UNIT: Decimal = Decimal(
        _first_non_empty_env("SHARE_ROUNDING_UNIT", default="1")
    )
    # Case-insensitive substrings used to guess the category for "my share".
    MY_SHARE_CATEGORY_HINTS: tuple[str, ...] = ("makan", "food")
    MY_SHARE_NOTE_PREFIX: str = "Split Bill"
    # Display defaults for a split-bill payload that leaves them out.
    SPLIT_BILL_ME_NAME: str = "Saya"
    SPLIT_BILL_ITEM_CATEGORY: str = "Lainnya"

    # ── Parse normaliser ───────────────────────────────────────────────────
    FALLBACK_CATEGORY_NAME: str = "Other"


class DevelopmentConfig(BaseConfig):
    DEBUG:   bool = True
    TESTING: bool = False

    SQLALCHEMY_DATABASE_URI: str = _default_sqlite_uri()
    SQLALCHEMY_ECHO: bool = False
    LOG_LEVEL: str = _first_non_empty_env("LOG_LEVEL", default="DEBUG")


class TestingConfig(BaseConfig):

    DEBUG:   bool = True
    TESTING: bool = True

    # In-memory SQLite; Flask-SQLAlchemy pins it to a single static connection.
    SQLALCHEMY_DATABASE_URI: str = os.getenv("TEST_DATABASE_URL", "sqlite://")
    SQLALCHEMY_ECHO: bool = False
    LOG_LEVEL: str = "WARNING"


class ProductionConfig(BaseConfig):

    DEBUG:   bool = False
    TESTING: bool = False
    SQLALCHEMY_ECHO: bool = False

    # Resolve at class definition time (import time).
    SQLALCHEMY_DATABASE_URI: str = _first_non_empty_env(
        "DATABASE_URL",
        "SPENDBOOK_DB_URL",
        default="",
    )


def validate_production_config(app) -> None:
    """
    Fail-fast guard for production configuration.

    Must be called in the app factory immediately after
    app.config.from_object(ProductionConfig):

        app.config.from_object(ProductionConfig)
        validate_production_config(app)   # raises ValueError if misconfigured

    Raises ValueError if any required production value is missing or insecure.
    """
    if not app.config.get("SQLALCHEMY_DATABASE_URI"):
        raise ValueError(
            "DATABASE_URL environment variable is required in production. "
            "Set it to the SQLAlchemy URL of the expense store."
        )
    if app.config.get("SECRET_KEY") == "change-me-in-production":
        raise ValueError(
            "SECRET_KEY must be set to a strong random value in production. "
            "Do not use the default placeholder."
        )
    if app.config.get("SHARE_ROUNDING_UNIT", Decimal("1")) <= 0:
        raise ValueError("SHARE_ROUNDING_UNIT must be a positive amount.")


# ── Config selector ────────────────────────────────────────────────────────
#
# Used by the app factory:
#   from backend.config import config_by_name
#   app.config.from_object(config_by_name[flask_env])
# ──────────────────────────────────────────────────────────────────────────

config_by_name: dict[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing":     TestingConfig,
    "production":  ProductionConfig,
}

# Convenience alias: resolves the active config class from FLASK_ENV.
# Defaults to development if the variable is not set.
ActiveConfig: type[BaseConfig] = config_by_name.get(
    os.getenv("FLASK_ENV", "development"),
    DevelopmentConfig,
)
