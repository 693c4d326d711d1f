# backend/backoffice/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int, min_value: int | None = None) -> int:
    raw = os.environ.get(name)
    if raw is None:
        value = default
    else:
        try:
            value = int(raw)
        except ValueError:
            value = default
    if min_value is not None:
        return max(min_value, value)
    return value


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/backoffice.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///backoffice.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Snapshot queries run on worker threads; SQLite connections must be shareable
    SQLALCHEMY_ENGINE_OPTIONS = (
        {"connect_args": {"check_same_thread": False}}
        if SQLALCHEMY_DATABASE_URI.startswith("sqlite")
        else {"pool_pre_ping": True}
    )

    # Metrics engine
    METRICS_FETCH_WORKERS = _env_int("METRICS_FETCH_WORKERS", 6, min_value=1)
    METRICS_CACHE_SECONDS = _env_int("METRICS_CACHE_SECONDS", 120, min_value=0)
    METRICS_DEFAULT_WINDOW_DAYS = _env_int("METRICS_DEFAULT_WINDOW_DAYS", 30, min_value=1)
    RECENT_PURCHASES_LIMIT = _env_int("RECENT_PURCHASES_LIMIT", 10, min_value=1)

    # Valuation policy (ratios in basis points: 7000 = 70%)
    STOCK_ACCOUNTING_METHOD = os.environ.get("STOCK_ACCOUNTING_METHOD", "FIFO").upper()
    VALUATION_SALE_RATIO_WITH_PURCHASES_BPS = _env_int(
        "VALUATION_SALE_RATIO_WITH_PURCHASES_BPS", 7000, min_value=0
    )
    VALUATION_SALE_RATIO_BPS = _env_int("VALUATION_SALE_RATIO_BPS", 6000, min_value=0)
    COGS_SALE_RATIO_BPS = _env_int("COGS_SALE_RATIO_BPS", 7000, min_value=0)
