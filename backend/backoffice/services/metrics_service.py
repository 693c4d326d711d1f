# Overview: Service-layer entry point for dashboard metrics; resolves tenant, window and policy, then runs the engine.

from __future__ import annotations

import threading
import time
from datetime import date
from typing import Any, Hashable

from flask import current_app

from ..extensions import db
from ..metrics import DateWindow, ValuationError, ValuationPolicy, compute_metrics, empty_metrics, valuation_report
from ..metrics.policy import normalize_method
from ..models import Organization
from ..time_utils import days_ago, parse_iso_date, utctoday
from .snapshot_service import SnapshotFetchError, fetch_snapshot


class MetricsError(Exception):
    """Raised when a metrics request is invalid (400-level)."""
    pass


class OrganizationNotFoundError(MetricsError):
    """Raised when the requested tenant does not exist or is inactive."""
    pass


class MetricsCache:
    """
    Small TTL memo for finished metrics records.

    Keys are (org_id, start_date, end_date, costing_method). Entries are
    stored and returned as copies so callers cannot mutate cached data.
    """

    def __init__(self):
        self._entries: dict[Hashable, tuple[float, dict]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable, ttl_seconds: int) -> dict | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if time.monotonic() - stored_at > ttl_seconds:
                del self._entries[key]
                return None
            return dict(value)

    def put(self, key: Hashable, value: dict) -> None:
        with self._lock:
            self._entries[key] = (time.monotonic(), dict(value))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


_cache = MetricsCache()


def clear_cache() -> None:
    _cache.clear()


def _get_org(org_id: int) -> Organization:
    org = db.session.query(Organization).filter_by(id=org_id).first()
    if not org or not org.is_active:
        raise OrganizationNotFoundError("Organization not found")
    return org


def resolve_window(start: str | None, end: str | None, *, default_days: int = 30) -> DateWindow:
    """
    Build the inclusive date window from "YYYY-MM-DD" strings.

    Missing end defaults to today (UTC); missing start defaults to
    default_days days ending on end.
    """
    try:
        end_date = parse_iso_date(end) or utctoday()
        start_date = parse_iso_date(start) or days_ago(end_date, default_days - 1)
    except ValueError:
        raise MetricsError("start and end must be dates in YYYY-MM-DD format")

    try:
        return DateWindow(start_date=start_date, end_date=end_date)
    except ValueError as exc:
        raise MetricsError(str(exc))


def resolve_method(org: Organization, config: dict[str, Any]) -> str:
    """Tenant setting wins over the configured default."""
    try:
        default = normalize_method(config.get("STOCK_ACCOUNTING_METHOD"))
        return normalize_method(org.stock_accounting_method, default=default)
    except ValuationError as exc:
        raise MetricsError(str(exc))


def _cache_key(org_id: int, window: DateWindow, method: str) -> tuple[int, date, date, str]:
    return (org_id, window.start_date, window.end_date, method)


def dashboard_metrics(
    *,
    org_id: int,
    start: str | None = None,
    end: str | None = None,
    refresh: bool = False,
) -> dict:
    """
    Compute the flat dashboard metrics record for a tenant and window.

    DEGRADED: if the snapshot cannot be fetched the failure is logged and an
    all-zero record of the same shape is returned. Degraded records are
    never cached.
    """
    config = current_app.config
    logger = current_app.logger

    org = _get_org(org_id)
    window = resolve_window(start, end, default_days=config.get("METRICS_DEFAULT_WINDOW_DAYS", 30))
    method = resolve_method(org, config)
    policy = ValuationPolicy.from_config(config)

    ttl = int(config.get("METRICS_CACHE_SECONDS", 0) or 0)
    key = _cache_key(org.id, window, method)
    if ttl and not refresh:
        cached = _cache.get(key, ttl)
        if cached is not None:
            return cached

    try:
        snapshot = fetch_snapshot(
            org.id,
            window,
            max_workers=config.get("METRICS_FETCH_WORKERS", 6),
            logger=logger,
        )
    except SnapshotFetchError:
        logger.exception("Failed to fetch metrics snapshot for org_id=%s", org.id)
        return empty_metrics(window, method).to_dict()

    result = compute_metrics(snapshot, policy=policy, method=method, logger=logger).to_dict()
    if ttl:
        _cache.put(key, result)
    return result


def inventory_valuation(*, org_id: int) -> dict:
    """
    Per-product stock valuation for a tenant.

    Stock and batches are not windowed, so the default window only affects
    the unused windowed parts of the snapshot. Raises SnapshotFetchError on
    fetch failure; there is no meaningful degraded valuation.
    """
    config = current_app.config
    logger = current_app.logger

    org = _get_org(org_id)
    window = resolve_window(None, None, default_days=config.get("METRICS_DEFAULT_WINDOW_DAYS", 30))
    method = resolve_method(org, config)
    policy = ValuationPolicy.from_config(config)

    snapshot = fetch_snapshot(
        org.id,
        window,
        max_workers=config.get("METRICS_FETCH_WORKERS", 6),
        logger=logger,
    )
    return valuation_report(snapshot, policy=policy, method=method)
