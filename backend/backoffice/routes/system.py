# backend/backoffice/routes/system.py
"""
System health and version endpoints.

Checks the database and the metrics configuration so a broken deployment
shows up here before it shows up as an all-zero dashboard.
"""

import sys
import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..metrics import ValuationError, ValuationPolicy
from ..metrics.policy import normalize_method
from ..models import Organization, Product
from backoffice.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        org_count = db.session.query(Organization).count()
        product_count = db.session.query(Product).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "organizations": org_count,
                "products": product_count,
            }
        }
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_metrics_config_health() -> dict:
    """Validate the valuation policy and default costing method from config."""
    try:
        policy = ValuationPolicy.from_config(current_app.config)
        method = normalize_method(current_app.config.get("STOCK_ACCOUNTING_METHOD"))
    except (ValuationError, TypeError, ValueError) as exc:
        return {
            "status": "unhealthy",
            "error": str(exc),
        }

    return {
        "status": "healthy",
        "details": {
            "costing_method": method,
            "sale_ratio_with_purchases_bps": policy.sale_ratio_with_purchases_bps,
            "sale_ratio_bps": policy.sale_ratio_bps,
            "cogs_sale_ratio_bps": policy.cogs_sale_ratio_bps,
            "recent_purchases_limit": policy.recent_purchases_limit,
            "cache_seconds": current_app.config.get("METRICS_CACHE_SECONDS", 0),
        }
    }


@system_bp.get("/api/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: All systems healthy
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    metrics_health = check_metrics_config_health()

    all_checks = [database_health, metrics_health]
    unhealthy_count = sum(1 for check in all_checks if check["status"] == "unhealthy")

    if unhealthy_count > 0:
        overall_status = "unhealthy"
        http_status = 503
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "metrics_config": metrics_health,
        }
    }

    return response, http_status


@system_bp.get("/api/version")
def version():
    """
    Version endpoint for deployment debugging.

    Does NOT expose secret keys, database credentials or internal paths.
    """
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
