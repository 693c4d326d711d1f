# Overview: Flask API routes for dashboard metrics and stock valuation; parses input and returns JSON responses.

"""
Metrics Routes

Tenant resolution and authentication live in front of this service; callers
pass the already-resolved org_id.
"""

from flask import Blueprint, current_app, jsonify, request

from ..services import metrics_service
from ..services.metrics_service import MetricsError, OrganizationNotFoundError
from ..services.snapshot_service import SnapshotFetchError


metrics_bp = Blueprint("metrics", __name__, url_prefix="/api/metrics")


@metrics_bp.get("/dashboard")
def dashboard_route():
    org_id = request.args.get("org_id", type=int)
    if not org_id:
        return jsonify({"error": "org_id is required"}), 400

    refresh = request.args.get("refresh", "false").lower() == "true"

    try:
        result = metrics_service.dashboard_metrics(
            org_id=org_id,
            start=request.args.get("start"),
            end=request.args.get("end"),
            refresh=refresh,
        )
        return jsonify(result), 200
    except OrganizationNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    except MetricsError as exc:
        return jsonify({"error": str(exc)}), 400


@metrics_bp.get("/inventory-valuation")
def inventory_valuation_route():
    org_id = request.args.get("org_id", type=int)
    if not org_id:
        return jsonify({"error": "org_id is required"}), 400

    try:
        result = metrics_service.inventory_valuation(org_id=org_id)
        return jsonify(result), 200
    except OrganizationNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    except MetricsError as exc:
        return jsonify({"error": str(exc)}), 400
    except SnapshotFetchError:
        current_app.logger.exception("Failed to load inventory valuation")
        return jsonify({"error": "Inventory data unavailable"}), 503
