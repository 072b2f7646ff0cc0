# Overview: Flask API routes for analytics metrics.

from flask import Blueprint, request, current_app

from ..decorators import require_auth
from ..services.analytics_service import create_metric, list_metrics
from ..validation import ValidationError

analytics_bp = Blueprint("analytics", __name__, url_prefix="/analytics")


@analytics_bp.get("")
@require_auth
def list_metrics_route():
    """
    List recorded metrics.

    Query params:
    - metric_type: str (optional)
    """
    items = list_metrics(metric_type=request.args.get("metric_type"))
    return {"items": items, "count": len(items)}, 200


@analytics_bp.post("")
@require_auth
def create_metric_route():
    payload = request.get_json(silent=True) or {}

    try:
        created = create_metric(payload.get("metric_type"), payload.get("value"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to record metric")
        return {"error": "Internal server error"}, 500

    return created, 201
