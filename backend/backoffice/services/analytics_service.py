# Overview: Service-layer operations for analytics metrics.

from __future__ import annotations

from ..extensions import db
from ..models import Metric
from ..validation import ValidationError, coerce_decimal


def create_metric(metric_type, value) -> dict:
    if not isinstance(metric_type, str) or not metric_type.strip():
        raise ValidationError("metric_type is required")
    if len(metric_type.strip()) > 64:
        raise ValidationError("metric_type exceeds max length 64")
    if value is None:
        raise ValidationError("value is required")

    metric = Metric(metric_type=metric_type.strip(), value=coerce_decimal("value", value))
    db.session.add(metric)
    db.session.commit()
    return metric.to_dict()


def list_metrics(metric_type: str | None = None) -> list[dict]:
    """All metrics newest first, optionally for one metric_type."""
    query = db.session.query(Metric)
    if metric_type:
        query = query.filter(Metric.metric_type == metric_type)
    metrics = query.order_by(Metric.created_at.desc(), Metric.id.desc()).all()
    return [m.to_dict() for m in metrics]
