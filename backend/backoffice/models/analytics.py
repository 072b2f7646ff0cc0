from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .catalog import money_str


class Metric(db.Model):
    """Point-in-time business metric pushed by the automation layer."""
    __tablename__ = "analytics"
    __table_args__ = (
        db.Index("ix_analytics_type_created", "metric_type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    metric_type = db.Column(db.String(64), nullable=False)
    value = db.Column(db.Numeric(14, 2), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "metric_type": self.metric_type,
            "value": money_str(self.value),
            "created_at": to_utc_z(self.created_at),
        }
