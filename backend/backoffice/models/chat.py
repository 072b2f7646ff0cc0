from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class ChatSession(db.Model):
    """
    Conversation state for a WhatsApp customer, keyed by phone number.

    data is an opaque JSON object owned by the automation flow.
    """
    __tablename__ = "chat_sessions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    phone = db.Column(db.String(20), nullable=False, unique=True, index=True)
    data = db.Column(db.JSON, nullable=False, default=dict)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "phone": self.phone,
            "data": self.data or {},
            "updated_at": to_utc_z(self.updated_at),
        }
