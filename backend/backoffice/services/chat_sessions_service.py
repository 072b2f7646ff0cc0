# Overview: Service-layer operations for WhatsApp chat sessions.

"""
Conversation state per customer phone, read and written by the automation
flow between WhatsApp messages.
"""

from __future__ import annotations

from ..extensions import db
from ..models import ChatSession
from ..time_utils import utcnow
from ..validation import ValidationError, normalize_chat_phone


def get_or_create_session(phone) -> ChatSession:
    phone = normalize_chat_phone(phone)

    session = db.session.query(ChatSession).filter_by(phone=phone).first()
    if session is None:
        session = ChatSession(phone=phone, data={}, updated_at=utcnow())
        db.session.add(session)
        db.session.commit()

    return session


def update_session(phone, data) -> dict:
    """Shallow-merge data into the stored state. Returns the merged state."""
    if not isinstance(data, dict):
        raise ValidationError("data must be a JSON object")

    session = get_or_create_session(phone)

    # Assign a new dict so the JSON column is flagged dirty
    session.data = {**(session.data or {}), **data}
    session.updated_at = utcnow()
    db.session.commit()

    return session.data


def clear_session(phone) -> ChatSession:
    session = get_or_create_session(phone)
    session.data = {}
    session.updated_at = utcnow()
    db.session.commit()
    return session
