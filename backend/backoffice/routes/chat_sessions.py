# Overview: Flask API routes for WhatsApp conversation state.

# backend/backoffice/routes/chat_sessions.py
"""
Chat session routes.

The automation flow reads the state for a phone before answering a message
and writes back what it learned (selected product, quantity, step, ...).
"""
from flask import Blueprint, request, current_app

from ..decorators import require_auth
from ..services.chat_sessions_service import (
    get_or_create_session,
    update_session,
    clear_session,
)
from ..validation import ValidationError, normalize_chat_phone

chat_sessions_bp = Blueprint("chat_sessions", __name__, url_prefix="/chat-sessions")


@chat_sessions_bp.get("/<phone>")
@require_auth
def get_chat_session_route(phone: str):
    try:
        session = get_or_create_session(phone)
    except ValidationError as e:
        return {"error": str(e)}, 400
    return session.to_dict(), 200


@chat_sessions_bp.put("/<phone>")
@require_auth
def update_chat_session_route(phone: str):
    """Shallow-merge the JSON body into the stored state."""
    payload = request.get_json(silent=True)

    try:
        data = update_session(phone, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to update chat session")
        return {"error": "Internal server error"}, 500

    return {"phone": normalize_chat_phone(phone), "data": data}, 200


@chat_sessions_bp.delete("/<phone>")
@require_auth
def clear_chat_session_route(phone: str):
    try:
        session = clear_session(phone)
    except ValidationError as e:
        return {"error": str(e)}, 400
    return session.to_dict(), 200
