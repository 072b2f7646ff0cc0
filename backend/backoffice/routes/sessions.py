# Overview: Flask API routes for self-service session management.

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_auth
from ..services import providers
from ..services.security_service import list_security_events


sessions_bp = Blueprint("sessions", __name__, url_prefix="/sessions")


@sessions_bp.get("")
@require_auth
def list_sessions_route():
    """List the caller's sessions, newest first (raw tokens are never returned)."""
    sessions = providers.session_manager().list_sessions(g.current_user.id)
    return jsonify({"sessions": [s.to_dict() for s in sessions]}), 200


@sessions_bp.delete("/<int:session_id>")
@require_auth
def revoke_session_route(session_id: int):
    """Revoke one of the caller's sessions. 404 if it is not theirs."""
    try:
        revoked = providers.session_manager().revoke_session(g.current_user.id, session_id)
    except Exception:
        current_app.logger.exception("Failed to revoke session")
        return jsonify({"error": "Internal server error"}), 500

    if not revoked:
        return jsonify({"error": "Session not found"}), 404

    return jsonify({"message": "Session revoked"}), 200


@sessions_bp.delete("")
@require_auth
def revoke_all_sessions_route():
    """Log out everywhere."""
    try:
        count = providers.session_manager().revoke_all_sessions(g.current_user.id)
    except Exception:
        current_app.logger.exception("Failed to revoke sessions")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"message": "All sessions revoked", "revoked": count}), 200


@sessions_bp.get("/security-events")
@require_auth
def security_events_route():
    """Recent security events on the caller's account."""
    events = list_security_events(g.current_user.id)
    return jsonify({"events": [e.to_dict() for e in events]}), 200
