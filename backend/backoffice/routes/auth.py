# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/backoffice/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Generic 401 body for every authentication failure (wrong password,
  disabled account, expired token, replayed token, ...)
- Refresh-token rotation with device fingerprint validation
- Compromise detection is server-side only; the client sees a plain 401
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import providers
from ..services.auth_service import AuthError, EmailAlreadyRegistered
from ..services.fingerprint import RequestContext
from ..services.session_service import CompromisedSession
from ..services.token_service import TokenError
from ..validation import ValidationError


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.post("/register")
def register_route():
    """
    Create a user account with the default member role.

    Request body:
    {
        "email": "alice@example.com",   // required
        "password": "secret1",          // required, 6+ characters
        "firstName": "Alice",           // optional
        "lastName": "Smith"             // optional
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user = providers.auth_service().register(
            email,
            password,
            first_name=data.get("firstName"),
            last_name=data.get("lastName"),
        )

        return jsonify({"message": "User registered successfully", "user": user}), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except EmailAlreadyRegistered as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and open a refresh-token session for this device.

    Returns access and refresh tokens on success.
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        tokens = providers.auth_service().login(
            email,
            password,
            RequestContext.from_request(request),
        )
        return jsonify(tokens), 200

    except AuthError:
        return jsonify({"error": "Invalid credentials"}), 401
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/refresh-token")
def refresh_token_route():
    """
    Exchange a refresh token for a new access/refresh pair.

    The presented token is revoked (rotated). Presenting it again, or
    presenting any token from another device/network, revokes every session
    of the account.
    """
    try:
        data = request.get_json(silent=True) or {}
        refresh_token = data.get("refreshToken")

        if not refresh_token or not isinstance(refresh_token, str):
            return jsonify({"error": "Refresh token is required"}), 400

        tokens = providers.auth_service().refresh_token(
            refresh_token,
            RequestContext.from_request(request),
        )
        return jsonify(tokens), 200

    except CompromisedSession:
        current_app.logger.warning("Refresh token replay detected; account sessions revoked")
        return jsonify({"error": "Invalid or expired refresh token"}), 401
    except (AuthError, TokenError):
        return jsonify({"error": "Invalid or expired refresh token"}), 401
    except Exception:
        current_app.logger.exception("Failed to refresh token")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke the session behind a refresh token.

    Always answers 200 so a client cannot probe which tokens are live.
    """
    try:
        data = request.get_json(silent=True) or {}
        refresh_token = data.get("refreshToken")

        if refresh_token:
            providers.auth_service().logout(refresh_token)

        return jsonify({"message": "Logged out successfully"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500
