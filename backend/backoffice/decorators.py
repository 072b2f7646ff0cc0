# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User
from .services import providers
from .services.token_service import ACCESS, TokenError


def require_auth(f):
    """
    Require a valid access token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.token_claims: The decoded access-token claims

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid or expired token
    - User no longer exists, is disabled, or has been marked compromised
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        # Extract token from Authorization header
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        try:
            claims = providers.token_service().verify(token, ACCESS)
        except TokenError:
            return jsonify({"error": "Invalid or expired token"}), 401

        try:
            user_id = int(claims["sub"])
        except (TypeError, ValueError):
            return jsonify({"error": "Invalid or expired token"}), 401

        # Access tokens are stateless, so account state is checked per request
        user = db.session.get(User, user_id)
        if user is None or user.disabled or user.compromised:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        g.token_claims = claims

        return f(*args, **kwargs)

    return decorated_function


def require_role(*role_slugs):
    """
    Require the authenticated user's current role to be one of role_slugs.

    Uses the role stored on the user row, not the one in the token.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not hasattr(g, 'current_user'):
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role_slug not in role_slugs:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(role_slugs),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
