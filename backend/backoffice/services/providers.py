# Overview: Builds the core services for the current app and request.

"""
The auth, session and order services take their store handle at
construction. Routes get instances from here, bound to the request-scoped
db.session and the app config; nothing is cached between requests.
"""

from flask import current_app

from ..extensions import db
from .auth_service import AuthService
from .order_service import OrderService
from .session_service import SessionManager
from .token_service import TokenService


def token_service() -> TokenService:
    return TokenService.from_config(current_app.config)


def session_manager() -> SessionManager:
    return SessionManager(db.session)


def auth_service() -> AuthService:
    return AuthService(
        store=db.session,
        tokens=token_service(),
        sessions=session_manager(),
        bcrypt_rounds=current_app.config["BCRYPT_ROUNDS"],
    )


def order_service() -> OrderService:
    return OrderService(db.session)
