# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Register, login and refresh-token rotation on top of the token service and
the session manager.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12)
- Unknown email, wrong password, disabled and compromised accounts all
  fail with the same InvalidCredentials error
- Unknown emails are checked against a dummy hash so every rejected login
  costs one bcrypt comparison
- Every refresh re-reads the user's current role; tokens never carry
  authorization claims older than the last renewal
- Any failure aborts before tokens are issued (fail closed)
"""

from __future__ import annotations

import secrets
from functools import lru_cache

import bcrypt
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..models import User
from ..models.auth import DEFAULT_ROLE_SLUG
from ..time_utils import utcnow
from ..validation import ValidationError, normalize_email
from .fingerprint import RequestContext
from .security_service import log_security_event
from .session_service import (
    AuthError,
    CompromisedSession,
    InvalidRefreshToken,
    SessionManager,
)
from .token_service import REFRESH, TokenExpired, TokenInvalid, TokenService

__all__ = [
    "AuthService",
    "AuthError",
    "InvalidCredentials",
    "InvalidRefreshToken",
    "CompromisedSession",
    "EmailAlreadyRegistered",
    "TokenExpired",
    "TokenInvalid",
    "hash_password",
    "verify_password",
]

MIN_PASSWORD_LENGTH = 6
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72
MAX_NAME_LENGTH = 100


class InvalidCredentials(AuthError):
    """Generic login failure; never says which check failed."""


class EmailAlreadyRegistered(Exception):
    """Registration with an email that already has an account."""


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash password using bcrypt with the given cost factor."""
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password, password_hash) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False instead of raising on malformed input (non-string
    password, corrupt hash, oversized password). bcrypt.checkpw compares
    in constant time.
    """
    if not isinstance(password, str) or not isinstance(password_hash, str):
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    """Hash compared against when the email has no account."""
    return hash_password(secrets.token_urlsafe(16), rounds=rounds)


def validate_registration(email, password, first_name=None, last_name=None) -> dict:
    """Validate and normalize registration input. Raises ValidationError."""
    normalized_email = normalize_email(email)

    if not isinstance(password, str):
        raise ValidationError("password must be a string")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"password cannot exceed {MAX_PASSWORD_BYTES} bytes")

    names = {}
    for key, value in (("firstName", first_name), ("lastName", last_name)):
        if value is None:
            names[key] = None
            continue
        if not isinstance(value, str):
            raise ValidationError(f"{key} must be a string")
        value = value.strip()
        if len(value) > MAX_NAME_LENGTH:
            raise ValidationError(f"{key} exceeds max length {MAX_NAME_LENGTH}")
        names[key] = value or None

    return {
        "email": normalized_email,
        "password": password,
        "first_name": names["firstName"],
        "last_name": names["lastName"],
    }


class AuthService:
    def __init__(
        self,
        store,
        tokens: TokenService,
        sessions: SessionManager,
        bcrypt_rounds: int = 12,
    ):
        self.store = store
        self.tokens = tokens
        self.sessions = sessions
        self.bcrypt_rounds = bcrypt_rounds

    def _find_by_email(self, email: str) -> User | None:
        return self.store.query(User).filter(
            func.lower(User.email) == email.lower()
        ).first()

    def register(self, email, password, first_name=None, last_name=None) -> dict:
        """
        Create a user with the default minimal role.

        Raises ValidationError for bad input and EmailAlreadyRegistered when
        the email (case-insensitive) already has an account.
        Returns the public projection of the new user.
        """
        data = validate_registration(email, password, first_name, last_name)

        if self._find_by_email(data["email"]) is not None:
            raise EmailAlreadyRegistered("Email is already registered")

        user = User(
            email=data["email"],
            password_hash=hash_password(data["password"], rounds=self.bcrypt_rounds),
            first_name=data["first_name"],
            last_name=data["last_name"],
            role_slug=DEFAULT_ROLE_SLUG,
        )

        self.store.add(user)
        try:
            self.store.commit()
        except IntegrityError as exc:
            # Concurrent registration won the unique constraint
            self.store.rollback()
            raise EmailAlreadyRegistered("Email is already registered") from exc

        return user.to_dict()

    def _reject_login(self, email: str, user: User | None, reason: str, context: RequestContext):
        log_security_event(
            user_id=user.id if user else None,
            event_type="LOGIN_FAILED",
            success=False,
            reason=f"{reason} ({email})",
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            store=self.store,
        )
        raise InvalidCredentials("Invalid credentials")

    def login(self, email, password, context: RequestContext) -> dict:
        """
        Authenticate and open a new session for the request's device.

        Returns {"accessToken", "refreshToken", "user"}.
        """
        if not isinstance(email, str) or not isinstance(password, str):
            raise InvalidCredentials("Invalid credentials")

        email = email.strip().lower()
        user = self._find_by_email(email)

        # Every rejection pays for exactly one bcrypt comparison
        if user is None:
            verify_password(password, _dummy_hash(self.bcrypt_rounds))
            self._reject_login(email, None, "Unknown email", context)
        if not verify_password(password, user.password_hash):
            self._reject_login(email, user, "Wrong password", context)
        if user.disabled:
            self._reject_login(email, user, "Account disabled", context)
        if user.compromised:
            self._reject_login(email, user, "Account compromised", context)

        access_token = self.tokens.issue_access_token(user.id, user.role_slug)
        refresh_token = self.tokens.issue_refresh_token(user.id)
        now = utcnow()

        user.last_login_at = now
        self.sessions.create_session(
            user_id=user.id,
            refresh_token=refresh_token,
            expires_at=self.tokens.refresh_expiry(now),
            context=context,
            commit=False,
        )
        log_security_event(
            user_id=user.id,
            event_type="LOGIN_SUCCEEDED",
            success=True,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            store=self.store,
            commit=False,
        )
        try:
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        return {
            "accessToken": access_token,
            "refreshToken": refresh_token,
            "user": {"id": user.id, "email": user.email, "role": user.role_slug},
        }

    def _reject_refresh(self, user_id: int | None, reason: str, context: RequestContext):
        log_security_event(
            user_id=user_id,
            event_type="REFRESH_REJECTED",
            success=False,
            reason=reason,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            store=self.store,
        )
        raise InvalidRefreshToken("Invalid refresh token")

    def refresh_token(self, refresh_token, context: RequestContext) -> dict:
        """
        Exchange a refresh token for a new access/refresh pair.

        Raises TokenInvalid/TokenExpired (signature or expiry),
        InvalidRefreshToken (unknown, expired or already rotated session,
        or unusable account) and CompromisedSession (replay or device
        mismatch; the account is locked down before this is raised).
        """
        claims = self.tokens.verify(refresh_token, REFRESH)

        stored = self.sessions.get_session_by_token(refresh_token)
        if stored is None or str(stored.user_id) != claims["sub"]:
            self._reject_refresh(None, "Unknown refresh token", context)

        self.sessions.validate_context(stored, context)

        now = utcnow()
        if stored.expires_at <= now:
            self._reject_refresh(stored.user_id, "Refresh session expired", context)

        # Authorization claims are re-validated against current state on
        # every renewal: role comes from the user row, not the old token.
        user = self.store.get(User, stored.user_id)
        if user is None or user.disabled or user.compromised:
            self._reject_refresh(stored.user_id, "Account not usable", context)

        access_token = self.tokens.issue_access_token(user.id, user.role_slug)
        new_refresh_token = self.tokens.issue_refresh_token(user.id)

        self.sessions.rotate_session(
            stored=stored,
            new_refresh_token=new_refresh_token,
            expires_at=self.tokens.refresh_expiry(now),
        )

        return {"accessToken": access_token, "refreshToken": new_refresh_token}

    def logout(self, refresh_token) -> bool:
        if not isinstance(refresh_token, str) or not refresh_token:
            return False
        return self.sessions.revoke_by_token(refresh_token)
