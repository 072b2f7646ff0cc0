# Overview: Signed access/refresh token issuance and verification.

"""
JWT issuance for the back office.

Access tokens are short-lived and carry the user's role. Refresh tokens are
long-lived, carry only the subject, and are also tracked server-side as
RefreshSession rows so they can be revoked and rotated.

The two token classes are signed with different secrets: an access token can
never be presented as a refresh token or vice versa, even if the "type"
claim were forged.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

import jwt

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenInvalid(TokenError):
    """Bad signature, malformed token or wrong token class."""


class TokenExpired(TokenError):
    """Signature valid but the token is past its expiry."""


class TokenService:
    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        algorithm: str = "HS256",
    ):
        if not access_secret or not refresh_secret:
            raise ValueError("Token signing secrets must be configured")
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens must use different secrets")

        self._keys = {ACCESS: access_secret, REFRESH: refresh_secret}
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm

    @classmethod
    def from_config(cls, config) -> "TokenService":
        return cls(
            access_secret=config["JWT_SECRET"],
            refresh_secret=config["REFRESH_TOKEN_SECRET"],
            access_ttl=timedelta(minutes=config["ACCESS_TOKEN_EXPIRE_MINUTES"]),
            refresh_ttl=timedelta(days=config["REFRESH_TOKEN_EXPIRE_DAYS"]),
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
        )

    def _encode(self, claims: dict, token_class: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "type": token_class,
            "iat": now,
            "exp": now + ttl,
            # Unique per token, so two tokens minted in the same second differ
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(payload, self._keys[token_class], algorithm=self.algorithm)

    def issue_access_token(self, user_id: int, role_slug: str) -> str:
        return self._encode({"sub": str(user_id), "role": role_slug}, ACCESS, self.access_ttl)

    def issue_refresh_token(self, user_id: int) -> str:
        return self._encode({"sub": str(user_id)}, REFRESH, self.refresh_ttl)

    def refresh_expiry(self, now: datetime) -> datetime:
        """Expiry to persist on the RefreshSession row for a token minted at now."""
        return now + self.refresh_ttl

    def verify(self, token: str, token_class: str) -> dict:
        """
        Verify signature and expiry with the key for token_class.

        Raises TokenExpired or TokenInvalid. Returns the decoded claims.
        """
        if token_class not in self._keys:
            raise ValueError(f"Unknown token class: {token_class}")
        if not token or not isinstance(token, str):
            raise TokenInvalid("Token missing")

        try:
            claims = jwt.decode(
                token,
                self._keys[token_class],
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub", "type"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalid("Invalid token") from exc

        if claims.get("type") != token_class:
            raise TokenInvalid("Wrong token type")

        return claims
