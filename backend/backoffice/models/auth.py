from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

DEFAULT_ROLE_SLUG = "global:member"
ADMIN_ROLE_SLUGS = ("global:owner", "global:admin")


class User(db.Model):
    """
    Back-office user accounts.

    Emails are stored lower-cased so the unique constraint is effectively
    case-insensitive.

    compromised/compromised_at are set by the session manager when a refresh
    token is replayed from a different device or network. A compromised or
    disabled user cannot log in until an operator restores the account.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, index=True)

    # Bcrypt hashed password, never serialized
    password_hash = db.Column(db.String(255), nullable=False)

    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)

    # Authorization scope, e.g. "global:member", "global:owner"
    role_slug = db.Column(db.String(64), nullable=False, default=DEFAULT_ROLE_SLUG)

    disabled = db.Column(db.Boolean, nullable=False, default=False)
    compromised = db.Column(db.Boolean, nullable=False, default=False)
    compromised_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_login_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role_slug,
            "disabled": self.disabled,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class RefreshSession(db.Model):
    """
    Server-side record of an issued refresh token.

    One row per refresh token. Rotation revokes the row and inserts a
    successor carrying the same device context, so the chain of rows for a
    device is the audit trail of its refreshes.
    """
    __tablename__ = "auth_refresh_tokens"
    __table_args__ = (
        db.Index("ix_auth_refresh_tokens_user_revoked", "user_id", "revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    token = db.Column(db.String(1024), nullable=False, unique=True, index=True)
    expires_at = db.Column(db.DateTime, nullable=False)

    # Device context captured at login
    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)
    device_name = db.Column(db.String(255), nullable=True)
    fingerprint_hash = db.Column(db.String(64), nullable=False)

    revoked = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_used_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship("User", backref=db.backref("refresh_sessions", lazy=True))

    def is_active(self, now=None) -> bool:
        now = now or utcnow()
        return not self.revoked and self.expires_at > now

    def to_dict(self) -> dict:
        # The raw token is a bearer credential and never leaves the server.
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_agent": self.user_agent,
            "ip_address": self.ip_address,
            "device_name": self.device_name,
            "revoked": self.revoked,
            "active": self.is_active(),
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
        }
