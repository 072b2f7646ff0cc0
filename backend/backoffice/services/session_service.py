# Overview: Service-layer operations for refresh-token sessions; encapsulates business logic and database work.

"""
Refresh-Token Session Management

Every refresh token handed to a client has a RefreshSession row. The row is
the server-side switch that makes a signed, unexpired token usable:
revoking the row kills the token.

SECURITY FEATURES:
- Device fingerprint (user agent, IP, device name) captured at login
- Rotation on every refresh: predecessor revoked in the same commit that
  inserts the successor
- Conditional revoke (WHERE revoked = false) so only one of two concurrent
  refreshes with the same token can mint a successor
- Replay of a revoked token, or use from a different device/network, marks
  the whole account compromised and revokes every session it owns

LIFECYCLE:
    Active -> Rotated (successor Active) | Revoked | Expired (implicit)
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from ..models import RefreshSession, User
from ..time_utils import utcnow
from .fingerprint import RequestContext, build_fingerprint
from .security_service import log_security_event


class AuthError(Exception):
    """Base class for authentication failures (all map to 401)."""


class InvalidRefreshToken(AuthError):
    """Refresh token unknown to the store, expired server-side, or already rotated."""


class CompromisedSession(AuthError):
    """Refresh attempt looked like a replay; the account has been locked down."""


class SessionManager:
    """
    Session operations over an injected store handle (a SQLAlchemy session).

    Each mutating method owns its transaction: it commits on success and
    rolls back before re-raising on failure.
    """

    def __init__(self, store):
        self.store = store

    def create_session(
        self,
        user_id: int,
        refresh_token: str,
        expires_at: datetime,
        context: RequestContext,
        commit: bool = True,
    ) -> RefreshSession:
        """Persist a new Active session for a freshly issued refresh token."""
        now = utcnow()
        session = RefreshSession(
            user_id=user_id,
            token=refresh_token,
            expires_at=expires_at,
            user_agent=context.user_agent,
            ip_address=context.ip_address,
            device_name=context.device_name,
            fingerprint_hash=context.fingerprint(),
            revoked=False,
            created_at=now,
            last_used_at=now,
        )
        self.store.add(session)
        if commit:
            try:
                self.store.commit()
            except SQLAlchemyError:
                self.store.rollback()
                raise
        return session

    def get_session_by_token(self, token: str) -> RefreshSession | None:
        return self.store.query(RefreshSession).filter_by(token=token).first()

    def validate_context(self, stored: RefreshSession, context: RequestContext) -> None:
        """
        Check that a refresh attempt comes from the device that logged in.

        Fails if the stored session is already revoked (token replay), or if
        user agent, IP address or the recomputed fingerprint differ. Failure
        marks the account compromised before raising CompromisedSession.

        NOTE: raw IP equality will flag legitimate mobile-network IP churn.
        Kept as-is; loosening it is a product-policy decision.
        """
        fingerprint = build_fingerprint(
            context.user_agent,
            context.ip_address,
            context.device_name,
        )

        mismatch = None
        if stored.revoked:
            mismatch = "Revoked refresh token presented"
        elif stored.user_agent != context.user_agent:
            mismatch = "User agent mismatch"
        elif stored.ip_address != context.ip_address:
            mismatch = "IP address mismatch"
        elif stored.fingerprint_hash != fingerprint:
            mismatch = "Device fingerprint mismatch"

        if mismatch is None:
            return

        self.mark_account_compromised(stored.user_id, reason=mismatch, context=context)
        raise CompromisedSession("Account compromised")

    def rotate_session(
        self,
        stored: RefreshSession,
        new_refresh_token: str,
        expires_at: datetime,
    ) -> RefreshSession:
        """
        Revoke stored and create its successor in one commit.

        The successor inherits the stored device context. Raises
        InvalidRefreshToken if stored was revoked by someone else first.
        """
        now = utcnow()
        user_id = stored.user_id
        context = RequestContext(
            user_agent=stored.user_agent,
            ip_address=stored.ip_address,
            device_name=stored.device_name,
        )

        try:
            revoked = self.store.query(RefreshSession).filter(
                RefreshSession.id == stored.id,
                RefreshSession.revoked.is_(False),
            ).update(
                {"revoked": True, "last_used_at": now},
                synchronize_session=False,
            )

            if revoked != 1:
                # Lost a race against another refresh with the same token
                self.store.rollback()
                raise InvalidRefreshToken("Refresh token already used")

            successor = self.create_session(
                user_id=user_id,
                refresh_token=new_refresh_token,
                expires_at=expires_at,
                context=context,
                commit=False,
            )
            self.store.commit()
        except SQLAlchemyError:
            self.store.rollback()
            raise

        return successor

    def list_sessions(self, user_id: int) -> list[RefreshSession]:
        """All sessions for a user, newest first."""
        return (
            self.store.query(RefreshSession)
            .filter_by(user_id=user_id)
            .order_by(RefreshSession.created_at.desc(), RefreshSession.id.desc())
            .all()
        )

    def revoke_session(self, user_id: int, session_id: int) -> bool:
        """
        Revoke one session owned by user_id.

        Returns False if the session does not exist or belongs to someone else.
        """
        try:
            affected = self.store.query(RefreshSession).filter(
                RefreshSession.id == session_id,
                RefreshSession.user_id == user_id,
            ).update({"revoked": True}, synchronize_session=False)

            if affected:
                log_security_event(
                    user_id=user_id,
                    event_type="SESSION_REVOKED",
                    success=True,
                    reason=f"Session {session_id} revoked by owner",
                    store=self.store,
                    commit=False,
                )
            self.store.commit()
        except SQLAlchemyError:
            self.store.rollback()
            raise

        return affected > 0

    def revoke_all_sessions(self, user_id: int) -> int:
        """
        Revoke every active session of a user ("log out everywhere").

        Idempotent: a second call revokes nothing and returns 0.
        """
        try:
            count = self.store.query(RefreshSession).filter(
                RefreshSession.user_id == user_id,
                RefreshSession.revoked.is_(False),
            ).update({"revoked": True}, synchronize_session=False)

            if count:
                log_security_event(
                    user_id=user_id,
                    event_type="ALL_SESSIONS_REVOKED",
                    success=True,
                    reason=f"{count} session(s) revoked",
                    store=self.store,
                    commit=False,
                )
            self.store.commit()
        except SQLAlchemyError:
            self.store.rollback()
            raise

        return count

    def revoke_by_token(self, token: str) -> bool:
        """Revoke the session holding token (logout). Returns whether one was active."""
        try:
            affected = self.store.query(RefreshSession).filter(
                RefreshSession.token == token,
                RefreshSession.revoked.is_(False),
            ).update(
                {"revoked": True, "last_used_at": utcnow()},
                synchronize_session=False,
            )
            self.store.commit()
        except SQLAlchemyError:
            self.store.rollback()
            raise

        return affected > 0

    def mark_account_compromised(
        self,
        user_id: int,
        reason: str | None = None,
        context: RequestContext | None = None,
    ) -> None:
        """
        Flag the user compromised and revoke all of their sessions.

        All-or-nothing: the flag, the revocations and the audit event commit
        together, or the transaction is rolled back and the error propagates.
        """
        now = utcnow()
        try:
            self.store.query(User).filter(User.id == user_id).update(
                {"compromised": True, "compromised_at": now},
                synchronize_session=False,
            )
            self.store.query(RefreshSession).filter(
                RefreshSession.user_id == user_id,
            ).update({"revoked": True}, synchronize_session=False)

            log_security_event(
                user_id=user_id,
                event_type="ACCOUNT_COMPROMISED",
                success=False,
                reason=reason or "Account marked as compromised",
                ip_address=context.ip_address if context else None,
                user_agent=context.user_agent if context else None,
                store=self.store,
                commit=False,
            )
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

    def cleanup_expired_sessions(self, older_than_days: int = 30) -> int:
        """
        Delete expired or revoked sessions created more than older_than_days ago.

        Returns count of sessions deleted.
        """
        now = utcnow()
        cutoff = now - timedelta(days=older_than_days)

        try:
            deleted = self.store.query(RefreshSession).filter(
                (RefreshSession.expires_at < now) | (RefreshSession.revoked.is_(True)),
                RefreshSession.created_at < cutoff,
            ).delete(synchronize_session=False)
            self.store.commit()
        except SQLAlchemyError:
            self.store.rollback()
            raise
        return deleted
