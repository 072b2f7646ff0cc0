# Overview: Service-layer operations for the security audit trail.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent
from ..time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    store=None,
    commit: bool = True,
) -> SecurityEvent:
    """
    Append a security event to the audit trail.

    event_type examples:
    - LOGIN_FAILED / LOGIN_SUCCEEDED
    - REFRESH_REJECTED
    - ACCOUNT_COMPROMISED
    - SESSION_REVOKED / ALL_SESSIONS_REVOKED

    Pass commit=False to write the event as part of a larger transaction
    owned by the caller.
    """
    store = store if store is not None else db.session

    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    store.add(event)
    if commit:
        store.commit()

    return event


def list_security_events(user_id: int, limit: int = 50) -> list[SecurityEvent]:
    return (
        db.session.query(SecurityEvent)
        .filter_by(user_id=user_id)
        .order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc())
        .limit(limit)
        .all()
    )


def cleanup_security_events(retention_days: int = 90) -> int:
    """Delete security events older than the retention window."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
