"""
Session manager tests.

Verifies:
- Context validation accepts the login device and rejects everything else
- A mismatch or replay marks the account compromised and revokes every session
- Rotation revokes the predecessor and creates exactly one successor
- Compromise marking is all-or-nothing
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.models import RefreshSession, SecurityEvent, User
from backoffice.services import session_service
from backoffice.services.fingerprint import RequestContext
from backoffice.services.session_service import (
    CompromisedSession,
    InvalidRefreshToken,
    SessionManager,
)
from backoffice.time_utils import utcnow


@pytest.fixture
def manager(db_session):
    return SessionManager(db_session)


def open_session(manager, user, context, token="token-1", days=7):
    return manager.create_session(
        user_id=user.id,
        refresh_token=token,
        expires_at=utcnow() + timedelta(days=days),
        context=context,
    )


def reload_user(db_session, user_id):
    db_session.expire_all()
    return db_session.get(User, user_id)


class TestCreateAndValidate:

    def test_create_session_stores_context(self, manager, user, context):
        stored = open_session(manager, user, context)

        assert stored.id is not None
        assert stored.revoked is False
        assert stored.user_agent == context.user_agent
        assert stored.ip_address == context.ip_address
        assert stored.fingerprint_hash == context.fingerprint()
        assert stored.is_active()

    def test_matching_context_passes(self, manager, user, context):
        stored = open_session(manager, user, context)
        manager.validate_context(stored, context)
        assert reload_user(manager.store, user.id).compromised is False

    @pytest.mark.parametrize(
        "changes,reason",
        [
            ({"user_agent": "curl/8.0"}, "User agent mismatch"),
            ({"ip_address": "203.0.113.7"}, "IP address mismatch"),
            ({"device_name": "Other Device"}, "Device fingerprint mismatch"),
        ],
    )
    def test_mismatch_marks_compromised(self, db_session, manager, user, context, changes, reason):
        stored = open_session(manager, user, context)
        open_session(manager, user, context, token="token-2")

        other = RequestContext(**{**context.__dict__, **changes})
        with pytest.raises(CompromisedSession):
            manager.validate_context(stored, other)

        refreshed = reload_user(db_session, user.id)
        assert refreshed.compromised is True
        assert refreshed.compromised_at is not None

        sessions = db_session.query(RefreshSession).filter_by(user_id=user.id).all()
        assert len(sessions) == 2
        assert all(s.revoked for s in sessions)

        event = db_session.query(SecurityEvent).filter_by(
            user_id=user.id, event_type="ACCOUNT_COMPROMISED"
        ).one()
        assert event.reason == reason

    def test_revoked_session_is_replay(self, db_session, manager, user, context):
        stored = open_session(manager, user, context)
        stored.revoked = True
        db_session.commit()

        with pytest.raises(CompromisedSession):
            manager.validate_context(stored, context)

        assert reload_user(db_session, user.id).compromised is True


class TestRotation:

    def test_rotate_revokes_predecessor(self, db_session, manager, user, context):
        stored = open_session(manager, user, context)
        old_id = stored.id

        successor = manager.rotate_session(stored, "token-2", utcnow() + timedelta(days=7))

        db_session.expire_all()
        old = db_session.get(RefreshSession, old_id)
        assert old.revoked is True
        assert old.last_used_at is not None

        assert successor.id != old_id
        assert successor.revoked is False
        assert successor.token == "token-2"
        assert successor.fingerprint_hash == old.fingerprint_hash
        assert successor.user_agent == old.user_agent

    def test_second_rotation_of_same_row_fails(self, db_session, manager, user, context):
        stored = open_session(manager, user, context)
        manager.rotate_session(stored, "token-2", utcnow() + timedelta(days=7))

        with pytest.raises(InvalidRefreshToken):
            manager.rotate_session(stored, "token-3", utcnow() + timedelta(days=7))

        assert db_session.query(RefreshSession).filter_by(token="token-3").first() is None
        active = db_session.query(RefreshSession).filter_by(user_id=user.id, revoked=False).all()
        assert [s.token for s in active] == ["token-2"]


class TestRevocation:

    def test_revoke_own_session(self, db_session, manager, user, context):
        stored = open_session(manager, user, context)
        assert manager.revoke_session(user.id, stored.id) is True

        db_session.expire_all()
        assert db_session.get(RefreshSession, stored.id).revoked is True

    def test_cannot_revoke_someone_elses_session(self, db_session, manager, user, admin_user, context):
        stored = open_session(manager, admin_user, context)
        assert manager.revoke_session(user.id, stored.id) is False

        db_session.expire_all()
        assert db_session.get(RefreshSession, stored.id).revoked is False

    def test_revoke_all_is_idempotent(self, manager, user, context):
        open_session(manager, user, context, token="a")
        open_session(manager, user, context, token="b")

        assert manager.revoke_all_sessions(user.id) == 2
        assert manager.revoke_all_sessions(user.id) == 0

    def test_revoke_by_token(self, manager, user, context):
        open_session(manager, user, context, token="logout-me")
        assert manager.revoke_by_token("logout-me") is True
        assert manager.revoke_by_token("logout-me") is False
        assert manager.revoke_by_token("unknown") is False

    def test_list_sessions_newest_first(self, manager, user, context):
        first = open_session(manager, user, context, token="a")
        second = open_session(manager, user, context, token="b")

        ids = [s.id for s in manager.list_sessions(user.id)]
        assert ids == [second.id, first.id]


class TestCompromiseAtomicity:

    def test_failure_rolls_back_everything(self, db_session, manager, user, context, monkeypatch):
        stored = open_session(manager, user, context)

        def boom(**kwargs):
            raise RuntimeError("audit store down")

        monkeypatch.setattr(session_service, "log_security_event", boom)

        with pytest.raises(RuntimeError):
            manager.mark_account_compromised(user.id, reason="test")

        assert reload_user(db_session, user.id).compromised is False
        assert db_session.get(RefreshSession, stored.id).revoked is False


class TestCleanup:

    def test_removes_old_dead_sessions_only(self, db_session, manager, user, context):
        live = open_session(manager, user, context, token="live")
        dead = open_session(manager, user, context, token="dead")
        dead.revoked = True
        dead.created_at = utcnow() - timedelta(days=60)
        recent_dead = open_session(manager, user, context, token="recent-dead")
        recent_dead.revoked = True
        db_session.commit()

        assert manager.cleanup_expired_sessions(older_than_days=30) == 1

        remaining = {s.token for s in db_session.query(RefreshSession).all()}
        assert remaining == {live.token, "recent-dead"}

    def test_failed_cleanup_rolls_back(self, db_session, manager, user, context, monkeypatch):
        dead = open_session(manager, user, context, token="dead")
        dead.revoked = True
        dead.created_at = utcnow() - timedelta(days=60)
        db_session.commit()

        def boom(self):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(Session, "commit", boom)

        with pytest.raises(SQLAlchemyError):
            manager.cleanup_expired_sessions(older_than_days=30)

        monkeypatch.undo()
        assert db_session.query(RefreshSession).filter_by(token="dead").count() == 1
