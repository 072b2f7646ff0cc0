"""
CLI command tests (flask system / users / maintenance).
"""

from datetime import timedelta

from backoffice import create_app
from backoffice.models import RefreshSession, SecurityEvent, User
from backoffice.time_utils import utcnow

import pytest


def test_create_app_rejects_shared_token_secret():
    with pytest.raises(RuntimeError):
        create_app({
            'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
            'JWT_SECRET': 'same',
            'REFRESH_TOKEN_SECRET': 'same',
        })


def test_health(client, db_session):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["checks"]["database"]["status"] == "healthy"


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create",
        "--email", "Owner@Example.com",
        "--password", "secret1",
        "--role", "global:owner",
    ])
    assert result.exit_code == 0, result.output
    assert "PASS" in result.output

    db_session.expire_all()
    user = db_session.query(User).filter_by(email="owner@example.com").one()
    assert user.role_slug == "global:owner"

    result = runner.invoke(args=["users", "list"])
    assert "owner@example.com" in result.output


def test_users_create_rejects_duplicate(app, user):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["users", "create", "--email", user.email, "--password", "secret1"])
    assert result.exit_code != 0


def test_users_restore(app, db_session, user):
    user.compromised = True
    user.compromised_at = utcnow()
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["users", "restore", "--email", "ALICE@example.com"])
    assert result.exit_code == 0, result.output

    db_session.expire_all()
    restored = db_session.get(User, user.id)
    assert restored.compromised is False
    assert restored.compromised_at is None
    assert db_session.query(SecurityEvent).filter_by(event_type="ACCOUNT_RESTORED").count() == 1


def test_cleanup_sessions(app, db_session, user):
    old = RefreshSession(
        user_id=user.id,
        token="old",
        expires_at=utcnow() - timedelta(days=40),
        fingerprint_hash="x" * 64,
        created_at=utcnow() - timedelta(days=47),
    )
    db_session.add(old)
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-sessions"])
    assert result.exit_code == 0
    assert "Deleted 1 sessions" in result.output


def test_cleanup_security_events(app, db_session, user):
    db_session.add(SecurityEvent(
        user_id=user.id,
        event_type="LOGIN_FAILED",
        success=False,
        occurred_at=utcnow() - timedelta(days=200),
    ))
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-security-events"])
    assert "Deleted 1 security events" in result.output
