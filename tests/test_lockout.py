"""Tests for failed-login tracking and account / address lockout."""
from datetime import datetime, timedelta

import pytest
from werkzeug.security import generate_password_hash

from app.cms import create_app
from app.cms.db import session_scope
from app.cms.lockout import (
    LOCKOUT_DURATION,
    MAX_ACCOUNT_ATTEMPTS,
    MAX_IP_ATTEMPTS,
    account_lockout,
    cleanup_old_attempts,
    ip_lockout,
    lockout_stats,
    record_failed_attempt,
    reset_attempts,
)
from app.cms.models import AdminUser, Base, FailedLoginAttempt


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("JWT_SECRET", "test-jwt-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])
    with session_scope(app) as s:
        s.add(
            AdminUser(
                username="admin",
                email="admin@example.com",
                password_hash=generate_password_hash("password123"),
                role="admin",
                is_active=True,
            )
        )
    return app


def _seed_attempts(s, n, *, username="admin", ip="10.0.0.1", at=None):
    at = at or datetime.utcnow()
    for i in range(n):
        s.add(FailedLoginAttempt(username=username, ip_address=ip, attempted_at=at - timedelta(seconds=i)))
    s.flush()


def test_account_locks_at_threshold(app):
    with session_scope(app) as s:
        _seed_attempts(s, MAX_ACCOUNT_ATTEMPTS - 1)
        assert account_lockout(s, "admin").locked is False

        record_failed_attempt(s, "admin", "10.0.0.1", "Mozilla/5.0")
        status = account_lockout(s, "admin")
        assert status.locked is True
        assert status.attempts == MAX_ACCOUNT_ATTEMPTS
        assert 0 < status.retry_after <= LOCKOUT_DURATION.total_seconds()


def test_lockout_expires_after_duration(app):
    with session_scope(app) as s:
        _seed_attempts(s, MAX_ACCOUNT_ATTEMPTS)
        later = datetime.utcnow() + LOCKOUT_DURATION + timedelta(seconds=1)
        assert account_lockout(s, "admin", now=later).locked is False


def test_old_attempts_do_not_count(app):
    with session_scope(app) as s:
        _seed_attempts(s, MAX_ACCOUNT_ATTEMPTS, at=datetime.utcnow() - timedelta(hours=2))
        status = account_lockout(s, "admin")
        assert status.locked is False
        assert status.attempts == 0


def test_ip_lockout_spans_usernames(app):
    with session_scope(app) as s:
        for i in range(MAX_IP_ATTEMPTS):
            record_failed_attempt(s, f"user{i}", "10.9.9.9")
        assert ip_lockout(s, "10.9.9.9").locked is True
        assert ip_lockout(s, "10.9.9.8").locked is False
        assert account_lockout(s, "user1").locked is False


def test_reset_and_cleanup(app):
    with session_scope(app) as s:
        _seed_attempts(s, 3)
        _seed_attempts(s, 2, username="other", at=datetime.utcnow() - timedelta(days=2))
        assert reset_attempts(s, "admin") == 3
        assert cleanup_old_attempts(s) == 2
        assert s.query(FailedLoginAttempt).count() == 0


def test_stats(app):
    with session_scope(app) as s:
        _seed_attempts(s, MAX_ACCOUNT_ATTEMPTS)
        _seed_attempts(s, 1, username="someone", ip="10.0.0.2")
        stats = lockout_stats(s)
        assert stats["attempts_last_hour"] == MAX_ACCOUNT_ATTEMPTS + 1
        assert stats["locked_accounts"] == ["admin"]
        assert stats["locked_ips"] == []


def test_locked_account_cannot_log_in(app):
    with session_scope(app) as s:
        _seed_attempts(s, MAX_ACCOUNT_ATTEMPTS, ip="10.0.0.50")

    client = app.test_client()
    r = client.post("/api/admin/login", json={"username": "admin", "password": "password123"})
    assert r.status_code == 429
    assert r.json["lockoutUntil"]
    assert int(r.headers["Retry-After"]) > 0


def test_locked_address_cannot_log_in(app):
    with session_scope(app) as s:
        for i in range(MAX_IP_ATTEMPTS):
            record_failed_attempt(s, f"user{i}", "127.0.0.1")

    client = app.test_client()
    r = client.post("/api/admin/login", json={"username": "admin", "password": "password123"})
    assert r.status_code == 429
    assert "retryAfter" in r.json


def test_failed_logins_report(app):
    client = app.test_client()
    client.environ_base["HTTP_USER_AGENT"] = "Mozilla/5.0 (X11; Linux x86_64)"
    client.post("/api/admin/login", json={"username": "ghost", "password": "password123"})
    assert client.post("/api/admin/login", json={"username": "admin", "password": "password123"}).status_code == 200

    r = client.get("/api/admin/security/failed-logins")
    assert r.status_code == 200
    assert r.json["stats"]["attempts_last_hour"] == 1
    assert r.json["recentAttempts"][0]["username"] == "ghost"
