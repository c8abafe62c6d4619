"""Tests for admin login, logout and role checks."""
import pytest
from werkzeug.security import generate_password_hash

from app.cms import create_app
from app.cms.db import session_scope
from app.cms.models import AdminSession, AdminUser, AuditEvent, Base, FailedLoginAttempt


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("JWT_SECRET", "test-jwt-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_LOCAL_ROOT", str(tmp_path / "storage"))

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    with session_scope(app) as s:
        s.add_all(
            [
                AdminUser(
                    username="admin",
                    email="admin@example.com",
                    password_hash=generate_password_hash("password123"),
                    role="admin",
                    is_active=True,
                ),
                AdminUser(
                    username="webmaster",
                    email="web@example.com",
                    password_hash=generate_password_hash("password456"),
                    role="webmaster",
                    is_active=True,
                ),
                AdminUser(
                    username="retired",
                    email="retired@example.com",
                    password_hash=generate_password_hash("password789"),
                    role="admin",
                    is_active=False,
                ),
            ]
        )
    return app


@pytest.fixture()
def client(app):
    c = app.test_client()
    c.environ_base["HTTP_USER_AGENT"] = "Mozilla/5.0 (X11; Linux x86_64)"
    return c


def _login(client, username="admin", password="password123"):
    return client.post("/api/admin/login", json={"username": username, "password": password})


def _csrf(client):
    r = client.get("/api/admin/csrf-token")
    assert r.status_code == 200
    return {"X-CSRF-Token": r.json["csrfToken"]}


def test_login_rejects_malformed_input(client):
    r = client.post("/api/admin/login", json={"username": "a", "password": "short"})
    assert r.status_code == 400
    assert r.json["error"] == "Invalid input"
    assert len(r.json["details"]) == 2

    r = client.post("/api/admin/login", json={"username": "bad name!", "password": "password123"})
    assert r.status_code == 400


def test_login_wrong_password_is_recorded(app, client):
    r = _login(client, password="not-the-password")
    assert r.status_code == 401
    assert r.json["error"] == "Invalid credentials"

    with session_scope(app) as s:
        attempts = s.query(FailedLoginAttempt).all()
        assert [a.username for a in attempts] == ["admin"]
        assert attempts[0].user_agent.startswith("Mozilla")
        assert s.query(AuditEvent).filter(AuditEvent.action == "auth.login_failed").count() == 1


def test_login_unknown_and_inactive_users_look_the_same(client):
    r1 = _login(client, username="ghost", password="password123")
    r2 = _login(client, username="retired", password="password789")
    assert r1.status_code == r2.status_code == 401
    assert r1.json == r2.json


def test_login_sets_cookie_and_auth_status(app, client):
    r = client.get("/api/admin/auth")
    assert r.status_code == 401
    assert r.json["authenticated"] is False

    r = _login(client)
    assert r.status_code == 200
    cookie = r.headers["Set-Cookie"]
    assert cookie.startswith("admin_token=")
    assert "HttpOnly" in cookie
    assert "SameSite=Strict" in cookie

    r = client.get("/api/admin/auth")
    assert r.status_code == 200
    assert r.json["authenticated"] is True
    assert r.json["user"]["role"] == "admin"

    with session_scope(app) as s:
        user = s.query(AdminUser).filter(AdminUser.username == "admin").one()
        assert user.last_login is not None


def test_successful_login_clears_failed_attempts(app, client):
    _login(client, password="wrong-password")
    assert _login(client).status_code == 200
    with session_scope(app) as s:
        assert s.query(FailedLoginAttempt).count() == 0


def test_second_login_replaces_previous_session(app, client):
    assert _login(client).status_code == 200
    other = app.test_client()
    other.environ_base["HTTP_USER_AGENT"] = "Mozilla/5.0 (Macintosh)"
    assert _login(other).status_code == 200

    with session_scope(app) as s:
        assert s.query(AdminSession).count() == 1

    # the first browser's session is gone
    assert client.get("/api/admin/auth").status_code == 401
    assert other.get("/api/admin/auth").status_code == 200


def test_logout_requires_csrf(client):
    assert client.post("/api/admin/logout").json["message"] == "Already logged out"

    _login(client)
    r = client.post("/api/admin/logout")
    assert r.status_code == 403
    assert r.json["error"] == "Invalid CSRF token"

    r = client.post("/api/admin/logout", headers=_csrf(client))
    assert r.status_code == 200
    assert r.json["success"] is True
    assert client.get("/api/admin/auth").status_code == 401


def test_login_is_progressively_rate_limited(client):
    assert _login(client, password="wrong-pass-1").status_code == 401
    assert _login(client, password="wrong-pass-2").status_code == 401
    # one failure halves the budget to two attempts
    r = _login(client)
    assert r.status_code == 429
    assert "Retry-After" in r.headers


def test_webmaster_cannot_read_audit_log(client):
    assert _login(client, username="webmaster", password="password456").status_code == 200
    assert client.get("/api/admin/dashboard").status_code == 200
    r = client.get("/api/admin/audit")
    assert r.status_code == 403
    assert r.json["error"] == "Forbidden"
    assert client.get("/api/admin/security/failed-logins").status_code == 403


def test_audit_log_filters(client):
    _login(client)
    client.post("/api/admin/categories", json={"name": "Heights"}, headers=_csrf(client))

    r = client.get("/api/admin/audit?action=course_category")
    assert r.status_code == 200
    assert [e["action"] for e in r.json["events"]] == ["course_category.create"]

    r = client.get("/api/admin/audit?actor=ADM")
    actions = {e["action"] for e in r.json["events"]}
    assert {"auth.login", "course_category.create"} <= actions

    r = client.get("/api/admin/audit?actor=nobody")
    assert r.json["events"] == []
