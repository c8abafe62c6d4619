"""Tests for the public contact form and its anti-abuse checks."""
from datetime import datetime, timedelta

import pytest
from werkzeug.security import generate_password_hash

from app.cms import create_app
from app.cms.db import session_scope
from app.cms.models import AdminUser, Base, CsrfToken, PublicSession
from app.cms.modules.contact.models import ContactSubmission
from app.cms.modules.contact.service import cleanup_public_sessions, is_suspicious_agent
from app.cms.modules.contact.webhook import WebhookClient, WebhookError

BROWSER = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("JWT_SECRET", "test-jwt-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.delenv("CONTACT_WEBHOOK_URL", raising=False)

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


@pytest.fixture()
def client(app):
    c = app.test_client()
    c.environ_base["HTTP_USER_AGENT"] = BROWSER
    return c


def _init(client):
    r = client.post("/api/contact/security-init")
    assert r.status_code == 200
    return r.json


def _form(tokens, **overrides):
    payload = {
        "sessionToken": tokens["sessionToken"],
        "csrfToken": tokens["csrfToken"],
        "name": "Pat Morgan",
        "email": "pat@example.com",
        "phone": "(604) 555-0199",
        "company": "Morgan Roofing",
        "trainingType": "fall-protection",
        "message": "We need fall protection training for six roofers next month.",
        "timeSpent": 5000,
        "securityScore": 80,
    }
    payload.update(overrides)
    return payload


def _submit(client, payload):
    return client.post("/api/contact/submit", json=payload)


def test_is_suspicious_agent():
    assert is_suspicious_agent("curl/8.0")
    assert is_suspicious_agent("Googlebot/2.1")
    assert is_suspicious_agent(None) is False
    assert is_suspicious_agent(BROWSER) is False


def test_security_init(app, client):
    tokens = _init(client)
    assert tokens["sessionToken"]
    assert len(tokens["csrfToken"]) == 64
    assert tokens["expiresAt"]
    with session_scope(app) as s:
        row = s.query(PublicSession).one()
        assert s.query(CsrfToken).filter(CsrfToken.scope == "public", CsrfToken.session_id == row.id).count() == 1


def test_submit_happy_path(app, client):
    r = _submit(client, _form(_init(client)))
    assert r.status_code == 200
    assert r.json["success"] is True
    assert r.json["message"] == "Message sent successfully"
    assert r.json["submissionId"].startswith("sub_")

    with session_scope(app) as s:
        row = s.query(ContactSubmission).one()
        assert row.submission_id == r.json["submissionId"]
        assert row.training_type == "fall-protection"
        assert row.ip_address == "127.0.0.1"
        assert row.webhook_status == "skipped"
        assert row.time_spent_ms == 5000


def test_csrf_token_is_single_use(client):
    tokens = _init(client)
    assert _submit(client, _form(tokens)).status_code == 200
    r = _submit(client, _form(tokens, email="other@example.com"))
    assert r.status_code == 403
    assert r.json["error"].startswith("Invalid security token")


def test_rejected_submission_keeps_tokens(client):
    tokens = _init(client)
    r = _submit(client, _form(tokens, name=""))
    assert r.status_code == 400
    assert _submit(client, _form(tokens)).status_code == 200


def test_invalid_session(client):
    r = _submit(client, _form({"sessionToken": "made-up", "csrfToken": "x"}))
    assert r.status_code == 403
    assert r.json["error"].startswith("Invalid session")


def test_expired_session(app, client):
    tokens = _init(client)
    with session_scope(app) as s:
        s.query(PublicSession).one().expires_at = datetime.utcnow() - timedelta(seconds=1)
    assert _submit(client, _form(tokens)).status_code == 403


def test_honeypot(client):
    r = _submit(client, _form(_init(client), website="http://spam.example.com"))
    assert r.status_code == 400
    assert r.json["error"] == "Bot detected"


def test_field_validation_messages(client):
    r = _submit(
        client,
        _form(_init(client), name="P", email="not-an-email", phone="123", trainingType="juggling", message="hi"),
    )
    assert r.status_code == 400
    assert r.json["error"] == ", ".join(
        [
            "name: Name must be at least 2 characters",
            "email: Please enter a valid email address",
            "phone: Phone number must be 10-15 digits",
            "trainingType: Invalid training type selected",
            "message: Message must be at least 10 characters",
        ]
    )


def test_links_in_message_are_rejected(client):
    r = _submit(client, _form(_init(client), message="Please visit www.example.com for details about us."))
    assert r.status_code == 400
    assert r.json["error"] == "message: Message contains prohibited content"


def test_markup_is_stripped(app, client):
    r = _submit(client, _form(_init(client), message="<b>Hello</b> team, <script>x()</script>we need a quote."))
    assert r.status_code == 200
    with session_scope(app) as s:
        assert s.query(ContactSubmission).one().message == "Hello team, we need a quote."


@pytest.mark.parametrize(
    "overrides,status,error",
    [
        ({"timeSpent": 1000}, 403, "Form submitted too quickly. Please take your time."),
        ({"timeSpent": 31 * 60 * 1000}, 403, "Session expired. Please refresh the page and try again."),
        ({"timeSpent": "5000"}, 403, "Form submitted too quickly. Please take your time."),
        ({"securityScore": 10}, 403, "Security validation failed. Please try again."),
    ],
)
def test_behaviour_checks(client, overrides, status, error):
    r = _submit(client, _form(_init(client), **overrides))
    assert r.status_code == status
    assert r.json["error"] == error


def test_duplicate_submission(client):
    assert _submit(client, _form(_init(client))).status_code == 200
    r = _submit(client, _form(_init(client)))
    assert r.status_code == 429
    assert r.json["error"].startswith("Duplicate submission")


def test_automated_user_agent(client):
    r = client.post("/api/contact/submit", json=_form(_init(client)), headers={"User-Agent": "python-requests/2.31"})
    assert r.status_code == 403
    assert r.json["error"] == "Automated requests are not allowed."


def test_non_object_body(client):
    r = client.post("/api/contact/submit", data="nope", content_type="text/plain")
    assert r.status_code == 400
    assert r.json["error"] == "Invalid request data"


def test_submit_rate_limit(client):
    for i in range(3):
        _submit(client, _form(_init(client), email=f"p{i}@example.com"))
    r = _submit(client, _form(_init(client), email="p9@example.com"))
    assert r.status_code == 429
    assert "Retry-After" in r.headers


def test_webhook_forwarding(app, client, monkeypatch):
    sent = []
    monkeypatch.setattr(WebhookClient, "post_json", lambda self, payload: sent.append((self.url, payload)) or 200)
    app.config["CONTACT_WEBHOOK_URL"] = "https://hooks.example.com/contact"

    r = _submit(client, _form(_init(client)))
    assert r.status_code == 200
    assert sent[0][0] == "https://hooks.example.com/contact"
    assert sent[0][1]["submissionId"] == r.json["submissionId"]
    assert sent[0][1]["trainingType"] == "fall-protection"
    with session_scope(app) as s:
        assert s.query(ContactSubmission).one().webhook_status == "sent"


def test_webhook_failure_still_saves(app, client, monkeypatch):
    def _boom(self, payload):
        raise WebhookError("HTTP 500 from webhook")

    monkeypatch.setattr(WebhookClient, "post_json", _boom)
    app.config["CONTACT_WEBHOOK_URL"] = "https://hooks.example.com/contact"

    r = _submit(client, _form(_init(client)))
    assert r.status_code == 200
    with session_scope(app) as s:
        assert s.query(ContactSubmission).one().webhook_status == "failed"


def test_admin_submission_list(client):
    _submit(client, _form(_init(client)))
    assert client.get("/api/admin/contact-submissions").status_code == 401

    client.post("/api/admin/login", json={"username": "admin", "password": "password123"})
    r = client.get("/api/admin/contact-submissions?limit=10")
    assert r.status_code == 200
    assert [x["email"] for x in r.json["submissions"]] == ["pat@example.com"]


def test_cleanup_public_sessions(app, client):
    _init(client)
    _init(client)
    with session_scope(app) as s:
        s.query(PublicSession).first().expires_at = datetime.utcnow() - timedelta(minutes=1)
    with session_scope(app) as s:
        assert cleanup_public_sessions(s) == 1
    with session_scope(app) as s:
        assert s.query(PublicSession).count() == 1
        assert s.query(CsrfToken).count() == 1
