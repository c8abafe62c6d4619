"""Tests for the footer and hero section editors."""
import pytest
from werkzeug.security import generate_password_hash

from app.cms import create_app
from app.cms.db import session_scope
from app.cms.models import AdminUser, AuditEvent, Base
from app.cms.modules.footer.models import FooterBottomBadge


@pytest.fixture()
def client(tmp_path, monkeypatch):
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
    c = app.test_client()
    c.environ_base["HTTP_USER_AGENT"] = "Mozilla/5.0 (X11; Linux x86_64)"
    c.post("/api/admin/login", json={"username": "admin", "password": "password123"})
    return c


def _put(client, path, payload):
    csrf = client.get("/api/admin/csrf-token").json["csrfToken"]
    return client.put(path, json=payload, headers={"X-CSRF-Token": csrf})


FOOTER = {
    "footerContent": {"company_name": "Summit Safety", "email": "hello@example.com", "phone": "555-0100"},
    "footerStats": [{"number_text": "2000+", "label": "Students"}],
    "footerQuickLinks": [
        {"title": "Courses", "url": "/courses", "display_order": 1},
        {"title": "Old page", "url": "/legacy", "display_order": 2, "is_active": False},
    ],
    "footerCertifications": [{"title": "WorkSafeBC", "icon": "shield"}],
    "footerBottomBadges": [{"title": "Local", "icon": "home"}],
}


def test_footer_update_and_public_view(client):
    r = _put(client, "/api/admin/footer", FOOTER)
    assert r.status_code == 200
    assert r.json["message"] == "Footer content updated successfully"
    assert r.json["items"]["footerQuickLinks"]["created"] == 2

    admin_view = client.get("/api/admin/footer").json
    assert len(admin_view["footerQuickLinks"]) == 2
    assert "popularCourses" not in admin_view

    public = client.get("/api/footer").json
    assert public["footerContent"]["company_name"] == "Summit Safety"
    assert [q["title"] for q in public["footerQuickLinks"]] == ["Courses"]
    assert public["footerStats"][0]["number_text"] == "2000+"
    assert public["popularCourses"] == []

    with session_scope(client.application) as s:
        assert s.query(AuditEvent).filter(AuditEvent.action == "footer.update").count() == 1


def test_footer_rejects_bad_links_and_missing_name(client):
    r = _put(
        client,
        "/api/admin/footer",
        {
            "footerContent": {"company_name": ""},
            "footerQuickLinks": [{"title": "Evil", "url": "javascript:alert(1)"}],
        },
    )
    assert r.status_code == 400
    assert r.json["details"] == [
        "company_name is required.",
        "Quick link #1: url must be a relative path, an anchor, or an absolute http(s) URL.",
    ]
    assert client.get("/api/footer").json["footerContent"] is None


def test_footer_badge_icons_are_unique(client):
    r = _put(
        client,
        "/api/admin/footer",
        {"footerBottomBadges": [{"title": "One", "icon": "star"}, {"title": "Two", "icon": "star"}]},
    )
    assert r.status_code == 409
    with session_scope(client.application) as s:
        assert s.query(FooterBottomBadge).count() == 0


def test_footer_lists_must_be_lists(client):
    r = _put(client, "/api/admin/footer", {"footerStats": {"number_text": "1"}})
    assert r.status_code == 400
    assert r.json["details"] == ["Footer stat must be a list."]


HERO = {
    "heroSection": {
        "main_heading": "Get your crew certified",
        "highlight_text": "certified",
        "primary_button_text": "View courses",
        "primary_button_link": "/courses",
        "secondary_button_link": "#contact",
        "background_image_url": "https://cdn.example.com/hero.jpg",
    },
    "heroStats": [{"number_text": "14", "label": "Courses", "description": "Accredited programs"}],
    "heroFeatures": [{"title": "On-site training"}, {"title": "Same-day cards"}],
}


def test_hero_update_and_public_view(client):
    r = _put(client, "/api/admin/hero-section", HERO)
    assert r.status_code == 200
    assert r.json["items"]["heroFeatures"] == {"created": 2, "updated": 0, "deleted": 0}

    public = client.get("/api/hero-section").json
    assert public["heroSection"]["main_heading"] == "Get your crew certified"
    assert public["heroSection"]["secondary_button_link"] == "#contact"
    assert [f["title"] for f in public["heroFeatures"]] == ["On-site training", "Same-day cards"]

    feature_id = public["heroFeatures"][0]["id"]
    r = _put(client, "/api/admin/hero-section", {"heroFeatures": [{"id": feature_id, "_delete": True}]})
    assert r.status_code == 200
    assert [f["title"] for f in client.get("/api/hero-section").json["heroFeatures"]] == ["Same-day cards"]


def test_hero_validation(client):
    bad = {
        "heroSection": {
            "main_heading": "",
            "primary_button_link": "//evil.example.com",
            "background_image_url": "hero.jpg",
        }
    }
    r = _put(client, "/api/admin/hero-section", bad)
    assert r.status_code == 400
    assert r.json["details"] == [
        "main_heading is required.",
        "background_image_url must be a valid URL.",
        "primary_button_link must be a relative path, an anchor, or an absolute http(s) URL.",
    ]


def test_editors_require_login(client):
    client.post("/api/admin/logout", headers={"X-CSRF-Token": client.get("/api/admin/csrf-token").json["csrfToken"]})
    assert client.get("/api/admin/footer").status_code == 401
    assert client.put("/api/admin/hero-section", json=HERO).status_code == 401
