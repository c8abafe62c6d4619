"""Tests for testimonials."""
import pytest
from werkzeug.security import generate_password_hash

from app.cms import create_app
from app.cms.db import session_scope
from app.cms.models import AdminUser, Base


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
    return c


def _login(client):
    client.post("/api/admin/login", json={"username": "admin", "password": "password123"})


def _csrf(client):
    return {"X-CSRF-Token": client.get("/api/admin/csrf-token").json["csrfToken"]}


def _testimonial(**overrides):
    payload = {
        "client_name": "Sam Lee",
        "client_role": "Site Supervisor",
        "company": "Northwind Builders",
        "industry": "Construction",
        "content": "Our crew left the course confident and certified.",
    }
    payload.update(overrides)
    return payload


def test_create_defaults(client):
    _login(client)
    r = client.post("/api/admin/testimonials", json=_testimonial(), headers=_csrf(client))
    assert r.status_code == 201
    t = r.json["testimonial"]
    assert t["rating"] == 5
    assert t["featured"] is False


def test_create_validation(client):
    _login(client)
    r = client.post(
        "/api/admin/testimonials",
        json=_testimonial(company="", rating=6, featured="yes"),
        headers=_csrf(client),
    )
    assert r.status_code == 400
    assert r.json["details"] == [
        "Missing required fields: company",
        "rating must be at most 5.",
        "featured must be a boolean.",
    ]


def test_update_and_delete(client):
    _login(client)
    tid = client.post("/api/admin/testimonials", json=_testimonial(), headers=_csrf(client)).json["testimonial"]["id"]

    r = client.put(f"/api/admin/testimonials/{tid}", json=_testimonial(rating=4, featured=True), headers=_csrf(client))
    assert r.status_code == 200
    assert r.json["testimonial"]["rating"] == 4

    assert client.delete(f"/api/admin/testimonials/{tid}", headers=_csrf(client)).status_code == 200
    r = client.get(f"/api/admin/testimonials/{tid}")
    assert r.status_code == 404
    assert r.json["error"] == "Testimonial not found"


def test_public_listing(client):
    _login(client)
    client.post("/api/admin/testimonials", json=_testimonial(client_name="Ann"), headers=_csrf(client))
    client.post("/api/admin/testimonials", json=_testimonial(client_name="Ben", featured=True), headers=_csrf(client))

    r = client.get("/api/testimonials")
    assert [t["client_name"] for t in r.json["testimonials"]] == ["Ben", "Ann"]

    r = client.get("/api/testimonials?featured=1")
    assert [t["client_name"] for t in r.json["testimonials"]] == ["Ben"]
