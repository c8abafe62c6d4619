"""Tests for team members (admin CRUD, public listing, about snippet)."""
import pytest
from werkzeug.security import generate_password_hash

from app.cms import create_app
from app.cms.db import session_scope
from app.cms.models import AdminUser, Base
from app.cms.modules.team_members.service import parse_specializations, validate_team_member_payload


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


def _member(**overrides):
    payload = {
        "name": "Jane O'Neil",
        "role": "Lead Instructor",
        "bio": "Twenty years on site.",
        "experience_years": 20,
        "specializations": ["Fall Protection", "Rigging"],
        "featured": True,
        "display_order": 1,
    }
    payload.update(overrides)
    return payload


def _create(client, **overrides):
    return client.post("/api/admin/team-members", json=_member(**overrides), headers=_csrf(client))


def test_parse_specializations():
    assert parse_specializations(None) == []
    assert parse_specializations("WHMIS, Rigging ,WHMIS") == ["WHMIS", "Rigging"]
    assert parse_specializations('["First Aid"]') == ["First Aid"]
    assert parse_specializations("[not json") is None
    assert parse_specializations([1, 2]) is None


def test_validate_member_payload():
    _, errors = validate_team_member_payload(
        {"name": "J4ne", "role": "", "experience_years": 101, "photo_url": "not a url"}
    )
    assert "name may only contain letters, spaces, hyphens, apostrophes and periods." in errors
    assert "role is required." in errors
    assert "experience_years must be at most 100." in errors
    assert "photo_url must be a valid URL." in errors
    assert "featured must be a boolean." in errors


def test_create_and_fetch_member(client):
    _login(client)
    r = _create(client, photo_url="/media/team-photos/jane.png")
    assert r.status_code == 201
    member = r.json["teamMember"]
    assert member["specializations"] == ["Fall Protection", "Rigging"]
    assert member["photo_url"] == "/media/team-photos/jane.png"

    r = client.get(f"/api/admin/team-members/{member['id']}")
    assert r.json["teamMember"]["name"] == "Jane O'Neil"


def test_duplicate_name_conflicts(client):
    _login(client)
    assert _create(client).status_code == 201
    r = _create(client, role="Someone else")
    assert r.status_code == 409


def test_featured_must_be_boolean(client):
    _login(client)
    r = _create(client, featured="true")
    assert r.status_code == 400
    assert "featured must be a boolean." in r.json["details"]


def test_update_and_delete(client):
    _login(client)
    member_id = _create(client).json["teamMember"]["id"]

    r = client.put(
        f"/api/admin/team-members/{member_id}",
        json=_member(role="Director", specializations="Confined Space"),
        headers=_csrf(client),
    )
    assert r.status_code == 200
    assert r.json["teamMember"]["role"] == "Director"
    assert r.json["teamMember"]["specializations"] == ["Confined Space"]

    r = client.delete(f"/api/admin/team-members/{member_id}", headers=_csrf(client))
    assert r.status_code == 200
    assert client.get(f"/api/admin/team-members/{member_id}").status_code == 404
    r = client.delete(f"/api/admin/team-members/{member_id}", headers=_csrf(client))
    assert r.status_code == 404
    assert r.json["error"] == "Team member not found"


def test_public_listing_and_about_snippet(client):
    _login(client)
    for i, name in enumerate(["Anna", "Bob", "Cara", "Dev", "Eve"]):
        _create(client, name=name, display_order=i)
    _create(client, name="Zed", featured=False, display_order=0)

    r = client.get("/api/team-members")
    names = [m["name"] for m in r.json["teamMembers"]]
    assert names == ["Anna", "Zed", "Bob", "Cara", "Dev", "Eve"]

    r = client.get("/api/team-members?featured=true&limit=2")
    assert [m["name"] for m in r.json["teamMembers"]] == ["Anna", "Bob"]

    r = client.get("/api/about-snippet")
    assert [m["name"] for m in r.json["teamMembers"]] == ["Anna", "Bob", "Cara", "Dev"]
    assert r.json["companyInfo"] is None
    assert r.json["whyChooseUs"] == []
