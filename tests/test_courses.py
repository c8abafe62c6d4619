"""Tests for the courses module (admin CRUD, categories, public catalog)."""
import json

import pytest
from werkzeug.security import generate_password_hash

from app.cms import create_app
from app.cms.db import session_scope
from app.cms.models import AdminUser, AuditEvent, Base
from app.cms.modules.courses.models import Course, CourseFeature
from app.cms.modules.courses.service import slugify, validate_course_payload


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("JWT_SECRET", "test-jwt-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("SITE_URL", "https://training.example.com")

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
    r = client.post("/api/admin/login", json={"username": "admin", "password": "password123"})
    assert r.status_code == 200


def _csrf(client):
    return {"X-CSRF-Token": client.get("/api/admin/csrf-token").json["csrfToken"]}


def _course(**overrides):
    payload = {
        "title": "Fall Protection",
        "description": "Working safely at heights.",
        "duration": "8 hours",
        "audience": "Construction workers",
        "features": ["Harness inspection", "Rescue planning"],
        "published": True,
    }
    payload.update(overrides)
    return payload


def _create(client, **overrides):
    return client.post("/api/admin/courses", json=_course(**overrides), headers=_csrf(client))


def test_slugify():
    assert slugify("WHMIS 2015: Basics!") == "whmis-2015-basics"
    assert slugify("  --Confined   Space-- ") == "confined-space"


def test_validate_course_payload_reports_every_problem():
    cleaned, errors = validate_course_payload(
        {"title": "x" * 201, "slug": "Bad Slug", "popular": "yes", "image_url": "ftp://nope", "category_id": 0}
    )
    assert "Missing required fields: description, duration, audience" in errors
    assert "title must be at most 200 characters." in errors
    assert any(e.startswith("slug may only contain") for e in errors)
    assert "popular must be a boolean." in errors
    assert "image_url must be a valid URL including the protocol." in errors
    assert "category_id must be at least 1." in errors


def test_validate_course_payload_strips_markup():
    cleaned, errors = validate_course_payload(_course(description="<b>Bold</b> claims<script>alert(1)</script>"))
    assert errors == []
    assert cleaned["description"] == "Bold claims"
    assert cleaned["slug"] == "fall-protection"


def test_create_requires_login(client):
    r = client.post("/api/admin/courses", json=_course())
    assert r.status_code == 401


def test_create_course(client):
    _login(client)
    r = _create(client)
    assert r.status_code == 201
    course_id = r.json["courseId"]

    r = client.get(f"/api/admin/courses/{course_id}")
    assert r.status_code == 200
    course = r.json["course"]
    assert course["slug"] == "fall-protection"
    assert course["category_name"] == "Uncategorized"
    assert course["features"] == ["Harness inspection", "Rescue planning"]

    with session_scope(client.application) as s:
        ev = s.query(AuditEvent).filter(AuditEvent.action == "course.create").one()
        assert ev.actor_username == "admin"
        assert json.loads(ev.metadata_json)["slug"] == "fall-protection"


def test_create_course_validation_error(client):
    _login(client)
    r = client.post("/api/admin/courses", json={"title": "Only a title"}, headers=_csrf(client))
    assert r.status_code == 400
    assert r.json["details"] == ["Missing required fields: description, duration, audience"]


def test_duplicate_slug_conflicts(client):
    _login(client)
    assert _create(client).status_code == 201
    r = _create(client, title="Fall  Protection!")
    assert r.status_code == 409
    assert "fall-protection" in r.json["error"]


def test_unknown_category_rejected(client):
    _login(client)
    r = _create(client, category_id=42)
    assert r.status_code == 400
    assert r.json["error"] == "Invalid category_id"


def test_categories(client):
    _login(client)
    r = client.post("/api/admin/categories", json={"name": "Heights", "display_order": 2}, headers=_csrf(client))
    assert r.status_code == 201
    category_id = r.json["category"]["id"]

    r = client.post("/api/admin/categories", json={"name": "Heights"}, headers=_csrf(client))
    assert r.status_code == 409

    r = client.post("/api/admin/categories", json={"name": ""}, headers=_csrf(client))
    assert r.status_code == 400

    r = _create(client, category_id=category_id)
    course_id = r.json["courseId"]
    assert client.get(f"/api/admin/courses/{course_id}").json["course"]["category_name"] == "Heights"
    assert [c["name"] for c in client.get("/api/admin/categories").json["categories"]] == ["Heights"]


def test_update_replaces_features(client):
    _login(client)
    course_id = _create(client).json["courseId"]

    r = client.put(
        f"/api/admin/courses/{course_id}",
        json=_course(title="Fall Protection Advanced", slug="fall-protection-advanced", features=["Anchors"]),
        headers=_csrf(client),
    )
    assert r.status_code == 200
    assert r.json["course"]["slug"] == "fall-protection-advanced"
    assert r.json["course"]["features"] == ["Anchors"]

    with session_scope(client.application) as s:
        assert s.query(CourseFeature).count() == 1


def test_update_missing_course(client):
    _login(client)
    r = client.put("/api/admin/courses/999", json=_course(), headers=_csrf(client))
    assert r.status_code == 404
    assert r.json["error"] == "Course not found"


def test_delete_course_removes_features(client):
    _login(client)
    course_id = _create(client).json["courseId"]
    r = client.delete(f"/api/admin/courses/{course_id}", headers=_csrf(client))
    assert r.status_code == 200
    assert client.get(f"/api/admin/courses/{course_id}").status_code == 404
    with session_scope(client.application) as s:
        assert s.query(Course).count() == 0
        assert s.query(CourseFeature).count() == 0


def test_public_catalog_hides_unpublished(client):
    _login(client)
    _create(client)
    _create(client, title="Confined Space", published=False)
    _create(client, title="WHMIS", popular=True)

    r = client.get("/api/courses")
    assert [c["slug"] for c in r.json["courses"]] == ["whmis", "fall-protection"]

    r = client.get("/api/courses?featured=true")
    assert [c["slug"] for c in r.json["courses"]] == ["whmis"]

    r = client.get("/api/courses?limit=1")
    assert len(r.json["courses"]) == 1

    assert client.get("/api/courses/fall-protection").json["course"]["title"] == "Fall Protection"
    assert client.get("/api/courses/FALL-PROTECTION").status_code == 200
    assert client.get("/api/courses/confined-space").status_code == 404

    body = client.get("/sitemap.xml").get_data(as_text=True)
    assert "https://training.example.com/courses/fall-protection" in body
    assert "confined-space" not in body

    footer = client.get("/api/footer").json
    assert footer["popularCourses"] == [{"title": "WHMIS", "slug": "whmis"}]


def test_new_course_is_published_unless_flagged(client):
    _login(client)
    payload = _course()
    del payload["published"]
    r = client.post("/api/admin/courses", json=payload, headers=_csrf(client))
    assert r.status_code == 201

    assert [c["slug"] for c in client.get("/api/courses").json["courses"]] == ["fall-protection"]
    assert client.get("/api/courses/fall-protection").status_code == 200

    draft_id = _create(client, title="Confined Space", published=False).json["courseId"]
    edit = _course(title="Confined Space", description="Entry permits and atmospheric testing.")
    del edit["published"]
    r = client.put(f"/api/admin/courses/{draft_id}", json=edit, headers=_csrf(client))
    assert r.status_code == 200
    assert r.json["course"]["published"] is False
    assert client.get("/api/courses/confined-space").status_code == 404
