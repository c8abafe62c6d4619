"""Tests for company info, values and why-choose-us items."""
import pytest
from werkzeug.security import generate_password_hash

from app.cms import create_app
from app.cms.db import session_scope
from app.cms.models import AdminUser, Base
from app.cms.modules.company_info.models import CompanyValue
from app.cms.modules.company_info.service import clean_company_info


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


def _put(client, payload):
    csrf = client.get("/api/admin/csrf-token").json["csrfToken"]
    return client.put("/api/admin/company-info", json=payload, headers={"X-CSRF-Token": csrf})


COMPANY = {
    "company_name": "Summit Safety Training",
    "slogan": "Safety first, every shift",
    "email": "Info@Example.com",
    "established_year": 2004,
    "students_trained_count": 2000,
}


def test_clean_company_info():
    cleaned, errors = clean_company_info({"company_name": "S", "email": "nope", "established_year": 1700})
    assert errors == [
        "company_name must be at least 2 characters.",
        "email must be a valid email address.",
        "established_year must be at least 1800.",
    ]

    cleaned, errors = clean_company_info(COMPANY)
    assert errors == []
    assert cleaned["email"] == "info@example.com"
    assert cleaned["mission"] is None


def test_put_creates_single_row(client):
    _login(client)
    r = _put(client, {"companyInfo": COMPANY})
    assert r.status_code == 200
    assert r.json["success"] is True

    r = _put(client, {"companyInfo": {**COMPANY, "slogan": "Home safe"}})
    assert r.status_code == 200

    info = client.get("/api/company-info").json["companyInfo"]
    assert info["id"] == 1
    assert info["slogan"] == "Home safe"
    assert info["email"] == "info@example.com"


def test_values_sync_create_update_delete(client):
    _login(client)
    r = _put(
        client,
        {
            "companyValues": [
                {"title": "Integrity", "description": "We do what we say we will.", "display_order": 1},
                {"title": "Care", "description": "Every worker goes home safe.", "display_order": 2},
            ],
            "whyChooseUs": [{"point": "Instructors with decades of field experience."}],
        },
    )
    assert r.status_code == 200
    assert r.json["items"]["companyValues"] == {"created": 2, "updated": 0, "deleted": 0}

    values = client.get("/api/admin/company-info").json["companyValues"]
    integrity, care = values
    r = _put(
        client,
        {
            "companyValues": [
                {"id": integrity["id"], "title": "Honesty", "description": "We do what we say we will."},
                {"id": care["id"], "_delete": True},
            ]
        },
    )
    assert r.status_code == 200
    assert r.json["items"]["companyValues"] == {"created": 0, "updated": 1, "deleted": 1}

    content = client.get("/api/company-info").json
    assert [v["title"] for v in content["companyValues"]] == ["Honesty"]
    assert len(content["whyChooseUs"]) == 1


def test_replace_value_with_same_title(client):
    _login(client)
    _put(client, {"companyValues": [{"title": "Safety", "description": "Every worker goes home safe."}]})
    old_id = client.get("/api/admin/company-info").json["companyValues"][0]["id"]

    r = _put(
        client,
        {
            "companyValues": [
                {"title": "Safety", "description": "Nobody gets hurt on our watch."},
                {"id": old_id, "_delete": True},
            ]
        },
    )
    assert r.status_code == 200
    assert r.json["items"]["companyValues"] == {"created": 1, "updated": 0, "deleted": 1}

    values = client.get("/api/company-info").json["companyValues"]
    assert [(v["title"], v["description"]) for v in values] == [("Safety", "Nobody gets hurt on our watch.")]
    assert values[0]["id"] != old_id


def test_invalid_items_roll_back_everything(client):
    _login(client)
    r = _put(
        client,
        {
            "companyInfo": COMPANY,
            "companyValues": [
                {"title": "Integrity", "description": "We do what we say we will."},
                {"title": "X", "description": "short"},
                {"id": 999, "title": "Ghost", "description": "Does not exist anywhere."},
            ],
        },
    )
    assert r.status_code == 400
    assert r.json["details"] == [
        "Company value #2: title must be at least 2 characters.",
        "Company value #2: description must be at least 10 characters.",
        "Company value #3: id 999 not found.",
    ]

    assert client.get("/api/company-info").json["companyInfo"] is None
    with session_scope(client.application) as s:
        assert s.query(CompanyValue).count() == 0


def test_requires_json_object(client):
    _login(client)
    r = _put(client, ["not", "an", "object"])
    assert r.status_code == 400
    assert r.json["error"] == "Request body must be a JSON object."
