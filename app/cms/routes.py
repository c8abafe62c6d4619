from __future__ import annotations

import mimetypes
from datetime import datetime

from flask import Blueprint, Response, abort, current_app, jsonify, redirect, render_template, request, send_file

from app.cms.db import db_session
from app.cms.modules.company_info.service import get_company_content
from app.cms.modules.courses.service import get_public_course, list_public_courses
from app.cms.modules.files.service import ALLOWED_CATEGORIES, list_public_files
from app.cms.modules.footer.service import get_footer
from app.cms.modules.hero_section.service import get_hero_content
from app.cms.modules.team_members.service import ABOUT_SNIPPET_LIMIT, list_team_members
from app.cms.modules.testimonials.service import list_testimonials
from app.cms.rate_limit import current_limiter, rate_limit_headers
from app.cms.security import client_ip
from app.cms.storage import LocalStorage, StorageError, storage_from_config
from app.cms.validation import parse_bool, parse_int

bp = Blueprint("routes", __name__)

MAX_PUBLIC_LIMIT = 100

STATIC_PAGES = (
    ("/", "daily", 1.0),
    ("/about", "monthly", 0.8),
    ("/contact", "monthly", 0.8),
    ("/courses", "weekly", 0.9),
    ("/privacy", "yearly", 0.5),
    ("/terms", "yearly", 0.5),
)


def _list_args() -> tuple[bool, int | None]:
    featured = parse_bool(request.args.get("featured")) is True
    limit = parse_int(request.args.get("limit"))
    if limit is not None:
        limit = max(1, min(limit, MAX_PUBLIC_LIMIT))
    return featured, limit


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """Liveness probe. No DB access."""
    return "ok", 200


@bp.get("/api/company-info")
def public_company_info():
    return jsonify(get_company_content(db_session()))


@bp.get("/api/courses")
def public_courses():
    featured, limit = _list_args()
    courses = list_public_courses(db_session(), featured=featured, limit=limit)
    return jsonify({"courses": [c.to_dict() for c in courses]})


@bp.get("/api/courses/<slug>")
def public_course_detail(slug: str):
    course = get_public_course(db_session(), slug.lower())
    if course is None:
        return jsonify({"error": "Course not found"}), 404
    return jsonify({"course": course.to_dict()})


@bp.get("/api/team-members")
def public_team_members():
    featured, limit = _list_args()
    members = list_team_members(db_session(), featured_only=featured, limit=limit)
    return jsonify({"teamMembers": [m.to_dict() for m in members]})


@bp.get("/api/about-snippet")
def public_about_snippet():
    s = db_session()
    content = get_company_content(s)
    members = list_team_members(s, featured_only=True, limit=ABOUT_SNIPPET_LIMIT)
    return jsonify(
        {
            "teamMembers": [m.to_dict() for m in members],
            "companyInfo": content["companyInfo"],
            "whyChooseUs": content["whyChooseUs"],
        }
    )


@bp.get("/api/testimonials")
def public_testimonials():
    featured, limit = _list_args()
    testimonials = list_testimonials(db_session(), featured_only=featured, limit=limit)
    return jsonify({"testimonials": [t.to_dict() for t in testimonials]})


@bp.get("/api/footer")
def public_footer():
    return jsonify(get_footer(db_session(), public=True))


@bp.get("/api/hero-section")
def public_hero_section():
    rl = current_limiter().check(client_ip(request), "public_api")
    if not rl.allowed:
        return jsonify({"error": "Too many requests. Please try again later."}), 429, rate_limit_headers(rl)
    resp = jsonify(get_hero_content(db_session()))
    resp.headers.update(rate_limit_headers(rl))
    return resp


@bp.get("/api/public-files")
def public_files():
    category = (request.args.get("category") or "").strip().lower()
    if not category:
        return jsonify({"error": "Category is required"}), 400
    if category not in ALLOWED_CATEGORIES:
        return jsonify({"error": "Invalid category"}), 400
    files = list_public_files(db_session(), category)
    return jsonify({"files": [{"id": f.id, "blob_url": f.blob_url, "alt_text": f.alt_text} for f in files]})


@bp.get("/sitemap.xml")
def sitemap():
    base = (current_app.config.get("SITE_URL") or request.host_url).rstrip("/")
    today = datetime.utcnow().date().isoformat()
    pages = [
        {"loc": f"{base}{path}", "lastmod": today, "changefreq": freq, "priority": prio}
        for path, freq, prio in STATIC_PAGES
    ]
    for course in list_public_courses(db_session()):
        pages.append(
            {
                "loc": f"{base}/courses/{course.slug}",
                "lastmod": (course.updated_at or datetime.utcnow()).date().isoformat(),
                "changefreq": "weekly",
                "priority": 0.9,
            }
        )
    xml = render_template("sitemap.xml", pages=pages)
    return Response(xml, mimetype="application/xml", headers={"Cache-Control": "public, max-age=3600"})


@bp.get("/media/<path:key>")
def media(key: str):
    storage = storage_from_config(current_app.config)
    if not isinstance(storage, LocalStorage):
        return redirect(storage.public_url(key), code=302)
    try:
        if not storage.exists(key):
            abort(404)
        fobj = storage.open(key)
    except StorageError:
        abort(404)
    mimetype = mimetypes.guess_type(key)[0] or "application/octet-stream"
    resp = send_file(fobj, mimetype=mimetype, max_age=86400)
    if mimetype == "image/svg+xml":
        resp.headers["Content-Security-Policy"] = "default-src 'none'; style-src 'unsafe-inline'; sandbox"
    return resp
