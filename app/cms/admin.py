from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.cms.db import db_session
from app.cms.lockout import lockout_stats, recent_attempts
from app.cms.models import AuditEvent
from app.cms.rbac import require_admin

bp = Blueprint("admin", __name__)


@bp.get("/dashboard")
@require_admin()
def dashboard():
    """Content counts, database connectivity and storage configuration."""
    from app.cms.models import AdminSession
    from app.cms.modules.contact.models import ContactSubmission
    from app.cms.modules.courses.models import Course, CourseCategory
    from app.cms.modules.files.models import MediaFile
    from app.cms.modules.team_members.models import TeamMember
    from app.cms.modules.testimonials.models import Testimonial

    s = db_session()
    diag = {
        "env": current_app.config.get("ENV"),
        "db_connected": False,
        "db_error": None,
        "counts": {},
        "storage": {
            "backend": current_app.config.get("STORAGE_BACKEND") or "local",
            "bucket": current_app.config.get("S3_BUCKET") or None,
        },
    }
    try:
        s.execute(text("SELECT 1"))
        diag["db_connected"] = True
    except SQLAlchemyError as e:
        current_app.logger.error("Dashboard DB check failed: %s", e)
        diag["db_error"] = str(e)

    if diag["db_connected"]:
        diag["counts"] = {
            "courses": s.query(Course).count(),
            "published_courses": s.query(Course).filter(Course.published.is_(True)).count(),
            "course_categories": s.query(CourseCategory).count(),
            "team_members": s.query(TeamMember).count(),
            "testimonials": s.query(Testimonial).count(),
            "files": s.query(MediaFile).count(),
            "contact_submissions": s.query(ContactSubmission).count(),
            "active_sessions": s.query(AdminSession).count(),
        }
    return jsonify(diag)


@bp.get("/audit")
@require_admin(roles=("admin",))
def audit_list():
    """
    Last 200 audit events, newest first.
    Filters: action (contains), actor (username contains).
    """
    s = db_session()
    action = (request.args.get("action") or "").strip()
    actor = (request.args.get("actor") or "").strip()

    q = s.query(AuditEvent)
    if action:
        q = q.filter(AuditEvent.action.like(f"%{action}%"))
    if actor:
        q = q.filter(AuditEvent.actor_username.ilike(f"%{actor}%"))
    events = q.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(200).all()
    return jsonify({"events": [e.to_dict() for e in events]})


@bp.get("/security/failed-logins")
@require_admin(roles=("admin",))
def failed_logins():
    s = db_session()
    return jsonify(
        {
            "stats": lockout_stats(s),
            "recentAttempts": [
                {
                    "username": a.username,
                    "ip_address": a.ip_address,
                    "user_agent": a.user_agent,
                    "attempted_at": a.attempted_at.isoformat(),
                }
                for a in recent_attempts(s)
            ],
        }
    )
