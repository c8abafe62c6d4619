from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.cms.db import db_session
from app.cms.modules.contact.service import list_submissions
from app.cms.rbac import require_admin
from app.cms.validation import parse_int

bp = Blueprint("contact_admin", __name__)


@bp.get("/contact-submissions")
@require_admin()
def contact_submissions_list():
    s = db_session()
    limit = parse_int(request.args.get("limit")) or 200
    rows = list_submissions(s, limit=max(1, min(limit, 500)))
    return jsonify({"submissions": [r.to_dict() for r in rows]})
