from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.cms.db import db_session
from app.cms.modules.footer.service import get_footer, update_footer
from app.cms.rbac import current_admin, require_admin
from app.cms.validation import json_payload

bp = Blueprint("footer", __name__)


@bp.get("/footer")
@require_admin()
def footer_get():
    s = db_session()
    return jsonify(get_footer(s))


@bp.put("/footer")
@require_admin()
def footer_put():
    s = db_session()
    summary = update_footer(s, json_payload(request), current_admin())
    s.commit()
    return jsonify({"success": True, "message": "Footer content updated successfully", "items": summary})
