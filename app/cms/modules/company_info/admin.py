from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.cms.db import db_session
from app.cms.modules.company_info.service import get_company_content, update_company_content
from app.cms.rbac import current_admin, require_admin
from app.cms.validation import json_payload

bp = Blueprint("company_info", __name__)


@bp.get("/company-info")
@require_admin()
def company_info_get():
    s = db_session()
    return jsonify(get_company_content(s))


@bp.put("/company-info")
@require_admin()
def company_info_put():
    s = db_session()
    payload = json_payload(request)
    summary = update_company_content(s, payload, current_admin())
    s.commit()
    return jsonify({"success": True, "message": "Company information updated successfully", "items": summary})
