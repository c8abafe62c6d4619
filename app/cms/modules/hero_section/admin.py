from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.cms.db import db_session
from app.cms.modules.hero_section.service import get_hero_content, update_hero_content
from app.cms.rbac import current_admin, require_admin
from app.cms.validation import json_payload

bp = Blueprint("hero_section", __name__)


@bp.get("/hero-section")
@require_admin()
def hero_section_get():
    s = db_session()
    return jsonify(get_hero_content(s))


@bp.put("/hero-section")
@require_admin()
def hero_section_put():
    s = db_session()
    summary = update_hero_content(s, json_payload(request), current_admin())
    s.commit()
    return jsonify({"success": True, "message": "Hero section updated successfully", "items": summary})
