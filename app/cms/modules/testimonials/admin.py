from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.cms.db import db_session
from app.cms.modules.testimonials.models import Testimonial
from app.cms.modules.testimonials.service import (
    create_testimonial,
    delete_testimonial,
    list_testimonials,
    update_testimonial,
)
from app.cms.rbac import current_admin, require_admin
from app.cms.validation import json_payload

bp = Blueprint("testimonials", __name__)


def _not_found():
    return jsonify({"error": "Testimonial not found"}), 404


@bp.get("/testimonials")
@require_admin()
def testimonials_list():
    s = db_session()
    return jsonify({"testimonials": [t.to_dict() for t in list_testimonials(s)]})


@bp.post("/testimonials")
@require_admin()
def testimonials_create():
    s = db_session()
    testimonial = create_testimonial(s, json_payload(request), current_admin())
    s.commit()
    return (
        jsonify({"success": True, "message": "Testimonial created successfully", "testimonial": testimonial.to_dict()}),
        201,
    )


@bp.get("/testimonials/<int:testimonial_id>")
@require_admin()
def testimonial_detail(testimonial_id: int):
    s = db_session()
    testimonial = s.get(Testimonial, testimonial_id)
    if testimonial is None:
        return _not_found()
    return jsonify({"testimonial": testimonial.to_dict()})


@bp.put("/testimonials/<int:testimonial_id>")
@require_admin()
def testimonial_update(testimonial_id: int):
    s = db_session()
    testimonial = s.get(Testimonial, testimonial_id)
    if testimonial is None:
        return _not_found()
    update_testimonial(s, testimonial, json_payload(request), current_admin())
    s.commit()
    return jsonify({"success": True, "message": "Testimonial updated successfully", "testimonial": testimonial.to_dict()})


@bp.delete("/testimonials/<int:testimonial_id>")
@require_admin()
def testimonial_delete(testimonial_id: int):
    s = db_session()
    testimonial = s.get(Testimonial, testimonial_id)
    if testimonial is None:
        return _not_found()
    delete_testimonial(s, testimonial, current_admin())
    s.commit()
    return jsonify({"success": True, "message": "Testimonial deleted successfully"})
