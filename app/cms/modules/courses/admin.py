from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.cms.db import db_session
from app.cms.modules.courses.models import Course
from app.cms.modules.courses.service import (
    create_category,
    create_course,
    delete_course,
    list_categories,
    list_courses,
    update_course,
)
from app.cms.rbac import current_admin, require_admin
from app.cms.validation import json_payload

bp = Blueprint("courses", __name__)


def _get_course_or_404(course_id: int):
    s = db_session()
    course = s.get(Course, course_id)
    if course is None:
        return None, (jsonify({"error": "Course not found"}), 404)
    return course, None


@bp.get("/courses")
@require_admin()
def courses_list():
    s = db_session()
    return jsonify({"courses": [c.to_dict() for c in list_courses(s)]})


@bp.post("/courses")
@require_admin()
def courses_create():
    s = db_session()
    course = create_course(s, json_payload(request), current_admin())
    s.commit()
    return jsonify({"success": True, "message": "Course created successfully", "courseId": course.id}), 201


@bp.get("/courses/<int:course_id>")
@require_admin()
def course_detail(course_id: int):
    course, err = _get_course_or_404(course_id)
    if err:
        return err
    return jsonify({"course": course.to_dict()})


@bp.put("/courses/<int:course_id>")
@require_admin()
def course_update(course_id: int):
    course, err = _get_course_or_404(course_id)
    if err:
        return err
    s = db_session()
    update_course(s, course, json_payload(request), current_admin())
    s.commit()
    return jsonify({"success": True, "message": "Course updated successfully", "course": course.to_dict()})


@bp.delete("/courses/<int:course_id>")
@require_admin()
def course_delete(course_id: int):
    course, err = _get_course_or_404(course_id)
    if err:
        return err
    s = db_session()
    delete_course(s, course, current_admin())
    s.commit()
    return jsonify({"success": True, "message": "Course deleted successfully"})


# ---------- Categories ----------
@bp.get("/categories")
@require_admin()
def categories_list():
    s = db_session()
    return jsonify({"categories": [c.to_dict() for c in list_categories(s)]})


@bp.post("/categories")
@require_admin()
def categories_create():
    s = db_session()
    category = create_category(s, json_payload(request), current_admin())
    s.commit()
    return jsonify({"success": True, "category": category.to_dict()}), 201
