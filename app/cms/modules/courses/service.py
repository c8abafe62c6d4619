from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING

from app.cms.audit import record_event
from app.cms.utils import apply_changes
from app.cms.validation import (
    ConflictError,
    ValidationError,
    clean_text,
    display_order,
    is_image_reference,
    optional_int,
    parse_bool,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.cms.models import AdminUser
    from app.cms.modules.courses.models import Course, CourseCategory

SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
REQUIRED_FIELDS = ("title", "description", "duration", "audience")
MAX_FEATURES = 50


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").lower()).strip("-")
    return slug[:100].rstrip("-")


def _clean_features(raw, errors: list[str]) -> list[str] | None:
    if raw is None:
        return None
    if not isinstance(raw, list):
        errors.append("features must be a list of strings.")
        return None
    features = []
    for item in raw:
        if not isinstance(item, str):
            errors.append("features must be a list of strings.")
            return None
        text = clean_text(item, 500)
        if text:
            features.append(text)
    if len(features) > MAX_FEATURES:
        errors.append(f"A course can have at most {MAX_FEATURES} features.")
    return features


def validate_course_payload(payload: dict, current: "Course | None" = None) -> tuple[dict, list[str]]:
    """
    Validate course create/update payload. Returns (cleaned fields, errors).

    Omitted flags keep the values of `current`; a new course is published and
    not popular unless the payload says otherwise.
    """
    errors: list[str] = []
    missing = [f for f in REQUIRED_FIELDS if not clean_text(payload.get(f))]
    if missing:
        errors.append(f"Missing required fields: {', '.join(missing)}")

    title = clean_text(payload.get("title"))
    if title and len(title) > 200:
        errors.append("title must be at most 200 characters.")
    description = clean_text(payload.get("description"))
    if description and len(description) > 5000:
        errors.append("description must be at most 5000 characters.")
    for field in ("duration", "audience"):
        value = clean_text(payload.get(field))
        if value and len(value) > 100:
            errors.append(f"{field} must be at most 100 characters.")

    slug = clean_text(payload.get("slug"))
    if slug is None and title:
        slug = slugify(title)
    if slug is not None:
        slug = slug.lower()
        if len(slug) > 100:
            errors.append("slug must be at most 100 characters.")
        elif not SLUG_RE.match(slug):
            errors.append("slug may only contain lowercase letters, numbers and single hyphens.")

    image_url = clean_text(payload.get("image_url"), 500)
    if image_url and not is_image_reference(image_url):
        errors.append("image_url must be a valid URL including the protocol.")

    flags = {}
    for flag in ("popular", "published"):
        raw = payload.get(flag)
        if raw is None:
            if current is not None:
                flags[flag] = getattr(current, flag)
            else:
                flags[flag] = flag == "published"
            continue
        value = parse_bool(raw)
        if value is None or not isinstance(raw, bool):
            errors.append(f"{flag} must be a boolean.")
        flags[flag] = bool(value)

    category_id = optional_int(payload.get("category_id"), "category_id", errors, minimum=1)

    cleaned = {
        "title": title,
        "slug": slug,
        "description": description,
        "duration": clean_text(payload.get("duration")),
        "audience": clean_text(payload.get("audience")),
        "category_id": category_id,
        "popular": flags["popular"],
        "published": flags["published"],
        "image_url": image_url,
        "image_alt": clean_text(payload.get("image_alt"), 255),
        "overview": clean_text(payload.get("overview"), 10000),
        "includes": clean_text(payload.get("includes"), 5000),
        "format": clean_text(payload.get("format"), 5000),
        "passing_grade": clean_text(payload.get("passing_grade"), 100),
        "what_youll_learn": clean_text(payload.get("what_youll_learn"), 10000),
    }
    features = _clean_features(payload.get("features"), errors)
    if features is not None:
        cleaned["features"] = features
    return cleaned, errors


def _check_references(s: "Session", cleaned: dict, course_id: int | None = None) -> None:
    from app.cms.modules.courses.models import Course, CourseCategory

    if cleaned.get("category_id") is not None and s.get(CourseCategory, cleaned["category_id"]) is None:
        raise ValidationError("Invalid category_id")
    q = s.query(Course.id).filter(Course.slug == cleaned["slug"])
    if course_id is not None:
        q = q.filter(Course.id != course_id)
    if q.first() is not None:
        raise ConflictError(f"A course with slug '{cleaned['slug']}' already exists.")


def _replace_features(course: "Course", features: list[str]) -> None:
    from app.cms.modules.courses.models import CourseFeature

    course.features.clear()
    for idx, text in enumerate(features):
        course.features.append(CourseFeature(feature=text, display_order=idx))


def create_course(s: "Session", payload: dict, user: "AdminUser") -> "Course":
    from app.cms.modules.courses.models import Course

    cleaned, errors = validate_course_payload(payload)
    if errors:
        raise ValidationError(errors)
    _check_references(s, cleaned)

    features = cleaned.pop("features", [])
    now = datetime.utcnow()
    course = Course(**cleaned, created_at=now, updated_at=now)
    _replace_features(course, features)
    s.add(course)
    s.flush()
    s.expire(course, ["category"])

    record_event(
        s,
        actor=user,
        action="course.create",
        entity_type="Course",
        entity_id=str(course.id),
        metadata={"slug": course.slug, "title": course.title, "features": len(features)},
    )
    return course


def update_course(s: "Session", course: "Course", payload: dict, user: "AdminUser") -> "Course":
    """Full update. Features are replaced when the payload carries a `features` list."""
    cleaned, errors = validate_course_payload(payload, course)
    if errors:
        raise ValidationError(errors)
    _check_references(s, cleaned, course_id=course.id)

    features = cleaned.pop("features", None)
    changes = apply_changes(course, cleaned)
    if features is not None and features != [f.feature for f in course.features]:
        changes["features"] = {"old": [f.feature for f in course.features], "new": features}
        _replace_features(course, features)
    course.updated_at = datetime.utcnow()
    s.flush()
    s.expire(course, ["category"])

    record_event(
        s,
        actor=user,
        action="course.edit",
        entity_type="Course",
        entity_id=str(course.id),
        metadata={"slug": course.slug, "changes": changes},
    )
    return course


def delete_course(s: "Session", course: "Course", user: "AdminUser") -> None:
    record_event(
        s,
        actor=user,
        action="course.delete",
        entity_type="Course",
        entity_id=str(course.id),
        metadata={"slug": course.slug, "title": course.title},
    )
    s.delete(course)
    s.flush()


def list_courses(s: "Session") -> list["Course"]:
    from app.cms.modules.courses.models import Course

    return s.query(Course).order_by(Course.title.asc(), Course.id.asc()).all()


def list_public_courses(s: "Session", *, featured: bool = False, limit: int | None = None) -> list["Course"]:
    from app.cms.modules.courses.models import Course

    q = s.query(Course).filter(Course.published.is_(True))
    if featured:
        q = q.filter(Course.popular.is_(True))
    q = q.order_by(Course.popular.desc(), Course.title.asc(), Course.id.asc())
    if limit:
        q = q.limit(limit)
    return q.all()


def get_public_course(s: "Session", slug: str) -> "Course | None":
    from app.cms.modules.courses.models import Course

    return s.query(Course).filter(Course.slug == slug, Course.published.is_(True)).one_or_none()


def list_categories(s: "Session") -> list["CourseCategory"]:
    from app.cms.modules.courses.models import CourseCategory

    return s.query(CourseCategory).order_by(CourseCategory.display_order.asc(), CourseCategory.name.asc()).all()


def create_category(s: "Session", payload: dict, user: "AdminUser") -> "CourseCategory":
    from app.cms.modules.courses.models import CourseCategory

    errors: list[str] = []
    name = clean_text(payload.get("name"), 100)
    if not name:
        raise ValidationError("Category name is required")
    order = display_order(payload.get("display_order"), errors)
    if errors:
        raise ValidationError(errors)
    if s.query(CourseCategory.id).filter(CourseCategory.name == name).first() is not None:
        raise ConflictError(f"A category named '{name}' already exists.")

    category = CourseCategory(
        name=name,
        description=clean_text(payload.get("description"), 2000),
        display_order=order,
    )
    s.add(category)
    s.flush()
    record_event(
        s,
        actor=user,
        action="course_category.create",
        entity_type="CourseCategory",
        entity_id=str(category.id),
        metadata={"name": name},
    )
    return category
