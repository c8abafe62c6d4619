from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.cms.audit import record_event
from app.cms.utils import apply_changes
from app.cms.validation import ValidationError, clean_text, is_image_reference, optional_int, require_fields

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.cms.models import AdminUser
    from app.cms.modules.testimonials.models import Testimonial

REQUIRED_FIELDS = ("client_name", "client_role", "company", "content")


def validate_testimonial_payload(payload: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []
    missing = require_fields(payload, REQUIRED_FIELDS)
    if missing:
        errors.append(f"Missing required fields: {', '.join(missing)}")

    content = clean_text(payload.get("content"))
    if content and len(content) > 5000:
        errors.append("content must be at most 5000 characters.")

    rating = optional_int(payload.get("rating"), "rating", errors, minimum=1, maximum=5)

    photo = clean_text(payload.get("client_photo_url"), 500)
    if photo and not is_image_reference(photo):
        errors.append("client_photo_url must be a valid URL.")

    featured = payload.get("featured", False)
    if not isinstance(featured, bool):
        errors.append("featured must be a boolean.")

    return (
        {
            "client_name": clean_text(payload.get("client_name"), 100),
            "client_role": clean_text(payload.get("client_role"), 100),
            "company": clean_text(payload.get("company"), 150),
            "industry": clean_text(payload.get("industry"), 100),
            "content": content,
            "rating": 5 if rating is None else rating,
            "client_photo_url": photo,
            "featured": bool(featured),
        },
        errors,
    )


def create_testimonial(s: "Session", payload: dict, user: "AdminUser") -> "Testimonial":
    from app.cms.modules.testimonials.models import Testimonial

    cleaned, errors = validate_testimonial_payload(payload)
    if errors:
        raise ValidationError(errors)
    now = datetime.utcnow()
    testimonial = Testimonial(**cleaned, created_at=now, updated_at=now)
    s.add(testimonial)
    s.flush()
    record_event(
        s,
        actor=user,
        action="testimonial.create",
        entity_type="Testimonial",
        entity_id=str(testimonial.id),
        metadata={"client_name": testimonial.client_name, "company": testimonial.company},
    )
    return testimonial


def update_testimonial(s: "Session", testimonial: "Testimonial", payload: dict, user: "AdminUser") -> "Testimonial":
    cleaned, errors = validate_testimonial_payload(payload)
    if errors:
        raise ValidationError(errors)
    changes = apply_changes(testimonial, cleaned)
    testimonial.updated_at = datetime.utcnow()
    s.flush()
    record_event(
        s,
        actor=user,
        action="testimonial.edit",
        entity_type="Testimonial",
        entity_id=str(testimonial.id),
        metadata={"changes": changes},
    )
    return testimonial


def delete_testimonial(s: "Session", testimonial: "Testimonial", user: "AdminUser") -> None:
    record_event(
        s,
        actor=user,
        action="testimonial.delete",
        entity_type="Testimonial",
        entity_id=str(testimonial.id),
        metadata={"client_name": testimonial.client_name},
    )
    s.delete(testimonial)
    s.flush()


def list_testimonials(s: "Session", *, featured_only: bool = False, limit: int | None = None) -> list["Testimonial"]:
    from app.cms.modules.testimonials.models import Testimonial

    q = s.query(Testimonial)
    if featured_only:
        q = q.filter(Testimonial.featured.is_(True))
    q = q.order_by(Testimonial.created_at.desc(), Testimonial.id.desc())
    if limit:
        q = q.limit(limit)
    return q.all()
