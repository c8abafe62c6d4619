from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.cms.audit import record_event
from app.cms.utils import apply_changes, sync_items
from app.cms.validation import (
    ValidationError,
    clean_text,
    display_order,
    is_image_reference,
    is_link_target,
    is_valid_email,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.cms.models import AdminUser

FOOTER_CONTENT_ID = 1
POPULAR_COURSES_LIMIT = 5


def _is_active(item: dict, errors: list[str]) -> bool:
    raw = item.get("is_active", True)
    if not isinstance(raw, bool):
        errors.append("is_active must be a boolean.")
        return True
    return raw


def clean_footer_content(payload: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []
    company_name = clean_text(payload.get("company_name"), 255)
    if not company_name:
        errors.append("company_name is required.")
    email = clean_text(payload.get("email"), 254)
    if email and not is_valid_email(email):
        errors.append("email must be a valid email address.")
    logo_url = clean_text(payload.get("logo_url"), 500)
    if logo_url and not is_image_reference(logo_url):
        errors.append("logo_url must be a valid URL.")
    return (
        {
            "company_name": company_name,
            "tagline": clean_text(payload.get("tagline"), 255),
            "slogan": clean_text(payload.get("slogan"), 255),
            "description": clean_text(payload.get("description"), 2000),
            "phone": clean_text(payload.get("phone"), 50),
            "email": email.lower() if email else None,
            "location": clean_text(payload.get("location"), 255),
            "logo_url": logo_url,
            "logo_alt": clean_text(payload.get("logo_alt"), 255),
            "copyright_text": clean_text(payload.get("copyright_text"), 255),
            "tagline_bottom": clean_text(payload.get("tagline_bottom"), 255),
        },
        errors,
    )


def clean_footer_stat(item: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []
    number_text = clean_text(item.get("number_text"), 50)
    label = clean_text(item.get("label"), 100)
    if not number_text:
        errors.append("number_text is required.")
    if not label:
        errors.append("label is required.")
    return (
        {"number_text": number_text, "label": label, "display_order": display_order(item.get("display_order"), errors)},
        errors,
    )


def clean_quick_link(item: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []
    title = clean_text(item.get("title"), 100)
    url = clean_text(item.get("url"), 500)
    if not title:
        errors.append("title is required.")
    if not url or not is_link_target(url):
        errors.append("url must be a relative path, an anchor, or an absolute http(s) URL.")
    return (
        {
            "title": title,
            "url": url,
            "display_order": display_order(item.get("display_order"), errors),
            "is_active": _is_active(item, errors),
        },
        errors,
    )


def clean_badge(item: dict) -> tuple[dict, list[str]]:
    """Certifications and bottom badges share a shape."""
    errors: list[str] = []
    title = clean_text(item.get("title"), 100)
    if not title:
        errors.append("title is required.")
    return (
        {
            "title": title,
            "icon": clean_text(item.get("icon"), 100),
            "display_order": display_order(item.get("display_order"), errors),
            "is_active": _is_active(item, errors),
        },
        errors,
    )


def _ordered(s: "Session", model, *, active_only: bool) -> list:
    q = s.query(model)
    if active_only:
        q = q.filter(model.is_active.is_(True))
    return q.order_by(model.display_order.asc(), model.id.asc()).all()


def get_footer(s: "Session", *, public: bool = False) -> dict:
    from app.cms.modules.footer.models import (
        FooterBottomBadge,
        FooterCertification,
        FooterContent,
        FooterQuickLink,
        FooterStat,
    )

    content = s.get(FooterContent, FOOTER_CONTENT_ID)
    data = {
        "footerContent": content.to_dict() if content else None,
        "footerStats": [x.to_dict() for x in s.query(FooterStat).order_by(FooterStat.display_order, FooterStat.id)],
        "footerQuickLinks": [x.to_dict() for x in _ordered(s, FooterQuickLink, active_only=public)],
        "footerCertifications": [x.to_dict() for x in _ordered(s, FooterCertification, active_only=public)],
        "footerBottomBadges": [x.to_dict() for x in _ordered(s, FooterBottomBadge, active_only=public)],
    }
    if public:
        from app.cms.modules.courses.service import list_public_courses

        data["popularCourses"] = [
            {"title": c.title, "slug": c.slug}
            for c in list_public_courses(s, featured=True, limit=POPULAR_COURSES_LIMIT)
        ]
    return data


def update_footer(s: "Session", payload: dict, user: "AdminUser") -> dict:
    from app.cms.modules.footer.models import (
        FooterBottomBadge,
        FooterCertification,
        FooterContent,
        FooterQuickLink,
        FooterStat,
    )

    errors: list[str] = []
    changes: dict = {}

    content_payload = payload.get("footerContent")
    if content_payload is not None:
        if not isinstance(content_payload, dict):
            raise ValidationError("footerContent must be an object.")
        cleaned, content_errors = clean_footer_content(content_payload)
        errors.extend(content_errors)
        if not content_errors:
            content = s.get(FooterContent, FOOTER_CONTENT_ID)
            if content is None:
                s.add(FooterContent(id=FOOTER_CONTENT_ID, updated_at=datetime.utcnow(), **cleaned))
                changes["footerContent"] = "created"
            else:
                diff = apply_changes(content, cleaned)
                if diff:
                    content.updated_at = datetime.utcnow()
                    changes["footerContent"] = diff

    summaries = {}
    for key, model, clean, label in (
        ("footerStats", FooterStat, clean_footer_stat, "Footer stat"),
        ("footerQuickLinks", FooterQuickLink, clean_quick_link, "Quick link"),
        ("footerCertifications", FooterCertification, clean_badge, "Certification"),
        ("footerBottomBadges", FooterBottomBadge, clean_badge, "Bottom badge"),
    ):
        try:
            summaries[key] = sync_items(s, model, payload.get(key), clean, label=label)
        except ValidationError as e:
            errors.extend(e.errors)

    if errors:
        raise ValidationError(errors)

    s.flush()
    record_event(
        s,
        actor=user,
        action="footer.update",
        entity_type="FooterContent",
        entity_id=str(FOOTER_CONTENT_ID),
        metadata={"changes": changes, "items": summaries},
    )
    return summaries
