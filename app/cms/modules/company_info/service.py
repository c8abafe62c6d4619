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
    is_valid_email,
    optional_int,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.cms.models import AdminUser

COMPANY_INFO_ID = 1

_TEXT_FIELDS = {
    "slogan": 255,
    "description": 5000,
    "mission": 5000,
    "phone": 255,
    "location": 255,
    "business_hours": 255,
    "response_time": 255,
    "service_area": 255,
    "emergency_availability": 255,
}
_COUNT_FIELDS = ("total_experience", "students_trained_count", "total_courses")


def clean_company_info(payload: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []
    cleaned: dict = {}

    name = clean_text(payload.get("company_name"), 255)
    if not name or len(name) < 2:
        errors.append("company_name must be at least 2 characters.")
    cleaned["company_name"] = name

    for field, max_len in _TEXT_FIELDS.items():
        cleaned[field] = clean_text(payload.get(field), max_len)

    email = clean_text(payload.get("email"), 255)
    if email and not is_valid_email(email):
        errors.append("email must be a valid email address.")
    cleaned["email"] = email.lower() if email else None

    for field in _COUNT_FIELDS:
        cleaned[field] = optional_int(payload.get(field), field, errors, minimum=0)
    year = datetime.utcnow().year
    cleaned["established_year"] = optional_int(
        payload.get("established_year"), "established_year", errors, minimum=1800, maximum=year
    )
    return cleaned, errors


def clean_company_value(item: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []
    title = clean_text(item.get("title"), 255)
    description = clean_text(item.get("description"), 2000)
    if not title or len(title) < 2:
        errors.append("title must be at least 2 characters.")
    if not description or len(description) < 10:
        errors.append("description must be at least 10 characters.")
    return (
        {
            "title": title,
            "description": description,
            "icon": clean_text(item.get("icon"), 100),
            "display_order": display_order(item.get("display_order"), errors),
        },
        errors,
    )


def clean_why_choose_us(item: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []
    point = clean_text(item.get("point"), 500)
    if not point or len(point) < 10:
        errors.append("point must be at least 10 characters.")
    image_url = clean_text(item.get("image_url"), 500)
    if image_url and not is_image_reference(image_url):
        errors.append("image_url must be an absolute URL.")
    return (
        {
            "point": point,
            "display_order": display_order(item.get("display_order"), errors),
            "image_url": image_url,
            "image_alt": clean_text(item.get("image_alt"), 255),
        },
        errors,
    )


def get_company_content(s: "Session") -> dict:
    from app.cms.modules.company_info.models import CompanyInfo, CompanyValue, WhyChooseUs

    info = s.get(CompanyInfo, COMPANY_INFO_ID)
    values = s.query(CompanyValue).order_by(CompanyValue.display_order.asc(), CompanyValue.id.asc()).all()
    why = s.query(WhyChooseUs).order_by(WhyChooseUs.display_order.asc(), WhyChooseUs.id.asc()).all()
    return {
        "companyInfo": info.to_dict() if info else None,
        "companyValues": [v.to_dict() for v in values],
        "whyChooseUs": [w.to_dict() for w in why],
    }


def update_company_content(s: "Session", payload: dict, user: "AdminUser") -> dict:
    """
    Upsert the company info row and sync values / why-choose-us items.
    Raises ValidationError; nothing is committed here.
    """
    from app.cms.modules.company_info.models import CompanyInfo, CompanyValue, WhyChooseUs

    errors: list[str] = []
    changes: dict = {}

    info_payload = payload.get("companyInfo")
    if info_payload is not None:
        if not isinstance(info_payload, dict):
            raise ValidationError("companyInfo must be an object.")
        cleaned, info_errors = clean_company_info(info_payload)
        errors.extend(info_errors)
        if not info_errors:
            info = s.get(CompanyInfo, COMPANY_INFO_ID)
            if info is None:
                info = CompanyInfo(id=COMPANY_INFO_ID, **cleaned)
                s.add(info)
                changes["companyInfo"] = "created"
            else:
                diff = apply_changes(info, cleaned)
                if diff:
                    changes["companyInfo"] = diff
            info.updated_at = datetime.utcnow()

    summaries = {}
    for key, model, clean, label in (
        ("companyValues", CompanyValue, clean_company_value, "Company value"),
        ("whyChooseUs", WhyChooseUs, clean_why_choose_us, "Why choose us item"),
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
        action="company_info.update",
        entity_type="CompanyInfo",
        entity_id=str(COMPANY_INFO_ID),
        metadata={"changes": changes, "items": summaries},
    )
    return summaries
