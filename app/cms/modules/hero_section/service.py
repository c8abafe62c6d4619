from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.cms.audit import record_event
from app.cms.utils import apply_changes, sync_items
from app.cms.validation import ValidationError, clean_text, display_order, is_image_reference, is_link_target

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.cms.models import AdminUser

HERO_SECTION_ID = 1


def clean_hero_section(payload: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []
    main_heading = clean_text(payload.get("main_heading"), 255)
    if not main_heading:
        errors.append("main_heading is required.")

    image = clean_text(payload.get("background_image_url"), 500)
    if image and not is_image_reference(image):
        errors.append("background_image_url must be a valid URL.")

    links = {}
    for field in ("primary_button_link", "secondary_button_link"):
        link = clean_text(payload.get(field), 500)
        if link and not is_link_target(link):
            errors.append(f"{field} must be a relative path, an anchor, or an absolute http(s) URL.")
        links[field] = link

    return (
        {
            "slogan": clean_text(payload.get("slogan"), 255),
            "main_heading": main_heading,
            "highlight_text": clean_text(payload.get("highlight_text"), 255),
            "subtitle": clean_text(payload.get("subtitle"), 2000),
            "background_image_url": image,
            "background_image_alt": clean_text(payload.get("background_image_alt"), 255),
            "primary_button_text": clean_text(payload.get("primary_button_text"), 100),
            "secondary_button_text": clean_text(payload.get("secondary_button_text"), 100),
            **links,
        },
        errors,
    )


def clean_hero_stat(item: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []
    number_text = clean_text(item.get("number_text"), 50)
    label = clean_text(item.get("label"), 100)
    if not number_text:
        errors.append("number_text is required.")
    if not label:
        errors.append("label is required.")
    return (
        {
            "number_text": number_text,
            "label": label,
            "description": clean_text(item.get("description"), 1000),
            "display_order": display_order(item.get("display_order"), errors),
        },
        errors,
    )


def clean_hero_feature(item: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []
    title = clean_text(item.get("title"), 255)
    if not title:
        errors.append("title is required.")
    return (
        {
            "title": title,
            "description": clean_text(item.get("description"), 1000),
            "display_order": display_order(item.get("display_order"), errors),
        },
        errors,
    )


def get_hero_content(s: "Session") -> dict:
    from app.cms.modules.hero_section.models import HeroFeature, HeroSection, HeroStat

    hero = s.get(HeroSection, HERO_SECTION_ID)
    return {
        "heroSection": hero.to_dict() if hero else None,
        "heroStats": [x.to_dict() for x in s.query(HeroStat).order_by(HeroStat.display_order, HeroStat.id)],
        "heroFeatures": [x.to_dict() for x in s.query(HeroFeature).order_by(HeroFeature.display_order, HeroFeature.id)],
    }


def update_hero_content(s: "Session", payload: dict, user: "AdminUser") -> dict:
    from app.cms.modules.hero_section.models import HeroFeature, HeroSection, HeroStat

    errors: list[str] = []
    changes: dict = {}

    hero_payload = payload.get("heroSection")
    if hero_payload is not None:
        if not isinstance(hero_payload, dict):
            raise ValidationError("heroSection must be an object.")
        cleaned, hero_errors = clean_hero_section(hero_payload)
        errors.extend(hero_errors)
        if not hero_errors:
            hero = s.get(HeroSection, HERO_SECTION_ID)
            if hero is None:
                s.add(HeroSection(id=HERO_SECTION_ID, updated_at=datetime.utcnow(), **cleaned))
                changes["heroSection"] = "created"
            else:
                diff = apply_changes(hero, cleaned)
                if diff:
                    hero.updated_at = datetime.utcnow()
                    changes["heroSection"] = diff

    summaries = {}
    for key, model, clean, label in (
        ("heroStats", HeroStat, clean_hero_stat, "Hero stat"),
        ("heroFeatures", HeroFeature, clean_hero_feature, "Hero feature"),
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
        action="hero_section.update",
        entity_type="HeroSection",
        entity_id=str(HERO_SECTION_ID),
        metadata={"changes": changes, "items": summaries},
    )
    return summaries
