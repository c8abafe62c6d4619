from __future__ import annotations

import json
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
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.cms.models import AdminUser
    from app.cms.modules.team_members.models import TeamMember

NAME_RE = re.compile(r"^[a-zA-Z\s\-'.]+$")
MAX_SPECIALIZATIONS = 20
ABOUT_SNIPPET_LIMIT = 4


def parse_specializations(raw) -> list[str] | None:
    """
    Accept a list of strings, a JSON-encoded list, or a comma separated string.
    Returns None when the value cannot be interpreted.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        text = raw.strip()
        if text.startswith("["):
            try:
                raw = json.loads(text)
            except json.JSONDecodeError:
                return None
        else:
            raw = text.split(",")
    if not isinstance(raw, list):
        return None
    items = []
    for item in raw:
        if not isinstance(item, str):
            return None
        cleaned = clean_text(item, 100)
        if cleaned and cleaned not in items:
            items.append(cleaned)
    return items


def validate_team_member_payload(payload: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []

    name = clean_text(payload.get("name"))
    if not name or not (2 <= len(name) <= 100):
        errors.append("name must be between 2 and 100 characters.")
    elif not NAME_RE.match(name):
        errors.append("name may only contain letters, spaces, hyphens, apostrophes and periods.")

    role = clean_text(payload.get("role"))
    if not role:
        errors.append("role is required.")
    elif len(role) > 100:
        errors.append("role must be at most 100 characters.")

    bio = clean_text(payload.get("bio"))
    if bio and len(bio) > 2000:
        errors.append("bio must be at most 2000 characters.")

    photo_url = clean_text(payload.get("photo_url"), 500)
    if photo_url and not is_image_reference(photo_url):
        errors.append("photo_url must be a valid URL.")

    experience = optional_int(payload.get("experience_years"), "experience_years", errors, minimum=0, maximum=100)

    specializations = parse_specializations(payload.get("specializations"))
    if specializations is None:
        errors.append("specializations must be a list of strings.")
    elif len(specializations) > MAX_SPECIALIZATIONS:
        errors.append(f"At most {MAX_SPECIALIZATIONS} specializations are allowed.")

    raw_featured = payload.get("featured")
    featured = raw_featured if isinstance(raw_featured, bool) else None
    if featured is None:
        errors.append("featured must be a boolean.")

    order = display_order(payload.get("display_order"), errors)

    return (
        {
            "name": name,
            "role": role,
            "bio": bio,
            "photo_url": photo_url,
            "experience_years": experience,
            "specializations": specializations or [],
            "featured": bool(featured),
            "display_order": order,
        },
        errors,
    )


def _ensure_unique_name(s: "Session", name: str, member_id: int | None = None) -> None:
    from app.cms.modules.team_members.models import TeamMember

    q = s.query(TeamMember.id).filter(TeamMember.name == name)
    if member_id is not None:
        q = q.filter(TeamMember.id != member_id)
    if q.first() is not None:
        raise ConflictError(f"A team member named '{name}' already exists.")


def create_team_member(s: "Session", payload: dict, user: "AdminUser") -> "TeamMember":
    from app.cms.modules.team_members.models import TeamMember

    cleaned, errors = validate_team_member_payload(payload)
    if errors:
        raise ValidationError(errors)
    _ensure_unique_name(s, cleaned["name"])

    now = datetime.utcnow()
    member = TeamMember(**cleaned, created_at=now, updated_at=now)
    s.add(member)
    s.flush()
    record_event(
        s,
        actor=user,
        action="team_member.create",
        entity_type="TeamMember",
        entity_id=str(member.id),
        metadata={"name": member.name, "featured": member.featured},
    )
    return member


def update_team_member(s: "Session", member: "TeamMember", payload: dict, user: "AdminUser") -> "TeamMember":
    cleaned, errors = validate_team_member_payload(payload)
    if errors:
        raise ValidationError(errors)
    _ensure_unique_name(s, cleaned["name"], member_id=member.id)

    changes = apply_changes(member, cleaned)
    member.updated_at = datetime.utcnow()
    s.flush()
    record_event(
        s,
        actor=user,
        action="team_member.edit",
        entity_type="TeamMember",
        entity_id=str(member.id),
        metadata={"name": member.name, "changes": changes},
    )
    return member


def delete_team_member(s: "Session", member: "TeamMember", user: "AdminUser") -> None:
    record_event(
        s,
        actor=user,
        action="team_member.delete",
        entity_type="TeamMember",
        entity_id=str(member.id),
        metadata={"name": member.name},
    )
    s.delete(member)
    s.flush()


def list_team_members(s: "Session", *, featured_only: bool = False, limit: int | None = None) -> list["TeamMember"]:
    from app.cms.modules.team_members.models import TeamMember

    q = s.query(TeamMember)
    if featured_only:
        q = q.filter(TeamMember.featured.is_(True))
    q = q.order_by(TeamMember.display_order.asc(), TeamMember.name.asc())
    if limit:
        q = q.limit(limit)
    return q.all()
