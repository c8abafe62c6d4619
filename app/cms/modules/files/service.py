from __future__ import annotations

import logging
import os
import time
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import or_
from werkzeug.utils import secure_filename

from app.cms.audit import record_event
from app.cms.storage import StorageError, storage_from_config
from app.cms.utils import apply_changes
from app.cms.validation import ValidationError, clean_text, parse_bool

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.cms.models import AdminUser
    from app.cms.modules.files.models import MediaFile

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 15 * 1024 * 1024
ALLOWED_MIME_TYPES = {
    "image/jpeg": (".jpg", ".jpeg"),
    "image/png": (".png",),
    "image/gif": (".gif",),
    "image/webp": (".webp",),
    "image/svg+xml": (".svg",),
}
ALLOWED_CATEGORIES = ("general", "team-photos", "course-images", "testimonials", "company", "other")
FILE_STATUSES = ("active", "archived")
MAX_TAGS = 20


def upload_limits() -> dict:
    return {
        "maxFileSize": MAX_FILE_SIZE,
        "allowedTypes": list(ALLOWED_MIME_TYPES),
        "allowedCategories": list(ALLOWED_CATEGORIES),
    }


def parse_tags(raw) -> tuple[list[str] | None, list[str]]:
    """Tags arrive as a JSON list or a comma separated form value."""
    if raw is None or raw == "":
        return None, []
    if isinstance(raw, str):
        raw = raw.split(",")
    if not isinstance(raw, list) or not all(isinstance(t, str) for t in raw):
        return None, ["tags must be a list of strings."]
    tags = []
    for t in raw:
        text = clean_text(t, 50)
        if text and text.lower() not in tags:
            tags.append(text.lower())
    if len(tags) > MAX_TAGS:
        return None, [f"At most {MAX_TAGS} tags are allowed."]
    return tags, []


def clean_file_metadata(payload: dict) -> tuple[dict, list[str]]:
    """Only keys present in the payload are returned, so metadata edits can be partial."""
    errors: list[str] = []
    cleaned: dict = {}
    for field, max_len in (("alt_text", 500), ("title", 255), ("description", 2000)):
        if field in payload:
            cleaned[field] = clean_text(payload.get(field), max_len)
    if "tags" in payload:
        tags, tag_errors = parse_tags(payload.get("tags"))
        errors.extend(tag_errors)
        cleaned["tags"] = tags
    if "category" in payload:
        category = (clean_text(payload.get("category")) or "general").lower()
        if category not in ALLOWED_CATEGORIES:
            errors.append(f"category must be one of: {', '.join(ALLOWED_CATEGORIES)}")
        cleaned["category"] = category
    if "is_featured" in payload:
        featured = parse_bool(payload.get("is_featured"))
        if featured is None:
            errors.append("is_featured must be a boolean.")
        cleaned["is_featured"] = bool(featured)
    if "status" in payload:
        status = (clean_text(payload.get("status")) or "").lower()
        if status not in FILE_STATUSES:
            errors.append(f"status must be one of: {', '.join(FILE_STATUSES)}")
        cleaned["status"] = status
    return cleaned, errors


def build_blob_pathname(s: "Session", category: str, original_name: str, extension: str) -> tuple[str, str]:
    from app.cms.modules.files.models import MediaFile

    safe_name = secure_filename(original_name or "") or f"image{extension}"
    stamp = int(time.time() * 1000)
    filename = f"{stamp}-{safe_name}"
    n = 1
    while s.query(MediaFile.id).filter(MediaFile.blob_pathname == f"{category}/{filename}").first() is not None:
        n += 1
        filename = f"{stamp}-{n}-{safe_name}"
    return filename, f"{category}/{filename}"


def upload_file(
    s: "Session",
    *,
    file_bytes: bytes,
    original_name: str,
    content_type: str,
    metadata: dict,
    user: "AdminUser",
    app_config: dict,
) -> "MediaFile":
    from app.cms.modules.files.models import MediaFile

    errors: list[str] = []
    content_type = (content_type or "").split(";")[0].strip().lower()
    if content_type not in ALLOWED_MIME_TYPES:
        errors.append(f"Invalid file type. Allowed types: {', '.join(ALLOWED_MIME_TYPES)}")
    if not file_bytes:
        errors.append("File is empty.")
    elif len(file_bytes) > MAX_FILE_SIZE:
        errors.append(f"File too large. Maximum size is {MAX_FILE_SIZE // (1024 * 1024)}MB.")

    cleaned, meta_errors = clean_file_metadata({"category": "general", **metadata})
    errors.extend(meta_errors)
    if errors:
        raise ValidationError(errors)

    extension = os.path.splitext(original_name or "")[1].lower()
    if extension not in ALLOWED_MIME_TYPES[content_type]:
        extension = ALLOWED_MIME_TYPES[content_type][0]

    filename, pathname = build_blob_pathname(s, cleaned["category"], original_name, extension)
    storage = storage_from_config(app_config)
    storage.put_bytes(pathname, file_bytes, content_type=content_type)

    now = datetime.utcnow()
    media = MediaFile(
        filename=filename,
        original_name=(original_name or filename)[:255],
        file_size=len(file_bytes),
        mime_type=content_type,
        file_extension=extension,
        blob_url=storage.public_url(pathname),
        blob_pathname=pathname,
        uploaded_by=user.id,
        uploaded_at=now,
        updated_at=now,
        **cleaned,
    )
    s.add(media)
    s.flush()
    record_event(
        s,
        actor=user,
        action="file.upload",
        entity_type="MediaFile",
        entity_id=str(media.id),
        metadata={"pathname": pathname, "size": media.file_size, "mime_type": content_type},
    )
    return media


def update_file_metadata(s: "Session", media: "MediaFile", payload: dict, user: "AdminUser") -> "MediaFile":
    cleaned, errors = clean_file_metadata(payload)
    if errors:
        raise ValidationError(errors)
    changes = apply_changes(media, cleaned)
    if changes:
        media.updated_at = datetime.utcnow()
    s.flush()
    record_event(
        s,
        actor=user,
        action="file.edit",
        entity_type="MediaFile",
        entity_id=str(media.id),
        metadata={"changes": changes},
    )
    return media


def delete_file(s: "Session", media: "MediaFile", user: "AdminUser", *, app_config: dict) -> None:
    storage = storage_from_config(app_config)
    try:
        storage.delete(media.blob_pathname)
    except StorageError as e:
        logger.warning("Blob delete failed for %s: %s", media.blob_pathname, e)
    record_event(
        s,
        actor=user,
        action="file.delete",
        entity_type="MediaFile",
        entity_id=str(media.id),
        metadata={"pathname": media.blob_pathname, "original_name": media.original_name},
    )
    s.delete(media)
    s.flush()


def list_files(s: "Session", *, category: str | None = None, search: str | None = None) -> list["MediaFile"]:
    from app.cms.modules.files.models import MediaFile

    q = s.query(MediaFile)
    if category:
        q = q.filter(MediaFile.category == category)
    if search:
        like = f"%{search}%"
        q = q.filter(
            or_(
                MediaFile.original_name.ilike(like),
                MediaFile.title.ilike(like),
                MediaFile.alt_text.ilike(like),
                MediaFile.description.ilike(like),
            )
        )
    return q.order_by(MediaFile.uploaded_at.desc(), MediaFile.id.desc()).all()


def list_public_files(s: "Session", category: str) -> list["MediaFile"]:
    from app.cms.modules.files.models import MediaFile

    return (
        s.query(MediaFile)
        .filter(MediaFile.category == category, MediaFile.status == "active")
        .order_by(MediaFile.is_featured.desc(), MediaFile.uploaded_at.desc(), MediaFile.id.desc())
        .all()
    )
