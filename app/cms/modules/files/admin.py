from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.cms.db import db_session
from app.cms.modules.files.models import MediaFile
from app.cms.modules.files.service import (
    delete_file,
    list_files,
    update_file_metadata,
    upload_file,
    upload_limits,
)
from app.cms.rbac import current_admin, require_admin
from app.cms.validation import ValidationError, clean_text, json_payload

bp = Blueprint("files", __name__)

_UPLOAD_META_FIELDS = ("alt_text", "title", "description", "tags", "category", "is_featured")


def _not_found():
    return jsonify({"error": "File not found"}), 404


@bp.get("/files")
@require_admin()
def files_list():
    s = db_session()
    category = clean_text(request.args.get("category"), 50)
    search = clean_text(request.args.get("search"), 100)
    files = list_files(s, category=category, search=search)
    return jsonify({"files": [f.to_dict() for f in files]})


@bp.get("/files/<int:file_id>")
@require_admin()
def file_detail(file_id: int):
    s = db_session()
    media = s.get(MediaFile, file_id)
    if media is None:
        return _not_found()
    return jsonify({"file": media.to_dict()})


@bp.put("/files/<int:file_id>")
@require_admin()
def file_update(file_id: int):
    s = db_session()
    media = s.get(MediaFile, file_id)
    if media is None:
        return _not_found()
    update_file_metadata(s, media, json_payload(request), current_admin())
    s.commit()
    return jsonify({"success": True, "message": "File updated successfully", "file": media.to_dict()})


@bp.delete("/files/<int:file_id>")
@require_admin()
def file_delete(file_id: int):
    s = db_session()
    media = s.get(MediaFile, file_id)
    if media is None:
        return _not_found()
    delete_file(s, media, current_admin(), app_config=current_app.config)
    s.commit()
    return jsonify({"success": True, "message": "File deleted successfully"})


@bp.get("/upload")
@require_admin()
def upload_info():
    return jsonify(upload_limits())


@bp.post("/upload")
@require_admin()
def upload_post():
    s = db_session()
    f = request.files.get("file")
    if not f or not f.filename:
        raise ValidationError("No file provided")

    metadata = {k: request.form[k] for k in _UPLOAD_META_FIELDS if request.form.get(k) not in (None, "")}
    media = upload_file(
        s,
        file_bytes=f.read(),
        original_name=f.filename,
        content_type=f.mimetype or "",
        metadata=metadata,
        user=current_admin(),
        app_config=current_app.config,
    )
    s.commit()
    return jsonify({"success": True, "file": media.to_dict()}), 201
