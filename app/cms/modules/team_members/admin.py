from __future__ import annotations

from flask import Blueprint, jsonify, request

from app.cms.db import db_session
from app.cms.modules.team_members.models import TeamMember
from app.cms.modules.team_members.service import (
    create_team_member,
    delete_team_member,
    list_team_members,
    update_team_member,
)
from app.cms.rbac import current_admin, require_admin
from app.cms.validation import json_payload

bp = Blueprint("team_members", __name__)


def _not_found():
    return jsonify({"error": "Team member not found"}), 404


@bp.get("/team-members")
@require_admin()
def team_members_list():
    s = db_session()
    return jsonify({"teamMembers": [m.to_dict() for m in list_team_members(s)]})


@bp.post("/team-members")
@require_admin()
def team_members_create():
    s = db_session()
    member = create_team_member(s, json_payload(request), current_admin())
    s.commit()
    return (
        jsonify({"success": True, "message": "Team member created successfully", "teamMember": member.to_dict()}),
        201,
    )


@bp.get("/team-members/<int:member_id>")
@require_admin()
def team_member_detail(member_id: int):
    s = db_session()
    member = s.get(TeamMember, member_id)
    if member is None:
        return _not_found()
    return jsonify({"teamMember": member.to_dict()})


@bp.put("/team-members/<int:member_id>")
@require_admin()
def team_member_update(member_id: int):
    s = db_session()
    member = s.get(TeamMember, member_id)
    if member is None:
        return _not_found()
    update_team_member(s, member, json_payload(request), current_admin())
    s.commit()
    return jsonify({"success": True, "message": "Team member updated successfully", "teamMember": member.to_dict()})


@bp.delete("/team-members/<int:member_id>")
@require_admin()
def team_member_delete(member_id: int):
    s = db_session()
    member = s.get(TeamMember, member_id)
    if member is None:
        return _not_found()
    delete_team_member(s, member, current_admin())
    s.commit()
    return jsonify({"success": True, "message": "Team member deleted successfully"})
