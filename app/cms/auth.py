from __future__ import annotations

import re
from datetime import datetime

from flask import Blueprint, Response, current_app, g, jsonify, request
from werkzeug.security import check_password_hash

from app.cms.audit import record_event
from app.cms.db import db_session
from app.cms.lockout import account_lockout, ip_lockout, record_failed_attempt, reset_attempts
from app.cms.models import AdminUser
from app.cms.rate_limit import current_limiter, rate_limit_headers
from app.cms.rbac import current_admin, require_admin
from app.cms.security import CSRF_HEADER, client_ip, issue_csrf_token, validate_csrf_token
from app.cms.sessions import (
    SessionCheck,
    create_session,
    list_user_sessions,
    renew_session,
    terminate_all_sessions,
    terminate_other_sessions,
    terminate_session,
    validate_session,
)

bp = Blueprint("auth", __name__)

_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


def _cookie_name() -> str:
    return current_app.config.get("ADMIN_COOKIE_NAME", "admin_token")


def set_session_cookie(response: Response, token: str) -> Response:
    response.set_cookie(
        _cookie_name(),
        token,
        max_age=int(current_app.config.get("ADMIN_TOKEN_LIFETIME_SECONDS", 7200)),
        httponly=True,
        secure=bool(current_app.config.get("IS_PRODUCTION")),
        samesite="Strict",
        path="/",
    )
    return response


def clear_session_cookie(response: Response) -> Response:
    response.delete_cookie(_cookie_name(), path="/", samesite="Strict")
    return response


def load_current_admin() -> SessionCheck:
    """
    Resolve the admin session from the cookie once per request.
    Sets g.current_user / g.admin_session, and g.renewed_token when the
    token was rotated (the app's after_request hook re-issues the cookie).
    """
    cached = getattr(g, "session_check", None)
    if cached is not None:
        return cached

    token = request.cookies.get(_cookie_name())
    s = db_session()
    try:
        check = validate_session(s, token, request)
        g.current_user = check.user if check.valid else None
        g.admin_session = check.session if check.valid else None
        g.admin_token = token if check.valid else None
        if check.valid and check.needs_renewal:
            g.renewed_token = renew_session(s, check.session, request)
            g.admin_token = g.renewed_token
        s.commit()
    except Exception:
        s.rollback()
        current_app.logger.exception("Session validation crashed (request_id=%s)", getattr(g, "request_id", None))
        raise

    if token and not check.valid:
        current_app.logger.info("Rejected admin session (reason=%s ip=%s)", check.reason, client_ip(request))
    g.session_check = check
    return check


def validate_login_payload(payload: dict) -> tuple[dict, list[str]]:
    username = payload.get("username")
    password = payload.get("password")
    errors = []
    if not isinstance(username, str) or not (3 <= len(username.strip()) <= 50):
        errors.append("Username must be between 3 and 50 characters.")
    elif not _USERNAME_RE.match(username.strip()):
        errors.append("Username may only contain letters, numbers, underscores and hyphens.")
    if not isinstance(password, str) or not (8 <= len(password) <= 100):
        errors.append("Password must be between 8 and 100 characters.")
    if errors:
        return {}, errors
    return {"username": username.strip(), "password": password}, []


@bp.post("/login")
def login():
    s = db_session()
    ip = client_ip(request)
    user_agent = request.headers.get("User-Agent")

    ip_status = ip_lockout(s, ip)
    if ip_status.locked:
        current_app.logger.warning("Login blocked: IP locked out (ip=%s attempts=%s)", ip, ip_status.attempts)
        return (
            jsonify({"error": "Too many failed attempts from this address. Try again later.", "retryAfter": ip_status.retry_after}),
            429,
            {"Retry-After": str(ip_status.retry_after)},
        )

    data, errors = validate_login_payload(request.get_json(silent=True) or {})
    if errors:
        return jsonify({"error": "Invalid input", "details": errors}), 400
    username = data["username"]

    acct_status = account_lockout(s, username)
    if acct_status.locked:
        current_app.logger.warning("Login blocked: account locked (username=%s ip=%s)", username, ip)
        return (
            jsonify(
                {
                    "error": "Account temporarily locked due to too many failed attempts.",
                    "lockoutUntil": acct_status.lockout_until.isoformat() if acct_status.lockout_until else None,
                    "retryAfter": acct_status.retry_after,
                }
            ),
            429,
            {"Retry-After": str(acct_status.retry_after)},
        )

    limiter = current_limiter()
    rl = limiter.check(ip, "login", progressive=True, failed_attempts=acct_status.attempts)
    if not rl.allowed:
        return jsonify({"error": "Too many login attempts. Please try again later."}), 429, rate_limit_headers(rl)

    try:
        user = s.query(AdminUser).filter(AdminUser.username == username).one_or_none()
        if not user or not user.is_active or not check_password_hash(user.password_hash, data["password"]):
            record_failed_attempt(s, username, ip, user_agent)
            record_event(
                s,
                actor=None,
                action="auth.login_failed",
                entity_type="AdminUser",
                entity_id=username,
                reason="Invalid credentials",
                metadata={"username": username},
            )
            s.commit()
            current_app.logger.warning("Failed login (username=%s ip=%s)", username, ip)
            return jsonify({"error": "Invalid credentials"}), 401

        reset_attempts(s, username)
        terminate_all_sessions(s, user.id)
        _row, token = create_session(s, user, request)
        user.last_login = datetime.utcnow()
        record_event(s, actor=user, action="auth.login", entity_type="AdminUser", entity_id=str(user.id))
        s.commit()
    except Exception:
        s.rollback()
        current_app.logger.exception("Login crashed (username=%s request_id=%s)", username, getattr(g, "request_id", None))
        raise

    limiter.reset(ip, "login")
    resp = jsonify({"success": True, "user": user.to_public_dict()})
    return set_session_cookie(resp, token)


@bp.post("/logout")
def logout():
    if not request.cookies.get(_cookie_name()):
        return jsonify({"success": True, "message": "Already logged out"})

    check = load_current_admin()
    if not check.valid:
        resp = jsonify({"error": "Invalid session"})
        clear_session_cookie(resp)
        return resp, 401

    s = db_session()
    user: AdminUser = g.current_user
    if not validate_csrf_token(s, "admin", g.admin_session.id, request.headers.get(CSRF_HEADER)):
        s.commit()
        return jsonify({"error": "Invalid CSRF token"}), 403

    terminate_session(s, g.admin_session.id, user.id)
    record_event(s, actor=user, action="auth.logout", entity_type="AdminUser", entity_id=str(user.id))
    s.commit()
    g.renewed_token = None

    resp = jsonify({"success": True, "message": "Logged out successfully"})
    return clear_session_cookie(resp)


@bp.get("/auth")
def auth_status():
    check = load_current_admin()
    if not check.valid:
        return jsonify({"authenticated": False, "user": None}), 401
    user: AdminUser = g.current_user
    payload = user.to_public_dict()
    payload["role"] = user.role
    return jsonify({"authenticated": True, "user": payload})


def _session_dict(row, current_id: int) -> dict:
    return {
        "id": row.id,
        "ip_address": row.ip_address,
        "user_agent": row.user_agent,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "last_activity": row.last_activity.isoformat() if row.last_activity else None,
        "expires_at": row.expires_at.isoformat() if row.expires_at else None,
        "current": row.id == current_id,
    }


@bp.get("/csrf-token")
@require_admin()
def csrf_token():
    s = db_session()
    token = issue_csrf_token(s, "admin", g.admin_session.id)
    s.commit()
    return jsonify({"csrfToken": token})


@bp.get("/sessions")
@require_admin()
def sessions_list():
    s = db_session()
    user = current_admin()
    rows = list_user_sessions(s, user.id)
    return jsonify({"sessions": [_session_dict(r, g.admin_session.id) for r in rows]})


@bp.delete("/sessions")
@require_admin()
def sessions_terminate_others():
    s = db_session()
    user = current_admin()
    count = terminate_other_sessions(s, user.id, g.admin_token)
    record_event(
        s,
        actor=user,
        action="auth.sessions_terminate_others",
        entity_type="AdminUser",
        entity_id=str(user.id),
        metadata={"terminated": count},
    )
    s.commit()
    return jsonify({"success": True, "terminatedCount": count})


@bp.delete("/sessions/<int:session_id>")
@require_admin()
def sessions_terminate_one(session_id: int):
    s = db_session()
    user = current_admin()
    is_current = session_id == g.admin_session.id
    if not terminate_session(s, session_id, user.id):
        s.commit()
        return jsonify({"error": "Session not found or access denied"}), 403
    record_event(
        s,
        actor=user,
        action="auth.session_terminate",
        entity_type="AdminSession",
        entity_id=str(session_id),
    )
    s.commit()
    resp = jsonify({"success": True})
    if is_current:
        g.renewed_token = None
        clear_session_cookie(resp)
    return resp
