from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import Request, current_app
from sqlalchemy.orm import Session

from app.cms.models import AdminSession, AdminUser
from app.cms.security import client_ip, purge_csrf_tokens
from app.cms.tokens import issue_token, verify_token

logger = logging.getLogger(__name__)


@dataclass
class SessionCheck:
    valid: bool
    reason: str | None = None
    session: AdminSession | None = None
    user: AdminUser | None = None
    needs_renewal: bool = False


def _token_lifetime() -> timedelta:
    return timedelta(seconds=int(current_app.config.get("ADMIN_TOKEN_LIFETIME_SECONDS", 7200)))


def create_session(s: Session, user: AdminUser, req: Request) -> tuple[AdminSession, str]:
    token = issue_token(user, req)
    now = datetime.utcnow()
    row = AdminSession(
        user_id=user.id,
        token=token,
        expires_at=now + _token_lifetime(),
        ip_address=client_ip(req),
        user_agent=(req.headers.get("User-Agent") or "unknown")[:255],
        created_at=now,
        last_activity=now,
    )
    s.add(row)
    s.flush()
    logger.info("Admin session created (user_id=%s session_id=%s ip=%s)", user.id, row.id, row.ip_address)
    return row, token


def _drop(s: Session, row: AdminSession) -> None:
    purge_csrf_tokens(s, "admin", row.id)
    s.delete(row)
    s.flush()


def validate_session(s: Session, token: str | None, req: Request) -> SessionCheck:
    if not token:
        return SessionCheck(valid=False, reason="missing_token")

    check = verify_token(token, req)
    if not check.valid:
        return SessionCheck(valid=False, reason=check.reason)

    row = s.query(AdminSession).filter(AdminSession.token == token).one_or_none()
    if row is None:
        logger.warning("Session not found for valid token (user_id=%s)", check.claims.get("userId"))
        return SessionCheck(valid=False, reason="session_not_found")

    now = datetime.utcnow()
    if now >= row.expires_at:
        logger.info("Session expired (session_id=%s user_id=%s)", row.id, row.user_id)
        _drop(s, row)
        return SessionCheck(valid=False, reason="session_expired")

    inactivity = timedelta(seconds=int(current_app.config.get("SESSION_INACTIVITY_SECONDS", 1800)))
    if row.last_activity and now - row.last_activity > inactivity:
        logger.info("Session idle timeout (session_id=%s user_id=%s)", row.id, row.user_id)
        _drop(s, row)
        return SessionCheck(valid=False, reason="session_inactive")

    user = row.user
    if user is None or not user.is_active:
        return SessionCheck(valid=False, reason="user_inactive")
    if int(check.claims.get("tv") or 0) != (user.token_version or 0):
        return SessionCheck(valid=False, reason="token_revoked")

    row.last_activity = now
    threshold = timedelta(seconds=int(current_app.config.get("SESSION_RENEW_THRESHOLD_SECONDS", 900)))
    needs_renewal = check.needs_refresh or (row.expires_at - now) < threshold
    return SessionCheck(valid=True, session=row, user=user, needs_renewal=needs_renewal)


def renew_session(s: Session, row: AdminSession, req: Request) -> str:
    """Rotate the session token in place; the original session start is preserved."""
    start = None
    old = verify_token(row.token, req)
    if old.valid:
        start = old.claims.get("sessionStart")
    new_token = issue_token(row.user, req, session_start=start)
    row.token = new_token
    row.expires_at = datetime.utcnow() + _token_lifetime()
    s.flush()
    logger.info("Admin session renewed (session_id=%s user_id=%s)", row.id, row.user_id)
    return new_token


def list_user_sessions(s: Session, user_id: int) -> list[AdminSession]:
    return (
        s.query(AdminSession)
        .filter(AdminSession.user_id == user_id)
        .order_by(AdminSession.last_activity.desc(), AdminSession.id.desc())
        .all()
    )


def terminate_session(s: Session, session_id: int, user_id: int) -> bool:
    row = s.get(AdminSession, session_id)
    if row is None or row.user_id != user_id:
        logger.warning(
            "Refused session termination (session_id=%s requested_by=%s owner=%s)",
            session_id,
            user_id,
            row.user_id if row else None,
        )
        return False
    _drop(s, row)
    logger.info("Admin session terminated (session_id=%s user_id=%s)", session_id, user_id)
    return True


def terminate_other_sessions(s: Session, user_id: int, current_token: str) -> int:
    rows = (
        s.query(AdminSession)
        .filter(AdminSession.user_id == user_id, AdminSession.token != current_token)
        .all()
    )
    for row in rows:
        _drop(s, row)
    logger.info("Terminated %s other session(s) for user_id=%s", len(rows), user_id)
    return len(rows)


def terminate_all_sessions(s: Session, user_id: int) -> int:
    rows = s.query(AdminSession).filter(AdminSession.user_id == user_id).all()
    for row in rows:
        _drop(s, row)
    return len(rows)


def cleanup_expired_sessions(s: Session) -> int:
    rows = s.query(AdminSession).filter(AdminSession.expires_at <= datetime.utcnow()).all()
    for row in rows:
        _drop(s, row)
    return len(rows)
