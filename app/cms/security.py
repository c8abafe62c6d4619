from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta

from flask import Request, Response, current_app
from sqlalchemy.orm import Session

from app.cms.models import CsrfToken

logger = logging.getLogger(__name__)

CSRF_HEADER = "X-CSRF-Token"


def client_ip(req: Request) -> str:
    """
    Client address as resolved by ProxyFix.

    Only the hop appended by the trusted proxy counts; entries a client puts in
    X-Forwarded-For itself are ignored.
    """
    return req.remote_addr or "unknown"


def ip_hash(ip: str) -> str:
    return hashlib.sha256(ip.encode("utf-8")).hexdigest()[:16]


def device_fingerprint(req: Request) -> str:
    parts = (
        req.headers.get("User-Agent") or "",
        req.headers.get("Accept-Language") or "",
        req.headers.get("Accept-Encoding") or "",
    )
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()[:32]


def issue_csrf_token(s: Session, scope: str, session_id: int) -> str:
    """Create a fresh CSRF nonce bound to (scope, session_id)."""
    token = secrets.token_hex(32)
    s.add(CsrfToken(scope=scope, session_id=session_id, token=token, created_at=datetime.utcnow()))
    return token


def validate_csrf_token(s: Session, scope: str, session_id: int, token: str | None) -> bool:
    """
    Check `token` against the newest nonce for the session.
    Nonces are single use: a matching row is deleted.
    """
    if not token:
        return False
    row = (
        s.query(CsrfToken)
        .filter(CsrfToken.scope == scope, CsrfToken.session_id == session_id)
        .order_by(CsrfToken.created_at.desc(), CsrfToken.id.desc())
        .first()
    )
    if row is None:
        return False

    ttl = int(current_app.config.get("CSRF_TOKEN_TTL_SECONDS", 3600))
    if row.created_at < datetime.utcnow() - timedelta(seconds=ttl):
        s.delete(row)
        s.flush()
        logger.info("Expired CSRF token discarded (scope=%s session_id=%s)", scope, session_id)
        return False

    if not hmac.compare_digest(row.token, token):
        return False

    s.delete(row)
    s.flush()
    return True


def purge_csrf_tokens(s: Session, scope: str, session_id: int) -> int:
    return (
        s.query(CsrfToken)
        .filter(CsrfToken.scope == scope, CsrfToken.session_id == session_id)
        .delete(synchronize_session=False)
    )


def cleanup_expired_csrf_tokens(s: Session, ttl_seconds: int = 3600) -> int:
    cutoff = datetime.utcnow() - timedelta(seconds=ttl_seconds)
    return s.query(CsrfToken).filter(CsrfToken.created_at < cutoff).delete(synchronize_session=False)


def apply_security_headers(response: Response, *, is_production: bool) -> Response:
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("X-XSS-Protection", "1; mode=block")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    if is_production:
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response
