"""
Signed admin tokens (HS256 JWT via python-jose).

Tokens are bound to the issuing client: the hashed IP and a device
fingerprint travel in the claims and must match on every request.
"""
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from flask import Request, current_app
from jose import ExpiredSignatureError, JWTError, jwt

from app.cms.models import AdminUser
from app.cms.security import client_ip, device_fingerprint, ip_hash

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ISSUER = "training-site-cms"
AUDIENCE = "admin-panel"


@dataclass
class TokenCheck:
    valid: bool
    claims: dict[str, Any] = field(default_factory=dict)
    reason: str | None = None
    needs_refresh: bool = False


def _secret() -> str:
    return current_app.config.get("JWT_SECRET") or current_app.config["SECRET_KEY"]


def issue_token(user: AdminUser, req: Request, *, session_start: int | None = None) -> str:
    now = int(time.time())
    lifetime = int(current_app.config.get("ADMIN_TOKEN_LIFETIME_SECONDS", 7200))
    claims = {
        "sub": str(user.id),
        "userId": user.id,
        "username": user.username,
        "email": user.email,
        "tv": user.token_version or 0,
        "jti": uuid.uuid4().hex,
        "ipHash": ip_hash(client_ip(req)),
        "fp": device_fingerprint(req),
        "sessionStart": session_start or now,
        "iat": now,
        "exp": now + lifetime,
        "iss": ISSUER,
        "aud": AUDIENCE,
    }
    return jwt.encode(claims, _secret(), algorithm=ALGORITHM)


def verify_token(token: str, req: Request) -> TokenCheck:
    try:
        claims = jwt.decode(token, _secret(), algorithms=[ALGORITHM], audience=AUDIENCE, issuer=ISSUER)
    except ExpiredSignatureError:
        return TokenCheck(valid=False, reason="expired")
    except JWTError:
        return TokenCheck(valid=False, reason="invalid_token")

    ip = client_ip(req)
    if claims.get("ipHash") != ip_hash(ip):
        logger.warning("Token IP binding violation (user_id=%s ip=%s)", claims.get("userId"), ip)
        return TokenCheck(valid=False, claims=claims, reason="ip_mismatch")
    if claims.get("fp") != device_fingerprint(req):
        logger.warning("Token fingerprint violation (user_id=%s ip=%s)", claims.get("userId"), ip)
        return TokenCheck(valid=False, claims=claims, reason="fingerprint_mismatch")

    now = int(time.time())
    max_age = int(current_app.config.get("SESSION_MAX_AGE_SECONDS", 86400))
    if now - int(claims.get("sessionStart") or 0) > max_age:
        return TokenCheck(valid=False, claims=claims, reason="session_too_old")

    threshold = int(current_app.config.get("SESSION_RENEW_THRESHOLD_SECONDS", 900))
    needs_refresh = int(claims.get("exp") or 0) - now < threshold
    return TokenCheck(valid=True, claims=claims, needs_refresh=needs_refresh)
