from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import current_app, g, jsonify, request

from app.cms.db import db_session
from app.cms.models import AdminUser
from app.cms.rate_limit import current_limiter, rate_limit_headers
from app.cms.security import CSRF_HEADER, client_ip, validate_csrf_token

MUTATING_METHODS = ("POST", "PUT", "PATCH", "DELETE")


def user_has_role(user: AdminUser | None, roles: tuple[str, ...] | None) -> bool:
    if not user or not user.is_active:
        return False
    if not roles:
        return True
    return user.role in roles


def current_admin() -> AdminUser:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def require_admin(roles: tuple[str, ...] | None = None) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Guard an admin API view.
    401 without a valid session, 403 on role or CSRF failure, 429 when the
    per-user admin_api budget is spent.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            from app.cms.auth import load_current_admin

            check = load_current_admin()
            if not check.valid:
                return jsonify({"error": "Unauthorized", "reason": check.reason}), 401
            user: AdminUser = g.current_user

            if not user_has_role(user, roles):
                g.missing_role = ",".join(roles or ())
                current_app.logger.warning(
                    "Forbidden: user=%s role=%s required=%s request_id=%s",
                    user.username,
                    user.role,
                    g.missing_role,
                    getattr(g, "request_id", None),
                )
                return jsonify({"error": "Forbidden"}), 403

            result = current_limiter().check(f"user:{user.id}", "admin_api")
            if not result.allowed:
                return jsonify({"error": "Too many requests"}), 429, rate_limit_headers(result)

            if request.method in MUTATING_METHODS:
                s = db_session()
                ok = validate_csrf_token(s, "admin", g.admin_session.id, request.headers.get(CSRF_HEADER))
                s.commit()
                if not ok:
                    current_app.logger.warning(
                        "CSRF validation failed (user=%s path=%s ip=%s)", user.username, request.path, client_ip(request)
                    )
                    return jsonify({"error": "Invalid CSRF token"}), 403

            return fn(*args, **kwargs)

        return wrapped

    return decorator
