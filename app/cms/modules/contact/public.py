from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.cms.db import db_session
from app.cms.modules.contact.service import (
    ContactRejected,
    check_submission,
    is_suspicious_agent,
    start_public_session,
    store_submission,
    webhook_payload,
)
from app.cms.modules.contact.webhook import forward_submission
from app.cms.rate_limit import current_limiter, rate_limit_headers
from app.cms.security import client_ip

bp = Blueprint("contact", __name__)


@bp.post("/security-init")
def security_init():
    ip = client_ip(request)
    rl = current_limiter().check(ip, "contact_init")
    if not rl.allowed:
        return jsonify({"error": "Too many requests. Please try again later."}), 429, rate_limit_headers(rl)

    s = db_session()
    row, csrf_token = start_public_session(s, ip=ip, user_agent=request.headers.get("User-Agent"))
    s.commit()
    return jsonify(
        {
            "sessionToken": row.session_token,
            "csrfToken": csrf_token,
            "expiresAt": row.expires_at.isoformat(),
        }
    )


@bp.post("/submit")
def submit():
    ip = client_ip(request)
    user_agent = request.headers.get("User-Agent")

    rl = current_limiter().check(ip, "contact_form")
    if not rl.allowed:
        return (
            jsonify({"error": "Too many submissions. Please wait before trying again."}),
            429,
            rate_limit_headers(rl),
        )
    if is_suspicious_agent(user_agent):
        current_app.logger.warning("Contact form: automated user agent rejected (ip=%s ua=%s)", ip, user_agent)
        return jsonify({"error": "Automated requests are not allowed."}), 403

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid request data"}), 400

    s = db_session()
    try:
        data = check_submission(s, payload, ip=ip)
    except ContactRejected as e:
        current_app.logger.info("Contact form rejected (ip=%s status=%s): %s", ip, e.status, e.message)
        return jsonify({"error": e.message}), e.status

    row = store_submission(s, data, ip=ip, user_agent=user_agent)
    s.commit()

    row.webhook_status = forward_submission(current_app.config.get("CONTACT_WEBHOOK_URL"), webhook_payload(row))
    s.commit()

    current_app.logger.info("Contact form submission stored (submission=%s ip=%s)", row.submission_id, ip)
    return jsonify({"success": True, "message": "Message sent successfully", "submissionId": row.submission_id})
