"""
Public contact form: anti-abuse checks, validation and storage.

Checks run in a fixed order so a bot gets the cheapest rejection first.
The view handles the request-level ones (rate limit, user agent); this module
handles the public session, the payload and the duplicate window.
"""
from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from app.cms.security import issue_csrf_token, validate_csrf_token
from app.cms.validation import is_valid_email, sanitize_email, sanitize_message, sanitize_phone, sanitize_text

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.cms.models import PublicSession
    from app.cms.modules.contact.models import ContactSubmission

PUBLIC_SESSION_LIFETIME = timedelta(hours=1)
DUPLICATE_WINDOW = timedelta(seconds=60)
MIN_TIME_SPENT_MS = 3000
MAX_TIME_SPENT_MS = 30 * 60 * 1000
MIN_SECURITY_SCORE = 50

HONEYPOT_FIELDS = ("website", "url", "homepage", "link", "address")
TRAINING_TYPES = (
    "kist-orientation",
    "whmis",
    "fall-protection",
    "confined-space",
    "equipment-training",
    "custom",
    "consultation",
    "other",
)
SUSPICIOUS_AGENT_RE = re.compile(r"bot|crawler|spider|scraper|curl|wget|python|php", re.IGNORECASE)
SPAM_PATTERNS = (
    re.compile(r"\b(viagra|cialis|casino|lottery|winner|congratulations)\b", re.IGNORECASE),
    re.compile(r"\b(click here|free money|make money fast)\b", re.IGNORECASE),
    re.compile(r"\b(urgent|act now|limited time)\b", re.IGNORECASE),
    re.compile(r"(http|https|www\.)", re.IGNORECASE),
    re.compile(r"\b\d{4}[\s\-]?\d{4}[\s\-]?\d{4}[\s\-]?\d{4}\b"),
)
_NAME_RE = re.compile(r"^[a-zA-Z\s\-'.]+$")


class ContactRejected(Exception):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


@dataclass(frozen=True)
class ContactData:
    name: str
    email: str
    phone: str | None
    company: str | None
    training_type: str | None
    message: str
    time_spent_ms: int
    security_score: int


def is_suspicious_agent(user_agent: str | None) -> bool:
    return bool(SUSPICIOUS_AGENT_RE.search(user_agent or ""))


def start_public_session(s: "Session", *, ip: str, user_agent: str | None) -> tuple["PublicSession", str]:
    """Create a short-lived anonymous session and a CSRF token bound to it."""
    from app.cms.models import PublicSession

    now = datetime.utcnow()
    row = PublicSession(
        session_token=secrets.token_urlsafe(32),
        ip_address=ip,
        user_agent=(user_agent or "")[:255] or None,
        created_at=now,
        expires_at=now + PUBLIC_SESSION_LIFETIME,
    )
    s.add(row)
    s.flush()
    return row, issue_csrf_token(s, "public", row.id)


def verify_public_session(s: "Session", session_token: Any, csrf_token: Any) -> None:
    from app.cms.models import PublicSession

    if not isinstance(session_token, str) or not session_token:
        raise ContactRejected(403, "Invalid session. Please refresh the page and try again.")
    row = s.query(PublicSession).filter(PublicSession.session_token == session_token).one_or_none()
    if row is None or row.expires_at <= datetime.utcnow():
        raise ContactRejected(403, "Invalid session. Please refresh the page and try again.")
    if not isinstance(csrf_token, str) or not validate_csrf_token(s, "public", row.id, csrf_token):
        raise ContactRejected(403, "Invalid security token. Please refresh the page and try again.")


def _validate_fields(payload: dict) -> tuple[dict, list[str]]:
    errors: list[str] = []

    raw_name = payload.get("name")
    name = sanitize_text(raw_name) if isinstance(raw_name, str) else ""
    if not name:
        errors.append("name: Name is required")
    elif len(name) < 2:
        errors.append("name: Name must be at least 2 characters")
    elif len(name) > 100:
        errors.append("name: Name must be less than 100 characters")
    elif not _NAME_RE.match(name):
        errors.append("name: Name contains invalid characters")

    raw_email = payload.get("email")
    email = sanitize_email(raw_email) if isinstance(raw_email, str) else ""
    if not email:
        errors.append("email: Email is required")
    elif not is_valid_email(email) or ".." in email:
        errors.append("email: Please enter a valid email address")

    phone = None
    raw_phone = payload.get("phone")
    if raw_phone:
        if not isinstance(raw_phone, str):
            errors.append("phone: Invalid phone format")
        else:
            phone = sanitize_phone(raw_phone)
            digits = re.sub(r"\D", "", phone)
            if not (10 <= len(digits) <= 15):
                errors.append("phone: Phone number must be 10-15 digits")

    company = None
    raw_company = payload.get("company")
    if raw_company:
        if not isinstance(raw_company, str):
            errors.append("company: Invalid company format")
        else:
            company = sanitize_text(raw_company) or None
            if company and len(company) > 100:
                errors.append("company: Company name must be at most 100 characters")

    training_type = payload.get("trainingType") or None
    if training_type is not None and training_type not in TRAINING_TYPES:
        errors.append("trainingType: Invalid training type selected")

    raw_message = payload.get("message")
    message = sanitize_message(raw_message, max_length=10000) if isinstance(raw_message, str) else ""
    if not message:
        errors.append("message: Message is required")
    elif len(message) < 10:
        errors.append("message: Message must be at least 10 characters")
    elif len(message) > 5000:
        errors.append("message: Message must be less than 5000 characters")
    elif any(p.search(message) for p in SPAM_PATTERNS):
        errors.append("message: Message contains prohibited content")

    return (
        {
            "name": name,
            "email": email,
            "phone": phone or None,
            "company": company,
            "training_type": training_type,
            "message": message,
        },
        errors,
    )


def _as_number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def check_submission(s: "Session", payload: dict, *, ip: str) -> ContactData:
    """Run the payload checks in order. Raises ContactRejected with the response status."""
    verify_public_session(s, payload.get("sessionToken"), payload.get("csrfToken"))

    for field in HONEYPOT_FIELDS:
        value = payload.get(field)
        if isinstance(value, str) and value.strip():
            raise ContactRejected(400, "Bot detected")

    cleaned, errors = _validate_fields(payload)
    if errors:
        raise ContactRejected(400, ", ".join(errors))

    time_spent = _as_number(payload.get("timeSpent"))
    if time_spent < MIN_TIME_SPENT_MS:
        raise ContactRejected(403, "Form submitted too quickly. Please take your time.")
    if time_spent > MAX_TIME_SPENT_MS:
        raise ContactRejected(403, "Session expired. Please refresh the page and try again.")
    score = _as_number(payload.get("securityScore"))
    if score < MIN_SECURITY_SCORE:
        raise ContactRejected(403, "Security validation failed. Please try again.")

    if is_duplicate(s, ip=ip, email=cleaned["email"]):
        raise ContactRejected(429, "Duplicate submission detected. Please wait before submitting again.")

    return ContactData(time_spent_ms=int(time_spent), security_score=int(score), **cleaned)


def is_duplicate(s: "Session", *, ip: str, email: str, now: datetime | None = None) -> bool:
    from app.cms.modules.contact.models import ContactSubmission

    now = now or datetime.utcnow()
    return (
        s.query(ContactSubmission.id)
        .filter(
            ContactSubmission.ip_address == ip,
            ContactSubmission.email == email,
            ContactSubmission.created_at >= now - DUPLICATE_WINDOW,
        )
        .first()
        is not None
    )


def store_submission(s: "Session", data: ContactData, *, ip: str, user_agent: str | None) -> "ContactSubmission":
    from app.cms.modules.contact.models import ContactSubmission

    row = ContactSubmission(
        submission_id=f"sub_{secrets.token_hex(12)}",
        name=data.name,
        email=data.email,
        phone=data.phone,
        company=data.company,
        training_type=data.training_type,
        message=data.message,
        ip_address=ip,
        user_agent=(user_agent or "")[:255] or None,
        security_score=data.security_score,
        time_spent_ms=data.time_spent_ms,
        created_at=datetime.utcnow(),
    )
    s.add(row)
    s.flush()
    return row


def webhook_payload(row: "ContactSubmission") -> dict:
    return {
        "submissionId": row.submission_id,
        "name": row.name,
        "email": row.email,
        "phone": row.phone,
        "company": row.company,
        "trainingType": row.training_type,
        "message": row.message,
        "timeSpent": row.time_spent_ms,
        "securityScore": row.security_score,
        "ip": row.ip_address,
        "userAgent": row.user_agent,
        "submittedAt": row.created_at.isoformat(),
    }


def list_submissions(s: "Session", *, limit: int = 200) -> list["ContactSubmission"]:
    from app.cms.modules.contact.models import ContactSubmission

    return (
        s.query(ContactSubmission)
        .order_by(ContactSubmission.created_at.desc(), ContactSubmission.id.desc())
        .limit(limit)
        .all()
    )


def cleanup_public_sessions(s: "Session", now: datetime | None = None) -> int:
    from app.cms.models import PublicSession
    from app.cms.security import purge_csrf_tokens

    now = now or datetime.utcnow()
    expired = s.query(PublicSession).filter(PublicSession.expires_at <= now).all()
    for row in expired:
        purge_csrf_tokens(s, "public", row.id)
        s.delete(row)
    s.flush()
    return len(expired)
