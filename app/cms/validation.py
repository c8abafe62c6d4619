"""
Input sanitizers and small field parsers shared by the content modules.

`sanitize_*` helpers are aggressive and meant for untrusted public input
(contact form, login). Admin-authored content goes through `clean_text`,
which strips markup but keeps punctuation.
"""
from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlparse

from markupsafe import Markup


class ValidationError(ValueError):
    def __init__(self, errors: list[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class ConflictError(ValueError):
    """A unique field (slug, name, ...) is already taken."""


_UNSAFE_TEXT_CHARS = re.compile(r"[<>\"'%();&+]")
_EMAIL_ALLOWED = re.compile(r"[^a-z0-9@._\-]")
_PHONE_ALLOWED = re.compile(r"[^0-9\s\-()+.]")
_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
_JS_PROTOCOL = re.compile(r"javascript\s*:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"\bon\w+\s*=", re.IGNORECASE)
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def strip_tags(value: Any) -> str:
    if value is None:
        return ""
    return Markup(str(value)).striptags()


def sanitize_text(value: Any, max_length: int = 1000) -> str:
    text = _UNSAFE_TEXT_CHARS.sub("", strip_tags(value)).strip()
    return text[:max_length]


def sanitize_email(value: Any) -> str:
    if value is None:
        return ""
    return _EMAIL_ALLOWED.sub("", str(value).strip().lower())[:254]


def sanitize_phone(value: Any) -> str:
    if value is None:
        return ""
    return _PHONE_ALLOWED.sub("", str(value)).strip()[:20]


def sanitize_message(value: Any, max_length: int = 5000) -> str:
    if value is None:
        return ""
    text = _SCRIPT_BLOCK.sub("", str(value))
    # newlines matter in messages, so strip tags line by line
    text = "\n".join(strip_tags(line) for line in text.splitlines())
    text = _JS_PROTOCOL.sub("", text)
    text = _EVENT_HANDLER.sub("", text)
    return text.strip()[:max_length]


def clean_text(value: Any, max_length: int | None = None) -> str | None:
    """Strip markup and surrounding whitespace; empty becomes None."""
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    text = _SCRIPT_BLOCK.sub("", value)
    text = text if "<" not in text else "\n".join(strip_tags(line) for line in text.splitlines())
    text = text.strip()
    if not text:
        return None
    if max_length is not None:
        text = text[:max_length]
    return text


def is_valid_email(value: str | None) -> bool:
    return bool(value) and len(value) <= 254 and bool(_EMAIL_RE.match(value))


def is_http_url(value: str | None) -> bool:
    if not value:
        return False
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def sanitize_url(value: Any) -> str:
    """Keep absolute http(s) URLs and site-relative paths; anything else is dropped."""
    if value is None:
        return ""
    url = str(value).strip()[:2048]
    if url.startswith("/") and not url.startswith("//"):
        return url
    return url if is_http_url(url) else ""


def is_link_target(value: str | None) -> bool:
    """Relative path, in-page anchor, or absolute http(s) URL."""
    if not value:
        return False
    return value.startswith("#") or bool(sanitize_url(value))


def is_image_reference(value: str | None) -> bool:
    """Absolute URL or a locally served /media path."""
    return is_http_url(value) or bool(value and value.startswith("/media/"))


def parse_bool(value: Any) -> bool | None:
    """
    Accept real booleans, and the string forms multipart forms send.
    Returns None for anything else so callers can report it.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        v = value.strip().lower()
        if v in ("true", "1", "on", "yes"):
            return True
        if v in ("false", "0", "off", "no"):
            return False
    return None


def parse_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and re.fullmatch(r"-?\d+", value.strip()):
        return int(value.strip())
    return None


def optional_int(
    value: Any,
    label: str,
    errors: list[str],
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int | None:
    """Parse an optional integer field, appending a message to `errors` when it is bad."""
    if value is None or value == "":
        return None
    n = parse_int(value)
    if n is None:
        errors.append(f"{label} must be a whole number.")
        return None
    if minimum is not None and n < minimum:
        errors.append(f"{label} must be at least {minimum}.")
    elif maximum is not None and n > maximum:
        errors.append(f"{label} must be at most {maximum}.")
    return n


def display_order(value: Any, errors: list[str], default: int = 0) -> int:
    n = optional_int(value, "display_order", errors, minimum=0)
    return default if n is None else n


def require_fields(payload: dict, fields: tuple[str, ...]) -> list[str]:
    return [f for f in fields if not clean_text(payload.get(f))]


def json_payload(req) -> dict:
    data = req.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data
