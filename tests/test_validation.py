"""Tests for input sanitizers and field parsers."""
import pytest

from app.cms.validation import (
    ValidationError,
    clean_text,
    display_order,
    is_image_reference,
    is_link_target,
    is_valid_email,
    optional_int,
    parse_bool,
    parse_int,
    sanitize_email,
    sanitize_message,
    sanitize_phone,
    sanitize_text,
    sanitize_url,
)


def test_sanitize_text_drops_markup_and_risky_characters():
    assert sanitize_text("<i>Bob</i> & 'Sons' (Ltd);") == "Bob  Sons Ltd"
    assert sanitize_text("x" * 2000) == "x" * 1000
    assert sanitize_text(None) == ""


def test_sanitize_email_and_phone():
    assert sanitize_email("  Pat.Morgan+Tag@Example.COM ") == "pat.morgantag@example.com"
    assert sanitize_phone("+1 (604) 555-0199 ext") == "+1 (604) 555-0199"


def test_sanitize_message_keeps_lines():
    raw = "Line one<script>alert(1)</script>\n<a href='javascript:evil()' onclick=go()>Line two</a>"
    assert sanitize_message(raw) == "Line one\nLine two"


def test_sanitize_url():
    assert sanitize_url(" https://example.com/a ") == "https://example.com/a"
    assert sanitize_url("/courses") == "/courses"
    assert sanitize_url("//evil.example.com") == ""
    assert sanitize_url("javascript:alert(1)") == ""
    assert sanitize_url(None) == ""


def test_clean_text():
    assert clean_text(None) is None
    assert clean_text("   ") is None
    assert clean_text(42) == "42"
    assert clean_text("  Fish & Chips  ") == "Fish & Chips"
    assert clean_text("<p>Hello</p>") == "Hello"
    assert clean_text("abcdef", 3) == "abc"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("/courses", True),
        ("#contact", True),
        ("https://example.com/x", True),
        ("//evil.example.com", False),
        ("javascript:alert(1)", False),
        ("mailto:a@b.com", False),
        ("", False),
    ],
)
def test_is_link_target(value, expected):
    assert is_link_target(value) is expected


def test_is_image_reference():
    assert is_image_reference("/media/company/logo.png")
    assert is_image_reference("https://cdn.example.com/a.jpg")
    assert not is_image_reference("logo.png")
    assert not is_image_reference(None)


def test_is_valid_email():
    assert is_valid_email("a@b.co")
    assert not is_valid_email("a@b")
    assert not is_valid_email("a b@c.com")
    assert not is_valid_email(None)


def test_parse_bool_and_int():
    assert parse_bool("on") is True
    assert parse_bool("0") is False
    assert parse_bool("maybe") is None
    assert parse_bool(1) is None
    assert parse_int(" 12 ") == 12
    assert parse_int(3.0) == 3
    assert parse_int(True) is None
    assert parse_int("1.5") is None


def test_optional_int_and_display_order():
    errors = []
    assert optional_int("", "years", errors) is None
    assert optional_int("abc", "years", errors) is None
    assert optional_int(-1, "years", errors, minimum=0) == -1
    assert errors == ["years must be a whole number.", "years must be at least 0."]

    errors = []
    assert display_order(None, errors) == 0
    assert display_order("4", errors) == 4
    assert errors == []


def test_validation_error_accepts_one_or_many():
    assert ValidationError("nope").errors == ["nope"]
    e = ValidationError(["a", "b"])
    assert e.errors == ["a", "b"]
    assert str(e) == "a; b"
