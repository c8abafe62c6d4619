"""
Seed admin accounts (idempotent).

Reads ADMIN_USERNAME / ADMIN_EMAIL / ADMIN_PASSWORD, plus an optional
WEBMASTER_USERNAME / WEBMASTER_EMAIL / WEBMASTER_PASSWORD second account.
Existing users keep their password.

Usage:
  python scripts/init_db.py
"""
import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.cms.models import AdminUser  # noqa: E402
from scripts._db_utils import resolve_database_url, script_session  # noqa: E402

MIN_PASSWORD_LENGTH = 8


def ensure_admin(s, *, username: str, email: str, password: str, role: str) -> tuple[AdminUser, bool]:
    """Create the account if missing. Returns (user, created)."""
    username = username.strip()
    email = email.strip().lower()
    user = s.query(AdminUser).filter(AdminUser.username == username).one_or_none()
    if user:
        return user, False
    if len(password) < MIN_PASSWORD_LENGTH:
        raise RuntimeError(f"Password for {username} must be at least {MIN_PASSWORD_LENGTH} characters.")
    user = AdminUser(
        username=username,
        email=email,
        password_hash=generate_password_hash(password),
        role=role,
        is_active=True,
    )
    s.add(user)
    s.flush()
    return user, True


def seed_only(*, database_url: str | None = None) -> None:
    db_url = resolve_database_url(database_url)
    accounts = [
        (
            os.environ.get("ADMIN_USERNAME") or "admin",
            os.environ.get("ADMIN_EMAIL") or "admin@example.com",
            os.environ.get("ADMIN_PASSWORD") or "change-me-now",
            "admin",
        )
    ]
    if (os.environ.get("WEBMASTER_USERNAME") or "").strip():
        accounts.append(
            (
                os.environ["WEBMASTER_USERNAME"],
                os.environ.get("WEBMASTER_EMAIL") or f"{os.environ['WEBMASTER_USERNAME'].strip()}@example.com",
                os.environ.get("WEBMASTER_PASSWORD") or "",
                "webmaster",
            )
        )

    with script_session(db_url) as s:
        for username, email, password, role in accounts:
            user, created = ensure_admin(s, username=username, email=email, password=password, role=role)
            print(f"{'Created' if created else 'Kept existing'} {role} account: {user.username}")

    print("Initialized database (seed_only).")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
