"""
Purge expired auth state: admin sessions, public (contact form) sessions,
stale CSRF tokens and failed-login rows past retention.

Safe to run from cron at any interval.

Usage:
  python scripts/cleanup_sessions.py
"""
from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.cms.lockout import cleanup_old_attempts  # noqa: E402
from app.cms.modules.contact.service import cleanup_public_sessions  # noqa: E402
from app.cms.security import cleanup_expired_csrf_tokens  # noqa: E402
from app.cms.sessions import cleanup_expired_sessions  # noqa: E402
from scripts._db_utils import resolve_database_url, script_session  # noqa: E402


def run_cleanup(*, database_url: str | None = None) -> dict[str, int]:
    db_url = resolve_database_url(database_url)
    ttl = int(os.environ.get("CSRF_TOKEN_TTL_SECONDS") or 3600)
    with script_session(db_url) as s:
        counts = {
            "admin_sessions": cleanup_expired_sessions(s),
            "public_sessions": cleanup_public_sessions(s),
            "csrf_tokens": cleanup_expired_csrf_tokens(s, ttl_seconds=ttl),
            "failed_login_attempts": cleanup_old_attempts(s),
        }
    for name, n in counts.items():
        print(f"Deleted {n} expired {name}")
    return counts


def main() -> None:
    run_cleanup(database_url=None)


if __name__ == "__main__":
    main()
