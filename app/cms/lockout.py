from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.cms.models import FailedLoginAttempt

logger = logging.getLogger(__name__)

MAX_ACCOUNT_ATTEMPTS = 5
MAX_IP_ATTEMPTS = 20
ATTEMPT_WINDOW = timedelta(hours=1)
LOCKOUT_DURATION = timedelta(minutes=15)
RETENTION = timedelta(hours=24)


@dataclass(frozen=True)
class LockoutStatus:
    locked: bool
    attempts: int
    lockout_until: datetime | None = None
    retry_after: int = 0


def record_failed_attempt(s: Session, username: str, ip: str, user_agent: str | None = None) -> FailedLoginAttempt:
    row = FailedLoginAttempt(
        username=(username or "")[:100],
        ip_address=ip,
        user_agent=(user_agent or "")[:255] or None,
        attempted_at=datetime.utcnow(),
    )
    s.add(row)
    s.flush()
    return row


def _status(s: Session, column, value: str, threshold: int, now: datetime | None) -> LockoutStatus:
    now = now or datetime.utcnow()
    window_start = now - ATTEMPT_WINDOW
    attempts, last = (
        s.query(func.count(FailedLoginAttempt.id), func.max(FailedLoginAttempt.attempted_at))
        .filter(column == value, FailedLoginAttempt.attempted_at > window_start)
        .one()
    )
    attempts = int(attempts or 0)
    if attempts < threshold or last is None:
        return LockoutStatus(locked=False, attempts=attempts)
    lockout_until = last + LOCKOUT_DURATION
    if lockout_until <= now:
        return LockoutStatus(locked=False, attempts=attempts)
    retry_after = max(1, int((lockout_until - now).total_seconds()))
    return LockoutStatus(locked=True, attempts=attempts, lockout_until=lockout_until, retry_after=retry_after)


def account_lockout(s: Session, username: str, *, now: datetime | None = None) -> LockoutStatus:
    return _status(s, FailedLoginAttempt.username, username, MAX_ACCOUNT_ATTEMPTS, now)


def ip_lockout(s: Session, ip: str, *, now: datetime | None = None) -> LockoutStatus:
    return _status(s, FailedLoginAttempt.ip_address, ip, MAX_IP_ATTEMPTS, now)


def reset_attempts(s: Session, username: str) -> int:
    return (
        s.query(FailedLoginAttempt)
        .filter(FailedLoginAttempt.username == username)
        .delete(synchronize_session=False)
    )


def cleanup_old_attempts(s: Session, *, older_than: timedelta = RETENTION) -> int:
    cutoff = datetime.utcnow() - older_than
    n = s.query(FailedLoginAttempt).filter(FailedLoginAttempt.attempted_at < cutoff).delete(synchronize_session=False)
    if n:
        logger.info("Removed %s failed login attempt(s) older than %s", n, older_than)
    return n


def lockout_stats(s: Session) -> dict:
    now = datetime.utcnow()
    window_start = now - ATTEMPT_WINDOW
    recent = s.query(FailedLoginAttempt).filter(FailedLoginAttempt.attempted_at > window_start)
    locked_accounts = [
        username
        for (username,) in recent.with_entities(FailedLoginAttempt.username).distinct()
        if account_lockout(s, username, now=now).locked
    ]
    locked_ips = [
        ip for (ip,) in recent.with_entities(FailedLoginAttempt.ip_address).distinct() if ip_lockout(s, ip, now=now).locked
    ]
    return {
        "attempts_last_hour": recent.count(),
        "attempts_last_24h": s.query(FailedLoginAttempt)
        .filter(FailedLoginAttempt.attempted_at > now - RETENTION)
        .count(),
        "locked_accounts": sorted(locked_accounts),
        "locked_ips": sorted(locked_ips),
    }


def recent_attempts(s: Session, limit: int = 50) -> list[FailedLoginAttempt]:
    return (
        s.query(FailedLoginAttempt)
        .order_by(FailedLoginAttempt.attempted_at.desc(), FailedLoginAttempt.id.desc())
        .limit(limit)
        .all()
    )
