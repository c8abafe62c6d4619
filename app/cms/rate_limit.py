from __future__ import annotations

import logging
import math
import threading
import time
from collections import defaultdict
from dataclasses import dataclass

from flask import current_app

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    limit: int
    window_seconds: int


RULES: dict[str, RateLimitRule] = {
    "login": RateLimitRule(limit=5, window_seconds=60 * 60),
    "password_reset": RateLimitRule(limit=3, window_seconds=60 * 60),
    "admin_api": RateLimitRule(limit=100, window_seconds=60 * 60),
    "public_api": RateLimitRule(limit=60, window_seconds=60),
    "contact_form": RateLimitRule(limit=3, window_seconds=15 * 60),
    "contact_init": RateLimitRule(limit=10, window_seconds=5 * 60),
    "default": RateLimitRule(limit=30, window_seconds=60),
}


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int = 0


def _progressive_rule(rule: RateLimitRule, failed_attempts: int) -> RateLimitRule:
    if failed_attempts >= 3:
        return RateLimitRule(limit=max(1, rule.limit // 4), window_seconds=rule.window_seconds * 2)
    if failed_attempts >= 1:
        return RateLimitRule(limit=max(2, rule.limit // 2), window_seconds=rule.window_seconds)
    return rule


class RateLimiter:
    """
    In-process sliding-window limiter.
    State is per worker process; every hit is a timestamp under `identifier:action`.
    """

    def __init__(self, rules: dict[str, RateLimitRule] | None = None) -> None:
        self.rules = dict(rules or RULES)
        self._hits: dict[str, list[float]] = defaultdict(list)
        self._lock = threading.Lock()

    def rule_for(self, action: str) -> RateLimitRule:
        return self.rules.get(action) or self.rules["default"]

    @staticmethod
    def _key(identifier: str, action: str, progressive: bool) -> str:
        key = f"{identifier}:{action}"
        return f"{key}:progressive" if progressive else key

    def check(
        self,
        identifier: str,
        action: str,
        *,
        progressive: bool = False,
        failed_attempts: int = 0,
        now: float | None = None,
    ) -> RateLimitResult:
        """Count one hit against the rule; the hit is recorded only when allowed."""
        rule = self.rule_for(action)
        if progressive:
            rule = _progressive_rule(rule, failed_attempts)
        now = time.time() if now is None else now
        key = self._key(identifier, action, progressive)

        with self._lock:
            cutoff = now - rule.window_seconds
            hits = [t for t in self._hits[key] if t > cutoff]
            if len(hits) >= rule.limit:
                self._hits[key] = hits
                reset_at = hits[0] + rule.window_seconds
                retry_after = max(1, int(math.ceil(reset_at - now)))
                logger.warning("Rate limit exceeded (key=%s limit=%s)", key, rule.limit)
                return RateLimitResult(
                    allowed=False,
                    limit=rule.limit,
                    remaining=0,
                    reset_at=reset_at,
                    retry_after=retry_after,
                )
            hits.append(now)
            self._hits[key] = hits
            return RateLimitResult(
                allowed=True,
                limit=rule.limit,
                remaining=rule.limit - len(hits),
                reset_at=hits[0] + rule.window_seconds,
            )

    def status(self, identifier: str, action: str, *, progressive: bool = False, now: float | None = None) -> dict:
        rule = self.rule_for(action)
        now = time.time() if now is None else now
        key = self._key(identifier, action, progressive)
        with self._lock:
            hits = [t for t in self._hits.get(key, []) if t > now - rule.window_seconds]
        return {
            "key": key,
            "count": len(hits),
            "limit": rule.limit,
            "window_seconds": rule.window_seconds,
            "remaining": max(0, rule.limit - len(hits)),
        }

    def reset(self, identifier: str, action: str) -> None:
        with self._lock:
            self._hits.pop(self._key(identifier, action, False), None)
            self._hits.pop(self._key(identifier, action, True), None)

    def cleanup(self, now: float | None = None) -> int:
        """Drop keys with no hits inside the longest window. Returns the number of keys removed."""
        now = time.time() if now is None else now
        # progressive windows can be twice the base window
        horizon = max(r.window_seconds for r in self.rules.values()) * 2
        removed = 0
        with self._lock:
            for key in list(self._hits.keys()):
                hits = [t for t in self._hits[key] if t > now - horizon]
                if hits:
                    self._hits[key] = hits
                else:
                    del self._hits[key]
                    removed += 1
        return removed


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(int(math.ceil(result.reset_at))),
    }
    if not result.allowed:
        headers["Retry-After"] = str(result.retry_after)
    return headers


def current_limiter() -> RateLimiter:
    return current_app.extensions["rate_limiter"]
