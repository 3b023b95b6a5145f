"""Sliding window rate limiter for unauthenticated auth endpoints."""

import time
from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock

from espresso_gallery.errors import RateLimited


@dataclass(frozen=True)
class RateLimiterConfig:
    """Configuration for rate limiter."""

    max_attempts: int
    window_seconds: float = 60.0


LOGIN_LIMIT = RateLimiterConfig(max_attempts=10, window_seconds=60.0)
REGISTER_LIMIT = RateLimiterConfig(max_attempts=5, window_seconds=300.0)


@dataclass
class RateLimiter:
    """Per-key sliding window limiter.

    Keys are client addresses. Each allowed attempt is recorded; once a key has
    ``max_attempts`` inside the window, further attempts are refused until the
    oldest one ages out.

    Example:
        limiter = RateLimiter(LOGIN_LIMIT)
        limiter.check(request.client.host)  # raises RateLimited when exhausted
    """

    config: RateLimiterConfig
    _attempts: dict[str, list[float]] = field(default_factory=lambda: defaultdict(list))
    _lock: Lock = field(default_factory=Lock)

    def _prune(self, key: str, now: float) -> list[float]:
        window_start = now - self.config.window_seconds
        recent = [t for t in self._attempts[key] if t > window_start]
        self._attempts[key] = recent
        return recent

    def is_allowed(self, key: str, now: float | None = None) -> bool:
        """Record an attempt for ``key`` if it is under the limit.

        Args:
            key: Rate limit bucket, usually the client IP
            now: Current timestamp (defaults to time.time(), injectable for testing)

        Returns:
            True if the attempt was recorded, False if rate limited
        """
        if now is None:
            now = time.time()

        with self._lock:
            recent = self._prune(key, now)
            if len(recent) >= self.config.max_attempts:
                return False
            recent.append(now)
            return True

    def check(self, key: str, now: float | None = None) -> None:
        """Like ``is_allowed`` but raises ``RateLimited`` instead of returning False."""
        if not self.is_allowed(key, now):
            raise RateLimited("Too many attempts, please try again later")

    def retry_after(self, key: str, now: float | None = None) -> float:
        """Seconds until the next attempt for ``key`` would be allowed (0 if now)."""
        if now is None:
            now = time.time()

        with self._lock:
            recent = self._prune(key, now)
            if len(recent) < self.config.max_attempts:
                return 0.0
            return max(0.0, recent[0] + self.config.window_seconds - now)

    def reset(self, key: str) -> None:
        with self._lock:
            self._attempts.pop(key, None)

    def reset_all(self) -> None:
        with self._lock:
            self._attempts.clear()


login_limiter = RateLimiter(LOGIN_LIMIT)
register_limiter = RateLimiter(REGISTER_LIMIT)
