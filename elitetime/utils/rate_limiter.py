import math
import time
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request

from elitetime.core.exceptions import RateLimitedError
from elitetime.core.request_context import get_client_ip

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    reset_time: float


@dataclass
class RateLimitResult:
    allowed: bool
    count: int
    remaining: int
    reset_time: float


class FixedWindowRateLimiter:
    """
    In-memory fixed-window counter keyed by client identifier.

    Each key gets ``max_requests`` hits per window; the window starts on the
    first hit and is not sliding, so bursts across a window boundary are
    accepted. Expired entries are swept on access, at most once every
    ``sweep_interval`` seconds.

    Instances live on ``app.state``.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60,
        sweep_interval: float = 300,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._entries)

    def check(self, key: str) -> RateLimitResult:
        now = self._clock()
        self._maybe_sweep(now)

        entry = self._entries.get(key)
        if entry is None or now >= entry.reset_time:
            entry = RateLimitEntry(count=1, reset_time=now + self.window_seconds)
            self._entries[key] = entry
            return self._result(True, entry)

        if entry.count < self.max_requests:
            entry.count += 1
            return self._result(True, entry)

        logger.warning(f"SECURITY: rate limit exceeded for {key}")
        return self._result(False, entry)

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop every entry whose window has elapsed. Returns the number removed."""
        now = self._clock() if now is None else now
        expired = [key for key, entry in self._entries.items() if now >= entry.reset_time]
        for key in expired:
            del self._entries[key]

        self._last_sweep = now
        if expired:
            logger.debug(f"Cleaned up {len(expired)} rate limit entries")
        return len(expired)

    def _maybe_sweep(self, now: float) -> None:
        if now - self._last_sweep >= self.sweep_interval:
            self.sweep(now)

    def _result(self, allowed: bool, entry: RateLimitEntry) -> RateLimitResult:
        return RateLimitResult(
            allowed=allowed,
            count=entry.count,
            remaining=max(0, self.max_requests - entry.count),
            reset_time=entry.reset_time,
        )

    def retry_after(self, result: RateLimitResult) -> int:
        """Whole seconds until the window of ``result`` resets, at least 1."""
        return max(1, math.ceil(result.reset_time - self._clock()))

    def enforce(self, key: str) -> RateLimitResult:
        """Like ``check`` but raises RateLimitedError when denied."""
        result = self.check(key)
        if not result.allowed:
            raise RateLimitedError(reset_time=result.reset_time, retry_after=self.retry_after(result))
        return result


async def check_login_rate_limit(request: Request):
    """Dependency applying the stricter login limiter to the client IP"""
    limiter: FixedWindowRateLimiter = request.app.state.login_rate_limiter
    limiter.enforce(f"login:{get_client_ip(request)}")
