"""
Rate limiting and account lockout.

Both stores are in-memory fixed-window counters shared by every request
handled by this process. Counts are not coordinated across processes.
Expired entries are swept out at most once per sweep interval.
"""

import math
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import HTTPException, Request, status

from farmmarket.core.logging_config import get_logger

logger = get_logger(__name__)

MAX_LOGIN_ATTEMPTS = 5
LOCKOUT_SECONDS = 15 * 60
SWEEP_INTERVAL_SECONDS = 60


class RateLimiter:
    """Fixed-window request counter keyed by an arbitrary string."""

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = SWEEP_INTERVAL_SECONDS):
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: Dict[str, Tuple[int, float]] = {}
        self._sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def _sweep(self, now: float) -> None:
        # caller holds the lock
        if now < self._next_sweep:
            return
        expired = [key for key, (_, reset_at) in self._windows.items() if now >= reset_at]
        for key in expired:
            del self._windows[key]
        self._next_sweep = now + self._sweep_interval

    def check(self, key: str, limit: int, window_seconds: float) -> Tuple[bool, int]:
        """
        Count a request against ``key``.

        Returns:
            ``(allowed, retry_after_seconds)``. A request is rejected once the
            count inside the current window exceeds ``limit``.
        """
        now = self._clock()
        with self._lock:
            self._sweep(now)
            count, reset_at = self._windows.get(key, (0, 0.0))
            if now >= reset_at:
                count, reset_at = 0, now + window_seconds
            count += 1
            self._windows[key] = (count, reset_at)
            if count > limit:
                return False, max(1, math.ceil(reset_at - now))
            return True, 0

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)


class AccountLockout:
    """Tracks failed logins per e-mail and locks the account after too many."""

    def __init__(
        self,
        max_attempts: int = MAX_LOGIN_ATTEMPTS,
        lockout_seconds: float = LOCKOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = SWEEP_INTERVAL_SECONDS,
    ):
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # email -> (failed attempts, locked until, last failure)
        self._attempts: Dict[str, Tuple[int, float, float]] = {}
        self._sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    def __len__(self) -> int:
        with self._lock:
            return len(self._attempts)

    @staticmethod
    def _key(email: str) -> str:
        return email.strip().lower()

    def _is_stale(self, record: Tuple[int, float, float], now: float) -> bool:
        _, locked_until, last_failure = record
        if locked_until:
            return now >= locked_until
        return now >= last_failure + self.lockout_seconds

    def _sweep(self, now: float) -> None:
        # caller holds the lock
        if now < self._next_sweep:
            return
        stale = [key for key, record in self._attempts.items() if self._is_stale(record, now)]
        for key in stale:
            del self._attempts[key]
        self._next_sweep = now + self._sweep_interval

    def is_locked(self, email: str) -> Tuple[bool, int]:
        """Return ``(locked, seconds_left)``; an expired lock is cleared."""
        key = self._key(email)
        now = self._clock()
        with self._lock:
            self._sweep(now)
            record = self._attempts.get(key)
            if record is None:
                return False, 0
            locked_until = record[1]
            if locked_until and now < locked_until:
                return True, math.ceil(locked_until - now)
            if self._is_stale(record, now):
                del self._attempts[key]
            return False, 0

    def record_failure(self, email: str) -> int:
        """
        Record a failed attempt and return how many attempts remain.

        Failures older than the lockout period are forgotten.
        """
        key = self._key(email)
        now = self._clock()
        with self._lock:
            self._sweep(now)
            record = self._attempts.get(key)
            if record is None or self._is_stale(record, now):
                attempts, locked_until = 0, 0.0
            else:
                attempts, locked_until, _ = record
            attempts += 1
            if attempts >= self.max_attempts:
                locked_until = now + self.lockout_seconds
                logger.warning("Account locked after repeated failed logins", extra={"attempts": attempts})
            self._attempts[key] = (attempts, locked_until, now)
            return max(0, self.max_attempts - attempts)

    def clear(self, email: str) -> None:
        with self._lock:
            self._attempts.pop(self._key(email), None)

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()


rate_limiter = RateLimiter()
account_lockout = AccountLockout()


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit(scope: str, limit: int, window_seconds: int):
    """Dependency factory enforcing ``limit`` requests per ``window_seconds`` per client IP."""

    def dependency(request: Request) -> None:
        client_ip = get_client_ip(request)
        allowed, retry_after = rate_limiter.check(f"{scope}:{client_ip}", limit, window_seconds)
        if not allowed:
            logger.warning(
                f"Rate limit exceeded for {scope}",
                extra={"scope": scope, "client": client_ip, "path": request.url.path},
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later.",
                headers={"Retry-After": str(retry_after)},
            )

    return dependency


def max_body_size(max_bytes: int):
    """
    Dependency factory rejecting request bodies larger than ``max_bytes`` with 413.

    FastAPI reads the body before route dependencies run, so this caps what a
    route accepts, not how much the server buffers. Bounding memory is left
    to the ASGI server or the proxy in front of it.
    """

    async def dependency(request: Request) -> None:
        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid Content-Length header")
            if declared > max_bytes:
                raise HTTPException(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Request body too large"
                )
        body = await request.body()
        if len(body) > max_bytes:
            raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Request body too large")

    return dependency
