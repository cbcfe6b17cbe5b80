import asyncio

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from farmmarket.core.rate_limit import AccountLockout, RateLimiter, get_client_ip, max_body_size


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def _request(headers, client=None, body=b""):
    scope = {"type": "http", "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()]}
    if client is not None:
        scope["client"] = client

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


class TestRateLimiter:
    """Fixed window counting."""

    def test_allows_up_to_limit(self):
        limiter = RateLimiter(clock=FakeClock())

        results = [limiter.check("login:1.2.3.4", 3, 60) for _ in range(4)]

        assert [allowed for allowed, _ in results] == [True, True, True, False]
        assert results[-1][1] == 60

    def test_window_resets(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        for _ in range(3):
            limiter.check("key", 2, 60)

        clock.advance(60)

        assert limiter.check("key", 2, 60) == (True, 0)

    def test_retry_after_counts_down(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        limiter.check("key", 1, 60)
        clock.advance(45.5)

        allowed, retry_after = limiter.check("key", 1, 60)

        assert allowed is False
        assert retry_after == 15

    def test_keys_are_independent(self):
        limiter = RateLimiter(clock=FakeClock())
        limiter.check("a", 1, 60)

        assert limiter.check("b", 1, 60) == (True, 0)

    def test_reset(self):
        limiter = RateLimiter(clock=FakeClock())
        limiter.check("a", 1, 60)
        limiter.check("b", 1, 60)

        limiter.reset("a")

        assert limiter.check("a", 1, 60) == (True, 0)
        assert limiter.check("b", 1, 60)[0] is False

    def test_expired_windows_are_dropped(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        for index in range(1000):
            limiter.check(f"contact:10.0.{index // 256}.{index % 256}", 5, 60)
        assert len(limiter) == 1000

        clock.advance(60 * 60)
        limiter.check("contact:192.0.2.1", 5, 60)

        assert len(limiter) == 1

    def test_live_windows_survive_a_sweep(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        limiter.check("login:short", 5, 60)
        limiter.check("forgot-password:long", 1, 60 * 60)

        clock.advance(120)
        limiter.check("login:other", 5, 60)

        assert len(limiter) == 2
        assert limiter.check("forgot-password:long", 1, 60 * 60)[0] is False


class TestAccountLockout:
    """Failed login tracking."""

    def test_counts_down_remaining_attempts(self):
        lockout = AccountLockout(max_attempts=3, clock=FakeClock())

        assert lockout.record_failure("john@example.com") == 2
        assert lockout.record_failure("JOHN@example.com ") == 1
        assert lockout.is_locked("john@example.com") == (False, 0)

    def test_locks_after_max_attempts(self):
        lockout = AccountLockout(max_attempts=2, lockout_seconds=900, clock=FakeClock())
        lockout.record_failure("john@example.com")

        assert lockout.record_failure("john@example.com") == 0
        assert lockout.is_locked("john@example.com") == (True, 900)

    def test_lock_expires(self):
        clock = FakeClock()
        lockout = AccountLockout(max_attempts=1, lockout_seconds=900, clock=clock)
        lockout.record_failure("john@example.com")

        clock.advance(900)

        assert lockout.is_locked("john@example.com") == (False, 0)
        assert len(lockout) == 0

    def test_old_failures_are_forgotten(self):
        clock = FakeClock()
        lockout = AccountLockout(max_attempts=3, lockout_seconds=900, clock=clock)
        lockout.record_failure("john@example.com")
        lockout.record_failure("john@example.com")

        clock.advance(900)

        assert lockout.record_failure("john@example.com") == 2

    def test_stale_records_are_dropped(self):
        clock = FakeClock()
        lockout = AccountLockout(max_attempts=5, lockout_seconds=900, clock=clock)
        for index in range(500):
            lockout.record_failure(f"nobody{index}@example.com")
        lockout.record_failure("locked@example.com")
        assert len(lockout) == 501

        clock.advance(900)
        lockout.is_locked("john@example.com")

        assert len(lockout) == 0

    def test_clear_on_success(self):
        lockout = AccountLockout(max_attempts=3, clock=FakeClock())
        lockout.record_failure("john@example.com")

        lockout.clear("john@example.com")

        assert lockout.record_failure("john@example.com") == 2


class TestClientIp:
    """Client address resolution behind proxies."""

    def test_first_forwarded_for_entry(self):
        assert get_client_ip(_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})) == "203.0.113.7"

    def test_real_ip(self):
        assert get_client_ip(_request({"X-Real-IP": "198.51.100.2"})) == "198.51.100.2"

    def test_direct_connection_uses_peer_address(self):
        assert get_client_ip(_request({}, client=("192.0.2.10", 51234))) == "192.0.2.10"

    def test_proxy_header_wins_over_peer_address(self):
        request = _request({"X-Forwarded-For": "203.0.113.7"}, client=("10.0.0.1", 51234))

        assert get_client_ip(request) == "203.0.113.7"

    def test_unknown_without_peer(self):
        assert get_client_ip(_request({})) == "unknown"


class TestMaxBodySize:
    """Request body caps."""

    def test_declared_length_over_limit(self):
        request = _request({"Content-Length": "2048"})

        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(max_body_size(1024)(request))

        assert exc_info.value.status_code == 413
        assert exc_info.value.detail == "Request body too large"

    def test_invalid_content_length(self):
        request = _request({"Content-Length": "lots"})

        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(max_body_size(1024)(request))

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Invalid Content-Length header"

    def test_undeclared_body_over_limit(self):
        request = _request({}, body=b"x" * 2048)

        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(max_body_size(1024)(request))

        assert exc_info.value.status_code == 413

    def test_body_within_limit(self):
        request = _request({"Content-Length": "5"}, body=b"hello")

        assert asyncio.run(max_body_size(1024)(request)) is None
