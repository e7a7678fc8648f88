"""Tests for the in-memory rate limiter."""

from kindred.core.rate_limit import RateLimiter


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestRateLimiter:
    """Fixed-window counting."""

    def test_allows_up_to_limit_then_blocks(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)

        results = [limiter.check("ip:1", limit=3, window_seconds=60) for _ in range(4)]

        assert [r.allowed for r in results] == [True, True, True, False]
        assert [r.remaining for r in results] == [2, 1, 0, 0]

    def test_new_window_after_reset(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        for _ in range(2):
            limiter.check("ip:1", limit=2, window_seconds=60)
        assert not limiter.check("ip:1", limit=2, window_seconds=60).allowed

        clock.now += 60
        result = limiter.check("ip:1", limit=2, window_seconds=60)

        assert result.allowed
        assert result.remaining == 1

    def test_keys_are_independent(self):
        limiter = RateLimiter(clock=FakeClock())
        limiter.check("a", limit=1)

        assert not limiter.check("a", limit=1).allowed
        assert limiter.check("b", limit=1).allowed

    def test_retry_after_is_ceiling_of_remaining_window(self):
        clock = FakeClock(1000.0)
        limiter = RateLimiter(clock=clock)
        limiter.check("k", limit=1, window_seconds=60)
        clock.now = 1030.4

        blocked = limiter.check("k", limit=1, window_seconds=60)

        assert not blocked.allowed
        assert blocked.retry_after(clock.now) == 30

    def test_sweep_drops_expired_windows(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        limiter.check("old", window_seconds=10)
        limiter.check("fresh", window_seconds=120)
        clock.now += 30

        assert limiter.sweep() == 1
        assert len(limiter) == 1

    def test_lazy_sweep_on_access(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        limiter.check("old", window_seconds=10)
        clock.now += 61

        limiter.check("new")

        assert len(limiter) == 1


class TestRateLimitedEndpoints:
    """429 envelope and headers on public endpoints."""

    def test_invite_validation_is_rate_limited(self, client, make_invite):
        invite = make_invite()
        headers = {"X-Forwarded-For": "203.0.113.9, 10.0.0.1"}

        statuses = [
            client.get("/api/invites/validate", params={"token": invite.token}, headers=headers).status_code
            for _ in range(60)
        ]
        blocked = client.get("/api/invites/validate", params={"token": invite.token}, headers=headers)

        assert set(statuses) == {200}
        assert blocked.status_code == 429
        assert blocked.json() == {"success": False, "error": "Too many requests. Please try again later."}
        assert int(blocked.headers["Retry-After"]) >= 1
        assert blocked.headers["X-RateLimit-Limit"] == "60"
        assert blocked.headers["X-RateLimit-Remaining"] == "0"

    def test_limits_are_per_client_ip(self, client, make_invite):
        invite = make_invite()
        for _ in range(60):
            client.get("/api/invites/validate", params={"token": invite.token}, headers={"X-Real-IP": "198.51.100.1"})

        other = client.get("/api/invites/validate", params={"token": invite.token}, headers={"X-Real-IP": "198.51.100.2"})

        assert other.status_code == 200
