"""Tests for rate-limit tracking."""

import time
from unittest.mock import patch

from nargo_crawler.rate_limiter import RateLimiter
from tests.conftest import make_response


def _headers(remaining, limit=5000, reset=0, resource=None):
    headers = {
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Reset": str(reset),
    }
    if resource:
        headers["X-RateLimit-Resource"] = resource
    return headers


class TestRateLimiter:
    def test_no_headers_no_status(self):
        limiter = RateLimiter()
        assert limiter.check_rate_limit(make_response(200, {})) is None
        assert limiter.should_wait() is False

    def test_records_status(self):
        limiter = RateLimiter()
        status = limiter.check_rate_limit(make_response(200, {}, _headers(4000)))
        assert status.remaining == 4000
        assert limiter.get_remaining_requests() == 4000

    def test_should_wait_under_buffer(self):
        limiter = RateLimiter(buffer=100)
        limiter.check_rate_limit(make_response(200, {}, _headers(50)))
        assert limiter.should_wait() is True

    def test_small_bucket_uses_proportional_reserve(self):
        limiter = RateLimiter(buffer=100)
        limiter.check_rate_limit(make_response(200, {}, _headers(5, limit=10, resource="code_search")))
        assert limiter.should_wait("code_search") is False
        limiter.check_rate_limit(make_response(200, {}, _headers(1, limit=10, resource="code_search")))
        assert limiter.should_wait("code_search") is True
        assert limiter.should_wait("core") is False

    def test_waits_until_reset(self):
        limiter = RateLimiter(buffer=100)
        reset = int(time.time()) + 30
        limiter.check_rate_limit(make_response(200, {}, _headers(0, reset=reset)))
        with patch("nargo_crawler.rate_limiter.time.sleep") as sleep:
            limiter.wait_if_needed()
        sleep.assert_called_once()
        assert 0 < sleep.call_args[0][0] <= 32

    def test_no_wait_when_reset_passed(self):
        limiter = RateLimiter(buffer=100)
        limiter.check_rate_limit(make_response(200, {}, _headers(0, reset=1)))
        with patch("nargo_crawler.rate_limiter.time.sleep") as sleep:
            limiter.wait_if_needed()
        sleep.assert_not_called()

    def test_buckets_kept_per_credential(self):
        limiter = RateLimiter(buffer=100)
        limiter.check_rate_limit(make_response(200, {}, _headers(0, reset=int(time.time()) + 3000)), "spent")
        limiter.check_rate_limit(make_response(200, {}, _headers(4000)), "fresh")
        assert limiter.should_wait("core", "spent") is True
        assert limiter.should_wait("core", "fresh") is False
        assert limiter.get_remaining_requests("core", "fresh") == 4000
        with patch("nargo_crawler.rate_limiter.time.sleep") as sleep:
            limiter.wait_if_needed("core", "fresh")
        sleep.assert_not_called()
