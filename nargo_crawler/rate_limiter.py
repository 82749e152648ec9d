"""
Rate limiter for GitHub API requests.

Tracks the rate-limit headers of each API resource (core, search,
code_search) per credential and waits for the reset when a bucket runs
low.
"""

import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import requests
import structlog

log = structlog.get_logger("nargo_crawler.rate_limiter")

DEFAULT_RESOURCE = "core"


@dataclass
class RateLimitStatus:
    """Current rate limit status."""
    remaining: int
    limit: int
    reset_at: int  # Unix timestamp


class RateLimiter:
    """
    Manages GitHub API rate limits.

    Respects:
    - 5000 requests/hour for core endpoints (authenticated)
    - 30 requests/minute for search, 10 for code search

    One instance is shared by every client of a crawl run. Buckets are
    kept per credential, since each token has its own quota.
    """

    def __init__(self, buffer: int = 100):
        """
        Initialize rate limiter.

        Args:
            buffer: Number of requests to keep in reserve
        """
        self.buffer = buffer
        self.last_check = 0.0
        self._status: Dict[Tuple[str, Optional[str]], RateLimitStatus] = {}
        self._lock = threading.Lock()

    def check_rate_limit(
        self,
        response: requests.Response,
        credential: Optional[str] = None,
    ) -> Optional[RateLimitStatus]:
        """
        Extract rate limit info from GitHub API response headers.

        Args:
            response: requests.Response from GitHub API
            credential: Token the request was sent with (optional)

        Returns:
            RateLimitStatus for the response's resource, or None when the
            response carries no rate-limit headers
        """
        headers = response.headers
        if "X-RateLimit-Remaining" not in headers:
            return None

        try:
            status = RateLimitStatus(
                remaining=int(headers.get("X-RateLimit-Remaining", 0)),
                limit=int(headers.get("X-RateLimit-Limit", 5000)),
                reset_at=int(headers.get("X-RateLimit-Reset", 0)),
            )
        except ValueError:
            return None

        resource = headers.get("X-RateLimit-Resource", DEFAULT_RESOURCE)
        with self._lock:
            self._status[(resource, credential)] = status
            self.last_check = time.time()
        return status

    def wait_if_needed(self, resource: str = DEFAULT_RESOURCE, credential: Optional[str] = None) -> None:
        """
        Wait if rate limit is approaching.

        If remaining requests fall to the reserve for *resource* under
        *credential*, wait until its reset time.
        """
        if not self.should_wait(resource, credential):
            return

        status = self._status[(resource, credential)]
        wait_seconds = status.reset_at - time.time() + 1
        if wait_seconds > 0:
            log.warning(
                "rate_limit.waiting",
                resource=resource,
                remaining=status.remaining,
                wait_seconds=round(wait_seconds),
            )
            time.sleep(wait_seconds)

    def get_remaining_requests(
        self,
        resource: str = DEFAULT_RESOURCE,
        credential: Optional[str] = None,
    ) -> Optional[int]:
        """Get remaining requests from cached status."""
        status = self._status.get((resource, credential))
        if status:
            return status.remaining
        return None

    def should_wait(self, resource: str = DEFAULT_RESOURCE, credential: Optional[str] = None) -> bool:
        """Check if we should wait before making next request."""
        status = self._status.get((resource, credential))
        if not status:
            return False
        # Small buckets (search) would always sit under a fixed reserve
        reserve = min(self.buffer, status.limit // 10)
        return status.remaining <= reserve
