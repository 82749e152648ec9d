"""
GitHub REST transport.

Wraps a requests.Session with credential lookup, rate-limit tracking and
retries, and translates every failure into the closed error set in
nargo_crawler.errors before it reaches the rest of the crawler.
"""

import time
from typing import Any, Dict, Optional

import requests
import structlog

from nargo_crawler.config import CrawlerConfig
from nargo_crawler.credentials import CredentialSupplier, TokenRotator
from nargo_crawler.errors import (
    AbsentResource,
    FailureCategory,
    GitHubAPIError,
    MissingCredentialError,
    TransientFetchError,
)
from nargo_crawler.rate_limiter import RateLimiter

log = structlog.get_logger("nargo_crawler.client")

RATE_LIMIT_STATUSES = (403, 429)


def resource_for_path(path: str) -> str:
    """Map an API path to its rate-limit resource name."""
    if path.startswith("/search/code"):
        return "code_search"
    if path.startswith("/search/"):
        return "search"
    return "core"


class GitHubClient:
    """
    Minimal GitHub REST client.

    Every request authenticates with either an explicit credential or the
    next one from the injected supplier. Retries happen here and only
    here; callers see one categorized outcome per call.
    """

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        credentials: Optional[CredentialSupplier] = None,
        config: Optional[CrawlerConfig] = None,
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize GitHub client.

        Args:
            credentials: Token supplier used when a call passes no credential
            config: CrawlerConfig with timeouts and retry policy
            rate_limiter: RateLimiter instance (optional, shared across clients)
            session: requests.Session to reuse (optional)
        """
        self.credentials = credentials
        self.config = config or CrawlerConfig()
        self.rate_limiter = rate_limiter or RateLimiter(buffer=self.config.rate_limit_buffer)
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github.v3+json",
        })

    def get_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        credential: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        GET an API path and return the decoded JSON body.

        Args:
            path: API path beginning with "/"
            params: Query parameters
            credential: Token for this call (defaults to the supplier's next token)
            timeout: Request timeout in seconds (defaults to config)

        Returns:
            Parsed JSON (dict or list)

        Raises:
            AbsentResource: 404
            TransientFetchError: Rate limit, authentication failure or timeout
            GitHubAPIError: Any other failure
            MissingCredentialError: No credential given and no supplier
        """
        token = self._resolve_credential(credential)
        resource = resource_for_path(path)
        url = f"{self.BASE_URL}{path}"
        timeout = timeout or self.config.http_request_timeout
        max_retries = max(self.config.max_retries, 0)

        last_error: Optional[GitHubAPIError] = None
        for attempt in range(max_retries + 1):
            self.rate_limiter.wait_if_needed(resource, token)
            try:
                response = self.session.get(
                    url,
                    params=params,
                    headers={"Authorization": f"token {token}"},
                    timeout=timeout,
                )
            except requests.Timeout as e:
                last_error = TransientFetchError(FailureCategory.TIMEOUT, f"request timed out: {e}")
                delay = self._backoff_delay(attempt)
                log.warning("github.timeout", url=url, attempt=attempt + 1)
            except requests.RequestException as e:
                last_error = GitHubAPIError(str(e) or "network error")
                delay = self._backoff_delay(attempt)
                log.warning("github.network_error", url=url, attempt=attempt + 1, error=str(e))
            else:
                self.rate_limiter.check_rate_limit(response, token)
                status = response.status_code

                if status < 400:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise GitHubAPIError(f"invalid JSON from {path}: {e}", status_code=status)

                if status == 404:
                    raise AbsentResource(path)
                if status == 401:
                    raise TransientFetchError(
                        FailureCategory.UNAUTHENTICATED,
                        "authentication failed",
                        status_code=status,
                    )
                if status in RATE_LIMIT_STATUSES:
                    retry_after = self._retry_after(response)
                    last_error = TransientFetchError(
                        FailureCategory.RATE_LIMITED,
                        "rate limit exceeded",
                        status_code=status,
                        retry_after=retry_after,
                    )
                    delay = self._rate_limit_delay(attempt, retry_after)
                    if credential is None:
                        token = self._rotate_after_rate_limit(token)
                    log.warning(
                        "github.rate_limit",
                        url=url,
                        status=status,
                        attempt=attempt + 1,
                        wait_seconds=delay,
                    )
                elif status >= 500:
                    last_error = GitHubAPIError(f"server error {status} for {path}", status_code=status)
                    delay = self._backoff_delay(attempt)
                    log.warning("github.server_error", url=url, status=status, attempt=attempt + 1)
                else:
                    raise GitHubAPIError(self._error_message(response), status_code=status)

            if attempt < max_retries:
                time.sleep(delay)

        raise last_error

    def _resolve_credential(self, credential: Optional[str]) -> str:
        if credential:
            return credential
        if self.credentials is None:
            raise MissingCredentialError("No credential passed and no credential supplier configured")
        token = self.credentials.next_credential()
        if not token:
            raise MissingCredentialError("Credential supplier returned an empty token")
        return token

    def _rotate_after_rate_limit(self, token: str) -> str:
        """Park a rate-limited token and pick another one for the retry."""
        if isinstance(self.credentials, TokenRotator) and self.credentials.token_count > 1:
            self.credentials.mark_rate_limited(token)
            new_token = self.credentials.least_recently_used()
            if new_token != token:
                log.info("github.token_rotated")
            return new_token
        return token

    def _backoff_delay(self, attempt: int) -> float:
        delay = (2 ** attempt) * self.config.standard_retry_base_delay
        return min(delay, self.config.max_retry_delay)

    def _rate_limit_delay(self, attempt: int, retry_after: Optional[int]) -> float:
        if retry_after is not None:
            return min(float(retry_after), self.config.max_retry_delay)
        delay = self.config.rate_limit_base_delay * (attempt + 1)
        return min(delay, self.config.max_retry_delay)

    @staticmethod
    def _retry_after(response: requests.Response) -> Optional[int]:
        """Seconds to wait according to Retry-After or X-RateLimit-Reset."""
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                return max(int(retry_after), 1)
            except ValueError:
                pass
        reset_at = response.headers.get("X-RateLimit-Reset")
        if reset_at is not None:
            try:
                return max(int(reset_at) - int(time.time()) + 1, 1)
            except ValueError:
                pass
        return None

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"GitHub API error: {response.status_code}"
