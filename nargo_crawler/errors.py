"""
Error taxonomy for the GitHub transport and the manifest pipeline.

Raw HTTP status codes are translated into these types at the transport
boundary; nothing above the transport inspects a response directly.
"""

from enum import Enum
from typing import Optional


class FailureCategory(str, Enum):
    """Retryable failure categories reported by the transport."""
    RATE_LIMITED = "rate-limited"
    UNAUTHENTICATED = "unauthenticated"
    TIMEOUT = "timeout"


# Locator failure reasons, keyed by transport category
SEARCH_FAILURE_REASONS = {
    FailureCategory.RATE_LIMITED: "rate-limit-exceeded",
    FailureCategory.TIMEOUT: "request-timeout",
    FailureCategory.UNAUTHENTICATED: "authentication-failed",
}


class CrawlerError(Exception):
    """Base class for all crawler errors."""


class MissingCredentialError(CrawlerError):
    """No GitHub credential is available for a request."""


class AbsentResource(CrawlerError):
    """The requested path does not exist (or is not a file)."""

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"resource not found: {resource}")


class GitHubAPIError(CrawlerError):
    """GitHub returned an error that fits no narrower category."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class TransientFetchError(GitHubAPIError):
    """Rate-limited, unauthenticated or timed-out request."""

    def __init__(
        self,
        category: FailureCategory,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        retry_after: Optional[int] = None,
    ):
        self.category = category
        self.retry_after = retry_after
        super().__init__(message or category.value, status_code=status_code)


class MalformedManifestError(CrawlerError):
    """A manifest was retrieved but could not be decoded or parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"malformed manifest at {path}: {reason}")
