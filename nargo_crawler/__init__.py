"""
GitHub crawler for Noir and Aztec repositories.

This package provides:
- A GitHub REST transport that categorizes failures
- Manifest location (code search) and fetching (contents API)
- Credential rotation and rate-limit tracking
- Discovery search, the discovery pipeline and output storage
"""

from nargo_crawler.client import GitHubClient
from nargo_crawler.config import CrawlerConfig
from nargo_crawler.credentials import StaticCredential, TokenRotator
from nargo_crawler.inspector import ManifestFetcher
from nargo_crawler.locator import ManifestLocator
from nargo_crawler.rate_limiter import RateLimiter
from nargo_crawler.search import GitHubCodeSearch

__all__ = [
    "CrawlerConfig",
    "GitHubClient",
    "GitHubCodeSearch",
    "ManifestFetcher",
    "ManifestLocator",
    "RateLimiter",
    "StaticCredential",
    "TokenRotator",
]
