"""
Manifest locator.

Asks GitHub code search for every Nargo.toml in one repository. A failed
search is reported in the result, never raised, so the classifier can
switch to the fallback paths.
"""

from typing import List, Optional

import structlog

from models import MANIFEST_FILENAME, LocatorResult
from nargo_crawler.client import GitHubClient
from nargo_crawler.errors import (
    SEARCH_FAILURE_REASONS,
    AbsentResource,
    FailureCategory,
    GitHubAPIError,
    TransientFetchError,
)

log = structlog.get_logger("nargo_crawler.locator")

SEARCH_ENDPOINT = "/search/code"


class ManifestLocator:
    """Locate manifest paths in a repository via code search."""

    def __init__(self, client: GitHubClient, filename: str = MANIFEST_FILENAME):
        """
        Initialize manifest locator.

        Args:
            client: GitHubClient used for code search
            filename: Manifest filename to search for
        """
        self.client = client
        self.filename = filename

    def locate(self, owner: str, repo: str, credential: Optional[str] = None) -> LocatorResult:
        """
        Search one repository for manifest files.

        Args:
            owner: Repository owner
            repo: Repository name
            credential: Token for this call (optional)

        Returns:
            LocatorResult; an empty path list with search_failed=False
            means the search worked and found nothing
        """
        params = {
            "q": f"filename:{self.filename} repo:{owner}/{repo}",
            "per_page": 100,
        }

        try:
            data = self.client.get_json(
                SEARCH_ENDPOINT,
                params=params,
                credential=credential,
                timeout=self.client.config.search_timeout,
            )
        except TransientFetchError as e:
            reason = SEARCH_FAILURE_REASONS[e.category]
            if e.category == FailureCategory.RATE_LIMITED:
                log.error("locator.rate_limited", owner=owner, repo=repo, status=e.status_code)
            elif e.category == FailureCategory.TIMEOUT:
                log.error("locator.timeout", owner=owner, repo=repo)
            else:
                log.error("locator.authentication_failed", owner=owner, repo=repo)
            return LocatorResult.failed(reason)
        except (GitHubAPIError, AbsentResource) as e:
            log.warning(
                "locator.search_failed",
                owner=owner,
                repo=repo,
                error=str(e),
                hint="will try common paths",
            )
            return LocatorResult.failed(str(e) or "search-api-error")

        paths = self._extract_paths(data)
        log.debug("locator.found", owner=owner, repo=repo, count=len(paths), paths=paths)
        return LocatorResult.found(paths)

    @staticmethod
    def _extract_paths(data) -> List[str]:
        """Paths from search items, de-duplicated in result order."""
        items = data.get("items") if isinstance(data, dict) else None
        paths: List[str] = []
        for item in items or []:
            path = item.get("path") if isinstance(item, dict) else None
            if path and path not in paths:
                paths.append(path)
        return paths
