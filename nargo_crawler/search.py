"""
GitHub code search module.

Runs discovery queries through the code search API with pagination,
keeping one hit per repository.
"""

import time
from typing import Any, Dict, Iterator, List, Optional, Set

import structlog

from models import CodeSearchHit
from nargo_crawler.client import GitHubClient

log = structlog.get_logger("nargo_crawler.search")

# GitHub caps every search at 1000 results
SEARCH_RESULT_CAP = 1000


class GitHubCodeSearch:
    """
    Search code on GitHub via REST API.

    Supports:
    - Pagination up to the 1000-result cap
    - Repository-level de-duplication
    - Pacing between pages
    """

    SEARCH_ENDPOINT = "/search/code"
    PER_PAGE = 100

    def __init__(self, client: GitHubClient, page_delay: float = 0.1):
        """
        Initialize code search.

        Args:
            client: GitHubClient instance
            page_delay: Seconds to wait between pages
        """
        self.client = client
        self.page_delay = page_delay

    def search_code(self, query: str, max_results: int = 100) -> Iterator[CodeSearchHit]:
        """
        Search code with pagination.

        Args:
            query: Code search query (e.g., "filename:Nargo.toml")
            max_results: Maximum number of repositories to return

        Yields:
            CodeSearchHit for each repository not yet seen in this query

        Raises:
            GitHubAPIError: If a page cannot be fetched
        """
        max_results = min(max_results, SEARCH_RESULT_CAP)
        per_page = min(max_results, self.PER_PAGE)
        max_pages = -(-max_results // per_page)
        seen: Set[str] = set()
        yielded = 0
        page = 1

        log.info("search.started", query=query, max_results=max_results)

        while page <= max_pages and yielded < max_results:
            items = self._fetch_search_page(query, page, per_page)

            for item in items:
                hit = self._parse_search_result(item)
                if hit is None:
                    continue
                key = hit.full_name.lower()
                if key in seen:
                    continue
                seen.add(key)
                yield hit
                yielded += 1
                if yielded >= max_results:
                    break

            if len(items) < per_page:
                break  # Last page

            page += 1
            if self.page_delay:
                time.sleep(self.page_delay)  # Be nice to API

        log.info("search.completed", query=query, repositories=yielded)

    def _fetch_search_page(self, query: str, page: int, per_page: int) -> List[Dict[str, Any]]:
        """
        Fetch a single page of code search results.

        Args:
            query: Search query
            page: Page number (1-indexed)
            per_page: Results per page

        Returns:
            List of code result items from GitHub API
        """
        params = {
            "q": query,
            "per_page": per_page,
            "page": page,
        }
        data = self.client.get_json(
            self.SEARCH_ENDPOINT,
            params=params,
            timeout=self.client.config.search_timeout,
        )
        log.debug("search.page", query=query, page=page, items=len(data.get("items", [])))
        return data.get("items", [])

    @staticmethod
    def _parse_search_result(item: Dict[str, Any]) -> Optional[CodeSearchHit]:
        """
        Parse a code search item.

        Args:
            item: Raw item from GitHub API

        Returns:
            CodeSearchHit, or None if the item has no repository
        """
        repository = item.get("repository") or {}
        full_name = repository.get("full_name")
        if not full_name:
            return None
        return CodeSearchHit(
            full_name=full_name,
            path=item.get("path", ""),
            html_url=repository.get("html_url") or f"https://github.com/{full_name}",
            stars=repository.get("stargazers_count") or 0,
            description=repository.get("description"),
        )
