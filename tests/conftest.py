"""Shared fixtures and fakes for crawler tests (no network)."""

import base64
from typing import Any, Dict, List, Optional, Union
from unittest.mock import MagicMock

import pytest

from models import LocatorResult, Manifest
from nargo_crawler.client import GitHubClient
from nargo_crawler.config import CrawlerConfig
from nargo_crawler.credentials import StaticCredential


def make_response(status: int = 200, body: Any = None, headers: Optional[Dict[str, str]] = None):
    """Build a stand-in for requests.Response."""
    response = MagicMock()
    response.status_code = status
    response.headers = dict(headers or {})
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


def file_payload(text: str, path: str = "Nargo.toml") -> Dict[str, Any]:
    """Contents API body for a file."""
    return {
        "type": "file",
        "path": path,
        "encoding": "base64",
        "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
    }


class FakeLocator:
    """Locator returning a canned result."""

    def __init__(self, result: LocatorResult):
        self.result = result
        self.calls: List[tuple] = []

    def locate(self, owner, repo, credential=None):
        self.calls.append((owner, repo, credential))
        return self.result


class FakeFetcher:
    """Fetcher answering from a path -> Manifest / exception map; other paths are absent."""

    def __init__(self, responses: Optional[Dict[str, Union[Manifest, Exception]]] = None):
        self.responses = dict(responses or {})
        self.calls: List[str] = []

    def fetch(self, owner, repo, path, credential=None):
        self.calls.append(path)
        outcome = self.responses.get(path)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def config():
    return CrawlerConfig(
        max_retries=0,
        fetch_pacing_delay=0,
        repo_processing_delay=0,
        search_query_delay=0,
    )


@pytest.fixture
def session():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def client(config, session):
    return GitHubClient(credentials=StaticCredential("test-token"), config=config, session=session)
