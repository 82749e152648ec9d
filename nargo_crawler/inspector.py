"""
Manifest fetcher.

Fetches a single Nargo.toml from a repository's default branch through the
contents API and parses it, without cloning.
"""

import base64
import binascii
import sys
from typing import Any, Dict, Optional
from urllib.parse import quote

import structlog

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from models import DEFAULT_PACKAGE_TYPE, Manifest
from nargo_crawler.client import GitHubClient
from nargo_crawler.errors import (
    AbsentResource,
    FailureCategory,
    GitHubAPIError,
    MalformedManifestError,
    TransientFetchError,
)

log = structlog.get_logger("nargo_crawler.fetcher")


def parse_manifest(content: str, path: str = "Nargo.toml") -> Manifest:
    """
    Parse Nargo.toml text.

    Files with neither a [package] type nor a [dependencies] table are
    valid; missing fields take their defaults.

    Args:
        content: Manifest text
        path: Repository path, used in error messages

    Returns:
        Manifest

    Raises:
        MalformedManifestError: If the text is not valid TOML
    """
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise MalformedManifestError(path, str(e))

    package = data.get("package")
    if not isinstance(package, dict):
        package = {}

    package_type = package.get("type")
    if not isinstance(package_type, str) or not package_type:
        package_type = DEFAULT_PACKAGE_TYPE

    name = package.get("name")
    dependencies = data.get("dependencies")
    if not isinstance(dependencies, dict):
        dependencies = {}

    return Manifest(
        package_type=package_type,
        dependencies=dict(dependencies),
        name=name if isinstance(name, str) else None,
    )


def decode_content(payload: Dict[str, Any], path: str) -> str:
    """Decode the base64 body of a contents API file entry."""
    content = payload.get("content")
    if content is None:
        raise MalformedManifestError(path, "contents response has no content")
    if payload.get("encoding", "base64") != "base64":
        raise MalformedManifestError(path, f"unsupported encoding {payload.get('encoding')!r}")
    try:
        return base64.b64decode(content).decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise MalformedManifestError(path, f"cannot decode content: {e}")


class ManifestFetcher:
    """
    Fetch and parse one manifest at an exact path.

    Outcomes:
    - Manifest when the file exists and parses
    - None when no file is there (404, or a directory, submodule or symlink)
    - TransientFetchError / GitHubAPIError for transport failures
    - MalformedManifestError when the file exists but does not parse

    One request per call; retries belong to the client.
    """

    def __init__(self, client: GitHubClient):
        """
        Initialize manifest fetcher.

        Args:
            client: GitHubClient used for the contents API
        """
        self.client = client

    def fetch(
        self,
        owner: str,
        repo: str,
        path: str,
        credential: Optional[str] = None,
    ) -> Optional[Manifest]:
        """
        Fetch the manifest at *path* on the default branch.

        Args:
            owner: Repository owner
            repo: Repository name
            path: Repository-relative file path
            credential: Token for this call (optional)

        Returns:
            Manifest, or None if the path holds no file
        """
        api_path = f"/repos/{owner}/{repo}/contents/{quote(path)}"

        try:
            payload = self.client.get_json(api_path, credential=credential)
        except AbsentResource:
            log.debug("fetcher.absent", owner=owner, repo=repo, path=path)
            return None
        except TransientFetchError as e:
            if e.category == FailureCategory.RATE_LIMITED:
                log.error("fetcher.rate_limited", owner=owner, repo=repo, path=path, status=e.status_code)
            elif e.category == FailureCategory.TIMEOUT:
                log.error("fetcher.timeout", owner=owner, repo=repo, path=path)
            else:
                log.error("fetcher.unauthenticated", owner=owner, repo=repo, path=path)
            raise
        except GitHubAPIError as e:
            log.warning("fetcher.failed", owner=owner, repo=repo, path=path, status=e.status_code, error=str(e))
            raise

        # A directory listing comes back as a list; submodules and symlinks carry no content
        if isinstance(payload, list) or payload.get("type", "file") != "file":
            entry_type = "dir" if isinstance(payload, list) else payload.get("type")
            log.debug("fetcher.not_a_file", owner=owner, repo=repo, path=path, type=entry_type)
            return None

        try:
            return parse_manifest(decode_content(payload, path), path)
        except MalformedManifestError as e:
            log.warning("fetcher.malformed_manifest", owner=owner, repo=repo, path=path, reason=e.reason)
            raise
