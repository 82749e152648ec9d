"""
GitHub credential suppliers.

The transport asks a supplier for a token on every request, so rotation
policy stays out of the classification code.
"""

import os
import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Protocol, Sequence

import structlog

from nargo_crawler.errors import MissingCredentialError

log = structlog.get_logger("nargo_crawler.credentials")

MAX_NUMBERED_TOKENS = 10
RATE_LIMIT_PARK_SECONDS = 60 * 60


class CredentialSupplier(Protocol):
    """Anything that can hand out a GitHub token."""

    def next_credential(self) -> str:
        ...


class StaticCredential:
    """Supplies the same token on every call."""

    def __init__(self, token: str):
        if not token:
            raise MissingCredentialError("GitHub token is empty")
        self._token = token

    def next_credential(self) -> str:
        return self._token


@dataclass
class TokenUsage:
    """Per-token usage counters."""
    count: int = 0
    last_used: float = 0.0


class TokenRotator:
    """
    Round-robin rotation over several GitHub tokens.

    Safe to share between threads. A token reported as rate limited is
    parked (its last-used time is pushed into the future) so that
    least_recently_used() avoids it for an hour.
    """

    def __init__(self, tokens: Sequence[str]):
        """
        Initialize rotator.

        Args:
            tokens: GitHub tokens; duplicates and empty values are dropped
        """
        unique: List[str] = []
        for token in tokens:
            if token and token not in unique:
                unique.append(token)
        if not unique:
            raise MissingCredentialError("No GitHub tokens found")

        self._tokens = unique
        self._index = 0
        self._usage: Dict[str, TokenUsage] = {token: TokenUsage() for token in unique}
        self._lock = threading.Lock()
        log.info("credentials.rotator_initialized", token_count=len(unique))

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "TokenRotator":
        """Load GITHUB_TOKEN plus GITHUB_TOKEN_1 .. GITHUB_TOKEN_10."""
        env = os.environ if env is None else env
        tokens = [env.get("GITHUB_TOKEN", "")]
        for i in range(1, MAX_NUMBERED_TOKENS + 1):
            tokens.append(env.get(f"GITHUB_TOKEN_{i}", ""))
        return cls(tokens)

    @property
    def token_count(self) -> int:
        return len(self._tokens)

    def next_credential(self) -> str:
        """Get the next token in rotation."""
        with self._lock:
            token = self._tokens[self._index]
            self._index = (self._index + 1) % len(self._tokens)
            self._touch(token)
            return token

    def least_recently_used(self) -> str:
        """Get the token that has been idle longest."""
        with self._lock:
            token = min(self._tokens, key=lambda t: self._usage[t].last_used)
            self._touch(token)
            return token

    def mark_rate_limited(self, token: str) -> None:
        """Avoid *token* for an hour."""
        with self._lock:
            usage = self._usage.get(token)
            if usage is None:
                return
            usage.last_used = time.time() + RATE_LIMIT_PARK_SECONDS
        log.warning("credentials.token_rate_limited", token_index=self._tokens.index(token) + 1)

    def usage_stats(self) -> List[Dict[str, float]]:
        """Usage counters in token order (tokens themselves are not exposed)."""
        with self._lock:
            return [
                {
                    "index": i + 1,
                    "count": self._usage[token].count,
                    "last_used": self._usage[token].last_used,
                }
                for i, token in enumerate(self._tokens)
            ]

    def _touch(self, token: str) -> None:
        usage = self._usage[token]
        usage.count += 1
        usage.last_used = max(usage.last_used, time.time())


def credentials_from_env(
    use_rotation: bool = False,
    env: Optional[Mapping[str, str]] = None,
) -> CredentialSupplier:
    """
    Build the credential supplier configured in the environment.

    Args:
        use_rotation: Rotate over GITHUB_TOKEN and GITHUB_TOKEN_<n>
        env: Mapping to read from (defaults to os.environ)

    Returns:
        TokenRotator or StaticCredential

    Raises:
        MissingCredentialError: If no token is configured
    """
    env = os.environ if env is None else env
    if use_rotation:
        return TokenRotator.from_env(env)
    return StaticCredential(env.get("GITHUB_TOKEN", ""))
