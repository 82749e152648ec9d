"""
Crawler configuration.

Timeouts, retry policy and pacing delays. Values can be overridden from
environment variables; durations in the environment are milliseconds.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    """Parse an integer environment variable, falling back to *default*."""
    raw = env.get(name)
    if not raw:
        return default
    try:
        return int(raw, 10)
    except ValueError:
        return default


def _env_seconds(env: Mapping[str, str], name: str, default: float) -> float:
    """Read a millisecond environment variable as seconds."""
    return _env_int(env, name, int(round(default * 1000))) / 1000


@dataclass
class CrawlerConfig:
    """Configuration for the crawler."""
    http_request_timeout: float = 30.0
    search_timeout: float = 60.0
    max_retries: int = 5
    rate_limit_base_delay: float = 10.0
    max_retry_delay: float = 90.0
    standard_retry_base_delay: float = 1.0
    repo_processing_delay: float = 0.1
    search_query_delay: float = 2.0
    fetch_pacing_delay: float = 0.05
    use_token_rotation: bool = False
    output_dir: str = "output"
    tracked_repos_file: Optional[str] = None
    max_results_per_query: int = 1000
    rate_limit_buffer: int = 100

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "CrawlerConfig":
        """
        Build a config from environment variables.

        Args:
            env: Mapping to read from (defaults to os.environ)

        Returns:
            CrawlerConfig with overrides applied
        """
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            http_request_timeout=_env_seconds(env, "HTTP_REQUEST_TIMEOUT", defaults.http_request_timeout),
            search_timeout=_env_seconds(env, "SEARCH_TIMEOUT", defaults.search_timeout),
            max_retries=_env_int(env, "MAX_RETRIES", defaults.max_retries),
            rate_limit_base_delay=_env_seconds(env, "RATE_LIMIT_BASE_DELAY", defaults.rate_limit_base_delay),
            max_retry_delay=_env_seconds(env, "MAX_RETRY_DELAY", defaults.max_retry_delay),
            standard_retry_base_delay=_env_seconds(
                env, "STANDARD_RETRY_BASE_DELAY", defaults.standard_retry_base_delay
            ),
            repo_processing_delay=_env_seconds(env, "REPO_PROCESSING_DELAY", defaults.repo_processing_delay),
            search_query_delay=_env_seconds(env, "SEARCH_QUERY_DELAY", defaults.search_query_delay),
            fetch_pacing_delay=_env_seconds(env, "FETCH_PACING_DELAY", defaults.fetch_pacing_delay),
            use_token_rotation=env.get("USE_TOKEN_ROTATION", "").lower() == "true",
            output_dir=env.get("OUTPUT_DIR") or defaults.output_dir,
            tracked_repos_file=env.get("TRACKED_REPOS_FILE") or None,
            max_results_per_query=_env_int(env, "MAX_RESULTS_PER_QUERY", defaults.max_results_per_query),
            rate_limit_buffer=_env_int(env, "RATE_LIMIT_BUFFER", defaults.rate_limit_buffer),
        )
