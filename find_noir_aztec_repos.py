"""
Noir/Aztec repository discovery script.

Searches GitHub for Nargo.toml files, classifies every new repository and
writes registry migration commands plus the raw results.

Configuration comes from the environment (see nargo_crawler.config);
GITHUB_TOKEN is required, GITHUB_TOKEN_1..10 are used with
USE_TOKEN_ROTATION=true.
"""

import sys
import time

import structlog

from models import EcosystemLabel
from nargo_crawler.config import CrawlerConfig
from nargo_crawler.credentials import credentials_from_env
from nargo_crawler.errors import MissingCredentialError
from nargo_crawler.log_config import setup_logging
from nargo_crawler.pipeline import DiscoveryPipeline, build_search_queries
from nargo_crawler.storage import OutputStorage, load_tracked_repos

log = structlog.get_logger("nargo_crawler.main")

# Orgs with the most tracked repositories are excluded at query level
EXCLUDED_ORG_COUNT = 10


def main() -> int:
    """Run discovery and write outputs."""
    setup_logging()
    config = CrawlerConfig.from_env()

    try:
        credentials = credentials_from_env(config.use_token_rotation)
    except MissingCredentialError as e:
        log.error("main.no_credentials", error=str(e), hint="export GITHUB_TOKEN=your_token")
        return 1

    tracked_repos = set()
    exclude_orgs = []
    if config.tracked_repos_file:
        tracked_repos, repos_by_org = load_tracked_repos(config.tracked_repos_file)
        exclude_orgs = [org for org, _ in repos_by_org.most_common(EXCLUDED_ORG_COUNT)]

    pipeline = DiscoveryPipeline.from_config(config, credentials, tracked_repos)
    storage = OutputStorage(config.output_dir)
    queries = build_search_queries(exclude_orgs)

    started = time.time()
    results = []
    try:
        for repository in pipeline.discover(queries):
            if storage.save(repository) is not None:
                results.append(repository)
    except KeyboardInterrupt:
        log.warning("main.interrupted", collected=len(results))

    migration_file = storage.write_migration_file(results)
    json_file = storage.write_json(results)

    aztec = sum(1 for r in results if r.label == EcosystemLabel.AZTEC and not r.classification.needs_review)
    noir = sum(1 for r in results if r.label == EcosystemLabel.NOIR and not r.classification.needs_review)
    review = sum(1 for r in results if r.classification.needs_review)

    print()
    print("=" * 80)
    print("Discovery complete")
    print("=" * 80)
    print(f"  Unique repositories seen: {len(pipeline.processed)}")
    print(f"  Aztec Protocol: {aztec}")
    print(f"  Noir Lang: {noir}")
    print(f"  Needs review: {review}")
    print(f"  Elapsed: {time.time() - started:.1f}s")
    print()
    print("Output files:")
    print(f"  - {migration_file}")
    print(f"  - {json_file}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
