"""
Discovery pipeline orchestrator.

Runs code search queries, skips repositories that are already tracked or
already seen, and classifies the rest:

Query -> CodeSearchHit -> ClassificationResult -> DiscoveredRepository
"""

import time
from typing import Iterator, List, Optional, Sequence, Set

import structlog

from models import ClassificationResult, CodeSearchHit, DiscoveredRepository, EcosystemLabel
from nargo_crawler.client import GitHubClient
from nargo_crawler.config import CrawlerConfig
from nargo_crawler.credentials import CredentialSupplier
from nargo_crawler.errors import CrawlerError, MissingCredentialError
from nargo_crawler.inspector import ManifestFetcher
from nargo_crawler.locator import ManifestLocator
from nargo_crawler.rate_limiter import RateLimiter
from nargo_crawler.search import GitHubCodeSearch
from nargo_crawler.storage import normalize_repo_url
from repository_classifier import RepositoryClassifier

log = structlog.get_logger("nargo_crawler.pipeline")

# Code search rejects queries much longer than this
MAX_QUERY_LENGTH = 200

BASE_QUERIES = [
    # Recent activity (avoids old tracked repos)
    "filename:Nargo.toml pushed:>2024-09-01",
    "filename:Nargo.toml pushed:2024-06-01..2024-09-01",
    "filename:Nargo.toml created:>2024-06-01",
    "filename:Nargo.toml created:2024-01-01..2024-06-01",
    # npm packages (recent adoption)
    'filename:package.json "@aztec" created:>2024-01-01',
    'filename:package.json "@noir-lang" created:>2024-01-01',
    'filename:package.json "@aztec/aztec.js"',
    'filename:package.json "@noir-lang/noir_js"',
    # Aztec contract code
    '"aztec::context::Context" language:rust',
    '"use aztec::prelude"',
    '"#[aztec(private)]"',
    '"from aztec.context import Context"',
    # Catch remaining
    "filename:Nargo.toml",
    '"Nargo.toml" aztec',
    '"Nargo.toml" noir',
]


def label_from_query(query: str) -> Optional[EcosystemLabel]:
    """
    Label npm package hits from the query that found them.

    A package.json hit has no Nargo.toml to classify, so the package scope
    in the query decides: "@aztec" is Aztec, "@noir-lang" is Noir.

    Returns:
        EcosystemLabel for npm queries, None for queries whose hits need
        manifest classification
    """
    if "package.json" not in query and "@aztec" not in query and "@noir-lang" not in query:
        return None
    if "@aztec" in query or "aztec::" in query or "#[aztec" in query:
        return EcosystemLabel.AZTEC
    if "@noir-lang" in query:
        return EcosystemLabel.NOIR
    return EcosystemLabel.UNKNOWN


def build_search_queries(
    exclude_orgs: Sequence[str] = (),
    base_queries: Sequence[str] = BASE_QUERIES,
) -> List[str]:
    """
    Build search queries that exclude the most-tracked organizations.

    Orgs are added in order for as long as the longest base query stays
    under the code search length limit.

    Args:
        exclude_orgs: Organizations, most tracked first
        base_queries: Queries to extend

    Returns:
        Queries with "-org:X -user:X" exclusions appended
    """
    longest = max((len(q) for q in base_queries), default=0)
    exclusions: List[str] = []
    length = longest
    for org in exclude_orgs:
        exclusion = f" -org:{org} -user:{org}"
        if length + len(exclusion) >= MAX_QUERY_LENGTH:
            break
        exclusions.append(exclusion)
        length += len(exclusion)

    if exclusions:
        log.info("pipeline.excluding_orgs", orgs=[e.split(":")[1].split(" ")[0] for e in exclusions])
    suffix = "".join(exclusions)
    return [f"{query}{suffix}" for query in base_queries]


class DiscoveryPipeline:
    """
    Main discovery orchestrator.

    Repositories are classified one at a time with a pause in between;
    a failing query is logged and the next one runs.
    """

    def __init__(
        self,
        config: CrawlerConfig,
        search: GitHubCodeSearch,
        classifier: RepositoryClassifier,
        tracked_repos: Optional[Set[str]] = None,
    ):
        """
        Initialize discovery pipeline.

        Args:
            config: CrawlerConfig with settings
            search: Code search used to enumerate candidates
            classifier: RepositoryClassifier for each candidate
            tracked_repos: Normalized "owner/repo" names to skip
        """
        self.config = config
        self.search = search
        self.classifier = classifier
        self.tracked_repos = set(tracked_repos or ())
        self.processed: Set[str] = set()

    @classmethod
    def from_config(
        cls,
        config: CrawlerConfig,
        credentials: CredentialSupplier,
        tracked_repos: Optional[Set[str]] = None,
    ) -> "DiscoveryPipeline":
        """Wire up the client, search and classifier sharing one rate limiter."""
        shared_rate_limiter = RateLimiter(buffer=config.rate_limit_buffer)
        client = GitHubClient(credentials=credentials, config=config, rate_limiter=shared_rate_limiter)
        classifier = RepositoryClassifier(
            locator=ManifestLocator(client),
            fetcher=ManifestFetcher(client),
            pacing_delay=config.fetch_pacing_delay,
        )
        return cls(config, GitHubCodeSearch(client), classifier, tracked_repos)

    def discover(self, queries: Sequence[str]) -> Iterator[DiscoveredRepository]:
        """
        Run every query and classify each new repository.

        Args:
            queries: Code search queries

        Yields:
            DiscoveredRepository for each classified repository
        """
        for index, query in enumerate(queries):
            log.info(
                "pipeline.query_started",
                query=query,
                processed=len(self.processed),
            )
            found = 0
            try:
                for hit in self.search.search_code(query, max_results=self.config.max_results_per_query):
                    repository = self.process_hit(hit, query)
                    if repository is None:
                        continue
                    if repository.label != EcosystemLabel.UNKNOWN or repository.classification.needs_review:
                        found += 1
                    yield repository
            except MissingCredentialError:
                raise
            except CrawlerError as e:
                log.error("pipeline.query_failed", query=query, error=str(e))

            log.info("pipeline.query_completed", query=query, classified=found)

            if index < len(queries) - 1 and self.config.search_query_delay:
                time.sleep(self.config.search_query_delay)

    def process_hit(self, hit: CodeSearchHit, query: str = "") -> Optional[DiscoveredRepository]:
        """
        Classify a single search hit unless it is tracked or already seen.

        Hits from npm package queries are labelled from the query instead.

        Returns:
            DiscoveredRepository, or None if skipped
        """
        key = normalize_repo_url(hit.full_name)
        if key in self.processed:
            return None
        self.processed.add(key)

        if key in self.tracked_repos:
            log.debug("pipeline.tracked_skipped", repository=hit.full_name)
            return None

        query_label = label_from_query(query)
        if query_label is not None:
            log.debug("pipeline.labelled_from_query", repository=hit.full_name, label=query_label.value)
            classification = ClassificationResult()
        else:
            classification = self.classifier.classify(hit.owner, hit.repo_name)
            if self.config.repo_processing_delay:
                time.sleep(self.config.repo_processing_delay)

        return DiscoveredRepository(
            full_name=hit.full_name,
            url=f"https://github.com/{hit.full_name}",
            stars=hit.stars,
            description=hit.description,
            classification=classification,
            query=query,
            query_label=query_label,
        )
