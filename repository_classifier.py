"""
RepositoryClassifier - decides whether a repository is Aztec or plain Noir.

Locates every Nargo.toml in a repository (code search, or the fallback
path list when search fails or finds nothing), analyzes each one and
folds the verdicts into one ClassificationResult:

- Aztec if ANY manifest indicates Aztec (monotonic OR)
- "contract" wins as primary type whenever it is seen
- "unknown" type when no manifest was examined
- api_failure set whenever the search itself failed
"""

import time
from typing import Optional, Sequence

import structlog

from manifest_analyzer import analyze_manifest
from models import (
    CONTRACT_TYPE,
    DEFAULT_PACKAGE_TYPE,
    UNKNOWN_TYPE,
    ApiFailure,
    ClassificationResult,
)
from nargo_crawler.errors import GitHubAPIError, MalformedManifestError, TransientFetchError
from nargo_crawler.fallback_paths import FALLBACK_MANIFEST_PATHS
from nargo_crawler.inspector import ManifestFetcher
from nargo_crawler.locator import ManifestLocator

log = structlog.get_logger("nargo_crawler.classifier")


class RepositoryClassifier:
    """
    Classify repositories from their Nargo.toml manifests.

    Holds no per-call state, so one instance can classify different
    repositories from several threads.
    """

    def __init__(
        self,
        locator: ManifestLocator,
        fetcher: ManifestFetcher,
        fallback_paths: Sequence[str] = FALLBACK_MANIFEST_PATHS,
        pacing_delay: float = 0.05,
    ):
        """
        Initialize classifier.

        Args:
            locator: Finds manifest paths via code search
            fetcher: Fetches and parses one manifest
            fallback_paths: Paths tried when search fails or finds nothing
            pacing_delay: Seconds between consecutive manifest fetches
        """
        self.locator = locator
        self.fetcher = fetcher
        self.fallback_paths = tuple(fallback_paths)
        self.pacing_delay = pacing_delay

    def classify(self, owner: str, repo: str, credential: Optional[str] = None) -> ClassificationResult:
        """
        Classify one repository.

        Never raises for absent, malformed or unreachable manifests; those
        paths simply yield nothing. Only a missing credential propagates.

        Args:
            owner: Repository owner
            repo: Repository name
            credential: Token for every request of this call (optional)

        Returns:
            ClassificationResult
        """
        result = ClassificationResult()

        # Step 1: Locate manifests
        located = self.locator.locate(owner, repo, credential=credential)

        # Step 2: Precise paths, or the fallback list
        using_fallback = located.search_failed or not located.candidate_paths
        if using_fallback:
            paths = self.fallback_paths
            if located.search_failed:
                log.info(
                    "classifier.search_failed_using_fallback",
                    owner=owner,
                    repo=repo,
                    reason=located.failure_reason,
                )
            else:
                log.debug("classifier.no_search_hits_using_fallback", owner=owner, repo=repo)
        else:
            paths = tuple(located.candidate_paths)
            log.info("classifier.manifests_located", owner=owner, repo=repo, count=len(paths))

        # Step 3: Fetch and analyze each path
        fallback_fetch_failures = 0
        for i, path in enumerate(paths):
            manifest = None
            try:
                manifest = self.fetcher.fetch(owner, repo, path, credential=credential)
            except MalformedManifestError:
                result.malformed_paths.append(path)
            except TransientFetchError as e:
                result.transient_failures[path] = e.category.value
            except GitHubAPIError as e:
                result.transient_failures[path] = str(e)

            if manifest is not None:
                analysis = analyze_manifest(manifest)
                result.manifests_examined += 1
                result.manifest_paths.append(path)

                log.debug(
                    "classifier.manifest_analyzed",
                    owner=owner,
                    repo=repo,
                    path=path,
                    is_aztec=analysis.is_aztec,
                    type=analysis.declared_type,
                    indicators=analysis.indicators,
                )

                if analysis.is_aztec:
                    result.is_aztec = True
                    result.aztec_indicators.append(f"{path}: {', '.join(analysis.indicators)}")
                    if analysis.declared_type == CONTRACT_TYPE or result.primary_type != CONTRACT_TYPE:
                        result.primary_type = analysis.declared_type
                elif not result.is_aztec and result.primary_type == UNKNOWN_TYPE:
                    result.primary_type = analysis.declared_type
            elif using_fallback:
                fallback_fetch_failures += 1

            if self.pacing_delay and i < len(paths) - 1:
                time.sleep(self.pacing_delay)

        # Step 4: Diagnose a degraded search
        if located.search_failed:
            result.api_failure = ApiFailure(
                search_failed=True,
                all_fallback_fetches_failed=bool(paths) and fallback_fetch_failures == len(paths),
                reason=located.failure_reason,
            )
            if result.api_failure.all_fallback_fetches_failed:
                log.warning(
                    "classifier.all_fallback_fetches_failed",
                    owner=owner,
                    repo=repo,
                    attempts=len(paths),
                )

        # Step 5: Found manifests but no type yet means a plain Noir binary
        if not result.is_aztec and result.manifests_examined > 0 and result.primary_type == UNKNOWN_TYPE:
            result.primary_type = DEFAULT_PACKAGE_TYPE

        log.info(
            "classifier.classified",
            owner=owner,
            repo=repo,
            ecosystem="AZTEC" if result.is_aztec else "NOIR",
            type=result.primary_type,
            manifests_examined=result.manifests_examined,
            paths_checked=len(paths),
            api_issues=result.api_failure.to_dict() if result.api_failure else None,
        )
        return result
