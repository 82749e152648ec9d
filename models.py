"""
Data models for the Noir/Aztec repository scout.

Manifest-level values are produced and discarded within one classification;
ClassificationResult is the per-repository output handed to the discovery
pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


MANIFEST_FILENAME = "Nargo.toml"

# Root-name token of the Aztec ecosystem, matched inside dependency names
AZTEC_TOKEN = "aztec"

DEFAULT_PACKAGE_TYPE = "bin"
CONTRACT_TYPE = "contract"
UNKNOWN_TYPE = "unknown"


class EcosystemLabel(str, Enum):
    """Ecosystem a discovered repository is filed under."""
    AZTEC = "aztec"
    NOIR = "noir"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Manifest:
    """Parsed Nargo.toml. package_type defaults to "bin" when absent."""
    package_type: str = DEFAULT_PACKAGE_TYPE
    dependencies: Dict[str, Any] = field(default_factory=dict)
    name: Optional[str] = None


@dataclass(frozen=True)
class ManifestAnalysis:
    """Verdict for a single manifest."""
    is_aztec: bool
    declared_type: str
    indicators: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class LocatorResult:
    """Outcome of searching a repository for manifest paths."""
    candidate_paths: List[str] = field(default_factory=list)
    search_failed: bool = False
    failure_reason: Optional[str] = None

    def __post_init__(self):
        """failure_reason is present exactly when the search failed."""
        if self.search_failed != (self.failure_reason is not None):
            raise ValueError("failure_reason must be set if and only if search_failed is True")

    @classmethod
    def found(cls, paths: List[str]) -> "LocatorResult":
        return cls(candidate_paths=list(paths))

    @classmethod
    def failed(cls, reason: str) -> "LocatorResult":
        return cls(candidate_paths=[], search_failed=True, failure_reason=reason)


@dataclass
class ApiFailure:
    """Diagnosis attached to a classification made while search was degraded."""
    search_failed: bool
    all_fallback_fetches_failed: bool
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "search_failed": self.search_failed,
            "all_fallback_fetches_failed": self.all_fallback_fetches_failed,
            "reason": self.reason,
        }


@dataclass
class ClassificationResult:
    """Repository-level classification."""
    is_aztec: bool = False
    primary_type: str = UNKNOWN_TYPE
    manifests_examined: int = 0
    aztec_indicators: List[str] = field(default_factory=list)
    manifest_paths: List[str] = field(default_factory=list)
    api_failure: Optional[ApiFailure] = None
    malformed_paths: List[str] = field(default_factory=list)
    transient_failures: Dict[str, str] = field(default_factory=dict)  # path -> category

    @property
    def needs_review(self) -> bool:
        """Classification made under a degraded search; don't trust it blindly."""
        return self.api_failure is not None

    @property
    def label(self) -> EcosystemLabel:
        if self.is_aztec:
            return EcosystemLabel.AZTEC
        if self.manifests_examined > 0:
            return EcosystemLabel.NOIR
        return EcosystemLabel.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "is_aztec": self.is_aztec,
            "primary_type": self.primary_type,
            "manifests_examined": self.manifests_examined,
            "aztec_indicators": list(self.aztec_indicators),
            "manifest_paths": list(self.manifest_paths),
            "api_failure": self.api_failure.to_dict() if self.api_failure else None,
            "malformed_paths": list(self.malformed_paths),
            "transient_failures": dict(self.transient_failures),
        }


@dataclass(frozen=True)
class CodeSearchHit:
    """One repository surfaced by a code search query."""
    full_name: str  # e.g., "AztecProtocol/aztec-packages"
    path: str
    html_url: str
    stars: int = 0
    description: Optional[str] = None

    @property
    def owner(self) -> str:
        """Extract owner from full_name."""
        return self.full_name.split("/")[0]

    @property
    def repo_name(self) -> str:
        """Extract repo name from full_name."""
        return self.full_name.split("/")[1]


@dataclass
class DiscoveredRepository:
    """A classified repository produced by the discovery pipeline."""
    full_name: str
    url: str
    stars: int
    description: Optional[str]
    classification: ClassificationResult
    query: str = ""
    query_label: Optional[EcosystemLabel] = None  # set for npm package hits, which have no manifest

    @property
    def label(self) -> EcosystemLabel:
        if self.query_label is not None:
            return self.query_label
        return self.classification.label

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "full_name": self.full_name,
            "url": self.url,
            "stars": self.stars,
            "description": self.description,
            "label": self.label.value,
            "label_source": "query" if self.query_label is not None else "manifest",
            "query": self.query,
            "classification": self.classification.to_dict(),
        }
