"""
Output storage for discovery results.

Saves classified repositories to JSONL files, writes registry migration
commands and a JSON dump, and reads the registry's export of already
tracked repositories.
"""

import json
import re
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

import structlog

from models import DiscoveredRepository, EcosystemLabel

log = structlog.get_logger("nargo_crawler.storage")

AZTEC_ECOSYSTEM = "Aztec Protocol"
NOIR_ECOSYSTEM = "Noir Lang"
MIGRATION_TAGS = "#aztec #noir #zk-circuit #zkp"

_REPO_PATH_RE = re.compile(r"github\.com/([^/]+/[^/]+)")


def normalize_repo_url(url: str) -> str:
    """Reduce a GitHub URL (or owner/repo) to lowercase "owner/repo"."""
    normalized = url.strip().lower()
    normalized = re.sub(r"\.git$", "", normalized).rstrip("/")
    match = _REPO_PATH_RE.search(normalized)
    if match:
        return match.group(1)
    return normalized


def load_tracked_repos(file_path: str) -> Tuple[Set[str], Counter]:
    """
    Load repositories already tracked by the registry.

    Args:
        file_path: JSONL export, one {"url": ...} object per line

    Returns:
        (set of normalized "owner/repo", Counter of repos per org)
    """
    tracked: Set[str] = set()
    repos_by_org: Counter = Counter()

    with open(file_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                log.warning("storage.tracked_line_invalid", line=line[:120])
                continue
            url = entry.get("url") if isinstance(entry, dict) else None
            if not url:
                continue
            repo = normalize_repo_url(url)
            if repo in tracked:
                continue
            tracked.add(repo)
            repos_by_org[repo.split("/")[0]] += 1

    log.info("storage.tracked_loaded", repositories=len(tracked), orgs=len(repos_by_org))
    return tracked, repos_by_org


class OutputStorage:
    """
    Stores discovery results.

    Creates separate files for:
    - aztec_repos.jsonl
    - noir_repos.jsonl
    - review_queue.jsonl (classified while the search API was failing)
    """

    def __init__(self, output_dir: str = "output", check_duplicates: bool = True):
        """
        Initialize output storage.

        Args:
            output_dir: Directory to save output files
            check_duplicates: Skip repositories already saved
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.aztec_file = self.output_dir / "aztec_repos.jsonl"
        self.noir_file = self.output_dir / "noir_repos.jsonl"
        self.review_file = self.output_dir / "review_queue.jsonl"

        self.check_duplicates = check_duplicates
        self._saved: Set[Tuple[str, str]] = set()

        if check_duplicates:
            self._load_existing_repos()

    def save(self, repository: DiscoveredRepository) -> Optional[Path]:
        """
        Save a repository to the file matching its label.

        Results carrying an API failure go to the review queue instead of
        being trusted. Unknown results without a failure are dropped.

        Returns:
            Path written to, or None if nothing was written
        """
        target = self._target_for(repository)
        if target is None:
            return None

        key = (target.name, repository.full_name.lower())
        if self.check_duplicates and key in self._saved:
            log.debug("storage.duplicate_skipped", repository=repository.full_name)
            return None

        with open(target, "a", encoding="utf-8") as f:
            json.dump(repository.to_dict(), f, ensure_ascii=False)
            f.write("\n")
        self._saved.add(key)
        return target

    def write_migration_file(
        self,
        repositories: Iterable[DiscoveredRepository],
        filename: Optional[str] = None,
    ) -> Path:
        """
        Write registry migration commands.

        Aztec and Noir repositories get repadd lines under their ecosystem;
        repositories that need manual review are listed as comments.

        Returns:
            Path of the migration file
        """
        repositories = list(repositories)
        generated_at = datetime.now(timezone.utc)
        filename = filename or f"migration-{generated_at.strftime('%Y%m%dT%H%M%SZ')}.txt"
        path = self.output_dir / filename

        path.write_text(render_migration(repositories, generated_at), encoding="utf-8")
        log.info("storage.migration_written", path=str(path), repositories=len(repositories))
        return path

    def write_json(
        self,
        repositories: Iterable[DiscoveredRepository],
        filename: Optional[str] = None,
    ) -> Path:
        """Dump every result to a JSON file."""
        filename = filename or f"noir-aztec-repos-{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%SZ')}.json"
        path = self.output_dir / filename
        with open(path, "w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in repositories], f, indent=2, ensure_ascii=False)
        return path

    def get_stats(self) -> Dict[str, int]:
        """Get statistics about saved repositories."""
        stats = {
            "aztec": self._count_lines(self.aztec_file),
            "noir": self._count_lines(self.noir_file),
            "review": self._count_lines(self.review_file),
        }
        stats["total"] = sum(stats.values())
        return stats

    def _target_for(self, repository: DiscoveredRepository) -> Optional[Path]:
        if repository.classification.needs_review:
            return self.review_file
        if repository.label == EcosystemLabel.AZTEC:
            return self.aztec_file
        if repository.label == EcosystemLabel.NOIR:
            return self.noir_file
        return None

    def _load_existing_repos(self) -> None:
        """Remember repositories saved by earlier runs."""
        for file_path in (self.aztec_file, self.noir_file, self.review_file):
            if not file_path.exists():
                continue
            with open(file_path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        full_name = json.loads(line).get("full_name", "")
                    except (json.JSONDecodeError, AttributeError):
                        continue
                    if full_name:
                        self._saved.add((file_path.name, full_name.lower()))

    @staticmethod
    def _count_lines(file_path: Path) -> int:
        """Count lines in a file."""
        if not file_path.exists():
            return 0
        with open(file_path, "r", encoding="utf-8") as f:
            return sum(1 for line in f if line.strip())


def render_migration(repositories: List[DiscoveredRepository], generated_at: datetime) -> str:
    """Render migration commands for the tracking registry."""
    review = [r for r in repositories if r.classification.needs_review]
    trusted = [r for r in repositories if not r.classification.needs_review]
    aztec = [r for r in trusted if r.label == EcosystemLabel.AZTEC]
    noir = [r for r in trusted if r.label == EcosystemLabel.NOIR]

    lines = [
        "# Migration commands for Noir/Aztec repositories",
        f"# Generated: {generated_at.isoformat()}",
        f"# Total new repositories found: {len(aztec) + len(noir)}",
        "",
        f"# {AZTEC_ECOSYSTEM} Repositories ({len(aztec)} found)",
    ]
    lines.extend(f'repadd "{AZTEC_ECOSYSTEM}" {r.url} {MIGRATION_TAGS}' for r in aztec)
    lines.append("")
    lines.append(f"# {NOIR_ECOSYSTEM} Repositories ({len(noir)} found)")
    lines.extend(f'repadd "{NOIR_ECOSYSTEM}" {r.url} {MIGRATION_TAGS}' for r in noir)

    if review:
        lines.append("")
        lines.append(f"# Needs manual review: search API failed ({len(review)} repositories)")
        for r in review:
            failure = r.classification.api_failure
            lines.append(f"# {r.url} label={r.label.value} reason={failure.reason}")

    return "\n".join(lines) + "\n"
