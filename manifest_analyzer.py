"""
Manifest analysis - decides whether one Nargo.toml points at Aztec.

Pure functions only: no I/O, so the same Manifest always yields the same
ManifestAnalysis.
"""

from typing import List

from models import (
    AZTEC_TOKEN,
    CONTRACT_TYPE,
    DEFAULT_PACKAGE_TYPE,
    Manifest,
    ManifestAnalysis,
)


def is_aztec_dependency(name: str) -> bool:
    """
    Check whether a dependency name refers to an Aztec package.

    Matches the token anywhere in the name, case-insensitively, which
    covers "aztec", "aztec.nr", "aztec_std", "aztec-nr" and "easy_aztec".
    """
    return AZTEC_TOKEN in name.lower()


def analyze_manifest(manifest: Manifest) -> ManifestAnalysis:
    """
    Analyze a single manifest.

    A package of type "contract" is an Aztec contract. Otherwise any
    dependency whose name carries the Aztec token marks the manifest as
    Aztec, with one indicator per matching dependency.

    Args:
        manifest: Parsed Nargo.toml

    Returns:
        ManifestAnalysis with verdict, declared type and indicators
    """
    package_type = manifest.package_type or DEFAULT_PACKAGE_TYPE
    indicators: List[str] = []

    if package_type == CONTRACT_TYPE:
        indicators.append("type=contract")
    else:
        for dep in manifest.dependencies:
            if is_aztec_dependency(dep):
                indicators.append(f"dependency:{dep}")

    return ManifestAnalysis(
        is_aztec=bool(indicators),
        declared_type=package_type,
        indicators=indicators,
    )
