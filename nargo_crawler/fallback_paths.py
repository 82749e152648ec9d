"""
Conventional Nargo.toml locations.

Tried in order when code search is unavailable or finds nothing. The
contents API takes literal paths, so entries cannot be glob patterns.
"""

FALLBACK_MANIFEST_PATHS = (
    "Nargo.toml",
    "contracts/Nargo.toml",
    "src/Nargo.toml",
    "circuits/Nargo.toml",
    "app/Nargo.toml",
    "examples/Nargo.toml",
    "contracts/src/Nargo.toml",
    "src/contracts/Nargo.toml",
    "packages/contracts/Nargo.toml",
    "packages/aztec-contracts/Nargo.toml",
    "packages/noir-contracts/Nargo.toml",
    "aztec/Nargo.toml",
    "noir-contracts/Nargo.toml",
    "tests/Nargo.toml",
    "test/Nargo.toml",
)
