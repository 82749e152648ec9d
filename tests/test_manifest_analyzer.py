"""Tests for single-manifest analysis."""

import pytest

from manifest_analyzer import analyze_manifest, is_aztec_dependency
from models import Manifest


class TestIsAztecDependency:
    @pytest.mark.parametrize(
        "name",
        ["aztec", "Aztec", "aztec.nr", "aztec_std", "aztec-nr", "easy_private_aztec", "my-AZTEC-lib"],
    )
    def test_matches(self, name):
        assert is_aztec_dependency(name)

    @pytest.mark.parametrize("name", ["std", "noir_json_parser", "protocol_types", "azte"])
    def test_no_match(self, name):
        assert not is_aztec_dependency(name)


class TestAnalyzeManifest:
    def test_contract_type(self):
        analysis = analyze_manifest(Manifest(package_type="contract"))
        assert analysis.is_aztec is True
        assert analysis.declared_type == "contract"
        assert analysis.indicators == ["type=contract"]

    def test_aztec_dependency(self):
        analysis = analyze_manifest(Manifest(package_type="lib", dependencies={"aztec_std": "1.0"}))
        assert analysis.is_aztec is True
        assert analysis.declared_type == "lib"
        assert analysis.indicators == ["dependency:aztec_std"]

    def test_one_indicator_per_matching_dependency_in_order(self):
        manifest = Manifest(
            package_type="bin",
            dependencies={
                "aztec": {"git": "https://github.com/AztecProtocol/aztec-packages"},
                "std": "0.1",
                "value_note": {"path": "../value_note"},
                "Aztec-Utils": "2.0",
            },
        )
        analysis = analyze_manifest(manifest)
        assert analysis.indicators == ["dependency:aztec", "dependency:Aztec-Utils"]

    def test_plain_noir_binary(self):
        analysis = analyze_manifest(Manifest(package_type="bin"))
        assert analysis.is_aztec is False
        assert analysis.declared_type == "bin"
        assert analysis.indicators == []

    def test_default_type_is_bin(self):
        analysis = analyze_manifest(Manifest())
        assert analysis.declared_type == "bin"
        assert analysis.is_aztec is False

    def test_empty_type_falls_back_to_bin(self):
        analysis = analyze_manifest(Manifest(package_type=""))
        assert analysis.declared_type == "bin"

    def test_type_kept_when_not_aztec(self):
        analysis = analyze_manifest(Manifest(package_type="lib", dependencies={"std": "1"}))
        assert analysis.is_aztec is False
        assert analysis.declared_type == "lib"

    def test_deterministic(self):
        manifest = Manifest(package_type="lib", dependencies={"aztec_std": "1.0", "x": "2"})
        assert analyze_manifest(manifest) == analyze_manifest(manifest)
