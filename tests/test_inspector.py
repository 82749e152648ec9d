"""Tests for manifest fetching and parsing."""

from unittest.mock import MagicMock

import pytest

from models import Manifest
from nargo_crawler.errors import (
    AbsentResource,
    FailureCategory,
    GitHubAPIError,
    MalformedManifestError,
    TransientFetchError,
)
from nargo_crawler.inspector import ManifestFetcher, decode_content, parse_manifest
from tests.conftest import file_payload, make_response

CONTRACT_TOML = """
[package]
name = "token_contract"
type = "contract"
authors = [""]

[dependencies]
aztec = { git = "https://github.com/AztecProtocol/aztec-packages/", tag = "v0.1.0", directory = "noir-projects/aztec-nr/aztec" }
"""


class TestParseManifest:
    def test_contract(self):
        manifest = parse_manifest(CONTRACT_TOML)
        assert manifest.package_type == "contract"
        assert manifest.name == "token_contract"
        assert list(manifest.dependencies) == ["aztec"]
        assert manifest.dependencies["aztec"]["tag"] == "v0.1.0"

    def test_empty_file(self):
        assert parse_manifest("") == Manifest(package_type="bin", dependencies={}, name=None)

    def test_missing_type_defaults_to_bin(self):
        manifest = parse_manifest('[package]\nname = "circuit"\n')
        assert manifest.package_type == "bin"

    def test_workspace_manifest(self):
        manifest = parse_manifest('[workspace]\nmembers = ["a", "b"]\n')
        assert manifest.package_type == "bin"
        assert manifest.dependencies == {}

    def test_non_table_dependencies_ignored(self):
        manifest = parse_manifest('dependencies = "oops"\n[package]\ntype = "lib"\n')
        assert manifest.dependencies == {}
        assert manifest.package_type == "lib"

    def test_malformed(self):
        with pytest.raises(MalformedManifestError) as exc_info:
            parse_manifest("[package\ntype = ", path="a/Nargo.toml")
        assert exc_info.value.path == "a/Nargo.toml"


class TestDecodeContent:
    def test_base64(self):
        assert decode_content(file_payload("hello"), "Nargo.toml") == "hello"

    def test_missing_content(self):
        with pytest.raises(MalformedManifestError):
            decode_content({"type": "file"}, "Nargo.toml")

    def test_invalid_utf8(self):
        with pytest.raises(MalformedManifestError):
            decode_content({"type": "file", "encoding": "base64", "content": "//79"}, "Nargo.toml")


class TestManifestFetcher:
    def test_fetches_and_parses(self, client, session):
        session.get.return_value = make_response(200, file_payload(CONTRACT_TOML))
        manifest = ManifestFetcher(client).fetch("org", "repo", "contracts/Nargo.toml")

        assert manifest.package_type == "contract"
        url = session.get.call_args[0][0]
        assert url == "https://api.github.com/repos/org/repo/contents/contracts/Nargo.toml"

    def test_not_found_is_absent(self, client, session):
        session.get.return_value = make_response(404, {"message": "Not Found"})
        assert ManifestFetcher(client).fetch("org", "repo", "Nargo.toml") is None

    def test_directory_listing_is_absent(self, client, session):
        session.get.return_value = make_response(200, [{"type": "file", "path": "Nargo.toml/x"}])
        assert ManifestFetcher(client).fetch("org", "repo", "Nargo.toml") is None

    def test_dir_entry_is_absent(self, client, session):
        session.get.return_value = make_response(200, {"type": "dir", "path": "Nargo.toml"})
        assert ManifestFetcher(client).fetch("org", "repo", "Nargo.toml") is None

    @pytest.mark.parametrize("entry_type", ["submodule", "symlink"])
    def test_submodule_and_symlink_are_absent(self, client, session, entry_type):
        session.get.return_value = make_response(200, {"type": entry_type, "path": "Nargo.toml"})
        assert ManifestFetcher(client).fetch("org", "repo", "Nargo.toml") is None

    def test_malformed_raises(self, client, session):
        session.get.return_value = make_response(200, file_payload("[[["))
        with pytest.raises(MalformedManifestError):
            ManifestFetcher(client).fetch("org", "repo", "Nargo.toml")

    def test_rate_limited_raises_transient(self, client, session):
        session.get.return_value = make_response(403, {"message": "API rate limit exceeded"})
        with pytest.raises(TransientFetchError) as exc_info:
            ManifestFetcher(client).fetch("org", "repo", "Nargo.toml")
        assert exc_info.value.category == FailureCategory.RATE_LIMITED

    def test_server_error_raises(self, client, session):
        session.get.return_value = make_response(502, None)
        with pytest.raises(GitHubAPIError):
            ManifestFetcher(client).fetch("org", "repo", "Nargo.toml")

    def test_explicit_credential(self):
        fake_client = MagicMock()
        fake_client.get_json.side_effect = AbsentResource("x")
        ManifestFetcher(fake_client).fetch("org", "repo", "Nargo.toml", credential="tok")
        assert fake_client.get_json.call_args[1]["credential"] == "tok"
