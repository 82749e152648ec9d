"""Tests for discovery code search."""

from unittest.mock import patch

from nargo_crawler.search import GitHubCodeSearch
from tests.conftest import make_response


def _item(full_name, path="Nargo.toml", stars=0):
    return {
        "path": path,
        "repository": {
            "full_name": full_name,
            "html_url": f"https://github.com/{full_name}",
            "stargazers_count": stars,
            "description": f"{full_name} description",
        },
    }


class TestGitHubCodeSearch:
    def test_single_page(self, client, session):
        session.get.return_value = make_response(200, {"items": [_item("a/one", stars=3), _item("b/two")]})
        hits = list(GitHubCodeSearch(client, page_delay=0).search_code("filename:Nargo.toml", max_results=100))

        assert [h.full_name for h in hits] == ["a/one", "b/two"]
        assert hits[0].stars == 3
        assert hits[0].owner == "a"
        assert hits[0].repo_name == "one"
        assert session.get.call_count == 1

    def test_dedupes_repositories_case_insensitively(self, client, session):
        session.get.return_value = make_response(
            200,
            {"items": [_item("Org/Repo", "a/Nargo.toml"), _item("org/repo", "b/Nargo.toml"), _item("x/y")]},
        )
        hits = list(GitHubCodeSearch(client, page_delay=0).search_code("q"))
        assert [h.full_name for h in hits] == ["Org/Repo", "x/y"]

    def test_paginates_until_short_page(self, client, session):
        page1 = {"items": [_item(f"o/r{i}") for i in range(100)]}
        page2 = {"items": [_item("o/last")]}
        session.get.side_effect = [make_response(200, page1), make_response(200, page2)]
        with patch("nargo_crawler.search.time.sleep") as sleep:
            hits = list(GitHubCodeSearch(client).search_code("q", max_results=1000))
        assert len(hits) == 101
        assert session.get.call_args_list[1][1]["params"]["page"] == 2
        sleep.assert_called_once_with(0.1)

    def test_stops_at_max_results(self, client, session):
        session.get.return_value = make_response(200, {"items": [_item(f"o/r{i}") for i in range(5)]})
        hits = list(GitHubCodeSearch(client, page_delay=0).search_code("q", max_results=3))
        assert len(hits) == 3
        assert session.get.call_args[1]["params"]["per_page"] == 3

    def test_items_without_repository_skipped(self, client, session):
        session.get.return_value = make_response(200, {"items": [{"path": "x"}, _item("a/b")]})
        hits = list(GitHubCodeSearch(client, page_delay=0).search_code("q"))
        assert [h.full_name for h in hits] == ["a/b"]
