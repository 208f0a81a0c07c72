"""Tests for remote repository suggestion ranking."""

from __future__ import annotations

import pytest

from kata.workspaces.models.api import RepositoryCandidate
from kata.workspaces.ranking import normalize_search_tokens, rank_repositories, repo_match_score


def candidate(name: str, updated_at: str = "2026-01-01T00:00:00Z") -> RepositoryCandidate:
    return RepositoryCandidate(name_with_owner=name, url=f"https://github.com/{name}", updated_at=updated_at)


def test_tokens_are_lowercased_and_split() -> None:
    assert normalize_search_tokens("  Acme  WIDGETS\t") == ["acme", "widgets"]
    assert normalize_search_tokens(None) == []


@pytest.mark.parametrize("query", ["", "   ", None])
def test_empty_query_keeps_everything(query: str | None) -> None:
    repos = [candidate("acme/widgets"), candidate("other/tools")]
    ranked = rank_repositories(repos, query)
    assert {r.name_with_owner for r in ranked} == {"acme/widgets", "other/tools"}
    assert all(r.score == 1 for r in ranked)


def test_non_matching_candidates_are_excluded() -> None:
    ranked = rank_repositories([candidate("acme/widgets"), candidate("other/tools")], "acme")
    assert [r.name_with_owner for r in ranked] == ["acme/widgets"]


def test_every_token_must_match() -> None:
    assert repo_match_score(candidate("acme/widgets"), "acme tools") == 0
    assert repo_match_score(candidate("acme/widgets"), "acme widgets") > 0


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("acme/widgets", 10 + 150),
        ("https://github.com/acme/widgets", 10 + 150),
        ("acme", 10 + 80),
        ("https://github.com/acme", 10 + 60),
        ("widgets", 10 + 30),
        ("github", 10 + 20),
        ("acme widgets", 10 + 80 + 30),
    ],
)
def test_score_bonuses(query: str, expected: int) -> None:
    assert repo_match_score(candidate("acme/widgets"), query) == expected


def test_exact_match_outranks_substring() -> None:
    exact = candidate("kata-sh/kat-154", updated_at="2020-01-01T00:00:00Z")
    partial = candidate("kata-sh/kat-154-old", updated_at="2026-01-01T00:00:00Z")

    assert repo_match_score(exact, "kata-sh/kat-154") > 100
    ranked = rank_repositories([partial, exact], "kata-sh/kat-154")
    assert [r.name_with_owner for r in ranked] == ["kata-sh/kat-154", "kata-sh/kat-154-old"]


def test_name_match_outranks_url_only_match() -> None:
    url_only = RepositoryCandidate(name_with_owner="beta/other", url="https://github.com/beta/other-repo")
    repos = [url_only, candidate("alpha/repo")]
    ranked = rank_repositories(repos, "repo")
    assert [r.name_with_owner for r in ranked] == ["alpha/repo", "beta/other"]


def test_ties_break_on_recency_then_name() -> None:
    repos = [
        candidate("acme/b", updated_at="2026-01-01T00:00:00Z"),
        candidate("acme/a", updated_at="2026-01-01T00:00:00Z"),
        candidate("acme/c", updated_at="2026-03-01T00:00:00Z"),
    ]
    ranked = rank_repositories(repos, "acme")
    assert [r.name_with_owner for r in ranked] == ["acme/c", "acme/a", "acme/b"]


def test_results_are_capped() -> None:
    repos = [candidate(f"acme/repo-{i:02d}") for i in range(30)]
    assert len(rank_repositories(repos, "")) == 20
    assert len(rank_repositories(repos, "acme", limit=5)) == 5
