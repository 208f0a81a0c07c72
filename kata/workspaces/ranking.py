"""Ranking of remote repository candidates against a free-text query.

Every query token must appear somewhere in ``"<name> <url>"`` (lower-cased)
or the candidate is dropped.  Survivors score 10 plus the best bonus per
token:

=========================  =====
exact name or URL          +150
name prefix                +80
URL prefix                 +60
name contains              +30
URL contains               +20
=========================  =====

An empty query keeps everything at score 1.
"""

from __future__ import annotations

from collections.abc import Iterable

from kata.workspaces.models.api import RepositoryCandidate, RepositorySuggestion

MAX_SUGGESTIONS = 20
BASE_SCORE = 10
UNFILTERED_SCORE = 1


def normalize_search_tokens(query: str | None) -> list[str]:
    return (query or "").lower().split()


def repo_match_score(candidate: RepositoryCandidate, query: str | None) -> int:
    """Score one candidate; ``0`` means it does not match."""
    tokens = normalize_search_tokens(query)
    if not tokens:
        return UNFILTERED_SCORE

    name = candidate.name_with_owner.lower()
    url = candidate.url.lower()
    haystack = f"{name} {url}"
    if not all(token in haystack for token in tokens):
        return 0

    score = BASE_SCORE
    for token in tokens:
        if token in (name, url):
            score += 150
        elif name.startswith(token):
            score += 80
        elif url.startswith(token):
            score += 60
        elif token in name:
            score += 30
        elif token in url:
            score += 20
    return score


def rank_repositories(
    candidates: Iterable[RepositoryCandidate],
    query: str | None,
    *,
    limit: int = MAX_SUGGESTIONS,
) -> list[RepositorySuggestion]:
    """Filter and order candidates by (score desc, updated_at desc, name asc)."""
    scored = [
        RepositorySuggestion(**candidate.model_dump(), score=score)
        for candidate in candidates
        if (score := repo_match_score(candidate, query)) > 0
    ]
    # Stable sorts applied from the least to the most significant key.
    scored.sort(key=lambda s: s.name_with_owner)
    scored.sort(key=lambda s: s.updated_at, reverse=True)
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored[:limit]
