"""Fuzzy duplicate detection for entity names.

Used while a user types a new organization/quest/expedition name: an exact
(case-insensitive) match is surfaced as a single "already exists" warning,
otherwise the closest existing names are offered as suggestions.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

MIN_QUERY_LENGTH = 2
MIN_SCORE = 0.3
MAX_SUGGESTIONS = 5


def _name(candidate: Any) -> str:  # noqa: ANN401
    if isinstance(candidate, dict):
        return candidate["name"]
    return candidate.name


def _id(candidate: Any) -> Any:  # noqa: ANN401
    if isinstance(candidate, dict):
        return candidate["id"]
    return candidate.id


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance between ``a`` and ``b``, comparing characters case-insensitively."""
    m, n = len(a), len(b)
    dp = [[0] * (n + 1) for _ in range(m + 1)]

    for i in range(m + 1):
        dp[i][0] = i
    for j in range(n + 1):
        dp[0][j] = j

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            if a[i - 1].lower() == b[j - 1].lower():
                dp[i][j] = dp[i - 1][j - 1]
            else:
                dp[i][j] = 1 + min(dp[i - 1][j], dp[i][j - 1], dp[i - 1][j - 1])

    return dp[m][n]


def similarity_score(a: str, b: str) -> float:
    """Similarity in [0, 1]; two empty strings are identical."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return 1 - levenshtein_distance(a, b) / max_len


def suggest_similar(query: str, candidates: Iterable[Any]) -> list[dict]:
    """Top matches for ``query`` scoring above ``MIN_SCORE``, best first.

    Queries shorter than ``MIN_QUERY_LENGTH`` return nothing. Ties keep the
    candidates' input order.
    """
    if not query or len(query) < MIN_QUERY_LENGTH:
        return []

    scored = [
        {"id": _id(c), "name": _name(c), "score": similarity_score(query, _name(c))}
        for c in candidates
    ]
    scored = [s for s in scored if s["score"] > MIN_SCORE]
    scored.sort(key=lambda s: s["score"], reverse=True)
    return scored[:MAX_SUGGESTIONS]


def find_exact_match(query: str, candidates: Iterable[Any]) -> Any | None:  # noqa: ANN401
    """First candidate whose name equals ``query`` ignoring case."""
    needle = query.lower()
    for c in candidates:
        if _name(c).lower() == needle:
            return c
    return None


def match_candidates(query: str, candidates: Iterable[Any]) -> dict:
    """Exact match (if any) and suggestions; an exact match suppresses suggestions."""
    pool = list(candidates)
    exact = find_exact_match(query, pool)
    if exact is not None:
        return {"exact_match": {"id": _id(exact), "name": _name(exact)}, "suggestions": []}
    return {"exact_match": None, "suggestions": suggest_similar(query, pool)}
