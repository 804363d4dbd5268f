from __future__ import annotations

from pydantic import BaseModel


class MatchItem(BaseModel):
    id: str
    name: str


class Suggestion(MatchItem):
    score: float


class SimilarResponse(BaseModel):
    query: str
    exact_match: MatchItem | None = None
    suggestions: list[Suggestion]
