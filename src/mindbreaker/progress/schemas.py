from __future__ import annotations

from pydantic import BaseModel

from mindbreaker.gamification.schemas import XPResponse


class CompletionResponse(BaseModel):
    quest_id: str
    completed: bool
    xp_delta: int
    leveled_up: bool
    xp: XPResponse


class SavedResponse(BaseModel):
    saved: bool
