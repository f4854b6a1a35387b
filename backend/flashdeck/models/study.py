from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3


class SpacedRepetitionState(BaseModel):
    interval: int = Field(default=0, ge=0)          # days until next review
    ease_factor: float = Field(default=DEFAULT_EASE_FACTOR, ge=MIN_EASE_FACTOR)
    repetition: int = Field(default=0, ge=0)        # consecutive correct recalls


class StudyAnswerRequest(BaseModel):
    is_correct: bool


class StudyOutcome(BaseModel):
    card_id: str
    state: SpacedRepetitionState
    graduated: bool
