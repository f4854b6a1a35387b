"""
Study router: spaced-repetition answers.

Endpoints:
  GET  /study/state            : scheduling state of every answered card
  POST /study/{id}/answer      : record a right/wrong answer; marks the card learned on graduation

Cards in a locked category cannot be studied; answering one returns 409 and
leaves the scheduling state untouched.
"""
from __future__ import annotations

import logging

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException

from flashdeck.db.sqlite import get_category, get_db, get_flashcard, set_flashcard_learned
from flashdeck.models.study import SpacedRepetitionState, StudyAnswerRequest, StudyOutcome
from flashdeck.services.scheduler import SqliteSchedulerStore, answer_card

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/state", response_model=dict[str, SpacedRepetitionState])
async def read_state(
    db: aiosqlite.Connection = Depends(get_db),
) -> dict[str, SpacedRepetitionState]:
    return await SqliteSchedulerStore(db).load()


@router.post("/{card_id}/answer", response_model=StudyOutcome)
async def answer(
    card_id: str,
    body: StudyAnswerRequest,
    db: aiosqlite.Connection = Depends(get_db),
) -> StudyOutcome:
    card = await get_flashcard(db, card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Flashcard not found")

    category = await get_category(db, card.category_id)
    if category and category.locked:
        raise HTTPException(
            status_code=409, detail=f"Category {card.category_id} is locked"
        )

    outcome = await answer_card(SqliteSchedulerStore(db), card_id, body.is_correct)

    if outcome.graduated and not card.learned:
        await set_flashcard_learned(db, card_id, True)

    return outcome
