"""
Quiz router.

Endpoints:
  POST /quiz/questions  : build multiple-choice questions from stored flashcards
  POST /quiz/score      : grade a question set against an answer map

Sessions are not stored server-side; clients keep the questions they were given
and post them back for grading.
"""
from __future__ import annotations

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException

from flashdeck.config import settings
from flashdeck.db.sqlite import get_db, list_flashcards
from flashdeck.models.quiz import (
    QuizGenerateRequest,
    QuizQuestionList,
    QuizScore,
    QuizScoreRequest,
)
from flashdeck.services.quiz import (
    OPTION_COUNT_PER_QUESTION,
    generate_quiz_questions,
    get_score,
    resolve_question_count,
)
from flashdeck.services.quiz_session import (
    GENERATION_FAILED_MESSAGE,
    NOT_ENOUGH_CARDS_MESSAGE,
)

router = APIRouter()


@router.post("/questions", response_model=QuizQuestionList)
async def build_questions(
    body: QuizGenerateRequest,
    db: aiosqlite.Connection = Depends(get_db),
) -> QuizQuestionList:
    cards = await list_flashcards(
        db,
        category_id=body.category_id,
        learned=None if body.include_learned else False,
    )
    count = resolve_question_count(body.question_count, settings.quiz_question_count)
    questions = generate_quiz_questions(cards, count)
    if not questions:
        detail = (
            NOT_ENOUGH_CARDS_MESSAGE
            if len(cards) < OPTION_COUNT_PER_QUESTION
            else GENERATION_FAILED_MESSAGE
        )
        raise HTTPException(status_code=422, detail=detail)
    return QuizQuestionList(items=questions, total=len(questions))


@router.post("/score", response_model=QuizScore)
async def score(body: QuizScoreRequest) -> QuizScore:
    return get_score(body.questions, body.answers)
