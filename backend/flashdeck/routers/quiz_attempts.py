"""
Quiz attempt history.

Endpoints:
  GET  /quiz-attempts?days=N : daily totals for the last N days (clamped to 7..30), zero-filled
  POST /quiz-attempts        : record a finished quiz
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from flashdeck.config import settings
from flashdeck.db.sqlite import (
    get_db,
    get_quiz_attempt_summary,
    history_start,
    parse_timestamp,
    record_quiz_attempt,
)
from flashdeck.models.quiz import QuizAttempt, QuizAttemptCreate, QuizDailyStat, QuizHistory

logger = logging.getLogger(__name__)
router = APIRouter()


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def clamp_range(raw: str | None) -> int:
    """Parse the leading integer of the ``days`` query value (``"12abc"`` is 12).

    Missing or non-numeric values mean the minimum.
    """
    match = _LEADING_INT.match(raw or "")
    days = int(match.group(1)) if match else settings.quiz_history_min_days
    return min(max(days, settings.quiz_history_min_days), settings.quiz_history_max_days)


@router.get("", response_model=QuizHistory)
async def quiz_history(
    days: str | None = Query(default=None),
    db: aiosqlite.Connection = Depends(get_db),
) -> QuizHistory:
    range_days = clamp_range(days)
    now = datetime.now(timezone.utc)
    summary = {row.date: row for row in await get_quiz_attempt_summary(db, range_days, now)}

    start = history_start(range_days, now)
    data = []
    for offset in range(range_days):
        key = (start + timedelta(days=offset)).strftime("%Y-%m-%d")
        data.append(summary.get(key) or QuizDailyStat(date=key))
    return QuizHistory(range_days=range_days, data=data)


@router.post("", response_model=QuizAttempt, status_code=201)
async def add_attempt(
    body: QuizAttemptCreate,
    db: aiosqlite.Connection = Depends(get_db),
) -> QuizAttempt:
    submitted_at = parse_timestamp(body.submitted_at) or datetime.now(timezone.utc)
    try:
        return await record_quiz_attempt(
            db, body.total_questions, body.correct_answers, submitted_at
        )
    except ValueError as e:
        logger.warning("Rejected quiz attempt: %s", e)
        raise HTTPException(status_code=400, detail="Invalid quiz attempt payload") from e
