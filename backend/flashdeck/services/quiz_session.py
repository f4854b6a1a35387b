"""
In-memory quiz session: idle → in-progress → completed, reset() back to idle.

Questions are generated fresh on every start() and never persisted; reset() is
the only way to abandon a session and discards its questions and answers.
"""
from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from flashdeck.config import settings
from flashdeck.models.flashcard import Flashcard
from flashdeck.models.quiz import (
    QuizAttemptCreate,
    QuizQuestion,
    QuizScore,
    QuizStatus,
)
from flashdeck.services.quiz import (
    OPTION_COUNT_PER_QUESTION,
    generate_quiz_questions,
    get_score,
    resolve_question_count,
)

logger = logging.getLogger(__name__)

NOT_ENOUGH_CARDS_MESSAGE = "At least four flashcards are required to start a quiz."
GENERATION_FAILED_MESSAGE = "Unable to generate a quiz with the current flashcards."


class QuizSession:
    def __init__(
        self,
        card_source: Callable[[], Sequence[Flashcard]],
        question_count: int | None = None,
        rng: random.Random | None = None,
    ):
        self._card_source = card_source
        self._rng = rng
        self.question_count = resolve_question_count(
            question_count, settings.quiz_question_count
        )
        self.questions: list[QuizQuestion] = []
        self.answers: dict[str, str] = {}
        self.current_index = 0
        self.status = QuizStatus.IDLE
        self.error: str | None = None

    @property
    def current_question(self) -> QuizQuestion | None:
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    def set_question_count(self, count: int | float) -> None:
        if count is None or not math.isfinite(count) or count <= 0:
            return
        self.question_count = int(count)

    def start(self, question_count: int | None = None) -> bool:
        """Generate a new question set. Returns False (and sets ``error``) when none could be built."""
        resolved = resolve_question_count(question_count, self.question_count)
        self.question_count = resolved

        cards = list(self._card_source())
        questions = generate_quiz_questions(cards, resolved, rng=self._rng)

        self.answers = {}
        self.current_index = 0

        if not questions:
            self.questions = []
            self.status = QuizStatus.IDLE
            self.error = (
                NOT_ENOUGH_CARDS_MESSAGE
                if len(cards) < OPTION_COUNT_PER_QUESTION
                else GENERATION_FAILED_MESSAGE
            )
            logger.info("Quiz not started: %s", self.error)
            return False

        self.questions = questions
        self.status = QuizStatus.IN_PROGRESS
        self.error = None
        return True

    def select_option(self, option_id: str) -> None:
        if self.status is not QuizStatus.IN_PROGRESS:
            return
        question = self.current_question
        if question is None:
            return
        self.answers[question.id] = option_id

    def go_to_next_question(self) -> None:
        if self.status is not QuizStatus.IN_PROGRESS:
            return
        question = self.current_question
        if question is None or not self.answers.get(question.id):
            return

        if self.current_index >= len(self.questions) - 1:
            self.status = QuizStatus.COMPLETED
        else:
            self.current_index += 1

    def reset(self) -> None:
        self.questions = []
        self.answers = {}
        self.current_index = 0
        self.status = QuizStatus.IDLE
        self.error = None

    def get_score(self) -> QuizScore:
        return get_score(self.questions, self.answers)

    def attempt(self, submitted_at: datetime | None = None) -> QuizAttemptCreate | None:
        """Payload for the attempt history, available once the session is completed."""
        if self.status is not QuizStatus.COMPLETED:
            return None
        score = self.get_score()
        submitted_at = submitted_at or datetime.now(timezone.utc)
        return QuizAttemptCreate(
            total_questions=score.total,
            correct_answers=score.correct,
            submitted_at=submitted_at.isoformat(),
        )
