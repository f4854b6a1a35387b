"""
Multiple-choice quiz generation and grading.

Each question asks for a card's back text given its front text. The correct
option is the card's own back; the three distractors are the backs of other
cards, sampled without replacement. Card order and option order are shuffled
with an injectable ``random.Random`` so tests can pin the sequence.

Fewer than OPTION_COUNT_PER_QUESTION usable cards yields an empty list, which
callers treat as "not enough data" rather than an error.
"""
from __future__ import annotations

import math
import random
import uuid
from collections.abc import Mapping, Sequence

from flashdeck.config import settings
from flashdeck.models.flashcard import Flashcard
from flashdeck.models.quiz import QuizOption, QuizQuestion, QuizScore

OPTION_COUNT_PER_QUESTION = 4
FALLBACK_QUESTION_COUNT = 5

_rng = random.Random()


def _new_id() -> str:
    return str(uuid.uuid4())


def resolve_question_count(
    requested: int | float | None, default: int = FALLBACK_QUESTION_COUNT
) -> int:
    """Positive finite requests win (floored); anything else falls back to ``default``."""
    if requested is not None and math.isfinite(requested) and requested > 0:
        return max(1, int(requested))
    return default if default > 0 else FALLBACK_QUESTION_COUNT


def usable_cards(cards: Sequence[Flashcard]) -> list[Flashcard]:
    return [card for card in cards if card.front.strip() and card.back.strip()]


def generate_quiz_questions(
    cards: Sequence[Flashcard],
    question_count: int | None = None,
    rng: random.Random | None = None,
) -> list[QuizQuestion]:
    rng = rng or _rng
    valid = usable_cards(cards)
    if len(valid) < OPTION_COUNT_PER_QUESTION:
        return []

    desired = resolve_question_count(question_count, settings.quiz_question_count)

    candidates = list(valid)
    rng.shuffle(candidates)

    questions: list[QuizQuestion] = []
    for card in candidates:
        if len(questions) >= desired:
            break

        distractor_pool = [other for other in valid if other.id != card.id]
        if len(distractor_pool) < OPTION_COUNT_PER_QUESTION - 1:
            continue

        options = [
            QuizOption(
                id=_new_id(),
                label=other.back.strip(),
                flashcard_id=other.id,
                is_correct=False,
            )
            for other in rng.sample(distractor_pool, OPTION_COUNT_PER_QUESTION - 1)
        ]
        correct = QuizOption(
            id=_new_id(),
            label=card.back.strip(),
            flashcard_id=card.id,
            is_correct=True,
        )
        options.append(correct)
        rng.shuffle(options)

        questions.append(
            QuizQuestion(
                id=_new_id(),
                prompt=card.front.strip(),
                flashcard_id=card.id,
                options=options,
                correct_option_id=correct.id,
            )
        )

    return questions


def count_correct_answers(
    questions: Sequence[QuizQuestion], answers: Mapping[str, str | None]
) -> int:
    correct = 0
    for question in questions:
        selected = answers.get(question.id)
        if not selected:
            continue
        match = next((o for o in question.options if o.id == selected), None)
        if match is not None and match.is_correct:
            correct += 1
    return correct


def get_score(
    questions: Sequence[QuizQuestion], answers: Mapping[str, str | None]
) -> QuizScore:
    return QuizScore(
        correct=count_correct_answers(questions, answers),
        total=len(questions),
    )
