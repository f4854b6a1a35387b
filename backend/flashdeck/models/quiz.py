from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class QuizStatus(str, Enum):
    IDLE = "idle"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class QuizOption(BaseModel):
    id: str
    label: str
    flashcard_id: str
    is_correct: bool


class QuizQuestion(BaseModel):
    id: str
    prompt: str
    flashcard_id: str
    options: list[QuizOption]
    correct_option_id: str


class QuizScore(BaseModel):
    correct: int
    total: int


class QuizGenerateRequest(BaseModel):
    question_count: int | None = None
    category_id: str | None = None
    include_learned: bool = True


class QuizQuestionList(BaseModel):
    items: list[QuizQuestion]
    total: int


class QuizScoreRequest(BaseModel):
    questions: list[QuizQuestion]
    answers: dict[str, str] = {}


class QuizAttemptCreate(BaseModel):
    total_questions: int
    correct_answers: int
    submitted_at: str | None = None  # ISO timestamp; invalid or missing means now


class QuizAttempt(BaseModel):
    id: str
    total_questions: int
    correct_answers: int
    created_at: str


class QuizDailyStat(BaseModel):
    date: str  # YYYY-MM-DD (UTC)
    attempt_count: int = 0
    total_questions: int = 0
    correct_answers: int = 0


class QuizHistory(BaseModel):
    range_days: int
    data: list[QuizDailyStat]


class ProgressStats(BaseModel):
    total: int
    learned: int
    unlearned: int
    learned_percentage: int
    unlearned_percentage: int
