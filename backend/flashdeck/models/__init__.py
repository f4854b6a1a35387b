from flashdeck.models.flashcard import (
    Category,
    CategoryCreate,
    CategoryMeta,
    CategoryUpdate,
    CollectionState,
    Flashcard,
    FlashcardCreate,
    FlashcardUpdate,
    ImportedCard,
    ImportedCollection,
    ImportResult,
)
from flashdeck.models.quiz import (
    ProgressStats,
    QuizAttempt,
    QuizAttemptCreate,
    QuizDailyStat,
    QuizGenerateRequest,
    QuizHistory,
    QuizOption,
    QuizQuestion,
    QuizQuestionList,
    QuizScore,
    QuizScoreRequest,
    QuizStatus,
)
from flashdeck.models.study import (
    SpacedRepetitionState,
    StudyAnswerRequest,
    StudyOutcome,
)

__all__ = [
    "Category",
    "CategoryCreate",
    "CategoryMeta",
    "CategoryUpdate",
    "CollectionState",
    "Flashcard",
    "FlashcardCreate",
    "FlashcardUpdate",
    "ImportResult",
    "ImportedCard",
    "ImportedCollection",
    "ProgressStats",
    "QuizAttempt",
    "QuizAttemptCreate",
    "QuizDailyStat",
    "QuizGenerateRequest",
    "QuizHistory",
    "QuizOption",
    "QuizQuestion",
    "QuizQuestionList",
    "QuizScore",
    "QuizScoreRequest",
    "QuizStatus",
    "SpacedRepetitionState",
    "StudyAnswerRequest",
    "StudyOutcome",
]
