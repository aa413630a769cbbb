"""Models for data passed between the progression services."""
from dataclasses import dataclass, field
from typing import List, Optional

from wordpath.models.models import Attempt, LevelProgress, ModuleProgress


@dataclass(frozen=True)
class CardFace:
    """A card oriented for one learner.

    ``source`` is the learner's native form and ``target`` the form in the
    language being learned.
    """
    card_id: int
    source: str
    target: str
    example: Optional[str] = None


@dataclass(frozen=True)
class GradeResult:
    """Outcome of grading one answer."""
    is_correct: bool
    expected_text: str
    quality: int


@dataclass
class LevelOutcome:
    """Level progress after a submission."""
    progress: LevelProgress
    level_completed: bool


@dataclass(frozen=True)
class ModuleProgressPreview:
    """Subset of module progress echoed back after a submission."""
    completed_levels: int
    total_score: float


@dataclass
class SubmissionResult:
    """Consolidated response of one card submission."""
    attempt: Attempt
    is_correct: bool
    expected_text: str
    quality: int
    level_completed: bool
    level_score: float
    module_progress: ModuleProgressPreview

    def to_dict(self) -> dict:
        """Serialize in the shape the HTTP layer responds with."""
        return {
            "attempt": {
                "id": self.attempt.attempt_id,
                "languageId": self.attempt.language_id,
                "moduleId": self.attempt.module_id,
                "levelId": self.attempt.level_id,
                "type": self.attempt.task_kind,
                "date": self.attempt.date.isoformat() if self.attempt.date else None,
                "score": self.attempt.score,
                "correctAnswers": self.attempt.correct_answers,
                "totalAnswers": self.attempt.total_answers,
            },
            "isCorrect": self.is_correct,
            "correctTranslation": self.expected_text,
            "quality": self.quality,
            "levelCompleted": self.level_completed,
            "levelScore": self.level_score,
            "moduleProgress": {
                "completedLevels": self.module_progress.completed_levels,
                "totalScore": self.module_progress.total_score,
            },
        }


@dataclass(frozen=True)
class ReviewOption:
    """One multiple-choice option."""
    text: str
    is_correct: bool


@dataclass
class ReviewCard:
    """A card prepared for a review session."""
    card_id: int
    module_id: int
    original: str
    translation: str
    example: Optional[str]
    options: List[ReviewOption] = field(default_factory=list)


@dataclass
class ReviewSession:
    """Cards to review plus the session id to submit them under."""
    attempt_id: str
    cards: List[ReviewCard]


@dataclass(frozen=True)
class ModuleProgressView:
    """Module progress joined with catalog labels."""
    id: int
    language_id: int
    module_id: int
    module_name: str
    module_order: int
    required_score: float
    total_levels: int
    completed_levels: int
    total_score: float
    unlocked: bool
    achievements: List[str]


@dataclass(frozen=True)
class LevelProgressView:
    """Level progress joined with catalog labels."""
    id: int
    language_id: int
    module_id: int
    level_id: int
    level_order: int
    tasks: str
    required_score: float
    best_score: float
    unlocked: bool


@dataclass
class LanguageProgress:
    """Read-only projection of a learner's progress."""
    modules: List[ModuleProgressView]
    levels: List[LevelProgressView]


def module_preview(progress: ModuleProgress) -> ModuleProgressPreview:
    """Build the submission preview from a module progress row."""
    return ModuleProgressPreview(
        completed_levels=progress.completed_levels,
        total_score=progress.total_score,
    )
