"""Progression service: grading a card answer and running the unlock cascade."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from wordpath import monitoring
from wordpath.config import TASK_KINDS
from wordpath.exceptions import (
    AccessDeniedError,
    InvariantViolationError,
    NotFoundError,
    ValidationError,
    WordpathError,
)
from wordpath.models.models import Card, Language, Level, Module, User
from wordpath.models.progression_models import SubmissionResult, module_preview
from wordpath.services import grader
from wordpath.services.attempt_service import AttemptService, new_attempt_id, score_per_card
from wordpath.services.catalog_service import CatalogService
from wordpath.services.level_progress_service import LevelProgressService
from wordpath.services.module_progress_service import ModuleProgressService

logger = logging.getLogger(__name__)


class ProgressionService:
    """Entry point for card submissions.

    A submission runs as a fixed pipeline: validate, grade, accumulate the
    attempt, update level progress, recompute module progress, then unlock
    the next level and module where earned. Validation happens before any
    write. Each later step commits on its own and is safe to re-run, so a
    failure part way through leaves the earlier steps committed.
    """

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db
        self.catalog = CatalogService(db)
        self.attempts = AttemptService(db)
        self.level_progress = LevelProgressService(db, self.catalog)
        self.module_progress = ModuleProgressService(db, self.catalog, self.level_progress)

    def _validate(
        self,
        user_id: int,
        card_id: int,
        language_id: int,
        level_id: int,
        task_kind: str,
        answer: Optional[str],
    ) -> tuple[User, Language, Level, Module, Card]:
        """Resolve and check everything a submission refers to."""
        if task_kind not in TASK_KINDS:
            raise ValidationError(f"Unknown task kind: {task_kind}")
        if not isinstance(answer, str) or not answer.strip():
            raise ValidationError("Answer is required")

        user = self.catalog.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        language = self.catalog.get_language(language_id)
        if not language:
            raise NotFoundError("Language not found")
        if user.native_language_id is None:
            raise NotFoundError("User has no native language set")
        if not self.catalog.learner_has_language_access(user, language_id):
            raise AccessDeniedError("Access to this learning language is restricted")

        level = self.catalog.get_level(level_id)
        if not level:
            raise NotFoundError("Level not found")
        module = self.catalog.get_module(level.module_id)
        if not module:
            raise InvariantViolationError(f"Module of level {level_id} not found")

        if not self.catalog.get_card(card_id):
            raise NotFoundError("Card not found")
        card = self.catalog.find_module_card(card_id, module.id, user.native_language_id, language_id)
        if not card:
            raise NotFoundError("Card not found in this level's module")
        return user, language, level, module, card

    def submit(
        self,
        user_id: int,
        card_id: int,
        language_id: int,
        level_id: int,
        task_kind: str,
        answer: Optional[str],
        attempt_id: Optional[str] = None,
    ) -> SubmissionResult:
        """Grade an answer to a card and update the learner's progress."""
        with monitoring.submission_duration.time():
            try:
                user, _, level, module, card = self._validate(
                    user_id, card_id, language_id, level_id, task_kind, answer
                )
            except WordpathError as e:
                monitoring.error_count.labels(error_type=type(e).__name__).inc()
                logger.warning(f"Submission of card {card_id} by user {user_id} rejected: {e.message}")
                raise

            face = self.catalog.resolve_card_face(card, user.native_language_id, language_id)
            result = grader.grade(face, task_kind, answer)

            total_cards = self.catalog.count_cards_in_module(module.id, user.native_language_id, language_id)
            attempt = self.attempts.accumulate(
                user_id=user.id,
                attempt_id=attempt_id or new_attempt_id(),
                language_id=language_id,
                module_id=module.id,
                level_id=level.id,
                task_kind=task_kind,
                score=score_per_card(result.quality, total_cards),
                is_correct=result.is_correct,
            )

            outcome = self.level_progress.record_level_attempt(
                user.id, language_id, module, level, attempt.score
            )
            progress = self.module_progress.recompute_module(user.id, language_id, module)

            if outcome.level_completed:
                self.level_progress.unlock_next_level(user.id, language_id, module.id, level)
            self.module_progress.unlock_next_module(user.id, language_id, module, progress)

            monitoring.submissions.labels(
                task_kind=task_kind,
                result="correct" if result.is_correct else "incorrect",
            ).inc()

            return SubmissionResult(
                attempt=attempt,
                is_correct=result.is_correct,
                expected_text=result.expected_text,
                quality=result.quality,
                level_completed=outcome.level_completed,
                level_score=outcome.progress.best_score,
                module_progress=module_preview(progress),
            )
