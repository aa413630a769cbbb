"""Attempt service for accumulating review session results."""
import logging
import uuid
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wordpath.config import settings
from wordpath.models.models import Attempt

logger = logging.getLogger(__name__)


def new_attempt_id() -> str:
    """Generate a fresh review session identifier."""
    return str(uuid.uuid4())


def score_per_card(quality: int, total_cards: int) -> float:
    """Points one answer is worth.

    Every card of the module carries an equal share of the maximum score, so
    one full correct pass over the module adds up to exactly the maximum.
    """
    if total_cards <= 0:
        return 0.0
    weight = settings.progression.max_score / total_cards
    return (quality / settings.progression.max_quality) * weight


class AttemptService:
    """Service for creating and accumulating attempts."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def get_attempt(self, user_id: int, attempt_id: str) -> Optional[Attempt]:
        """Get the learner's attempt for a review session."""
        return (
            self.db.query(Attempt)
            .filter(and_(Attempt.user_id == user_id, Attempt.attempt_id == attempt_id))
            .first()
        )

    def accumulate(
        self,
        user_id: int,
        attempt_id: str,
        language_id: int,
        module_id: int,
        level_id: int,
        task_kind: str,
        score: float,
        is_correct: bool,
    ) -> Attempt:
        """Add one graded answer to the session's attempt, creating it on first use.

        Repeated submissions are not deduplicated: each call counts.
        """
        attempt = self.get_attempt(user_id, attempt_id)
        if attempt is None:
            attempt = Attempt(
                attempt_id=attempt_id,
                user_id=user_id,
                language_id=language_id,
                module_id=module_id,
                level_id=level_id,
                task_kind=task_kind,
                date=datetime.now(UTC),
                score=score,
                correct_answers=1 if is_correct else 0,
                total_answers=1,
            )
            self.db.add(attempt)
            try:
                self.db.commit()
            except IntegrityError:
                # Another request created the session first; count on top of it
                self.db.rollback()
                attempt = self.get_attempt(user_id, attempt_id)
                if attempt is None:
                    raise
            else:
                self.db.refresh(attempt)
                logger.info(f"Attempt {attempt_id} created for user {user_id}")
                return attempt

        # Increment in SQL so concurrent submissions to one session both land
        self.db.query(Attempt).filter(Attempt.id == attempt.id).update(
            {
                Attempt.score: Attempt.score + score,
                Attempt.correct_answers: Attempt.correct_answers + (1 if is_correct else 0),
                Attempt.total_answers: Attempt.total_answers + 1,
            },
            synchronize_session=False,
        )
        self.db.commit()
        self.db.refresh(attempt)
        return attempt
