"""Level progress service for best scores and level unlocks."""
import logging
from typing import List, Optional

from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wordpath import monitoring
from wordpath.models.models import Level, LevelProgress, Module
from wordpath.models.progression_models import LevelOutcome
from wordpath.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)


class LevelProgressService:
    """Service for tracking per-level mastery."""

    def __init__(self, db: Session, catalog: Optional[CatalogService] = None):
        """Initialize the service with a database session."""
        self.db = db
        self.catalog = catalog or CatalogService(db)

    def _key_filter(self, user_id: int, language_id: int, module_id: int, level_id: int):
        return and_(
            LevelProgress.user_id == user_id,
            LevelProgress.language_id == language_id,
            LevelProgress.module_id == module_id,
            LevelProgress.level_id == level_id,
        )

    def get_level_progress(
        self, user_id: int, language_id: int, module_id: int, level_id: int
    ) -> Optional[LevelProgress]:
        return (
            self.db.query(LevelProgress)
            .filter(self._key_filter(user_id, language_id, module_id, level_id))
            .first()
        )

    def get_module_level_progress(
        self, user_id: int, language_id: int, module_id: int
    ) -> List[LevelProgress]:
        """Get every level progress row the learner has in a module."""
        return (
            self.db.query(LevelProgress)
            .filter(
                and_(
                    LevelProgress.user_id == user_id,
                    LevelProgress.language_id == language_id,
                    LevelProgress.module_id == module_id,
                )
            )
            .all()
        )

    def _create_or_get(
        self,
        user_id: int,
        language_id: int,
        module_id: int,
        level_id: int,
        best_score: float,
        unlocked: bool,
    ) -> tuple[LevelProgress, bool]:
        """Insert a progress row, or return the one a concurrent request inserted.

        Returns the row and whether this call created it.
        """
        progress = LevelProgress(
            user_id=user_id,
            language_id=language_id,
            module_id=module_id,
            level_id=level_id,
            best_score=best_score,
            unlocked=unlocked,
        )
        self.db.add(progress)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.get_level_progress(user_id, language_id, module_id, level_id)
            if existing is None:
                raise
            return existing, False
        self.db.refresh(progress)
        return progress, True

    def _raise_best_score(self, progress: LevelProgress, score: float) -> None:
        """Raise the best score only if ``score`` improves on the stored one."""
        updated = (
            self.db.query(LevelProgress)
            .filter(and_(LevelProgress.id == progress.id, LevelProgress.best_score < score))
            .update({LevelProgress.best_score: score}, synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(progress)
        if updated:
            logger.info(f"Level {progress.level_id} best score for user {progress.user_id} raised to {score:.2f}")

    def _set_unlocked(self, progress: LevelProgress) -> bool:
        """Set the unlock flag. Returns True if this call flipped it."""
        updated = (
            self.db.query(LevelProgress)
            .filter(and_(LevelProgress.id == progress.id, LevelProgress.unlocked == False))  # noqa: E712
            .update({LevelProgress.unlocked: True}, synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(progress)
        return bool(updated)

    def record_level_attempt(
        self,
        user_id: int,
        language_id: int,
        module: Module,
        level: Level,
        attempt_score: float,
    ) -> LevelOutcome:
        """Record an attempt score against a level and decide completion."""
        progress = self.get_level_progress(user_id, language_id, module.id, level.id)
        created = False
        if progress is None:
            progress, created = self._create_or_get(
                user_id,
                language_id,
                module.id,
                level.id,
                best_score=attempt_score,
                unlocked=level.order == 1 and module.order == 1,
            )
        previous_best = None if created else progress.best_score
        if not created:
            self._raise_best_score(progress, attempt_score)

        level_completed = progress.best_score >= level.required_score
        if level_completed and not progress.unlocked:
            self._set_unlocked(progress)

        # Count a completion once, when the best score first reaches the threshold
        if level_completed and (previous_best is None or previous_best < level.required_score):
            monitoring.levels_completed.inc()
            logger.info(f"Level {level.id} completed by user {user_id} with {progress.best_score:.2f}")
        return LevelOutcome(progress=progress, level_completed=level_completed)

    def unlock_level(
        self, user_id: int, language_id: int, module_id: int, level: Level
    ) -> LevelProgress:
        """Make a level reachable, creating its progress row if needed."""
        progress = self.get_level_progress(user_id, language_id, module_id, level.id)
        if progress is None:
            progress, created = self._create_or_get(
                user_id, language_id, module_id, level.id, best_score=0.0, unlocked=True
            )
            if created:
                monitoring.levels_unlocked.inc()
                logger.info(f"Level {level.id} unlocked for user {user_id}")
                return progress
        if self._set_unlocked(progress):
            monitoring.levels_unlocked.inc()
            logger.info(f"Level {level.id} unlocked for user {user_id}")
        return progress

    def unlock_next_level(
        self, user_id: int, language_id: int, module_id: int, level: Level
    ) -> Optional[LevelProgress]:
        """Unlock the level after ``level`` in the same module, if there is one."""
        next_level = self.catalog.next_level(module_id, level.order)
        if next_level is None:
            return None
        return self.unlock_level(user_id, language_id, module_id, next_level)

    def bootstrap_levels(
        self, user_id: int, language_id: int, module: Module
    ) -> List[LevelProgress]:
        """Seed a progress row for every level of a module.

        Only the first level starts unlocked. Rows that already exist are kept
        as they are.
        """
        existing = {
            progress.level_id: progress
            for progress in self.get_module_level_progress(user_id, language_id, module.id)
        }
        seeded = []
        for level in self.catalog.get_levels(module.id):
            progress = existing.get(level.id)
            if progress is None:
                progress, _ = self._create_or_get(
                    user_id,
                    language_id,
                    module.id,
                    level.id,
                    best_score=0.0,
                    unlocked=level.order == 1,
                )
            seeded.append(progress)
        logger.info(f"Seeded {len(seeded)} levels of module {module.id} for user {user_id}")
        return seeded
