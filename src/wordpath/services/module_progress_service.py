"""Module progress service for aggregate scores and module unlocks."""
import logging
from typing import Optional

from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from wordpath import monitoring
from wordpath.config import settings
from wordpath.models.models import Level, Module, ModuleProgress
from wordpath.services.catalog_service import CatalogService
from wordpath.services.level_progress_service import LevelProgressService

logger = logging.getLogger(__name__)


def level_percent(best_score: float, required_score: float) -> float:
    """Share of a level's threshold reached, capped at the maximum score."""
    max_score = settings.progression.max_score
    if required_score <= 0:
        return max_score
    return min(best_score / required_score, 1.0) * max_score


class ModuleProgressService:
    """Service for recomputing module progress and running module unlocks."""

    def __init__(
        self,
        db: Session,
        catalog: Optional[CatalogService] = None,
        level_progress: Optional[LevelProgressService] = None,
    ):
        """Initialize the service with a database session."""
        self.db = db
        self.catalog = catalog or CatalogService(db)
        self.level_progress = level_progress or LevelProgressService(db, self.catalog)

    def _query(self, user_id: int, language_id: int, module_id: int):
        return self.db.query(ModuleProgress).filter(
            and_(
                ModuleProgress.user_id == user_id,
                ModuleProgress.language_id == language_id,
                ModuleProgress.module_id == module_id,
            )
        )

    def get_module_progress(
        self, user_id: int, language_id: int, module_id: int
    ) -> Optional[ModuleProgress]:
        return self._query(user_id, language_id, module_id).first()

    def _create_or_get(
        self,
        user_id: int,
        language_id: int,
        module: Module,
        unlocked: bool,
        total_levels: int,
    ) -> tuple[ModuleProgress, bool]:
        """Insert a module progress row, or return the one that won the race."""
        progress = ModuleProgress(
            user_id=user_id,
            language_id=language_id,
            module_id=module.id,
            total_levels=total_levels,
            completed_levels=0,
            total_score=0.0,
            unlocked=unlocked,
            achievements=[],
        )
        self.db.add(progress)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.get_module_progress(user_id, language_id, module.id)
            if existing is None:
                raise
            return existing, False
        self.db.refresh(progress)
        return progress, True

    def _score_levels(
        self, user_id: int, language_id: int, module: Module, levels: list[Level]
    ) -> tuple[int, float]:
        """Re-derive completed level count and total score from level progress."""
        best_scores = {
            progress.level_id: progress.best_score
            for progress in self.level_progress.get_module_level_progress(user_id, language_id, module.id)
        }
        completed_levels = 0
        percent_sum = 0.0
        for level in levels:
            best_score = best_scores.get(level.id, 0.0)
            if level.id in best_scores and best_score >= level.required_score:
                completed_levels += 1
            percent_sum += level_percent(best_score, level.required_score)
        total_score = percent_sum / len(levels) if levels else 0.0
        return completed_levels, total_score

    def recompute_module(self, user_id: int, language_id: int, module: Module) -> ModuleProgress:
        """Recompute a learner's module progress from scratch.

        Values are re-derived rather than incremented, so calling this again
        without a level change leaves the row as it is. The unlock flag is only
        chosen on creation and never cleared.
        """
        levels = self.catalog.get_levels(module.id)
        progress = self._query(user_id, language_id, module.id).with_for_update().first()
        if progress is None:
            progress, _ = self._create_or_get(
                user_id,
                language_id,
                module,
                unlocked=module.order == 1,
                total_levels=len(levels),
            )
            progress = self._query(user_id, language_id, module.id).with_for_update().first()

        completed_levels, total_score = self._score_levels(user_id, language_id, module, levels)
        progress.total_levels = len(levels)
        progress.completed_levels = completed_levels
        progress.total_score = total_score

        achievement = settings.progression.module_completed_achievement
        achievements = list(progress.achievements or [])
        if total_score >= module.required_score and achievement not in achievements:
            progress.achievements = achievements + [achievement]
            logger.info(f"Module {module.id} completed by user {user_id}")

        self.db.commit()
        self.db.refresh(progress)
        return progress

    def _set_unlocked(self, progress: ModuleProgress) -> bool:
        """Set the unlock flag. Returns True if this call flipped it."""
        updated = (
            self.db.query(ModuleProgress)
            .filter(and_(ModuleProgress.id == progress.id, ModuleProgress.unlocked == False))  # noqa: E712
            .update({ModuleProgress.unlocked: True}, synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(progress)
        return bool(updated)

    def unlock_module(self, user_id: int, language_id: int, module: Module) -> ModuleProgress:
        """Make a module reachable and seed its levels if it has none."""
        progress = self.get_module_progress(user_id, language_id, module.id)
        if progress is None:
            progress, created = self._create_or_get(
                user_id,
                language_id,
                module,
                unlocked=True,
                total_levels=self.catalog.count_levels_in_module(module.id),
            )
            if created:
                monitoring.modules_unlocked.inc()
                logger.info(f"Module {module.id} unlocked for user {user_id}")
                self.level_progress.bootstrap_levels(user_id, language_id, module)
                return progress

        if progress.unlocked:
            return progress

        if self._set_unlocked(progress):
            monitoring.modules_unlocked.inc()
            logger.info(f"Module {module.id} unlocked for user {user_id}")
        if not self.level_progress.get_module_level_progress(user_id, language_id, module.id):
            self.level_progress.bootstrap_levels(user_id, language_id, module)
        return progress

    def unlock_next_module(
        self, user_id: int, language_id: int, module: Module, progress: ModuleProgress
    ) -> Optional[ModuleProgress]:
        """Unlock the module after ``module`` once its score reaches the threshold."""
        if progress.total_score < module.required_score:
            return None
        next_module = self.catalog.next_module(language_id, module.order)
        if next_module is None:
            return None
        return self.unlock_module(user_id, language_id, next_module)

    def bootstrap_module(self, user_id: int, language_id: int, module: Module) -> ModuleProgress:
        """Seed module and level progress for a module the learner starts on."""
        progress = self.get_module_progress(user_id, language_id, module.id)
        if progress is None:
            progress, _ = self._create_or_get(
                user_id,
                language_id,
                module,
                unlocked=module.order == 1,
                total_levels=self.catalog.count_levels_in_module(module.id),
            )
        self.level_progress.bootstrap_levels(user_id, language_id, module)
        return progress
