"""Language progress service for reading progress and enrolling learners."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from wordpath.exceptions import AccessDeniedError, NotFoundError
from wordpath.models.models import Level, LevelProgress, Module, ModuleProgress, User
from wordpath.models.progression_models import (
    LanguageProgress,
    LevelProgressView,
    ModuleProgressView,
)
from wordpath.services.catalog_service import CatalogService
from wordpath.services.module_progress_service import ModuleProgressService

logger = logging.getLogger(__name__)


class LanguageProgressService:
    """Service for a learner's progress across a language."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db
        self.catalog = CatalogService(db)
        self.module_progress = ModuleProgressService(db, self.catalog)

    def _get_user(self, user_id: int) -> User:
        user = self.catalog.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def get_language_progress(
        self,
        user_id: int,
        language_id: Optional[int] = None,
        module_id: Optional[int] = None,
    ) -> LanguageProgress:
        """Get module and level progress rows with their catalog labels."""
        user = self._get_user(user_id)
        if language_id is not None:
            if not self.catalog.get_language(language_id):
                raise NotFoundError("Language not found")
            if not self.catalog.learner_has_language_access(user, language_id):
                raise AccessDeniedError("Access to this language is restricted")
        if module_id is not None and not self.catalog.get_module(module_id):
            raise NotFoundError("Module not found")

        module_query = (
            self.db.query(ModuleProgress, Module)
            .join(Module, Module.id == ModuleProgress.module_id)
            .filter(ModuleProgress.user_id == user_id)
        )
        level_query = (
            self.db.query(LevelProgress, Level)
            .join(Level, Level.id == LevelProgress.level_id)
            .filter(LevelProgress.user_id == user_id)
        )
        if language_id is not None:
            module_query = module_query.filter(ModuleProgress.language_id == language_id)
            level_query = level_query.filter(LevelProgress.language_id == language_id)
        if module_id is not None:
            module_query = module_query.filter(ModuleProgress.module_id == module_id)
            level_query = level_query.filter(LevelProgress.module_id == module_id)

        modules = [
            ModuleProgressView(
                id=progress.id,
                language_id=progress.language_id,
                module_id=module.id,
                module_name=module.name,
                module_order=module.order,
                required_score=module.required_score,
                total_levels=progress.total_levels,
                completed_levels=progress.completed_levels,
                total_score=progress.total_score,
                unlocked=progress.unlocked,
                achievements=list(progress.achievements or []),
            )
            for progress, module in module_query.order_by(Module.order).all()
        ]
        levels = [
            LevelProgressView(
                id=progress.id,
                language_id=progress.language_id,
                module_id=progress.module_id,
                level_id=level.id,
                level_order=level.order,
                tasks=level.tasks,
                required_score=level.required_score,
                best_score=progress.best_score,
                unlocked=progress.unlocked,
            )
            for progress, level in level_query.order_by(LevelProgress.module_id, Level.order).all()
        ]
        return LanguageProgress(modules=modules, levels=levels)

    def start_language(self, user_id: int, language_id: int) -> Optional[ModuleProgress]:
        """Add a learning language and seed progress for its first module.

        Returns the first module's progress, or None when the language has no
        module with levels yet.
        """
        user = self._get_user(user_id)
        language = self.catalog.get_language(language_id)
        if not language:
            raise NotFoundError("Language not found")

        if language_id not in user.learning_language_ids:
            user.learning_languages.append(language)
            self.db.commit()
            logger.info(f"User {user_id} started learning language {language_id}")

        first_module = self.catalog.get_first_module(language_id)
        if first_module is None:
            logger.warning(f"No modules found for language {language_id}")
            return None
        if self.catalog.count_levels_in_module(first_module.id) == 0:
            logger.warning(f"No levels found for module {first_module.id}")
            return None
        return self.module_progress.bootstrap_module(user_id, language_id, first_module)

    def stop_language(self, user_id: int, language_id: int) -> None:
        """Remove a learning language and drop the learner's progress in it.

        Attempts are kept.
        """
        user = self._get_user(user_id)
        user.learning_languages = [
            language for language in user.learning_languages if language.id != language_id
        ]
        deleted_modules = (
            self.db.query(ModuleProgress)
            .filter(ModuleProgress.user_id == user_id, ModuleProgress.language_id == language_id)
            .delete(synchronize_session=False)
        )
        deleted_levels = (
            self.db.query(LevelProgress)
            .filter(LevelProgress.user_id == user_id, LevelProgress.language_id == language_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info(
            f"User {user_id} stopped learning language {language_id}: "
            f"removed {deleted_modules} module and {deleted_levels} level progress rows"
        )
