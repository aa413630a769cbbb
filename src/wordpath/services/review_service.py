"""Review service for assembling cards into a review session."""
import logging
import random
from typing import Optional

from sqlalchemy.orm import Session

from wordpath.config import settings
from wordpath.exceptions import AccessDeniedError, NotFoundError
from wordpath.models.models import Word
from wordpath.models.progression_models import ReviewCard, ReviewOption, ReviewSession
from wordpath.services.attempt_service import new_attempt_id
from wordpath.services.catalog_service import CatalogService
from wordpath.services.module_progress_service import ModuleProgressService

logger = logging.getLogger(__name__)


class ReviewService:
    """Service for building review sessions over an unlocked module."""

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        """Initialize the service with a database session."""
        self.db = db
        self.rng = rng or random.Random()
        self.catalog = CatalogService(db)
        self.module_progress = ModuleProgressService(db, self.catalog)

    def _options(self, correct: str, language_id: int) -> list[ReviewOption]:
        """Shuffle the correct text with distractors from the same language."""
        texts = {
            text
            for (text,) in self.db.query(Word.text).filter(Word.language_id == language_id).all()
            if text != correct
        }
        distractors = self.rng.sample(sorted(texts), min(len(texts), settings.progression.review_options))
        options = [ReviewOption(text=correct, is_correct=True)]
        options.extend(ReviewOption(text=text, is_correct=False) for text in distractors)
        self.rng.shuffle(options)
        return options

    def get_review_cards(self, user_id: int, language_id: int, module_id: int) -> ReviewSession:
        """Get every card of an unlocked module plus a new session id."""
        user = self.catalog.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        if not self.catalog.get_language(language_id):
            raise NotFoundError("Language not found")
        module = self.catalog.get_module(module_id)
        if not module:
            raise NotFoundError("Module not found")
        if user.native_language_id is None:
            raise NotFoundError("User has no native language set")
        if not self.catalog.learner_has_language_access(user, language_id):
            raise AccessDeniedError("Access to this language is restricted")

        progress = self.module_progress.get_module_progress(user_id, language_id, module_id)
        if not progress or not progress.unlocked:
            raise AccessDeniedError("Module is locked")

        cards = []
        for card in self.catalog.module_cards_query(module_id, user.native_language_id, language_id).all():
            face = self.catalog.resolve_card_face(card, user.native_language_id, language_id)
            cards.append(
                ReviewCard(
                    card_id=card.id,
                    module_id=module_id,
                    original=face.target,
                    translation=face.source,
                    example=face.example,
                    options=self._options(face.target, language_id),
                )
            )
        attempt_id = new_attempt_id()
        logger.info(f"Review session {attempt_id} with {len(cards)} cards for user {user_id}")
        return ReviewSession(attempt_id=attempt_id, cards=cards)
