"""Read-only access to catalog data and learner language membership."""
import logging
from typing import List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from wordpath.exceptions import InvariantViolationError
from wordpath.models.models import (
    Card,
    Language,
    Level,
    Module,
    User,
    Word,
    card_modules,
)
from wordpath.models.progression_models import CardFace

logger = logging.getLogger(__name__)


class CatalogService:
    """Lookups over languages, modules, levels, words and cards."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_language(self, language_id: int) -> Optional[Language]:
        return self.db.query(Language).filter(Language.id == language_id).first()

    def get_module(self, module_id: int) -> Optional[Module]:
        return self.db.query(Module).filter(Module.id == module_id).first()

    def get_level(self, level_id: int) -> Optional[Level]:
        return self.db.query(Level).filter(Level.id == level_id).first()

    def get_card(self, card_id: int) -> Optional[Card]:
        return self.db.query(Card).filter(Card.id == card_id).first()

    def get_word(self, word_id: int) -> Optional[Word]:
        return self.db.query(Word).filter(Word.id == word_id).first()

    def get_levels(self, module_id: int) -> List[Level]:
        """Get the levels of a module in order."""
        return (
            self.db.query(Level)
            .filter(Level.module_id == module_id)
            .order_by(Level.order)
            .all()
        )

    def get_first_module(self, language_id: int) -> Optional[Module]:
        """Get the lowest-ordered module of a language."""
        return (
            self.db.query(Module)
            .filter(Module.language_id == language_id)
            .order_by(Module.order)
            .first()
        )

    def count_levels_in_module(self, module_id: int) -> int:
        return self.db.query(Level).filter(Level.module_id == module_id).count()

    def next_level(self, module_id: int, order: int) -> Optional[Level]:
        """Get the level following ``order`` in the same module."""
        return (
            self.db.query(Level)
            .filter(and_(Level.module_id == module_id, Level.order == order + 1))
            .first()
        )

    def next_module(self, language_id: int, order: int) -> Optional[Module]:
        """Get the module following ``order`` in the same language."""
        return (
            self.db.query(Module)
            .filter(and_(Module.language_id == language_id, Module.order == order + 1))
            .first()
        )

    def learner_has_language_access(self, user: User, language_id: int) -> bool:
        """Check the language is the learner's native or a learning language."""
        if user.native_language_id == language_id:
            return True
        return language_id in user.learning_language_ids

    def _pair_filter(self, native_language_id: int, learning_language_id: int):
        """Filter for cards pairing a native word with a learning word, either way round."""
        native_ids = select(Word.id).where(Word.language_id == native_language_id)
        learning_ids = select(Word.id).where(Word.language_id == learning_language_id)
        return or_(
            and_(Card.first_word_id.in_(native_ids), Card.second_word_id.in_(learning_ids)),
            and_(Card.first_word_id.in_(learning_ids), Card.second_word_id.in_(native_ids)),
        )

    def module_cards_query(self, module_id: int, native_language_id: int, learning_language_id: int):
        return (
            self.db.query(Card)
            .join(card_modules, card_modules.c.card_id == Card.id)
            .filter(
                card_modules.c.module_id == module_id,
                self._pair_filter(native_language_id, learning_language_id),
            )
        )

    def count_cards_in_module(
        self, module_id: int, native_language_id: int, learning_language_id: int
    ) -> int:
        """Count the module's cards that pair the two languages."""
        return self.module_cards_query(module_id, native_language_id, learning_language_id).count()

    def find_module_card(
        self,
        card_id: int,
        module_id: int,
        native_language_id: int,
        learning_language_id: int,
    ) -> Optional[Card]:
        """Get a card only if it belongs to the module and pairs the two languages."""
        return (
            self.module_cards_query(module_id, native_language_id, learning_language_id)
            .filter(Card.id == card_id)
            .first()
        )

    def resolve_card_face(
        self, card: Card, native_language_id: int, learning_language_id: int
    ) -> CardFace:
        """Orient a card as native source and learning target."""
        first_word = self.get_word(card.first_word_id)
        second_word = self.get_word(card.second_word_id)
        if not first_word or not second_word:
            raise InvariantViolationError(f"Word not found in card {card.id}")

        native_word = first_word if first_word.language_id == native_language_id else second_word
        learning_word = first_word if first_word.language_id == learning_language_id else second_word
        if native_word.language_id != native_language_id or \
           learning_word.language_id != learning_language_id:
            raise InvariantViolationError(
                f"Card {card.id} does not pair languages {native_language_id} and {learning_language_id}"
            )

        return CardFace(
            card_id=card.id,
            source=native_word.text,
            target=learning_word.text,
            example=card.example,
        )
