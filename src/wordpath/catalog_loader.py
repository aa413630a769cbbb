"""Seed catalog data from a JSON document.

Expected shape::

    {
      "languages": [{"code": "en", "name": "English"}, ...],
      "modules": [
        {"language": "es", "name": "Basics", "order": 1, "required_score": 80,
         "levels": [{"order": 1, "tasks": "flash", "required_score": 80}, ...]}
      ],
      "cards": [
        {"first": {"language": "en", "text": "hello"},
         "second": {"language": "es", "text": "hola"},
         "example": "Hola, amigo",
         "modules": [{"language": "es", "order": 1}]}
      ],
      "users": [{"username": "ana", "native": "en", "learning": ["es"]}]
    }
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from sqlalchemy.orm import Session

from wordpath.config import TASK_KINDS, settings
from wordpath.models.models import Card, Language, Level, Module, User, Word

logger = logging.getLogger(__name__)


class CatalogLoader:
    """Inserts catalog entities, reusing ones that already exist."""

    def __init__(self, db: Session):
        self.db = db
        self.languages: Dict[str, Language] = {}

    def language(self, code: str) -> Language:
        if code not in self.languages:
            language = self.db.query(Language).filter(Language.code == code).first()
            if language is None:
                raise ValueError(f"Language {code} not found")
            self.languages[code] = language
        return self.languages[code]

    def word(self, language_code: str, text: str) -> Word:
        language = self.language(language_code)
        word = self.db.query(Word).filter(Word.language_id == language.id, Word.text == text).first()
        if word is None:
            word = Word(text=text, language_id=language.id)
            self.db.add(word)
            self.db.flush()
        return word

    def module(self, language_code: str, order: int) -> Module:
        language = self.language(language_code)
        module = (
            self.db.query(Module)
            .filter(Module.language_id == language.id, Module.order == order)
            .first()
        )
        if module is None:
            raise ValueError(f"Module {order} of language {language_code} not found")
        return module

    def load_languages(self, items: list) -> int:
        count = 0
        for item in items:
            if self.db.query(Language).filter(Language.code == item["code"]).first():
                continue
            self.db.add(Language(code=item["code"], name=item.get("name", item["code"])))
            count += 1
        self.db.flush()
        return count

    def load_modules(self, items: list) -> tuple[int, int]:
        modules = levels = 0
        default_score = settings.progression.default_required_score
        for item in items:
            language = self.language(item["language"])
            module = (
                self.db.query(Module)
                .filter(Module.language_id == language.id, Module.order == item["order"])
                .first()
            )
            if module is None:
                module = Module(
                    name=item["name"],
                    description=item.get("description", ""),
                    language_id=language.id,
                    order=item["order"],
                    required_score=item.get("required_score", default_score),
                    words_count=item.get("words_count", 0),
                )
                self.db.add(module)
                self.db.flush()
                modules += 1
            for level_item in item.get("levels", []):
                if level_item["tasks"] not in TASK_KINDS:
                    raise ValueError(f"Unknown task kind: {level_item['tasks']}")
                exists = (
                    self.db.query(Level)
                    .filter(Level.module_id == module.id, Level.order == level_item["order"])
                    .first()
                )
                if exists:
                    continue
                self.db.add(
                    Level(
                        module_id=module.id,
                        order=level_item["order"],
                        tasks=level_item["tasks"],
                        required_score=level_item.get("required_score", default_score),
                    )
                )
                levels += 1
            self.db.flush()
        return modules, levels

    def load_cards(self, items: list) -> int:
        count = 0
        for item in items:
            first = self.word(item["first"]["language"], item["first"]["text"])
            second = self.word(item["second"]["language"], item["second"]["text"])
            if first.id == second.id:
                raise ValueError("Cannot create a card with the same word as original and translation")
            card = (
                self.db.query(Card)
                .filter(Card.first_word_id == first.id, Card.second_word_id == second.id)
                .first()
            )
            if card is None:
                card = Card(first_word_id=first.id, second_word_id=second.id, example=item.get("example"))
                self.db.add(card)
                count += 1
            for ref in item.get("modules", []):
                module = self.module(ref["language"], ref["order"])
                if module not in card.modules:
                    card.modules.append(module)
            self.db.flush()
        return count

    def load_users(self, items: list) -> int:
        count = 0
        for item in items:
            if self.db.query(User).filter(User.username == item["username"]).first():
                continue
            user = User(username=item["username"])
            if item.get("native"):
                user.native_language_id = self.language(item["native"]).id
            user.learning_languages = [self.language(code) for code in item.get("learning", [])]
            self.db.add(user)
            count += 1
        self.db.flush()
        return count


def load_catalog(db: Session, data: Dict[str, Any]) -> Dict[str, int]:
    """Insert the catalog described by ``data`` and commit.

    Returns the number of new rows per entity.
    """
    loader = CatalogLoader(db)
    try:
        counts = {"languages": loader.load_languages(data.get("languages", []))}
        counts["modules"], counts["levels"] = loader.load_modules(data.get("modules", []))
        counts["cards"] = loader.load_cards(data.get("cards", []))
        counts["users"] = loader.load_users(data.get("users", []))
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Catalog loaded: {counts}")
    return counts


def load_catalog_file(db: Session, path: Union[str, Path]) -> Dict[str, int]:
    """Load a catalog from a JSON file."""
    with open(path, encoding="utf-8") as f:
        return load_catalog(db, json.load(f))
