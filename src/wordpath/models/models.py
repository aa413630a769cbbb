"""Database models for the catalog and learner progress."""
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from wordpath.models.base import Base, TimestampMixin

user_learning_languages = Table(
    "user_learning_languages",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("language_id", Integer, ForeignKey("languages.id", ondelete="CASCADE"), primary_key=True),
)

card_modules = Table(
    "card_modules",
    Base.metadata,
    Column("card_id", Integer, ForeignKey("cards.id", ondelete="CASCADE"), primary_key=True),
    Column("module_id", Integer, ForeignKey("modules.id", ondelete="CASCADE"), primary_key=True),
)


class Language(Base, TimestampMixin):
    """Language model."""

    __tablename__ = "languages"

    id = Column(Integer, primary_key=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)

    # Relationships
    modules = relationship("Module", back_populates="language", order_by="Module.order")
    words = relationship("Word", back_populates="language")


class User(Base, TimestampMixin):
    """Learner model."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False)
    native_language_id = Column(Integer, ForeignKey("languages.id"), nullable=True)

    # Relationships
    native_language = relationship("Language", foreign_keys=[native_language_id])
    learning_languages = relationship("Language", secondary=user_learning_languages)
    attempts = relationship("Attempt", back_populates="user")

    @property
    def learning_language_ids(self) -> list[int]:
        return [language.id for language in self.learning_languages]


class Word(Base, TimestampMixin):
    """Word model."""

    __tablename__ = "words"
    __table_args__ = (UniqueConstraint("text", "language_id"),)

    id = Column(Integer, primary_key=True)
    text = Column(String, nullable=False)
    language_id = Column(Integer, ForeignKey("languages.id"), nullable=False, index=True)

    # Relationships
    language = relationship("Language", back_populates="words")


class Module(Base, TimestampMixin):
    """Ordered group of levels within a language."""

    __tablename__ = "modules"
    __table_args__ = (UniqueConstraint("language_id", "order"),)

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String, default="")
    language_id = Column(Integer, ForeignKey("languages.id"), nullable=False)
    order = Column(Integer, nullable=False)
    required_score = Column(Float, default=80)
    words_count = Column(Integer, default=0)

    # Relationships
    language = relationship("Language", back_populates="modules")
    levels = relationship("Level", back_populates="module", order_by="Level.order")
    cards = relationship("Card", secondary=card_modules, back_populates="modules")


class Level(Base, TimestampMixin):
    """Ordered exercise unit within a module."""

    __tablename__ = "levels"
    __table_args__ = (UniqueConstraint("module_id", "order"),)

    id = Column(Integer, primary_key=True)
    module_id = Column(Integer, ForeignKey("modules.id"), nullable=False)
    order = Column(Integer, nullable=False)
    tasks = Column(String, nullable=False)  # flash, test, dictation
    required_score = Column(Float, default=80)

    # Relationships
    module = relationship("Module", back_populates="levels")


class Card(Base, TimestampMixin):
    """Word pair quizzed inside one or more modules."""

    __tablename__ = "cards"
    __table_args__ = (UniqueConstraint("first_word_id", "second_word_id"),)

    id = Column(Integer, primary_key=True)
    first_word_id = Column(Integer, ForeignKey("words.id"), nullable=False, index=True)
    second_word_id = Column(Integer, ForeignKey("words.id"), nullable=False, index=True)
    example = Column(String, nullable=True)

    # Relationships
    first_word = relationship("Word", foreign_keys=[first_word_id])
    second_word = relationship("Word", foreign_keys=[second_word_id])
    modules = relationship("Module", secondary=card_modules, back_populates="cards")


class Attempt(Base, TimestampMixin):
    """Accumulated result of one review session."""

    __tablename__ = "attempts"
    __table_args__ = (UniqueConstraint("user_id", "attempt_id"),)

    id = Column(Integer, primary_key=True)
    attempt_id = Column(String, nullable=False)  # client-side session identifier
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    language_id = Column(Integer, ForeignKey("languages.id"), nullable=False)
    module_id = Column(Integer, ForeignKey("modules.id"), nullable=False)
    level_id = Column(Integer, ForeignKey("levels.id"), nullable=False)
    task_kind = Column(String, nullable=False)
    date = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    score = Column(Float, default=0.0)
    correct_answers = Column(Integer, default=0)
    total_answers = Column(Integer, default=0)

    # Relationships
    user = relationship("User", back_populates="attempts")
    language = relationship("Language")
    module = relationship("Module")
    level = relationship("Level")


class LevelProgress(Base, TimestampMixin):
    """Best score and unlock flag of a learner on one level."""

    __tablename__ = "level_progress"
    __table_args__ = (UniqueConstraint("user_id", "language_id", "module_id", "level_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    language_id = Column(Integer, ForeignKey("languages.id"), nullable=False)
    module_id = Column(Integer, ForeignKey("modules.id"), nullable=False)
    level_id = Column(Integer, ForeignKey("levels.id"), nullable=False)
    best_score = Column(Float, default=0.0, nullable=False)
    unlocked = Column(Boolean, default=False, nullable=False)

    # Relationships
    level = relationship("Level")


class ModuleProgress(Base, TimestampMixin):
    """Aggregate completion of a learner on one module."""

    __tablename__ = "module_progress"
    __table_args__ = (UniqueConstraint("user_id", "language_id", "module_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    language_id = Column(Integer, ForeignKey("languages.id"), nullable=False)
    module_id = Column(Integer, ForeignKey("modules.id"), nullable=False)
    total_levels = Column(Integer, default=0, nullable=False)
    completed_levels = Column(Integer, default=0, nullable=False)
    total_score = Column(Float, default=0.0, nullable=False)
    unlocked = Column(Boolean, default=False, nullable=False)
    achievements = Column(JSON, default=list, nullable=False)

    # Relationships
    module = relationship("Module")
