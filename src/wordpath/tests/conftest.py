"""Test configuration."""
import os
from types import SimpleNamespace
from typing import Generator

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from faker import Faker
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Import after environment setup
from wordpath.catalog_loader import load_catalog
from wordpath.models.base import init_db
from wordpath.models.models import Card, Language, Level, Module, User, Word

fake = Faker()

# Module 1 has five cards so four correct answers score exactly 80.
MODULE_1_CARDS = [
    ("hello", "hola"),
    ("cat", "gato"),
    ("dog", "perro"),
    ("house", "casa"),
    ("water", "agua"),
]
MODULE_2_CARDS = [
    ("red", "rojo"),
    ("blue", "azul"),
    ("green", "verde"),
    ("black", "negro"),
]


def catalog_data() -> dict:
    """Two Spanish modules of three levels each, plus an unrelated French module."""
    levels = [
        {"order": 1, "tasks": "flash", "required_score": 80},
        {"order": 2, "tasks": "test", "required_score": 80},
        {"order": 3, "tasks": "dictation", "required_score": 80},
    ]
    cards = []
    for index, (english, spanish) in enumerate(MODULE_1_CARDS):
        first = {"language": "en", "text": english}
        second = {"language": "es", "text": spanish}
        # Store one card the other way round
        if index == 2:
            first, second = second, first
        cards.append({"first": first, "second": second, "modules": [{"language": "es", "order": 1}]})
    for english, spanish in MODULE_2_CARDS:
        cards.append({
            "first": {"language": "en", "text": english},
            "second": {"language": "es", "text": spanish},
            "modules": [{"language": "es", "order": 2}],
        })
    cards.append({
        "first": {"language": "en", "text": "bread"},
        "second": {"language": "fr", "text": "pain"},
        "modules": [{"language": "fr", "order": 1}],
    })
    return {
        "languages": [
            {"code": "en", "name": "English"},
            {"code": "es", "name": "Español"},
            {"code": "fr", "name": "Français"},
        ],
        "modules": [
            {"language": "es", "name": "Basics", "order": 1, "required_score": 80, "levels": levels},
            {"language": "es", "name": "Colours", "order": 2, "required_score": 80, "levels": levels},
            {"language": "fr", "name": "Food", "order": 1, "required_score": 80, "levels": levels[:1]},
        ],
        "cards": cards,
    }


@pytest.fixture
def engine() -> Engine:
    """Create an in-memory database shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine: Engine) -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def other_db(engine: Engine) -> Generator[Session, None, None]:
    """Create a second session on the same database, standing in for a concurrent request."""
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def catalog(db: Session) -> SimpleNamespace:
    """Load the test catalog and expose its entities."""
    load_catalog(db, catalog_data())

    def language(code: str) -> Language:
        return db.query(Language).filter(Language.code == code).one()

    def module(code: str, order: int) -> Module:
        return db.query(Module).filter(Module.language_id == language(code).id, Module.order == order).one()

    def levels(mod: Module) -> list[Level]:
        return db.query(Level).filter(Level.module_id == mod.id).order_by(Level.order).all()

    def card(spanish: str) -> Card:
        word = db.query(Word).filter(Word.text == spanish).one()
        return db.query(Card).filter((Card.first_word_id == word.id) | (Card.second_word_id == word.id)).one()

    en, es, fr = language("en"), language("es"), language("fr")
    module_1, module_2 = module("es", 1), module("es", 2)
    return SimpleNamespace(
        en=en,
        es=es,
        fr=fr,
        module_1=module_1,
        module_2=module_2,
        french_module=module("fr", 1),
        levels_1=levels(module_1),
        levels_2=levels(module_2),
        cards_1=[card(spanish) for _, spanish in MODULE_1_CARDS],
        cards_2=[card(spanish) for _, spanish in MODULE_2_CARDS],
        card=card,
        module_1_cards=MODULE_1_CARDS,
        module_2_cards=MODULE_2_CARDS,
    )


@pytest.fixture
def user(db: Session, catalog: SimpleNamespace) -> User:
    """Create a learner with English as native language, learning Spanish."""
    user = User(username=fake.user_name(), native_language_id=catalog.en.id)
    user.learning_languages = [catalog.es]
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
