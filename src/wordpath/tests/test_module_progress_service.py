"""Tests for module progress service."""
from types import SimpleNamespace

import pytest
from prometheus_client import REGISTRY
from sqlalchemy.orm import Session

from wordpath.models.models import LevelProgress, ModuleProgress, User
from wordpath.services.level_progress_service import LevelProgressService
from wordpath.services.module_progress_service import ModuleProgressService, level_percent


@pytest.fixture
def module_service(db: Session) -> ModuleProgressService:
    """Create a module progress service instance."""
    return ModuleProgressService(db)


@pytest.fixture
def level_service(module_service: ModuleProgressService) -> LevelProgressService:
    return module_service.level_progress


def test_level_percent() -> None:
    """Test a level contributes at most 100."""
    assert level_percent(40, 80) == 50
    assert level_percent(80, 80) == 100
    assert level_percent(100, 80) == 100
    assert level_percent(0, 80) == 0
    assert level_percent(10, 0) == 100


def test_recompute_creates_progress(
    module_service: ModuleProgressService, user: User, catalog: SimpleNamespace
) -> None:
    """Test the first recompute creates the row with the order-based unlock."""
    first = module_service.recompute_module(user.id, catalog.es.id, catalog.module_1)
    second = module_service.recompute_module(user.id, catalog.es.id, catalog.module_2)

    assert first.unlocked is True
    assert second.unlocked is False
    assert first.total_levels == 3
    assert first.completed_levels == 0
    assert first.total_score == 0
    assert first.achievements == []


def test_recompute_scores(
    module_service: ModuleProgressService, level_service: LevelProgressService, user: User, catalog: SimpleNamespace
) -> None:
    """Test completed levels and capped average score."""
    level_1, level_2, _ = catalog.levels_1
    level_service.record_level_attempt(user.id, catalog.es.id, catalog.module_1, level_1, 100)
    level_service.record_level_attempt(user.id, catalog.es.id, catalog.module_1, level_2, 40)

    progress = module_service.recompute_module(user.id, catalog.es.id, catalog.module_1)

    assert progress.completed_levels == 1
    # (100 + 50 + 0) / 3
    assert progress.total_score == pytest.approx(50)


def test_recompute_is_idempotent(
    module_service: ModuleProgressService, level_service: LevelProgressService, user: User, catalog: SimpleNamespace
) -> None:
    """Test recomputing without level changes yields the same row."""
    for level in catalog.levels_1:
        level_service.record_level_attempt(user.id, catalog.es.id, catalog.module_1, level, 90)

    def snapshot(progress: ModuleProgress) -> tuple:
        return (
            progress.id,
            progress.total_levels,
            progress.completed_levels,
            progress.total_score,
            progress.unlocked,
            list(progress.achievements),
        )

    first = snapshot(module_service.recompute_module(user.id, catalog.es.id, catalog.module_1))
    second = snapshot(module_service.recompute_module(user.id, catalog.es.id, catalog.module_1))

    assert first == second
    assert first[5] == ["module_completed"]


def test_recompute_keeps_unlock(
    db: Session, module_service: ModuleProgressService, user: User, catalog: SimpleNamespace
) -> None:
    """Test recompute never clears an unlocked module."""
    db.add(ModuleProgress(
        user_id=user.id,
        language_id=catalog.es.id,
        module_id=catalog.module_2.id,
        unlocked=True,
    ))
    db.commit()

    progress = module_service.recompute_module(user.id, catalog.es.id, catalog.module_2)
    assert progress.unlocked is True
    assert progress.total_levels == 3


def test_unlock_next_module_below_threshold(
    module_service: ModuleProgressService, level_service: LevelProgressService, user: User, catalog: SimpleNamespace
) -> None:
    """Test nothing is unlocked while the module score is short."""
    level_service.record_level_attempt(user.id, catalog.es.id, catalog.module_1, catalog.levels_1[0], 80)
    progress = module_service.recompute_module(user.id, catalog.es.id, catalog.module_1)

    assert module_service.unlock_next_module(user.id, catalog.es.id, catalog.module_1, progress) is None
    assert module_service.get_module_progress(user.id, catalog.es.id, catalog.module_2.id) is None


def test_unlock_next_module_creates_and_seeds(
    db: Session,
    module_service: ModuleProgressService,
    level_service: LevelProgressService,
    user: User,
    catalog: SimpleNamespace,
) -> None:
    """Test the next module is created unlocked with its levels seeded."""
    for level in catalog.levels_1:
        level_service.record_level_attempt(user.id, catalog.es.id, catalog.module_1, level, 80)
    progress = module_service.recompute_module(user.id, catalog.es.id, catalog.module_1)

    next_progress = module_service.unlock_next_module(user.id, catalog.es.id, catalog.module_1, progress)

    assert next_progress.module_id == catalog.module_2.id
    assert next_progress.unlocked is True
    assert next_progress.total_levels == 3
    rows = (
        db.query(LevelProgress)
        .filter(LevelProgress.user_id == user.id, LevelProgress.module_id == catalog.module_2.id)
        .all()
    )
    unlocked = {row.level_id: row.unlocked for row in rows}
    assert unlocked == {
        catalog.levels_2[0].id: True,
        catalog.levels_2[1].id: False,
        catalog.levels_2[2].id: False,
    }

    # Running the cascade again changes nothing
    again = module_service.unlock_next_module(user.id, catalog.es.id, catalog.module_1, progress)
    assert again.id == next_progress.id
    assert db.query(LevelProgress).filter(LevelProgress.module_id == catalog.module_2.id).count() == 3


def test_unlock_last_module_is_noop(
    module_service: ModuleProgressService, level_service: LevelProgressService, user: User, catalog: SimpleNamespace
) -> None:
    """Test completing the last module unlocks nothing."""
    for level in catalog.levels_2:
        level_service.record_level_attempt(user.id, catalog.es.id, catalog.module_2, level, 80)
    progress = module_service.recompute_module(user.id, catalog.es.id, catalog.module_2)

    assert progress.total_score == pytest.approx(100)
    assert module_service.unlock_next_module(user.id, catalog.es.id, catalog.module_2, progress) is None


def test_unlock_module_with_existing_levels_does_not_reseed(
    db: Session,
    module_service: ModuleProgressService,
    level_service: LevelProgressService,
    user: User,
    catalog: SimpleNamespace,
) -> None:
    """Test a locked module that already has level rows is only unlocked."""
    level_service.record_level_attempt(user.id, catalog.es.id, catalog.module_2, catalog.levels_2[1], 30)
    module_service.recompute_module(user.id, catalog.es.id, catalog.module_2)

    progress = module_service.unlock_module(user.id, catalog.es.id, catalog.module_2)

    assert progress.unlocked is True
    assert db.query(LevelProgress).filter(LevelProgress.module_id == catalog.module_2.id).count() == 1


def test_unlock_module_after_losing_insert_race(
    db: Session,
    other_db: Session,
    module_service: ModuleProgressService,
    user: User,
    catalog: SimpleNamespace,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Test a locked row inserted by another request is unlocked and seeded once."""
    ModuleProgressService(other_db).recompute_module(user.id, catalog.es.id, catalog.module_2)
    before = REGISTRY.get_sample_value("wordpath_modules_unlocked_total") or 0

    get_module_progress = module_service.get_module_progress
    reads = []

    def read_before_other_insert(*args):
        reads.append(args)
        if len(reads) == 1:
            return None
        return get_module_progress(*args)

    monkeypatch.setattr(module_service, "get_module_progress", read_before_other_insert)

    progress = module_service.unlock_module(user.id, catalog.es.id, catalog.module_2)

    assert progress.unlocked is True
    assert db.query(ModuleProgress).filter(ModuleProgress.module_id == catalog.module_2.id).count() == 1
    rows = db.query(LevelProgress).filter(LevelProgress.module_id == catalog.module_2.id).all()
    unlocked = {row.level_id: row.unlocked for row in rows}
    assert unlocked == {
        catalog.levels_2[0].id: True,
        catalog.levels_2[1].id: False,
        catalog.levels_2[2].id: False,
    }
    assert REGISTRY.get_sample_value("wordpath_modules_unlocked_total") == before + 1
