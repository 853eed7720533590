"""
Tests para MirrorSync: pasadas completas contra una fuente en memoria.
"""
from __future__ import annotations

import threading
from typing import List

import pytest
from sqlalchemy import func, select

from paprika_mirror.infrastructure.sync.entity_config import get_entity_config
from paprika_mirror.infrastructure.sync.source import SourceTransientError
from paprika_mirror.infrastructure.sync.sync_service import MirrorSync
from paprika_mirror.infrastructure.sync.types import EntityType
from paprika_mirror.shared.exceptions.sync import (
    ReferentialIntegrityError,
    SyncCancelledError,
    SyncConfigError,
)


def _count(engine, entity_type: EntityType) -> int:
    table = get_entity_config(entity_type).table
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(table)).scalar()


def _positions(repository, progress) -> dict:
    with repository.connect() as conn:
        return progress.list_positions(conn)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def sync(repository, progress, kitchen, sleeps) -> MirrorSync:
    return MirrorSync(
        repository=repository,
        source=kitchen,
        progress=progress,
        max_workers=4,
        max_retries=2,
        backoff_seconds=0.5,
        sleep=sleeps.append,
    )


class TestRunPass:
    def test_first_pass_mirrors_everything(self, engine, repository, progress, sync, kitchen) -> None:
        result = sync.run_pass()

        assert _count(engine, EntityType.RECIPES) == 2
        assert _count(engine, EntityType.GROCERIES) == 3
        assert _count(engine, EntityType.MENU_ITEMS) == 1
        assert sorted(kitchen.hydrated) == ["R1", "R2"]
        assert result.totals == {"added": 15}
        assert result.positions["recipes"] == "1"
        assert result.had_changes is True
        # Tipos sin datos también guardan posición
        assert _positions(repository, progress)["bookmarks"] == "0"
        assert len(_positions(repository, progress)) == len(EntityType)

    def test_second_pass_without_changes(self, sync, kitchen) -> None:
        sync.run_pass()
        kitchen.hydrated.clear()

        result = sync.run_pass()

        assert sorted(result.up_to_date) == sorted(t.value for t in EntityType)
        assert result.totals == {}
        assert result.had_changes is False
        assert kitchen.hydrated == []

    def test_only_changed_recipe_is_hydrated(self, engine, sync, kitchen, snapshots) -> None:
        sync.run_pass()
        kitchen.hydrated.clear()
        kitchen.bodies["R2"] = snapshots.recipe("R2", hash="h2-v2", name="Bolon de verde")
        kitchen.publish(EntityType.RECIPES, [
            snapshots.recipe_index("R1"),
            snapshots.recipe_index("R2", hash="h2-v2"),
        ])

        result = sync.run_pass()

        assert kitchen.hydrated == ["R2"]
        assert result.counts["recipes"] == {"changed": 1, "equal": 1}
        assert result.positions == {"recipes": "2"}

    def test_trashed_recipe_is_reported(self, engine, sync, kitchen, snapshots) -> None:
        sync.run_pass()
        kitchen.bodies["R2"] = snapshots.recipe("R2", hash="h2-trash", name="Bolon", in_trash=True)
        kitchen.publish(EntityType.RECIPES, [
            snapshots.recipe_index("R1"),
            snapshots.recipe_index("R2", hash="h2-trash"),
        ])

        result = sync.run_pass()

        assert result.counts["recipes"] == {"changed": 1, "equal": 1}
        assert result.trash == {"recipes": {"trashed": 1}}
        assert _count(engine, EntityType.RECIPES) == 2

    def test_subset_of_types(self, engine, repository, progress, sync) -> None:
        result = sync.run_pass([EntityType.GROCERY_AISLES, "groceryaisles"])

        assert result.positions == {"groceryaisles": "1"}
        assert _count(engine, EntityType.GROCERY_AISLES) == 1
        assert _positions(repository, progress) == {"groceryaisles": "1"}

    def test_unknown_type_is_config_error(self, sync) -> None:
        with pytest.raises(SyncConfigError):
            sync.run_pass(["recetas"])

    def test_dangling_reference_from_source(self, engine, repository, progress, sync, kitchen, snapshots) -> None:
        kitchen.publish(EntityType.MEALS, [snapshots.meal("M9", recipe_uid="R404", type_uid="T1")])

        with pytest.raises(ReferentialIntegrityError):
            sync.run_pass()

        assert _count(engine, EntityType.RECIPES) == 0
        assert _positions(repository, progress) == {}

    def test_reset_positions_forces_full_fetch(self, repository, progress, sync, kitchen) -> None:
        sync.run_pass()
        assert sync.reset_positions([EntityType.MEALS]) == 1
        kitchen.fetch_calls.clear()

        result = sync.run_pass([EntityType.MEALS])

        assert kitchen.fetch_calls == [(EntityType.MEALS, None)]
        assert result.counts["meals"] == {"equal": 1}
        assert result.positions == {"meals": "1"}


class TestRetries:
    def test_transient_failure_is_retried(self, engine, sync, kitchen, sleeps) -> None:
        kitchen.failures = [SourceTransientError("timeout")]

        result = sync.run_pass([EntityType.GROCERY_AISLES])

        assert result.attempts == 2
        assert sleeps == [0.5]
        assert _count(engine, EntityType.GROCERY_AISLES) == 1

    def test_backoff_is_exponential_and_gives_up(self, engine, sync, kitchen, sleeps) -> None:
        kitchen.failures = [SourceTransientError(f"fallo {i}") for i in range(3)]

        with pytest.raises(SourceTransientError):
            sync.run_pass([EntityType.GROCERY_AISLES])

        assert sleeps == [0.5, 1.0]
        assert _count(engine, EntityType.GROCERY_AISLES) == 0
        assert kitchen.passes == 3


class TestCancellation:
    def test_cancel_before_start_writes_nothing(self, engine, repository, progress, sync) -> None:
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(SyncCancelledError) as exc_info:
            sync.run_pass(cancel_event=cancel)

        assert exc_info.value.pending_types == sorted(t.value for t in EntityType)
        assert _count(engine, EntityType.RECIPES) == 0
        assert _positions(repository, progress) == {}
