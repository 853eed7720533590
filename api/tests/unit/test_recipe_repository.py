"""
Tests para RecipeRepository sobre SQLite.
"""
from __future__ import annotations

import pytest
from sqlalchemy.orm import Session

from paprika_mirror.infrastructure.repositories.recipe_repository import RecipeRepository
from paprika_mirror.infrastructure.sync.entity_config import get_entity_config
from paprika_mirror.infrastructure.sync.types import EntityType


@pytest.fixture
def recipes(engine, repository, snapshots) -> RecipeRepository:
    records = [
        snapshots.recipe("R1", name="Arepas", categories=["C1"]),
        snapshots.recipe("R2", name="Bolon", categories=["C12", "C3"]),
        snapshots.recipe("R3", name="Cachapas", categories=["C3", "C1"]),
        snapshots.recipe("R4", name="Dulce de lechosa", categories=["C1"], in_trash=True),
        snapshots.recipe("R5", name="Empanadas", categories=["C_1"]),
    ]
    with repository.connect() as conn:
        with conn.begin():
            repository.insert_rows(conn, get_entity_config(EntityType.RECIPES), records)

    session = Session(engine)
    yield RecipeRepository(session)
    session.close()


class TestListByCategory:
    def test_matches_whole_uid_only(self, recipes) -> None:
        result = recipes.list_by_category("C1")

        assert [r.uid for r in result] == ["R1", "R3"]

    def test_like_wildcards_are_literal(self, recipes) -> None:
        assert [r.uid for r in recipes.list_by_category("C_1")] == ["R5"]

    def test_include_trashed(self, recipes) -> None:
        result = recipes.list_by_category("C1", include_trashed=True)

        assert [r.uid for r in result] == ["R1", "R3", "R4"]

    def test_paging(self, recipes) -> None:
        assert [r.uid for r in recipes.list_by_category("C1", limit=1)] == ["R1"]
        assert [r.uid for r in recipes.list_by_category("C1", limit=1, offset=1)] == ["R3"]

    def test_unknown_category(self, recipes) -> None:
        assert recipes.list_by_category("C404") == []
