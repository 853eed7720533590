"""
Tests de los endpoints de consulta y de sync con TestClient.

El espejo se llena con una pasada real contra la fuente en memoria.
"""
from __future__ import annotations

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from main import create_application
from paprika_mirror.api.v1.dependencies.use_case_deps import get_sync_use_cases
from paprika_mirror.application.dto.sync_dto import SyncPositionDTO
from paprika_mirror.core import events
from paprika_mirror.infrastructure.database.session import close_db, init_db, init_engine
from paprika_mirror.infrastructure.sync.mirror_repository import MirrorRepository
from paprika_mirror.infrastructure.sync.sync_service import MirrorSync
from paprika_mirror.infrastructure.sync.types import EntityType
from paprika_mirror.shared.exceptions.domain import SyncJobNotFoundException


@pytest.fixture
def app(tmp_path, kitchen, snapshots):
    engine = init_engine(f"sqlite:///{tmp_path / 'api.db'}")
    init_db(engine)
    kitchen.bodies["R3"] = snapshots.recipe("R3", name="Cachapas", in_trash=True)
    kitchen.publish(EntityType.RECIPES, [
        snapshots.recipe_index("R1"),
        snapshots.recipe_index("R2"),
        snapshots.recipe_index("R3"),
    ])
    kitchen.publish(EntityType.PHOTOS, [
        snapshots.photo("P2", recipe_uid="R1", order_flag=1),
        snapshots.photo("P1", recipe_uid="R1", order_flag=0),
    ])
    MirrorSync(repository=MirrorRepository(engine), source=kitchen, sleep=lambda s: None).run_pass()

    application = create_application(with_lifecycle=False)
    yield application
    close_db()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


class TestHealth:
    def test_health(self, client) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestLifespan:
    def test_startup_and_shutdown_run_around_requests(self, monkeypatch) -> None:
        engine = Mock()
        engine.dialect.name = "sqlite"
        init_engine_mock = Mock(return_value=engine)
        close_db_mock = Mock()
        monkeypatch.setattr(events, "init_engine", init_engine_mock)
        monkeypatch.setattr(events, "init_db", Mock())
        monkeypatch.setattr(events, "close_db", close_db_mock)
        monkeypatch.setattr(events, "configure_logging", Mock())

        with TestClient(create_application()) as c:
            assert c.get("/health").status_code == 200
            init_engine_mock.assert_called_once_with()
            close_db_mock.assert_not_called()

        close_db_mock.assert_called_once_with()


class TestRecipesEndpoints:
    def test_list_excludes_trashed_by_default(self, client) -> None:
        body = client.get("/api/v1/recipes").json()

        assert body["total"] == 2
        assert [r["name"] for r in body["items"]] == ["Arepas", "Bolon"]

    def test_list_with_trashed_and_search(self, client) -> None:
        body = client.get("/api/v1/recipes", params={"include_trashed": True, "search": "cach"}).json()

        assert [r["uid"] for r in body["items"]] == ["R3"]
        assert body["items"][0]["in_trash"] is True

    def test_get_recipe_with_photos_in_order(self, client) -> None:
        body = client.get("/api/v1/recipes/R1").json()

        assert body["name"] == "Arepas"
        assert [p["uid"] for p in body["photos"]] == ["P1", "P2"]

    def test_missing_recipe_is_404(self, client) -> None:
        response = client.get("/api/v1/recipes/NOPE")

        assert response.status_code == 404
        assert response.json()["error"] == "ENTITY_NOT_FOUND"

    def test_recipes_by_category(self, client) -> None:
        body = client.get("/api/v1/recipes/by-category/C2").json()

        assert sorted(r["uid"] for r in body) == ["R1", "R2"]

    def test_recipes_by_category_paged(self, client) -> None:
        body = client.get("/api/v1/recipes/by-category/C2", params={"limit": 1, "offset": 1}).json()

        assert [r["uid"] for r in body] == ["R2"]


class TestCollectionEndpoints:
    def test_default_grocery_list_in_order(self, client) -> None:
        body = client.get("/api/v1/groceries").json()

        assert body["grocery_list"]["uid"] == "L1"
        assert [i["uid"] for i in body["items"]] == ["G1", "G2", "G3"]

    def test_grocery_list_without_purchased(self, client) -> None:
        body = client.get("/api/v1/groceries/lists/L1", params={"include_purchased": False}).json()

        assert [i["uid"] for i in body["items"]] == ["G1", "G2"]

    def test_unknown_grocery_list_is_404(self, client) -> None:
        assert client.get("/api/v1/groceries/lists/L404").status_code == 404

    def test_meals_and_types(self, client) -> None:
        assert [m["uid"] for m in client.get("/api/v1/meals").json()] == ["M1"]
        assert [t["uid"] for t in client.get("/api/v1/meals/types").json()] == ["T1"]

    def test_menu_items(self, client) -> None:
        body = client.get("/api/v1/menus/MN1/items").json()

        assert body["menu"]["uid"] == "MN1"
        assert [i["uid"] for i in body["items"]] == ["MI1"]

    def test_pantry(self, client) -> None:
        assert [p["uid"] for p in client.get("/api/v1/pantry").json()] == ["PA1"]

    def test_category_tree(self, client) -> None:
        (root,) = client.get("/api/v1/categories").json()

        assert root["uid"] == "C1"
        assert [c["uid"] for c in root["children"]] == ["C2"]


class TestSyncEndpoints:
    @pytest.fixture
    def sync_use_cases(self, app) -> Mock:
        use_cases = Mock()
        use_cases.get_job_status = AsyncMock(side_effect=SyncJobNotFoundException("x"))
        use_cases.list_positions.return_value = [SyncPositionDTO(name="recipes", position="2")]
        app.dependency_overrides[get_sync_use_cases] = lambda: use_cases
        yield use_cases
        app.dependency_overrides.clear()

    def test_unknown_job_is_404(self, client, sync_use_cases) -> None:
        response = client.get("/api/v1/sync/jobs/x")

        assert response.status_code == 404
        assert response.json()["error"] == "SYNC_JOB_NOT_FOUND"

    def test_positions(self, client, sync_use_cases) -> None:
        body = client.get("/api/v1/sync/positions").json()

        assert body == [{"name": "recipes", "position": "2", "updated_at": None}]

    def test_positions_from_database(self, client) -> None:
        body = client.get("/api/v1/sync/positions").json()

        assert {p["name"]: p["position"] for p in body}["recipes"] == "2"

    def test_invalid_type_is_400(self, client) -> None:
        response = client.post("/api/v1/sync/jobs", json={"types": ["recetas"]})

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_ENTITY_TYPE"
