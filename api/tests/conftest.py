"""
Configuración de fixtures para pytest.

Los tests de sync usan SQLite en archivo (no :memory:): las pasadas abren
varias conexiones desde distintos threads y deben ver la misma base.
"""
from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, Sequence

import pytest

from paprika_mirror.infrastructure.database.session import create_mirror_engine, init_db
from paprika_mirror.infrastructure.sync.commit_lock import CommitLockManager
from paprika_mirror.infrastructure.sync.entity_config import get_entity_config, map_source_record
from paprika_mirror.infrastructure.sync.mirror_repository import MirrorRepository
from paprika_mirror.infrastructure.sync.progress import ProgressTracker
from paprika_mirror.infrastructure.sync.types import EntityType, FetchResult, SnapshotRecord


@pytest.fixture
def engine(tmp_path):
    """Engine SQLite con el esquema completo, uno por test."""
    engine = create_mirror_engine(f"sqlite:///{tmp_path / 'mirror.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine) -> MirrorRepository:
    return MirrorRepository(engine)


@pytest.fixture
def progress() -> ProgressTracker:
    return ProgressTracker()


@pytest.fixture(autouse=True)
def cleanup_commit_locks():
    """Limpia los locks de commit antes y despues de cada test."""
    CommitLockManager._locks.clear()
    yield
    CommitLockManager._locks.clear()


class Snapshots:
    """
    Arma SnapshotRecords a partir de JSON con la forma que entrega Paprika,
    pasando por el mismo mapeo que usa la fuente real.
    """

    @staticmethod
    def build(entity_type: EntityType, raw: Dict[str, Any]) -> SnapshotRecord:
        return map_source_record(raw, config=get_entity_config(entity_type))

    def recipe(
        self,
        uid: str,
        *,
        hash: Optional[str] = None,
        name: Optional[str] = None,
        in_trash: bool = False,
        categories: Sequence[str] = (),
        **extra: Any,
    ) -> SnapshotRecord:
        raw = {
            "uid": uid,
            "name": name or f"Receta {uid}",
            "hash": hash or f"hash-{uid}",
            "created": "2026-01-10 12:00:00",
            "directions": "Mezclar todo.",
            "ingredients": "1 taza de harina",
            "notes": "",
            "in_trash": in_trash,
            "categories": list(categories),
            "rating": 3,
        }
        raw.update(extra)
        return self.build(EntityType.RECIPES, raw)

    def recipe_index(self, uid: str, *, hash: Optional[str] = None) -> SnapshotRecord:
        """Entrada liviana del listado de recetas (solo uid + hash)."""
        return SnapshotRecord(uid=uid, fields=None, fingerprint=hash or f"hash-{uid}")

    def meal_type(self, uid: str, *, name: str = "Cena", order_flag: int = 0) -> SnapshotRecord:
        return self.build(EntityType.MEAL_TYPES, {
            "uid": uid,
            "name": name,
            "order_flag": order_flag,
            "color": "#E36C0C",
            "export_all_day": False,
            "export_time": 0,
            "original_type": 0,
        })

    def meal(
        self,
        uid: str,
        *,
        recipe_uid: str,
        type_uid: str,
        date: str = "2026-10-01 00:00:00",
        order_flag: int = 0,
    ) -> SnapshotRecord:
        return self.build(EntityType.MEALS, {
            "uid": uid,
            "recipe_uid": recipe_uid,
            "date": date,
            "type": 0,
            "name": f"Comida {uid}",
            "order_flag": order_flag,
            "type_uid": type_uid,
        })

    def aisle(self, uid: str, *, name: Optional[str] = None, order_flag: int = 0) -> SnapshotRecord:
        return self.build(EntityType.GROCERY_AISLES, {
            "uid": uid, "name": name or f"Pasillo {uid}", "order_flag": order_flag,
        })

    def grocery_list(self, uid: str, *, name: str = "Super", is_default: bool = False) -> SnapshotRecord:
        return self.build(EntityType.GROCERY_LISTS, {
            "uid": uid, "name": name, "order_flag": 0, "is_default": is_default, "reminders_list": "",
        })

    def grocery(
        self,
        uid: str,
        *,
        list_uid: str,
        aisle_uid: str,
        name: Optional[str] = None,
        order_flag: int = 0,
        purchased: bool = False,
        recipe_uid: Optional[str] = None,
    ) -> SnapshotRecord:
        return self.build(EntityType.GROCERIES, {
            "uid": uid,
            "recipe_uid": recipe_uid,
            "name": name or uid,
            "order_flag": order_flag,
            "purchased": purchased,
            "aisle": "",
            "ingredient": name or uid,
            "recipe": None,
            "instruction": "",
            "quantity": "1",
            "separate": False,
            "aisle_uid": aisle_uid,
            "list_uid": list_uid,
        })

    def category(
        self,
        uid: str,
        *,
        parent_uid: Optional[str] = None,
        name: Optional[str] = None,
        order_flag: int = 0,
    ) -> SnapshotRecord:
        return self.build(EntityType.CATEGORIES, {
            "uid": uid, "name": name or uid, "order_flag": order_flag, "parent_uid": parent_uid,
        })

    def photo(self, uid: str, *, recipe_uid: str, order_flag: int = 0, hash: Optional[str] = None) -> SnapshotRecord:
        return self.build(EntityType.PHOTOS, {
            "uid": uid,
            "filename": f"{uid}.jpg",
            "recipe_uid": recipe_uid,
            "order_flag": order_flag,
            "name": uid,
            "hash": hash or f"photo-{uid}",
        })

    def menu(self, uid: str, *, name: str = "Semana", days: int = 7) -> SnapshotRecord:
        return self.build(EntityType.MENUS, {
            "uid": uid, "name": name, "notes": "", "order_flag": 0, "days": days,
        })

    def menu_item(
        self, uid: str, *, menu_uid: str, recipe_uid: str, type_uid: str, day: int = 1, order_flag: int = 0
    ) -> SnapshotRecord:
        return self.build(EntityType.MENU_ITEMS, {
            "uid": uid,
            "name": uid,
            "order_flag": order_flag,
            "recipe_uid": recipe_uid,
            "menu_uid": menu_uid,
            "type_uid": type_uid,
            "day": day,
        })

    def pantry(self, uid: str, *, aisle_uid: str, in_stock: bool = True) -> SnapshotRecord:
        return self.build(EntityType.PANTRY, {
            "uid": uid,
            "ingredient": uid,
            "aisle": "",
            "expiration_date": None,
            "has_expiration": False,
            "in_stock": in_stock,
            "purchase_date": "2026-09-01 00:00:00",
            "quantity": "",
            "aisle_uid": aisle_uid,
        })


@pytest.fixture
def snapshots() -> Snapshots:
    return Snapshots()


class FakeSource:
    """
    Fuente en memoria que implementa el contrato de FetchSource.

    - `sections[tipo]` es la lista completa actual del tipo
    - `counters[tipo]` es el contador (posición) actual
    - `failures` es una lista de excepciones a levantar en los próximos fetch
    """

    def __init__(self) -> None:
        self.sections: Dict[EntityType, List[SnapshotRecord]] = {}
        self.counters: Dict[EntityType, int] = {}
        self.bodies: Dict[str, SnapshotRecord] = {}
        self.failures: List[Exception] = []
        self.fetch_calls: List[tuple] = []
        self.hydrated: List[str] = []
        self.passes = 0
        self._lock = threading.Lock()

    def publish(self, entity_type: EntityType, records: List[SnapshotRecord]) -> None:
        """Reemplaza el contenido del tipo y avanza su contador."""
        self.sections[entity_type] = list(records)
        self.counters[entity_type] = self.counters.get(entity_type, 0) + 1

    def begin_pass(self) -> None:
        self.passes += 1

    def fetch(self, entity_type: EntityType, since_position: Optional[str]) -> FetchResult:
        with self._lock:
            self.fetch_calls.append((entity_type, since_position))
            if self.failures:
                raise self.failures.pop(0)
        counter = self.counters.get(entity_type, 0)
        position = str(counter)
        if since_position == position:
            return FetchResult(entity_type=entity_type, records=[], position=position, is_complete=False)
        return FetchResult(
            entity_type=entity_type,
            records=list(self.sections.get(entity_type, [])),
            position=position,
            is_complete=True,
        )

    def hydrate(self, entity_type: EntityType, records: Sequence[SnapshotRecord]) -> List[SnapshotRecord]:
        hydrated = []
        for record in records:
            with self._lock:
                self.hydrated.append(record.uid)
            hydrated.append(self.bodies[record.uid] if record.needs_hydration else record)
        return hydrated


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def kitchen(source: FakeSource, snapshots: Snapshots) -> FakeSource:
    """
    Fuente con una cuenta de Paprika consistente: toda referencia resuelve.
    """
    for uid, name in (("R1", "Arepas"), ("R2", "Bolon")):
        source.bodies[uid] = snapshots.recipe(uid, name=name, categories=["C2"])
    source.publish(EntityType.RECIPES, [snapshots.recipe_index("R1"), snapshots.recipe_index("R2")])
    source.publish(EntityType.MEAL_TYPES, [snapshots.meal_type("T1")])
    source.publish(EntityType.MEALS, [snapshots.meal("M1", recipe_uid="R1", type_uid="T1")])
    source.publish(EntityType.GROCERY_AISLES, [snapshots.aisle("A1", order_flag=0)])
    source.publish(EntityType.GROCERY_LISTS, [snapshots.grocery_list("L1", is_default=True)])
    source.publish(EntityType.GROCERIES, [
        snapshots.grocery("G1", list_uid="L1", aisle_uid="A1", name="Harina", order_flag=0),
        snapshots.grocery("G2", list_uid="L1", aisle_uid="A1", name="Queso", order_flag=1, recipe_uid="R2"),
        snapshots.grocery("G3", list_uid="L1", aisle_uid="A1", name="Sal", order_flag=2, purchased=True),
    ])
    source.publish(EntityType.CATEGORIES, [
        snapshots.category("C1", name="Desayunos"),
        snapshots.category("C2", parent_uid="C1", name="Venezolanas"),
    ])
    source.publish(EntityType.PHOTOS, [snapshots.photo("P1", recipe_uid="R1")])
    source.publish(EntityType.MENUS, [snapshots.menu("MN1")])
    source.publish(EntityType.MENU_ITEMS, [
        snapshots.menu_item("MI1", menu_uid="MN1", recipe_uid="R2", type_uid="T1"),
    ])
    source.publish(EntityType.PANTRY, [snapshots.pantry("PA1", aisle_uid="A1")])
    return source
