"""
Tipos puros del pipeline Paprika -> base de datos.

Se mantienen libres de I/O para poder testearlos fácilmente.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


class EntityType(str, Enum):
    """Secciones de Paprika, con el nombre que usa el endpoint de status."""

    RECIPES = "recipes"
    MEALS = "meals"
    GROCERIES = "groceries"
    GROCERY_AISLES = "groceryaisles"
    MENUS = "menus"
    MENU_ITEMS = "menuitems"
    PHOTOS = "photos"
    MEAL_TYPES = "mealtypes"
    PANTRY = "pantry"
    GROCERY_INGREDIENTS = "groceryingredients"
    GROCERY_LISTS = "grocerylists"
    BOOKMARKS = "bookmarks"
    CATEGORIES = "categories"


class ChangeState(str, Enum):
    """Clasificación de un uid tras reconciliar un lote."""

    ADDED = "added"
    CHANGED = "changed"
    EQUAL = "equal"
    DELETED = "deleted"


Transform = Callable[[Any], Any]


@dataclass(frozen=True)
class FieldMapping:
    """
    Define el mapeo de un campo de Paprika a una columna.

    - source_field: nombre del campo en el JSON de Paprika
    - column: nombre de la columna en la base de datos
    - transform: función opcional para transformar el valor antes de persistir
    - required: si True, el valor debe existir (si falta se levanta error)
    """

    source_field: str
    column: str
    transform: Optional[Transform] = None
    required: bool = False


@dataclass(frozen=True)
class SnapshotRecord:
    """
    Snapshot de una entidad tal como la entrega la fuente.

    `fields` es None cuando la fuente solo entrega un índice liviano
    (uid, hash): el contenido completo se pide ("hidrata") solo si el
    registro termina necesitando escritura.
    """

    uid: str
    fields: Optional[dict[str, Any]]
    fingerprint: Optional[str] = None

    @property
    def needs_hydration(self) -> bool:
        return self.fields is None


@dataclass(frozen=True)
class FetchResult:
    """
    Resultado de `fetch(entity_type, since_position)`.

    - position: nueva posición reportada por la fuente (None = sin cambios)
    - is_complete: True si `records` es el set completo del tipo; solo en ese
      caso se infieren borrados por omisión.
    """

    entity_type: EntityType
    records: list[SnapshotRecord]
    position: Optional[str]
    is_complete: bool


@dataclass(frozen=True)
class StoredRow:
    """Estado mínimo de una fila ya espejada, usado para reconciliar."""

    uid: str
    surrogate_id: int
    fingerprint: str
    scope: tuple = ()
    position: Optional[int] = None
    trashed: bool = False


@dataclass(frozen=True)
class Anomaly:
    """
    Problema de calidad de datos detectado durante el sync.

    No aborta el lote: se resuelve con la regla de desempate documentada y
    se reporta para que quede visible.
    """

    kind: str
    entity_type: EntityType
    uids: tuple[str, ...]
    detail: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "entity_type": self.entity_type.value,
            "uids": list(self.uids),
            "detail": self.detail,
        }


@dataclass
class ReconcileResult:
    """
    Clasificación disjunta de un lote contra lo almacenado.

    `tombstoned` y `restored` son uids a escribir (insert/update, nunca
    borrado) que entran o salen de la papelera en este lote.
    """

    entity_type: EntityType
    to_insert: list[SnapshotRecord] = field(default_factory=list)
    to_update: list[SnapshotRecord] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    to_remove: list[str] = field(default_factory=list)
    tombstoned: list[str] = field(default_factory=list)
    restored: list[str] = field(default_factory=list)
    anomalies: list[Anomaly] = field(default_factory=list)

    @property
    def has_writes(self) -> bool:
        return bool(self.to_insert or self.to_update or self.to_remove)

    @property
    def pending_writes(self) -> list[SnapshotRecord]:
        return [*self.to_insert, *self.to_update]

    def counts(self) -> dict[ChangeState, int]:
        counts: Counter = Counter()
        if self.to_insert:
            counts[ChangeState.ADDED] = len(self.to_insert)
        if self.to_update:
            counts[ChangeState.CHANGED] = len(self.to_update)
        if self.unchanged:
            counts[ChangeState.EQUAL] = len(self.unchanged)
        if self.to_remove:
            counts[ChangeState.DELETED] = len(self.to_remove)
        return dict(counts)

    def trash_counts(self) -> dict[str, int]:
        counts = {"trashed": len(self.tombstoned), "restored": len(self.restored)}
        return {k: n for k, n in counts.items() if n}
