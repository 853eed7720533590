"""
Configuración del sync por tipo de entidad (Paprika -> tabla).

Aquí se define, para cada sección de Paprika:
- tabla destino y mapeo de campos (con transformaciones)
- cómo se calcula el fingerprint
- política de borrado (papelera explícita vs. omisión en snapshot completo)
- colección lógica para el orden (`order_flag`)

Este módulo no realiza I/O: solo define configuración.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from sqlalchemy import Table

from paprika_mirror.infrastructure.database import models
from paprika_mirror.infrastructure.sync.fingerprint import canonical_value, compute_fingerprint
from paprika_mirror.infrastructure.sync.tombstones import DeletionPolicy
from paprika_mirror.infrastructure.sync.types import EntityType, FieldMapping, SnapshotRecord
from paprika_mirror.shared.exceptions.sync import SyncConfigError
from paprika_mirror.shared.utils.datetime_utils import parse_source_datetime


def _bool(value: Any) -> bool:
    return bool(value)


def _int(value: Any) -> int:
    return int(value) if value is not None else 0


def _text(value: Any) -> str:
    """Columnas NOT NULL de texto: Paprika a veces manda null."""
    return "" if value is None else str(value)


def _optional_uid(value: Any) -> Optional[str]:
    """Referencias opcionales: Paprika usa "" o null para 'sin referencia'."""
    return value or None


def _uid_list(value: Any) -> list[str]:
    return sorted(str(v) for v in (value or []))


@dataclass(frozen=True)
class Reference:
    """Referencia por uid hacia otro tipo (derivada de las FKs del modelo)."""

    column: str
    target: EntityType
    nullable: bool


@dataclass(frozen=True)
class EntityConfig:
    """
    Config de una sección de Paprika -> una tabla.

    NOTA sobre fingerprint:
    - Si `fingerprint_column` está definido, se usa ese valor (hash de Paprika).
      Solo sirve cuando ese hash cubre todo el registro (recetas). El hash de
      una foto es el de la imagen: no cambia al reordenarla ni al moverla.
    - Si no, se calcula un digest de las columnas sincronizadas.
    """

    entity_type: EntityType
    model: type
    field_mappings: tuple[FieldMapping, ...]
    fingerprint_column: Optional[str] = None
    deletion_policy: DeletionPolicy = DeletionPolicy.IMPLICIT_OMISSION
    trash_column: Optional[str] = None
    order_column: Optional[str] = None
    order_scope: tuple[str, ...] = ()
    # Paprika solo lista (uid, hash); el contenido se pide por uid.
    lightweight_index: bool = False

    @property
    def table(self) -> Table:
        return self.model.__table__

    @property
    def table_name(self) -> str:
        return self.table.name

    @property
    def columns(self) -> tuple[str, ...]:
        """Columnas sincronizadas (incluye `uid`)."""
        return ("uid",) + tuple(m.column for m in self.field_mappings)

    @property
    def content_columns(self) -> tuple[str, ...]:
        return tuple(m.column for m in self.field_mappings)

    @property
    def references(self) -> tuple[Reference, ...]:
        refs = []
        for fk in sorted(self.table.foreign_keys, key=lambda f: f.parent.name):
            target = ENTITY_TYPE_BY_TABLE[fk.column.table.name]
            refs.append(Reference(column=fk.parent.name, target=target, nullable=bool(fk.parent.nullable)))
        return tuple(refs)

    def fingerprint_of(self, values: Mapping[str, Any]) -> str:
        """Fingerprint de una fila (almacenada o entrante) con las columnas del tipo."""
        if self.fingerprint_column:
            return str(values.get(self.fingerprint_column) or "")
        return compute_fingerprint(values, self.content_columns)

    def record_fingerprint(self, record: SnapshotRecord) -> str:
        if record.fingerprint is not None:
            return record.fingerprint
        if record.fields is None:
            raise SyncConfigError(
                f"Registro {record.uid} de '{self.entity_type.value}' sin fields ni fingerprint"
            )
        return self.fingerprint_of(record.fields)

    def scope_of(self, values: Mapping[str, Any]) -> tuple:
        return tuple(canonical_value(values.get(col)) for col in self.order_scope)


def map_source_record(raw: Mapping[str, Any], *, config: EntityConfig) -> SnapshotRecord:
    """
    Mapea un objeto JSON de Paprika a un SnapshotRecord listo para reconciliar.

    Reglas:
    - `uid` es obligatorio.
    - Cada FieldMapping decide cómo mapear y transformar el valor.
    """
    uid = raw.get("uid")
    if not uid:
        raise SyncConfigError(f"Registro de '{config.entity_type.value}' sin 'uid': {dict(raw)!r}")

    fields: dict[str, Any] = {"uid": str(uid)}
    for m in config.field_mappings:
        if m.source_field not in raw:
            if m.required:
                raise SyncConfigError(
                    f"Registro {uid} no contiene campo requerido '{m.source_field}'"
                )
            value = None
        else:
            value = raw.get(m.source_field)
        fields[m.column] = m.transform(value) if m.transform else value

    return SnapshotRecord(uid=str(uid), fields=fields)


def _fm(name: str, transform=None, *, column: Optional[str] = None, required: bool = False) -> FieldMapping:
    return FieldMapping(source_field=name, column=column or name, transform=transform, required=required)


ENTITY_CONFIGS: dict[EntityType, EntityConfig] = {
    EntityType.RECIPES: EntityConfig(
        entity_type=EntityType.RECIPES,
        model=models.RecipeModel,
        field_mappings=(
            _fm("categories", _uid_list),
            _fm("cook_time"),
            _fm("created", parse_source_datetime, required=True),
            _fm("description"),
            _fm("difficulty"),
            _fm("directions", _text),
            _fm("hash", _text, required=True),
            _fm("image_url"),
            _fm("in_trash", _bool),
            _fm("ingredients", _text),
            _fm("is_pinned", _bool),
            _fm("name", _text, required=True),
            _fm("notes", _text),
            _fm("on_favorites", _bool),
            _fm("on_grocery_list", _bool),
            _fm("photo"),
            _fm("photo_hash"),
            _fm("photo_large"),
            _fm("photo_url"),
            _fm("prep_time"),
            _fm("rating", _int),
            _fm("scale"),
            _fm("servings"),
            _fm("source"),
            _fm("source_url"),
            _fm("total_time"),
        ),
        fingerprint_column="hash",
        deletion_policy=DeletionPolicy.BOTH,
        trash_column="in_trash",
        lightweight_index=True,
    ),
    EntityType.MEALS: EntityConfig(
        entity_type=EntityType.MEALS,
        model=models.MealModel,
        field_mappings=(
            _fm("recipe_uid", _text, required=True),
            _fm("date", parse_source_datetime, required=True),
            _fm("type", _int, column="meal_type"),
            _fm("name", _text),
            _fm("order_flag", _int),
            _fm("type_uid", _text, required=True),
        ),
        order_column="order_flag",
        order_scope=("date",),
    ),
    EntityType.GROCERIES: EntityConfig(
        entity_type=EntityType.GROCERIES,
        model=models.GroceryItemModel,
        field_mappings=(
            _fm("recipe_uid", _optional_uid),
            _fm("name", _text),
            _fm("order_flag", _int),
            _fm("purchased", _bool),
            _fm("aisle", _text),
            _fm("ingredient", _text),
            _fm("recipe"),
            _fm("instruction", _text),
            _fm("quantity", _text),
            _fm("separate", _bool),
            _fm("aisle_uid", _text, required=True),
            _fm("list_uid", _text, required=True),
        ),
        order_column="order_flag",
        order_scope=("list_uid",),
    ),
    EntityType.GROCERY_AISLES: EntityConfig(
        entity_type=EntityType.GROCERY_AISLES,
        model=models.AisleModel,
        field_mappings=(_fm("name", _text), _fm("order_flag", _int)),
        order_column="order_flag",
    ),
    EntityType.MENUS: EntityConfig(
        entity_type=EntityType.MENUS,
        model=models.MenuModel,
        field_mappings=(
            _fm("name", _text),
            _fm("notes", _text),
            _fm("order_flag", _int),
            _fm("days", _int),
        ),
        order_column="order_flag",
    ),
    EntityType.MENU_ITEMS: EntityConfig(
        entity_type=EntityType.MENU_ITEMS,
        model=models.MenuItemModel,
        field_mappings=(
            _fm("name", _text),
            _fm("order_flag", _int),
            _fm("recipe_uid", _text, required=True),
            _fm("menu_uid", _text, required=True),
            _fm("type_uid", _text, required=True),
            _fm("day", _int),
        ),
        order_column="order_flag",
        order_scope=("menu_uid",),
    ),
    EntityType.PHOTOS: EntityConfig(
        entity_type=EntityType.PHOTOS,
        model=models.PhotoModel,
        field_mappings=(
            _fm("filename", _text),
            _fm("recipe_uid", _text, required=True),
            _fm("order_flag", _int),
            _fm("name", _text),
            _fm("hash", _text, required=True),
        ),
        order_column="order_flag",
        order_scope=("recipe_uid",),
    ),
    EntityType.MEAL_TYPES: EntityConfig(
        entity_type=EntityType.MEAL_TYPES,
        model=models.MealTypeModel,
        field_mappings=(
            _fm("name", _text),
            _fm("order_flag", _int),
            _fm("color", _text),
            _fm("export_all_day", _bool),
            _fm("export_time", _int),
            _fm("original_type", _int),
        ),
        order_column="order_flag",
    ),
    EntityType.PANTRY: EntityConfig(
        entity_type=EntityType.PANTRY,
        model=models.PantryItemModel,
        field_mappings=(
            _fm("ingredient", _text),
            _fm("aisle", _text),
            _fm("expiration_date", parse_source_datetime),
            _fm("has_expiration", _bool),
            _fm("in_stock", _bool),
            _fm("purchase_date", parse_source_datetime, required=True),
            _fm("quantity", _text),
            _fm("aisle_uid", _text, required=True),
        ),
    ),
    EntityType.GROCERY_INGREDIENTS: EntityConfig(
        entity_type=EntityType.GROCERY_INGREDIENTS,
        model=models.GroceryIngredientModel,
        field_mappings=(_fm("name", _text), _fm("aisle_uid", _optional_uid)),
    ),
    EntityType.GROCERY_LISTS: EntityConfig(
        entity_type=EntityType.GROCERY_LISTS,
        model=models.GroceryListModel,
        field_mappings=(
            _fm("name", _text),
            _fm("order_flag", _int),
            _fm("is_default", _bool),
            _fm("reminders_list", _text),
        ),
        order_column="order_flag",
    ),
    EntityType.BOOKMARKS: EntityConfig(
        entity_type=EntityType.BOOKMARKS,
        model=models.BookmarkModel,
        field_mappings=(_fm("title", _text), _fm("url", _text), _fm("order_flag", _int)),
        order_column="order_flag",
    ),
    EntityType.CATEGORIES: EntityConfig(
        entity_type=EntityType.CATEGORIES,
        model=models.CategoryModel,
        field_mappings=(
            _fm("order_flag", _int),
            _fm("name", _text),
            _fm("parent_uid", _optional_uid),
        ),
        order_column="order_flag",
        order_scope=("parent_uid",),
    ),
}

ENTITY_TYPE_BY_TABLE: dict[str, EntityType] = {
    cfg.table_name: entity_type for entity_type, cfg in ENTITY_CONFIGS.items()
}


def get_entity_config(entity_type: EntityType | str) -> EntityConfig:
    """Retorna la config del tipo (acepta el nombre de sección de Paprika)."""
    try:
        return ENTITY_CONFIGS[EntityType(entity_type)]
    except (KeyError, ValueError) as e:
        raise SyncConfigError(f"Tipo de entidad desconocido: {entity_type!r}") from e
