"""
Repositorios de colecciones ordenadas (compras, comidas, menús, despensa,
categorías). Solo lectura.

Todas las colecciones se ordenan por (order_flag, id): la posición viene de
Paprika y el surrogate id desempata posiciones repetidas.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from paprika_mirror.infrastructure.database.models import (
    AisleModel,
    CategoryModel,
    GroceryItemModel,
    GroceryListModel,
    MealModel,
    MealTypeModel,
    MenuItemModel,
    MenuModel,
    PantryItemModel,
)
from paprika_mirror.infrastructure.sync.entity_config import get_entity_config
from paprika_mirror.infrastructure.sync.ordering import order_by_columns
from paprika_mirror.infrastructure.sync.types import EntityType


def _ordered(entity_type: EntityType):
    return order_by_columns(get_entity_config(entity_type))


class GroceryRepository:
    """Listas de compras, sus items y pasillos."""

    def __init__(self, db: Session):
        self.db = db

    def list_lists(self) -> List[GroceryListModel]:
        stmt = select(GroceryListModel).order_by(*_ordered(EntityType.GROCERY_LISTS))
        return list(self.db.execute(stmt).scalars().all())

    def get_list(self, list_uid: str) -> Optional[GroceryListModel]:
        stmt = select(GroceryListModel).where(GroceryListModel.uid == list_uid)
        return self.db.execute(stmt).scalars().first()

    def get_default_list(self) -> Optional[GroceryListModel]:
        stmt = (
            select(GroceryListModel)
            .where(GroceryListModel.is_default.is_(True))
            .order_by(*_ordered(EntityType.GROCERY_LISTS))
        )
        return self.db.execute(stmt).scalars().first()

    def list_items(self, list_uid: str, *, include_purchased: bool = True) -> List[GroceryItemModel]:
        stmt = select(GroceryItemModel).where(GroceryItemModel.list_uid == list_uid)
        if not include_purchased:
            stmt = stmt.where(GroceryItemModel.purchased.is_(False))
        stmt = stmt.order_by(*_ordered(EntityType.GROCERIES))
        return list(self.db.execute(stmt).scalars().all())

    def list_aisles(self) -> List[AisleModel]:
        stmt = select(AisleModel).order_by(*_ordered(EntityType.GROCERY_AISLES))
        return list(self.db.execute(stmt).scalars().all())


class MealRepository:
    """Comidas planificadas y tipos de comida."""

    def __init__(self, db: Session):
        self.db = db

    def list_between(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[MealModel]:
        """Comidas en [start, end), por fecha y luego por posición del día."""
        config = get_entity_config(EntityType.MEALS)
        stmt = select(MealModel)
        if start is not None:
            stmt = stmt.where(MealModel.date >= start)
        if end is not None:
            stmt = stmt.where(MealModel.date < end)
        stmt = stmt.order_by(MealModel.date, *order_by_columns(config))
        return list(self.db.execute(stmt).scalars().all())

    def list_meal_types(self) -> List[MealTypeModel]:
        stmt = select(MealTypeModel).order_by(*_ordered(EntityType.MEAL_TYPES))
        return list(self.db.execute(stmt).scalars().all())


class MenuRepository:
    def __init__(self, db: Session):
        self.db = db

    def list_menus(self) -> List[MenuModel]:
        stmt = select(MenuModel).order_by(*_ordered(EntityType.MENUS))
        return list(self.db.execute(stmt).scalars().all())

    def get_menu(self, menu_uid: str) -> Optional[MenuModel]:
        return self.db.execute(select(MenuModel).where(MenuModel.uid == menu_uid)).scalars().first()

    def list_items(self, menu_uid: str) -> List[MenuItemModel]:
        stmt = (
            select(MenuItemModel)
            .where(MenuItemModel.menu_uid == menu_uid)
            .order_by(MenuItemModel.day, *_ordered(EntityType.MENU_ITEMS))
        )
        return list(self.db.execute(stmt).scalars().all())


class PantryRepository:
    def __init__(self, db: Session):
        self.db = db

    def list(self, *, in_stock_only: bool = False) -> List[PantryItemModel]:
        stmt = select(PantryItemModel)
        if in_stock_only:
            stmt = stmt.where(PantryItemModel.in_stock.is_(True))
        stmt = stmt.order_by(PantryItemModel.aisle, PantryItemModel.ingredient, PantryItemModel.id)
        return list(self.db.execute(stmt).scalars().all())


class CategoryRepository:
    def __init__(self, db: Session):
        self.db = db

    def list(self) -> List[CategoryModel]:
        stmt = select(CategoryModel).order_by(*_ordered(EntityType.CATEGORIES))
        return list(self.db.execute(stmt).scalars().all())

    def get_by_uid(self, uid: str) -> Optional[CategoryModel]:
        return self.db.execute(select(CategoryModel).where(CategoryModel.uid == uid)).scalars().first()
