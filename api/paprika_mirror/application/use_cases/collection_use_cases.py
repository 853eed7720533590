"""
Casos de uso de consulta de colecciones ordenadas.
"""
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from paprika_mirror.application.dto.collection_dto import (
    AisleDTO,
    CategoryNodeDTO,
    GroceryItemDTO,
    GroceryListDTO,
    GroceryListItemsDTO,
    MealDTO,
    MealTypeDTO,
    MenuDTO,
    MenuItemDTO,
    MenuItemsDTO,
    PantryItemDTO,
)
from paprika_mirror.infrastructure.repositories.collection_repository import (
    CategoryRepository,
    GroceryRepository,
    MealRepository,
    MenuRepository,
    PantryRepository,
)
from paprika_mirror.shared.exceptions.domain import EntityNotFoundException


class CollectionUseCases:
    """Consultas de compras, comidas, menús, despensa y categorías."""

    def __init__(self, db: Session):
        self.groceries = GroceryRepository(db)
        self.meals = MealRepository(db)
        self.menus = MenuRepository(db)
        self.pantry = PantryRepository(db)
        self.categories = CategoryRepository(db)

    # Compras

    def list_grocery_lists(self) -> List[GroceryListDTO]:
        return [GroceryListDTO.model_validate(g) for g in self.groceries.list_lists()]

    def get_grocery_list(self, list_uid: Optional[str] = None, *, include_purchased: bool = True) -> GroceryListItemsDTO:
        """
        Items de una lista de compras en el orden de Paprika.
        Sin `list_uid` se usa la lista marcada como default.
        """
        grocery_list = (
            self.groceries.get_list(list_uid) if list_uid else self.groceries.get_default_list()
        )
        if grocery_list is None:
            raise EntityNotFoundException("Lista de compras", list_uid or "default")
        items = self.groceries.list_items(grocery_list.uid, include_purchased=include_purchased)
        return GroceryListItemsDTO(
            grocery_list=GroceryListDTO.model_validate(grocery_list),
            items=[GroceryItemDTO.model_validate(i) for i in items],
        )

    def list_aisles(self) -> List[AisleDTO]:
        return [AisleDTO.model_validate(a) for a in self.groceries.list_aisles()]

    # Comidas

    def list_meals(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[MealDTO]:
        return [MealDTO.model_validate(m) for m in self.meals.list_between(start, end)]

    def list_meal_types(self) -> List[MealTypeDTO]:
        return [MealTypeDTO.model_validate(t) for t in self.meals.list_meal_types()]

    # Menús

    def list_menus(self) -> List[MenuDTO]:
        return [MenuDTO.model_validate(m) for m in self.menus.list_menus()]

    def get_menu_items(self, menu_uid: str) -> MenuItemsDTO:
        menu = self.menus.get_menu(menu_uid)
        if menu is None:
            raise EntityNotFoundException("Menu", menu_uid)
        return MenuItemsDTO(
            menu=MenuDTO.model_validate(menu),
            items=[MenuItemDTO.model_validate(i) for i in self.menus.list_items(menu_uid)],
        )

    # Despensa

    def list_pantry(self, *, in_stock_only: bool = False) -> List[PantryItemDTO]:
        return [PantryItemDTO.model_validate(p) for p in self.pantry.list(in_stock_only=in_stock_only)]

    # Categorías

    def category_tree(self) -> List[CategoryNodeDTO]:
        """
        Árbol de categorías (raíces primero), hermanas en orden de Paprika.

        Una categoría cuyo padre no existe se muestra como raíz.
        """
        categories = self.categories.list()
        nodes: Dict[str, CategoryNodeDTO] = {
            c.uid: CategoryNodeDTO.model_validate(c) for c in categories
        }
        roots: List[CategoryNodeDTO] = []
        for c in categories:
            node = nodes[c.uid]
            parent = nodes.get(c.parent_uid) if c.parent_uid else None
            if parent is None:
                roots.append(node)
            else:
                parent.children.append(node)
        return roots
