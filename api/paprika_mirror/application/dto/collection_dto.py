"""
DTOs de colecciones ordenadas (compras, comidas, menús, despensa, categorías).
Los items se devuelven en el orden de Paprika (order_flag, luego id).
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class _OrmDTO(BaseModel):
    class Config:
        from_attributes = True


class GroceryItemDTO(_OrmDTO):
    uid: str
    name: str
    ingredient: str
    quantity: str
    instruction: str
    aisle: str
    aisle_uid: str
    purchased: bool
    recipe_uid: Optional[str] = None
    recipe: Optional[str] = None
    order_flag: int


class GroceryListDTO(_OrmDTO):
    uid: str
    name: str
    is_default: bool
    order_flag: int


class GroceryListItemsDTO(BaseModel):
    grocery_list: GroceryListDTO
    items: List[GroceryItemDTO]


class AisleDTO(_OrmDTO):
    uid: str
    name: str
    order_flag: int


class MealDTO(_OrmDTO):
    uid: str
    name: str
    date: datetime
    recipe_uid: str
    type_uid: str
    meal_type: int
    order_flag: int


class MealTypeDTO(_OrmDTO):
    uid: str
    name: str
    color: str
    order_flag: int


class MenuDTO(_OrmDTO):
    uid: str
    name: str
    notes: str
    days: int
    order_flag: int


class MenuItemDTO(_OrmDTO):
    uid: str
    name: str
    day: int
    recipe_uid: str
    type_uid: str
    order_flag: int


class MenuItemsDTO(BaseModel):
    menu: MenuDTO
    items: List[MenuItemDTO]


class PantryItemDTO(_OrmDTO):
    uid: str
    ingredient: str
    aisle: str
    quantity: str
    in_stock: bool
    has_expiration: bool
    purchase_date: datetime
    expiration_date: Optional[datetime] = None


class CategoryDTO(_OrmDTO):
    uid: str
    name: str
    parent_uid: Optional[str] = None
    order_flag: int


class CategoryNodeDTO(CategoryDTO):
    """Categoría con sus hijas (árbol)."""
    children: List["CategoryNodeDTO"] = []


CategoryNodeDTO.model_rebuild()
