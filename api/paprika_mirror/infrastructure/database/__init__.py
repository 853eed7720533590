"""
Configuración de base de datos.

Importa todos los modelos para que se registren con Base
antes de crear las tablas.
"""
from paprika_mirror.infrastructure.database.models import (
    AisleModel,
    BookmarkModel,
    CategoryModel,
    GroceryIngredientModel,
    GroceryItemModel,
    GroceryListModel,
    MealModel,
    MealTypeModel,
    MenuItemModel,
    MenuModel,
    PantryItemModel,
    PhotoModel,
    RecipeModel,
    SyncStatusModel,
)
