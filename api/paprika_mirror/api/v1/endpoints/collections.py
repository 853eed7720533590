"""
Endpoints de consulta de colecciones ordenadas: compras, comidas, menus,
despensa y categorias.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from paprika_mirror.api.v1.dependencies.use_case_deps import get_collection_use_cases
from paprika_mirror.application.dto.collection_dto import (
    AisleDTO,
    CategoryNodeDTO,
    GroceryListDTO,
    GroceryListItemsDTO,
    MealDTO,
    MealTypeDTO,
    MenuDTO,
    MenuItemsDTO,
    PantryItemDTO,
)
from paprika_mirror.application.use_cases.collection_use_cases import CollectionUseCases


groceries_router = APIRouter(prefix="/groceries", tags=["Groceries"])
meals_router = APIRouter(prefix="/meals", tags=["Meals"])
menus_router = APIRouter(prefix="/menus", tags=["Menus"])
pantry_router = APIRouter(prefix="/pantry", tags=["Pantry"])
categories_router = APIRouter(prefix="/categories", tags=["Categories"])


@groceries_router.get("", response_model=GroceryListItemsDTO, summary="Items de la lista por defecto")
def get_default_grocery_list(
    include_purchased: bool = Query(default=True),
    use_cases: CollectionUseCases = Depends(get_collection_use_cases),
) -> GroceryListItemsDTO:
    return use_cases.get_grocery_list(None, include_purchased=include_purchased)


@groceries_router.get("/lists", response_model=List[GroceryListDTO], summary="Listas de compras")
def list_grocery_lists(
    use_cases: CollectionUseCases = Depends(get_collection_use_cases),
) -> List[GroceryListDTO]:
    return use_cases.list_grocery_lists()


@groceries_router.get("/aisles", response_model=List[AisleDTO], summary="Pasillos")
def list_aisles(
    use_cases: CollectionUseCases = Depends(get_collection_use_cases),
) -> List[AisleDTO]:
    return use_cases.list_aisles()


@groceries_router.get(
    "/lists/{list_uid}", response_model=GroceryListItemsDTO, summary="Items de una lista de compras"
)
def get_grocery_list(
    list_uid: str,
    include_purchased: bool = Query(default=True),
    use_cases: CollectionUseCases = Depends(get_collection_use_cases),
) -> GroceryListItemsDTO:
    """Items en el orden de Paprika (order_flag; empates por antiguedad)."""
    return use_cases.get_grocery_list(list_uid, include_purchased=include_purchased)


@meals_router.get("", response_model=List[MealDTO], summary="Comidas planificadas")
def list_meals(
    start: Optional[datetime] = Query(default=None, description="Desde (inclusive)"),
    end: Optional[datetime] = Query(default=None, description="Hasta (exclusivo)"),
    use_cases: CollectionUseCases = Depends(get_collection_use_cases),
) -> List[MealDTO]:
    return use_cases.list_meals(start, end)


@meals_router.get("/types", response_model=List[MealTypeDTO], summary="Tipos de comida")
def list_meal_types(
    use_cases: CollectionUseCases = Depends(get_collection_use_cases),
) -> List[MealTypeDTO]:
    return use_cases.list_meal_types()


@menus_router.get("", response_model=List[MenuDTO], summary="Menus")
def list_menus(
    use_cases: CollectionUseCases = Depends(get_collection_use_cases),
) -> List[MenuDTO]:
    return use_cases.list_menus()


@menus_router.get("/{menu_uid}/items", response_model=MenuItemsDTO, summary="Items de un menu")
def get_menu_items(
    menu_uid: str,
    use_cases: CollectionUseCases = Depends(get_collection_use_cases),
) -> MenuItemsDTO:
    return use_cases.get_menu_items(menu_uid)


@pantry_router.get("", response_model=List[PantryItemDTO], summary="Despensa")
def list_pantry(
    in_stock_only: bool = Query(default=False),
    use_cases: CollectionUseCases = Depends(get_collection_use_cases),
) -> List[PantryItemDTO]:
    return use_cases.list_pantry(in_stock_only=in_stock_only)


@categories_router.get("", response_model=List[CategoryNodeDTO], summary="Arbol de categorias")
def list_categories(
    use_cases: CollectionUseCases = Depends(get_collection_use_cases),
) -> List[CategoryNodeDTO]:
    return use_cases.category_tree()
