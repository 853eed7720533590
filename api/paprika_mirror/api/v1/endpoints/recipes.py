"""
Endpoints de consulta de recetas.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from paprika_mirror.api.v1.dependencies.use_case_deps import get_recipe_use_cases
from paprika_mirror.application.dto.recipe_dto import RecipeDTO, RecipeListDTO, RecipeSummaryDTO
from paprika_mirror.application.use_cases.recipe_use_cases import RecipeUseCases


router = APIRouter(prefix="/recipes", tags=["Recipes"])


@router.get("", response_model=RecipeListDTO, summary="Listar recetas")
def list_recipes(
    search: Optional[str] = Query(default=None, description="Filtro por nombre"),
    include_trashed: bool = Query(default=False, description="Incluir recetas en papelera"),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    use_cases: RecipeUseCases = Depends(get_recipe_use_cases),
) -> RecipeListDTO:
    """
    Lista recetas espejadas ordenadas por nombre.

    Las recetas en papelera (`in_trash`) se excluyen por defecto.
    """
    return use_cases.list_recipes(
        include_trashed=include_trashed, search=search, limit=limit, offset=offset
    )


@router.get(
    "/by-category/{category_uid}",
    response_model=List[RecipeSummaryDTO],
    summary="Listar recetas de una categoria",
)
def list_recipes_by_category(
    category_uid: str,
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    use_cases: RecipeUseCases = Depends(get_recipe_use_cases),
) -> List[RecipeSummaryDTO]:
    return use_cases.list_by_category(category_uid, limit=limit, offset=offset)


@router.get("/{uid}", response_model=RecipeDTO, summary="Obtener receta por uid")
def get_recipe(
    uid: str,
    use_cases: RecipeUseCases = Depends(get_recipe_use_cases),
) -> RecipeDTO:
    """
    Retorna la receta completa con sus fotos (en el orden de Paprika).

    Raises:
        404: Si la receta no existe en el espejo
    """
    return use_cases.get_recipe(uid)
