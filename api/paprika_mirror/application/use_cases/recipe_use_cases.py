"""
Casos de uso de consulta de recetas.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from paprika_mirror.application.dto.recipe_dto import (
    PhotoDTO,
    RecipeDTO,
    RecipeListDTO,
    RecipeSummaryDTO,
)
from paprika_mirror.infrastructure.repositories.collection_repository import CategoryRepository
from paprika_mirror.infrastructure.repositories.recipe_repository import RecipeRepository
from paprika_mirror.shared.exceptions.domain import EntityNotFoundException


class RecipeUseCases:
    """Consultas sobre recetas espejadas."""

    def __init__(self, db: Session):
        self.recipes = RecipeRepository(db)
        self.categories = CategoryRepository(db)

    def list_recipes(
        self,
        *,
        include_trashed: bool = False,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> RecipeListDTO:
        items = self.recipes.list(
            include_trashed=include_trashed, search=search, limit=limit, offset=offset
        )
        return RecipeListDTO(
            total=self.recipes.count(include_trashed=include_trashed),
            items=[RecipeSummaryDTO.model_validate(r) for r in items],
        )

    def get_recipe(self, uid: str) -> RecipeDTO:
        """
        Obtiene una receta con sus fotos.

        Raises:
            EntityNotFoundException: Si la receta no existe en el espejo
        """
        recipe = self.recipes.get_by_uid(uid)
        if recipe is None:
            raise EntityNotFoundException("Receta", uid)
        photos = [PhotoDTO.model_validate(p) for p in self.recipes.list_photos(uid)]
        return RecipeDTO.model_validate(recipe).model_copy(update={"photos": photos})

    def list_by_category(
        self, category_uid: str, *, limit: int = 100, offset: int = 0
    ) -> List[RecipeSummaryDTO]:
        if self.categories.get_by_uid(category_uid) is None:
            raise EntityNotFoundException("Categoria", category_uid)
        recipes = self.recipes.list_by_category(category_uid, limit=limit, offset=offset)
        return [RecipeSummaryDTO.model_validate(r) for r in recipes]
