"""
Repositorio de recetas (solo lectura).
El espejo solo se escribe desde el sync; aquí no hay métodos de escritura.
"""
from typing import List, Optional

from sqlalchemy import String, cast, func, select
from sqlalchemy.orm import Session

from paprika_mirror.infrastructure.database.models import PhotoModel, RecipeModel
from paprika_mirror.infrastructure.sync.entity_config import get_entity_config
from paprika_mirror.infrastructure.sync.ordering import order_by_columns
from paprika_mirror.infrastructure.sync.types import EntityType


class RecipeRepository:
    """Repositorio para consultar recetas espejadas."""

    def __init__(self, db: Session):
        self.db = db

    def list(
        self,
        *,
        include_trashed: bool = False,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[RecipeModel]:
        """
        Lista recetas ordenadas por nombre.

        Las recetas en papelera se excluyen salvo que se pidan explícitamente.
        """
        stmt = select(RecipeModel)
        if not include_trashed:
            stmt = stmt.where(RecipeModel.in_trash.is_(False))
        if search:
            stmt = stmt.where(func.lower(RecipeModel.name).contains(search.lower()))
        stmt = stmt.order_by(RecipeModel.name, RecipeModel.id).limit(limit).offset(offset)
        return list(self.db.execute(stmt).scalars().all())

    def count(self, *, include_trashed: bool = False) -> int:
        stmt = select(func.count(RecipeModel.id))
        if not include_trashed:
            stmt = stmt.where(RecipeModel.in_trash.is_(False))
        return int(self.db.execute(stmt).scalar() or 0)

    def get_by_uid(self, uid: str) -> Optional[RecipeModel]:
        result = self.db.execute(select(RecipeModel).where(RecipeModel.uid == uid))
        return result.scalars().first()

    def list_by_category(
        self,
        category_uid: str,
        *,
        include_trashed: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> List[RecipeModel]:
        """
        Recetas que incluyen la categoría, ordenadas por nombre.

        `categories` es una lista JSON de uids; se filtra en SQL buscando el
        uid entre comillas en el texto serializado, que funciona igual en
        SQLite y PostgreSQL.
        """
        serialized = cast(RecipeModel.categories, String)
        stmt = select(RecipeModel).where(serialized.contains(f'"{category_uid}"', autoescape=True))
        if not include_trashed:
            stmt = stmt.where(RecipeModel.in_trash.is_(False))
        stmt = stmt.order_by(RecipeModel.name, RecipeModel.id).limit(limit).offset(offset)
        return list(self.db.execute(stmt).scalars().all())

    def list_photos(self, recipe_uid: str) -> List[PhotoModel]:
        """Fotos de la receta en el orden de Paprika."""
        config = get_entity_config(EntityType.PHOTOS)
        stmt = (
            select(PhotoModel)
            .where(PhotoModel.recipe_uid == recipe_uid)
            .order_by(*order_by_columns(config))
        )
        return list(self.db.execute(stmt).scalars().all())
