"""
Dependencias para inyeccion de casos de uso.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from paprika_mirror.application.use_cases.collection_use_cases import CollectionUseCases
from paprika_mirror.application.use_cases.recipe_use_cases import RecipeUseCases
from paprika_mirror.application.use_cases.sync_use_cases import SyncUseCases
from paprika_mirror.infrastructure.database.session import get_db


def get_recipe_use_cases(db: Session = Depends(get_db)) -> RecipeUseCases:
    """
    Dependencia para obtener los casos de uso de recetas.

    Args:
        db: Sesion de base de datos

    Returns:
        RecipeUseCases: Instancia de casos de uso de recetas
    """
    return RecipeUseCases(db)


def get_collection_use_cases(db: Session = Depends(get_db)) -> CollectionUseCases:
    return CollectionUseCases(db)


def get_sync_use_cases() -> SyncUseCases:
    """
    Dependencia para obtener los casos de uso de sync.

    Los jobs viven a nivel de clase, asi que cada instancia ve los mismos.
    """
    return SyncUseCases()
