"""
Router principal de la API v1.
Agrupa todos los endpoints de la version 1.
"""
from fastapi import APIRouter

from paprika_mirror.api.v1.endpoints import collections, recipes, sync


# Router principal de la API v1
api_router = APIRouter(prefix="/v1")

# Incluir routers de endpoints especificos
api_router.include_router(recipes.router)
api_router.include_router(collections.groceries_router)
api_router.include_router(collections.meals_router)
api_router.include_router(collections.menus_router)
api_router.include_router(collections.pantry_router)
api_router.include_router(collections.categories_router)
api_router.include_router(sync.router)
