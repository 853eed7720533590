"""
DTOs de recetas.
Definen la estructura de datos que expone el API de consulta.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class PhotoDTO(BaseModel):
    """Foto adicional de una receta."""
    uid: str
    name: str
    filename: str
    order_flag: int

    class Config:
        from_attributes = True


class RecipeSummaryDTO(BaseModel):
    """Receta en listados (sin textos largos)."""
    uid: str = Field(..., description="uid asignado por Paprika")
    name: str
    rating: int = 0
    categories: List[str] = Field(default_factory=list, description="uids de categorías")
    on_favorites: bool = False
    in_trash: bool = False
    image_url: Optional[str] = None
    total_time: Optional[str] = None

    class Config:
        from_attributes = True


class RecipeDTO(RecipeSummaryDTO):
    """Receta completa."""
    created: datetime
    description: Optional[str] = None
    ingredients: str
    directions: str
    notes: str
    servings: Optional[str] = None
    prep_time: Optional[str] = None
    cook_time: Optional[str] = None
    difficulty: Optional[str] = None
    source: Optional[str] = None
    source_url: Optional[str] = None
    photo_url: Optional[str] = None
    hash: str
    photos: List[PhotoDTO] = Field(default_factory=list)


class RecipeListDTO(BaseModel):
    total: int
    items: List[RecipeSummaryDTO]
