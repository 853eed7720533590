"""
Modelos de base de datos (ORM) del espejo de Paprika.

Convenciones:
- `id`: surrogate key local (autoincremental, nunca expuesta a Paprika).
- `uid`: identidad estable asignada por Paprika; todas las relaciones entre
  tablas se hacen por uid.
- Todas las FKs son DEFERRABLE INITIALLY DEFERRED: se validan en el COMMIT,
  por lo que el orden de inserción dentro de un lote no importa.
"""
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.sql import func

from paprika_mirror.infrastructure.database.session import Base


def uid_reference(target: str, name: str) -> ForeignKey:
    """FK por uid, validada al final de la transacción."""
    return ForeignKey(
        f"{target}.uid",
        name=name,
        deferrable=True,
        initially="DEFERRED",
    )


class MirrorMixin:
    """Columnas comunes a toda entidad espejada."""

    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    uid = Column(Text, unique=True, nullable=False)


class RecipeModel(MirrorMixin, Base):
    """Receta. Tiene fingerprint propio (`hash`) y flag de papelera (`in_trash`)."""

    __tablename__ = "recipe"

    categories = Column(JSON, nullable=False, default=list)
    cook_time = Column(Text, nullable=True)
    created = Column(DateTime(timezone=True), nullable=False)
    description = Column(Text, nullable=True)
    difficulty = Column(Text, nullable=True)
    directions = Column(Text, nullable=False)
    hash = Column(Text, nullable=False)
    image_url = Column(Text, nullable=True)
    in_trash = Column(Boolean, nullable=False, default=False)
    ingredients = Column(Text, nullable=False)
    is_pinned = Column(Boolean, nullable=False, default=False)
    name = Column(Text, nullable=False)
    notes = Column(Text, nullable=False)
    on_favorites = Column(Boolean, nullable=False, default=False)
    on_grocery_list = Column(Boolean, nullable=False, default=False)
    photo = Column(Text, nullable=True)
    photo_hash = Column(Text, nullable=True)
    photo_large = Column(Text, nullable=True)
    photo_url = Column(Text, nullable=True)
    prep_time = Column(Text, nullable=True)
    rating = Column(Integer, nullable=False, default=0)
    scale = Column(Text, nullable=True)
    servings = Column(Text, nullable=True)
    source = Column(Text, nullable=True)
    source_url = Column(Text, nullable=True)
    total_time = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Recipe(id={self.id}, uid={self.uid}, name={self.name})>"


class MealTypeModel(MirrorMixin, Base):
    __tablename__ = "meal_type"

    name = Column(Text, nullable=False)
    order_flag = Column(Integer, nullable=False)
    color = Column(Text, nullable=False)
    export_all_day = Column(Boolean, nullable=False)
    export_time = Column(Integer, nullable=False)
    original_type = Column(Integer, nullable=False)


class MealModel(MirrorMixin, Base):
    """Comida planificada: referencia a receta y a tipo de comida."""

    __tablename__ = "meal"

    recipe_uid = Column(Text, uid_reference("recipe", "fk_meal_recipe"), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    meal_type = Column(Integer, nullable=False)
    name = Column(Text, nullable=False)
    order_flag = Column(Integer, nullable=False)
    type_uid = Column(Text, uid_reference("meal_type", "fk_meal_type"), nullable=False)

    def __repr__(self):
        return f"<Meal(id={self.id}, uid={self.uid}, recipe_uid={self.recipe_uid})>"


class AisleModel(MirrorMixin, Base):
    __tablename__ = "aisle"

    name = Column(Text, nullable=False)
    order_flag = Column(Integer, nullable=False)


class GroceryListModel(MirrorMixin, Base):
    __tablename__ = "grocery_list"

    name = Column(Text, nullable=False)
    order_flag = Column(Integer, nullable=False)
    is_default = Column(Boolean, nullable=False)
    reminders_list = Column(Text, nullable=False)


class GroceryItemModel(MirrorMixin, Base):
    """Item de lista de compras. La receta es opcional."""

    __tablename__ = "grocery_item"

    recipe_uid = Column(Text, uid_reference("recipe", "fk_grocery_item_recipe"), nullable=True)
    name = Column(Text, nullable=False)
    order_flag = Column(Integer, nullable=False)
    purchased = Column(Boolean, nullable=False)
    aisle = Column(Text, nullable=False)
    ingredient = Column(Text, nullable=False)
    recipe = Column(Text, nullable=True)
    instruction = Column(Text, nullable=False)
    quantity = Column(Text, nullable=False)
    separate = Column(Boolean, nullable=False)
    aisle_uid = Column(Text, uid_reference("aisle", "fk_grocery_item_aisle"), nullable=False)
    list_uid = Column(Text, uid_reference("grocery_list", "fk_grocery_item_list"), nullable=False)

    def __repr__(self):
        return f"<GroceryItem(id={self.id}, uid={self.uid}, list_uid={self.list_uid})>"


class MenuModel(MirrorMixin, Base):
    __tablename__ = "menu"

    name = Column(Text, nullable=False)
    notes = Column(Text, nullable=False)
    order_flag = Column(Integer, nullable=False)
    days = Column(Integer, nullable=False)


class MenuItemModel(MirrorMixin, Base):
    """Item de menú: referencia a receta, menú y tipo de comida."""

    __tablename__ = "menu_item"

    name = Column(Text, nullable=False)
    order_flag = Column(Integer, nullable=False)
    recipe_uid = Column(Text, uid_reference("recipe", "fk_menu_item_recipe"), nullable=False)
    menu_uid = Column(Text, uid_reference("menu", "fk_menu_item_menu"), nullable=False)
    type_uid = Column(Text, uid_reference("meal_type", "fk_menu_item_type"), nullable=False)
    day = Column(Integer, nullable=False)


class PhotoModel(MirrorMixin, Base):
    """Foto adicional de una receta. Tiene fingerprint propio (`hash`)."""

    __tablename__ = "photo"

    filename = Column(Text, nullable=False)
    recipe_uid = Column(Text, uid_reference("recipe", "fk_photo_recipe"), nullable=False)
    order_flag = Column(Integer, nullable=False)
    name = Column(Text, nullable=False)
    hash = Column(Text, nullable=False)


class PantryItemModel(MirrorMixin, Base):
    __tablename__ = "pantry_item"

    ingredient = Column(Text, nullable=False)
    aisle = Column(Text, nullable=False)
    expiration_date = Column(DateTime(timezone=True), nullable=True)
    has_expiration = Column(Boolean, nullable=False)
    in_stock = Column(Boolean, nullable=False)
    purchase_date = Column(DateTime(timezone=True), nullable=False)
    quantity = Column(Text, nullable=False)
    aisle_uid = Column(Text, uid_reference("aisle", "fk_pantry_item_aisle"), nullable=False)


class GroceryIngredientModel(MirrorMixin, Base):
    __tablename__ = "grocery_ingredient"

    name = Column(Text, nullable=False)
    aisle_uid = Column(Text, uid_reference("aisle", "fk_grocery_ingredient_aisle"), nullable=True)


class BookmarkModel(MirrorMixin, Base):
    __tablename__ = "bookmark"

    title = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    order_flag = Column(Integer, nullable=False)


class CategoryModel(MirrorMixin, Base):
    """Categoría de recetas. Forma un árbol vía `parent_uid` (null = raíz)."""

    __tablename__ = "category"

    order_flag = Column(Integer, nullable=False)
    name = Column(Text, nullable=False)
    parent_uid = Column(Text, uid_reference("category", "fk_category_parent"), nullable=True)

    def __repr__(self):
        return f"<Category(id={self.id}, uid={self.uid}, parent_uid={self.parent_uid})>"


class SyncStatusModel(Base):
    """
    Posición de sync por tipo de entidad (token opaco de la fuente).

    Solo la escribe el Progress Tracker, dentro de la misma transacción que
    los datos que habilita.
    """

    __tablename__ = "sync_status"

    name = Column(Text, primary_key=True)
    position = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<SyncStatus(name={self.name}, position={self.position})>"
