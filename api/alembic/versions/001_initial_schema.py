"""initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-17 10:00:00.000000

Tablas del espejo de Paprika. Todas las relaciones son por uid y las FKs son
DEFERRABLE INITIALLY DEFERRED: se validan al COMMIT de cada lote.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _mirror_columns() -> list:
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('uid', sa.Text(), nullable=False),
    ]


def _mirror_constraints(table: str) -> list:
    return [
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uid', name=f'uq_{table}_uid'),
    ]


def _uid_fk(column: str, target: str, name: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        [column], [f'{target}.uid'], name=name, deferrable=True, initially='DEFERRED'
    )


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('recipe',
        *_mirror_columns(),
        sa.Column('categories', sa.JSON(), nullable=False),
        sa.Column('cook_time', sa.Text(), nullable=True),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('difficulty', sa.Text(), nullable=True),
        sa.Column('directions', sa.Text(), nullable=False),
        sa.Column('hash', sa.Text(), nullable=False),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('in_trash', sa.Boolean(), nullable=False),
        sa.Column('ingredients', sa.Text(), nullable=False),
        sa.Column('is_pinned', sa.Boolean(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('on_favorites', sa.Boolean(), nullable=False),
        sa.Column('on_grocery_list', sa.Boolean(), nullable=False),
        sa.Column('photo', sa.Text(), nullable=True),
        sa.Column('photo_hash', sa.Text(), nullable=True),
        sa.Column('photo_large', sa.Text(), nullable=True),
        sa.Column('photo_url', sa.Text(), nullable=True),
        sa.Column('prep_time', sa.Text(), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('scale', sa.Text(), nullable=True),
        sa.Column('servings', sa.Text(), nullable=True),
        sa.Column('source', sa.Text(), nullable=True),
        sa.Column('source_url', sa.Text(), nullable=True),
        sa.Column('total_time', sa.Text(), nullable=True),
        *_mirror_constraints('recipe'),
        sqlite_autoincrement=True,
    )

    op.create_table('meal_type',
        *_mirror_columns(),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('order_flag', sa.Integer(), nullable=False),
        sa.Column('color', sa.Text(), nullable=False),
        sa.Column('export_all_day', sa.Boolean(), nullable=False),
        sa.Column('export_time', sa.Integer(), nullable=False),
        sa.Column('original_type', sa.Integer(), nullable=False),
        *_mirror_constraints('meal_type'),
        sqlite_autoincrement=True,
    )

    op.create_table('aisle',
        *_mirror_columns(),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('order_flag', sa.Integer(), nullable=False),
        *_mirror_constraints('aisle'),
        sqlite_autoincrement=True,
    )

    op.create_table('grocery_list',
        *_mirror_columns(),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('order_flag', sa.Integer(), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False),
        sa.Column('reminders_list', sa.Text(), nullable=False),
        *_mirror_constraints('grocery_list'),
        sqlite_autoincrement=True,
    )

    op.create_table('menu',
        *_mirror_columns(),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('order_flag', sa.Integer(), nullable=False),
        sa.Column('days', sa.Integer(), nullable=False),
        *_mirror_constraints('menu'),
        sqlite_autoincrement=True,
    )

    op.create_table('category',
        *_mirror_columns(),
        sa.Column('order_flag', sa.Integer(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('parent_uid', sa.Text(), nullable=True),
        _uid_fk('parent_uid', 'category', 'fk_category_parent'),
        *_mirror_constraints('category'),
        sqlite_autoincrement=True,
    )

    op.create_table('meal',
        *_mirror_columns(),
        sa.Column('recipe_uid', sa.Text(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('meal_type', sa.Integer(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('order_flag', sa.Integer(), nullable=False),
        sa.Column('type_uid', sa.Text(), nullable=False),
        _uid_fk('recipe_uid', 'recipe', 'fk_meal_recipe'),
        _uid_fk('type_uid', 'meal_type', 'fk_meal_type'),
        *_mirror_constraints('meal'),
        sqlite_autoincrement=True,
    )

    op.create_table('grocery_item',
        *_mirror_columns(),
        sa.Column('recipe_uid', sa.Text(), nullable=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('order_flag', sa.Integer(), nullable=False),
        sa.Column('purchased', sa.Boolean(), nullable=False),
        sa.Column('aisle', sa.Text(), nullable=False),
        sa.Column('ingredient', sa.Text(), nullable=False),
        sa.Column('recipe', sa.Text(), nullable=True),
        sa.Column('instruction', sa.Text(), nullable=False),
        sa.Column('quantity', sa.Text(), nullable=False),
        sa.Column('separate', sa.Boolean(), nullable=False),
        sa.Column('aisle_uid', sa.Text(), nullable=False),
        sa.Column('list_uid', sa.Text(), nullable=False),
        _uid_fk('recipe_uid', 'recipe', 'fk_grocery_item_recipe'),
        _uid_fk('aisle_uid', 'aisle', 'fk_grocery_item_aisle'),
        _uid_fk('list_uid', 'grocery_list', 'fk_grocery_item_list'),
        *_mirror_constraints('grocery_item'),
        sqlite_autoincrement=True,
    )

    op.create_table('menu_item',
        *_mirror_columns(),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('order_flag', sa.Integer(), nullable=False),
        sa.Column('recipe_uid', sa.Text(), nullable=False),
        sa.Column('menu_uid', sa.Text(), nullable=False),
        sa.Column('type_uid', sa.Text(), nullable=False),
        sa.Column('day', sa.Integer(), nullable=False),
        _uid_fk('recipe_uid', 'recipe', 'fk_menu_item_recipe'),
        _uid_fk('menu_uid', 'menu', 'fk_menu_item_menu'),
        _uid_fk('type_uid', 'meal_type', 'fk_menu_item_type'),
        *_mirror_constraints('menu_item'),
        sqlite_autoincrement=True,
    )

    op.create_table('photo',
        *_mirror_columns(),
        sa.Column('filename', sa.Text(), nullable=False),
        sa.Column('recipe_uid', sa.Text(), nullable=False),
        sa.Column('order_flag', sa.Integer(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('hash', sa.Text(), nullable=False),
        _uid_fk('recipe_uid', 'recipe', 'fk_photo_recipe'),
        *_mirror_constraints('photo'),
        sqlite_autoincrement=True,
    )

    op.create_table('pantry_item',
        *_mirror_columns(),
        sa.Column('ingredient', sa.Text(), nullable=False),
        sa.Column('aisle', sa.Text(), nullable=False),
        sa.Column('expiration_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('has_expiration', sa.Boolean(), nullable=False),
        sa.Column('in_stock', sa.Boolean(), nullable=False),
        sa.Column('purchase_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('quantity', sa.Text(), nullable=False),
        sa.Column('aisle_uid', sa.Text(), nullable=False),
        _uid_fk('aisle_uid', 'aisle', 'fk_pantry_item_aisle'),
        *_mirror_constraints('pantry_item'),
        sqlite_autoincrement=True,
    )

    op.create_table('grocery_ingredient',
        *_mirror_columns(),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('aisle_uid', sa.Text(), nullable=True),
        _uid_fk('aisle_uid', 'aisle', 'fk_grocery_ingredient_aisle'),
        *_mirror_constraints('grocery_ingredient'),
        sqlite_autoincrement=True,
    )

    op.create_table('bookmark',
        *_mirror_columns(),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('order_flag', sa.Integer(), nullable=False),
        *_mirror_constraints('bookmark'),
        sqlite_autoincrement=True,
    )

    op.create_table('sync_status',
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('position', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('name'),
    )


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'sync_status',
        'bookmark',
        'grocery_ingredient',
        'pantry_item',
        'photo',
        'menu_item',
        'grocery_item',
        'meal',
        'category',
        'menu',
        'grocery_list',
        'aisle',
        'meal_type',
        'recipe',
    ):
        op.drop_table(table)
