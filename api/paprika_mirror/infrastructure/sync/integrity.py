"""
Validaciones previas al COMMIT de un lote.

Las FKs diferidas ya garantizan la integridad en el COMMIT, pero el error del
motor no dice qué uids fallaron. Estas consultas corren dentro de la misma
transacción, justo antes del commit, y devuelven los culpables.
"""

from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.engine import Connection

from paprika_mirror.infrastructure.sync.entity_config import ENTITY_CONFIGS, EntityConfig
from paprika_mirror.infrastructure.sync.types import EntityType


def find_dangling_references(
    conn: Connection, touched: Iterable[EntityType | str]
) -> list[dict[str, Any]]:
    """
    Referencias por uid que no resuelven a una fila existente.

    Solo revisa relaciones donde el hijo o el padre fue tocado por el lote:
    el resto ya era consistente antes de la transacción.
    """
    touched_types = {EntityType(t) for t in touched}
    offending: list[dict[str, Any]] = []

    for child in ENTITY_CONFIGS.values():
        for ref in child.references:
            if child.entity_type not in touched_types and ref.target not in touched_types:
                continue
            offending.extend(_dangling_for(conn, child, ref.column, ENTITY_CONFIGS[ref.target]))
    return offending


def _dangling_for(
    conn: Connection, child: EntityConfig, column: str, parent: EntityConfig
) -> list[dict[str, Any]]:
    c = child.table.alias("c")
    p = parent.table.alias("p")
    ref_col = c.c[column]
    stmt = (
        select(c.c.uid, ref_col)
        .select_from(c.outerjoin(p, ref_col == p.c.uid))
        .where(ref_col.is_not(None), p.c.uid.is_(None))
        .order_by(c.c.id)
    )
    return [
        {
            "entity_type": child.entity_type.value,
            "uid": uid,
            "column": column,
            "missing_uid": missing,
        }
        for uid, missing in conn.execute(stmt)
    ]


def find_category_cycles(conn: Connection) -> list[list[str]]:
    """
    Ciclos en el árbol de categorías (`parent_uid`).

    Recorre cada cadena de padres una sola vez; lineal en la cantidad de
    categorías.
    """
    table = ENTITY_CONFIGS[EntityType.CATEGORIES].table
    parent_of = {
        uid: parent
        for uid, parent in conn.execute(
            select(table.c.uid, table.c.parent_uid).order_by(table.c.id)
        )
    }
    return category_cycles(parent_of)


def category_cycles(parent_of: dict[str, str | None]) -> list[list[str]]:
    done: set[str] = set()
    cycles: list[list[str]] = []

    for start in parent_of:
        if start in done:
            continue
        path: list[str] = []
        on_path: dict[str, int] = {}
        node = start
        while node is not None and node in parent_of and node not in done and node not in on_path:
            on_path[node] = len(path)
            path.append(node)
            node = parent_of[node]
        if node is not None and node in on_path:
            cycles.append(path[on_path[node]:])
        done.update(path)
    return cycles
