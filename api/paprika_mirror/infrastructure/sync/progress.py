"""
Progress Tracker: posición de sync por tipo de entidad (tabla `sync_status`).

La posición es un token opaco de la fuente. Se escribe SOLO dentro de la
transacción del lote que la habilita, con compare-and-set contra la posición
leída al inicio de la pasada.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection
from sqlalchemy.sql import func

from paprika_mirror.infrastructure.database.models import SyncStatusModel
from paprika_mirror.infrastructure.sync.types import EntityType
from paprika_mirror.shared.exceptions.sync import StalePositionError

_UNSET = object()


def _name(entity_type: EntityType | str) -> str:
    return EntityType(entity_type).value


class ProgressTracker:
    """Lectura y avance (CAS) de posiciones por tipo."""

    table = SyncStatusModel.__table__

    def get_position(self, conn: Connection, entity_type: EntityType | str) -> Optional[str]:
        """Posición almacenada, o None si el tipo nunca se sincronizó."""
        return conn.execute(
            select(self.table.c.position).where(self.table.c.name == _name(entity_type))
        ).scalar()

    def list_positions(self, conn: Connection) -> dict[str, str]:
        rows = conn.execute(
            select(self.table.c.name, self.table.c.position).order_by(self.table.c.name)
        )
        return {name: position for name, position in rows}

    def list_status(self, conn: Connection) -> list[dict]:
        rows = conn.execute(
            select(self.table.c.name, self.table.c.position, self.table.c.updated_at)
            .order_by(self.table.c.name)
        ).mappings()
        return [dict(r) for r in rows]

    def set_position(
        self,
        conn: Connection,
        entity_type: EntityType | str,
        position: str,
        *,
        expected: Optional[str] | object = _UNSET,
    ) -> None:
        """
        Escribe la posición del tipo dentro de la transacción de `conn`.

        Args:
            conn: Conexión con transacción abierta (la del lote)
            entity_type: Tipo de entidad
            position: Nueva posición
            expected: Posición leída al inicio de la pasada. Si se indica y no
                coincide con la almacenada, se levanta StalePositionError.

        Raises:
            StalePositionError: Otra pasada avanzó la posición entretanto.
        """
        name = _name(entity_type)
        if expected is not _UNSET:
            current = self._current_for_update(conn, name)
            if current != expected:
                raise StalePositionError(name, expected, current)

        values = {"name": name, "position": str(position), "updated_at": func.now()}
        if conn.dialect.name == "postgresql":
            stmt = pg_insert(self.table).values(**values)
        else:
            stmt = sqlite_insert(self.table).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[self.table.c.name],
            set_={"position": stmt.excluded.position, "updated_at": func.now()},
        )
        conn.execute(stmt)
        logger.debug(f"Posición de '{name}' -> {position}")

    def reset(self, conn: Connection, entity_type: EntityType | str | None = None) -> int:
        """
        Borra la posición (de un tipo o de todos). La siguiente pasada hará
        un fetch completo.
        """
        stmt = delete(self.table)
        if entity_type is not None:
            stmt = stmt.where(self.table.c.name == _name(entity_type))
        res = conn.execute(stmt)
        logger.info(f"Posiciones reseteadas: {entity_type or 'todas'} ({res.rowcount or 0} filas)")
        return res.rowcount or 0

    def _current_for_update(self, conn: Connection, name: str) -> Optional[str]:
        stmt = select(self.table.c.position).where(self.table.c.name == name)
        if conn.dialect.name == "postgresql":
            stmt = stmt.with_for_update()
        return conn.execute(stmt).scalar()
