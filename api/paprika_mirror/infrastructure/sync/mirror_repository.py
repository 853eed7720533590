"""
Repositorio del espejo (SQLAlchemy Core) para:
- índice de lo almacenado por tipo (uid -> StoredRow)
- escritura de inserts / updates / borrados de un lote
- advisory lock de la pasada (solo PostgreSQL)

El caller controla la transacción: aquí nunca se hace commit.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from loguru import logger
from sqlalchemy import bindparam, delete, insert, select, text, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import OperationalError

from paprika_mirror.infrastructure.sync.entity_config import EntityConfig
from paprika_mirror.infrastructure.sync.types import SnapshotRecord, StoredRow
from paprika_mirror.shared.exceptions.sync import StoreUnavailableError, SyncConfigError

# Límite de parámetros por IN (...) al borrar.
_DELETE_CHUNK = 500


class MirrorRepository:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def is_postgres(self) -> bool:
        return self._engine.dialect.name == "postgresql"

    def connect(self) -> Connection:
        """
        Abre conexión. El caller controla begin/commit/rollback.
        """
        try:
            return self._engine.connect()
        except OperationalError as e:
            raise StoreUnavailableError(
                f"No se pudo conectar a la base de datos: {e}\n"
                f"Sugerencia: verifica que DATABASE_URL sea accesible desde donde ejecutas el sync."
            ) from e

    def try_advisory_lock(self, conn: Connection, lock_key: int) -> bool:
        """
        Evita ejecuciones simultáneas del sync entre procesos.
        En SQLite no aplica (un solo proceso escribe).
        """
        if not self.is_postgres:
            return True
        locked = conn.execute(
            text("SELECT pg_try_advisory_lock(:key) AS locked"), {"key": lock_key}
        ).scalar()
        return bool(locked)

    def advisory_unlock(self, conn: Connection, lock_key: int) -> None:
        if self.is_postgres:
            conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": lock_key})

    def defer_constraints(self, conn: Connection) -> None:
        """
        Difiere la validación de FKs hasta el COMMIT de la transacción actual.

        Las FKs ya se declaran DEFERRABLE INITIALLY DEFERRED; esto cubre
        esquemas creados sin ese default.
        """
        if self.is_postgres:
            conn.execute(text("SET CONSTRAINTS ALL DEFERRED"))
        elif self._engine.dialect.name == "sqlite":
            conn.execute(text("PRAGMA defer_foreign_keys = ON"))

    def load_stored(self, conn: Connection, config: EntityConfig) -> dict[str, StoredRow]:
        """Índice uid -> StoredRow del tipo, en orden de surrogate id."""
        table = config.table
        cols = [table.c.id] + [table.c[c] for c in config.columns]
        stmt = select(*cols).order_by(table.c.id)

        stored: dict[str, StoredRow] = {}
        for row in conn.execute(stmt).mappings():
            stored[row["uid"]] = StoredRow(
                uid=row["uid"],
                surrogate_id=row["id"],
                fingerprint=config.fingerprint_of(row),
                scope=config.scope_of(row),
                position=row[config.order_column] if config.order_column else None,
                trashed=bool(row[config.trash_column]) if config.trash_column else False,
            )
        return stored

    def insert_rows(
        self, conn: Connection, config: EntityConfig, records: Sequence[SnapshotRecord]
    ) -> int:
        """
        Inserta en el orden recibido; los surrogate ids quedan crecientes
        en orden de lote.
        """
        if not records:
            return 0
        rows = [self._row_for(config, r, include_uid=True) for r in records]
        conn.execute(insert(config.table), rows)
        return len(rows)

    def update_rows(
        self, conn: Connection, config: EntityConfig, records: Sequence[SnapshotRecord]
    ) -> int:
        """Actualiza en sitio por uid (conserva surrogate id)."""
        if not records:
            return 0
        table = config.table
        stmt = update(table).where(table.c.uid == bindparam("b_uid"))
        params = []
        for r in records:
            row = self._row_for(config, r, include_uid=False)
            row["b_uid"] = r.uid
            params.append(row)
        conn.execute(stmt, params)
        return len(params)

    def delete_rows(self, conn: Connection, config: EntityConfig, uids: Iterable[str]) -> int:
        uid_list = list(uids)
        if not uid_list:
            return 0
        table = config.table
        deleted = 0
        for i in range(0, len(uid_list), _DELETE_CHUNK):
            chunk = uid_list[i:i + _DELETE_CHUNK]
            res = conn.execute(delete(table).where(table.c.uid.in_(chunk)))
            deleted += res.rowcount or 0
        if deleted != len(uid_list):
            logger.warning(
                f"{config.entity_type.value}: se pidieron {len(uid_list)} borrados, "
                f"la base reporta {deleted}"
            )
        return deleted

    def _row_for(self, config: EntityConfig, record: SnapshotRecord, *, include_uid: bool) -> dict:
        if record.fields is None:
            raise SyncConfigError(
                f"Registro {record.uid} de '{config.entity_type.value}' sin hidratar al escribir"
            )
        columns = config.columns if include_uid else config.content_columns
        return {c: record.fields.get(c) for c in columns}
