"""
Aplicación atómica de un lote multi-tipo.

Orden dentro de la transacción:
1. inserts y updates de todos los tipos (inserts en orden de lote)
2. borrados de todos los tipos
3. validaciones previas al commit (referencias colgantes, ciclos de categorías)
4. avance de posiciones (compare-and-set)
5. COMMIT

Las FKs son diferidas, así que el orden entre tipos no importa: lo único que
cuenta es el estado al COMMIT. Si algo falla se revierte el lote completo y no se
avanza ninguna posición.
"""

from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, Sequence

from loguru import logger
from sqlalchemy.exc import DBAPIError, IntegrityError

from paprika_mirror.core.config import settings
from paprika_mirror.infrastructure.sync.commit_lock import CommitLockManager
from paprika_mirror.infrastructure.sync.entity_config import EntityConfig
from paprika_mirror.infrastructure.sync.integrity import (
    find_category_cycles,
    find_dangling_references,
)
from paprika_mirror.infrastructure.sync.mirror_repository import MirrorRepository
from paprika_mirror.infrastructure.sync.ordering import find_conflicts
from paprika_mirror.infrastructure.sync.progress import ProgressTracker
from paprika_mirror.infrastructure.sync.types import (
    Anomaly,
    ChangeState,
    EntityType,
    ReconcileResult,
    StoredRow,
)
from paprika_mirror.shared.exceptions.sync import (
    ReferentialIntegrityError,
    StoreUnavailableError,
    SyncConfigError,
    SyncException,
)


@dataclass
class TypeDelta:
    """
    Cambios reconciliados de un tipo, listos para aplicar.

    - stored: índice usado para reconciliar (para detectar conflictos de orden)
    - since_position: posición leída al inicio de la pasada (CAS)
    - position: posición a guardar si el lote hace commit (None = no avanzar)
    """

    config: EntityConfig
    result: ReconcileResult
    stored: dict[str, StoredRow] = field(default_factory=dict)
    since_position: Optional[str] = None
    position: Optional[str] = None

    @property
    def entity_type(self) -> EntityType:
        return self.config.entity_type

    @property
    def advances_position(self) -> bool:
        return self.position is not None and self.position != self.since_position


@dataclass
class ApplyReport:
    batch_id: str
    counts: dict[EntityType, dict[ChangeState, int]] = field(default_factory=dict)
    positions: dict[EntityType, str] = field(default_factory=dict)
    anomalies: list[Anomaly] = field(default_factory=list)
    # Registros que entraron o salieron de la papelera, por tipo
    trash: dict[EntityType, dict[str, int]] = field(default_factory=dict)

    def totals(self) -> dict[ChangeState, int]:
        total: Counter = Counter()
        for counts in self.counts.values():
            total.update(counts)
        return dict(total)


def new_batch_id() -> str:
    return uuid.uuid4().hex[:12]


class BatchApplier:
    """
    Aplica uno o más TypeDelta en UNA transacción, bajo los locks de commit
    de los tipos involucrados.
    """

    def __init__(
        self,
        repository: MirrorRepository,
        progress: Optional[ProgressTracker] = None,
        *,
        lock_timeout: float = settings.SYNC_LOCK_TIMEOUT,
    ) -> None:
        self._repo = repository
        self._progress = progress or ProgressTracker()
        self._lock_timeout = lock_timeout

    def apply(self, deltas: Sequence[TypeDelta], *, batch_id: Optional[str] = None) -> ApplyReport:
        """
        Aplica el lote completo o nada.

        Raises:
            ReferentialIntegrityError: El estado al commit tendría referencias
                colgantes o un ciclo de categorías.
            StalePositionError: Otra pasada avanzó alguna posición.
            StoreUnavailableError: La base falló durante la transacción.
            CommitLockTimeoutError: No se pudieron tomar los locks de commit.
        """
        batch_id = batch_id or new_batch_id()
        report = ApplyReport(batch_id=batch_id)

        active = [d for d in deltas if d.result.has_writes or d.advances_position]
        for d in deltas:
            report.counts[d.entity_type] = d.result.counts()
            report.anomalies.extend(d.result.anomalies)
            if d.result.trash_counts():
                report.trash[d.entity_type] = d.result.trash_counts()

        if not active:
            logger.info(f"[{batch_id}] Lote sin cambios; nada que aplicar")
            return report

        for d in active:
            missing = [r.uid for r in d.result.pending_writes if r.needs_hydration]
            if missing:
                raise SyncConfigError(
                    f"{d.entity_type.value}: {len(missing)} registro(s) sin hidratar: {missing[:5]}"
                )
            report.anomalies.extend(find_conflicts(d.config, d.stored, d.result))

        types = [d.entity_type.value for d in active]
        logger.info(f"[{batch_id}] Aplicando lote: {types}")

        with CommitLockManager.hold(types, timeout=self._lock_timeout):
            self._apply_locked(active, batch_id)

        for d in active:
            if d.position is not None:
                report.positions[d.entity_type] = d.position

        totals = report.totals()
        logger.info(
            f"[{batch_id}] Lote aplicado. "
            + ", ".join(f"{state.value}={n}" for state, n in sorted(totals.items()))
        )
        return report

    def _apply_locked(self, deltas: Sequence[TypeDelta], batch_id: str) -> None:
        types = [d.entity_type.value for d in deltas]
        with self._repo.connect() as conn:
            trans = conn.begin()
            try:
                self._repo.defer_constraints(conn)

                for d in deltas:
                    self._repo.insert_rows(conn, d.config, d.result.to_insert)
                    self._repo.update_rows(conn, d.config, d.result.to_update)

                for d in deltas:
                    self._repo.delete_rows(conn, d.config, d.result.to_remove)

                self._verify_integrity(conn, deltas, batch_id)

                for d in deltas:
                    if d.advances_position:
                        self._progress.set_position(
                            conn, d.entity_type, d.position, expected=d.since_position
                        )

                trans.commit()
            except SyncException:
                self._rollback(trans, batch_id)
                raise
            except IntegrityError as e:
                self._rollback(trans, batch_id)
                raise ReferentialIntegrityError(
                    f"La base rechazó el lote {batch_id}: {e.orig}",
                    batch_id=batch_id,
                    entity_types=types,
                ) from e
            except DBAPIError as e:
                self._rollback(trans, batch_id)
                raise StoreUnavailableError(
                    f"Error de base de datos aplicando lote {batch_id}: {e.orig}",
                    batch_id=batch_id,
                ) from e

    def _verify_integrity(self, conn, deltas: Sequence[TypeDelta], batch_id: str) -> None:
        touched = [d.entity_type for d in deltas]
        types = [t.value for t in touched]

        dangling = find_dangling_references(conn, touched)
        if dangling:
            logger.error(f"[{batch_id}] Referencias colgantes: {dangling[:10]}")
            raise ReferentialIntegrityError(
                f"El lote {batch_id} deja {len(dangling)} referencia(s) colgante(s)",
                batch_id=batch_id,
                entity_types=types,
                offending=dangling,
            )

        if EntityType.CATEGORIES in touched:
            cycles = find_category_cycles(conn)
            if cycles:
                logger.error(f"[{batch_id}] Ciclos de categorías: {cycles}")
                raise ReferentialIntegrityError(
                    f"El lote {batch_id} deja {len(cycles)} ciclo(s) de categorías",
                    batch_id=batch_id,
                    entity_types=types,
                    offending=[
                        {"entity_type": EntityType.CATEGORIES.value, "cycle": cycle}
                        for cycle in cycles
                    ],
                )

    @staticmethod
    def _rollback(trans, batch_id: str) -> None:
        if trans.is_active:
            trans.rollback()
        logger.warning(f"[{batch_id}] Lote revertido; no se avanzó ninguna posición")
