"""
Servicio de sincronización Paprika -> base de datos.

Diseño (resumen):
- Lee la posición de cada tipo (tabla sync_status)
- En paralelo, por tipo: fetch desde la posición, índice de lo almacenado,
  reconciliación e hidratación de los registros livianos que se escribirán
- Aplica todos los tipos en una sola transacción (BatchApplier), que también
  avanza las posiciones

Estrategia de reintentos:
- Fallos transitorios de la fuente se reintentan con backoff exponencial a
  nivel de pasada. Como la posición no avanzó, el reintento retoma exactamente
  donde quedó.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from loguru import logger

from paprika_mirror.core.config import settings
from paprika_mirror.infrastructure.sync.batch_applier import (
    ApplyReport,
    BatchApplier,
    TypeDelta,
    new_batch_id,
)
from paprika_mirror.infrastructure.sync.entity_config import get_entity_config
from paprika_mirror.infrastructure.sync.mirror_repository import MirrorRepository
from paprika_mirror.infrastructure.sync.progress import ProgressTracker
from paprika_mirror.infrastructure.sync.reconciler import reconcile, replace_hydrated
from paprika_mirror.infrastructure.sync.source import FetchSource, SourceTransientError
from paprika_mirror.infrastructure.sync.tombstones import mark_tombstones
from paprika_mirror.infrastructure.sync.types import EntityType
from paprika_mirror.shared.exceptions.sync import (
    SyncAlreadyRunningError,
    SyncCancelledError,
    SyncConfigError,
)


@dataclass(frozen=True)
class SyncPassResult:
    batch_id: str
    counts: dict[str, dict[str, int]] = field(default_factory=dict)
    totals: dict[str, int] = field(default_factory=dict)
    positions: dict[str, str] = field(default_factory=dict)
    up_to_date: list[str] = field(default_factory=list)
    anomalies: list[dict] = field(default_factory=list)
    trash: dict[str, dict[str, int]] = field(default_factory=dict)
    attempts: int = 1

    @property
    def had_changes(self) -> bool:
        return any(
            n for state, n in self.totals.items() if state != "equal"
        ) or bool(self.positions)

    @classmethod
    def from_report(
        cls, report: ApplyReport, *, up_to_date: Iterable[EntityType], attempts: int
    ) -> "SyncPassResult":
        return cls(
            batch_id=report.batch_id,
            counts={
                t.value: {s.value: n for s, n in c.items()} for t, c in report.counts.items()
            },
            totals={s.value: n for s, n in report.totals().items()},
            positions={t.value: p for t, p in report.positions.items()},
            up_to_date=sorted(t.value for t in up_to_date),
            anomalies=[a.as_dict() for a in report.anomalies],
            trash={t.value: dict(c) for t, c in report.trash.items()},
            attempts=attempts,
        )


class MirrorSync:
    """
    Orquestador de una pasada de sync para todos (o algunos) los tipos.
    """

    def __init__(
        self,
        *,
        repository: MirrorRepository,
        source: FetchSource,
        progress: Optional[ProgressTracker] = None,
        applier: Optional[BatchApplier] = None,
        max_workers: int = settings.SYNC_MAX_WORKERS,
        max_retries: int = settings.SYNC_MAX_RETRIES,
        backoff_seconds: float = settings.SYNC_BACKOFF_SECONDS,
        advisory_lock_key: Optional[int] = settings.SYNC_ADVISORY_LOCK_KEY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._repo = repository
        self._source = source
        self._progress = progress or ProgressTracker()
        self._applier = applier or BatchApplier(repository, self._progress)
        self._max_workers = max(1, max_workers)
        self._max_retries = max(0, max_retries)
        self._backoff_seconds = backoff_seconds
        self._advisory_lock_key = advisory_lock_key
        self._sleep = sleep

    def run_pass(
        self,
        types: Optional[Iterable[EntityType | str]] = None,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncPassResult:
        """
        Ejecuta una pasada completa (fetch + reconcile + apply).

        Args:
            types: Subconjunto de tipos (default: todos)
            cancel_event: Si se activa, la pasada se cancela al inicio del
                ciclo del siguiente tipo. Una vez iniciada la transacción del
                lote, corre hasta commit o rollback.

        Raises:
            SyncCancelledError: Cancelado antes de aplicar (nada se escribió)
            SyncAlreadyRunningError: Otro proceso tiene el advisory lock
            SourceTransientError: Se agotaron los reintentos
        """
        selected = self._select_types(types)
        cancel_event = cancel_event or threading.Event()

        with self._repo.connect() as lock_conn:
            if self._advisory_lock_key is not None:
                if not self._repo.try_advisory_lock(lock_conn, self._advisory_lock_key):
                    logger.warning("Sync ya está corriendo (advisory lock ocupado). Saliendo.")
                    raise SyncAlreadyRunningError()
                lock_conn.commit()
            try:
                return self._run_with_retries(selected, cancel_event)
            finally:
                if self._advisory_lock_key is not None:
                    self._repo.advisory_unlock(lock_conn, self._advisory_lock_key)
                    lock_conn.commit()

    def reset_positions(self, types: Optional[Iterable[EntityType | str]] = None) -> int:
        """Borra posiciones para forzar un fetch completo en la próxima pasada."""
        with self._repo.connect() as conn:
            with conn.begin():
                if types is None:
                    return self._progress.reset(conn)
                return sum(self._progress.reset(conn, t) for t in self._select_types(types))

    def _run_with_retries(
        self, types: list[EntityType], cancel_event: threading.Event
    ) -> SyncPassResult:
        attempt = 0
        while True:
            attempt += 1
            try:
                return self._run_once(types, cancel_event, attempt)
            except SourceTransientError as e:
                if attempt > self._max_retries:
                    logger.error(f"Sync falló tras {attempt} intento(s): {e}")
                    raise
                delay = self._backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    f"Fallo transitorio de la fuente (intento {attempt}/{self._max_retries + 1}): "
                    f"{e}. Reintentando en {delay:.1f}s"
                )
                self._sleep(delay)

    def _run_once(
        self, types: list[EntityType], cancel_event: threading.Event, attempt: int
    ) -> SyncPassResult:
        batch_id = new_batch_id()
        with self._repo.connect() as conn:
            positions = self._progress.list_positions(conn)
        self._source.begin_pass()

        logger.info(f"[{batch_id}] Sync iniciado para {[t.value for t in types]}")

        # Si un tipo falla, los que aún no empezaron se saltan.
        stop = threading.Event()
        deltas: dict[EntityType, TypeDelta] = {}
        up_to_date: list[EntityType] = []
        cancelled: list[EntityType] = []

        with ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(types)) or 1,
            thread_name_prefix="sync-",
        ) as pool:
            futures = {
                pool.submit(
                    self._prepare_type, t, positions.get(t.value), cancel_event, stop
                ): t
                for t in types
            }
            try:
                for fut in as_completed(futures):
                    entity_type = futures[fut]
                    delta = fut.result()
                    if delta is _CANCELLED:
                        cancelled.append(entity_type)
                    elif delta is None:
                        up_to_date.append(entity_type)
                    else:
                        deltas[entity_type] = delta
            except BaseException:
                stop.set()
                raise

        if cancelled or cancel_event.is_set():
            pending = [t.value for t in types if t not in up_to_date]
            logger.warning(f"[{batch_id}] Sync cancelado; pendientes: {pending}")
            raise SyncCancelledError(pending)

        ordered = [deltas[t] for t in types if t in deltas]
        report = self._applier.apply(ordered, batch_id=batch_id)
        result = SyncPassResult.from_report(report, up_to_date=up_to_date, attempts=attempt)
        logger.success(f"[{batch_id}] Sync completado. totals={result.totals}")
        return result

    def _prepare_type(
        self,
        entity_type: EntityType,
        since_position: Optional[str],
        cancel_event: threading.Event,
        stop: threading.Event,
    ):
        if cancel_event.is_set() or stop.is_set():
            return _CANCELLED

        config = get_entity_config(entity_type)
        fetched = self._source.fetch(entity_type, since_position)

        if not fetched.records and not fetched.is_complete and fetched.position in (None, since_position):
            logger.info(f"{entity_type.value}: sin cambios (posición {since_position})")
            return None

        with self._repo.connect() as conn:
            stored = self._repo.load_stored(conn, config)

        result = reconcile(config, stored, fetched.records, is_complete=fetched.is_complete)

        pending = [r for r in result.pending_writes if r.needs_hydration]
        if pending:
            logger.info(f"{entity_type.value}: hidratando {len(pending)} registro(s)")
            hydrated = self._source.hydrate(entity_type, pending)
            replace_hydrated(result, hydrated)
            mark_tombstones(result, config, stored)

        return TypeDelta(
            config=config,
            result=result,
            stored=stored,
            since_position=since_position,
            position=fetched.position,
        )

    @staticmethod
    def _select_types(types: Optional[Iterable[EntityType | str]]) -> list[EntityType]:
        if types is None:
            return list(EntityType)
        selected = []
        for t in types:
            try:
                entity_type = EntityType(t)
            except ValueError as e:
                raise SyncConfigError(f"Tipo de entidad desconocido: {t!r}") from e
            if entity_type not in selected:
                selected.append(entity_type)
        if not selected:
            raise SyncConfigError("No se indicó ningún tipo de entidad para sincronizar")
        return selected


_CANCELLED = object()


def build_from_settings(engine=None) -> MirrorSync:
    """
    Constructor “oficial” del pipeline leyendo settings (.env).

    Requiere PAPRIKA_TOKEN o PAPRIKA_EMAIL + PAPRIKA_PASSWORD.
    """
    from paprika_mirror.infrastructure.database.session import get_engine
    from paprika_mirror.infrastructure.external.paprika.fetch_source import PaprikaFetchSource
    from paprika_mirror.infrastructure.external.paprika.paprika_client import PaprikaClient

    if not settings.has_paprika_credentials:
        raise SyncConfigError(
            "Faltan credenciales de Paprika: PAPRIKA_TOKEN o PAPRIKA_EMAIL + PAPRIKA_PASSWORD"
        )

    client = PaprikaClient.from_settings(settings)
    repository = MirrorRepository(engine or get_engine())
    return MirrorSync(repository=repository, source=PaprikaFetchSource(client))
