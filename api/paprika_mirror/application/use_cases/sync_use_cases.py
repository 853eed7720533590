"""
Casos de uso para ejecutar el sync Paprika -> base de datos desde el API.

Patron asincrono:
- El endpoint inicia el job en background y retorna inmediatamente un job_id.
- El cliente hace polling al endpoint de status hasta que el job termine.
- Evita timeouts de proxies en pasadas largas (hidratar cientos de recetas).
"""

from __future__ import annotations

import asyncio
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from paprika_mirror.application.dto.sync_dto import (
    SyncJobRequestDTO,
    SyncJobResponseDTO,
    SyncJobStatusDTO,
    SyncPositionDTO,
)
from paprika_mirror.infrastructure.database.session import get_engine
from paprika_mirror.infrastructure.sync.progress import ProgressTracker
from paprika_mirror.infrastructure.sync.sync_service import (
    MirrorSync,
    SyncPassResult,
    build_from_settings,
)
from paprika_mirror.infrastructure.sync.types import EntityType
from paprika_mirror.shared.exceptions.base import AppException
from paprika_mirror.shared.exceptions.domain import DomainException, SyncJobNotFoundException
from paprika_mirror.shared.exceptions.sync import SyncAlreadyRunningError, SyncCancelledError
from paprika_mirror.shared.utils.datetime_utils import utc_now


@dataclass
class _JobState:
    """Estado interno de un job de sync."""

    job_id: str
    status: str  # running, completed, failed, cancelled
    message: str
    created_at: datetime
    updated_at: datetime
    cancel_event: threading.Event = field(default_factory=threading.Event)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    error_details: Optional[Dict[str, Any]] = None
    # Resultado cuando completed
    result: Optional[SyncPassResult] = None
    task: Optional[asyncio.Task] = None


class SyncUseCases:
    """
    Orquestador de jobs de sync.

    Los jobs se guardan en memoria (dict). Alcanza para un solo proceso de
    API; entre procesos la exclusión la da el advisory lock del sync.
    """

    _jobs: Dict[str, _JobState] = {}
    _jobs_lock = threading.Lock()

    def __init__(self, service_factory: Callable[[], MirrorSync] = build_from_settings):
        self._service_factory = service_factory

    async def start_sync(self, request: SyncJobRequestDTO) -> SyncJobResponseDTO:
        """
        Inicia un job de sync en background.

        Raises:
            DomainException: Si algún tipo pedido no existe
            SyncAlreadyRunningError: Si ya hay un job corriendo en este proceso
        """
        types = self._parse_types(request.types)
        job_id = str(uuid.uuid4())
        now = utc_now()

        with self._jobs_lock:
            if any(j.status == "running" for j in self._jobs.values()):
                raise SyncAlreadyRunningError()
            job = _JobState(
                job_id=job_id,
                status="running",
                message="Iniciando sincronizacion con Paprika...",
                created_at=now,
                updated_at=now,
            )
            self._jobs[job_id] = job

        # Ejecutar en background sin bloquear la request
        job.task = asyncio.create_task(
            self._run_job(job_id=job_id, types=types, full_resync=request.full_resync)
        )

        return SyncJobResponseDTO(
            job_id=job_id,
            status=job.status,
            message=job.message,
            created_at=job.created_at,
        )

    async def get_job_status(self, job_id: str) -> SyncJobStatusDTO:
        """
        Obtiene el estado actual de un job (para polling).

        Raises:
            SyncJobNotFoundException: Si el job no existe
        """
        with self._jobs_lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise SyncJobNotFoundException(job_id)
            return self._to_status_dto(job)

    async def cancel_job(self, job_id: str) -> SyncJobStatusDTO:
        """
        Pide la cancelacion de un job. Se hace efectiva al inicio del ciclo
        del siguiente tipo; un lote que ya empezo a escribirse termina igual.
        """
        with self._jobs_lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise SyncJobNotFoundException(job_id)
            if job.status == "running":
                job.cancel_event.set()
                job.message = "Cancelacion solicitada"
                job.updated_at = utc_now()
            return self._to_status_dto(job)

    def list_positions(self) -> List[SyncPositionDTO]:
        with get_engine().connect() as conn:
            rows = ProgressTracker().list_status(conn)
        return [SyncPositionDTO(**row) for row in rows]

    async def _run_job(self, job_id: str, types: Optional[List[EntityType]], full_resync: bool) -> None:
        with self._jobs_lock:
            cancel_event = self._jobs[job_id].cancel_event

        try:
            result = await asyncio.to_thread(self._execute, types, full_resync, cancel_event)
        except SyncCancelledError as e:
            logger.warning(f"[sync-job] {job_id} cancelado")
            self._finish(job_id, status="cancelled", message="Sync cancelado; no se aplicaron cambios", exc=e)
        except AppException as e:
            logger.error(f"[sync-job] {job_id} fallo: {e.message}")
            self._finish(job_id, status="failed", message="Sync fallido", exc=e)
        except Exception as e:
            logger.exception(f"[sync-job] {job_id} fallo inesperado: {e}")
            self._finish(job_id, status="failed", message="Sync fallido", exc=e)
        else:
            totals = ", ".join(f"{k}={v}" for k, v in sorted(result.totals.items())) or "sin cambios"
            self._finish(job_id, status="completed", message=f"Sync completado: {totals}", result=result)

    def _execute(
        self,
        types: Optional[List[EntityType]],
        full_resync: bool,
        cancel_event: threading.Event,
    ) -> SyncPassResult:
        service = self._service_factory()
        if full_resync:
            service.reset_positions(types)
        return service.run_pass(types, cancel_event=cancel_event)

    def _finish(
        self,
        job_id: str,
        *,
        status: str,
        message: str,
        result: Optional[SyncPassResult] = None,
        exc: Optional[Exception] = None,
    ) -> None:
        now = utc_now()
        with self._jobs_lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            job.status = status
            job.message = message
            job.result = result
            job.updated_at = now
            job.completed_at = now
            if exc is not None:
                job.error = getattr(exc, "message", None) or str(exc)
                job.error_code = getattr(exc, "error_code", type(exc).__name__)
                job.error_details = getattr(exc, "details", None)

    @staticmethod
    def _parse_types(types: Optional[List[str]]) -> Optional[List[EntityType]]:
        if not types:
            return None
        valid = {t.value for t in EntityType}
        unknown = [t for t in types if t not in valid]
        if unknown:
            raise DomainException(
                f"Tipos de entidad desconocidos: {unknown}",
                error_code="INVALID_ENTITY_TYPE",
                details={"unknown": unknown, "valid": sorted(valid)},
            )
        return [EntityType(t) for t in types]

    @staticmethod
    def _to_status_dto(job: _JobState) -> SyncJobStatusDTO:
        result = job.result
        return SyncJobStatusDTO(
            job_id=job.job_id,
            status=job.status,
            message=job.message,
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
            error=job.error,
            error_code=job.error_code,
            error_details=job.error_details,
            batch_id=result.batch_id if result else None,
            counts=result.counts if result else {},
            totals=result.totals if result else {},
            positions=result.positions if result else {},
            anomalies=result.anomalies if result else [],
            trash=result.trash if result else {},
        )

    @classmethod
    def clear_jobs(cls) -> int:
        """Limpia los jobs terminados (tests / mantenimiento)."""
        with cls._jobs_lock:
            finished = [k for k, j in cls._jobs.items() if j.status != "running"]
            for k in finished:
                del cls._jobs[k]
            return len(finished)
