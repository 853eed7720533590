"""
Endpoints para sincronizar el espejo con Paprika desde el API.
"""
from typing import List

from fastapi import APIRouter, Depends, status

from paprika_mirror.api.v1.dependencies.use_case_deps import get_sync_use_cases
from paprika_mirror.application.dto.sync_dto import (
    SyncJobRequestDTO,
    SyncJobResponseDTO,
    SyncJobStatusDTO,
    SyncPositionDTO,
)
from paprika_mirror.application.use_cases.sync_use_cases import SyncUseCases


router = APIRouter(prefix="/sync", tags=["Sync"])


@router.post(
    "/jobs",
    response_model=SyncJobResponseDTO,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Iniciar una pasada de sync con Paprika",
)
async def start_sync_job(
    request: SyncJobRequestDTO,
    use_cases: SyncUseCases = Depends(get_sync_use_cases),
) -> SyncJobResponseDTO:
    """
    Inicia un job de sync en background y retorna inmediatamente un job_id.

    El cliente debe hacer polling a GET /sync/jobs/{job_id} hasta que el
    status sea 'completed', 'failed' o 'cancelled'.

    Flujo del job:
    1. Lee la posicion de cada tipo
    2. Trae y reconcilia cada tipo (en paralelo)
    3. Aplica todos los cambios en una sola transaccion

    Raises:
        400: Si algun tipo no existe
        409: Si ya hay un sync corriendo
    """
    return await use_cases.start_sync(request)


@router.get("/jobs/{job_id}", response_model=SyncJobStatusDTO, summary="Estado de un job de sync (polling)")
async def get_sync_job_status(
    job_id: str,
    use_cases: SyncUseCases = Depends(get_sync_use_cases),
) -> SyncJobStatusDTO:
    """
    Cuando status == 'completed': counts/totals/positions tienen el resultado.
    Cuando status == 'failed': error, error_code y error_details (p.ej. uids
    con referencias colgantes).
    """
    return await use_cases.get_job_status(job_id)


@router.post("/jobs/{job_id}/cancel", response_model=SyncJobStatusDTO, summary="Cancelar un job de sync")
async def cancel_sync_job(
    job_id: str,
    use_cases: SyncUseCases = Depends(get_sync_use_cases),
) -> SyncJobStatusDTO:
    return await use_cases.cancel_job(job_id)


@router.get("/positions", response_model=List[SyncPositionDTO], summary="Posiciones de sync por tipo")
def list_positions(
    use_cases: SyncUseCases = Depends(get_sync_use_cases),
) -> List[SyncPositionDTO]:
    return use_cases.list_positions()
