"""
DTOs del sync en background (patrón job + polling).
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SyncJobRequestDTO(BaseModel):
    """Parámetros para iniciar una pasada de sync."""
    types: Optional[List[str]] = Field(
        default=None, description="Secciones de Paprika a sincronizar (default: todas)"
    )
    full_resync: bool = Field(
        default=False,
        description="Si True, resetea las posiciones de los tipos antes de sincronizar",
    )


class SyncJobResponseDTO(BaseModel):
    """Respuesta inmediata al iniciar un job."""
    job_id: str
    status: str
    message: str
    created_at: datetime


class SyncJobStatusDTO(BaseModel):
    """Estado de un job (para polling)."""
    job_id: str
    status: str  # running, completed, failed, cancelled
    message: str
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    error_details: Optional[Dict[str, Any]] = None
    # Resultado cuando completed
    batch_id: Optional[str] = None
    counts: Dict[str, Dict[str, int]] = Field(default_factory=dict)
    totals: Dict[str, int] = Field(default_factory=dict)
    positions: Dict[str, str] = Field(default_factory=dict)
    anomalies: List[Dict[str, Any]] = Field(default_factory=list)
    trash: Dict[str, Dict[str, int]] = Field(default_factory=dict)


class SyncPositionDTO(BaseModel):
    """Posición de sync de un tipo de entidad."""
    name: str
    position: str
    updated_at: Optional[datetime] = None
