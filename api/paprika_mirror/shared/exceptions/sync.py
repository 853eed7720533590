"""
Excepciones del nucleo de sincronizacion (reconciliacion + aplicacion de lotes).

Todas heredan de SyncException para que el caller de una pasada de sync pueda
distinguir errores del espejo de errores de la fuente (ver
`infrastructure/external/paprika/paprika_client.py`).
"""
from typing import Any, Dict, Iterable, Optional

from paprika_mirror.shared.exceptions.base import AppException


class SyncException(AppException):
    """Excepcion base para errores de sincronizacion."""

    def __init__(
        self,
        message: str,
        error_code: str = "SYNC_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class SyncConfigError(SyncException):
    """Error de configuracion del pipeline (credenciales, DSN, tipos desconocidos)."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="SYNC_CONFIG_ERROR")


class ReferentialIntegrityError(SyncException):
    """
    El lote dejaria referencias colgantes (o un ciclo de categorias) al hacer commit.

    Fatal para la pasada actual: el lote completo se revierte y no se avanza
    ninguna posicion.
    """

    def __init__(
        self,
        message: str,
        *,
        batch_id: str,
        entity_types: Iterable[str],
        offending: Iterable[Dict[str, Any]] = (),
    ):
        offending_list = list(offending)
        super().__init__(
            message=message,
            error_code="REFERENTIAL_INTEGRITY_VIOLATION",
            details={
                "batch_id": batch_id,
                "entity_types": sorted(entity_types),
                "offending": offending_list,
            },
        )
        self.batch_id = batch_id
        self.offending = offending_list


class StoreUnavailableError(SyncException):
    """La base de datos no esta disponible o fallo durante la transaccion."""

    def __init__(self, message: str, *, batch_id: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="STORE_UNAVAILABLE",
            details={"batch_id": batch_id} if batch_id else None,
            status_code=503,
        )


class StalePositionError(SyncException):
    """
    La posicion de un tipo cambio entre la lectura y el commit.

    Indica otra pasada concurrente; avanzar la posicion romperia el orden.
    """

    def __init__(self, entity_type: str, expected: Optional[str], actual: Optional[str]):
        super().__init__(
            message=(
                f"Posicion de '{entity_type}' cambio durante el sync "
                f"(esperada={expected!r}, actual={actual!r})"
            ),
            error_code="STALE_POSITION",
            details={"entity_type": entity_type, "expected": expected, "actual": actual},
            status_code=409,
        )
        self.entity_type = entity_type


class CommitLockTimeoutError(SyncException):
    """No se pudo adquirir el lock de commit dentro del timeout."""

    def __init__(self, entity_types: Iterable[str], timeout: float):
        self.entity_types = sorted(entity_types)
        self.timeout = timeout
        super().__init__(
            message=(
                f"Timeout ({timeout}s) adquiriendo lock de commit para: "
                f"{', '.join(self.entity_types)}"
            ),
            error_code="COMMIT_LOCK_TIMEOUT",
            details={"entity_types": self.entity_types, "timeout": timeout},
            status_code=409,
        )


class SyncCancelledError(SyncException):
    """La pasada fue cancelada antes de aplicar el lote (nada se escribio)."""

    def __init__(self, pending_types: Iterable[str] = ()):
        pending = sorted(pending_types)
        super().__init__(
            message="Sync cancelado antes de aplicar cambios",
            error_code="SYNC_CANCELLED",
            details={"pending_types": pending},
            status_code=409,
        )
        self.pending_types = pending


class SyncAlreadyRunningError(SyncException):
    """Otra pasada de sync (otro proceso) tiene el advisory lock."""

    def __init__(self):
        super().__init__(
            message="Sync ya esta corriendo (advisory lock ocupado)",
            error_code="SYNC_ALREADY_RUNNING",
            status_code=409,
        )
