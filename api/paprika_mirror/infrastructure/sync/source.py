"""
Contrato de la fuente de snapshots que consume el sync.

La implementación real vive en `infrastructure/external/paprika/`; los tests
usan fuentes en memoria.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from paprika_mirror.infrastructure.sync.types import EntityType, FetchResult, SnapshotRecord


class SourceError(RuntimeError):
    """Error de la fuente de snapshots."""


class SourceTransientError(SourceError):
    """Fallo de red/timeout: la pasada se puede reintentar."""


class FetchSource(Protocol):
    def begin_pass(self) -> None:
        """Se llama una vez al inicio de cada intento de pasada."""
        ...

    def fetch(self, entity_type: EntityType, since_position: Optional[str]) -> FetchResult:
        ...

    def hydrate(
        self, entity_type: EntityType, records: Sequence[SnapshotRecord]
    ) -> list[SnapshotRecord]:
        ...
