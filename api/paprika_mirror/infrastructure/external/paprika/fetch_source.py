"""
Fuente de snapshots sobre la API de Paprika.

Paprika no tiene un feed incremental: expone un contador por sección en
`sync/status/`. La posición del sync es ese contador (como texto):
- contador igual a la posición guardada -> sin cambios (lote vacío, parcial)
- contador distinto -> se trae la sección completa (snapshot completo)
"""

from __future__ import annotations

import threading
from typing import Optional, Sequence

from loguru import logger

from paprika_mirror.infrastructure.external.paprika.paprika_client import (
    PaprikaApiError,
    PaprikaClient,
)
from paprika_mirror.infrastructure.sync.entity_config import get_entity_config, map_source_record
from paprika_mirror.infrastructure.sync.types import EntityType, FetchResult, SnapshotRecord


class PaprikaFetchSource:
    def __init__(self, client: PaprikaClient) -> None:
        self._client = client
        self._status: Optional[dict[str, int]] = None
        self._status_lock = threading.Lock()

    def begin_pass(self) -> None:
        self._status = None

    def refresh_status(self) -> dict[str, int]:
        self._status = self._client.status()
        return self._status

    def fetch(self, entity_type: EntityType, since_position: Optional[str]) -> FetchResult:
        # Un status por pasada alcanza para todos los tipos.
        with self._status_lock:
            status = self._status if self._status is not None else self.refresh_status()
        counter = status.get(entity_type.value)
        if counter is None:
            raise PaprikaApiError(f"Status de Paprika no incluye la sección '{entity_type.value}'")

        position = str(counter)
        if since_position is not None and position == since_position:
            return FetchResult(entity_type=entity_type, records=[], position=position, is_complete=False)

        logger.info(
            f"{entity_type.value}: contador {since_position} -> {position}; trayendo sección completa"
        )
        raw_items = self._client.list_section(entity_type.value)
        config = get_entity_config(entity_type)

        if config.lightweight_index:
            records = [
                SnapshotRecord(uid=str(item["uid"]), fields=None, fingerprint=str(item.get("hash") or ""))
                for item in raw_items
            ]
        else:
            records = [map_source_record(item, config=config) for item in raw_items]

        return FetchResult(entity_type=entity_type, records=records, position=position, is_complete=True)

    def hydrate(
        self, entity_type: EntityType, records: Sequence[SnapshotRecord]
    ) -> list[SnapshotRecord]:
        """Trae el cuerpo completo de cada registro liviano (recetas)."""
        config = get_entity_config(entity_type)
        hydrated = []
        for record in records:
            if not record.needs_hydration:
                hydrated.append(record)
                continue
            raw = self._client.recipe(record.uid)
            logger.debug(f"{entity_type.value}: {record.uid} hidratado")
            hydrated.append(map_source_record(raw, config=config))
        return hydrated
