"""
Reconciliación de un lote de snapshots contra lo almacenado, por tipo.

Diseño (resumen):
- Indexa lo almacenado por uid (uid -> StoredRow) y el lote entrante por uid.
- Clasifica cada uid como insert / update / unchanged con comparación de
  fingerprints (sin diff campo a campo de textos largos).
- Los borrados los decide la política del tipo (ver `tombstones.py`).

Todo es lineal en |almacenado| + |lote| (diccionarios y sets).
"""

from __future__ import annotations

from typing import Iterable, Mapping, Union

from loguru import logger

from paprika_mirror.infrastructure.sync.entity_config import EntityConfig
from paprika_mirror.infrastructure.sync.tombstones import mark_tombstones, omitted_uids
from paprika_mirror.infrastructure.sync.types import (
    Anomaly,
    ReconcileResult,
    SnapshotRecord,
    StoredRow,
)

StoredIndex = Union[Mapping[str, StoredRow], Iterable[StoredRow]]


def index_stored(stored: StoredIndex) -> dict[str, StoredRow]:
    if isinstance(stored, Mapping):
        return dict(stored)
    return {row.uid: row for row in stored}


def dedupe_batch(
    config: EntityConfig, batch: Iterable[SnapshotRecord]
) -> tuple[dict[str, SnapshotRecord], list[Anomaly]]:
    """
    Indexa el lote por uid. Si un uid se repite gana la última aparición
    (y toma su lugar en el orden del lote).
    """
    incoming: dict[str, SnapshotRecord] = {}
    repeats: dict[str, int] = {}
    for record in batch:
        if record.uid in incoming:
            repeats[record.uid] = repeats.get(record.uid, 1) + 1
            del incoming[record.uid]
        incoming[record.uid] = record

    anomalies = []
    for uid, times in repeats.items():
        logger.warning(
            f"{config.entity_type.value}: uid {uid} aparece {times} veces en el lote; "
            f"se usa la última aparición"
        )
        anomalies.append(
            Anomaly(
                kind="duplicate_uid",
                entity_type=config.entity_type,
                uids=(uid,),
                detail=f"uid repetido {times} veces en el mismo lote",
            )
        )
    return incoming, anomalies


def reconcile(
    config: EntityConfig,
    stored: StoredIndex,
    batch: Iterable[SnapshotRecord],
    *,
    is_complete: bool,
) -> ReconcileResult:
    """
    Clasifica el lote en to_insert / to_update / unchanged / to_remove.

    Args:
        config: Configuración del tipo de entidad
        stored: Filas ya espejadas (uid -> StoredRow)
        batch: Snapshots entregados por la fuente
        is_complete: True si el lote es el set completo del tipo

    Returns:
        ReconcileResult: Clasificación disjunta; inserts en orden del lote
    """
    stored_by_uid = index_stored(stored)
    incoming, anomalies = dedupe_batch(config, batch)

    result = ReconcileResult(entity_type=config.entity_type, anomalies=anomalies)

    for uid, record in incoming.items():
        existing = stored_by_uid.get(uid)
        if existing is None:
            logger.debug(f"{config.entity_type.value}: item {uid} was added")
            result.to_insert.append(record)
        elif config.record_fingerprint(record) == existing.fingerprint:
            result.unchanged.append(uid)
        else:
            logger.debug(f"{config.entity_type.value}: item {uid} was changed")
            result.to_update.append(record)

    result.to_remove = omitted_uids(
        config.deletion_policy,
        stored_by_uid.keys(),
        set(incoming),
        is_complete=is_complete,
    )
    for uid in result.to_remove:
        logger.debug(f"{config.entity_type.value}: item {uid} was deleted")

    mark_tombstones(result, config, stored_by_uid)

    logger.info(
        f"{config.entity_type.value}: stored={len(stored_by_uid)} incoming={len(incoming)} "
        f"complete={is_complete} -> "
        f"insert={len(result.to_insert)} update={len(result.to_update)} "
        f"unchanged={len(result.unchanged)} remove={len(result.to_remove)}"
    )
    return result


def replace_hydrated(result: ReconcileResult, hydrated: Iterable[SnapshotRecord]) -> ReconcileResult:
    """Sustituye registros livianos por su versión completa, sin alterar el orden."""
    by_uid = {r.uid: r for r in hydrated}
    result.to_insert = [by_uid.get(r.uid, r) for r in result.to_insert]
    result.to_update = [by_uid.get(r.uid, r) for r in result.to_update]
    return result
