"""
Orden de entidades dentro de su colección (`order_flag`).

Las posiciones vienen de Paprika y se guardan tal cual; nunca se
renumeran. Si dos miembros de una colección quedan con la misma posición se
reporta una anomalía y el orden visible se desempata por surrogate id.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Mapping

from loguru import logger
from sqlalchemy import Table

from paprika_mirror.infrastructure.sync.entity_config import EntityConfig
from paprika_mirror.infrastructure.sync.types import Anomaly, ReconcileResult, StoredRow


def order_by_columns(config: EntityConfig, table: Table | None = None) -> list:
    """Columnas para ORDER BY: (posición, surrogate id)."""
    table = table if table is not None else config.table
    if not config.order_column:
        return [table.c.id]
    return [table.c[config.order_column], table.c.id]


def find_conflicts(
    config: EntityConfig,
    stored: Mapping[str, StoredRow],
    result: ReconcileResult,
) -> list[Anomaly]:
    """
    Detecta posiciones repetidas en cada colección tal como quedará tras
    aplicar `result` sobre `stored`.

    Los uids de cada anomalía van en el orden de desempate (surrogate id;
    los inserts van después de lo existente, en orden de lote).
    """
    if not config.order_column:
        return []

    removed = set(result.to_remove)
    insert_index = {r.uid: i for i, r in enumerate(result.to_insert)}
    written = {r.uid: r for r in result.pending_writes}
    members: dict[tuple, list[tuple]] = defaultdict(list)

    for uid, row in stored.items():
        if uid in removed or uid in written:
            continue
        members[(row.scope, row.position)].append(((0, row.surrogate_id), uid))

    for uid, record in written.items():
        if record.fields is None:
            continue
        key = (config.scope_of(record.fields), record.fields.get(config.order_column))
        existing = stored.get(uid)
        if existing is not None:
            rank = (0, existing.surrogate_id)
        else:
            rank = (1, insert_index[uid])
        members[key].append((rank, uid))

    anomalies = []
    for (scope, position), entries in members.items():
        if len(entries) < 2:
            continue
        uids = tuple(uid for _, uid in sorted(entries))
        scope_desc = ", ".join(
            f"{col}={val}" for col, val in zip(config.order_scope, scope)
        ) or "global"
        anomaly = Anomaly(
            kind="duplicate_position",
            entity_type=config.entity_type,
            uids=uids,
            detail=f"{config.order_column}={position} repetido en colección ({scope_desc})",
        )
        logger.warning(f"{config.entity_type.value}: {anomaly.detail}: {list(uids)}")
        anomalies.append(anomaly)
    return anomalies

