"""
Soft-delete vs. purga.

Paprika expresa un borrado de dos formas:
- flag explícito (`in_trash`): la receta sigue en el feed marcada como en
  papelera. La fila se conserva con el flag activo (recuperable).
- omisión: el uid ya no aparece en el listado completo del tipo. La fila se
  borra, pero SOLO si el lote es un snapshot completo; un lote parcial que
  omite un uid no dice nada sobre él.

La política es una configuración por tipo (ver `entity_config.py`), no
condicionales repartidos por el pipeline.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Iterable, Mapping, Optional

from loguru import logger

from paprika_mirror.infrastructure.sync.types import ReconcileResult, SnapshotRecord, StoredRow

if TYPE_CHECKING:
    from paprika_mirror.infrastructure.sync.entity_config import EntityConfig


class DeletionPolicy(str, Enum):
    EXPLICIT_FLAG = "explicit_flag"
    IMPLICIT_OMISSION = "implicit_omission"
    BOTH = "both"

    @property
    def honors_flag(self) -> bool:
        return self in (DeletionPolicy.EXPLICIT_FLAG, DeletionPolicy.BOTH)

    @property
    def honors_omission(self) -> bool:
        return self in (DeletionPolicy.IMPLICIT_OMISSION, DeletionPolicy.BOTH)


def omitted_uids(
    policy: DeletionPolicy,
    stored_uids: Iterable[str],
    incoming_uids: set[str],
    *,
    is_complete: bool,
) -> list[str]:
    """
    uids almacenados que deben purgarse por no aparecer en el lote.

    Un trashed que desaparece de un snapshot completo también se purga.
    """
    if not is_complete or not policy.honors_omission:
        return []
    return [uid for uid in stored_uids if uid not in incoming_uids]


def flagged_uids(
    policy: DeletionPolicy,
    records: Iterable[SnapshotRecord],
    trash_column: Optional[str],
) -> list[str]:
    """uids del lote con el flag de papelera activo."""
    if not policy.honors_flag or not trash_column:
        return []
    return [
        r.uid for r in records
        if r.fields is not None and bool(r.fields.get(trash_column))
    ]


def mark_tombstones(
    result: ReconcileResult,
    config: "EntityConfig",
    stored: Optional[Mapping[str, StoredRow]] = None,
) -> ReconcileResult:
    """
    Completa `result.tombstoned` y `result.restored` con los registros a
    escribir que entran o salen de la papelera. Se llama al reconciliar y de
    nuevo tras hidratar.

    Sin `stored` todo registro con flag cuenta como enviado a la papelera.
    """
    stored = stored or {}
    flagged = flagged_uids(config.deletion_policy, result.pending_writes, config.trash_column)
    result.tombstoned = [
        uid for uid in flagged if uid not in stored or not stored[uid].trashed
    ]

    if config.deletion_policy.honors_flag and config.trash_column:
        flagged_set = set(flagged)
        result.restored = [
            r.uid for r in result.pending_writes
            if r.fields is not None
            and r.uid not in flagged_set
            and r.uid in stored
            and stored[r.uid].trashed
        ]
    else:
        result.restored = []

    if result.tombstoned:
        logger.info(
            f"{config.entity_type.value}: {len(result.tombstoned)} registro(s) en papelera "
            f"se conservan con flag '{config.trash_column}'"
        )
    if result.restored:
        logger.info(
            f"{config.entity_type.value}: {len(result.restored)} registro(s) salen de la papelera"
        )
    return result
