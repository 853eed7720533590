"""
Fingerprints de contenido.

Las recetas traen su propio `hash` desde Paprika. El resto de tipos (fotos
incluidas: su `hash` es solo el de la imagen) se compara campo a campo; para
reconciliar en tiempo lineal lo expresamos como un digest sobre las columnas
sincronizadas, calculado igual para la fila almacenada y para el snapshot
entrante.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date, datetime
from typing import Any, Iterable, Mapping

from paprika_mirror.shared.utils.datetime_utils import ensure_utc


def canonical_value(value: Any) -> Any:
    """Normaliza valores para que DB y fuente produzcan el mismo JSON."""
    if isinstance(value, datetime):
        return ensure_utc(value).replace(microsecond=0).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [canonical_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): canonical_value(v) for k, v in value.items()}
    return value


def compute_fingerprint(values: Mapping[str, Any], columns: Iterable[str]) -> str:
    """
    SHA-256 de las columnas indicadas (JSON canónico, claves ordenadas).

    Columnas ausentes cuentan como None.
    """
    payload = {col: canonical_value(values.get(col)) for col in columns}
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
