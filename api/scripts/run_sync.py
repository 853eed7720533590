"""
CLI: Paprika -> base de datos (sync one-way).

Uso recomendado:
  - Ejecutar como job (cron/systemd timer) con --once, o como proceso con --loop.
  - No se integra al request/response del API para evitar timeouts.

Variables de entorno requeridas:
  - PAPRIKA_TOKEN, o PAPRIKA_EMAIL + PAPRIKA_PASSWORD
  - DATABASE_URL (postgresql://... o sqlite:///...)

Ejecución:
  python scripts/run_sync.py --once
  python scripts/run_sync.py --once --types recipes meals
  python scripts/run_sync.py --loop
  python scripts/run_sync.py --reset            (todas las posiciones)
  python scripts/run_sync.py --reset recipes    (solo recetas)
  python scripts/run_sync.py --init-db          (crea tablas sin alembic)
"""

from __future__ import annotations

import argparse
import sys
import threading
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# Permite ejecutar este script desde cualquier cwd sin instalar el paquete.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

# Cargar variables desde .env si existe (api/.env o raíz del repo).
load_dotenv(_API_ROOT / ".env", override=False)
load_dotenv(_API_ROOT.parent / ".env", override=False)

from paprika_mirror.core.config import settings  # noqa: E402
from paprika_mirror.core.events import configure_logging  # noqa: E402
from paprika_mirror.infrastructure.database.session import get_engine, init_db  # noqa: E402
from paprika_mirror.infrastructure.sync.progress import ProgressTracker  # noqa: E402
from paprika_mirror.infrastructure.sync.source import SourceError  # noqa: E402
from paprika_mirror.infrastructure.sync.sync_service import build_from_settings  # noqa: E402
from paprika_mirror.infrastructure.sync.types import EntityType  # noqa: E402
from paprika_mirror.shared.exceptions.base import AppException  # noqa: E402
from paprika_mirror.shared.exceptions.sync import SyncAlreadyRunningError  # noqa: E402

_ALL = "all"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync one-way Paprika -> base de datos")
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--once", action="store_true", help="Ejecuta una pasada y termina.")
    mode.add_argument(
        "--loop",
        action="store_true",
        help=f"Ejecuta pasadas cada SYNC_INTERVAL_SECONDS ({settings.SYNC_INTERVAL_SECONDS}s).",
    )
    mode.add_argument(
        "--reset",
        nargs="?",
        const=_ALL,
        choices=[_ALL] + [t.value for t in EntityType],
        help="Borra la posición (de un tipo o de todos) para forzar un fetch completo.",
    )
    mode.add_argument("--init-db", action="store_true", help="Crea las tablas (desarrollo).")
    parser.add_argument(
        "--types",
        nargs="+",
        choices=[t.value for t in EntityType],
        help="Subconjunto de secciones a sincronizar (default: todas).",
    )
    return parser


def _run_once(service, types) -> int:
    try:
        result = service.run_pass(types)
    except SyncAlreadyRunningError:
        logger.warning("Otro proceso está sincronizando; se omite esta pasada")
        return 0
    except AppException as e:
        logger.error(f"Sync fallido [{e.error_code}]: {e.message}")
        if e.details:
            logger.error(f"Detalle: {e.details}")
        return 1
    except SourceError as e:
        logger.error(f"Paprika no disponible: {e}")
        return 1

    for entity_type, counts in sorted(result.counts.items()):
        if counts:
            logger.info(f"  {entity_type}: {counts}")
    for entity_type, trash in sorted(result.trash.items()):
        logger.info(f"  {entity_type} papelera: {trash}")
    for anomaly in result.anomalies:
        logger.warning(f"  anomalía: {anomaly}")
    logger.info(f"Sync OK: batch={result.batch_id} totals={result.totals}")
    return 0


def main(argv=None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging()

    if args.init_db:
        init_db(get_engine())
        logger.success("Tablas creadas")
        return 0

    if args.reset:
        # No necesita credenciales de Paprika
        entity_type = None if args.reset == _ALL else args.reset
        with get_engine().begin() as conn:
            removed = ProgressTracker().reset(conn, entity_type)
        logger.info(f"Posiciones borradas: {removed}")
        return 0

    service = build_from_settings()

    if args.once:
        return _run_once(service, args.types)

    stop = threading.Event()
    logger.info(f"Sync en loop cada {settings.SYNC_INTERVAL_SECONDS}s (Ctrl+C para salir)")
    try:
        while not stop.is_set():
            _run_once(service, args.types)
            stop.wait(settings.SYNC_INTERVAL_SECONDS)
    except KeyboardInterrupt:
        logger.info("Loop de sync detenido")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
