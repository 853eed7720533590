"""
Lock de commit por tipo de entidad.

Motivacion:
- Los fetch y la reconciliacion de cada tipo corren en paralelo.
- La aplicacion de un lote a la base NO puede intercalarse con otro lote que
  toque los mismos tipos: el indice almacenado y la posicion quedarian
  desfasados.

Caracteristicas:
- Lock por tipo de entidad, adquiridos siempre en orden alfabetico
- Lotes multi-tipo toman ademas un lock global (primero)
- Timeout configurable para evitar deadlocks
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator

from loguru import logger

from paprika_mirror.shared.exceptions.sync import CommitLockTimeoutError


# Timeout por defecto para adquirir los locks (en segundos)
DEFAULT_LOCK_TIMEOUT = 60.0

GLOBAL_LOCK = "__global__"


class CommitLockManager:
    """
    Gestor de locks por tipo de entidad.

    Implementacion:
    - Usa `threading.Lock` por tipo (el sync corre en threads).
    - El timeout es para el conjunto completo, no por lock.
    """

    _locks: Dict[str, threading.Lock] = {}
    _meta_lock = threading.Lock()

    @classmethod
    def _get_or_create_lock(cls, name: str) -> threading.Lock:
        """Obtiene o crea un lock para el nombre especificado."""
        with cls._meta_lock:
            lock = cls._locks.get(name)
            if lock is None:
                lock = threading.Lock()
                cls._locks[name] = lock
            return lock

    @staticmethod
    def lock_names(entity_types: Iterable[str]) -> list[str]:
        names = sorted({str(getattr(t, "value", t)) for t in entity_types})
        if len(names) > 1:
            names.insert(0, GLOBAL_LOCK)
        return names

    @classmethod
    @contextmanager
    def hold(
        cls,
        entity_types: Iterable[str],
        timeout: float = DEFAULT_LOCK_TIMEOUT,
    ) -> Iterator[None]:
        """
        Context manager para adquirir los locks de commit de un lote.

        Args:
            entity_types: Tipos que el lote escribe
            timeout: Tiempo maximo de espera para el conjunto de locks.
                     Si es None o <= 0, espera indefinidamente.

        Raises:
            CommitLockTimeoutError: Si no se pudieron adquirir todos los locks
                dentro del timeout (se liberan los ya adquiridos).

        Ejemplo:
            with CommitLockManager.hold(["recipes", "meals"]):
                ...  # escribir y hacer commit del lote
        """
        names = cls.lock_names(entity_types)
        requested = [n for n in names if n != GLOBAL_LOCK]
        deadline = time.monotonic() + timeout if timeout and timeout > 0 else None
        acquired: list[threading.Lock] = []

        try:
            for name in names:
                lock = cls._get_or_create_lock(name)
                if deadline is None:
                    lock.acquire()
                else:
                    remaining = max(0.0, deadline - time.monotonic())
                    if not lock.acquire(timeout=remaining):
                        logger.warning(
                            f"Timeout adquiriendo lock de commit '{name}' "
                            f"para {requested} (timeout: {timeout}s)"
                        )
                        raise CommitLockTimeoutError(requested, timeout)
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    @classmethod
    def is_locked(cls, entity_type: str) -> bool:
        """Indica si el lock del tipo esta tomado (para monitoreo)."""
        with cls._meta_lock:
            lock = cls._locks.get(str(getattr(entity_type, "value", entity_type)))
        return bool(lock and lock.locked())
