"""
Cliente mínimo de la API de sync de Paprika (v2).

Requisitos cubiertos:
- requests
- login por email/password (token bearer) o token ya emitido
- status (contador por sección), listados por sección y receta por uid
- rate-limit/backoff (429, 5xx, errores de red)
"""

from __future__ import annotations

import time
from typing import Any, Optional

import requests
from loguru import logger

from paprika_mirror.infrastructure.sync.source import SourceError, SourceTransientError


class PaprikaApiError(SourceError):
    """Error de integración con Paprika (no recuperable)."""


class PaprikaTransientError(SourceTransientError):
    """Paprika no respondió o respondió 429/5xx tras los reintentos."""


class PaprikaClient:
    """
    Cliente HTTP de Paprika.

    Importante:
    - Todas las respuestas vienen envueltas en {"result": ...}; aquí se
      desenvuelven.
    - No hace cast de tipos: eso se decide en el mapeo por tipo de entidad.
    """

    def __init__(
        self,
        token: str,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://www.paprikaapp.com/api/v2",
        timeout_s: int = 30,
        max_retries: int = 4,
        min_backoff_s: float = 0.8,
        max_backoff_s: float = 20.0,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._max_retries = max_retries
        self._min_backoff_s = min_backoff_s
        self._max_backoff_s = max_backoff_s
        self._session = session or requests.Session()

    @classmethod
    def login(
        cls,
        email: str,
        password: str,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://www.paprikaapp.com/api/v2",
        **kwargs: Any,
    ) -> "PaprikaClient":
        """Hace login y retorna un cliente con el token emitido."""
        session = session or requests.Session()
        url = f"{base_url.rstrip('/')}/account/login/"
        logger.debug("Intentando login en Paprika")
        try:
            resp = session.post(
                url,
                data={"email": email, "password": password},
                timeout=kwargs.get("timeout_s", 30),
            )
        except requests.RequestException as e:
            raise PaprikaTransientError(f"Login en Paprika falló por red: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise PaprikaApiError(f"Login en Paprika falló {resp.status_code}: {resp.text}")

        token = (resp.json().get("result") or {}).get("token")
        if not token:
            raise PaprikaApiError("Paprika no devolvió token en el login")
        logger.info("Token de Paprika obtenido")
        return cls(token, session=session, base_url=base_url, **kwargs)

    @classmethod
    def from_settings(cls, settings) -> "PaprikaClient":
        kwargs = {
            "base_url": settings.PAPRIKA_BASE_URL,
            "timeout_s": settings.PAPRIKA_TIMEOUT_S,
        }
        if settings.PAPRIKA_TOKEN:
            return cls(settings.PAPRIKA_TOKEN, **kwargs)
        return cls.login(settings.PAPRIKA_EMAIL, settings.PAPRIKA_PASSWORD, **kwargs)

    def status(self) -> dict[str, int]:
        """Contador de cambios por sección (p.ej. {"recipes": 12, "meals": 3})."""
        result = self._get("sync/status/")
        if not isinstance(result, dict):
            raise PaprikaApiError(f"Respuesta de status inesperada: {result!r}")
        return {str(k): int(v) for k, v in result.items()}

    def list_section(self, section: str) -> list[dict[str, Any]]:
        """
        Listado completo de una sección.

        Para `recipes` solo trae [{uid, hash}]; el cuerpo se pide con `recipe()`.
        """
        result = self._get(f"sync/{section}/")
        if not isinstance(result, list):
            raise PaprikaApiError(f"Respuesta de '{section}' inesperada: {type(result).__name__}")
        return result

    def recipe(self, uid: str) -> dict[str, Any]:
        result = self._get(f"sync/recipe/{uid}/")
        if not isinstance(result, dict):
            raise PaprikaApiError(f"Respuesta de receta {uid} inesperada")
        return result

    def _get(self, path: str) -> Any:
        payload = self._request_json("GET", f"{self._base_url}/{path}")
        if not isinstance(payload, dict) or "result" not in payload:
            raise PaprikaApiError(f"Respuesta de Paprika sin 'result' en {path}")
        return payload["result"]

    def _request_json(self, method: str, url: str) -> Any:
        """
        Request HTTP con backoff para 429/5xx y errores de red.

        Estrategia:
        - 429: respeta Retry-After si existe, si no exponencial con jitter simple.
        - 5xx / red: exponencial con jitter.
        - 4xx (no 429): error inmediato (token inválido, uid inexistente).
        """
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }

        for attempt in range(self._max_retries + 1):
            try:
                resp = self._session.request(
                    method=method,
                    url=url,
                    headers=headers,
                    timeout=self._timeout_s,
                )
            except (requests.ConnectionError, requests.Timeout) as e:
                if attempt >= self._max_retries:
                    raise PaprikaTransientError(
                        f"Paprika no respondió tras {attempt} reintentos: {e}"
                    ) from e
                self._backoff(attempt, None)
                continue

            if 200 <= resp.status_code < 300:
                return resp.json()

            # Errores recuperables
            if resp.status_code == 429 or 500 <= resp.status_code < 600:
                if attempt >= self._max_retries:
                    raise PaprikaTransientError(
                        f"Paprika error {resp.status_code} tras {attempt} reintentos: {resp.text}"
                    )
                self._backoff(attempt, resp.headers.get("Retry-After"))
                continue

            # Errores no recuperables
            raise PaprikaApiError(f"Paprika request falló {resp.status_code}: {resp.text}")

        raise PaprikaTransientError(f"Paprika request sin respuesta: {url}")

    def _backoff(self, attempt: int, retry_after: Optional[str]) -> None:
        sleep_s = None
        if retry_after:
            try:
                sleep_s = float(retry_after)
            except ValueError:
                sleep_s = self._min_backoff_s
        if sleep_s is None:
            # Exponencial simple + jitter proporcional
            base = min(self._max_backoff_s, self._min_backoff_s * (2**attempt))
            sleep_s = base + (0.15 * base)
        logger.debug(f"Backoff Paprika: intento {attempt + 1}, durmiendo {sleep_s:.2f}s")
        time.sleep(sleep_s)
