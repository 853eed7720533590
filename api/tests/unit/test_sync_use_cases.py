"""
Tests unitarios para SyncUseCases.

Verifican el patrón asíncrono con jobs en memoria, con un MirrorSync falso
en lugar del pipeline real.
"""
from __future__ import annotations

import asyncio
import threading
from unittest.mock import AsyncMock, Mock, patch

import pytest

from paprika_mirror.application.dto.sync_dto import SyncJobRequestDTO
from paprika_mirror.application.use_cases.sync_use_cases import SyncUseCases
from paprika_mirror.infrastructure.sync.sync_service import SyncPassResult
from paprika_mirror.infrastructure.sync.types import EntityType
from paprika_mirror.shared.exceptions.domain import DomainException, SyncJobNotFoundException
from paprika_mirror.shared.exceptions.sync import (
    ReferentialIntegrityError,
    SyncAlreadyRunningError,
    SyncCancelledError,
)


class TestSyncUseCases:
    """Tests para la clase SyncUseCases."""

    @pytest.fixture
    def service(self) -> Mock:
        service = Mock()
        service.run_pass.return_value = SyncPassResult(
            batch_id="abc123",
            counts={"recipes": {"added": 2}},
            totals={"added": 2},
            positions={"recipes": "4"},
            trash={"recipes": {"trashed": 1}},
        )
        return service

    @pytest.fixture
    def use_cases(self, service):
        """Instancia limpia para cada test."""
        SyncUseCases._jobs = {}
        yield SyncUseCases(service_factory=lambda: service)
        SyncUseCases._jobs = {}

    async def _wait(self, use_cases, job_id: str):
        await asyncio.gather(use_cases._jobs[job_id].task)
        return await use_cases.get_job_status(job_id)

    # =========================================================================
    # Tests para start_sync
    # =========================================================================

    @pytest.mark.asyncio
    async def test_start_sync_returns_job_response(self, use_cases):
        with patch.object(use_cases, "_run_job", new_callable=AsyncMock):
            response = await use_cases.start_sync(SyncJobRequestDTO())

        assert len(response.job_id) == 36
        assert response.status == "running"
        assert "Iniciando" in response.message

    @pytest.mark.asyncio
    async def test_unknown_type_is_rejected(self, use_cases):
        with pytest.raises(DomainException) as exc_info:
            await use_cases.start_sync(SyncJobRequestDTO(types=["recetas"]))

        assert exc_info.value.error_code == "INVALID_ENTITY_TYPE"
        assert SyncUseCases._jobs == {}

    @pytest.mark.asyncio
    async def test_second_job_while_running_is_rejected(self, use_cases):
        with patch.object(use_cases, "_run_job", new_callable=AsyncMock):
            await use_cases.start_sync(SyncJobRequestDTO())

            with pytest.raises(SyncAlreadyRunningError):
                await use_cases.start_sync(SyncJobRequestDTO())

    # =========================================================================
    # Tests de ejecución del job
    # =========================================================================

    @pytest.mark.asyncio
    async def test_job_completes_with_result(self, use_cases, service):
        response = await use_cases.start_sync(SyncJobRequestDTO(types=["recipes"]))

        status = await self._wait(use_cases, response.job_id)

        assert status.status == "completed"
        assert status.batch_id == "abc123"
        assert status.totals == {"added": 2}
        assert status.positions == {"recipes": "4"}
        assert status.trash == {"recipes": {"trashed": 1}}
        assert status.completed_at is not None
        args, kwargs = service.run_pass.call_args
        assert args == ([EntityType.RECIPES],)
        assert isinstance(kwargs["cancel_event"], threading.Event)
        service.reset_positions.assert_not_called()

    @pytest.mark.asyncio
    async def test_full_resync_resets_positions_first(self, use_cases, service):
        response = await use_cases.start_sync(SyncJobRequestDTO(full_resync=True))

        await self._wait(use_cases, response.job_id)

        service.reset_positions.assert_called_once_with(None)

    @pytest.mark.asyncio
    async def test_job_failure_exposes_error_details(self, use_cases, service):
        service.run_pass.side_effect = ReferentialIntegrityError(
            "referencias colgantes",
            batch_id="b1",
            entity_types=["meals"],
            offending=[{"entity_type": "meals", "uid": "M1", "column": "recipe_uid", "missing_uid": "R9"}],
        )
        response = await use_cases.start_sync(SyncJobRequestDTO())

        status = await self._wait(use_cases, response.job_id)

        assert status.status == "failed"
        assert status.error_code == "REFERENTIAL_INTEGRITY_VIOLATION"
        assert status.error_details["offending"][0]["uid"] == "M1"
        assert status.batch_id is None

    @pytest.mark.asyncio
    async def test_cancelled_job(self, use_cases, service):
        service.run_pass.side_effect = SyncCancelledError(["meals"])
        response = await use_cases.start_sync(SyncJobRequestDTO())

        status = await self._wait(use_cases, response.job_id)

        assert status.status == "cancelled"
        assert status.error_details == {"pending_types": ["meals"]}

    # =========================================================================
    # Tests para get_job_status / cancel_job
    # =========================================================================

    @pytest.mark.asyncio
    async def test_get_unknown_job_raises(self, use_cases):
        with pytest.raises(SyncJobNotFoundException):
            await use_cases.get_job_status("no-existe")

    @pytest.mark.asyncio
    async def test_cancel_sets_event(self, use_cases):
        with patch.object(use_cases, "_run_job", new_callable=AsyncMock):
            response = await use_cases.start_sync(SyncJobRequestDTO())

        status = await use_cases.cancel_job(response.job_id)

        assert status.message == "Cancelacion solicitada"
        assert SyncUseCases._jobs[response.job_id].cancel_event.is_set()

    @pytest.mark.asyncio
    async def test_clear_jobs_keeps_running(self, use_cases):
        with patch.object(use_cases, "_run_job", new_callable=AsyncMock):
            await use_cases.start_sync(SyncJobRequestDTO())

        assert SyncUseCases.clear_jobs() == 0
        assert len(SyncUseCases._jobs) == 1
