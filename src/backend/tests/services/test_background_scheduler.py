"""
Tests for the APScheduler wiring of the archive sweep.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from services.archive_scheduler import SweepResult


@pytest.mark.unit
class TestBackgroundScheduler:
    async def test_start_registers_hourly_sweep(self) -> None:
        from services import background_scheduler

        with patch.object(background_scheduler, "archive_sweep_job", new=AsyncMock()) as mock_job:
            await background_scheduler.start_scheduler()
            try:
                status = background_scheduler.get_scheduler_status()
                job = background_scheduler.get_scheduler().get_job(background_scheduler.ARCHIVE_SWEEP_JOB_ID)
            finally:
                await background_scheduler.stop_scheduler()

        # Initial catch-up run on startup
        mock_job.assert_awaited_once()
        assert status["running"] is True
        assert status["timezone"] == "America/Chicago"
        assert [j["id"] for j in status["jobs"]] == ["archive_sweep"]
        assert job.max_instances == 1
        assert job.coalesce is True

    async def test_status_when_stopped(self) -> None:
        from services.background_scheduler import get_scheduler_status

        assert get_scheduler_status()["running"] is False

    async def test_job_logs_instead_of_raising(self) -> None:
        from services.background_scheduler import archive_sweep_job

        with patch("services.archive_scheduler.create_archive_scheduler", side_effect=RuntimeError("cosmos down")):
            await archive_sweep_job()

    async def test_manual_trigger_ignores_window_by_default(self) -> None:
        from services.background_scheduler import trigger_archive_sweep

        scheduler = MagicMock()
        scheduler.sweep = AsyncMock(return_value=SweepResult(current_week="2025-W47", weeks_archived=["2025-W46"]))

        with patch("services.archive_scheduler.create_archive_scheduler", return_value=scheduler):
            result = await trigger_archive_sweep()

        scheduler.sweep.assert_awaited_once_with(enforce_window=False)
        assert result["weeks_archived"] == ["2025-W46"]
