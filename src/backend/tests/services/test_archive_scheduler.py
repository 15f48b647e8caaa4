"""
Tests for the archive scheduler: safety window, catch-up sweep and emergency reset.
"""

from datetime import datetime, timezone

import pytest

from services.archive_scheduler import OUTSIDE_SAFETY_WINDOW, ArchiveScheduler
from tests.fakes import CHICAGO, MID_WEEK_46, MONDAY_W47_EARLY


def _local(*args) -> datetime:
    return datetime(*args, tzinfo=CHICAGO)


async def _seed(vote_repo, week: str, voters: list[str], issues: list[str] | None = None) -> None:
    for voter in voters:
        await vote_repo.upsert_vote(voter, week, issues or ["A"], MID_WEEK_46)


@pytest.mark.unit
class TestSafetyWindow:
    """Automatic sweeps only run around Monday 00:00 local."""

    @pytest.mark.parametrize(
        "local_time",
        [
            (2025, 11, 16, 23, 0),
            (2025, 11, 16, 23, 30),
            (2025, 11, 17, 0, 0),
            (2025, 11, 17, 0, 5),
            (2025, 11, 17, 1, 59),
        ],
    )
    def test_inside(self, archive_scheduler, local_time) -> None:
        assert archive_scheduler.is_within_safety_window(_local(*local_time)) is True

    @pytest.mark.parametrize(
        "local_time",
        [
            (2025, 11, 16, 22, 59),
            (2025, 11, 17, 2, 0),
            (2025, 11, 17, 12, 0),
            (2025, 11, 12, 0, 5),
            (2025, 11, 15, 23, 30),
        ],
    )
    def test_outside(self, archive_scheduler, local_time) -> None:
        assert archive_scheduler.is_within_safety_window(_local(*local_time)) is False

    def test_evaluated_in_organization_timezone(self, archive_scheduler) -> None:
        """Monday 00:30 UTC is Sunday 18:30 in Chicago."""
        assert archive_scheduler.is_within_safety_window(datetime(2025, 11, 17, 0, 30, tzinfo=timezone.utc)) is False

    def test_configurable_hours(self, engine, vote_repo) -> None:
        scheduler = ArchiveScheduler(engine, vote_repo, tz=CHICAGO, hours_before=0, hours_after=6)
        assert scheduler.is_within_safety_window(_local(2025, 11, 17, 5, 0)) is True
        assert scheduler.is_within_safety_window(_local(2025, 11, 16, 23, 30)) is False


@pytest.mark.unit
class TestSweep:
    """Test catch-up sweeps."""

    async def test_skips_outside_window_without_reading(self, engine) -> None:
        class UntouchableRepo:
            async def list_week_identifiers(self):
                raise AssertionError("ledger must not be read")

        scheduler = ArchiveScheduler(engine, UntouchableRepo(), tz=CHICAGO)
        result = await scheduler.sweep(now=MID_WEEK_46)

        assert result.skipped is True
        assert result.reason == OUTSIDE_SAFETY_WINDOW
        assert result.current_week == "2025-W46"
        assert result.weeks_archived == []

    async def test_archives_every_closed_week_in_order(self, archive_scheduler, vote_repo, analytics_repo) -> None:
        await _seed(vote_repo, "2025-W46", ["v1", "v2"])
        await _seed(vote_repo, "2025-W44", ["v1"])
        await _seed(vote_repo, "2025-W47", ["v3"])

        result = await archive_scheduler.sweep(now=MONDAY_W47_EARLY)

        assert result.skipped is False
        assert result.current_week == "2025-W47"
        assert result.weeks_archived == ["2025-W44", "2025-W46"]
        assert result.votes_deleted == 3
        assert set(analytics_repo.docs) == {"2025-W44", "2025-W46"}

    async def test_never_touches_current_week(self, archive_scheduler, vote_repo, analytics_repo) -> None:
        await _seed(vote_repo, "2025-W47", ["v1", "v2"])

        result = await archive_scheduler.sweep(now=MONDAY_W47_EARLY)

        assert result.weeks_archived == []
        assert vote_repo.count("2025-W47") == 2
        assert "2025-W47" not in analytics_repo.docs

    async def test_ignores_weeks_after_current(self, archive_scheduler, vote_repo) -> None:
        await _seed(vote_repo, "2025-W48", ["v1"])

        result = await archive_scheduler.sweep(now=MONDAY_W47_EARLY)

        assert result.weeks_archived == []
        assert vote_repo.count("2025-W48") == 1

    async def test_failing_week_does_not_stop_sweep(self, archive_scheduler, vote_repo) -> None:
        await _seed(vote_repo, "2025-W45", ["v1"])
        await _seed(vote_repo, "2025-W46", ["v1", "v2"])
        vote_repo.fail_weeks.add("2025-W45")

        result = await archive_scheduler.sweep(now=MONDAY_W47_EARLY)

        assert result.weeks_failed == ["2025-W45"]
        assert result.weeks_archived == ["2025-W46"]
        assert result.votes_deleted == 2

    async def test_publishes_reset_after_archiving(self, archive_scheduler, vote_repo, broadcaster) -> None:
        await _seed(vote_repo, "2025-W46", ["v1"])

        await archive_scheduler.sweep(now=MONDAY_W47_EARLY)

        assert broadcaster.events[-1]["reset"] is True
        assert broadcaster.events[-1]["weekIdentifier"] == "2025-W47"

    async def test_nothing_to_archive_publishes_nothing(self, archive_scheduler, broadcaster) -> None:
        result = await archive_scheduler.sweep(now=MONDAY_W47_EARLY)

        assert result.weeks_archived == []
        assert broadcaster.events == []

    async def test_manual_sweep_ignores_window(self, archive_scheduler, vote_repo) -> None:
        await _seed(vote_repo, "2025-W45", ["v1"])
        await _seed(vote_repo, "2025-W46", ["v2"])

        result = await archive_scheduler.sweep(now=MID_WEEK_46, enforce_window=False)

        assert result.skipped is False
        assert result.weeks_archived == ["2025-W45"]
        assert vote_repo.count("2025-W46") == 1

    async def test_repeated_sweeps_are_idempotent(self, archive_scheduler, vote_repo, analytics_repo) -> None:
        await _seed(vote_repo, "2025-W46", ["v1", "v2"])

        first = await archive_scheduler.sweep(now=MONDAY_W47_EARLY)
        second = await archive_scheduler.sweep(now=MONDAY_W47_EARLY)

        assert first.weeks_archived == ["2025-W46"]
        assert second.weeks_archived == []
        assert analytics_repo.docs["2025-W46"].total_votes == 2


@pytest.mark.unit
class TestEmergencyReset:
    async def test_reset_with_no_votes(self, archive_scheduler, analytics_repo) -> None:
        result = await archive_scheduler.reset_current_week(now=MID_WEEK_46, operator="op-1")

        assert result.week_identifier == "2025-W46"
        assert result.archived is False
        assert result.votes_deleted == 0
        assert analytics_repo.upserts == 0

    async def test_reset_archives_current_week_outside_window(
        self, archive_scheduler, vote_repo, analytics_repo, broadcaster
    ) -> None:
        await _seed(vote_repo, "2025-W46", ["v1", "v2"], ["B"])
        await _seed(vote_repo, "2025-W45", ["v1"])

        result = await archive_scheduler.reset_current_week(now=MID_WEEK_46, operator="op-1")

        assert result.archived is True
        assert result.votes_deleted == 2
        assert analytics_repo.docs["2025-W46"].issue_counts["B"] == 2
        assert vote_repo.count("2025-W45") == 1
        assert broadcaster.events[-1] == {
            "weekIdentifier": "2025-W46",
            "totalVotes": 0,
            "issueCounts": {"A": 0, "B": 0, "C": 0, "D": 0},
            "issues": ["A", "B", "C", "D"],
            "reset": True,
        }
