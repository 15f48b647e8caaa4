"""
Tests for analytics queries and the monthly CSV export.
"""

import csv
import io

import pytest

from core.weeks import week_ending_for
from services.analytics_service import AnalyticsNotFoundError, format_date_range, month_bounds
from tests.fakes import CHICAGO


async def _archive(analytics_repo, week: str, total: int, counts: dict[str, int]) -> None:
    await analytics_repo.upsert_week(week, week_ending_for(week, CHICAGO), total, counts)


@pytest.mark.unit
class TestRecentHistory:
    async def test_newest_first_and_capped(self, analytics_query, analytics_repo) -> None:
        for week in ["2025-W44", "2025-W46", "2025-W45"]:
            await _archive(analytics_repo, week, 1, {"A": 1})

        history = await analytics_query.recent_history(limit=2)

        assert [doc.week_identifier for doc in history] == ["2025-W46", "2025-W45"]


@pytest.mark.unit
class TestMonthlyExport:
    """Test the CSV export."""

    async def test_empty_month_is_not_found(self, analytics_query) -> None:
        with pytest.raises(AnalyticsNotFoundError):
            await analytics_query.monthly_export(2025, 11)

    @pytest.mark.parametrize("month", [0, 13, -1])
    async def test_invalid_month(self, analytics_query, month) -> None:
        with pytest.raises(ValueError):
            await analytics_query.monthly_export(2025, month)

    async def test_csv_layout(self, analytics_query, analytics_repo) -> None:
        await _archive(analytics_repo, "2025-W46", 3, {"A": 2, "B": 2, "C": 0, "D": 0})
        await _archive(analytics_repo, "2025-W45", 2, {"A": 1, "B": 0, "C": 1, "D": 0})
        # Ends in December, excluded from November
        await _archive(analytics_repo, "2025-W49", 5, {"A": 5, "B": 0, "C": 0, "D": 0})

        export = await analytics_query.monthly_export(2025, 11)

        assert export.filename == "poll-data-2025-11.csv"
        assert export.media_type == "text/csv"
        rows = list(csv.reader(io.StringIO(export.content)))
        assert rows[0] == ["Week", "Date Range", "Total Votes", "A", "B", "C", "D"]
        assert rows[1] == ["2025-W45", "Nov 3 - Nov 9, 2025", "2", "1", "0", "1", "0"]
        assert rows[2] == ["2025-W46", "Nov 10 - Nov 16, 2025", "3", "2", "2", "0", "0"]
        assert rows[3] == ["TOTAL", "", "5", "3", "2", "1", "0"]
        assert len(rows) == 4

    async def test_columns_follow_registry(self, analytics_query, analytics_repo, registry) -> None:
        await _archive(analytics_repo, "2025-W46", 1, {"A": 1, "Old": 4})
        await registry.add_issue("E")

        export = await analytics_query.monthly_export(2025, 11)

        header = export.content.splitlines()[0]
        assert header == "Week,Date Range,Total Votes,A,B,C,D,E"

    async def test_week_ending_in_local_month(self, analytics_query, analytics_repo) -> None:
        """2025-W44 ends Sunday Nov 2 local, which is already Nov 3 in UTC."""
        await _archive(analytics_repo, "2025-W44", 1, {"A": 1})

        export = await analytics_query.monthly_export(2025, 11)

        assert "2025-W44" in export.content
        with pytest.raises(AnalyticsNotFoundError):
            await analytics_query.monthly_export(2025, 10)


@pytest.mark.unit
class TestHelpers:
    def test_month_bounds_december(self) -> None:
        start, end = month_bounds(2025, 12, CHICAGO)
        assert (start.year, start.month, start.day) == (2025, 12, 1)
        assert (end.year, end.month, end.day) == (2026, 1, 1)

    def test_date_range_spanning_years(self) -> None:
        assert format_date_range(week_ending_for("2025-W01", CHICAGO), CHICAGO) == "Dec 30 - Jan 5, 2025"
