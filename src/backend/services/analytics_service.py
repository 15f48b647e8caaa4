"""
Poll analytics queries.

Read-only views over the archived weekly snapshots: the rolling history
shown on the dashboard and the monthly CSV export.
"""

import csv
import io
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Optional

import structlog

from core.config import settings
from models.documents import WeeklyAnalyticsDocument
from repositories.provider import AnalyticsRepositoryProtocol
from services.issue_registry import IssueRegistry

logger = structlog.get_logger(__name__)


class AnalyticsNotFoundError(Exception):
    """No archived weeks match the request."""

    pass


@dataclass
class MonthlyExport:
    filename: str
    content: str
    media_type: str = "text/csv"


def month_bounds(year: int, month: int, tz: tzinfo) -> tuple[datetime, datetime]:
    """
    Get [first instant, first instant of next month) in local time.

    Raises:
        ValueError: If the month is out of range
    """
    if not 1 <= month <= 12:
        raise ValueError("Invalid year or month")
    start = datetime(year, month, 1, tzinfo=tz)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=tz)
    else:
        end = datetime(year, month + 1, 1, tzinfo=tz)
    return start, end


def format_date_range(week_ending: datetime, tz: tzinfo) -> str:
    """Render a week like "Nov 10 - Nov 16, 2025"."""
    end = week_ending.astimezone(tz).date()
    start = end - timedelta(days=6)
    return f"{start:%b} {start.day} - {end:%b} {end.day}, {end.year}"


class AnalyticsQuery:
    """Queries over archived weekly analytics."""

    def __init__(
        self,
        analytics_repo: AnalyticsRepositoryProtocol,
        registry: IssueRegistry,
        tz: Optional[tzinfo] = None,
    ):
        self.analytics_repo = analytics_repo
        self.registry = registry
        self.tz = tz or settings.poll_tz

    async def recent_history(self, limit: Optional[int] = None) -> list[WeeklyAnalyticsDocument]:
        """Get the most recent archived weeks, newest first."""
        return await self.analytics_repo.list_recent(limit or settings.POLL_HISTORY_LIMIT)

    async def monthly_export(self, year: int, month: int) -> MonthlyExport:
        """
        Build the CSV export for every week ending inside a calendar month.

        Raises:
            ValueError: If the month is out of range
            AnalyticsNotFoundError: If no archived week ends in that month
        """
        start, end = month_bounds(year, month, self.tz)
        records = await self.analytics_repo.list_week_ending_between(start, end)
        if not records:
            raise AnalyticsNotFoundError("No poll data found for this month")

        await self.registry.ensure_loaded()
        issues = self.registry.all_issues
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(["Week", "Date Range", "Total Votes", *issues])

        for record in records:
            writer.writerow(
                [
                    record.week_identifier,
                    format_date_range(record.week_ending, self.tz),
                    record.total_votes,
                    *(record.issue_counts.get(issue, 0) for issue in issues),
                ]
            )

        writer.writerow(
            [
                "TOTAL",
                "",
                sum(record.total_votes for record in records),
                *(sum(record.issue_counts.get(issue, 0) for record in records) for issue in issues),
            ]
        )

        logger.info("monthly_export_built", year=year, month=month, weeks=len(records))
        return MonthlyExport(filename=f"poll-data-{year}-{month:02d}.csv", content=buffer.getvalue())
