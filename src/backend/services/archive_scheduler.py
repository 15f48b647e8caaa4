"""
Archive Scheduler Service

Decides when closed weeks get archived:
- Catch-up sweep over every closed week still holding votes
- Safety window around the local week boundary for automatic runs
- Emergency reset of the current week for operators

The sweep never touches the current week. It is scheduled by
services.background_scheduler.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

import structlog

from core.config import settings
from core.weeks import next_week_boundary, week_identifier_for, week_start_for
from repositories.provider import VoteRepositoryProtocol
from services.archive_engine import ArchiveEngine, ArchiveResult

logger = structlog.get_logger(__name__)

OUTSIDE_SAFETY_WINDOW = "outside_safety_window"


@dataclass
class SweepResult:
    current_week: str
    skipped: bool = False
    reason: Optional[str] = None
    weeks_archived: list[str] = field(default_factory=list)
    weeks_failed: list[str] = field(default_factory=list)
    votes_deleted: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class ArchiveScheduler:
    """
    Runs archive sweeps and operator resets.

    Features:
    - Archives every closed week in ascending order, one at a time
    - A failing week is logged and counted; the rest still run
    - Automatic runs only write inside the configured safety window
    """

    def __init__(
        self,
        engine: ArchiveEngine,
        vote_repo: VoteRepositoryProtocol,
        tz: Optional[tzinfo] = None,
        hours_before: Optional[int] = None,
        hours_after: Optional[int] = None,
    ):
        self.engine = engine
        self.vote_repo = vote_repo
        self.tz = tz or settings.poll_tz
        self.hours_before = settings.ARCHIVE_WINDOW_HOURS_BEFORE if hours_before is None else hours_before
        self.hours_after = settings.ARCHIVE_WINDOW_HOURS_AFTER if hours_after is None else hours_after

    def is_within_safety_window(self, now: datetime) -> bool:
        """
        Check whether now lies in [boundary - hours_before, boundary + hours_after)
        for the nearest Monday 00:00 local boundary.
        """
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        now_utc = now.astimezone(timezone.utc)

        started = week_start_for(week_identifier_for(now, self.tz), self.tz).astimezone(timezone.utc)
        upcoming = next_week_boundary(now, self.tz).astimezone(timezone.utc)

        if now_utc - started < timedelta(hours=self.hours_after):
            return True
        return upcoming - now_utc <= timedelta(hours=self.hours_before)

    async def sweep(self, now: Optional[datetime] = None, enforce_window: bool = True) -> SweepResult:
        """
        Archive every closed week that still has votes.

        Args:
            now: Evaluation instant (defaults to the current time)
            enforce_window: Skip without reading or writing when outside the
                safety window. Manual catch-up passes False.
        """
        now = now or datetime.now(timezone.utc)
        current_week = week_identifier_for(now, self.tz)

        if enforce_window and not self.is_within_safety_window(now):
            logger.warning(
                "archive_sweep_skipped_wrong_time",
                current_week=current_week,
                local_time=now.astimezone(self.tz).isoformat(),
            )
            return SweepResult(current_week=current_week, skipped=True, reason=OUTSIDE_SAFETY_WINDOW)

        result = SweepResult(current_week=current_week)
        weeks = await self.vote_repo.list_week_identifiers()
        # Later tokens come from skewed clocks; they stay for a future sweep
        closed_weeks = sorted(week for week in weeks if week < current_week)

        for week in closed_weeks:
            try:
                archive = await self.engine.archive_week(week)
            except Exception as e:
                logger.error("archive_week_failed", week_identifier=week, error=str(e), exc_info=True)
                result.weeks_failed.append(week)
                continue

            if archive.archived:
                result.weeks_archived.append(week)
                result.votes_deleted += archive.votes_deleted

        if result.weeks_archived:
            await self.engine.publish_reset(current_week)

        logger.info(
            "archive_sweep_completed",
            current_week=current_week,
            weeks_archived=result.weeks_archived,
            weeks_failed=result.weeks_failed,
            votes_deleted=result.votes_deleted,
        )
        return result

    async def reset_current_week(self, now: Optional[datetime] = None, operator: Optional[str] = None) -> ArchiveResult:
        """
        Archive the current week immediately, ignoring the safety window.

        Intended for operators correcting a stuck or polluted week.
        """
        current_week = week_identifier_for(now or datetime.now(timezone.utc), self.tz)
        logger.warning("emergency_week_reset_requested", week_identifier=current_week, operator=operator)

        result = await self.engine.archive_week(current_week)
        await self.engine.publish_reset(current_week)

        logger.info(
            "emergency_week_reset_completed",
            week_identifier=current_week,
            operator=operator,
            archived=result.archived,
            votes_deleted=result.votes_deleted,
        )
        return result


def create_archive_scheduler(broadcaster=None) -> ArchiveScheduler:
    """Build an ArchiveScheduler wired to the Cosmos repositories and the shared registry."""
    from repositories.provider import get_analytics_repository, get_vote_repository
    from services.issue_registry import get_issue_registry

    vote_repo = get_vote_repository()
    engine = ArchiveEngine(
        vote_repo=vote_repo,
        analytics_repo=get_analytics_repository(),
        registry=get_issue_registry(),
        broadcaster=broadcaster,
    )
    return ArchiveScheduler(engine, vote_repo)
