"""
Weekly archive engine.

Moves a closed week's votes into its permanent analytics record:

1. Read the week's vote rows (nothing to do when there are none)
2. Tally them, zero-filling every issue the registry knows about
3. Upsert the week's analytics document (keyed by the week token)
4. Delete exactly the rows that were tallied

Deletes are etag-conditional. A row rewritten between the read and the delete
survives step 4, so the engine reads the week again, re-tallies everything it
has archived so far with the rewritten rows' current selections, and repeats.
The last pass deletes unconditionally, leaving no votes behind for a later
run to tally on their own.

Re-running for the same week overwrites the analytics document with the
votes present at that call, so the operation is safe to repeat.
"""

from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Optional

import structlog

from core.config import settings
from core.weeks import parse_week_identifier, week_ending_for
from models.documents import VoteDocument
from repositories.provider import AnalyticsRepositoryProtocol, VoteRepositoryProtocol
from services.broadcaster import NullBroadcaster, ResultsBroadcaster, safe_publish
from services.issue_registry import IssueRegistry
from services.vote_ledger import build_live_results, tally_votes

logger = structlog.get_logger(__name__)

# Read-tally-delete passes per archive; the last one deletes unconditionally
ARCHIVE_MAX_PASSES = 3


@dataclass
class ArchiveResult:
    week_identifier: str
    archived: bool
    votes_deleted: int = 0
    total_votes: int = 0
    issue_counts: dict[str, int] = field(default_factory=dict)


class ArchiveEngine:
    """Archives one week at a time."""

    def __init__(
        self,
        vote_repo: VoteRepositoryProtocol,
        analytics_repo: AnalyticsRepositoryProtocol,
        registry: IssueRegistry,
        broadcaster: Optional[ResultsBroadcaster] = None,
        tz: Optional[tzinfo] = None,
    ):
        self.vote_repo = vote_repo
        self.analytics_repo = analytics_repo
        self.registry = registry
        self.broadcaster = broadcaster or NullBroadcaster()
        self.tz = tz or settings.poll_tz

    async def archive_week(self, week_identifier: str) -> ArchiveResult:
        """
        Archive a week's votes.

        Args:
            week_identifier: Token of the week to archive, e.g. "2025-W46"

        Returns:
            ArchiveResult; archived is False when the week had no votes

        Raises:
            InvalidWeekIdentifier: If the token is malformed
        """
        parse_week_identifier(week_identifier)
        await self.registry.ensure_loaded()
        week_ending = week_ending_for(week_identifier, self.tz)

        # One entry per voter; a rewritten row replaces the version read earlier
        counted: dict[str, VoteDocument] = {}
        issue_counts: dict[str, int] = {}
        votes_deleted = 0
        created = False

        for attempt in range(1, ARCHIVE_MAX_PASSES + 1):
            pending = await self.vote_repo.list_for_week(week_identifier)
            if not pending:
                break

            counted.update((vote.voter_hash, vote) for vote in pending)
            issue_counts = tally_votes(list(counted.values()), self.registry.all_issues)

            _, first_write = await self.analytics_repo.upsert_week(
                week_identifier,
                week_ending,
                len(counted),
                issue_counts,
            )
            created = created or first_write

            deleted = await self.vote_repo.delete_votes(pending, conditional=attempt < ARCHIVE_MAX_PASSES)
            votes_deleted += deleted
            if deleted == len(pending):
                break

            logger.warning(
                "archive_week_rows_changed",
                week_identifier=week_identifier,
                attempt=attempt,
                tallied=len(pending),
                deleted=deleted,
            )

        if not counted:
            logger.info("archive_week_empty", week_identifier=week_identifier)
            return ArchiveResult(week_identifier=week_identifier, archived=False)

        total_votes = len(counted)
        logger.info(
            "archive_week_completed",
            week_identifier=week_identifier,
            total_votes=total_votes,
            votes_deleted=votes_deleted,
            created=created,
        )

        return ArchiveResult(
            week_identifier=week_identifier,
            archived=True,
            votes_deleted=votes_deleted,
            total_votes=total_votes,
            issue_counts=issue_counts,
        )

    async def publish_reset(self, week_identifier: str) -> None:
        """Push a fresh tally of the given week to live listeners, flagged as a reset."""
        try:
            votes = await self.vote_repo.list_for_week(week_identifier)
        except Exception as e:
            logger.warning("reset_broadcast_skipped", week_identifier=week_identifier, error=str(e))
            return
        results = build_live_results(week_identifier, votes, self.registry.active_issues)
        safe_publish(self.broadcaster, results.as_event(reset=True))
