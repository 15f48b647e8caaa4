"""
Vote ledger service.

Accepts weekly issue votes, answers "have I voted?" and recomputes live
tallies from the stored rows. A voter holds at most one vote per week;
resubmitting replaces the earlier selection.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Any, Iterable, Optional

import structlog
from email_validator import EmailNotValidError, validate_email

from core.config import settings
from core.security import compute_voter_hash
from core.weeks import week_identifier_for
from models.documents import VoteDocument
from repositories.provider import VoteRepositoryProtocol
from repositories.vote_repository import VoteWriteConflict
from services.broadcaster import NullBroadcaster, ResultsBroadcaster, safe_publish
from services.issue_registry import IssueRegistry

logger = structlog.get_logger(__name__)


class VoteError(Exception):
    """Base exception for vote submission."""

    pass


class VoteValidationError(VoteError):
    """The submission was rejected before anything was written."""

    pass


class VoteConflictError(VoteError):
    """The vote could not be stored because of a concurrent change."""

    pass


@dataclass
class VoteStatus:
    has_voted: bool
    selected_issues: Optional[list[str]] = None


@dataclass
class LiveResults:
    """Current week's tally over the active issues."""

    week_identifier: str
    total_votes: int
    issue_counts: dict[str, int] = field(default_factory=dict)
    issues: list[str] = field(default_factory=list)

    def as_event(self, reset: bool = False) -> dict[str, Any]:
        """Wire payload pushed to live-results listeners."""
        event: dict[str, Any] = {
            "weekIdentifier": self.week_identifier,
            "totalVotes": self.total_votes,
            "issueCounts": dict(self.issue_counts),
            "issues": list(self.issues),
        }
        if reset:
            event["reset"] = True
        return event


def tally_votes(votes: Iterable[VoteDocument], issues: Iterable[str], count_unknown: bool = True) -> dict[str, int]:
    """
    Count selections per issue.

    Every name in issues starts at zero. Selections of other names are added
    when count_unknown is set and ignored otherwise.
    """
    counts = {issue: 0 for issue in issues}
    for vote in votes:
        for issue in vote.selected_issues:
            if issue in counts:
                counts[issue] += 1
            elif count_unknown:
                counts[issue] = 1
    return counts


def rank_issues(issues: list[str], counts: dict[str, int]) -> list[str]:
    """Sort issues by count descending; ties keep their given order."""
    return sorted(issues, key=lambda issue: -counts.get(issue, 0))


def build_live_results(week_identifier: str, votes: list[VoteDocument], active_issues: list[str]) -> LiveResults:
    counts = tally_votes(votes, active_issues, count_unknown=False)
    return LiveResults(
        week_identifier=week_identifier,
        total_votes=len(votes),
        issue_counts=counts,
        issues=rank_issues(active_issues, counts),
    )


class VoteLedgerService:
    """
    Service for submitting votes and reading the current week's state.

    Results are pushed to the injected broadcaster after every accepted vote;
    broadcast problems are logged and never reach the voter.
    """

    def __init__(
        self,
        vote_repo: VoteRepositoryProtocol,
        registry: IssueRegistry,
        broadcaster: Optional[ResultsBroadcaster] = None,
        tz: Optional[tzinfo] = None,
        max_selections: Optional[int] = None,
    ):
        self.vote_repo = vote_repo
        self.registry = registry
        self.broadcaster = broadcaster or NullBroadcaster()
        self.tz = tz or settings.poll_tz
        self.max_selections = max_selections or settings.POLL_MAX_SELECTIONS

    def current_week(self, now: Optional[datetime] = None) -> str:
        return week_identifier_for(now or datetime.now(timezone.utc), self.tz)

    # ========================================================================
    # Validation
    # ========================================================================

    @staticmethod
    def _validate_email(email: Optional[str]) -> str:
        if not email or not email.strip():
            raise VoteValidationError("Please provide an email")
        try:
            validate_email(email.strip(), check_deliverability=False)
        except EmailNotValidError as e:
            raise VoteValidationError("Please provide a valid email address") from e
        return email

    def _validate_selection(self, selected_issues: Optional[list[str]]) -> list[str]:
        if not selected_issues:
            raise VoteValidationError("Please select your issues")
        if len(selected_issues) > self.max_selections:
            raise VoteValidationError(f"Please select between 1 and {self.max_selections} issues")
        if len(set(selected_issues)) != len(selected_issues):
            raise VoteValidationError("Each issue can only be selected once")

        invalid = self.registry.inactive_selections(selected_issues)
        if invalid:
            raise VoteValidationError("Invalid issue selection")
        return list(selected_issues)

    # ========================================================================
    # Operations
    # ========================================================================

    async def submit_vote(
        self,
        email: str,
        selected_issues: list[str],
        now: Optional[datetime] = None,
    ) -> VoteDocument:
        """
        Record a voter's selection for the current week.

        Raises:
            VoteValidationError: If the email or selection is rejected
            VoteConflictError: If the row changed underneath the write
        """
        email = self._validate_email(email)
        await self.registry.ensure_loaded()
        selection = self._validate_selection(selected_issues)

        voted_at = now or datetime.now(timezone.utc)
        week = self.current_week(voted_at)
        voter_hash = compute_voter_hash(email)

        try:
            vote, created = await self.vote_repo.upsert_vote(voter_hash, week, selection, voted_at)
        except VoteWriteConflict as e:
            logger.warning("vote_write_conflict", week_identifier=week)
            raise VoteConflictError("Your vote could not be recorded, please try again") from e

        logger.info(
            "vote_recorded",
            week_identifier=week,
            created=created,
            selections=len(selection),
        )

        await self._publish_results(week)
        return vote

    async def check_status(self, email: str, now: Optional[datetime] = None) -> VoteStatus:
        """Tell whether this email has a vote in the current week."""
        email = self._validate_email(email)
        vote = await self.vote_repo.get_vote(compute_voter_hash(email), self.current_week(now))
        if vote is None:
            return VoteStatus(has_voted=False)
        return VoteStatus(has_voted=True, selected_issues=list(vote.selected_issues))

    async def live_results(self, now: Optional[datetime] = None) -> LiveResults:
        """Recompute the current week's tally from the stored votes."""
        return await self.results_for_week(self.current_week(now))

    async def results_for_week(self, week_identifier: str) -> LiveResults:
        votes = await self.vote_repo.list_for_week(week_identifier)
        return build_live_results(week_identifier, votes, self.registry.active_issues)

    async def _publish_results(self, week_identifier: str) -> None:
        try:
            results = await self.results_for_week(week_identifier)
        except Exception as e:
            logger.warning("live_results_recompute_failed", week_identifier=week_identifier, error=str(e))
            return
        safe_publish(self.broadcaster, results.as_event())
