"""
Issue registry service.

Single source of truth for the poll's issue names:
- all_issues: every issue ever recognized (archive zero-fill, export columns)
- active_issues: the subset currently open for voting (vote validation, live results)

The registry is cached in memory and persisted to the poll-config document
on every change.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import structlog

from repositories.provider import (
    AnalyticsRepositoryProtocol,
    PollConfigRepositoryProtocol,
    VoteRepositoryProtocol,
)

logger = structlog.get_logger(__name__)

# Seed values written on first start. Never remove names from an existing
# deployment's registry by editing these - use the admin endpoints.
DEFAULT_VALID_ISSUES = [
    "Government Corruption",
    "Cost of Living / Inflation",
    "The Economy",
    "State of US Democracy",
    "Disruption of Federal Government Services",
    "Government Shutdown",
    "Treatment of Immigrants by ICE",
    "Climate Change",
    "Crime",
    "Personal Financial Situation",
    "Releasing the Epstein Files",
]

DEFAULT_ACTIVE_ISSUES = [
    "Government Corruption",
    "Cost of Living / Inflation",
    "The Economy",
    "State of US Democracy",
    "Treatment of Immigrants by ICE",
    "Climate Change",
    "Crime",
    "Personal Financial Situation",
    "Releasing the Epstein Files",
]


class IssueRegistryError(Exception):
    """Base exception for issue registry operations."""

    pass


class InvalidIssueError(IssueRegistryError):
    """Issue name is blank or not part of the registry."""

    def __init__(self, message: str, invalid_issues: Optional[list[str]] = None):
        super().__init__(message)
        self.invalid_issues = invalid_issues or []


class DuplicateIssueError(IssueRegistryError):
    """An issue with that name already exists."""

    pass


class IssueNotFoundError(IssueRegistryError):
    """The named issue is not in the registry."""

    pass


@dataclass
class RenameResult:
    """Outcome of renaming an issue everywhere it is referenced."""

    old_name: str
    new_name: str
    analytics_updated: int
    votes_updated: int


class IssueRegistry:
    """
    In-memory issue registry backed by the poll-config document.

    Reads are synchronous and never touch storage; mutations are serialized
    and written through before the cache is updated.
    """

    def __init__(
        self,
        config_repo: PollConfigRepositoryProtocol,
        vote_repo: Optional[VoteRepositoryProtocol] = None,
        analytics_repo: Optional[AnalyticsRepositoryProtocol] = None,
        active_issues: Optional[list[str]] = None,
        all_issues: Optional[list[str]] = None,
    ):
        self.config_repo = config_repo
        self.vote_repo = vote_repo
        self.analytics_repo = analytics_repo
        self._all: list[str] = list(all_issues if all_issues is not None else DEFAULT_VALID_ISSUES)
        self._active: list[str] = list(active_issues if active_issues is not None else DEFAULT_ACTIVE_ISSUES)
        # Explicit lists stand in for a loaded config; the defaults never do
        self._loaded = all_issues is not None
        self._lock = asyncio.Lock()

    # ========================================================================
    # Reads
    # ========================================================================

    @property
    def active_issues(self) -> list[str]:
        return list(self._active)

    @property
    def all_issues(self) -> list[str]:
        return list(self._all)

    def is_active(self, issue: str) -> bool:
        return issue in self._active

    def inactive_selections(self, issues: list[str]) -> list[str]:
        """Get the entries of issues that are not currently open for voting."""
        return [issue for issue in issues if issue not in self._active]

    @property
    def loaded(self) -> bool:
        return self._loaded

    # ========================================================================
    # Persistence
    # ========================================================================

    async def load(self) -> None:
        """
        Load the registry from storage, seeding defaults on first start.

        Raises whatever the storage layer raises. The registry then stays
        unloaded and the next mutation, vote or archive retries the load.
        """
        config = await self.config_repo.get()
        if config is None:
            config = await self.config_repo.save(DEFAULT_ACTIVE_ISSUES, DEFAULT_VALID_ISSUES)
            logger.info("poll_config_seeded", active=len(config.active_issues), total=len(config.all_valid_issues))

        all_issues = list(dict.fromkeys(config.all_valid_issues))
        self._all = all_issues
        self._active = [issue for issue in dict.fromkeys(config.active_issues) if issue in all_issues]
        self._loaded = True
        logger.info("poll_config_loaded", active=len(self._active), total=len(self._all))

    async def ensure_loaded(self) -> None:
        """
        Load the registry if the stored config has not been read yet.

        Until a load succeeds the in-memory lists are only the seed defaults,
        which must not be written over the stored config or used to tally.
        """
        if not self._loaded:
            await self.load()

    async def _persist(self, active: list[str], all_issues: list[str]) -> None:
        await self.config_repo.save(active, all_issues)
        self._active = active
        self._all = all_issues

    # ========================================================================
    # Mutations
    # ========================================================================

    async def set_active_issues(self, issues: list[str]) -> list[str]:
        """
        Replace the set of issues open for voting.

        Raises:
            InvalidIssueError: If any name is not a known issue
        """
        requested = list(dict.fromkeys(issue.strip() for issue in issues))
        async with self._lock:
            await self.ensure_loaded()
            invalid = [issue for issue in requested if issue not in self._all]
            if invalid:
                raise InvalidIssueError("Invalid issues provided", invalid_issues=invalid)

            await self._persist(requested, list(self._all))

        logger.info("active_issues_updated", count=len(requested))
        return self.active_issues

    async def add_issue(self, name: str) -> str:
        """
        Register a new issue and open it for voting.

        Raises:
            InvalidIssueError: If the name is blank
            DuplicateIssueError: If the issue already exists
        """
        issue = (name or "").strip()
        if not issue:
            raise InvalidIssueError("Issue name is required")

        async with self._lock:
            await self.ensure_loaded()
            if issue in self._all:
                raise DuplicateIssueError("Issue already exists")
            await self._persist(self._active + [issue], self._all + [issue])

        logger.info("issue_added", issue=issue)
        return issue

    async def rename_issue(self, old_name: str, new_name: str) -> RenameResult:
        """
        Rename an issue in the registry, the archived history and active votes.

        Raises:
            InvalidIssueError: If either name is blank
            IssueNotFoundError: If old_name is not registered
            DuplicateIssueError: If new_name is already used by another issue
        """
        old = (old_name or "").strip()
        new = (new_name or "").strip()
        if not old or not new:
            raise InvalidIssueError("Issue names cannot be empty")

        async with self._lock:
            await self.ensure_loaded()
            if old not in self._all:
                raise IssueNotFoundError("Original issue not found")
            if new in self._all and new != old:
                raise DuplicateIssueError("An issue with that name already exists")

            await self._persist(
                [new if issue == old else issue for issue in self._active],
                [new if issue == old else issue for issue in self._all],
            )

        analytics_updated = 0
        votes_updated = 0
        if old != new:
            if self.analytics_repo is not None:
                analytics_updated = await self.analytics_repo.rename_issue(old, new)
            if self.vote_repo is not None:
                votes_updated = await self.vote_repo.rename_issue(old, new)

        logger.info(
            "issue_renamed",
            old_name=old,
            new_name=new,
            analytics_updated=analytics_updated,
            votes_updated=votes_updated,
        )
        return RenameResult(old, new, analytics_updated, votes_updated)

    async def delete_issue(self, name: str) -> str:
        """
        Remove an issue from the registry.

        Historical analytics and already-cast votes are left untouched.

        Raises:
            InvalidIssueError: If the name is blank
            IssueNotFoundError: If the issue is not registered
        """
        issue = (name or "").strip()
        if not issue:
            raise InvalidIssueError("Issue name is required")

        async with self._lock:
            await self.ensure_loaded()
            if issue not in self._all:
                raise IssueNotFoundError("Issue not found")
            await self._persist(
                [i for i in self._active if i != issue],
                [i for i in self._all if i != issue],
            )

        logger.info("issue_deleted", issue=issue)
        return issue


_registry: IssueRegistry | None = None


def get_issue_registry() -> IssueRegistry:
    """Get the process-wide issue registry."""
    global _registry
    if _registry is None:
        from repositories.provider import (
            get_analytics_repository,
            get_poll_config_repository,
            get_vote_repository,
        )

        _registry = IssueRegistry(
            config_repo=get_poll_config_repository(),
            vote_repo=get_vote_repository(),
            analytics_repo=get_analytics_repository(),
        )
    return _registry
