"""
Tests for the issue registry.
"""

import pytest

from models.documents import PollConfigDocument
from services.issue_registry import (
    DEFAULT_ACTIVE_ISSUES,
    DEFAULT_VALID_ISSUES,
    DuplicateIssueError,
    InvalidIssueError,
    IssueNotFoundError,
    IssueRegistry,
)
from tests.fakes import MID_WEEK_46, InMemoryPollConfigRepository


@pytest.mark.unit
class TestLoad:
    async def test_seeds_defaults_on_first_start(self) -> None:
        config_repo = InMemoryPollConfigRepository()
        registry = IssueRegistry(config_repo, active_issues=[], all_issues=[])

        await registry.load()

        assert registry.all_issues == DEFAULT_VALID_ISSUES
        assert registry.active_issues == DEFAULT_ACTIVE_ISSUES
        assert config_repo.saves == 1

    def test_defaults_are_consistent(self) -> None:
        assert set(DEFAULT_ACTIVE_ISSUES) <= set(DEFAULT_VALID_ISSUES)
        assert len(set(DEFAULT_VALID_ISSUES)) == len(DEFAULT_VALID_ISSUES)

    async def test_loads_stored_config(self) -> None:
        config_repo = InMemoryPollConfigRepository(
            PollConfigDocument(active_issues=["X", "Ghost"], all_valid_issues=["X", "Y", "X"])
        )
        registry = IssueRegistry(config_repo)

        await registry.load()

        assert registry.all_issues == ["X", "Y"]
        # Active issues outside the known set are dropped
        assert registry.active_issues == ["X"]
        assert config_repo.saves == 0


@pytest.mark.unit
class TestMutations:
    async def test_set_active_issues(self, registry, config_repo) -> None:
        active = await registry.set_active_issues(["B", "A"])

        assert active == ["B", "A"]
        assert config_repo.config.active_issues == ["B", "A"]
        assert registry.is_active("B")
        assert not registry.is_active("C")

    async def test_set_active_rejects_unknown(self, registry, config_repo) -> None:
        with pytest.raises(InvalidIssueError) as exc_info:
            await registry.set_active_issues(["A", "Nope"])

        assert exc_info.value.invalid_issues == ["Nope"]
        assert registry.active_issues == ["A", "B", "C", "D"]
        assert config_repo.saves == 0

    async def test_add_issue(self, registry, config_repo) -> None:
        issue = await registry.add_issue("  Housing  ")

        assert issue == "Housing"
        assert registry.all_issues[-1] == "Housing"
        assert registry.is_active("Housing")
        assert config_repo.config.all_valid_issues[-1] == "Housing"

    @pytest.mark.parametrize("name", ["", "   ", None])
    async def test_add_blank_issue(self, registry, name) -> None:
        with pytest.raises(InvalidIssueError):
            await registry.add_issue(name)

    async def test_add_duplicate_issue(self, registry) -> None:
        with pytest.raises(DuplicateIssueError):
            await registry.add_issue("A")

    async def test_delete_issue_keeps_history(self, registry, analytics_repo) -> None:
        await analytics_repo.upsert_week("2025-W46", MID_WEEK_46, 1, {"A": 1, "B": 0})

        await registry.delete_issue("A")

        assert "A" not in registry.all_issues
        assert "A" not in registry.active_issues
        assert analytics_repo.docs["2025-W46"].issue_counts["A"] == 1

    async def test_delete_unknown_issue(self, registry) -> None:
        with pytest.raises(IssueNotFoundError):
            await registry.delete_issue("Nope")


@pytest.mark.unit
class TestRename:
    async def test_rename_propagates(self, registry, vote_repo, analytics_repo) -> None:
        await vote_repo.upsert_vote("v1", "2025-W47", ["A", "B"], MID_WEEK_46)
        await analytics_repo.upsert_week("2025-W46", MID_WEEK_46, 2, {"A": 2, "B": 0})

        result = await registry.rename_issue("A", "Alpha")

        assert result.analytics_updated == 1
        assert result.votes_updated == 1
        assert registry.all_issues == ["Alpha", "B", "C", "D"]
        assert registry.active_issues == ["Alpha", "B", "C", "D"]
        assert analytics_repo.docs["2025-W46"].issue_counts == {"B": 0, "Alpha": 2}
        vote = await vote_repo.get_vote("v1", "2025-W47")
        assert vote.selected_issues == ["Alpha", "B"]

    async def test_rename_missing(self, registry) -> None:
        with pytest.raises(IssueNotFoundError):
            await registry.rename_issue("Nope", "Other")

    async def test_rename_onto_existing(self, registry) -> None:
        with pytest.raises(DuplicateIssueError):
            await registry.rename_issue("A", "B")

    async def test_rename_blank(self, registry) -> None:
        with pytest.raises(InvalidIssueError):
            await registry.rename_issue("A", " ")


@pytest.mark.unit
class TestUnloadedRegistry:
    """A failed startup load must never let the seed lists reach storage."""

    class FlakyConfigRepository(InMemoryPollConfigRepository):
        def __init__(self, config: PollConfigDocument, failures: int) -> None:
            super().__init__(config)
            self.failures = failures

        async def get(self):
            if self.failures:
                self.failures -= 1
                raise RuntimeError("cosmos unavailable")
            return await super().get()

    async def test_mutation_reloads_stored_config_first(self) -> None:
        config_repo = self.FlakyConfigRepository(
            PollConfigDocument(active_issues=["Housing"], all_valid_issues=["Housing", "Transit"]),
            failures=1,
        )
        registry = IssueRegistry(config_repo)
        with pytest.raises(RuntimeError):
            await registry.load()
        assert registry.loaded is False

        await registry.add_issue("Schools")

        assert config_repo.config.all_valid_issues == ["Housing", "Transit", "Schools"]
        assert config_repo.config.active_issues == ["Housing", "Schools"]
        assert registry.loaded is True

    async def test_mutation_refused_while_storage_is_down(self) -> None:
        config_repo = self.FlakyConfigRepository(
            PollConfigDocument(active_issues=["Housing"], all_valid_issues=["Housing", "Transit"]),
            failures=2,
        )
        registry = IssueRegistry(config_repo)
        with pytest.raises(RuntimeError):
            await registry.load()

        with pytest.raises(RuntimeError):
            await registry.add_issue("Schools")

        assert config_repo.saves == 0
        assert config_repo.config.all_valid_issues == ["Housing", "Transit"]

    async def test_explicit_lists_count_as_loaded(self) -> None:
        registry = IssueRegistry(InMemoryPollConfigRepository(), active_issues=["A"], all_issues=["A"])

        assert registry.loaded is True
