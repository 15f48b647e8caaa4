"""
Operator endpoints for the weekly poll.

These endpoints require an operator token and are used for:
- Emergency reset of the current week
- Manual catch-up archive sweeps and scheduler status
- Monthly CSV export of archived weeks
- Issue registry management
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from api.deps import (
    CurrentOperator,
    get_analytics_query,
    get_archive_scheduler,
    get_registry,
)
from schemas.poll import (
    EditIssueRequest,
    EditIssueResponse,
    IssueChangeResponse,
    IssueListResponse,
    IssueNameRequest,
    ResetWeekResponse,
    SchedulerStatusResponse,
    SweepResponse,
    UpdateActiveIssuesRequest,
    UpdateActiveIssuesResponse,
)
from services.analytics_service import AnalyticsNotFoundError, AnalyticsQuery
from services.archive_scheduler import ArchiveScheduler
from services.issue_registry import (
    DuplicateIssueError,
    InvalidIssueError,
    IssueNotFoundError,
    IssueRegistry,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


# =============================================================================
# Archive
# =============================================================================


@router.post("/reset-week", response_model=ResetWeekResponse)
async def reset_week(
    operator: CurrentOperator,
    scheduler: Annotated[ArchiveScheduler, Depends(get_archive_scheduler)],
) -> ResetWeekResponse:
    """
    Archive the current week now, outside the normal schedule.

    Requires operator authentication.
    """
    result = await scheduler.reset_current_week(operator=operator.id)

    if result.archived:
        message = f"Archived {result.votes_deleted} votes for {result.week_identifier}"
    else:
        message = f"No votes to archive for {result.week_identifier}"

    return ResetWeekResponse(
        message=message,
        week_identifier=result.week_identifier,
        votes_deleted=result.votes_deleted,
        archived=result.archived,
    )


@router.post("/archive-sweep", response_model=SweepResponse)
async def run_archive_sweep(
    operator: CurrentOperator,
    scheduler: Annotated[ArchiveScheduler, Depends(get_archive_scheduler)],
) -> SweepResponse:
    """
    Archive every closed week still holding votes, ignoring the safety window.

    The current week is never touched. Requires operator authentication.
    """
    logger.info("manual_archive_sweep_requested", operator=operator.id)
    result = await scheduler.sweep(enforce_window=False)
    return SweepResponse(**result.to_dict())


@router.get("/scheduler-status", response_model=SchedulerStatusResponse)
async def scheduler_status(_operator: CurrentOperator) -> SchedulerStatusResponse:
    """
    Get the status of the background scheduler.

    Requires operator authentication.
    """
    from services.background_scheduler import get_scheduler_status

    return SchedulerStatusResponse(**get_scheduler_status())


@router.get("/monthly-export/{year}/{month}")
async def monthly_export(
    year: int,
    month: int,
    _operator: CurrentOperator,
    query: Annotated[AnalyticsQuery, Depends(get_analytics_query)],
) -> Response:
    """
    Download a month of archived weeks as CSV.

    Requires operator authentication.
    """
    try:
        export = await query.monthly_export(year, month)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except AnalyticsNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


# =============================================================================
# Issue Registry
# =============================================================================


def _issue_change(message: str, issue: str, registry: IssueRegistry) -> IssueChangeResponse:
    return IssueChangeResponse(
        message=message,
        issue=issue,
        active_issues=registry.active_issues,
        all_issues=registry.all_issues,
    )


@router.get("/all-issues", response_model=IssueListResponse)
async def get_all_issues(
    _operator: CurrentOperator,
    registry: Annotated[IssueRegistry, Depends(get_registry)],
) -> IssueListResponse:
    """Get every known issue, including those closed for voting."""
    issues = registry.all_issues
    return IssueListResponse(issues=issues, count=len(issues))


@router.post("/update-active-issues", response_model=UpdateActiveIssuesResponse)
async def update_active_issues(
    request: UpdateActiveIssuesRequest,
    operator: CurrentOperator,
    registry: Annotated[IssueRegistry, Depends(get_registry)],
) -> UpdateActiveIssuesResponse:
    """Choose which known issues are open for voting."""
    try:
        active = await registry.set_active_issues(request.active_issues)
    except InvalidIssueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "invalidIssues": e.invalid_issues},
        )

    logger.info("active_issues_changed", operator=operator.id, count=len(active))
    return UpdateActiveIssuesResponse(message="Active issues updated successfully", active_issues=active)


@router.post("/add-issue", response_model=IssueChangeResponse, status_code=status.HTTP_201_CREATED)
async def add_issue(
    request: IssueNameRequest,
    operator: CurrentOperator,
    registry: Annotated[IssueRegistry, Depends(get_registry)],
) -> IssueChangeResponse:
    """Register a new issue and open it for voting."""
    try:
        issue = await registry.add_issue(request.issue_name)
    except InvalidIssueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DuplicateIssueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info("issue_added_by_operator", operator=operator.id, issue=issue)
    return _issue_change("Issue added successfully", issue, registry)


@router.put("/edit-issue", response_model=EditIssueResponse)
async def edit_issue(
    request: EditIssueRequest,
    operator: CurrentOperator,
    registry: Annotated[IssueRegistry, Depends(get_registry)],
) -> EditIssueResponse:
    """Rename an issue everywhere it appears, including archived weeks."""
    try:
        result = await registry.rename_issue(request.old_name, request.new_name)
    except InvalidIssueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except IssueNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DuplicateIssueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info("issue_renamed_by_operator", operator=operator.id, old_name=result.old_name, new_name=result.new_name)
    return EditIssueResponse(
        message="Issue renamed successfully",
        old_name=result.old_name,
        new_name=result.new_name,
        analytics_updated=result.analytics_updated,
        votes_updated=result.votes_updated,
    )


@router.delete("/delete-issue", response_model=IssueChangeResponse)
async def delete_issue(
    request: IssueNameRequest,
    operator: CurrentOperator,
    registry: Annotated[IssueRegistry, Depends(get_registry)],
) -> IssueChangeResponse:
    """Remove an issue from the registry. Archived weeks keep their counts."""
    try:
        issue = await registry.delete_issue(request.issue_name)
    except InvalidIssueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except IssueNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    logger.info("issue_deleted_by_operator", operator=operator.id, issue=issue)
    return _issue_change("Issue deleted successfully", issue, registry)
