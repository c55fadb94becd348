"""
Admin endpoints - district administrators triage and close issues.

SCOPE OF ADMIN:
✅ Move issues between PENDING and IN_PROGRESS
✅ Resolve with a completion photo
✅ Reject with one of the fixed reasons
✅ Filtered dashboard listing and district counters

❌ NOT edit report content
❌ NOT vote on behalf of citizens
❌ NOT reopen resolved or rejected issues
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.models.base import BaseResponse, IssueListResponse, IssueResponse
from app.models.issue import (
    CityStats,
    IssueStatus,
    RejectRequest,
    ResolveRequest,
    StatusUpdateRequest,
)
from app.models.user import Principal
from app.services.issue_service import IssueService, get_issue_service
from app.services.status_workflow import StatusWorkflowEngine
from app.utils.security import get_current_principal


router = APIRouter(prefix="/admin", tags=["Admin"])


class StatsResponse(BaseResponse):
    stats: CityStats


@router.patch("/issues/{issue_id}/status", response_model=IssueResponse)
async def change_status(
    issue_id: str,
    request: StatusUpdateRequest,
    actor: Optional[Principal] = Depends(get_current_principal),
    service: IssueService = Depends(get_issue_service),
):
    """
    Change issue status between PENDING and IN_PROGRESS.

    Raises:
        403: Caller is not an administrator of the issue's district
        409: Issue is already resolved or rejected
        422: Target status must be set through resolve/reject
    """
    issue = service.set_status(actor, issue_id, request.status, request.note)
    allowed = StatusWorkflowEngine.get_allowed_transitions(issue.status)
    return IssueResponse(
        message=f"Status updated to {issue.status.value}. Next: {', '.join(allowed)}",
        issue=issue,
    )


@router.post("/issues/{issue_id}/resolve", response_model=IssueResponse)
async def resolve_issue(
    issue_id: str,
    request: ResolveRequest,
    actor: Optional[Principal] = Depends(get_current_principal),
    service: IssueService = Depends(get_issue_service),
):
    """
    Resolve an issue. A completion photo reference is mandatory.

    A 409 on retry after a timeout means the first call already applied.
    """
    issue = service.resolve(actor, issue_id, request.evidence_image, request.note)
    return IssueResponse(message="Issue resolved", issue=issue)


@router.post("/issues/{issue_id}/reject", response_model=IssueResponse)
async def reject_issue(
    issue_id: str,
    request: RejectRequest,
    actor: Optional[Principal] = Depends(get_current_principal),
    service: IssueService = Depends(get_issue_service),
):
    issue = service.reject(actor, issue_id, request.reason, request.note)
    return IssueResponse(message="Issue rejected", issue=issue)


@router.get("/issues", response_model=IssueListResponse)
async def get_issues(
    city: Optional[str] = Query(None, description="District (defaults to the admin's own)"),
    status: Optional[IssueStatus] = Query(None, description="Filter by status"),
    category: Optional[str] = Query(None, description="Filter by category"),
    actor: Optional[Principal] = Depends(get_current_principal),
    service: IssueService = Depends(get_issue_service),
):
    issues = service.list_issues(actor, city, status, category)
    return IssueListResponse(count=len(issues), issues=issues)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    city: Optional[str] = Query(None, description="District (defaults to the admin's own)"),
    actor: Optional[Principal] = Depends(get_current_principal),
    service: IssueService = Depends(get_issue_service),
):
    return StatsResponse(stats=service.city_stats(actor, city))
