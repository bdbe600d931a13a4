"""/api/assignments/logs: audit trail of assignment status changes."""

from typing import Literal, Optional

from fastapi import APIRouter, Query

from assignment_ops.schemas.common import ApiResponse
from assignment_ops.schemas.logs import AssignmentLogPage, AssignmentLogStats
from assignment_ops.services import audit_log

router = APIRouter(prefix="/api/assignments/logs", tags=["logs"])

ChangeReasonFilter = Optional[Literal["manual", "auto_close", "system"]]


@router.get("/instructor/{instructor_id}", response_model=ApiResponse[AssignmentLogPage])
async def instructor_logs_api(
    instructor_id: str,
    assignment_id: Optional[str] = Query(None, alias="assignmentId"),
    change_reason: ChangeReasonFilter = Query(None, alias="changeReason"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=audit_log.MAX_PAGE_SIZE),
):
    """Logs for every assignment in courses taught by the instructor."""
    result = await audit_log.list_instructor_logs(
        instructor_id,
        assignment_id=assignment_id,
        change_reason=change_reason,
        page=page,
        limit=limit,
    )
    return ApiResponse(data=result)


@router.get("/{assignment_id}", response_model=ApiResponse[AssignmentLogPage])
async def assignment_logs_api(
    assignment_id: str,
    change_reason: ChangeReasonFilter = Query(None, alias="changeReason"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=audit_log.MAX_PAGE_SIZE),
):
    """Paginated status history of one assignment, newest first."""
    result = await audit_log.list_assignment_logs(
        assignment_id, change_reason=change_reason, page=page, limit=limit
    )
    return ApiResponse(data=result)


@router.get("/{assignment_id}/stats", response_model=ApiResponse[AssignmentLogStats])
async def assignment_log_stats_api(assignment_id: str):
    return ApiResponse(data=await audit_log.assignment_log_stats(assignment_id))
