"""/api/instructor/assignments: manual status transitions."""

from fastapi import APIRouter

from assignment_ops.schemas.assignments import AssignmentStatusUpdateRequest, AssignmentView
from assignment_ops.schemas.common import ApiResponse
from assignment_ops.services import assignment_status

router = APIRouter(prefix="/api/instructor/assignments", tags=["assignments"])


@router.patch("/{assignment_id}/status", response_model=ApiResponse[AssignmentView])
async def update_status_api(assignment_id: str, data: AssignmentStatusUpdateRequest):
    """
    Publish or close an assignment by hand.

    Allowed: draft → published, published → closed. Writes a `manual` audit entry.
    """
    result = await assignment_status.change_assignment_status(
        assignment_id, data.actor_id, data.status, note=data.note
    )
    return ApiResponse(data=result)
