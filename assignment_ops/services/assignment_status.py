"""Manual (instructor/operator) assignment status transitions."""

import logging

from assignment_ops.db import repository
from assignment_ops.db.models import AssignmentStatus, ChangeReason, UserRole, utcnow
from assignment_ops.db.session import async_session
from assignment_ops.errors import (
    ConcurrentModification,
    ErrorCode,
    InvalidStatusTransition,
    NotAuthorized,
    NotFound,
    ensure_uuid,
)
from assignment_ops.schemas.assignments import AssignmentView
from assignment_ops.schemas.logs import CreateAssignmentLogRequest, ManualChangeMetadata
from assignment_ops.services import audit_log

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    AssignmentStatus.DRAFT.value: {AssignmentStatus.PUBLISHED.value},
    AssignmentStatus.PUBLISHED.value: {AssignmentStatus.CLOSED.value},
    AssignmentStatus.CLOSED.value: set(),
}


async def change_assignment_status(
    assignment_id: str,
    actor_id: str,
    new_status: str,
    note: str | None = None,
) -> AssignmentView:
    """
    Move an assignment along draft -> published -> closed and log it.

    Only the course instructor or an operator may change status. The write is
    conditional on the status read here, so a concurrent auto-close surfaces as
    ConcurrentModification instead of a double transition.
    """
    assignment_id = ensure_uuid(assignment_id, "assignment ID")
    actor_id = ensure_uuid(actor_id, "actor ID")

    async with async_session() as session:
        assignment = await repository.get_assignment_by_id(session, assignment_id)
        if assignment is None:
            raise NotFound("Assignment not found.")
        actor = await repository.get_user_by_id(session, actor_id)
        if actor is None:
            raise NotFound("User not found.", code=ErrorCode.USER_NOT_FOUND)
        course = await repository.get_course_by_id(session, assignment.course_id)
        is_owner = course is not None and str(course.instructor_id) == actor_id
        if not (is_owner or actor.role == UserRole.OPERATOR.value):
            raise NotAuthorized(
                "Only the course instructor can change this assignment.",
                code=ErrorCode.NOT_COURSE_OWNER,
            )

        previous_status = assignment.status
        if new_status not in ALLOWED_TRANSITIONS.get(previous_status, set()):
            raise InvalidStatusTransition(
                f"Cannot change status from {previous_status} to {new_status}."
            )

        updated = await repository.transition_assignment_status(
            session,
            assignment_id,
            expected_status=previous_status,
            new_status=new_status,
            now=utcnow(),
        )
        if not updated:
            await session.rollback()
            raise ConcurrentModification("Assignment was modified concurrently. Reload and retry.")

        await audit_log.record_transition(
            session,
            CreateAssignmentLogRequest(
                assignment_id=assignment_id,
                changed_by=actor_id,
                previous_status=previous_status,
                new_status=new_status,
                change_reason=ChangeReason.MANUAL.value,
                metadata=ManualChangeMetadata(note=note),
            ),
        )
        await session.commit()

        await session.refresh(assignment)

    logger.info(
        "Assignment %s status changed %s -> %s by %s",
        assignment_id, previous_status, new_status, actor_id,
    )
    return AssignmentView.from_row(assignment)
