"""
Assignment audit log.

Append-only history of assignment status transitions, plus the paginated and
per-instructor read paths used by the audit UI.
"""

import math

from sqlalchemy.ext.asyncio import AsyncSession

from assignment_ops.db import repository
from assignment_ops.db.models import AssignmentLog, ChangeReason, UserRole
from assignment_ops.db.session import async_session
from assignment_ops.errors import ErrorCode, NotAuthorized, NotFound, ValidationFailed, ensure_uuid
from assignment_ops.schemas.common import Pagination
from assignment_ops.schemas.logs import (
    AssignmentLogPage,
    AssignmentLogStats,
    AssignmentLogView,
    CreateAssignmentLogRequest,
    dump_metadata,
)

MAX_PAGE_SIZE = 100


async def record_transition(
    session: AsyncSession, data: CreateAssignmentLogRequest
) -> AssignmentLog:
    """
    Write one audit entry inside the caller's session.

    Raises NotFound if the assignment or the acting user does not exist;
    the caller decides whether a failure here is fatal.
    """
    if await repository.get_assignment_by_id(session, data.assignment_id) is None:
        raise NotFound("Assignment not found.")
    if await repository.get_user_by_id(session, data.changed_by) is None:
        raise NotFound("User not found.", code=ErrorCode.USER_NOT_FOUND)

    return await repository.create_assignment_log(
        session,
        assignment_id=data.assignment_id,
        changed_by=data.changed_by,
        previous_status=data.previous_status,
        new_status=data.new_status,
        change_reason=data.change_reason,
        metadata=dump_metadata(data.metadata),
    )


def _validate_paging(page: int, limit: int) -> int:
    if page < 1:
        raise ValidationFailed("page must be at least 1.")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationFailed(f"limit must be between 1 and {MAX_PAGE_SIZE}.")
    return (page - 1) * limit


def _validate_reason(change_reason: str | None) -> None:
    if change_reason and change_reason not in {r.value for r in ChangeReason}:
        raise ValidationFailed(f"Unknown change reason: {change_reason}")


def _page(rows, total: int, page: int, limit: int) -> AssignmentLogPage:
    return AssignmentLogPage(
        logs=[AssignmentLogView.from_row(log, name) for log, name in rows],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        ),
    )


async def list_assignment_logs(
    assignment_id: str,
    change_reason: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> AssignmentLogPage:
    """Status history of one assignment, newest first."""
    assignment_id = ensure_uuid(assignment_id, "assignment ID")
    _validate_reason(change_reason)
    offset = _validate_paging(page, limit)

    async with async_session() as session:
        if await repository.get_assignment_by_id(session, assignment_id) is None:
            raise NotFound("Assignment not found.")
        rows = await repository.list_assignment_logs(
            session,
            assignment_id=assignment_id,
            change_reason=change_reason,
            limit=limit,
            offset=offset,
        )
        total = await repository.count_assignment_logs(
            session, assignment_id=assignment_id, change_reason=change_reason
        )
        await session.commit()

    return _page(rows, total, page, limit)


async def list_instructor_logs(
    instructor_id: str,
    assignment_id: str | None = None,
    change_reason: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> AssignmentLogPage:
    """History across every assignment in courses the instructor teaches."""
    instructor_id = ensure_uuid(instructor_id, "instructor ID")
    if assignment_id:
        assignment_id = ensure_uuid(assignment_id, "assignment ID")
    _validate_reason(change_reason)
    offset = _validate_paging(page, limit)

    async with async_session() as session:
        user = await repository.get_user_by_id(session, instructor_id)
        if user is None or user.role != UserRole.INSTRUCTOR.value:
            raise NotAuthorized("Instructor role required.", code=ErrorCode.NOT_INSTRUCTOR)
        rows = await repository.list_assignment_logs(
            session,
            assignment_id=assignment_id,
            change_reason=change_reason,
            instructor_id=instructor_id,
            limit=limit,
            offset=offset,
        )
        total = await repository.count_assignment_logs(
            session,
            assignment_id=assignment_id,
            change_reason=change_reason,
            instructor_id=instructor_id,
        )
        await session.commit()

    return _page(rows, total, page, limit)


async def assignment_log_stats(assignment_id: str) -> AssignmentLogStats:
    assignment_id = ensure_uuid(assignment_id, "assignment ID")
    async with async_session() as session:
        if await repository.get_assignment_by_id(session, assignment_id) is None:
            raise NotFound("Assignment not found.")
        counts = await repository.count_logs_by_reason(session, assignment_id)
        last_change_at = await repository.get_last_log_time(session, assignment_id)
        await session.commit()

    return AssignmentLogStats(
        total_changes=sum(counts.values()),
        manual_changes=counts.get(ChangeReason.MANUAL.value, 0),
        auto_close_changes=counts.get(ChangeReason.AUTO_CLOSE.value, 0),
        system_changes=counts.get(ChangeReason.SYSTEM.value, 0),
        last_change_at=last_change_at,
    )
