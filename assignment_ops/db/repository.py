from datetime import datetime

from sqlalchemy import Row, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from assignment_ops.db.models import (
    Assignment,
    AssignmentLog,
    AssignmentStatus,
    Course,
    SchedulerRun,
    SchedulerStatus,
    User,
)


# ======================================================
# SCHEDULER STATUS
# ======================================================

async def get_scheduler_status(
    session: AsyncSession, scheduler_name: str
) -> SchedulerStatus | None:
    stmt = select(SchedulerStatus).where(SchedulerStatus.scheduler_name == scheduler_name)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def claim_scheduler(
    session: AsyncSession, scheduler_name: str, now: datetime, *, force: bool = False
) -> bool:
    """
    Atomically flip is_running to true and count the run.
    Returns False if another run holds the flag (never when force=True).
    """
    stmt = update(SchedulerStatus).where(SchedulerStatus.scheduler_name == scheduler_name)
    if not force:
        stmt = stmt.where(SchedulerStatus.is_running.is_(False))
    stmt = stmt.values(
        is_running=True,
        last_run_at=now,
        run_count=SchedulerStatus.run_count + 1,
        updated_at=now,
    ).execution_options(synchronize_session=False)
    result = await session.execute(stmt)
    return result.rowcount == 1


async def release_scheduler(session: AsyncSession, scheduler_name: str, now: datetime) -> None:
    """Clear the running flag without touching counters (dry runs)."""
    await session.execute(
        update(SchedulerStatus)
        .where(SchedulerStatus.scheduler_name == scheduler_name)
        .values(is_running=False, updated_at=now)
        .execution_options(synchronize_session=False)
    )


async def finish_scheduler_success(
    session: AsyncSession,
    scheduler_name: str,
    now: datetime,
    *,
    processed: int,
    errors: int,
) -> None:
    await session.execute(
        update(SchedulerStatus)
        .where(SchedulerStatus.scheduler_name == scheduler_name)
        .values(
            is_running=False,
            last_success_at=now,
            success_count=SchedulerStatus.success_count + processed,
            error_count=SchedulerStatus.error_count + errors,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )


async def finish_scheduler_failure(
    session: AsyncSession,
    scheduler_name: str,
    now: datetime,
    message: str,
    *,
    processed: int = 0,
    errors: int = 1,
) -> None:
    """Release after a fatal error; processed counts closes committed before it."""
    await session.execute(
        update(SchedulerStatus)
        .where(SchedulerStatus.scheduler_name == scheduler_name)
        .values(
            is_running=False,
            last_error_at=now,
            last_error_message=message,
            success_count=SchedulerStatus.success_count + processed,
            error_count=SchedulerStatus.error_count + errors,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )


# ======================================================
# SCHEDULER RUN HISTORY
# ======================================================

async def create_scheduler_run(
    session: AsyncSession,
    scheduler_name: str,
    trigger: str,
    dry_run: bool,
    status: str,
    processed_count: int,
    errors: list[dict],
    duration_ms: int,
    error_message: str | None = None,
    created_at: datetime | None = None,
) -> SchedulerRun:
    """Create a run-history record for one engine execution."""
    run = SchedulerRun(
        scheduler_name=scheduler_name,
        trigger=trigger,
        dry_run=dry_run,
        status=status,
        processed_count=processed_count,
        error_count=len(errors),
        errors_json=errors,
        duration_ms=duration_ms,
        error_message=error_message,
    )
    if created_at is not None:
        run.created_at = created_at
    session.add(run)
    await session.flush()
    return run


async def list_scheduler_runs_since(
    session: AsyncSession, scheduler_name: str, since: datetime
) -> list[SchedulerRun]:
    stmt = (
        select(SchedulerRun)
        .where(
            SchedulerRun.scheduler_name == scheduler_name,
            SchedulerRun.dry_run.is_(False),
            SchedulerRun.created_at >= since,
        )
        .order_by(SchedulerRun.created_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


# ======================================================
# ASSIGNMENTS
# ======================================================

async def list_overdue_assignments(
    session: AsyncSession, now: datetime, limit: int
) -> list[Row]:
    """Published assignments past due, with the owning course's instructor."""
    stmt = (
        select(
            Assignment.id,
            Assignment.title,
            Assignment.due_date,
            Course.instructor_id,
        )
        .join(Course, Course.id == Assignment.course_id)
        .where(
            Assignment.status == AssignmentStatus.PUBLISHED.value,
            Assignment.due_date < now,
        )
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.all())


async def transition_assignment_status(
    session: AsyncSession,
    assignment_id: str,
    *,
    expected_status: str,
    new_status: str,
    now: datetime,
) -> bool:
    """
    Conditional status update (optimistic concurrency guard).
    Returns False when the row no longer has expected_status.
    """
    stmt = (
        update(Assignment)
        .where(Assignment.id == assignment_id, Assignment.status == expected_status)
        .values(status=new_status, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount == 1


async def get_assignment_by_id(session: AsyncSession, assignment_id: str) -> Assignment | None:
    stmt = select(Assignment).where(Assignment.id == assignment_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_course_by_id(session: AsyncSession, course_id: str) -> Course | None:
    stmt = select(Course).where(Course.id == course_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


# ======================================================
# USERS
# ======================================================

async def get_user_by_id(session: AsyncSession, user_id: str) -> User | None:
    stmt = select(User).where(User.id == user_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


# ======================================================
# ASSIGNMENT LOGS
# ======================================================

async def create_assignment_log(
    session: AsyncSession,
    assignment_id: str,
    changed_by: str,
    previous_status: str,
    new_status: str,
    change_reason: str,
    metadata: dict,
) -> AssignmentLog:
    """Append an audit entry. Logs are never updated or deleted."""
    log = AssignmentLog(
        assignment_id=assignment_id,
        changed_by=changed_by,
        previous_status=previous_status,
        new_status=new_status,
        change_reason=change_reason,
        metadata_json=metadata,
    )
    session.add(log)
    await session.flush()
    return log


def _log_filters(
    assignment_id: str | None = None,
    change_reason: str | None = None,
    instructor_id: str | None = None,
):
    filters = []
    if assignment_id:
        filters.append(AssignmentLog.assignment_id == assignment_id)
    if change_reason:
        filters.append(AssignmentLog.change_reason == change_reason)
    if instructor_id:
        filters.append(Course.instructor_id == instructor_id)
    return filters


async def list_assignment_logs(
    session: AsyncSession,
    assignment_id: str | None = None,
    change_reason: str | None = None,
    instructor_id: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[tuple[AssignmentLog, str | None]]:
    """Newest-first logs joined with the author's name."""
    stmt = (
        select(AssignmentLog, User.full_name)
        .outerjoin(User, User.id == AssignmentLog.changed_by)
        .order_by(AssignmentLog.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    if instructor_id:
        stmt = stmt.join(Assignment, Assignment.id == AssignmentLog.assignment_id).join(
            Course, Course.id == Assignment.course_id
        )
    for condition in _log_filters(assignment_id, change_reason, instructor_id):
        stmt = stmt.where(condition)
    result = await session.execute(stmt)
    return [(row[0], row[1]) for row in result.all()]


async def count_assignment_logs(
    session: AsyncSession,
    assignment_id: str | None = None,
    change_reason: str | None = None,
    instructor_id: str | None = None,
) -> int:
    stmt = select(func.count()).select_from(AssignmentLog)
    if instructor_id:
        stmt = stmt.join(Assignment, Assignment.id == AssignmentLog.assignment_id).join(
            Course, Course.id == Assignment.course_id
        )
    for condition in _log_filters(assignment_id, change_reason, instructor_id):
        stmt = stmt.where(condition)
    result = await session.execute(stmt)
    return result.scalar() or 0


async def count_logs_by_reason(session: AsyncSession, assignment_id: str) -> dict[str, int]:
    stmt = (
        select(AssignmentLog.change_reason, func.count())
        .where(AssignmentLog.assignment_id == assignment_id)
        .group_by(AssignmentLog.change_reason)
    )
    result = await session.execute(stmt)
    return {reason: count for reason, count in result.all()}


async def get_last_log_time(session: AsyncSession, assignment_id: str) -> datetime | None:
    stmt = select(func.max(AssignmentLog.created_at)).where(
        AssignmentLog.assignment_id == assignment_id
    )
    result = await session.execute(stmt)
    return result.scalar()


async def list_logs_since(
    session: AsyncSession, change_reason: str, since: datetime
) -> list[AssignmentLog]:
    stmt = (
        select(AssignmentLog)
        .where(AssignmentLog.change_reason == change_reason, AssignmentLog.created_at >= since)
        .order_by(AssignmentLog.created_at.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
