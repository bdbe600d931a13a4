"""
Assignment auto-close engine.

Flow:
  claim scheduler  →  atomic UPDATE ... WHERE is_running = false
                   →  select published assignments past due (bounded by batch size)
                   →  close each one with a conditional update + audit entry
                   →  release scheduler, bump counters, write run history

Per-assignment failures are collected into the result and never abort the
batch. Anything else is fatal to the run: the status row is released and
marked with the error before AutoCloseFailed reaches the caller.
"""

import logging
import time

from sqlalchemy.ext.asyncio import AsyncSession

from assignment_ops.config import settings
from assignment_ops.db import repository
from assignment_ops.db.models import (
    AssignmentStatus,
    ChangeReason,
    RunStatus,
    RunTrigger,
    UserRole,
    utcnow,
)
from assignment_ops.db.session import async_session
from assignment_ops.errors import (
    AutoCloseFailed,
    ErrorCode,
    NotAuthorized,
    NotFound,
    SchedulerAlreadyRunning,
    ValidationFailed,
    ensure_uuid,
)
from assignment_ops.schemas.logs import AutoCloseMetadata, CreateAssignmentLogRequest
from assignment_ops.schemas.scheduler import AutoCloseError, AutoCloseResult
from assignment_ops.services import audit_log, status_store

logger = logging.getLogger(__name__)

MANUAL_TRIGGER_ROLES = {UserRole.OPERATOR.value, UserRole.INSTRUCTOR.value}


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


async def run_auto_close(
    *,
    dry_run: bool = False,
    batch_size: int | None = None,
    force: bool = False,
    trigger: RunTrigger = RunTrigger.AUTOMATIC,
) -> AutoCloseResult:
    """
    Close every published assignment whose due date has passed.

    - dry_run: report candidates without mutating anything.
    - force: claim the scheduler even if another run holds the flag.
    Raises SchedulerAlreadyRunning, NotFound or AutoCloseFailed.
    """
    scheduler_name = settings.scheduler_name
    if batch_size is None:
        batch_size = settings.auto_close_batch_size
    if batch_size < 1 or batch_size > settings.max_batch_size:
        raise ValidationFailed(f"batch_size must be between 1 and {settings.max_batch_size}.")

    started = time.perf_counter()

    # ── 1. Claim the scheduler ───────────────────────────────────────────────
    async with async_session() as session:
        if await repository.get_scheduler_status(session, scheduler_name) is None:
            raise NotFound(
                "Scheduler status not found.", code=ErrorCode.SCHEDULER_STATUS_NOT_FOUND
            )
        claimed = await repository.claim_scheduler(session, scheduler_name, utcnow(), force=force)
        await session.commit()

    if not claimed:
        raise SchedulerAlreadyRunning("Scheduler is already running.")

    logger.info(
        "Auto-close started (scheduler=%s, trigger=%s, dry_run=%s, batch_size=%d, force=%s)",
        scheduler_name, trigger.value, dry_run, batch_size, force,
    )

    # ── 2. Process, then release ─────────────────────────────────────────────
    # The flag is released on every exit, cancellation included.
    result = None
    try:
        result = await _close_overdue(scheduler_name, dry_run=dry_run, batch_size=batch_size, started=started)
        await _record_success(scheduler_name, result, trigger)
    except BaseException as e:
        message = str(e) or e.__class__.__name__
        logger.exception("Auto-close failed (scheduler=%s): %s", scheduler_name, message)
        await _record_failure(
            scheduler_name, message, trigger, dry_run, _elapsed_ms(started), result
        )
        if not isinstance(e, Exception):
            raise
        raise AutoCloseFailed(message) from e

    logger.info(
        "Auto-close finished (processed=%d, errors=%d, duration=%dms, dry_run=%s)",
        result.processed_count, len(result.errors), result.duration, dry_run,
    )
    return result


async def manual_trigger(admin_id: str, force: bool = False) -> AutoCloseResult:
    """Operator/instructor-initiated run with the smaller manual batch size."""
    admin_id = ensure_uuid(admin_id, "admin ID")
    async with async_session() as session:
        user = await repository.get_user_by_id(session, admin_id)
        await session.commit()

    if user is None:
        raise NotFound("User not found.", code=ErrorCode.USER_NOT_FOUND)
    if user.role not in MANUAL_TRIGGER_ROLES:
        raise NotAuthorized("Not allowed to run the scheduler.")

    if not force and await status_store.is_scheduler_running():
        raise SchedulerAlreadyRunning("Scheduler is already running. Use force to override.")

    logger.info("Manual auto-close requested by %s (force=%s)", admin_id, force)
    return await run_auto_close(
        dry_run=False,
        batch_size=settings.manual_batch_size,
        force=force,
        trigger=RunTrigger.MANUAL,
    )


# ── Helpers ──────────────────────────────────────────────────────────────────

async def _close_overdue(
    scheduler_name: str, *, dry_run: bool, batch_size: int, started: float
) -> AutoCloseResult:
    async with async_session() as session:
        candidates = await repository.list_overdue_assignments(session, utcnow(), batch_size)
        await session.commit()

        if dry_run:
            return AutoCloseResult(
                processed_count=len(candidates),
                processed_assignments=[str(c.id) for c in candidates],
                errors=[],
                executed_at=utcnow(),
                duration=_elapsed_ms(started),
                dry_run=True,
            )

        processed: list[str] = []
        errors: list[AutoCloseError] = []
        # One conditional write at a time.
        for candidate in candidates:
            error = await _close_one(session, scheduler_name, candidate)
            if error is None:
                processed.append(str(candidate.id))
            else:
                errors.append(AutoCloseError(assignment_id=str(candidate.id), error=error))

    return AutoCloseResult(
        processed_count=len(processed),
        processed_assignments=processed,
        errors=errors,
        executed_at=utcnow(),
        duration=_elapsed_ms(started),
    )


async def _close_one(session: AsyncSession, scheduler_name: str, candidate) -> str | None:
    """Close a single assignment. Returns an error message, or None on success."""
    item_started = time.perf_counter()
    assignment_id = str(candidate.id)

    try:
        closed = await repository.transition_assignment_status(
            session,
            assignment_id,
            expected_status=AssignmentStatus.PUBLISHED.value,
            new_status=AssignmentStatus.CLOSED.value,
            now=utcnow(),
        )
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.warning("Status update failed for assignment %s: %s", assignment_id, e)
        return f"Status update failed: {e}"

    if not closed:
        logger.warning("Assignment %s is no longer published; skipped", assignment_id)
        return "Assignment is no longer published."

    # The status change is committed; a missing audit entry only warrants a warning.
    try:
        await audit_log.record_transition(
            session,
            CreateAssignmentLogRequest(
                assignment_id=assignment_id,
                changed_by=str(candidate.instructor_id),
                previous_status=AssignmentStatus.PUBLISHED.value,
                new_status=AssignmentStatus.CLOSED.value,
                change_reason=ChangeReason.AUTO_CLOSE.value,
                metadata=AutoCloseMetadata(
                    scheduler_name=scheduler_name,
                    due_date=candidate.due_date,
                    processed_at=utcnow(),
                    duration=_elapsed_ms(item_started),
                ),
            ),
        )
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.warning("Audit log not written for assignment %s: %s", assignment_id, e)

    return None


async def _record_success(
    scheduler_name: str, result: AutoCloseResult, trigger: RunTrigger
) -> None:
    now = utcnow()
    async with async_session() as session:
        if result.dry_run:
            await repository.release_scheduler(session, scheduler_name, now)
        else:
            await repository.finish_scheduler_success(
                session,
                scheduler_name,
                now,
                processed=result.processed_count,
                errors=len(result.errors),
            )
        await repository.create_scheduler_run(
            session,
            scheduler_name=scheduler_name,
            trigger=trigger.value,
            dry_run=result.dry_run,
            status=RunStatus.SUCCESS.value,
            processed_count=result.processed_count,
            errors=[e.model_dump(mode="json", by_alias=True) for e in result.errors],
            duration_ms=result.duration,
        )
        await session.commit()


async def _record_failure(
    scheduler_name: str,
    message: str,
    trigger: RunTrigger,
    dry_run: bool,
    duration_ms: int,
    result: AutoCloseResult | None = None,
) -> None:
    """Release the flag after a fatal error, keeping any closes already committed."""
    processed = 0
    errors = []
    if result is not None and not result.dry_run:
        processed = result.processed_count
        errors = [e.model_dump(mode="json", by_alias=True) for e in result.errors]
    errors.append({"assignmentId": None, "error": message})

    async with async_session() as session:
        await repository.finish_scheduler_failure(
            session, scheduler_name, utcnow(), message, processed=processed, errors=len(errors)
        )
        await repository.create_scheduler_run(
            session,
            scheduler_name=scheduler_name,
            trigger=trigger.value,
            dry_run=dry_run,
            status=RunStatus.FAILED.value,
            processed_count=processed,
            errors=errors,
            duration_ms=duration_ms,
            error_message=message,
        )
        await session.commit()
