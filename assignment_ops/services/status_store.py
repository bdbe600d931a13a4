"""
Scheduler status store.

Reads the single status row for a scheduler and derives uptime and success
rate. The start/finish transitions live in the repository and are driven only
by the auto-close engine.
"""

from datetime import datetime

from assignment_ops.config import settings
from assignment_ops.db import repository
from assignment_ops.db.models import utcnow
from assignment_ops.db.session import async_session
from assignment_ops.errors import ErrorCode, NotFound
from assignment_ops.schemas.scheduler import SchedulerStatusView


def compute_success_rate(success_count: int, run_count: int) -> float:
    """Percentage of successes per run, two decimals; 0 when nothing has run."""
    if run_count <= 0:
        return 0.0
    return round(success_count / run_count * 100, 2)


def build_status_view(status, now: datetime) -> SchedulerStatusView:
    uptime_ms = int((now - status.created_at).total_seconds() * 1000)
    return SchedulerStatusView(
        scheduler_name=status.scheduler_name,
        is_running=status.is_running,
        last_run_at=status.last_run_at,
        last_success_at=status.last_success_at,
        last_error_at=status.last_error_at,
        last_error_message=status.last_error_message,
        run_count=status.run_count,
        success_count=status.success_count,
        error_count=status.error_count,
        uptime=max(uptime_ms, 0),
        success_rate=compute_success_rate(status.success_count, status.run_count),
    )


async def get_scheduler_status(scheduler_name: str | None = None) -> SchedulerStatusView:
    name = scheduler_name or settings.scheduler_name
    async with async_session() as session:
        status = await repository.get_scheduler_status(session, name)
        await session.commit()
    if status is None:
        raise NotFound("Scheduler status not found.", code=ErrorCode.SCHEDULER_STATUS_NOT_FOUND)
    return build_status_view(status, utcnow())


async def is_scheduler_running(scheduler_name: str | None = None) -> bool:
    return (await get_scheduler_status(scheduler_name)).is_running
