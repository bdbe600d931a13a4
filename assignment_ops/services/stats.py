"""Auto-close statistics over a trailing window of days."""

from collections import defaultdict
from datetime import timedelta

from assignment_ops.config import settings
from assignment_ops.db import repository
from assignment_ops.db.models import ChangeReason, utcnow
from assignment_ops.db.session import async_session
from assignment_ops.errors import ValidationFailed
from assignment_ops.schemas.scheduler import DailyActivity, SchedulerStats

MIN_DAYS = 1
MAX_DAYS = 365


async def scheduler_stats(days: int | None = None) -> SchedulerStats:
    """
    Aggregate auto-close audit entries created in the last `days` days.

    Processed counts come from the audit log; error counts come from run
    history, since failed items never produce an audit entry.
    """
    days = settings.stats_default_days if days is None else days
    if days < MIN_DAYS or days > MAX_DAYS:
        raise ValidationFailed(f"days must be between {MIN_DAYS} and {MAX_DAYS}.")

    since = utcnow() - timedelta(days=days)
    async with async_session() as session:
        logs = await repository.list_logs_since(session, ChangeReason.AUTO_CLOSE.value, since)
        runs = await repository.list_scheduler_runs_since(session, settings.scheduler_name, since)
        await session.commit()

    processed: dict[str, int] = defaultdict(int)
    errors: dict[str, int] = defaultdict(int)
    durations: list[float] = []

    for log in logs:
        processed[log.created_at.date().isoformat()] += 1
        duration = (log.metadata_json or {}).get("duration")
        # bool is an int subclass; it is not a duration
        if isinstance(duration, (int, float)) and not isinstance(duration, bool):
            durations.append(duration)

    for run in runs:
        if run.error_count:
            errors[run.created_at.date().isoformat()] += run.error_count

    average = round(sum(durations) / len(durations)) if durations else 0

    return SchedulerStats(
        total_processed=len(logs),
        total_errors=sum(errors.values()),
        average_processing_time=average,
        daily_activity=[
            DailyActivity(date=date, processed=processed.get(date, 0), errors=errors.get(date, 0))
            for date in sorted(set(processed) | set(errors))
        ],
    )
