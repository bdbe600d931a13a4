"""Direct DB reads/writes used by assertions."""

from sqlalchemy import select, update

from assignment_ops.config import settings
from assignment_ops.db.models import Assignment, AssignmentLog, SchedulerRun, SchedulerStatus
from assignment_ops.db.session import async_session


async def load_status() -> SchedulerStatus:
    async with async_session() as session:
        result = await session.execute(
            select(SchedulerStatus).where(SchedulerStatus.scheduler_name == settings.scheduler_name)
        )
        return result.scalar_one()


async def load_assignment(assignment_id: str) -> Assignment:
    async with async_session() as session:
        result = await session.execute(select(Assignment).where(Assignment.id == assignment_id))
        return result.scalar_one()


async def load_logs(assignment_id: str | None = None) -> list[AssignmentLog]:
    async with async_session() as session:
        stmt = select(AssignmentLog).order_by(AssignmentLog.created_at)
        if assignment_id:
            stmt = stmt.where(AssignmentLog.assignment_id == assignment_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())


async def set_running(value: bool) -> None:
    async with async_session() as session:
        await session.execute(
            update(SchedulerStatus)
            .where(SchedulerStatus.scheduler_name == settings.scheduler_name)
            .values(is_running=value)
        )
        await session.commit()


async def load_runs() -> list[SchedulerRun]:
    async with async_session() as session:
        result = await session.execute(select(SchedulerRun).order_by(SchedulerRun.created_at))
        return list(result.scalars().all())
