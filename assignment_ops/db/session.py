"""Database session and engine."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from assignment_ops.config import settings
from assignment_ops.db.models import Base, SchedulerStatus

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.database_url,
    echo=settings.log_level.upper() == "DEBUG",
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def init_db():
    """Create tables if they don't exist and seed the scheduler status row (safe on every startup)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await seed_scheduler_status(settings.scheduler_name)


async def seed_scheduler_status(scheduler_name: str) -> None:
    async with async_session() as session:
        result = await session.execute(
            select(SchedulerStatus.id).where(SchedulerStatus.scheduler_name == scheduler_name)
        )
        if result.scalar_one_or_none() is None:
            session.add(SchedulerStatus(scheduler_name=scheduler_name))
            logger.info("Seeded scheduler status row for %s", scheduler_name)
        await session.commit()
