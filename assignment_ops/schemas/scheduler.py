"""Schemas for the auto-close scheduler: requests, run results, status and statistics."""

from datetime import datetime

from pydantic import Field

from assignment_ops.config import settings
from assignment_ops.schemas.common import CamelModel


class AutoCloseError(CamelModel):
    assignment_id: str | None
    error: str


class AutoCloseResult(CamelModel):
    processed_count: int = Field(..., ge=0)
    processed_assignments: list[str] = Field(default_factory=list)
    errors: list[AutoCloseError] = Field(default_factory=list)
    executed_at: datetime
    duration: int = Field(..., ge=0, description="Execution time in milliseconds")
    dry_run: bool = False


class ManualTriggerRequest(CamelModel):
    admin_id: str = Field(..., examples=["5f0c6c1e-6c2b-4c8e-9a43-0d6b1f3e2a10"])
    force: bool = False


class AutoCloseRequest(CamelModel):
    dry_run: bool = False
    batch_size: int = Field(settings.auto_close_batch_size, ge=1, le=settings.max_batch_size)


class SchedulerStatusView(CamelModel):
    scheduler_name: str
    is_running: bool
    last_run_at: datetime | None
    last_success_at: datetime | None
    last_error_at: datetime | None
    last_error_message: str | None
    run_count: int = Field(..., ge=0)
    success_count: int = Field(..., ge=0)
    error_count: int = Field(..., ge=0)
    uptime: int = Field(..., ge=0, description="Milliseconds since the status row was created")
    success_rate: float = Field(..., ge=0, description="Percentage, two decimals")


class DailyActivity(CamelModel):
    date: str
    processed: int = 0
    errors: int = 0


class SchedulerStats(CamelModel):
    total_processed: int
    total_errors: int
    average_processing_time: int
    daily_activity: list[DailyActivity] = Field(default_factory=list)
