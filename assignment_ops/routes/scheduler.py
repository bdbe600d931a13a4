"""
/api/assignments/scheduler: auto-close triggers, status and statistics.

  POST /trigger     →  manual run (operator/instructor), batch of 50
  POST /auto-close  →  system run (cron), batch of 100, optional dry run
  GET  /status      →  running flag, counters, uptime, success rate
  GET  /stats       →  processed/error totals and daily activity
"""

import logging

from fastapi import APIRouter, Body, Query

from assignment_ops.config import settings
from assignment_ops.schemas.common import ApiResponse
from assignment_ops.schemas.scheduler import (
    AutoCloseRequest,
    AutoCloseResult,
    ManualTriggerRequest,
    SchedulerStats,
    SchedulerStatusView,
)
from assignment_ops.services import auto_close, stats, status_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assignments/scheduler", tags=["scheduler"])


# ============================================================
# MANUAL TRIGGER  POST /trigger
# ============================================================

@router.post("/trigger", response_model=ApiResponse[AutoCloseResult])
async def trigger_api(data: ManualTriggerRequest):
    """
    Run the auto-close scheduler on behalf of an operator or instructor.

    - 403 if the user is neither operator nor instructor.
    - 409 if a run is in progress and force is false.
    """
    logger.info("Manual scheduler trigger requested (admin_id=%s, force=%s)", data.admin_id, data.force)
    result = await auto_close.manual_trigger(data.admin_id, force=data.force)
    return ApiResponse(data=result)


# ============================================================
# SYSTEM RUN  POST /auto-close
# ============================================================

@router.post("/auto-close", response_model=ApiResponse[AutoCloseResult])
async def auto_close_api(data: AutoCloseRequest = Body(default_factory=AutoCloseRequest)):
    """System-invoked run. dryRun reports candidates without closing them."""
    logger.info("Auto-close requested (dry_run=%s, batch_size=%d)", data.dry_run, data.batch_size)
    result = await auto_close.run_auto_close(dry_run=data.dry_run, batch_size=data.batch_size)
    return ApiResponse(data=result)


# ============================================================
# STATUS  GET /status
# ============================================================

@router.get("/status", response_model=ApiResponse[SchedulerStatusView])
async def status_api():
    return ApiResponse(data=await status_store.get_scheduler_status())


# ============================================================
# STATS  GET /stats
# ============================================================

@router.get("/stats", response_model=ApiResponse[SchedulerStats])
async def stats_api(
    days: int = Query(settings.stats_default_days, ge=stats.MIN_DAYS, le=stats.MAX_DAYS),
):
    """Auto-close activity over the trailing window of days."""
    return ApiResponse(data=await stats.scheduler_stats(days))
