from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy import delete

from assignment_ops.db.models import SchedulerStatus
from assignment_ops.db.session import async_session
from assignment_ops.errors import NotFound
from assignment_ops.services import auto_close, status_store


@pytest.mark.parametrize(
    "success_count, run_count, expected",
    [
        (0, 0, 0.0),
        (7, 0, 0.0),
        (1, 3, 33.33),
        (2, 3, 66.67),
        (4, 4, 100.0),
        (9, 4, 225.0),
    ],
)
def test_success_rate(success_count, run_count, expected):
    assert status_store.compute_success_rate(success_count, run_count) == expected


def test_status_view_derives_uptime():
    created = datetime(2026, 1, 1, tzinfo=timezone.utc)
    row = SimpleNamespace(
        scheduler_name="auto_close_assignments",
        is_running=False,
        last_run_at=None,
        last_success_at=None,
        last_error_at=None,
        last_error_message=None,
        run_count=0,
        success_count=0,
        error_count=0,
        created_at=created,
    )

    view = status_store.build_status_view(row, created + timedelta(seconds=90))

    assert view.uptime == 90_000
    assert view.success_rate == 0.0


@pytest.mark.usefixtures("db")
async def test_status_after_runs(make_assignment):
    await make_assignment()
    await auto_close.run_auto_close()
    await auto_close.run_auto_close()

    view = await status_store.get_scheduler_status()

    assert view.is_running is False
    assert view.run_count == 2
    assert view.success_count == 1
    assert view.success_rate == 50.0
    assert view.uptime >= 0
    assert view.last_run_at is not None


@pytest.mark.usefixtures("db")
async def test_missing_status_row():
    async with async_session() as session:
        await session.execute(delete(SchedulerStatus))
        await session.commit()

    with pytest.raises(NotFound):
        await status_store.get_scheduler_status()
