import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="assignment-ops-tests-")
os.environ["DB_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"

from datetime import datetime, timedelta

import httpx
import pytest

from assignment_ops.config import settings
from assignment_ops.db.models import (
    Assignment,
    AssignmentLog,
    Base,
    Course,
    User,
    utcnow,
)
from assignment_ops.db.session import async_session, engine, seed_scheduler_status


@pytest.fixture
async def db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await seed_scheduler_status(settings.scheduler_name)
    yield
    await engine.dispose()


@pytest.fixture
async def client(db):
    from assignment_ops.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def _add(obj):
    async with async_session() as session:
        session.add(obj)
        await session.commit()
    return obj


@pytest.fixture
def make_user():
    async def _make(role: str = "instructor", full_name: str = "Test User") -> User:
        return await _add(User(full_name=full_name, role=role))
    return _make


@pytest.fixture
def make_course(make_user):
    async def _make(instructor: User | None = None, title: str = "Course") -> Course:
        instructor = instructor or await make_user("instructor", "Instructor")
        return await _add(Course(title=title, instructor_id=instructor.id))
    return _make


@pytest.fixture
def make_assignment(make_course):
    async def _make(
        course: Course | None = None,
        status: str = "published",
        due_in: timedelta = timedelta(days=-1),
        title: str = "Homework",
    ) -> Assignment:
        course = course or await make_course()
        return await _add(
            Assignment(course_id=course.id, title=title, status=status, due_date=utcnow() + due_in)
        )
    return _make


@pytest.fixture
def make_log():
    async def _make(
        assignment: Assignment,
        changed_by: User | str,
        change_reason: str = "auto_close",
        created_at: datetime | None = None,
        metadata: dict | None = None,
        previous_status: str = "published",
        new_status: str = "closed",
    ) -> AssignmentLog:
        log = AssignmentLog(
            assignment_id=assignment.id,
            changed_by=changed_by if isinstance(changed_by, str) else changed_by.id,
            previous_status=previous_status,
            new_status=new_status,
            change_reason=change_reason,
            metadata_json=metadata or {},
        )
        if created_at is not None:
            log.created_at = created_at
        return await _add(log)
    return _make
