"""Schemas for manual assignment status changes."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from assignment_ops.schemas.common import CamelModel


class AssignmentStatusUpdateRequest(CamelModel):
    actor_id: str
    status: Literal["draft", "published", "closed"]
    note: str | None = Field(None, max_length=500)


class AssignmentView(CamelModel):
    id: str
    course_id: str
    title: str
    status: str
    due_date: datetime
    allow_late_submission: bool
    updated_at: datetime

    @classmethod
    def from_row(cls, assignment) -> "AssignmentView":
        return cls(
            id=str(assignment.id),
            course_id=str(assignment.course_id),
            title=assignment.title,
            status=assignment.status,
            due_date=assignment.due_date,
            allow_late_submission=assignment.allow_late_submission,
            updated_at=assignment.updated_at,
        )
