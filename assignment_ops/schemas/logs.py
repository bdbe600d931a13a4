"""
Audit log schemas.

Log metadata is a tagged union keyed by `kind`; anything stored without a
recognised kind is surfaced as OtherMetadata.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter, ValidationError

from assignment_ops.schemas.common import CamelModel, Pagination

StatusLiteral = Literal["draft", "published", "closed"]
ChangeReasonLiteral = Literal["manual", "auto_close", "system"]


class AutoCloseMetadata(CamelModel):
    kind: Literal["auto_close"] = "auto_close"
    scheduler_name: str
    due_date: datetime
    processed_at: datetime
    duration: int | None = Field(None, ge=0, description="Milliseconds spent closing this assignment")


class ManualChangeMetadata(CamelModel):
    kind: Literal["manual"] = "manual"
    note: str | None = None


class OtherMetadata(CamelModel):
    kind: Literal["other"] = "other"
    data: dict[str, Any] = Field(default_factory=dict)


LogMetadata = Annotated[
    Union[AutoCloseMetadata, ManualChangeMetadata, OtherMetadata],
    Field(discriminator="kind"),
]

_metadata_adapter = TypeAdapter(LogMetadata)


def parse_metadata(raw: dict | None) -> AutoCloseMetadata | ManualChangeMetadata | OtherMetadata:
    """Decode a stored metadata payload, falling back to OtherMetadata."""
    raw = raw or {}
    if raw.get("kind") not in ("auto_close", "manual", "other"):
        return OtherMetadata(data=raw)
    try:
        return _metadata_adapter.validate_python(raw)
    except ValidationError:
        return OtherMetadata(data=raw)


def dump_metadata(metadata: AutoCloseMetadata | ManualChangeMetadata | OtherMetadata) -> dict:
    return metadata.model_dump(mode="json", by_alias=True, exclude_none=True)


class CreateAssignmentLogRequest(CamelModel):
    assignment_id: str
    changed_by: str
    previous_status: StatusLiteral
    new_status: StatusLiteral
    change_reason: ChangeReasonLiteral
    metadata: LogMetadata = Field(default_factory=OtherMetadata)


class AssignmentLogView(CamelModel):
    id: str
    assignment_id: str
    changed_by: str
    changed_by_name: str | None
    previous_status: StatusLiteral
    new_status: StatusLiteral
    change_reason: ChangeReasonLiteral
    metadata: LogMetadata
    created_at: datetime

    @classmethod
    def from_row(cls, log, changed_by_name: str | None) -> "AssignmentLogView":
        return cls(
            id=str(log.id),
            assignment_id=str(log.assignment_id),
            changed_by=str(log.changed_by),
            changed_by_name=changed_by_name,
            previous_status=log.previous_status,
            new_status=log.new_status,
            change_reason=log.change_reason,
            metadata=parse_metadata(log.metadata_json),
            created_at=log.created_at,
        )


class AssignmentLogPage(CamelModel):
    logs: list[AssignmentLogView]
    pagination: Pagination


class AssignmentLogStats(CamelModel):
    total_changes: int
    manual_changes: int
    auto_close_changes: int
    system_changes: int
    last_change_at: datetime | None
