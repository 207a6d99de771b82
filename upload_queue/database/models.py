from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class RecordStatus(str, Enum):
    """Lifecycle status of an uploaded record."""

    INCOMPLETE = "INCOMPLETE"
    READY = "READY"
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (RecordStatus.SUCCEEDED, RecordStatus.FAILED)


@dataclass(frozen=True)
class RecordMetadata:
    """Represents a row from the record_metadata table."""

    id: int
    status: RecordStatus
    message: str | None
    revision: int
    created_date: datetime | None = None
    modified_date: datetime | None = None


@dataclass(frozen=True)
class RecordContent:
    """Content descriptor from the record_content table, without the bytes."""

    record_id: int
    file_name: str
    content_type: str
    size: int
    created_date: datetime | None = None


@dataclass(frozen=True)
class RecordLogs:
    """Represents a row from the record_logs table."""

    id: int
    size: int
    logs: str
    modified_date: datetime | None = None


@dataclass(frozen=True)
class Record:
    """One uploaded item with its current metadata and content descriptors."""

    id: int
    project_id: str
    user_id: str
    source_type: str
    source_id: str
    metadata: RecordMetadata
    time: datetime | None = None
    time_zone_offset: int | None = None
    created_date: datetime | None = None
    contents: list[RecordContent] = field(default_factory=list)


def metadata_from_row(row: dict[str, Any]) -> RecordMetadata:
    """Build metadata from a dict_row holding record_metadata columns."""
    return RecordMetadata(
        id=row["id"],
        status=RecordStatus(row["status"]),
        message=row["message"],
        revision=row["revision"],
        created_date=row.get("metadata_created_date", row.get("created_date")),
        modified_date=row["modified_date"],
    )


def record_from_row(
    row: dict[str, Any], contents: list[RecordContent] | None = None
) -> Record:
    """Build a record from a joined records/record_metadata dict_row."""
    return Record(
        id=row["id"],
        project_id=row["project_id"],
        user_id=row["user_id"],
        source_type=row["source_type"],
        source_id=row["source_id"],
        time=row["time"],
        time_zone_offset=row["time_zone_offset"],
        created_date=row["created_date"],
        metadata=metadata_from_row(row),
        contents=contents or [],
    )
