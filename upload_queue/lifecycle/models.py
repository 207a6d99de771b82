from dataclasses import dataclass, field
from datetime import datetime

from upload_queue.database.models import Record, RecordStatus


@dataclass(frozen=True)
class ContentUpload:
    """A named file to attach to a record."""

    file_name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class NewRecord:
    """Input for creating a record on behalf of an upload client."""

    project_id: str
    user_id: str
    source_type: str
    source_id: str
    time: datetime | None = None
    time_zone_offset: int | None = None
    contents: list[ContentUpload] = field(default_factory=list)


@dataclass(frozen=True)
class RecordQuery:
    """Cursor-paginated listing filter."""

    project_id: str
    user_id: str | None = None
    status: str | None = None
    limit: int = 10
    last_id: int = 0


@dataclass(frozen=True)
class PollRequest:
    """Worker request for a batch of ready records."""

    limit: int
    supported_source_types: list[str] | None = None


@dataclass(frozen=True)
class RecordPage:
    """A bounded list of records, as returned by query and poll."""

    limit: int
    records: list[Record]


@dataclass(frozen=True)
class MetadataUpdate:
    """Worker status report for a claimed record."""

    id: int
    revision: int
    status: RecordStatus
    message: str | None = None
    logs: str | None = None


@dataclass(frozen=True)
class MetadataUpdateResult:
    """Stored metadata after a successful status report."""

    id: int
    status: RecordStatus
    message: str | None
    revision: int
    modified_date: datetime | None = None
    logs_url: str | None = None
