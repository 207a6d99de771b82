from datetime import datetime, timezone
from typing import Any

import pytest

from upload_queue.database.models import Record, RecordContent, RecordMetadata, RecordStatus


@pytest.fixture()
def now() -> datetime:
    return datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def make_record(now: datetime):  # type: ignore[no-untyped-def]
    """Build a Record with the given status, revision and content file names."""

    def _make(
        record_id: int = 1,
        status: RecordStatus = RecordStatus.QUEUED,
        revision: int = 3,
        source_type: str = "raw",
        file_names: tuple[str, ...] = ("data.csv",),
    ) -> Record:
        return Record(
            id=record_id,
            project_id="project-test",
            user_id="user-1",
            source_type=source_type,
            source_id="source-1",
            created_date=now,
            metadata=RecordMetadata(
                id=record_id,
                status=status,
                message="queued for processing",
                revision=revision,
                created_date=now,
                modified_date=now,
            ),
            contents=[
                RecordContent(
                    record_id=record_id,
                    file_name=name,
                    content_type="text/csv",
                    size=4,
                    created_date=now,
                )
                for name in file_names
            ],
        )

    return _make


@pytest.fixture()
def metadata_row(now: datetime):  # type: ignore[no-untyped-def]
    """Build a dict_row as read from record_metadata."""

    def _make(
        record_id: int = 1,
        status: str = "QUEUED",
        revision: int = 3,
        message: str = "queued for processing",
    ) -> dict[str, Any]:
        return {
            "id": record_id,
            "status": status,
            "message": message,
            "revision": revision,
            "created_date": now,
            "modified_date": now,
        }

    return _make


@pytest.fixture()
def record_row(now: datetime):  # type: ignore[no-untyped-def]
    """Build a dict_row as read from records joined with record_metadata."""

    def _make(
        record_id: int = 1,
        status: str = "READY",
        revision: int = 1,
        source_type: str = "raw",
    ) -> dict[str, Any]:
        return {
            "id": record_id,
            "project_id": "project-test",
            "user_id": "user-1",
            "source_type": source_type,
            "source_id": "source-1",
            "time": None,
            "time_zone_offset": None,
            "created_date": now,
            "status": status,
            "message": "msg",
            "revision": revision,
            "metadata_created_date": now,
            "modified_date": now,
        }

    return _make
