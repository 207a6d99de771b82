from upload_queue.config.settings import Settings
from upload_queue.database.models import (
    Record,
    RecordContent,
    RecordLogs,
    RecordMetadata,
    RecordStatus,
)
from upload_queue.database.repositories.metadata_repository import MetadataRepository
from upload_queue.database.repositories.queue_repository import QueueRepository
from upload_queue.database.repositories.record_repository import RecordRepository
from upload_queue.lifecycle.exceptions import RecordNotFoundError, RecordValidationError
from upload_queue.lifecycle.models import (
    ContentUpload,
    MetadataUpdate,
    MetadataUpdateResult,
    NewRecord,
    PollRequest,
    RecordPage,
    RecordQuery,
)
from upload_queue.logging.logger import Log


class RecordService:
    """Upload-side and worker-side record operations.

    Callers are expected to pass an identity already verified by the
    transport layer; it is not checked again here.
    """

    def __init__(
        self,
        record_repo: RecordRepository,
        queue_repo: QueueRepository,
        metadata_repo: MetadataRepository,
        settings: Settings,
    ) -> None:
        self._record_repo = record_repo
        self._queue_repo = queue_repo
        self._metadata_repo = metadata_repo
        self._settings = settings

    def create(self, new_record: NewRecord) -> Record:
        """Validate and store a new record with any initial content.

        Raises:
            RecordValidationError: for a missing identity field or duplicate
                file names.
        """
        for field_name in ("project_id", "user_id", "source_type", "source_id"):
            if not getattr(new_record, field_name):
                raise RecordValidationError(f"{field_name} is required")
        file_names = [upload.file_name for upload in new_record.contents]
        if len(set(file_names)) != len(file_names):
            raise RecordValidationError("File names must be unique within a record")

        record = self._record_repo.create(new_record)
        Log.info(
            f"Created record {record.id} for project {record.project_id} "
            f"({record.metadata.status.value})"
        )
        return record

    def attach_content(self, record_id: int, upload: ContentUpload) -> RecordContent:
        """Add or replace one named file of a record."""
        if not upload.file_name:
            raise RecordValidationError("file_name is required")
        content = self._record_repo.update_content(record_id, upload)
        Log.info(f"Stored {content.size} bytes as {content.file_name} for record {record_id}")
        return content

    def reset(self, record_id: int) -> Record:
        """Put a record back in the queue, or back to INCOMPLETE without content."""
        record = self._record_repo.reset(record_id)
        Log.info(
            f"Reset record {record.id} to {record.metadata.status.value} "
            f"(revision {record.metadata.revision})"
        )
        return record

    def query(self, query: RecordQuery) -> RecordPage:
        """List records of a project after ``last_id`` in ascending id order.

        Raises:
            RecordValidationError: for a missing project, an out of range
                limit or cursor, or an unknown status.
        """
        if not query.project_id:
            raise RecordValidationError("project_id is required")
        if query.limit < 1 or query.limit > self._settings.max_query_limit:
            raise RecordValidationError(
                f"limit must be between 1 and {self._settings.max_query_limit}"
            )
        if query.last_id < 0:
            raise RecordValidationError("last_id must not be negative")
        if query.status is not None and query.status not in RecordStatus.__members__:
            raise RecordValidationError(f"Unknown status '{query.status}'")

        records = self._record_repo.query(query)
        return RecordPage(limit=query.limit, records=records)

    def delete(self, record_id: int) -> None:
        """Delete a record that no worker is holding."""
        self._record_repo.delete(record_id)
        Log.info(f"Deleted record {record_id}")

    def read(self, record_id: int) -> Record:
        """Return a record or raise RecordNotFoundError."""
        record = self._record_repo.read(record_id)
        if record is None:
            raise RecordNotFoundError(f"Record {record_id} not found")
        return record

    def read_metadata(self, record_id: int) -> RecordMetadata:
        metadata = self._record_repo.read_metadata(record_id)
        if metadata is None:
            raise RecordNotFoundError(f"RecordMetadata with ID {record_id} does not exist")
        return metadata

    def read_content(self, record_id: int, file_name: str) -> RecordContent:
        content = self._record_repo.read_content(record_id, file_name)
        if content is None:
            raise RecordNotFoundError(f"File {file_name} not found in record {record_id}")
        return content

    def read_file_content(self, record_id: int, file_name: str) -> bytes:
        """Return the stored bytes of one file."""
        data = self._record_repo.read_file_content(record_id, file_name)
        if data is None:
            raise RecordNotFoundError(f"File {file_name} not found in record {record_id}")
        return data

    def update_logs(self, record_id: int, logs: str) -> RecordMetadata:
        """Replace the logs of a record; bumps its revision."""
        metadata = self._record_repo.update_logs(record_id, logs)
        Log.debug(f"Stored {len(logs)} characters of logs for record {record_id}")
        return metadata

    def read_logs(self, record_id: int) -> RecordLogs:
        logs = self._record_repo.read_logs(record_id)
        if logs is None:
            raise RecordNotFoundError(f"Logs for record {record_id} not found")
        return logs

    def poll(self, request: PollRequest) -> RecordPage:
        """Claim up to ``request.limit`` READY records for a worker."""
        records = self._queue_repo.poll(request.limit, request.supported_source_types)
        if records:
            Log.info(f"Queued {len(records)} records: {[r.id for r in records]}")
        return RecordPage(limit=request.limit, records=records)

    def start_processing(self, update: MetadataUpdate) -> MetadataUpdateResult:
        """Report that a worker started on a QUEUED record."""
        result = self._metadata_repo.start_processing(update)
        Log.info(f"Record {result.id} is processing (revision {result.revision})")
        return result

    def finalize_processing(self, update: MetadataUpdate) -> MetadataUpdateResult:
        """Report the outcome of processing, with optional logs."""
        result = self._metadata_repo.finalize_processing(update)
        Log.info(
            f"Record {result.id} finished as {result.status.value} "
            f"(revision {result.revision})"
        )
        return result


def build_record_service(settings: Settings) -> RecordService:
    """Build a RecordService over the PostgreSQL repositories."""
    return RecordService(
        record_repo=RecordRepository(),
        queue_repo=QueueRepository(),
        metadata_repo=MetadataRepository(),
        settings=settings,
    )
