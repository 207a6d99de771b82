from upload_queue.converter.base import BaseConverter
from upload_queue.database.models import Record, RecordContent, RecordStatus
from upload_queue.lifecycle.exceptions import RecordNotFoundError, RevisionConflictError
from upload_queue.lifecycle.models import MetadataUpdate, MetadataUpdateResult
from upload_queue.lifecycle.service import RecordService
from upload_queue.logging.logger import Log


class RecordRunner:
    """Run one claimed record: start -> convert -> finalize.

    Conflicts on start or finalize mean another party moved the record on;
    the record is skipped and not retried.
    """

    def __init__(
        self,
        service: RecordService,
        converters: dict[str, BaseConverter],
    ) -> None:
        self._service = service
        self._converters = converters

    def run(self, record: Record) -> MetadataUpdateResult | None:
        """Process a QUEUED record and report the outcome.

        Returns the finalized metadata, or None when the record was skipped.
        """
        Log.info(f"Running record {record.id} ({record.source_type})")
        try:
            started = self._service.start_processing(
                MetadataUpdate(
                    id=record.id,
                    revision=record.metadata.revision,
                    status=RecordStatus.PROCESSING,
                    message="Processing started",
                )
            )
        except (RecordNotFoundError, RevisionConflictError) as exc:
            Log.warning(f"Skipping record {record.id}: {exc}")
            return None
        except Exception as exc:
            Log.error(f"Could not start record {record.id}: {exc}")
            return None

        update = self._convert(record, started.revision)
        try:
            return self._service.finalize_processing(update)
        except (RecordNotFoundError, RevisionConflictError) as exc:
            Log.warning(f"Could not finalize record {record.id}: {exc}")
            return None
        except Exception as exc:
            Log.error(f"Could not finalize record {record.id}: {exc}")
            return None

    def _convert(self, record: Record, revision: int) -> MetadataUpdate:
        converter = self._converters.get(record.source_type)
        if converter is None:
            message = f"No converter for source type '{record.source_type}'"
            Log.error(f"Record {record.id} failed: {message}")
            return MetadataUpdate(
                id=record.id,
                revision=revision,
                status=RecordStatus.FAILED,
                message=message,
                logs=message,
            )

        try:
            result = converter.convert(record, self._read_content)
        except Exception as exc:
            Log.error(f"Record {record.id} failed: {exc}")
            return MetadataUpdate(
                id=record.id,
                revision=revision,
                status=RecordStatus.FAILED,
                message=f"Conversion failed: {exc}",
                logs=f"{type(exc).__name__}: {exc}",
            )

        result.log(f"Produced {len(result.events)} events")
        return MetadataUpdate(
            id=record.id,
            revision=revision,
            status=RecordStatus.SUCCEEDED,
            message="Record converted successfully",
            logs=result.logs,
        )

    def _read_content(self, content: RecordContent) -> bytes:
        return self._service.read_file_content(content.record_id, content.file_name)
