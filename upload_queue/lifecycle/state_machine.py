from dataclasses import replace
from datetime import datetime, timezone

from upload_queue.database.models import RecordMetadata, RecordStatus
from upload_queue.lifecycle.exceptions import InvalidTransitionError, StatusConflictError

# Worker-side transitions: requested status -> required stored predecessor.
WORKER_TRANSITIONS: dict[RecordStatus, RecordStatus] = {
    RecordStatus.PROCESSING: RecordStatus.QUEUED,
    RecordStatus.SUCCEEDED: RecordStatus.PROCESSING,
    RecordStatus.FAILED: RecordStatus.PROCESSING,
}


def validate_transition(current: RecordStatus, requested: RecordStatus) -> None:
    """Check a worker-requested status change against the stored status.

    Raises:
        StatusConflictError: if the stored status is not the required predecessor.
        InvalidTransitionError: if the requested status is never reachable
            through a worker status update.
    """
    predecessor = WORKER_TRANSITIONS.get(requested)
    if predecessor is None:
        raise InvalidTransitionError(
            f"Status {requested.value} cannot be requested by a status update"
        )
    if current != predecessor:
        raise StatusConflictError(
            "Record cannot be updated: conflict in record metadata status. "
            f"Found {current.value}, expected {predecessor.value}"
        )


def next_revision(
    metadata: RecordMetadata,
    status: RecordStatus,
    message: str | None,
    now: datetime | None = None,
) -> RecordMetadata:
    """Return metadata with the new status, revision + 1 and a fresh timestamp."""
    return replace(
        metadata,
        status=status,
        message=message,
        revision=metadata.revision + 1,
        modified_date=now or datetime.now(timezone.utc),
    )
