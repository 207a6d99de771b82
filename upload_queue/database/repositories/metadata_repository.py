from typing import Any

import psycopg
from psycopg.rows import dict_row

from upload_queue.database.connection import transaction
from upload_queue.database.models import RecordMetadata, RecordStatus, metadata_from_row
from upload_queue.lifecycle.exceptions import (
    InvalidTransitionError,
    RecordNotFoundError,
    RevisionConflictError,
)
from upload_queue.lifecycle.models import MetadataUpdate, MetadataUpdateResult
from upload_queue.lifecycle.state_machine import next_revision, validate_transition

START_STATUSES = frozenset({RecordStatus.PROCESSING})
FINAL_STATUSES = frozenset({RecordStatus.SUCCEEDED, RecordStatus.FAILED})


def logs_url(record_id: int) -> str:
    return f"/records/{record_id}/logs"


def lock_metadata(conn: psycopg.Connection[Any], record_id: int) -> RecordMetadata:
    """Read and row-lock the metadata of a record in the current transaction.

    Raises:
        RecordNotFoundError: if the record has no metadata row.
    """
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(
            """
            SELECT id, status, message, revision, created_date, modified_date
            FROM record_metadata
            WHERE id = %s
            FOR UPDATE
            """,
            (record_id,),
        )
        row = cur.fetchone()
    if row is None:
        raise RecordNotFoundError(f"RecordMetadata with ID {record_id} does not exist")
    return metadata_from_row(row)


def write_metadata(
    conn: psycopg.Connection[Any],
    current: RecordMetadata,
    status: RecordStatus,
    message: str | None,
) -> RecordMetadata:
    """Store a new status and message as the next revision of ``current``.

    The update only matches while the stored revision still equals
    ``current.revision``. ``modified_date`` is taken from the database clock,
    as in the claim and insert statements.

    Raises:
        RevisionConflictError: if the stored revision moved on.
    """
    target = next_revision(current, status, message)
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(
            """
            UPDATE record_metadata
            SET status = %s, message = %s, revision = %s, modified_date = NOW()
            WHERE id = %s AND revision = %s
            RETURNING id, status, message, revision, created_date, modified_date
            """,
            (
                target.status.value,
                target.message,
                target.revision,
                current.id,
                current.revision,
            ),
        )
        row = cur.fetchone()
    if row is None:
        raise RevisionConflictError(
            f"RecordMetadata with ID {current.id} is no longer at revision {current.revision}"
        )
    return metadata_from_row(row)


def write_logs(conn: psycopg.Connection[Any], record_id: int, logs: str) -> None:
    """Create the logs row of a record or replace its contents."""
    conn.execute(
        """
        INSERT INTO record_logs (id, modified_date, size, logs)
        VALUES (%s, NOW(), %s, %s)
        ON CONFLICT (id) DO UPDATE
        SET modified_date = EXCLUDED.modified_date,
            size = EXCLUDED.size,
            logs = EXCLUDED.logs
        """,
        (record_id, len(logs), logs),
    )


class MetadataRepository:
    """Worker status reports with optimistic-concurrency checks."""

    def start_processing(self, update: MetadataUpdate) -> MetadataUpdateResult:
        """Move a QUEUED record to PROCESSING."""
        return self.update_status(update, START_STATUSES)

    def finalize_processing(self, update: MetadataUpdate) -> MetadataUpdateResult:
        """Move a PROCESSING record to SUCCEEDED or FAILED, optionally with logs."""
        return self.update_status(update, FINAL_STATUSES)

    def update_status(
        self,
        update: MetadataUpdate,
        accepted: frozenset[RecordStatus] = START_STATUSES | FINAL_STATUSES,
    ) -> MetadataUpdateResult:
        """Apply one status report inside a single transaction.

        Checks run against the row-locked stored state in this order:
        existence, revision, requested status, predecessor status.

        Raises:
            RecordNotFoundError: if the record does not exist.
            RevisionConflictError: if the revision is stale or the stored
                status is not the required predecessor.
            InvalidTransitionError: if this operation cannot request the status.
        """
        with transaction() as conn:
            stored = lock_metadata(conn, update.id)
            if stored.revision != update.revision:
                raise RevisionConflictError(
                    f"Requested metadata revision {update.revision} should match "
                    f"the latest existing revision {stored.revision}"
                )
            if update.status not in accepted:
                raise InvalidTransitionError(
                    f"Status {update.status.value} cannot be requested here; "
                    f"expected one of {sorted(s.value for s in accepted)}"
                )
            validate_transition(stored.status, update.status)

            if update.logs is not None:
                write_logs(conn, update.id, update.logs)
            metadata = write_metadata(conn, stored, update.status, update.message)

        return MetadataUpdateResult(
            id=metadata.id,
            status=metadata.status,
            message=metadata.message,
            revision=metadata.revision,
            modified_date=metadata.modified_date,
            logs_url=logs_url(metadata.id) if update.logs is not None else None,
        )
