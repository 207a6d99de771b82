from psycopg.rows import dict_row

from upload_queue.database.connection import transaction
from upload_queue.database.models import Record, RecordStatus, record_from_row
from upload_queue.lifecycle.exceptions import RecordValidationError

QUEUED_MESSAGE = "queued for processing"

_CLAIM_SQL = """
WITH claimed AS (
    SELECT m.id, m.modified_date AS ready_since
    FROM record_metadata m
    JOIN records r ON r.id = m.id
    WHERE m.status = %(ready)s
      {source_filter}
    ORDER BY m.modified_date, m.id
    LIMIT %(limit)s
    FOR UPDATE OF m SKIP LOCKED
), updated AS (
    UPDATE record_metadata m
    SET status = %(queued)s,
        message = %(message)s,
        revision = m.revision + 1,
        modified_date = NOW()
    FROM claimed c
    WHERE m.id = c.id
    RETURNING m.id, m.status, m.message, m.revision,
              m.created_date AS metadata_created_date, m.modified_date,
              c.ready_since
)
SELECT r.id, r.project_id, r.user_id, r.source_type, r.source_id,
       r.time, r.time_zone_offset, r.created_date,
       u.status, u.message, u.revision, u.metadata_created_date, u.modified_date
FROM updated u
JOIN records r ON r.id = u.id
ORDER BY u.ready_since, u.id
"""


class QueueRepository:
    """Claims ready records for polling workers."""

    def poll(self, limit: int, source_types: list[str] | None = None) -> list[Record]:
        """Atomically claim up to ``limit`` READY records, oldest-modified first.

        Selection and the READY -> QUEUED update run as one statement. Rows
        locked by a concurrent poll are skipped, so no record is handed to
        two callers.

        Args:
            limit: Maximum number of records to claim.
            source_types: Restrict to these source types. None means no
                restriction; an empty list claims nothing.

        Raises:
            RecordValidationError: if limit is below 1.
        """
        if limit < 1:
            raise RecordValidationError(f"Poll limit must be at least 1, got {limit}")
        if source_types is not None and not source_types:
            return []

        params: dict[str, object] = {
            "ready": RecordStatus.READY.value,
            "queued": RecordStatus.QUEUED.value,
            "message": QUEUED_MESSAGE,
            "limit": limit,
        }
        source_filter = ""
        if source_types is not None:
            source_filter = "AND r.source_type = ANY(%(source_types)s)"
            params["source_types"] = list(source_types)

        with transaction() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(_CLAIM_SQL.format(source_filter=source_filter), params)
                rows = cur.fetchall()

        return [record_from_row(row) for row in rows]
