from typing import Any

import psycopg
from psycopg.rows import dict_row

from upload_queue.database.connection import transaction
from upload_queue.database.models import (
    Record,
    RecordContent,
    RecordLogs,
    RecordMetadata,
    RecordStatus,
    metadata_from_row,
    record_from_row,
)
from upload_queue.database.repositories.metadata_repository import (
    lock_metadata,
    write_logs,
    write_metadata,
)
from upload_queue.lifecycle.exceptions import (
    RecordNotFoundError,
    StatusConflictError,
    UploadQueueError,
)
from upload_queue.lifecycle.models import ContentUpload, NewRecord, RecordQuery

NO_DATA_MESSAGE = "No data uploaded yet"
READY_MESSAGE = "Data successfully uploaded, ready for processing."
RESET_MESSAGE = "Record reset for reprocessing"

IN_FLIGHT_STATUSES = frozenset({RecordStatus.QUEUED, RecordStatus.PROCESSING})

_RECORD_COLUMNS = """
    r.id, r.project_id, r.user_id, r.source_type, r.source_id,
    r.time, r.time_zone_offset, r.created_date,
    m.status, m.message, m.revision,
    m.created_date AS metadata_created_date, m.modified_date
"""


def _fetch_contents(
    conn: psycopg.Connection[Any], record_ids: list[int]
) -> dict[int, list[RecordContent]]:
    contents: dict[int, list[RecordContent]] = {record_id: [] for record_id in record_ids}
    if not record_ids:
        return contents
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(
            """
            SELECT record_id, file_name, content_type, size, created_date
            FROM record_content
            WHERE record_id = ANY(%s)
            ORDER BY record_id, file_name
            """,
            (record_ids,),
        )
        for row in cur.fetchall():
            contents[row["record_id"]].append(
                RecordContent(
                    record_id=row["record_id"],
                    file_name=row["file_name"],
                    content_type=row["content_type"],
                    size=row["size"],
                    created_date=row["created_date"],
                )
            )
    return contents


def _fetch_record(conn: psycopg.Connection[Any], record_id: int) -> Record | None:
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(
            f"""
            SELECT {_RECORD_COLUMNS}
            FROM records r
            JOIN record_metadata m ON m.id = r.id
            WHERE r.id = %s
            """,
            (record_id,),
        )
        row = cur.fetchone()
    if row is None:
        return None
    return record_from_row(row, _fetch_contents(conn, [record_id])[record_id])


def _has_content(conn: psycopg.Connection[Any], record_id: int) -> bool:
    with conn.cursor() as cur:
        cur.execute(
            "SELECT EXISTS (SELECT 1 FROM record_content WHERE record_id = %s)",
            (record_id,),
        )
        row = cur.fetchone()
    return bool(row and row[0])


def _upsert_content(
    conn: psycopg.Connection[Any], record_id: int, upload: ContentUpload
) -> RecordContent:
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(
            """
            INSERT INTO record_content
                (record_id, file_name, content_type, size, content, created_date)
            VALUES (%s, %s, %s, %s, %s, NOW())
            ON CONFLICT (record_id, file_name) DO UPDATE
            SET content_type = EXCLUDED.content_type,
                size = EXCLUDED.size,
                content = EXCLUDED.content,
                created_date = EXCLUDED.created_date
            RETURNING record_id, file_name, content_type, size, created_date
            """,
            (record_id, upload.file_name, upload.content_type, upload.size, upload.data),
        )
        row = cur.fetchone()
    if row is None:
        raise RecordNotFoundError(f"Record {record_id} not found")
    return RecordContent(
        record_id=row["record_id"],
        file_name=row["file_name"],
        content_type=row["content_type"],
        size=row["size"],
        created_date=row["created_date"],
    )


class RecordRepository:
    """Database operations for records and their content, metadata and logs."""

    def create(self, new_record: NewRecord) -> Record:
        """Insert a record with its metadata at revision 1.

        Metadata starts READY when content is supplied, INCOMPLETE otherwise.
        """
        has_content = bool(new_record.contents)
        status = RecordStatus.READY if has_content else RecordStatus.INCOMPLETE
        message = READY_MESSAGE if has_content else NO_DATA_MESSAGE

        with transaction() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO records
                        (project_id, user_id, source_type, source_id,
                         time, time_zone_offset, created_date)
                    VALUES (%s, %s, %s, %s, %s, %s, NOW())
                    RETURNING id
                    """,
                    (
                        new_record.project_id,
                        new_record.user_id,
                        new_record.source_type,
                        new_record.source_id,
                        new_record.time,
                        new_record.time_zone_offset,
                    ),
                )
                row = cur.fetchone()
                if row is None:
                    raise UploadQueueError("Record insert returned no id")
                record_id: int = row[0]
                cur.execute(
                    """
                    INSERT INTO record_metadata
                        (id, status, message, created_date, modified_date, revision)
                    VALUES (%s, %s, %s, NOW(), NOW(), 1)
                    """,
                    (record_id, status.value, message),
                )
            for upload in new_record.contents:
                _upsert_content(conn, record_id, upload)
            record = _fetch_record(conn, record_id)
            if record is None:
                raise RecordNotFoundError(f"Record {record_id} not found")
        return record

    def read(self, record_id: int) -> Record | None:
        """Find a record by ID with its metadata and content descriptors."""
        with transaction() as conn:
            return _fetch_record(conn, record_id)

    def read_metadata(self, record_id: int) -> RecordMetadata | None:
        """Find the metadata of a record without locking it."""
        with transaction() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, status, message, revision, created_date, modified_date
                    FROM record_metadata
                    WHERE id = %s
                    """,
                    (record_id,),
                )
                row = cur.fetchone()
        return metadata_from_row(row) if row is not None else None

    def query(self, query: RecordQuery) -> list[Record]:
        """List records of a project with id > last_id, ascending by id."""
        conditions = ["r.project_id = %(project_id)s", "r.id > %(last_id)s"]
        params: dict[str, object] = {
            "project_id": query.project_id,
            "last_id": query.last_id,
            "limit": query.limit,
        }
        if query.user_id is not None:
            conditions.append("r.user_id = %(user_id)s")
            params["user_id"] = query.user_id
        if query.status is not None:
            conditions.append("m.status = %(status)s")
            params["status"] = query.status

        sql = (
            f"SELECT {_RECORD_COLUMNS} "
            "FROM records r JOIN record_metadata m ON m.id = r.id "
            f"WHERE {' AND '.join(conditions)} "
            "ORDER BY r.id LIMIT %(limit)s"
        )
        with transaction() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
            contents = _fetch_contents(conn, [row["id"] for row in rows])

        return [record_from_row(row, contents[row["id"]]) for row in rows]

    def update_content(self, record_id: int, upload: ContentUpload) -> RecordContent:
        """Add or replace a named content file.

        An INCOMPLETE record becomes READY with the next revision. Other
        statuses are left alone.

        Raises:
            RecordNotFoundError: if the record does not exist.
        """
        with transaction() as conn:
            stored = lock_metadata(conn, record_id)
            content = _upsert_content(conn, record_id, upload)
            if stored.status == RecordStatus.INCOMPLETE:
                write_metadata(conn, stored, RecordStatus.READY, READY_MESSAGE)
        return content

    def read_content(self, record_id: int, file_name: str) -> RecordContent | None:
        """Find a content descriptor without loading its bytes."""
        with transaction() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT record_id, file_name, content_type, size, created_date
                    FROM record_content
                    WHERE record_id = %s AND file_name = %s
                    """,
                    (record_id, file_name),
                )
                row = cur.fetchone()
        if row is None:
            return None
        return RecordContent(
            record_id=row["record_id"],
            file_name=row["file_name"],
            content_type=row["content_type"],
            size=row["size"],
            created_date=row["created_date"],
        )

    def read_file_content(self, record_id: int, file_name: str) -> bytes | None:
        """Load the bytes of one content file."""
        with transaction() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT content FROM record_content
                    WHERE record_id = %s AND file_name = %s
                    """,
                    (record_id, file_name),
                )
                row = cur.fetchone()
        return bytes(row[0]) if row is not None else None

    def update_logs(self, record_id: int, logs: str) -> RecordMetadata:
        """Create or replace the logs of a record and bump its revision.

        Raises:
            RecordNotFoundError: if the record does not exist.
        """
        with transaction() as conn:
            stored = lock_metadata(conn, record_id)
            write_logs(conn, record_id, logs)
            return write_metadata(conn, stored, stored.status, stored.message)

    def read_logs(self, record_id: int) -> RecordLogs | None:
        """Find the logs of a record, if any were written."""
        with transaction() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    "SELECT id, size, logs, modified_date FROM record_logs WHERE id = %s",
                    (record_id,),
                )
                row = cur.fetchone()
        if row is None:
            return None
        return RecordLogs(
            id=row["id"],
            size=row["size"],
            logs=row["logs"],
            modified_date=row["modified_date"],
        )

    def reset(self, record_id: int) -> Record:
        """Force a record back to READY, or INCOMPLETE when it has no content.

        Raises:
            RecordNotFoundError: if the record does not exist.
        """
        with transaction() as conn:
            stored = lock_metadata(conn, record_id)
            status = (
                RecordStatus.READY if _has_content(conn, record_id) else RecordStatus.INCOMPLETE
            )
            write_metadata(conn, stored, status, RESET_MESSAGE)
            record = _fetch_record(conn, record_id)
            if record is None:
                raise RecordNotFoundError(f"Record {record_id} not found")
        return record

    def delete(self, record_id: int) -> None:
        """Delete a record, cascading to content, metadata and logs.

        Raises:
            RecordNotFoundError: if the record does not exist.
            StatusConflictError: if a worker currently holds a claim on it.
        """
        with transaction() as conn:
            stored = lock_metadata(conn, record_id)
            if stored.status in IN_FLIGHT_STATUSES:
                raise StatusConflictError(
                    f"Record {record_id} is {stored.status.value} and cannot be deleted"
                )
            with conn.cursor() as cur:
                cur.execute("DELETE FROM records WHERE id = %s", (record_id,))
                if cur.rowcount == 0:
                    raise RecordNotFoundError(f"Record {record_id} not found")
