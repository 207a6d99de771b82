from unittest.mock import MagicMock, patch

import pytest

from upload_queue.database.models import RecordStatus
from upload_queue.database.repositories.queue_repository import QueueRepository
from upload_queue.lifecycle.exceptions import RecordValidationError

TRANSACTION = "upload_queue.database.repositories.queue_repository.transaction"


def _mock_transaction(mock_tx: MagicMock) -> tuple[MagicMock, MagicMock]:
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_tx.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_tx.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


class TestPoll:
    @patch(TRANSACTION)
    def test_returns_claimed_records_in_order(self, mock_tx: MagicMock, record_row) -> None:
        _conn, mock_cursor = _mock_transaction(mock_tx)
        mock_cursor.fetchall.return_value = [
            record_row(record_id=5, status="QUEUED", revision=3),
            record_row(record_id=2, status="QUEUED", revision=2),
        ]

        records = QueueRepository().poll(2)

        assert [r.id for r in records] == [5, 2]
        assert all(r.metadata.status == RecordStatus.QUEUED for r in records)
        assert records[0].metadata.revision == 3

    @patch(TRANSACTION)
    def test_claims_with_skip_locked_in_one_statement(self, mock_tx: MagicMock) -> None:
        _conn, mock_cursor = _mock_transaction(mock_tx)
        mock_cursor.fetchall.return_value = []

        QueueRepository().poll(4)

        mock_cursor.execute.assert_called_once()
        sql, params = mock_cursor.execute.call_args.args
        assert "FOR UPDATE OF m SKIP LOCKED" in sql
        assert "ORDER BY m.modified_date" in sql
        assert "revision = m.revision + 1" in sql
        assert "ANY" not in sql
        assert params["limit"] == 4
        assert params["ready"] == "READY"
        assert params["queued"] == "QUEUED"
        assert params["message"] == "queued for processing"

    @patch(TRANSACTION)
    def test_filters_supported_source_types(self, mock_tx: MagicMock) -> None:
        _conn, mock_cursor = _mock_transaction(mock_tx)
        mock_cursor.fetchall.return_value = []

        QueueRepository().poll(1, ["raw", "audio"])

        sql, params = mock_cursor.execute.call_args.args
        assert "r.source_type = ANY(%(source_types)s)" in sql
        assert params["source_types"] == ["raw", "audio"]

    @patch(TRANSACTION)
    def test_returns_empty_list_when_nothing_ready(self, mock_tx: MagicMock) -> None:
        _conn, mock_cursor = _mock_transaction(mock_tx)
        mock_cursor.fetchall.return_value = []

        assert QueueRepository().poll(10) == []

    @patch(TRANSACTION)
    def test_empty_source_types_claims_nothing(self, mock_tx: MagicMock) -> None:
        assert QueueRepository().poll(10, []) == []
        mock_tx.assert_not_called()

    @patch(TRANSACTION)
    def test_rejects_limit_below_one(self, mock_tx: MagicMock) -> None:
        with pytest.raises(RecordValidationError, match="at least 1"):
            QueueRepository().poll(0)
        mock_tx.assert_not_called()
