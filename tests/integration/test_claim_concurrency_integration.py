import threading
from collections.abc import Callable
from typing import Any

import pytest

from upload_queue.database.models import RecordStatus
from upload_queue.lifecycle.exceptions import RevisionConflictError
from upload_queue.lifecycle.models import MetadataUpdate, PollRequest
from upload_queue.lifecycle.service import RecordService


def _race(count: int, action: Callable[[], Any]) -> list[Any]:
    """Run action in count threads released together; collect results or errors."""
    barrier = threading.Barrier(count)
    results: list[Any] = []
    lock = threading.Lock()

    def target() -> None:
        barrier.wait()
        try:
            outcome: Any = action()
        except Exception as exc:  # noqa: BLE001
            outcome = exc
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=target) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return results


@pytest.mark.integration
class TestConcurrentPolls:
    def test_each_record_is_claimed_once(
        self, service: RecordService, seed_record, source_type: str
    ) -> None:
        seeded = {seed_record().id for _ in range(5)}

        results = _race(
            8,
            lambda: service.poll(PollRequest(limit=2, supported_source_types=[source_type])),
        )

        claimed = [r.id for page in results for r in page.records]
        assert len(claimed) == len(set(claimed))
        assert set(claimed) == seeded
        for record_id in seeded:
            metadata = service.read_metadata(record_id)
            assert metadata.status == RecordStatus.QUEUED
            assert metadata.revision == 2

    def test_claims_oldest_modified_first(
        self, service: RecordService, seed_record, source_type: str
    ) -> None:
        first = seed_record()
        second = seed_record()
        service.reset(first.id)

        page = service.poll(PollRequest(limit=1, supported_source_types=[source_type]))

        assert [r.id for r in page.records] == [second.id]


@pytest.mark.integration
class TestConcurrentStart:
    def test_exactly_one_worker_starts_processing(
        self, service: RecordService, seed_record, source_type: str
    ) -> None:
        record = seed_record()
        service.poll(PollRequest(limit=1, supported_source_types=[source_type]))

        results = _race(
            2,
            lambda: service.start_processing(
                MetadataUpdate(id=record.id, revision=2, status=RecordStatus.PROCESSING)
            ),
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        conflicts = [r for r in results if isinstance(r, RevisionConflictError)]
        assert len(successes) == 1
        assert len(conflicts) == 1
        assert successes[0].revision == 3
        assert service.read_metadata(record.id).revision == 3
