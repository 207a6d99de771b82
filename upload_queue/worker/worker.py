import time

from upload_queue.config.settings import Settings
from upload_queue.database.models import Record
from upload_queue.lifecycle.models import PollRequest
from upload_queue.lifecycle.service import RecordService
from upload_queue.logging.logger import Log
from upload_queue.worker.record_runner import RecordRunner


class Worker:
    """Poll loop: sleep -> claim batch -> dispatch."""

    def __init__(
        self,
        service: RecordService,
        runner: RecordRunner,
        settings: Settings,
    ) -> None:
        self._service = service
        self._runner = runner
        self._settings = settings

    def run(self, max_records: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_records is set, stop after processing that many records (for testing).
        """
        Log.info(
            f"Worker started, polling for {self._settings.supported_source_types} records"
        )
        records_done = 0
        try:
            while max_records is None or records_done < max_records:
                records = self._try_claim_records(self._batch_limit(max_records, records_done))
                if not records:
                    Log.debug("No records available, sleeping")
                    time.sleep(self._settings.poll_interval_seconds)
                    continue
                for record in records:
                    self._runner.run(record)
                    records_done += 1
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def _batch_limit(self, max_records: int | None, records_done: int) -> int:
        if max_records is None:
            return self._settings.poll_batch_size
        return min(self._settings.poll_batch_size, max_records - records_done)

    def _try_claim_records(self, limit: int) -> list[Record]:
        """Claim the next batch of ready records. Gracefully handle DB errors."""
        try:
            page = self._service.poll(
                PollRequest(
                    limit=limit,
                    supported_source_types=self._settings.supported_source_types,
                )
            )
        except Exception as exc:
            Log.warning(f"Database error, will retry: {exc}")
            return []
        return page.records
