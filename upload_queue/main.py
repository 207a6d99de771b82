from upload_queue.config.settings import Settings
from upload_queue.converter.factory import ConverterFactory
from upload_queue.database.connection import close_pool, init_pool
from upload_queue.lifecycle.service import build_record_service
from upload_queue.logging.logger import Log
from upload_queue.worker.record_runner import RecordRunner
from upload_queue.worker.worker import Worker


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loop."""
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    try:
        service = build_record_service(settings)
        runner = RecordRunner(service, ConverterFactory.create_all(settings))
        worker = Worker(service, runner, settings)
        worker.run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
