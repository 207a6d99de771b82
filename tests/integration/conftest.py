import os
import uuid
from collections.abc import Callable, Generator
from typing import Any

import psycopg
import pytest

from upload_queue.config.settings import Settings
from upload_queue.database.connection import close_pool, get_connection, init_pool
from upload_queue.database.models import Record
from upload_queue.database.schema import create_schema
from upload_queue.lifecycle.models import ContentUpload, NewRecord
from upload_queue.lifecycle.service import RecordService, build_record_service


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "upload_queue_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            create_schema(conn)
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. Set DB_* env to run integration tests"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def service(integration_pool: None, test_settings: Settings) -> RecordService:
    return build_record_service(test_settings)


@pytest.fixture
def source_type() -> str:
    """A source type unique to one test, so polls only see that test's records."""
    return f"test-{uuid.uuid4().hex[:12]}"


@pytest.fixture
def project_id() -> str:
    return f"project-{uuid.uuid4().hex[:12]}"


@pytest.fixture
def integration_cleanup(
    integration_pool: None,
) -> Generator[list[int], None, None]:
    cleanup: list[int] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        conn.execute("DELETE FROM records WHERE id = ANY(%s)", (cleanup,))
        conn.commit()


@pytest.fixture
def seed_record(
    service: RecordService,
    integration_cleanup: list[int],
    project_id: str,
    source_type: str,
) -> Callable[..., Record]:
    def _seed(with_content: bool = True, user_id: str = "user-1") -> Record:
        contents = (
            [ContentUpload("data.csv", "text/csv", b"a,b\n1,2\n")] if with_content else []
        )
        record = service.create(
            NewRecord(
                project_id=project_id,
                user_id=user_id,
                source_type=source_type,
                source_id="source-1",
                contents=contents,
            )
        )
        integration_cleanup.append(record.id)
        return record

    return _seed
