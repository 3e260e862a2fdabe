"""
Shared fixtures: local storage in a temp dir, in-memory collection store,
and adapter subclasses that inject failures.
"""
import io
import os

# Settings are read at import time
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_RETRY_BASE_DELAY"] = "0"
os.environ["STORAGE_TYPE"] = "local"
os.environ["DATABASE_TYPE"] = "memory"

import pytest
import pytest_asyncio

from loandocs.services.batch_orchestrator import BatchFile
from loandocs.services.database import MemoryAdapter, TransientDatabaseError
from loandocs.services.retry import RetryPolicy
from loandocs.services.storage import LocalFileStorage, StorageError

PDF_BYTES = b"%PDF-1.4\n% test document\n"


class FlakyDatabase(MemoryAdapter):
    """Fails the first ``failures`` inserts with a transient error."""

    def __init__(self, failures: int = 0):
        super().__init__()
        self.failures = failures
        self.insert_attempts = 0

    async def insert_document(self, doc_data):
        self.insert_attempts += 1
        if self.insert_attempts <= self.failures:
            raise TransientDatabaseError("connection reset by peer")
        return await super().insert_document(doc_data)


class FailingStorage(LocalFileStorage):
    """Rejects writes to keys containing ``fail_marker``."""

    def __init__(self, base_dir, fail_marker: str = "broken"):
        super().__init__(base_dir=base_dir)
        self.fail_marker = fail_marker

    async def save_file(self, file, file_path, content_type=None, metadata=None):
        if self.fail_marker in file_path:
            raise StorageError("simulated object-store outage", transient=True)
        return await super().save_file(file, file_path, content_type=content_type, metadata=metadata)


def make_file(
    name: str,
    content: bytes = PDF_BYTES,
    content_type: str = "application/pdf",
    folder_path: str = None
) -> BatchFile:
    return BatchFile(
        filename=name,
        content_type=content_type,
        stream=io.BytesIO(content),
        size=len(content),
        folder_path=folder_path
    )


@pytest.fixture
def no_wait_retry():
    return RetryPolicy(max_attempts=3, base_delay=0)


@pytest_asyncio.fixture
async def storage(tmp_path):
    store = LocalFileStorage(base_dir=tmp_path / "bucket")
    await store.initialize()
    return store


@pytest_asyncio.fixture
async def db():
    database = MemoryAdapter()
    await database.initialize()
    return database
