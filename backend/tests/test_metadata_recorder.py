import pytest

from loandocs.services.database import DuplicateKeyError
from loandocs.services.metadata_recorder import MetadataRecordError, MetadataRecorder
from loandocs.services.retry import RetryExhaustedError, RetryPolicy
from loandocs.utils.document_utils import create_document_record

from conftest import FlakyDatabase


def _record(key="documents/BIZLN-1/abc-a.pdf"):
    return create_document_record(
        loan_id="BIZLN-1",
        file_name=key.rsplit("/", 1)[-1],
        original_name="a.pdf",
        mime_type="application/pdf",
        file_size=10,
        storage_key=key,
        uploader_name="Asha Rao",
        description="March bank statement"
    )


def test_backoff_delays():
    policy = RetryPolicy(max_attempts=3, base_delay=1.0)
    assert policy.calculate_retry_delay(1) == 2.0
    assert policy.calculate_retry_delay(2) == 4.0
    assert RetryPolicy(base_delay=10.0, max_delay=15.0).calculate_retry_delay(3) == 15.0


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


@pytest.mark.asyncio
async def test_two_transient_failures_then_success():
    db = FlakyDatabase(failures=2)
    await db.initialize()
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    recorder = MetadataRecorder(db, RetryPolicy(max_attempts=3, base_delay=1.0, sleep=fake_sleep))
    doc_id = await recorder.record(_record())

    assert db.insert_attempts == 3
    assert delays == [2.0, 4.0]
    assert await db.get_document(doc_id) is not None
    assert len(await db.find_documents_by_loan(["BIZLN-1"])) == 1


@pytest.mark.asyncio
async def test_three_transient_failures_exhaust_retries(no_wait_retry):
    db = FlakyDatabase(failures=3)
    await db.initialize()
    recorder = MetadataRecorder(db, no_wait_retry)

    with pytest.raises(MetadataRecordError) as excinfo:
        await recorder.record(_record())

    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.__cause__, RetryExhaustedError)
    assert db.insert_attempts == 3
    assert await db.find_documents_by_loan(["BIZLN-1"]) == []


@pytest.mark.asyncio
async def test_non_transient_failure_is_not_retried(db, no_wait_retry):
    recorder = MetadataRecorder(db, no_wait_retry)
    await recorder.record(_record())

    with pytest.raises(MetadataRecordError) as excinfo:
        await recorder.record(_record())

    assert isinstance(excinfo.value.__cause__, DuplicateKeyError)
    assert excinfo.value.attempts == 1


@pytest.mark.asyncio
async def test_each_call_inserts_a_new_record(db, no_wait_retry):
    recorder = MetadataRecorder(db, no_wait_retry)
    first = await recorder.record(_record("documents/BIZLN-1/one-a.pdf"))
    second = await recorder.record(_record("documents/BIZLN-1/two-a.pdf"))
    assert first != second
    assert len(await db.find_documents_by_loan(["BIZLN-1"])) == 2


def test_record_fields_and_search_terms():
    record = _record()
    assert record["is_active"] is True
    assert record["status"] == "active"
    assert record["convention"] == "structured"
    assert record["search_terms"] == ["bizln-1", "asha", "rao", "march", "bank", "statement", "pdf"]


@pytest.mark.asyncio
async def test_unexpected_driver_error_becomes_record_error(no_wait_retry):
    class BrokenDriver(FlakyDatabase):
        async def insert_document(self, doc_data):
            self.insert_attempts += 1
            raise RuntimeError("driver bug")

    db = BrokenDriver()
    with pytest.raises(MetadataRecordError) as excinfo:
        await MetadataRecorder(db, no_wait_retry).record(_record())

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert db.insert_attempts == 1
