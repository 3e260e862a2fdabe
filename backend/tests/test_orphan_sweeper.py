import io

import pytest

from loandocs.services.batch_orchestrator import BatchOrchestrator
from loandocs.services.file_validator import UploadSurface
from loandocs.services.orphan_sweeper import OrphanSweeper

from conftest import FlakyDatabase, make_file


@pytest.mark.asyncio
async def test_sweep_finds_blob_left_by_failed_insert(storage, no_wait_retry):
    db = FlakyDatabase(failures=3)
    await db.initialize()
    orchestrator = BatchOrchestrator(storage, db, UploadSurface.structured(), retry_policy=no_wait_retry)
    failed = await orchestrator.process_batch([make_file("a.pdf")], loan_id="L1")
    ok = await orchestrator.process_batch([make_file("b.pdf")], loan_id="L1")
    orphan_key = failed.failed[0].storage_key

    report = await OrphanSweeper(storage, db).sweep(loan_id="L1")

    assert report.scanned == 2
    assert report.orphans == [orphan_key]
    assert report.deleted == []
    assert await storage.file_exists(orphan_key)
    assert await storage.file_exists(ok.successful[0].storage_key)


@pytest.mark.asyncio
async def test_sweep_can_delete_orphans(storage, db):
    await storage.save_file(io.BytesIO(b"x"), "documents/L1/stray.pdf")

    report = await OrphanSweeper(storage, db).sweep(delete=True)

    assert report.deleted == ["documents/L1/stray.pdf"]
    assert not await storage.file_exists("documents/L1/stray.pdf")


@pytest.mark.asyncio
async def test_legacy_folders_are_never_swept(storage, db):
    await storage.save_file(io.BytesIO(b"x"), "4189_SANTRAM/agreement.pdf")

    report = await OrphanSweeper(storage, db).sweep(delete=True)

    assert report.scanned == 0
    assert await storage.file_exists("4189_SANTRAM/agreement.pdf")
