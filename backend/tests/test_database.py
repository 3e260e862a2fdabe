import pytest

from loandocs.services.database import (
    DatabaseFactory,
    DuplicateKeyError,
    JSONAdapter,
    MemoryAdapter,
    TransientDatabaseError
)
from loandocs.utils.document_utils import create_document_record


def _doc(loan_id="BIZLN-1", key="documents/BIZLN-1/a.pdf", name="a.pdf", **kwargs):
    return create_document_record(
        loan_id=loan_id,
        file_name=key.rsplit("/", 1)[-1],
        original_name=name,
        mime_type="application/pdf",
        file_size=4,
        storage_key=key,
        **kwargs
    )


@pytest.mark.asyncio
async def test_insert_and_get(db):
    doc_id = await db.insert_document(_doc())
    stored = await db.get_document(doc_id)
    assert stored["storage_key"] == "documents/BIZLN-1/a.pdf"
    assert (await db.find_document_by_storage_key("documents/BIZLN-1/a.pdf"))["id"] == doc_id


@pytest.mark.asyncio
async def test_storage_key_is_unique(db):
    await db.insert_document(_doc())
    with pytest.raises(DuplicateKeyError):
        await db.insert_document(_doc())


@pytest.mark.asyncio
async def test_storage_key_required(db):
    with pytest.raises(ValueError):
        await db.insert_document({"loan_id": "BIZLN-1"})


@pytest.mark.asyncio
async def test_returned_records_are_copies(db):
    doc_id = await db.insert_document(_doc())
    (await db.get_document(doc_id))["loan_id"] = "changed"
    assert (await db.get_document(doc_id))["loan_id"] == "BIZLN-1"


@pytest.mark.asyncio
async def test_find_by_loan_excludes_inactive(db):
    keep = await db.insert_document(_doc(key="documents/BIZLN-1/a.pdf"))
    gone = await db.insert_document(_doc(key="documents/BIZLN-1/b.pdf"))
    await db.insert_document(_doc(loan_id="BIZLN-2", key="documents/BIZLN-2/c.pdf"))
    await db.update_document(gone, {"is_active": False})

    assert [d["id"] for d in await db.find_documents_by_loan(["BIZLN-1"])] == [keep]
    assert len(await db.find_documents_by_loan(["BIZLN-1"], include_inactive=True)) == 2
    assert await db.distinct_loan_ids() == ["BIZLN-1", "BIZLN-2"]


@pytest.mark.asyncio
async def test_update_keeps_storage_key(db):
    doc_id = await db.insert_document(_doc())
    updated = await db.update_document(doc_id, {"storage_key": "elsewhere", "description": "new"})
    assert updated["storage_key"] == "documents/BIZLN-1/a.pdf"
    assert updated["description"] == "new"
    assert "updated_at" in updated
    assert await db.update_document("missing", {}) is None


@pytest.mark.asyncio
async def test_search_by_term(db):
    await db.insert_document(_doc(key="documents/BIZLN-1/x.pdf", name="bank statement.pdf"))
    await db.insert_document(_doc(loan_id="BIZLN-2", key="documents/BIZLN-2/y.pdf", name="bank.pdf"))
    await db.insert_document(_doc(key="documents/BIZLN-1/z.pdf", name="kyc.pdf"))

    assert len(await db.search_documents("bank")) == 2
    assert len(await db.search_documents("BANK", loan_ids=["BIZLN-1"])) == 1
    assert await db.search_documents("invoice") == []


@pytest.mark.asyncio
async def test_delete_frees_storage_key(db):
    doc_id = await db.insert_document(_doc())
    assert await db.delete_document(doc_id)
    assert not await db.delete_document(doc_id)
    await db.insert_document(_doc())


@pytest.mark.asyncio
async def test_users_unique_by_username(db):
    user = await db.create_user({"username": "asha", "role": "admin"})
    assert user["id"]
    assert "created_at" in user
    with pytest.raises(DuplicateKeyError):
        await db.create_user({"username": "asha"})
    assert (await db.get_user_by_username("asha"))["id"] == user["id"]
    assert [u["username"] for u in await db.find_users(role="admin")] == ["asha"]
    assert await db.delete_user(user["id"])
    assert await db.get_user_by_username("asha") is None


@pytest.mark.asyncio
async def test_json_adapter_persists_between_instances(tmp_path):
    first = JSONAdapter(data_dir=tmp_path)
    await first.initialize()
    doc_id = await first.insert_document(_doc())
    await first.create_user({"username": "asha"})
    await first.close()

    second = JSONAdapter(data_dir=tmp_path)
    await second.initialize()
    assert (await second.get_document(doc_id))["original_name"] == "a.pdf"
    assert await second.get_user_by_username("asha") is not None
    with pytest.raises(DuplicateKeyError):
        await second.insert_document(_doc())


@pytest.mark.asyncio
async def test_failed_write_through_rolls_back_insert(tmp_path):
    class BrokenDisk(JSONAdapter):
        def _write(self, path, data):
            raise OSError("disk full")

    db = BrokenDisk(data_dir=tmp_path)
    await db.initialize()

    with pytest.raises(TransientDatabaseError):
        await db.insert_document(_doc())
    assert await db.find_document_by_storage_key("documents/BIZLN-1/a.pdf") is None
    assert await db.find_documents_by_loan(["BIZLN-1"]) == []


@pytest.mark.asyncio
async def test_corrupt_file_starts_empty(tmp_path):
    (tmp_path / "documents.json").write_text("{not json", encoding="utf-8")
    db = JSONAdapter(data_dir=tmp_path)
    await db.initialize()
    assert await db.distinct_loan_ids() == []


def test_factory(tmp_path):
    assert isinstance(DatabaseFactory.create("memory"), MemoryAdapter)
    assert isinstance(DatabaseFactory.create("json", data_dir=str(tmp_path)), JSONAdapter)
    with pytest.raises(ValueError):
        DatabaseFactory.create("postgres")
