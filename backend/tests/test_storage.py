import io

import pytest

from loandocs.services.blob_writer import BlobWriter
from loandocs.services.storage import FileStorageFactory, LocalFileStorage, S3FileStorage, StorageError


@pytest.mark.asyncio
async def test_save_and_read_back(storage):
    location = await storage.save_file(io.BytesIO(b"hello"), "documents/L1/a b.pdf", content_type="application/pdf")
    assert location == "/files/documents/L1/a%20b.pdf"
    assert await storage.get_file("documents/L1/a b.pdf") == b"hello"
    assert await storage.file_exists("documents/L1/a b.pdf")


@pytest.mark.asyncio
async def test_missing_file(storage):
    assert not await storage.file_exists("nope.pdf")
    with pytest.raises(FileNotFoundError):
        await storage.get_file("nope.pdf")
    with pytest.raises(FileNotFoundError):
        await storage.get_metadata("nope.pdf")


@pytest.mark.asyncio
async def test_delete(storage):
    await storage.save_file(io.BytesIO(b"x"), "a/b.pdf")
    assert await storage.delete_file("a/b.pdf")
    assert not await storage.delete_file("a/b.pdf")
    assert (await storage.list_objects("a/")).objects == []


@pytest.mark.asyncio
async def test_list_with_delimiter(storage):
    for key in ["4189_A/one.pdf", "4189_A/sub/two.pdf", "documents/L1/x.pdf", "root.txt"]:
        await storage.save_file(io.BytesIO(b"x"), key)

    root = await storage.list_objects("", delimiter="/")
    assert sorted(root.common_prefixes) == ["4189_A/", "documents/"]
    assert [o.key for o in root.objects] == ["root.txt"]

    nested = await storage.list_objects("4189_A/")
    assert sorted(o.key for o in nested.objects) == ["4189_A/one.pdf", "4189_A/sub/two.pdf"]


@pytest.mark.asyncio
async def test_keys_cannot_escape_root(storage):
    with pytest.raises(StorageError):
        await storage.save_file(io.BytesIO(b"x"), "../outside.pdf")


@pytest.mark.asyncio
async def test_blob_writer_returns_location(storage):
    ref = await BlobWriter(storage).write("documents/L1/a.pdf", io.BytesIO(b"x"), "application/pdf", {"loan-id": "L1"})
    assert ref.storage_key == "documents/L1/a.pdf"
    assert ref.location == "/files/documents/L1/a.pdf"


@pytest.mark.asyncio
async def test_blob_writer_wraps_unexpected_errors():
    class ExplodingStorage(LocalFileStorage):
        async def save_file(self, file, file_path, content_type=None, metadata=None):
            raise RuntimeError("socket closed")

    with pytest.raises(StorageError):
        await BlobWriter(ExplodingStorage()).write("k.pdf", io.BytesIO(b"x"), "application/pdf")


@pytest.mark.asyncio
async def test_blob_writer_quotes_non_ascii_metadata(storage):
    await BlobWriter(storage).write("k.pdf", io.BytesIO(b"x"), "application/pdf", {"uploaded-by": "Zoë", "skip": None})
    side = await storage.get_metadata("k.pdf")
    assert side["metadata"] == {"uploaded-by": "Zo%C3%AB"}


def test_factory(tmp_path):
    local = FileStorageFactory.create("local", base_dir=str(tmp_path))
    assert isinstance(local, LocalFileStorage)
    s3 = FileStorageFactory.create("s3", bucket_name="ops-loan-data", region_name="ap-south-1")
    assert isinstance(s3, S3FileStorage)
    with pytest.raises(ValueError):
        FileStorageFactory.create("ftp")


@pytest.mark.asyncio
async def test_sidecar_suffix_is_reserved(storage):
    await storage.save_file(io.BytesIO(b"pdf"), "kyc/a.pdf", content_type="application/pdf")
    with pytest.raises(StorageError):
        await storage.save_file(io.BytesIO(b"{}"), "kyc/a.pdf.meta.json")
    assert (await storage.get_metadata("kyc/a.pdf"))["content_type"] == "application/pdf"
