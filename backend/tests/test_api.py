import pytest
from fastapi.testclient import TestClient

from loandocs.main import app
from loandocs.routers.dependencies import ServiceContainer, set_container
from loandocs.services.database import MemoryAdapter
from loandocs.services.retry import RetryPolicy
from loandocs.services.storage import LocalFileStorage

from conftest import PDF_BYTES, FailingStorage, FlakyDatabase

EXE = ("setup.exe", b"MZ", "application/x-msdownload")


def _pdf(name):
    return ("files", (name, PDF_BYTES, "application/pdf"))


def _container(storage, db=None):
    return ServiceContainer(
        storage,
        db or MemoryAdapter(),
        retry_policy=RetryPolicy(max_attempts=3, base_delay=0),
        batch_deadline_seconds=None
    )


@pytest.fixture
def services(tmp_path):
    return _container(LocalFileStorage(base_dir=tmp_path / "bucket"))


@pytest.fixture
def client(services):
    set_container(services)
    with TestClient(app) as test_client:
        yield test_client
    set_container(None)


def _upload(client, files, **data):
    return client.post("/documents/upload", files=files, data=data)


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "healthy"
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["storage"] == "LocalFileStorage"
    assert client.get("/ready").json() == {"ready": True}


def test_404_handler(client):
    assert client.get("/non-existent-route").status_code == 404


def test_cors_headers(client):
    response = client.options(
        "/documents/loans",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "GET"}
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_request_id_is_echoed(client):
    response = client.get("/", headers={"X-Request-ID": "trace-42"})
    assert response.headers["X-Request-ID"] == "trace-42"
    assert len(client.get("/").headers["X-Request-ID"]) == 32


def test_upload_all_succeed(client):
    response = _upload(client, [_pdf("agreement.pdf"), _pdf("bank statement.pdf")], loanNumber="BIZLN-4189", fullName="Santram")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["loanId"] == "BIZLN-4189"
    assert body["storageStructure"] == "new-structure"
    assert body["results"] == {"total": 2, "successful": 2, "failed": 0, "errors": []}
    assert [d["name"] for d in body["documents"]] == ["agreement.pdf", "bank statement.pdf"]
    assert body["documents"][1]["storageKey"].endswith("-bank-statement.pdf")
    assert body["documents"][1]["documentType"] == "Bank Statement"


def test_upload_partial_success(client):
    response = _upload(client, [_pdf("a.pdf"), ("files", EXE), _pdf("b.pdf")], loanNumber="BIZLN-1")

    assert response.status_code == 207
    body = response.json()
    assert body["success"] is True
    assert body["results"]["successful"] == 2
    assert body["results"]["errors"][0]["file"] == "setup.exe"
    assert body["results"]["errors"][0]["reason"] == "validation"


def test_upload_only_invalid_files(client):
    response = _upload(client, [("files", EXE)], loanNumber="BIZLN-1")
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_upload_without_files(client):
    response = client.post("/documents/upload", data={"loanNumber": "BIZLN-1"})
    assert response.status_code == 400
    assert response.json()["error"] == "No files uploaded"


def test_upload_with_unknown_uploader(client):
    response = _upload(client, [_pdf("a.pdf")], loanNumber="BIZLN-1", uploadedBy="ghost")
    assert response.status_code == 400


def test_upload_storage_outage_is_500(tmp_path):
    set_container(_container(FailingStorage(tmp_path / "bucket")))
    try:
        with TestClient(app) as client:
            response = _upload(client, [_pdf("broken.pdf")], loanNumber="BIZLN-1")
    finally:
        set_container(None)

    assert response.status_code == 500
    assert response.json()["results"]["errors"][0]["reason"] == "storage"


def test_upload_preserves_folders(client):
    response = client.post(
        "/documents/upload",
        files=[_pdf("aadhar.pdf"), _pdf("statement.pdf")],
        data={"loanNumber": "BIZLN-4189", "folderPath": ["4189_SANTRAM/kyc", "4189_SANTRAM/bank"]}
    )

    assert response.status_code == 201
    keys = [d["storageKey"] for d in response.json()["documents"]]
    assert keys == [
        "documents/BIZLN-4189/4189_SANTRAM/kyc/aadhar.pdf",
        "documents/BIZLN-4189/4189_SANTRAM/bank/statement.pdf"
    ]
    assert response.json()["fullName"] == "SANTRAM"


def test_upload_derives_loan_id_from_folder(client):
    response = client.post(
        "/documents/upload",
        files=[_pdf("a.pdf")],
        data={"folderPath": ["4189_SANTRAM"], "preserveFolderStructure": "false"}
    )
    body = response.json()
    assert body["loanId"] == "BIZLN-4189"
    assert body["documents"][0]["storageKey"].startswith("documents/BIZLN-4189/")
    assert body["documents"][0]["storageKey"].endswith("-a.pdf")


def test_legacy_upload_requires_customer(client):
    response = client.post(
        "/documents/upload-existing-structure", files=[_pdf("a.pdf")], data={"loanNumber": "BIZLN-4189"}
    )
    assert response.status_code == 400


def test_legacy_upload_rejects_path_in_customer_name(client):
    response = client.post(
        "/documents/upload-existing-structure",
        files=[_pdf("agreement.pdf")],
        data={"loanNumber": "BIZLN-4189", "customerName": "X/../4190_OTHER"}
    )
    assert response.status_code == 400
    assert client.get("/documents-by-loan/BIZLN-4190").json()["total"] == 0


def test_legacy_upload_and_lookup(client):
    response = client.post(
        "/documents/upload-existing-structure",
        files=[_pdf("agreement.pdf")],
        data={"loanNumber": "BIZLN-4189", "customerName": "Santram Kumar"}
    )
    assert response.status_code == 201
    assert response.json()["storageStructure"] == "existing-structure"
    assert response.json()["documents"][0]["storageKey"] == "4189_SANTRAM KUMAR/agreement.pdf"

    _upload(client, [_pdf("kyc.pdf")], loanNumber="BIZLN-4189", folderPath="kyc")

    listing = client.get("/documents-by-loan/BIZLN-4189").json()
    assert listing["total"] == 2
    assert listing["existingStructureCount"] == 1
    assert listing["newStructureCount"] == 1
    legacy, structured = listing["documents"]
    assert legacy["storageType"] == "existing-structure"
    assert legacy["url"] == "/files/4189_SANTRAM%20KUMAR/agreement.pdf"
    assert structured["downloadUrl"] == f"/documents/download/{structured['id']}"
    assert set(listing["groupedByFolder"]) == {"4189_SANTRAM KUMAR", "kyc"}

    served = client.get(legacy["url"])
    assert served.status_code == 200
    assert served.content == PDF_BYTES
    assert served.headers["content-type"] == "application/pdf"


def test_documents_by_loan_checks_user_access(client):
    client.post("/users", json={"username": "asha", "password": "pw", "name": "Asha", "loanAccess": ["BIZLN-1"]})

    assert client.get("/documents-by-loan/BIZLN-1", params={"username": "asha"}).status_code == 200
    denied = client.get("/documents-by-loan/BIZLN-2", params={"username": "asha"})
    assert denied.status_code == 403
    assert client.get("/documents-by-loan/BIZLN-2", params={"username": "ghost"}).status_code == 404


def test_download_and_soft_delete(client):
    uploaded = _upload(client, [_pdf("March statement.pdf")], loanNumber="BIZLN-7").json()
    doc_id = uploaded["documents"][0]["id"]

    download = client.get(f"/documents/download/{doc_id}")
    assert download.status_code == 200
    assert download.content == PDF_BYTES
    assert download.headers["content-disposition"] == "attachment; filename*=UTF-8''March%20statement.pdf"

    assert client.delete(f"/documents/{doc_id}").json()["success"] is True
    assert client.get(f"/documents/download/{doc_id}").status_code == 404
    assert client.delete(f"/documents/{doc_id}").status_code == 404
    assert client.get("/documents", params={"loanId": "BIZLN-7"}).json()["total"] == 0


def test_list_search_and_loans(client):
    _upload(client, [_pdf("bank statement.pdf")], loanNumber="BIZLN-1", description="March salary")
    _upload(client, [_pdf("kyc.pdf")], loanNumber="BIZLN-2")

    listed = client.get("/documents", params={"loanId": "1"}).json()
    assert listed["total"] == 1
    assert listed["documents"][0]["originalName"] == "bank statement.pdf"
    assert listed["documents"][0]["description"] == "March salary"

    assert client.get("/documents/search", params={"q": "salary"}).json()["total"] == 1
    assert client.get("/documents/search", params={"q": "pdf", "loanId": "BIZLN-2"}).json()["total"] == 1
    assert client.get("/documents/loans").json()["loans"] == ["BIZLN-1", "BIZLN-2"]
    assert client.get("/documents").status_code == 422


def test_files_route_rejects_escaping_keys(client):
    assert client.get("/files/missing.pdf").status_code == 404
    assert client.get("/files/..%2F..%2Fetc%2Fpasswd").status_code in (400, 404)


def test_orphan_sweep_after_database_outage(tmp_path):
    set_container(_container(LocalFileStorage(base_dir=tmp_path / "bucket"), FlakyDatabase(failures=3)))
    try:
        with TestClient(app) as client:
            failed = _upload(client, [_pdf("a.pdf")], loanNumber="BIZLN-1")
            report = client.post("/documents/orphans/sweep", params={"loanId": "BIZLN-1", "delete": "true"}).json()
    finally:
        set_container(None)

    assert failed.status_code == 500
    assert failed.json()["results"]["errors"][0]["reason"] == "database"
    assert report["scanned"] == 1
    assert report["orphans"] == report["deleted"]
    assert len(report["deleted"]) == 1


def test_user_endpoints(client):
    created = client.post("/users", json={"username": "Asha", "password": "pw", "name": "Asha Rao", "role": "admin"})
    assert created.status_code == 201
    user = created.json()
    assert user["username"] == "asha"
    assert "password" not in user and "passwordHash" not in user

    assert client.post("/users", json={"username": "asha", "password": "pw", "name": "Again"}).status_code == 409
    assert client.post("/users", json={"username": "bob", "password": "pw", "name": "Bob", "role": "root"}).status_code == 400
    assert client.get("/users/ASHA").json()["name"] == "Asha Rao"
    assert client.get("/users/nobody").status_code == 404
    assert [u["username"] for u in client.get("/users", params={"role": "admin"}).json()] == ["asha"]

    client.post("/users", json={"username": "bob", "password": "pw", "name": "Bob"})
    updated = client.put("/users/bob/loan-access", json={"loanIds": ["BIZLN-3"]}).json()
    assert updated["loanAccess"] == ["BIZLN-3"]
    assert client.get("/users/bob/loan-access", params={"loanId": "BIZLN-3"}).json()["allowed"] is True
    assert client.get("/users/bob/loan-access", params={"loanId": "BIZLN-4"}).json()["allowed"] is False

    assert client.delete(f"/users/{user['id']}").json()["success"] is True
    assert client.get("/users/asha").status_code == 404


def test_upload_attributed_to_named_user(client, services):
    client.post("/users", json={"username": "asha", "password": "pw", "name": "Asha Rao"})
    response = _upload(client, [_pdf("a.pdf")], loanNumber="BIZLN-1", uploadedBy="asha")
    assert response.status_code == 201

    record = client.get("/documents", params={"loanId": "BIZLN-1"}).json()["documents"][0]
    assert record["uploaderName"] == "Asha Rao"
    assert "rao" in record["searchTerms"]
