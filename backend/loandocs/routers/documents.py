"""
Documents Router - read, search, download and soft-delete loan documents.

Example Usage:
    GET /documents-by-loan/{loanId}        - Both storage conventions, merged
    GET /documents?loanId=                 - Active metadata records for a loan
    GET /documents/search?q=&loanId=       - Term search over active records
    GET /documents/loans                   - Loan ids with documents
    GET /documents/download/{doc_id}       - Proxied download of a recorded document
    DELETE /documents/{doc_id}             - Soft delete
    POST /documents/orphans/sweep          - Find/delete blobs without a record
"""
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Query
from fastapi.responses import Response

from .dependencies import (
    get_db_service,
    get_document_locator,
    get_orphan_sweeper,
    get_storage,
    get_user_service
)
from ..api.dto import SweepResponseDTO
from ..api.exceptions import DocumentNotFoundError, LoanAccessDeniedError
from ..api.mappers import DocumentRecordMapper, LocatedDocumentMapper
from ..core.logging_config import get_logger
from ..services.document_locator import loan_id_candidates

logger = get_logger(__name__)

router = APIRouter()


def _dump(dtos):
    return [dto.model_dump(by_alias=True) for dto in dtos]


@router.get("/documents-by-loan/{loan_id}")
async def get_documents_by_loan(loan_id: str, username: Optional[str] = None):
    """
    Every document for a loan, from the legacy customer folder and the
    structured layout, tagged ``existing-structure`` / ``new-structure``.

    Object-store entries carry a signed ``url``; recorded documents carry a
    ``downloadUrl`` to the proxy route. Entries present under both layouts
    are listed twice.

    Args:
        loan_id: Loan id, with or without the ``BIZLN-`` prefix
        username: When given, the user must have access to the loan (403 otherwise)
    """
    if username and not await get_user_service().can_access_loan(username, loan_id):
        raise LoanAccessDeniedError(f"User '{username}' cannot view loan {loan_id}")

    documents = await get_document_locator().find_by_loan(loan_id)
    return LocatedDocumentMapper.to_response(loan_id, documents).model_dump(by_alias=True)


@router.get("/documents")
async def list_documents(loan_id: str = Query(..., alias="loanId")):
    """Active metadata records for a loan, newest first."""
    records = await get_db_service().find_documents_by_loan(loan_id_candidates(loan_id))
    return {
        "success": True,
        "loanId": loan_id,
        "total": len(records),
        "documents": _dump(DocumentRecordMapper.to_dto_list(records))
    }


@router.get("/documents/search")
async def search_documents(
    q: str = Query(..., min_length=1),
    loan_id: Optional[str] = Query(None, alias="loanId")
):
    """Active records whose search terms contain ``q``."""
    loan_ids = loan_id_candidates(loan_id) if loan_id else None
    records = await get_db_service().search_documents(q, loan_ids=loan_ids)
    return {
        "success": True,
        "query": q,
        "total": len(records),
        "documents": _dump(DocumentRecordMapper.to_dto_list(records))
    }


@router.get("/documents/loans")
async def list_loans():
    """Loan ids that have at least one active record."""
    loan_ids = await get_db_service().distinct_loan_ids()
    return {"success": True, "loans": loan_ids}


@router.get("/documents/download/{doc_id}")
async def download_document(doc_id: str):
    """
    Stream a recorded document's bytes.

    Raises:
        DocumentNotFoundError: Unknown or soft-deleted record, or missing blob
    """
    record = await get_db_service().get_document(doc_id)
    if not record or not record.get("is_active", True):
        raise DocumentNotFoundError(f"Document {doc_id} not found")

    try:
        content = await get_storage().get_file(record["storage_key"])
    except FileNotFoundError as e:
        logger.error(f"Record {doc_id} points at missing blob {record['storage_key']}")
        raise DocumentNotFoundError(f"File for document {doc_id} not found") from e

    filename = record.get("original_name") or record.get("file_name") or doc_id
    return Response(
        content=content,
        media_type=record.get("mime_type") or "application/octet-stream",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"}
    )


@router.delete("/documents/{doc_id}")
async def delete_document(doc_id: str):
    """Soft delete: the record is hidden from listings, the blob is kept."""
    db_service = get_db_service()
    record = await db_service.get_document(doc_id)
    if not record or not record.get("is_active", True):
        raise DocumentNotFoundError(f"Document {doc_id} not found")

    await db_service.update_document(doc_id, {"is_active": False, "status": "deleted"})
    logger.info(f"Soft-deleted document {doc_id} ({record.get('storage_key')})")
    return {"success": True, "id": doc_id, "message": "Document deleted"}


@router.post("/documents/orphans/sweep")
async def sweep_orphans(
    loan_id: Optional[str] = Query(None, alias="loanId"),
    delete: bool = False
):
    """
    List structured blobs with no metadata record, optionally deleting them.
    Legacy customer folders are never swept.
    """
    report = await get_orphan_sweeper().sweep(loan_id=loan_id, delete=delete)
    return SweepResponseDTO(scanned=report.scanned, orphans=report.orphans, deleted=report.deleted).model_dump()
