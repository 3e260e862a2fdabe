"""
Upload Router - batch uploads for a loan.

Two entry points share one pipeline and differ only in upload surface:

    POST /documents/upload                    - structured keys, metadata recorded
    POST /documents/upload-existing-structure - legacy customer-folder keys

Per-file failures never fail the request; the status code summarises the batch:
201 all succeeded, 207 partial, 400 nothing usable was sent or every file
was rejected by validation, 500 everything failed past validation.
"""
from typing import List, Optional

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from .dependencies import get_upload_orchestrator, get_user_service, new_batch_deadline
from ..api.exceptions import InvalidBatchError, UserNotFoundError
from ..api.mappers import UploadMapper
from ..core.logging_config import get_logger
from ..middleware.rate_limit import upload_rate_limit
from ..services.batch_orchestrator import BatchFile, BatchResult
from ..utils.validators import UnsafePathError, validate_filename

logger = get_logger(__name__)

router = APIRouter()


def batch_status_code(result: BatchResult) -> int:
    if result.status == "success":
        return 201
    if result.status == "partial":
        return 207
    if result.only_validation_failures:
        return 400
    return 500


def _batch_files(files: List[UploadFile], folder_paths: Optional[List[str]]) -> List[BatchFile]:
    folder_paths = folder_paths or []
    batch = []
    for index, upload in enumerate(files):
        folder = folder_paths[index] if index < len(folder_paths) else None
        batch.append(BatchFile.from_parts(
            upload.filename,
            upload.content_type,
            upload.file,
            size=getattr(upload, "size", None),
            folder_path=folder or None
        ))
    return batch


async def _resolve_uploader(username: Optional[str]):
    try:
        return await get_user_service().resolve_uploader(username)
    except UserNotFoundError as e:
        raise InvalidBatchError(f"Unknown uploader: {username}") from e


def _response(result: BatchResult, convention) -> JSONResponse:
    status_code = batch_status_code(result)
    body = UploadMapper.to_dto(result, convention).model_dump(by_alias=True)
    return JSONResponse(status_code=status_code, content=body)


@router.post("/documents/upload")
@upload_rate_limit
async def upload_documents(
    request: Request,
    files: Optional[List[UploadFile]] = File(None),
    loan_number: Optional[str] = Form(None, alias="loanNumber"),
    full_name: Optional[str] = Form(None, alias="fullName"),
    customer_name: Optional[str] = Form(None, alias="customerName"),
    description: Optional[str] = Form(None),
    uploaded_by: Optional[str] = Form(None, alias="uploadedBy"),
    folder_path: Optional[List[str]] = Form(None, alias="folderPath"),
    preserve_folder_structure: Optional[bool] = Form(None, alias="preserveFolderStructure")
):
    """
    Upload a batch of files under the structured convention.

    Keys are ``documents/{loanId}/{uuid}-{name}``, or
    ``documents/{loanId}/{folderPath}/{name}`` when folder structure is
    preserved. Preservation defaults to on whenever ``folderPath`` parts are
    sent. A missing ``loanNumber`` or ``fullName`` is derived from the first
    file's folder (``4189_SANTRAM`` -> ``BIZLN-4189`` / ``SANTRAM``).
    """
    if not files:
        raise InvalidBatchError("No files uploaded")

    preserve = preserve_folder_structure
    if preserve is None:
        preserve = any(path for path in (folder_path or []))

    uploader = await _resolve_uploader(uploaded_by)
    orchestrator = get_upload_orchestrator()

    result = await orchestrator.process_batch(
        _batch_files(files, folder_path),
        loan_id=loan_number,
        full_name=full_name or customer_name,
        description=description,
        uploaded_by=uploader["id"] if uploader else None,
        uploader_name=uploader.get("name") if uploader else None,
        preserve_folder_structure=preserve,
        deadline=new_batch_deadline()
    )
    return _response(result, orchestrator.surface.convention)


@router.post("/documents/upload-existing-structure")
@upload_rate_limit
async def upload_existing_structure(
    request: Request,
    files: Optional[List[UploadFile]] = File(None),
    loan_number: Optional[str] = Form(None, alias="loanNumber"),
    customer_name: Optional[str] = Form(None, alias="customerName"),
    full_name: Optional[str] = Form(None, alias="fullName"),
    uploaded_by: Optional[str] = Form(None, alias="uploadedBy")
):
    """
    Upload a batch of files into the legacy customer folder
    ``{customerId}_{CUSTOMER NAME}/{name}``.

    Both ``loanNumber`` and ``customerName`` are required. No metadata record
    is written; these files are found by the legacy scan.
    """
    name = customer_name or full_name
    if not loan_number or not loan_number.strip() or not name or not name.strip():
        raise InvalidBatchError("loanNumber and customerName are required")
    try:
        validate_filename(name.strip())
    except UnsafePathError as e:
        raise InvalidBatchError(f"Invalid customerName: {e}") from e
    if not files:
        raise InvalidBatchError("No files uploaded")

    uploader = await _resolve_uploader(uploaded_by)
    orchestrator = get_upload_orchestrator(legacy=True)

    result = await orchestrator.process_batch(
        _batch_files(files, None),
        loan_id=loan_number,
        full_name=name,
        uploaded_by=uploader["id"] if uploader else None,
        uploader_name=uploader.get("name") if uploader else None,
        deadline=new_batch_deadline()
    )
    return _response(result, orchestrator.surface.convention)
