"""
Mappers between domain/service objects and DTOs.
Separates domain layer from API layer.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..domain.entities import LocatedDocument
from ..domain.value_objects import StorageConvention
from ..services.batch_orchestrator import BatchResult, FileOutcome
from .dto import (
    DocumentRecordDTO,
    DocumentsByLoanResponseDTO,
    LocatedDocumentDTO,
    UploadErrorDTO,
    UploadedDocumentDTO,
    UploadResponseDTO,
    UploadResultsDTO,
    UserDTO
)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class UploadMapper:
    """Maps a BatchResult to the upload response."""

    @staticmethod
    def outcome_to_dto(outcome: FileOutcome) -> UploadedDocumentDTO:
        return UploadedDocumentDTO(
            id=outcome.document_id or outcome.storage_key,
            name=outcome.filename,
            size=outcome.size,
            type=outcome.mime_type,
            uploaded_at=_iso(outcome.completed_at),
            status=outcome.state.value,
            storage_key=outcome.storage_key,
            document_type=outcome.document_type
        )

    @staticmethod
    def message(result: BatchResult) -> str:
        succeeded = len(result.successful)
        if result.status == "success":
            return f"Successfully uploaded {succeeded} file(s)"
        if result.status == "partial":
            return f"Uploaded {succeeded} of {result.total} file(s); {len(result.failed)} failed"
        return f"All {result.total} file(s) failed to upload"

    @staticmethod
    def to_dto(result: BatchResult, convention: StorageConvention) -> UploadResponseDTO:
        return UploadResponseDTO(
            success=result.success,
            message=UploadMapper.message(result),
            loan_id=result.loan_id,
            full_name=result.full_name,
            storage_structure=convention.label,
            documents=[UploadMapper.outcome_to_dto(o) for o in result.successful],
            results=UploadResultsDTO(
                total=result.total,
                successful=len(result.successful),
                failed=len(result.failed),
                errors=[UploadErrorDTO(**error) for error in result.errors]
            )
        )


class LocatedDocumentMapper:
    """Maps Document Locator output to the documents-by-loan response."""

    @staticmethod
    def to_dto(document: LocatedDocument) -> LocatedDocumentDTO:
        return LocatedDocumentDTO(
            id=document.id,
            name=document.name,
            storage_key=document.storage_key,
            storage_type=document.storage_label,
            source=document.source,
            folder=document.folder,
            size=document.size,
            type=document.mime_type,
            document_type=document.document_type,
            uploaded_at=_iso(document.uploaded_at),
            url=document.url,
            download_url=document.download_url
        )

    @staticmethod
    def to_response(loan_id: str, documents: List[LocatedDocument]) -> DocumentsByLoanResponseDTO:
        dtos = [LocatedDocumentMapper.to_dto(doc) for doc in documents]
        grouped: Dict[str, List[LocatedDocumentDTO]] = {}
        for dto in dtos:
            grouped.setdefault(dto.folder or "root", []).append(dto)
        legacy_count = sum(1 for doc in documents if doc.convention is StorageConvention.LEGACY)
        return DocumentsByLoanResponseDTO(
            loan_id=loan_id,
            total=len(dtos),
            existing_structure_count=legacy_count,
            new_structure_count=len(dtos) - legacy_count,
            documents=dtos,
            grouped_by_folder=grouped
        )


class DocumentRecordMapper:
    @staticmethod
    def to_dto(record: Dict[str, Any]) -> DocumentRecordDTO:
        return DocumentRecordDTO(**record)

    @staticmethod
    def to_dto_list(records: List[Dict[str, Any]]) -> List[DocumentRecordDTO]:
        return [DocumentRecordMapper.to_dto(record) for record in records]


class UserMapper:
    @staticmethod
    def to_dto(user: Dict[str, Any]) -> UserDTO:
        return UserDTO(**user)
