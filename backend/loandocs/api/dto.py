"""
Data Transfer Objects (DTOs) for API layer.
Separates API contracts from domain entities.

Wire fields are camelCase; Python attributes stay snake_case.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class UploadedDocumentDTO(BaseModel):
    """One successfully uploaded file."""
    id: str
    name: str
    size: Optional[int] = None
    type: Optional[str] = None
    uploaded_at: Optional[str] = Field(default=None, alias="uploadedAt")
    status: str
    storage_key: str = Field(alias="storageKey")
    document_type: Optional[str] = Field(default=None, alias="documentType")

    class Config:
        populate_by_name = True


class UploadErrorDTO(BaseModel):
    file: str
    reason: Optional[str] = None
    error: Optional[str] = None


class UploadResultsDTO(BaseModel):
    total: int
    successful: int
    failed: int
    errors: List[UploadErrorDTO] = []


class UploadResponseDTO(BaseModel):
    """Response for batch uploads."""
    success: bool
    message: str
    loan_id: str = Field(alias="loanId")
    full_name: str = Field(alias="fullName")
    storage_structure: str = Field(alias="storageStructure")
    documents: List[UploadedDocumentDTO] = []
    results: UploadResultsDTO

    class Config:
        populate_by_name = True


class LocatedDocumentDTO(BaseModel):
    """A document found for a loan under either storage convention."""
    id: str
    name: str
    storage_key: str = Field(alias="storageKey")
    storage_type: str = Field(alias="storageType")
    source: str
    folder: Optional[str] = None
    size: Optional[int] = None
    type: Optional[str] = None
    document_type: Optional[str] = Field(default=None, alias="documentType")
    uploaded_at: Optional[str] = Field(default=None, alias="uploadedAt")
    url: Optional[str] = None
    download_url: Optional[str] = Field(default=None, alias="downloadUrl")

    class Config:
        populate_by_name = True


class DocumentsByLoanResponseDTO(BaseModel):
    success: bool = True
    loan_id: str = Field(alias="loanId")
    total: int
    existing_structure_count: int = Field(alias="existingStructureCount")
    new_structure_count: int = Field(alias="newStructureCount")
    documents: List[LocatedDocumentDTO]
    grouped_by_folder: Dict[str, List[LocatedDocumentDTO]] = Field(alias="groupedByFolder")

    class Config:
        populate_by_name = True


class DocumentRecordDTO(BaseModel):
    """Metadata record as stored in the collection store."""
    id: str
    loan_id: Optional[str] = Field(default=None, alias="loanId")
    file_name: Optional[str] = Field(default=None, alias="fileName")
    original_name: Optional[str] = Field(default=None, alias="originalName")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    file_size: Optional[int] = Field(default=None, alias="fileSize")
    storage_key: str = Field(alias="storageKey")
    folder_path: Optional[str] = Field(default=None, alias="folderPath")
    document_type: Optional[str] = Field(default=None, alias="documentType")
    uploaded_by: Optional[str] = Field(default=None, alias="uploadedBy")
    uploader_name: Optional[str] = Field(default=None, alias="uploaderName")
    description: Optional[str] = None
    upload_date: Optional[str] = Field(default=None, alias="uploadDate")
    is_active: bool = Field(default=True, alias="isActive")
    status: Optional[str] = None
    search_terms: List[str] = Field(default=[], alias="searchTerms")

    class Config:
        populate_by_name = True


class SweepResponseDTO(BaseModel):
    scanned: int
    orphans: List[str]
    deleted: List[str]


class UserCreateDTO(BaseModel):
    username: str
    password: str
    name: str
    role: str = "user"
    email: Optional[str] = None
    phone: Optional[str] = None
    loan_access: List[str] = Field(default=[], alias="loanAccess")

    class Config:
        populate_by_name = True


class UserDTO(BaseModel):
    id: str
    username: str
    name: Optional[str] = None
    role: str
    email: Optional[str] = None
    phone: Optional[str] = None
    loan_access: List[str] = Field(default=[], alias="loanAccess")
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    class Config:
        populate_by_name = True


class LoanAccessUpdateDTO(BaseModel):
    loan_ids: List[str] = Field(alias="loanIds")

    class Config:
        populate_by_name = True


class ErrorResponseDTO(BaseModel):
    """Error response DTO."""
    error: str
    detail: Optional[Any] = None
    code: Optional[str] = None
