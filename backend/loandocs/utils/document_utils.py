"""
Document utility functions for building document records.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from .search_terms import extract_search_terms


def create_document_record(
    loan_id: str,
    file_name: str,
    original_name: str,
    mime_type: str,
    file_size: int,
    storage_key: str,
    location: Optional[str] = None,
    folder_path: Optional[str] = None,
    document_type: str = "Other",
    uploaded_by: Optional[str] = None,
    uploader_name: Optional[str] = None,
    customer_name: Optional[str] = None,
    description: Optional[str] = None,
    convention: str = "structured",
    doc_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Create a standardized document record dictionary.

    Args:
        loan_id: Loan the document belongs to
        file_name: Stored (possibly uuid-prefixed) file name
        original_name: Name the user uploaded
        mime_type: Content type
        file_size: Size in bytes
        storage_key: Object-store key holding the bytes
        location: Direct location returned by the store
        folder_path: Preserved folder path, if any
        document_type: Classifier output
        uploaded_by: Id of the uploading user
        uploader_name: Display name of the uploading user
        customer_name: Borrower name for the loan
        description: Free-text description from the upload form
        convention: Storage convention value of the key
        doc_id: Fixed id (generated when omitted)

    Returns:
        Document record dictionary
    """
    upload_time = datetime.now().isoformat()

    return {
        "id": doc_id or uuid.uuid4().hex,
        "loan_id": loan_id,
        "file_name": file_name,
        "original_name": original_name,
        "mime_type": mime_type,
        "file_size": file_size,
        "storage_key": storage_key,
        "location": location,
        "folder_path": folder_path,
        "document_type": document_type,
        "uploaded_by": uploaded_by,
        "uploader_name": uploader_name,
        "customer_name": customer_name,
        "description": description,
        "convention": convention,
        "upload_date": upload_time,
        "is_active": True,
        "status": "active",
        "search_terms": extract_search_terms(loan_id, uploader_name, description, original_name),
    }
