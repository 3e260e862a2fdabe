"""
Domain entities - Core business objects.
These represent the business concepts, not database models.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from .value_objects import StorageConvention, StorageKey


@dataclass(frozen=True)
class ParsedKey:
    """
    Components recovered from a storage key.

    For legacy keys ``loan_ref`` is the numeric customer id and ``folder`` the
    customer folder; for structured keys ``loan_ref`` is the loan id and
    ``folder`` the optional preserved folder path below it.
    """
    convention: StorageConvention
    loan_ref: str
    folder: Optional[str]
    file_name: str


@dataclass(frozen=True)
class LegacyIdentity:
    """Customer identity that selects the flat legacy layout."""
    customer_id: str
    customer_name: str


@dataclass(frozen=True)
class LocationRef:
    """Where a blob landed after a successful write."""
    storage_key: StorageKey
    location: str


@dataclass
class LocatedDocument:
    """
    A document found for a loan, from either the object store or the collection store.

    Object-store entries carry a signed ``url``; collection-store entries carry
    a ``download_url`` pointing at the authenticated proxy route instead.
    """
    id: str
    name: str
    storage_key: str
    convention: StorageConvention
    source: str  # "object-store" or "collection-store"
    folder: Optional[str] = None
    size: Optional[int] = None
    mime_type: Optional[str] = None
    document_type: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    url: Optional[str] = None
    download_url: Optional[str] = None

    @property
    def storage_label(self) -> str:
        return self.convention.label
