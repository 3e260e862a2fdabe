"""
Domain layer - Contains business entities and domain logic.
This layer is independent of infrastructure and frameworks.
"""
from .entities import LegacyIdentity, LocatedDocument, LocationRef, ParsedKey
from .value_objects import (
    DocumentType,
    FolderPath,
    LoanId,
    StorageConvention,
    StorageKey,
    UserRole
)

__all__ = [
    "DocumentType",
    "FolderPath",
    "LegacyIdentity",
    "LoanId",
    "LocatedDocument",
    "LocationRef",
    "ParsedKey",
    "StorageConvention",
    "StorageKey",
    "UserRole"
]
