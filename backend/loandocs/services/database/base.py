"""
Collection-store contract: document metadata records and user records.
"""
from abc import ABC, abstractmethod
from typing import List, Dict, Optional


class DatabaseError(Exception):
    """Base class for collection-store failures."""
    pass


class TransientDatabaseError(DatabaseError):
    """Connectivity or availability failure; the same call may succeed later."""
    pass


class DuplicateKeyError(DatabaseError):
    """A uniqueness constraint (storage_key, username) was violated."""
    pass


class DatabaseInterface(ABC):
    """
    Collection store behind the pipeline and the read endpoints.

    Two collections are managed: ``documents`` (unique ``storage_key``) and
    ``users`` (unique ``username``). Records are plain dicts with snake_case
    fields; adapters return copies, never live references.
    """

    # Document operations
    @abstractmethod
    async def insert_document(self, doc_data: Dict) -> str:
        """
        Insert a new document record and return its id.
        Never overwrites: a second record with the same storage_key raises DuplicateKeyError.
        """
        pass

    @abstractmethod
    async def get_document(self, doc_id: str) -> Optional[Dict]:
        """Get a document by ID."""
        pass

    @abstractmethod
    async def find_documents_by_loan(self, loan_ids: List[str], include_inactive: bool = False) -> List[Dict]:
        """
        Get documents whose ``loan_id`` or historical ``loan_number`` matches any
        of ``loan_ids``, newest first.
        """
        pass

    @abstractmethod
    async def find_document_by_storage_key(self, storage_key: str) -> Optional[Dict]:
        """Find a document by its storage key."""
        pass

    @abstractmethod
    async def search_documents(self, term: str, loan_ids: Optional[List[str]] = None) -> List[Dict]:
        """Get active documents with a search term containing ``term``."""
        pass

    @abstractmethod
    async def update_document(self, doc_id: str, updates: Dict) -> Optional[Dict]:
        """Update a document."""
        pass

    @abstractmethod
    async def delete_document(self, doc_id: str) -> bool:
        """Delete a document."""
        pass

    @abstractmethod
    async def distinct_loan_ids(self) -> List[str]:
        """Get every loan id that has at least one active document."""
        pass

    # User operations
    @abstractmethod
    async def create_user(self, user_data: Dict) -> Dict:
        """Create a user record."""
        pass

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[Dict]:
        """Get a user by ID."""
        pass

    @abstractmethod
    async def get_user_by_username(self, username: str) -> Optional[Dict]:
        """Get a user by username."""
        pass

    @abstractmethod
    async def find_users(self, role: Optional[str] = None) -> List[Dict]:
        """Get all users, optionally filtered by role, oldest first."""
        pass

    @abstractmethod
    async def update_user(self, user_id: str, updates: Dict) -> Optional[Dict]:
        """Update a user."""
        pass

    @abstractmethod
    async def delete_user(self, user_id: str) -> bool:
        """Delete a user."""
        pass

    @abstractmethod
    async def initialize(self):
        """Initialize database (create collections, indexes, etc.)."""
        pass

    @abstractmethod
    async def close(self):
        """Close database connection."""
        pass
