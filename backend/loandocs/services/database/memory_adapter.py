"""
In-memory adapter implementing DatabaseInterface.
Perfect for demos and testing - stores all data in memory using Python dicts.
Data is lost on restart (on-demand, no persistence).
"""
from typing import List, Dict, Optional
from datetime import datetime
import copy
import uuid

from .base import DatabaseInterface, DuplicateKeyError
from ...utils.search_terms import matches_term


def _matches_loan(doc: Dict, loan_ids: List[str]) -> bool:
    return doc.get("loan_id") in loan_ids or doc.get("loan_number") in loan_ids


class MemoryAdapter(DatabaseInterface):
    """
    In-memory database adapter using Python dictionaries.
    Stores all data in memory - perfect for demos and testing.
    Data is lost when the application restarts.
    """

    def __init__(self):
        """
        Initialize in-memory adapter.
        Creates empty data structures for documents and users.
        """
        # In-memory storage: records by ID
        self._documents: Dict[str, Dict] = {}
        self._users: Dict[str, Dict] = {}

        # Unique indexes
        self._storage_key_index: Dict[str, str] = {}  # storage_key -> doc_id
        self._username_index: Dict[str, str] = {}  # username -> user_id

    async def initialize(self):
        """Initialize database (no-op for in-memory, but required by interface)."""
        self._rebuild_indexes()

    async def close(self):
        """Close database connection (no-op for in-memory)."""
        pass

    def _rebuild_indexes(self):
        """Rebuild unique indexes from stored records."""
        self._storage_key_index = {
            doc["storage_key"]: doc_id
            for doc_id, doc in self._documents.items()
            if doc.get("storage_key")
        }
        self._username_index = {
            user["username"]: user_id
            for user_id, user in self._users.items()
            if user.get("username")
        }

    def _persist(self):
        """Hook for adapters that write through to disk."""
        pass

    # Document operations
    async def insert_document(self, doc_data: Dict) -> str:
        """Insert a new document record."""
        storage_key = doc_data.get("storage_key")
        if not storage_key:
            raise ValueError("Document must have a 'storage_key' field")
        if storage_key in self._storage_key_index:
            raise DuplicateKeyError(f"Document with storage key '{storage_key}' already exists")

        doc = copy.deepcopy(doc_data)
        doc_id = doc.get("id") or uuid.uuid4().hex
        doc["id"] = doc_id
        if doc_id in self._documents:
            raise DuplicateKeyError(f"Document with id '{doc_id}' already exists")

        self._documents[doc_id] = doc
        self._storage_key_index[storage_key] = doc_id
        try:
            self._persist()
        except Exception:
            # Roll back so a retry can insert the same record
            del self._documents[doc_id]
            del self._storage_key_index[storage_key]
            raise
        return doc_id

    async def get_document(self, doc_id: str) -> Optional[Dict]:
        """Get a document by ID."""
        doc = self._documents.get(doc_id)
        return copy.deepcopy(doc) if doc else None

    async def find_documents_by_loan(self, loan_ids: List[str], include_inactive: bool = False) -> List[Dict]:
        """Get documents for any of the given loan ids, newest first."""
        results = [
            copy.deepcopy(doc)
            for doc in self._documents.values()
            if _matches_loan(doc, loan_ids) and (include_inactive or doc.get("is_active", True))
        ]
        results.sort(key=lambda d: d.get("upload_date") or "", reverse=True)
        return results

    async def find_document_by_storage_key(self, storage_key: str) -> Optional[Dict]:
        """Find a document by storage key."""
        doc_id = self._storage_key_index.get(storage_key)
        if doc_id and doc_id in self._documents:
            return copy.deepcopy(self._documents[doc_id])
        return None

    async def search_documents(self, term: str, loan_ids: Optional[List[str]] = None) -> List[Dict]:
        """Get active documents with a search term containing ``term``."""
        results = []
        for doc in self._documents.values():
            if not doc.get("is_active", True):
                continue
            if loan_ids and not _matches_loan(doc, loan_ids):
                continue
            if matches_term(doc.get("search_terms", []), term):
                results.append(copy.deepcopy(doc))
        results.sort(key=lambda d: d.get("upload_date") or "", reverse=True)
        return results

    async def update_document(self, doc_id: str, updates: Dict) -> Optional[Dict]:
        """Update a document. The storage key is immutable."""
        if doc_id not in self._documents:
            return None

        doc = self._documents[doc_id]
        for key, value in updates.items():
            if key in ("id", "storage_key"):
                continue
            doc[key] = value
        doc["updated_at"] = datetime.now().isoformat()
        self._persist()
        return copy.deepcopy(doc)

    async def delete_document(self, doc_id: str) -> bool:
        """Delete a document."""
        doc = self._documents.pop(doc_id, None)
        if doc is None:
            return False
        self._storage_key_index.pop(doc.get("storage_key"), None)
        self._persist()
        return True

    async def distinct_loan_ids(self) -> List[str]:
        """Get every loan id with at least one active document."""
        loan_ids = set()
        for doc in self._documents.values():
            if not doc.get("is_active", True):
                continue
            loan_id = doc.get("loan_id") or doc.get("loan_number")
            if loan_id:
                loan_ids.add(loan_id)
        return sorted(loan_ids)

    # User operations
    async def create_user(self, user_data: Dict) -> Dict:
        """Create a user record."""
        username = user_data.get("username")
        if not username:
            raise ValueError("User must have a 'username' field")
        if username in self._username_index:
            raise DuplicateKeyError(f"User '{username}' already exists")

        user = copy.deepcopy(user_data)
        user_id = user.get("id") or uuid.uuid4().hex
        user["id"] = user_id
        if "created_at" not in user:
            user["created_at"] = datetime.now().isoformat()

        self._users[user_id] = user
        self._username_index[username] = user_id
        try:
            self._persist()
        except Exception:
            del self._users[user_id]
            del self._username_index[username]
            raise
        return copy.deepcopy(user)

    async def get_user(self, user_id: str) -> Optional[Dict]:
        """Get a user by ID."""
        user = self._users.get(user_id)
        return copy.deepcopy(user) if user else None

    async def get_user_by_username(self, username: str) -> Optional[Dict]:
        """Get a user by username."""
        user_id = self._username_index.get(username)
        return await self.get_user(user_id) if user_id else None

    async def find_users(self, role: Optional[str] = None) -> List[Dict]:
        """Get all users, optionally filtered by role."""
        users = [
            copy.deepcopy(user)
            for user in self._users.values()
            if role is None or user.get("role") == role
        ]
        users.sort(key=lambda u: u.get("created_at") or "")
        return users

    async def update_user(self, user_id: str, updates: Dict) -> Optional[Dict]:
        """Update a user. The username is immutable."""
        if user_id not in self._users:
            return None

        user = self._users[user_id]
        for key, value in updates.items():
            if key in ("id", "username"):
                continue
            user[key] = value
        user["updated_at"] = datetime.now().isoformat()
        self._persist()
        return copy.deepcopy(user)

    async def delete_user(self, user_id: str) -> bool:
        """Delete a user. Documents referencing the user are left untouched."""
        user = self._users.pop(user_id, None)
        if user is None:
            return False
        self._username_index.pop(user.get("username"), None)
        self._persist()
        return True
