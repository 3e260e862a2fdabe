"""
Object-store contract shared by the S3 bucket and the local filesystem
stand-in, plus the listing types the locator and sweeper read.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO, Dict, List, Optional


class StorageError(Exception):
    """
    Raised when the object store rejects or fails an operation.

    ``transient`` marks failures worth retrying (timeouts, throttling,
    connection resets) as opposed to permanent ones (access denied, bad key).
    """

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient


@dataclass
class ObjectInfo:
    """One object returned by a listing."""
    key: str
    size: int
    last_modified: Optional[datetime] = None


@dataclass
class ListResult:
    """
    Result of a prefix listing.

    With a delimiter, keys below the next delimiter are folded into
    ``common_prefixes`` (each ending with the delimiter) instead of ``objects``.
    """
    objects: List[ObjectInfo] = field(default_factory=list)
    common_prefixes: List[str] = field(default_factory=list)


class FileStorageInterface(ABC):
    """
    Object store holding both key layouts: legacy customer folders at the
    root and ``documents/{loanId}/...`` for structured uploads.
    """

    @abstractmethod
    async def save_file(
        self,
        file: BinaryIO,
        file_path: str,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None
    ) -> str:
        """
        Save a file-like object to storage.

        Args:
            file: Readable binary stream (read from its current position)
            file_path: Key where the file should be stored
            content_type: MIME type recorded with the object
            metadata: Side metadata stored alongside the object

        Returns:
            Direct location of the stored object
        """
        pass

    @abstractmethod
    async def get_file(self, file_path: str) -> bytes:
        """
        Retrieve a file from storage.

        Raises:
            FileNotFoundError: If no object exists at the key
        """
        pass

    @abstractmethod
    async def get_metadata(self, file_path: str) -> Dict:
        """
        Content type and side metadata stored with an object.

        Returns:
            ``{"content_type": str, "metadata": {name: value}}``
        """
        pass

    @abstractmethod
    async def delete_file(self, file_path: str) -> bool:
        """Delete a file, returning False if it did not exist."""
        pass

    @abstractmethod
    async def file_exists(self, file_path: str) -> bool:
        """Check if a file exists in storage."""
        pass

    @abstractmethod
    async def get_file_url(self, file_path: str, expires_in: Optional[int] = None) -> str:
        """
        Get a URL to access the file (for direct download/viewing).

        Args:
            file_path: Storage key of the file
            expires_in: Optional expiration time in seconds (for signed URLs)
        """
        pass

    @abstractmethod
    async def list_objects(self, prefix: str = "", delimiter: Optional[str] = None) -> ListResult:
        """
        List objects whose key starts with ``prefix``.

        Args:
            prefix: Key prefix to list under ("" for the bucket root)
            delimiter: Optional delimiter ("/") to group keys into common prefixes
        """
        pass

    @abstractmethod
    async def initialize(self):
        """Initialize storage (create buckets/directories, verify connections, etc.)."""
        pass

    @abstractmethod
    async def close(self):
        """Close storage connection (cleanup, close clients, etc.)."""
        pass
