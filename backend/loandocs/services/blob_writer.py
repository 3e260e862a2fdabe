"""
Blob Writer - writes one payload to the object store under a computed key.

There is no retry here: a failed write fails the file, and the caller must
not record metadata for it.
"""
from typing import BinaryIO, Dict, Optional
from urllib.parse import quote

from .storage.base import FileStorageInterface, StorageError
from ..core.logging_config import get_logger
from ..domain.entities import LocationRef
from ..domain.value_objects import StorageKey

logger = get_logger(__name__)


def _ascii_metadata(metadata: Optional[Dict[str, str]]) -> Dict[str, str]:
    # Object-store side metadata travels as HTTP headers
    clean = {}
    for name, value in (metadata or {}).items():
        if value is None:
            continue
        clean[name] = quote(str(value), safe=" -_.,()@")
    return clean


class BlobWriter:
    """Writes file streams through a FileStorageInterface adapter."""

    def __init__(self, storage: FileStorageInterface):
        self.storage = storage

    async def write(
        self,
        key: StorageKey,
        stream: BinaryIO,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None
    ) -> LocationRef:
        """
        Write bytes to ``key``.

        Raises:
            StorageError: On any failure; adapter-specific errors are wrapped
        """
        try:
            location = await self.storage.save_file(
                stream,
                key,
                content_type=content_type,
                metadata=_ascii_metadata(metadata)
            )
        except StorageError:
            logger.error(f"Blob write failed for {key}", exc_info=True)
            raise
        except Exception as e:
            logger.error(f"Blob write failed for {key}: {e}", exc_info=True)
            raise StorageError(f"Failed to write {key}: {e}") from e

        logger.info(f"Stored blob {key}")
        return LocationRef(storage_key=key, location=location)
