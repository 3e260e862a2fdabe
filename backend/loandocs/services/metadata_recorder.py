"""
Metadata Recorder - persists one document record per stored blob.

Every call inserts a new record; nothing is upserted or overwritten.
Transient collection-store failures are retried by the RetryPolicy. When
attempts run out the blob written before this step is left in place; see
OrphanSweeper for the cleanup side.
"""
from typing import Any, Dict, Optional

from .database.base import DatabaseError, DatabaseInterface
from .retry import RetryExhaustedError, RetryPolicy
from ..core.logging_config import get_logger

logger = get_logger(__name__)


class MetadataRecordError(Exception):
    """Terminal failure to record a document."""

    def __init__(self, message: str, attempts: int = 1):
        super().__init__(message)
        self.attempts = attempts


class MetadataRecorder:
    def __init__(self, db: DatabaseInterface, retry_policy: Optional[RetryPolicy] = None):
        self.db = db
        self.retry_policy = retry_policy or RetryPolicy()

    async def record(self, document: Dict[str, Any]) -> str:
        """
        Insert a document record.

        Args:
            document: Record built by ``create_document_record``

        Returns:
            Inserted document id

        Raises:
            MetadataRecordError: After retries run out, or on a non-transient failure
        """
        storage_key = document.get("storage_key")

        async def _insert() -> str:
            return await self.db.insert_document(document)

        try:
            doc_id = await self.retry_policy.call(_insert, description=f"Recording {storage_key}")
        except RetryExhaustedError as e:
            raise MetadataRecordError(
                f"Database unavailable after {e.attempts} attempts: {e.last_error}",
                attempts=e.attempts
            ) from e
        except (DatabaseError, ValueError) as e:
            logger.error(f"Could not record {storage_key}: {e}")
            raise MetadataRecordError(f"Database rejected record: {e}") from e
        except Exception as e:
            logger.error(f"Unexpected error recording {storage_key}: {e}", exc_info=True)
            raise MetadataRecordError(f"Database error: {e}") from e

        logger.info(f"Recorded document {doc_id} for {storage_key}")
        return doc_id
