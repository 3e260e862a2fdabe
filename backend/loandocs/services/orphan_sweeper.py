"""
Reconciliation sweep for orphaned blobs: structured-convention objects
with no matching document record, left behind when a metadata insert
failed after the blob was written.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from .database.base import DatabaseInterface
from .key_builder import STRUCTURED_ROOT, structured_prefix
from .storage.base import FileStorageInterface
from ..core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class SweepReport:
    scanned: int = 0
    orphans: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)


class OrphanSweeper:
    def __init__(self, storage: FileStorageInterface, db: DatabaseInterface):
        self.storage = storage
        self.db = db

    async def sweep(self, loan_id: Optional[str] = None, delete: bool = False) -> SweepReport:
        """
        Find (and optionally delete) structured blobs without a record.

        Args:
            loan_id: Limit the sweep to one loan's prefix
            delete: Delete the orphans found

        Legacy customer folders are never touched; the object store is the
        only record of those files.
        """
        prefix = structured_prefix(loan_id) if loan_id else f"{STRUCTURED_ROOT}/"
        listing = await self.storage.list_objects(prefix)

        report = SweepReport()
        for obj in listing.objects:
            if obj.key.endswith("/"):
                continue
            report.scanned += 1
            if await self.db.find_document_by_storage_key(obj.key):
                continue
            report.orphans.append(obj.key)
            if delete and await self.storage.delete_file(obj.key):
                report.deleted.append(obj.key)

        logger.info(
            f"Orphan sweep under {prefix}: {report.scanned} scanned, "
            f"{len(report.orphans)} orphaned, {len(report.deleted)} deleted"
        )
        return report
