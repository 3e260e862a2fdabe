"""
Batch Orchestrator - runs each file of an upload batch through
validate -> build key -> write blob -> record metadata.

Files are processed one at a time in submission order. A failure at any
step marks that file FAILED with a reason and the loop moves on; nothing
raised by a single file escapes the batch. There is no rollback: a file
that fails at the metadata step leaves its blob behind.

Example Usage:
    orchestrator = BatchOrchestrator(storage, db, UploadSurface.structured())
    result = await orchestrator.process_batch(files, loan_id="BIZLN-4189")
    if result.status == "partial":
        ...
"""
import os
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, BinaryIO, Callable, Dict, List, Optional

from .blob_writer import BlobWriter
from .database.base import DatabaseError, DatabaseInterface
from .document_classifier import DocumentClassifier, default_classifier
from .file_validator import FileValidator, UploadSurface
from .key_builder import build_key, legacy_identity, storage_filename
from .metadata_recorder import MetadataRecordError, MetadataRecorder
from .retry import RetryPolicy
from .storage.base import FileStorageInterface, StorageError
from ..core.config import LOAN_ID_PREFIX
from ..core.logging_config import get_logger
from ..domain.value_objects import StorageConvention
from ..utils.document_utils import create_document_record
from ..utils.validators import UnsafePathError, normalize_separators, validate_folder_path

logger = get_logger(__name__)

_DIGITS = re.compile(r"\d+")


class FileState(Enum):
    """Per-file pipeline state."""
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureReason(Enum):
    VALIDATION = "validation"
    STORAGE = "storage"
    DATABASE = "database"
    DEADLINE = "deadline"


@dataclass
class BatchFile:
    """
    One file of a submitted batch.

    ``folder_path`` is the relative folder the file came from in a folder
    upload (``4189_SANTRAM/kyc``), if the client sent one.
    """
    filename: str
    content_type: Optional[str]
    stream: BinaryIO
    size: Optional[int] = None
    folder_path: Optional[str] = None

    @classmethod
    def from_parts(
        cls,
        filename: str,
        content_type: Optional[str],
        stream: BinaryIO,
        size: Optional[int] = None,
        folder_path: Optional[str] = None
    ) -> "BatchFile":
        """Build a BatchFile, splitting a relative path sent as the file name."""
        name = normalize_separators(filename or "")
        if "/" in name:
            directory, name = name.rsplit("/", 1)
            folder_path = folder_path or directory
        return cls(filename=name, content_type=content_type, stream=stream, size=size, folder_path=folder_path)

    @property
    def top_folder(self) -> Optional[str]:
        if not self.folder_path:
            return None
        segments = [s for s in normalize_separators(self.folder_path).split("/") if s]
        return segments[0] if segments else None


@dataclass
class FileOutcome:
    """What happened to one file."""
    index: int
    filename: str
    state: FileState = FileState.PENDING
    reason: Optional[FailureReason] = None
    error: Optional[str] = None
    storage_key: Optional[str] = None
    location: Optional[str] = None
    document_id: Optional[str] = None
    size: Optional[int] = None
    mime_type: Optional[str] = None
    document_type: Optional[str] = None
    folder_path: Optional[str] = None
    completed_at: Optional[datetime] = None

    def mark_succeeded(self):
        self.state = FileState.SUCCEEDED
        self.completed_at = datetime.now()

    def mark_failed(self, reason: FailureReason, error: str):
        self.state = FileState.FAILED
        self.reason = reason
        self.error = error
        self.completed_at = datetime.now()


@dataclass
class BatchResult:
    loan_id: str
    full_name: str
    outcomes: List[FileOutcome] = field(default_factory=list)

    @property
    def successful(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if o.state is FileState.SUCCEEDED]

    @property
    def failed(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if o.state is FileState.FAILED]

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def success(self) -> bool:
        """True when at least one file succeeded."""
        return bool(self.successful)

    @property
    def status(self) -> str:
        """``success``, ``partial`` or ``failure``."""
        if not self.outcomes or not self.successful:
            return "failure"
        if self.failed:
            return "partial"
        return "success"

    @property
    def only_validation_failures(self) -> bool:
        failed = self.failed
        return bool(failed) and all(o.reason is FailureReason.VALIDATION for o in failed)

    @property
    def errors(self) -> List[Dict[str, Any]]:
        return [
            {"file": o.filename, "reason": o.reason.value if o.reason else None, "error": o.error}
            for o in self.failed
        ]


class BatchDeadline:
    """
    Wall-clock budget for one batch.

    The orchestrator checks it before starting each file; the file in
    flight is always finished.
    """

    def __init__(self, seconds: Optional[float], clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds

    @classmethod
    def unlimited(cls) -> "BatchDeadline":
        return cls(None)

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at


def derive_loan_id(folder_name: Optional[str], prefix: str = LOAN_ID_PREFIX, now: Optional[float] = None) -> str:
    """
    Loan id from an uploaded folder name.

    ``4189_SANTRAM`` -> ``BIZLN-4189``. Without digits the last four digits
    of the current millisecond timestamp are used instead.
    """
    match = _DIGITS.search(folder_name or "")
    if match:
        return f"{prefix}{match.group(0)}"
    millis = str(int((now if now is not None else time.time()) * 1000))
    return f"{prefix}{millis[-4:]}"


def derive_full_name(folder_name: Optional[str]) -> str:
    """``4189_SANTRAM_KUMAR`` -> ``SANTRAM KUMAR``."""
    if not folder_name:
        return "AUTO_EXTRACTED"
    parts = folder_name.split("_")
    if len(parts) >= 2 and any(parts[1:]):
        return " ".join(p for p in parts[1:] if p).upper()
    return folder_name.upper()


def _measure(stream: BinaryIO) -> Optional[int]:
    try:
        position = stream.tell()
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(position)
        return size
    except (AttributeError, OSError, ValueError):
        return None


class BatchOrchestrator:
    """
    Coordinates the per-file pipeline for one upload surface.

    Attributes:
        storage: Object-store adapter
        db: Collection-store adapter
        surface: Upload surface (allow-list, ceiling, convention, whether to record)
        classifier: Document-type classifier
    """

    def __init__(
        self,
        storage: FileStorageInterface,
        db: DatabaseInterface,
        surface: UploadSurface,
        classifier: Optional[DocumentClassifier] = None,
        retry_policy: Optional[RetryPolicy] = None,
        id_factory: Optional[Callable[[], str]] = None
    ):
        self.storage = storage
        self.db = db
        self.surface = surface
        self.classifier = classifier or default_classifier
        self.validator = FileValidator(surface)
        self.writer = BlobWriter(storage)
        self.recorder = MetadataRecorder(db, retry_policy)
        self.id_factory = id_factory

    async def process_batch(
        self,
        files: List[BatchFile],
        loan_id: Optional[str] = None,
        full_name: Optional[str] = None,
        description: Optional[str] = None,
        uploaded_by: Optional[str] = None,
        uploader_name: Optional[str] = None,
        preserve_folder_structure: bool = False,
        deadline: Optional[BatchDeadline] = None
    ) -> BatchResult:
        """
        Process every file of a batch.

        Args:
            files: Files in submission order
            loan_id: Loan id; derived from the first file's folder when missing
            full_name: Borrower name; derived from the same folder when missing
            description: Free text stored with each record
            uploaded_by: Id of the uploading user
            uploader_name: Display name of the uploading user
            preserve_folder_structure: Keep each file's folder path and original name in its key
            deadline: Budget after which remaining files are not started

        Returns:
            BatchResult with one outcome per file, in submission order
        """
        top_folder = files[0].top_folder if files else None
        loan_id = (loan_id or "").strip() or derive_loan_id(top_folder)
        full_name = (full_name or "").strip() or derive_full_name(top_folder)
        deadline = deadline or BatchDeadline.unlimited()

        result = BatchResult(loan_id=loan_id, full_name=full_name)
        logger.info(f"Processing batch of {len(files)} file(s) for {loan_id} on {self.surface.name} surface")

        for index, batch_file in enumerate(files):
            outcome = FileOutcome(index=index, filename=batch_file.filename, mime_type=batch_file.content_type)
            result.outcomes.append(outcome)

            if deadline.expired():
                outcome.mark_failed(FailureReason.DEADLINE, "Batch time limit reached before this file was started")
                continue

            await self._process_file(
                batch_file,
                outcome,
                loan_id=loan_id,
                full_name=full_name,
                description=description,
                uploaded_by=uploaded_by,
                uploader_name=uploader_name,
                preserve_folder_structure=preserve_folder_structure
            )

        skipped = sum(1 for o in result.failed if o.reason is FailureReason.DEADLINE)
        if skipped:
            logger.warning(f"Deadline reached for {loan_id}: {skipped} file(s) not started")
        logger.info(
            f"Batch for {loan_id} finished: {len(result.successful)} succeeded, "
            f"{len(result.failed)} failed of {result.total}"
        )
        return result

    def _build_key(self, batch_file: BatchFile, loan_id: str, full_name: str, preserve: bool):
        if self.surface.convention is StorageConvention.LEGACY:
            return build_key(loan_id, batch_file.filename, legacy=legacy_identity(loan_id, full_name)), None

        folder = validate_folder_path(batch_file.folder_path) if preserve else None
        if folder:
            return build_key(loan_id, batch_file.filename, folder_path=folder), folder
        return build_key(loan_id, storage_filename(batch_file.filename, self.id_factory)), None

    async def _process_file(
        self,
        batch_file: BatchFile,
        outcome: FileOutcome,
        loan_id: str,
        full_name: str,
        description: Optional[str],
        uploaded_by: Optional[str],
        uploader_name: Optional[str],
        preserve_folder_structure: bool
    ):
        # Validate
        size = batch_file.size if batch_file.size is not None else _measure(batch_file.stream)
        outcome.size = size
        check = self.validator.validate(batch_file.content_type, size, batch_file.filename)
        if not check.ok:
            outcome.mark_failed(FailureReason.VALIDATION, check.reason)
            return

        try:
            key, folder = self._build_key(batch_file, loan_id, full_name, preserve_folder_structure)
        except UnsafePathError as e:
            logger.warning(f"Rejected {batch_file.filename}: {e}")
            outcome.mark_failed(FailureReason.VALIDATION, str(e))
            return

        outcome.storage_key = key
        outcome.folder_path = folder
        outcome.document_type = self.classifier.classify(batch_file.filename).value

        # Preserved keys are not unique per upload; never overwrite a recorded blob
        if folder and self.surface.record_metadata:
            try:
                existing = await self.db.find_document_by_storage_key(key)
            except DatabaseError as e:
                outcome.mark_failed(FailureReason.DATABASE, f"Could not check existing documents: {e}")
                return
            except Exception as e:
                logger.error(f"Existing-document lookup failed for {key}: {e}", exc_info=True)
                outcome.mark_failed(FailureReason.DATABASE, f"Could not check existing documents: {e}")
                return
            if existing:
                outcome.mark_failed(FailureReason.VALIDATION, f"A document already exists at {key}")
                return

        # Write blob
        if hasattr(batch_file.stream, "seekable") and batch_file.stream.seekable():
            batch_file.stream.seek(0)
        try:
            location_ref = await self.writer.write(
                key,
                batch_file.stream,
                content_type=batch_file.content_type,
                metadata={
                    "loan-id": loan_id,
                    "uploaded-by": uploader_name,
                    "original-name": batch_file.filename,
                }
            )
        except StorageError as e:
            outcome.mark_failed(FailureReason.STORAGE, f"Storage write failed: {e}")
            return
        outcome.location = location_ref.location

        if not self.surface.record_metadata:
            outcome.mark_succeeded()
            return

        # Record metadata
        record = create_document_record(
            loan_id=loan_id,
            file_name=key.rsplit("/", 1)[-1],
            original_name=batch_file.filename,
            mime_type=batch_file.content_type,
            file_size=size,
            storage_key=key,
            location=location_ref.location,
            folder_path=folder,
            document_type=outcome.document_type,
            uploaded_by=uploaded_by,
            uploader_name=uploader_name,
            customer_name=full_name,
            description=description,
            convention=self.surface.convention.value
        )
        try:
            outcome.document_id = await self.recorder.record(record)
        except MetadataRecordError as e:
            logger.error(f"Orphaned blob left at {key}: {e}")
            outcome.mark_failed(FailureReason.DATABASE, str(e))
            return

        outcome.mark_succeeded()
