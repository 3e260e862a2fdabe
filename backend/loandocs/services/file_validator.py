"""
Per-file MIME type and size checks, configured per upload surface.
"""
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from ..core.config import ALLOWED_MIME_TYPES, LEGACY_MAX_UPLOAD_SIZE_MB, MAX_UPLOAD_SIZE_MB
from ..core.logging_config import get_logger
from ..domain.value_objects import StorageConvention

logger = get_logger(__name__)

OCTET_STREAM = "application/octet-stream"


@dataclass(frozen=True)
class UploadSurface:
    """
    Settings for one upload entry point.

    Attributes:
        name: Surface name used in logs
        allowed_mime_types: MIME allow-list
        max_size_bytes: Size ceiling for a single file
        convention: Storage layout keys are built in
        accept_octet_stream: Accept ``application/octet-stream`` for unknown-but-permitted uploads
        record_metadata: Whether a document record is written after the blob
    """
    name: str
    allowed_mime_types: FrozenSet[str]
    max_size_bytes: int
    convention: StorageConvention
    accept_octet_stream: bool = False
    record_metadata: bool = True

    @classmethod
    def structured(
        cls,
        max_size_mb: int = MAX_UPLOAD_SIZE_MB,
        allowed_mime_types: Optional[Iterable[str]] = None
    ) -> "UploadSurface":
        return cls(
            name="structured",
            allowed_mime_types=frozenset(allowed_mime_types or ALLOWED_MIME_TYPES),
            max_size_bytes=max_size_mb * 1024 * 1024,
            convention=StorageConvention.STRUCTURED,
            accept_octet_stream=True,
            record_metadata=True
        )

    @classmethod
    def legacy(
        cls,
        max_size_mb: int = LEGACY_MAX_UPLOAD_SIZE_MB,
        allowed_mime_types: Optional[Iterable[str]] = None
    ) -> "UploadSurface":
        return cls(
            name="legacy",
            allowed_mime_types=frozenset(allowed_mime_types or ALLOWED_MIME_TYPES),
            max_size_bytes=max_size_mb * 1024 * 1024,
            convention=StorageConvention.LEGACY,
            accept_octet_stream=False,
            record_metadata=False
        )


@dataclass
class ValidationResult:
    ok: bool
    reason: Optional[str] = None

    @classmethod
    def accept(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def reject(cls, reason: str) -> "ValidationResult":
        return cls(ok=False, reason=reason)


class FileValidator:
    """Checks one file against an upload surface. Never raises for bad input."""

    def __init__(self, surface: UploadSurface):
        self.surface = surface

    def is_allowed_type(self, mime_type: Optional[str]) -> bool:
        mime = (mime_type or "").split(";")[0].strip().lower()
        if mime in self.surface.allowed_mime_types:
            return True
        return self.surface.accept_octet_stream and mime == OCTET_STREAM

    def validate(self, mime_type: Optional[str], size_bytes: Optional[int], filename: str = "") -> ValidationResult:
        """
        Validate a single file.

        Args:
            mime_type: Declared content type of the part
            size_bytes: Size of the payload in bytes
            filename: Used for log messages only

        Returns:
            ValidationResult with a human-readable reason on rejection
        """
        if not self.is_allowed_type(mime_type):
            logger.warning(f"Rejected {filename or 'file'}: type {mime_type!r} not allowed on {self.surface.name} surface")
            return ValidationResult.reject(f"File type {mime_type or 'unknown'} is not allowed")

        if size_bytes is None or size_bytes < 0:
            return ValidationResult.reject("File size could not be determined")

        if size_bytes > self.surface.max_size_bytes:
            limit_mb = self.surface.max_size_bytes // (1024 * 1024)
            logger.warning(f"Rejected {filename or 'file'}: {size_bytes} bytes exceeds {limit_mb}MB")
            return ValidationResult.reject(f"File exceeds the {limit_mb}MB size limit")

        return ValidationResult.accept()
