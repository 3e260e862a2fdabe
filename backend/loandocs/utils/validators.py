"""
Validation utilities - Pure validation functions.
"""
import re
from typing import Optional

# Windows drive markers such as "C:" or "c:\"
_DRIVE_MARKER = re.compile(r"^[A-Za-z]:")


class UnsafePathError(ValueError):
    """Raised when a key component could escape its intended location."""
    pass


def normalize_separators(value: str) -> str:
    """Use forward slashes throughout."""
    return value.replace("\\", "/")


def validate_filename(filename: str) -> str:
    """
    Validate a file name used as the last key segment.

    Returns:
        The file name with separators normalized

    Raises:
        UnsafePathError: If the name is empty, contains a path, or is a dot segment
    """
    if not filename or not filename.strip():
        raise UnsafePathError("Filename cannot be empty")

    name = normalize_separators(filename)
    if "/" in name:
        raise UnsafePathError(f"Filename cannot contain a path: {filename}")
    if name in (".", "..") or _DRIVE_MARKER.match(name):
        raise UnsafePathError(f"Invalid filename: {filename}")
    return name


def validate_folder_path(folder_path: Optional[str]) -> Optional[str]:
    """
    Validate a relative folder path preserved from a folder upload.

    Returns:
        The path with separators normalized and empty segments dropped,
        or None when nothing remains

    Raises:
        UnsafePathError: On ".." segments or absolute-path markers
    """
    if folder_path is None:
        return None

    path = normalize_separators(folder_path).strip()
    if not path:
        return None
    if path.startswith("/") or _DRIVE_MARKER.match(path):
        raise UnsafePathError(f"Folder path must be relative: {folder_path}")

    segments = [segment for segment in path.split("/") if segment not in ("", ".")]
    if any(segment == ".." for segment in segments):
        raise UnsafePathError(f"Folder path cannot contain '..': {folder_path}")
    return "/".join(segments) or None


def validate_loan_id(loan_id: str) -> str:
    """
    Validate a loan id used as a key segment.

    Raises:
        UnsafePathError: If the id is empty or contains separators or dot segments
    """
    value = (loan_id or "").strip()
    if not value:
        raise UnsafePathError("Loan id cannot be empty")
    if "/" in normalize_separators(value) or value in (".", ".."):
        raise UnsafePathError(f"Invalid loan id: {loan_id}")
    return value
