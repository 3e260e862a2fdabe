"""
Storage key construction and parsing.

Two layouts coexist in the bucket:

- legacy (flat customer folders)::

      {customerId}_{CUSTOMER NAME}/{fileName}

- structured::

      documents/{loanId}/{fileName}
      documents/{loanId}/{folderPath}/{fileName}

Every key is derivable from the loan id, the file name and the optional
folder path alone, so readers can rebuild candidate keys or prefixes without
consulting the collection store.
"""
import re
import uuid
from typing import Callable, Optional

from ..core.config import LOAN_ID_PREFIX
from ..domain.entities import LegacyIdentity, ParsedKey
from ..domain.value_objects import StorageConvention, StorageKey
from ..utils.validators import validate_filename, validate_folder_path, validate_loan_id

STRUCTURED_ROOT = "documents"

_LEGACY_FOLDER = re.compile(r"^(\d+)_(.+)$")
_WHITESPACE = re.compile(r"\s+")


def numeric_loan_id(loan_id: str, prefix: str = LOAN_ID_PREFIX) -> str:
    """Strip the business prefix: ``BIZLN-4189`` -> ``4189``."""
    value = loan_id.strip()
    if prefix and value.startswith(prefix):
        return value[len(prefix):]
    return value


def prefixed_loan_id(loan_id: str, prefix: str = LOAN_ID_PREFIX) -> str:
    """Add the business prefix when missing: ``4189`` -> ``BIZLN-4189``."""
    value = loan_id.strip()
    if not prefix or value.startswith(prefix):
        return value
    return f"{prefix}{value}"


def customer_folder(identity: LegacyIdentity) -> str:
    """
    Legacy folder name: ``4189_SANTRAM KUMAR``.

    Raises:
        UnsafePathError: If the customer name is not a single key segment
    """
    name = validate_filename(identity.customer_name.strip())
    name = _WHITESPACE.sub(" ", name.upper())
    return f"{identity.customer_id}_{name}"


def legacy_identity(loan_id: str, customer_name: str) -> LegacyIdentity:
    """Build the legacy identity for a loan, stripping the loan-id prefix."""
    return LegacyIdentity(customer_id=numeric_loan_id(loan_id), customer_name=customer_name)


def storage_filename(original_name: str, id_factory: Callable[[], str] = None) -> str:
    """
    Collision-free stored name: ``{uuid}-{original name with spaces as hyphens}``.

    Args:
        original_name: User-supplied file name
        id_factory: Source of the unique prefix (uuid4 by default)
    """
    unique = id_factory() if id_factory else str(uuid.uuid4())
    return f"{unique}-{_WHITESPACE.sub('-', original_name.strip())}"


def structured_prefix(loan_id: str) -> str:
    """Prefix every structured key for a loan starts with."""
    return f"{STRUCTURED_ROOT}/{validate_loan_id(loan_id)}/"


def build_key(
    loan_id: str,
    file_name: str,
    folder_path: Optional[str] = None,
    legacy: Optional[LegacyIdentity] = None
) -> StorageKey:
    """
    Derive the storage key for one file.

    Args:
        loan_id: Loan identifier (``BIZLN-4189``)
        file_name: Last key segment; already uuid-prefixed unless the caller preserves folders
        folder_path: Optional relative folder preserved from a folder upload
        legacy: Customer identity selecting the flat legacy layout

    Raises:
        UnsafePathError: If any component contains ``..`` segments or absolute markers
    """
    name = validate_filename(file_name)

    if legacy is not None:
        validate_loan_id(legacy.customer_id)
        return StorageKey(f"{customer_folder(legacy)}/{name}")

    prefix = structured_prefix(loan_id)
    folder = validate_folder_path(folder_path)
    if folder:
        return StorageKey(f"{prefix}{folder}/{name}")
    return StorageKey(f"{prefix}{name}")


def parse_key(key: str) -> Optional[ParsedKey]:
    """
    Recover the convention and components of a key.

    Returns:
        ParsedKey, or None when the key follows neither layout
        (folder placeholders and stray root objects included)
    """
    if not key or key.endswith("/"):
        return None

    segments = key.split("/")
    if segments[0] == STRUCTURED_ROOT:
        if len(segments) < 3:
            return None
        folder = "/".join(segments[2:-1]) or None
        return ParsedKey(StorageConvention.STRUCTURED, segments[1], folder, segments[-1])

    match = _LEGACY_FOLDER.match(segments[0])
    if match and len(segments) >= 2:
        return ParsedKey(StorageConvention.LEGACY, match.group(1), segments[0], segments[-1])

    return None
