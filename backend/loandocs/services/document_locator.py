"""
Document Locator - finds every document for a loan across both storage
conventions.

- Legacy scan: the first root folder named ``{numericId}_...`` in the
  object store, listed in full.
- Structured scan: metadata records matching the loan under either
  ``loan_id`` or ``loan_number``; when the collection store has none, the
  object store is listed under ``documents/{candidate}/`` instead.

Results are concatenated, each tagged with its convention. Nothing is
deduplicated: a document stored under both layouts shows up twice.
"""
import mimetypes
from datetime import datetime
from typing import List, Optional, Union

from .database.base import DatabaseInterface
from .document_classifier import DocumentClassifier, default_classifier
from .key_builder import numeric_loan_id, parse_key, prefixed_loan_id, structured_prefix
from .storage.base import FileStorageInterface, ObjectInfo
from ..core.config import SIGNED_URL_EXPIRES_IN
from ..core.logging_config import get_logger
from ..domain.entities import LocatedDocument
from ..domain.value_objects import StorageConvention

logger = get_logger(__name__)

OBJECT_STORE = "object-store"
COLLECTION_STORE = "collection-store"


def loan_id_candidates(loan_id: str) -> List[str]:
    """Every spelling a loan id has been stored under, original first."""
    candidates = []
    for value in (loan_id.strip(), prefixed_loan_id(loan_id), numeric_loan_id(loan_id)):
        if value and value not in candidates:
            candidates.append(value)
    return candidates


def _parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.warning(f"Unparseable upload date on record: {value!r}")
        return None


def _is_placeholder(obj: ObjectInfo, prefix: str) -> bool:
    return obj.key == prefix or obj.key.endswith("/") or obj.size == 0


class DocumentLocator:
    def __init__(
        self,
        storage: FileStorageInterface,
        db: DatabaseInterface,
        signed_url_expires_in: int = SIGNED_URL_EXPIRES_IN,
        download_route: str = "/documents/download",
        classifier: Optional[DocumentClassifier] = None
    ):
        self.storage = storage
        self.db = db
        self.signed_url_expires_in = signed_url_expires_in
        self.download_route = download_route.rstrip("/")
        self.classifier = classifier or default_classifier

    async def find_by_loan(self, loan_id: str) -> List[LocatedDocument]:
        """
        Find all documents for a loan.

        Returns:
            Legacy entries followed by structured entries
        """
        legacy = await self.scan_legacy(loan_id)
        structured = await self.scan_structured(loan_id)
        logger.info(f"Located {len(legacy)} legacy and {len(structured)} structured document(s) for {loan_id}")
        return legacy + structured

    async def find_legacy_folder(self, loan_id: str) -> Optional[str]:
        """First root common prefix for the loan's customer folder, if any."""
        numeric = numeric_loan_id(loan_id)
        if not numeric:
            return None
        root = await self.storage.list_objects("", delimiter="/")
        for prefix in root.common_prefixes:
            if prefix.startswith(f"{numeric}_"):
                return prefix
        return None

    async def scan_legacy(self, loan_id: str) -> List[LocatedDocument]:
        folder = await self.find_legacy_folder(loan_id)
        if not folder:
            return []

        listing = await self.storage.list_objects(folder)
        documents = []
        for obj in listing.objects:
            if _is_placeholder(obj, folder):
                continue
            documents.append(await self._from_object(obj, StorageConvention.LEGACY, folder.rstrip("/")))
        return documents

    async def scan_structured(self, loan_id: str) -> List[LocatedDocument]:
        candidates = loan_id_candidates(loan_id)
        records = await self.db.find_documents_by_loan(candidates)
        if records:
            return [self._from_record(record) for record in records]

        documents = []
        for candidate in candidates:
            prefix = structured_prefix(candidate)
            listing = await self.storage.list_objects(prefix)
            for obj in listing.objects:
                if _is_placeholder(obj, prefix):
                    continue
                parsed = parse_key(obj.key)
                folder = parsed.folder if parsed else None
                documents.append(await self._from_object(obj, StorageConvention.STRUCTURED, folder))
        return documents

    async def _from_object(
        self,
        obj: ObjectInfo,
        convention: StorageConvention,
        folder: Optional[str]
    ) -> LocatedDocument:
        name = obj.key.rsplit("/", 1)[-1]
        url = await self.storage.get_file_url(obj.key, expires_in=self.signed_url_expires_in)
        return LocatedDocument(
            id=obj.key,
            name=name,
            storage_key=obj.key,
            convention=convention,
            source=OBJECT_STORE,
            folder=folder,
            size=obj.size,
            mime_type=mimetypes.guess_type(name)[0],
            document_type=self.classifier.classify(name).value,
            uploaded_at=obj.last_modified,
            url=url
        )

    def _from_record(self, record: dict) -> LocatedDocument:
        parsed = parse_key(record.get("storage_key", ""))
        convention = parsed.convention if parsed else StorageConvention.STRUCTURED
        return LocatedDocument(
            id=record["id"],
            name=record.get("original_name") or record.get("file_name") or "",
            storage_key=record.get("storage_key", ""),
            convention=convention,
            source=COLLECTION_STORE,
            folder=record.get("folder_path"),
            size=record.get("file_size"),
            mime_type=record.get("mime_type"),
            document_type=record.get("document_type"),
            uploaded_at=_parse_timestamp(record.get("upload_date")),
            download_url=f"{self.download_route}/{record['id']}"
        )
