"""
Shared dependencies for routers.

The ServiceContainer owns the object-store and collection-store clients for
the life of the process: built once from configuration, opened at startup,
closed at shutdown. Handlers reach services through the getters below.
"""
from pathlib import Path
from typing import Optional

from ..core.config import (
    BATCH_DEADLINE_SECONDS,
    DATABASE_TYPE,
    JSON_DB_PATH,
    LOCAL_STORAGE_DIR,
    SIGNED_URL_EXPIRES_IN,
    STORAGE_TYPE
)
from ..core.logging_config import get_logger
from ..services.batch_orchestrator import BatchDeadline, BatchOrchestrator
from ..services.database import DatabaseFactory, DatabaseInterface
from ..services.document_classifier import DocumentClassifier, default_classifier
from ..services.document_locator import DocumentLocator
from ..services.file_validator import UploadSurface
from ..services.orphan_sweeper import OrphanSweeper
from ..services.retry import RetryPolicy
from ..services.storage import FileStorageFactory, FileStorageInterface
from ..services.user_service import UserService

logger = get_logger(__name__)


class ServiceContainer:
    """
    Process-wide services with an explicit lifecycle.

    Attributes:
        storage: Object-store adapter
        db: Collection-store adapter
        retry_policy: Retry policy for metadata inserts
        batch_deadline_seconds: Time budget per upload batch (None for no limit)
    """

    def __init__(
        self,
        storage: FileStorageInterface,
        db: DatabaseInterface,
        retry_policy: Optional[RetryPolicy] = None,
        classifier: Optional[DocumentClassifier] = None,
        structured_surface: Optional[UploadSurface] = None,
        legacy_surface: Optional[UploadSurface] = None,
        batch_deadline_seconds: Optional[float] = BATCH_DEADLINE_SECONDS,
        signed_url_expires_in: int = SIGNED_URL_EXPIRES_IN
    ):
        self.storage = storage
        self.db = db
        self.retry_policy = retry_policy or RetryPolicy()
        self.classifier = classifier or default_classifier
        self.structured_surface = structured_surface or UploadSurface.structured()
        self.legacy_surface = legacy_surface or UploadSurface.legacy()
        self.batch_deadline_seconds = batch_deadline_seconds

        self.structured_uploads = BatchOrchestrator(
            storage, db, self.structured_surface, self.classifier, self.retry_policy
        )
        self.legacy_uploads = BatchOrchestrator(
            storage, db, self.legacy_surface, self.classifier, self.retry_policy
        )
        self.locator = DocumentLocator(
            storage, db, signed_url_expires_in=signed_url_expires_in, classifier=self.classifier
        )
        self.sweeper = OrphanSweeper(storage, db)
        self.users = UserService(db)
        self.is_open = False

    @classmethod
    def from_config(cls) -> "ServiceContainer":
        """Build adapters from STORAGE_TYPE / DATABASE_TYPE settings."""
        storage_kwargs = {}
        if STORAGE_TYPE.lower() == "local" and LOCAL_STORAGE_DIR:
            storage_kwargs["base_dir"] = Path(LOCAL_STORAGE_DIR)
        db_kwargs = {}
        if DATABASE_TYPE.lower() == "json" and JSON_DB_PATH:
            db_kwargs["data_dir"] = Path(JSON_DB_PATH)

        storage = FileStorageFactory.create(STORAGE_TYPE, **storage_kwargs)
        db = DatabaseFactory.create(DATABASE_TYPE, **db_kwargs)
        return cls(storage, db)

    def new_deadline(self) -> BatchDeadline:
        return BatchDeadline(self.batch_deadline_seconds)

    async def open(self):
        if self.is_open:
            return
        await self.storage.initialize()
        await self.db.initialize()
        self.is_open = True
        logger.info(
            f"Services ready (storage: {type(self.storage).__name__}, database: {type(self.db).__name__})"
        )

    async def close(self):
        if not self.is_open:
            return
        await self.db.close()
        await self.storage.close()
        self.is_open = False
        logger.info("Services closed")


# Set on startup (or by tests before startup)
container: Optional[ServiceContainer] = None


def set_container(new_container: Optional[ServiceContainer]):
    global container
    container = new_container


def get_container() -> Optional[ServiceContainer]:
    return container


async def initialize_services(new_container: Optional[ServiceContainer] = None) -> ServiceContainer:
    """
    Open the service container, building it from config if none is set.

    Args:
        new_container: Container to install (tests inject one here or via set_container)
    """
    global container
    if new_container is not None:
        container = new_container
    elif container is None:
        container = ServiceContainer.from_config()
    await container.open()
    return container


async def shutdown_services():
    if container is not None:
        await container.close()


def _require_container() -> ServiceContainer:
    if container is None or not container.is_open:
        raise RuntimeError("Services not initialized")
    return container


def get_storage() -> FileStorageInterface:
    """Get the object-store adapter (dependency injection)."""
    return _require_container().storage


def get_db_service() -> DatabaseInterface:
    """Get the collection-store adapter (dependency injection)."""
    return _require_container().db


def get_upload_orchestrator(legacy: bool = False) -> BatchOrchestrator:
    """Get the batch orchestrator for an upload surface (dependency injection)."""
    services = _require_container()
    return services.legacy_uploads if legacy else services.structured_uploads


def get_document_locator() -> DocumentLocator:
    """Get the document locator (dependency injection)."""
    return _require_container().locator


def get_orphan_sweeper() -> OrphanSweeper:
    return _require_container().sweeper


def get_user_service() -> UserService:
    """Get the user service (dependency injection)."""
    return _require_container().users


def new_batch_deadline() -> BatchDeadline:
    return _require_container().new_deadline()
