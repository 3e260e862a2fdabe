"""
JSON file-based adapter implementing DatabaseInterface.
Perfect for local demos - stores all data in JSON files for persistence.
Data persists between restarts, no database setup needed.
"""
import json
from pathlib import Path
from typing import Optional
from threading import Lock

from .base import TransientDatabaseError
from .memory_adapter import MemoryAdapter
from ...core.logging_config import get_logger

logger = get_logger(__name__)


class JSONAdapter(MemoryAdapter):
    """
    JSON file-based database adapter.
    Keeps the collections in memory and writes them through to JSON files on
    every change. Data persists between restarts.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """
        Initialize JSON adapter.

        Args:
            data_dir: Directory to store JSON files (defaults to backend/data/json_db)
        """
        super().__init__()
        if data_dir is None:
            from ...core.config import BASE_DIR
            data_dir = BASE_DIR / "data" / "json_db"

        self.data_dir = Path(data_dir)

        # JSON file paths
        self.documents_file = self.data_dir / "documents.json"
        self.users_file = self.data_dir / "users.json"

        # Lock for thread-safe file operations
        self._lock = Lock()

    async def initialize(self):
        """Initialize database - load data from JSON files."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._documents = self._load(self.documents_file)
        self._users = self._load(self.users_file)
        self._rebuild_indexes()
        logger.info(
            f"JSON database loaded from {self.data_dir}: "
            f"{len(self._documents)} documents, {len(self._users)} users"
        )

    async def close(self):
        """Close database - flush data to JSON files."""
        self._persist()

    def _load(self, path: Path) -> dict:
        if not path.exists():
            return {}
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Could not load {path.name}, starting empty: {e}")
            return {}

    def _write(self, path: Path, data: dict):
        # Write to a sibling file first so a crash never truncates the collection
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp_path.replace(path)

    def _persist(self):
        """Write both collections to disk."""
        with self._lock:
            try:
                self._write(self.documents_file, self._documents)
                self._write(self.users_file, self._users)
            except OSError as e:
                raise TransientDatabaseError(f"Could not write JSON database: {e}") from e
