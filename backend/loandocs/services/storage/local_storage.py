"""
Filesystem object store for development and tests.

Keys map to relative paths below a base directory; each object gets a
``.meta.json`` sibling holding its content type and side metadata.
"""
import json
import shutil
import asyncio
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional
from urllib.parse import quote

from .base import FileStorageInterface, ListResult, ObjectInfo, StorageError

# Side metadata lives next to each object under this suffix
_META_SUFFIX = ".meta.json"


class LocalFileStorage(FileStorageInterface):
    """Object store rooted at ``base_dir``; URLs point at the files router."""

    def __init__(self, base_dir: Optional[Path] = None, url_prefix: str = "/files"):
        """
        Nothing touches disk until ``initialize``.

        Args:
            base_dir: Storage root (defaults to backend/uploads)
            url_prefix: Route prefix that serves stored files over HTTP
        """
        if base_dir is None:
            from ...core.config import BASE_DIR
            base_dir = BASE_DIR / "uploads"

        self.base_dir = Path(base_dir)
        self.url_prefix = url_prefix.rstrip("/")

    async def initialize(self):
        """Create the storage root."""
        self.base_dir.mkdir(parents=True, exist_ok=True)

    async def close(self):
        """Nothing to release."""
        pass

    def _get_full_path(self, file_path: str) -> Path:
        """Filesystem path for a key, refusing keys that resolve outside the root."""
        normalized = Path(file_path).as_posix().lstrip('/')
        full_path = (self.base_dir / normalized).resolve()
        # Keys must never resolve outside the storage root
        if self.base_dir.resolve() not in full_path.parents and full_path != self.base_dir.resolve():
            raise StorageError(f"Key escapes storage root: {file_path}")
        return full_path

    def _meta_path(self, full_path: Path) -> Path:
        return full_path.with_name(full_path.name + _META_SUFFIX)

    async def save_file(
        self,
        file: BinaryIO,
        file_path: str,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None
    ) -> str:
        """Copy a stream to disk and write its side metadata."""
        if file_path.endswith(_META_SUFFIX):
            raise StorageError(f"Keys ending in {_META_SUFFIX} are reserved: {file_path}")
        full_path = self._get_full_path(file_path)

        def _save():
            full_path.parent.mkdir(parents=True, exist_ok=True)
            with open(full_path, "wb") as buffer:
                shutil.copyfileobj(file, buffer)
            side = {"content_type": content_type or "application/octet-stream", "metadata": metadata or {}}
            self._meta_path(full_path).write_text(json.dumps(side), encoding="utf-8")

        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, _save)
        except OSError as e:
            raise StorageError(f"Failed to write {file_path}: {e}", transient=True) from e

        return f"{self.url_prefix}/{quote(file_path)}"

    async def get_file(self, file_path: str) -> bytes:
        """Read an object's bytes."""
        full_path = self._get_full_path(file_path)

        if not full_path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")

        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, full_path.read_bytes)

    async def get_metadata(self, file_path: str) -> Dict:
        """Return the content type and side metadata stored with a file."""
        full_path = self._get_full_path(file_path)
        if not full_path.is_file():
            raise FileNotFoundError(f"File not found: {file_path}")
        meta_path = self._meta_path(full_path)
        if not meta_path.exists():
            return {"content_type": "application/octet-stream", "metadata": {}}
        return json.loads(meta_path.read_text(encoding="utf-8"))

    async def delete_file(self, file_path: str) -> bool:
        """Delete an object and its side metadata."""
        full_path = self._get_full_path(file_path)

        if not full_path.is_file():
            return False

        def _delete():
            full_path.unlink()
            meta_path = self._meta_path(full_path)
            if meta_path.exists():
                meta_path.unlink()

        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, _delete)
        return True

    async def file_exists(self, file_path: str) -> bool:
        """True if an object (not a directory) exists at the key."""
        return self._get_full_path(file_path).is_file()

    async def get_file_url(self, file_path: str, expires_in: Optional[int] = None) -> str:
        """
        Relative URL served by the files router. Expiry does not apply.
        """
        return f"{self.url_prefix}/{quote(file_path)}"

    async def list_objects(self, prefix: str = "", delimiter: Optional[str] = None) -> ListResult:
        """List stored files below a key prefix, optionally grouped by delimiter."""

        def _walk() -> List[ObjectInfo]:
            if not self.base_dir.exists():
                return []
            found = []
            for path in sorted(self.base_dir.rglob("*")):
                if not path.is_file() or path.name.endswith(_META_SUFFIX):
                    continue
                key = path.relative_to(self.base_dir).as_posix()
                if not key.startswith(prefix):
                    continue
                stat = path.stat()
                found.append(ObjectInfo(
                    key=key,
                    size=stat.st_size,
                    last_modified=datetime.fromtimestamp(stat.st_mtime)
                ))
            return found

        loop = asyncio.get_event_loop()
        objects = await loop.run_in_executor(None, _walk)

        if not delimiter:
            return ListResult(objects=objects)

        result = ListResult()
        for obj in objects:
            remainder = obj.key[len(prefix):]
            if delimiter in remainder:
                common = prefix + remainder.split(delimiter, 1)[0] + delimiter
                if common not in result.common_prefixes:
                    result.common_prefixes.append(common)
            else:
                result.objects.append(obj)
        return result
