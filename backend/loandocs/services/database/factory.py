"""
Builds the collection-store adapter named by ``DATABASE_TYPE``.

``memory`` is for tests and throwaway demos; ``json`` writes both
collections through to files so records survive a restart.
"""
import os
from pathlib import Path
from typing import Optional

from .base import DatabaseInterface
from .memory_adapter import MemoryAdapter
from .json_adapter import JSONAdapter

SUPPORTED_DATABASE_TYPES = ("json", "memory")


class DatabaseFactory:

    @staticmethod
    def create(database_type: Optional[str] = None, **kwargs) -> DatabaseInterface:
        """
        Create (but do not initialize) a database adapter.

        Args:
            database_type: ``json`` or ``memory``; read from DATABASE_TYPE when None
            **kwargs: ``data_dir`` for the JSON adapter

        Raises:
            ValueError: Unknown database type
        """
        database_type = (database_type or os.getenv("DATABASE_TYPE", "json")).lower()
        if database_type == "memory":
            return MemoryAdapter()
        if database_type == "json":
            data_dir = kwargs.get("data_dir")
            return JSONAdapter(data_dir=Path(data_dir) if data_dir else None)
        raise ValueError(
            f"Unsupported database type '{database_type}' (expected one of: {', '.join(SUPPORTED_DATABASE_TYPES)})"
        )
