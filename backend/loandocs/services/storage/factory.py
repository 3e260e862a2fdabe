"""
Builds the object-store adapter named by ``STORAGE_TYPE``.

``local`` keeps blobs under a directory and serves them through the files
router; ``s3`` talks to the bucket the loan documents live in.
"""
import os
from pathlib import Path
from typing import Optional, Union

from .base import FileStorageInterface
from .local_storage import LocalFileStorage
from .s3_storage import S3FileStorage

SUPPORTED_STORAGE_TYPES = ("local", "s3")


class FileStorageFactory:

    @staticmethod
    def create(storage_type: Optional[str] = None, **kwargs) -> FileStorageInterface:
        """
        Create (but do not initialize) a storage adapter.

        Args:
            storage_type: ``local`` or ``s3``; read from STORAGE_TYPE when None
            **kwargs: ``base_dir`` for local; ``bucket_name``, credentials,
                ``region_name`` and ``endpoint_url`` for S3. Missing S3
                settings fall back to the environment.

        Raises:
            ValueError: Unknown storage type, or S3 without a bucket
        """
        storage_type = (storage_type or os.getenv("STORAGE_TYPE", "local")).lower()
        if storage_type == "local":
            return FileStorageFactory._local(kwargs.get("base_dir"))
        if storage_type == "s3":
            return FileStorageFactory._s3(**kwargs)
        raise ValueError(
            f"Unsupported storage type '{storage_type}' (expected one of: {', '.join(SUPPORTED_STORAGE_TYPES)})"
        )

    @staticmethod
    def _local(base_dir: Optional[Union[str, Path]]) -> LocalFileStorage:
        return LocalFileStorage(base_dir=Path(base_dir) if base_dir is not None else None)

    @staticmethod
    def _s3(**kwargs) -> S3FileStorage:
        bucket_name = kwargs.get("bucket_name") or os.getenv("S3_BUCKET_NAME")
        if not bucket_name:
            raise ValueError("S3 storage needs a bucket name (S3_BUCKET_NAME)")

        return S3FileStorage(
            bucket_name=bucket_name,
            aws_access_key_id=kwargs.get("aws_access_key_id", os.getenv("AWS_ACCESS_KEY_ID")),
            aws_secret_access_key=kwargs.get("aws_secret_access_key", os.getenv("AWS_SECRET_ACCESS_KEY")),
            region_name=kwargs.get("region_name") or os.getenv("AWS_REGION", "ap-south-1"),
            endpoint_url=kwargs.get("endpoint_url", os.getenv("S3_ENDPOINT_URL"))
        )
