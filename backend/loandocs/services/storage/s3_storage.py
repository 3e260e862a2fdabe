"""
AWS S3 storage adapter implementing FileStorageInterface.

boto3 is synchronous, so every call runs on the default executor. The
client is created once per adapter and shared by concurrent requests.
"""
import asyncio
from typing import BinaryIO, Callable, Dict, Optional, TypeVar
from urllib.parse import quote
import boto3
from botocore.exceptions import BotoCoreError, ClientError, ConnectionError as BotoConnectionError
from botocore.config import Config

from .base import FileStorageInterface, ListResult, ObjectInfo, StorageError
from ...core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Error codes S3 uses for throttling and temporary unavailability
_TRANSIENT_CODES = {
    "RequestTimeout",
    "RequestTimeTooSkewed",
    "SlowDown",
    "ServiceUnavailable",
    "InternalError",
    "ThrottlingException",
    "503",
    "500",
}
_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")


def _to_storage_error(action: str, key: str, e: Exception) -> StorageError:
    """Classify a boto failure as transient or permanent."""
    if isinstance(e, ClientError):
        code = _error_code(e)
        return StorageError(f"S3 {action} failed for {key}: {code or e}", transient=code in _TRANSIENT_CODES)
    # Connection resets, endpoint timeouts and similar never reached S3
    return StorageError(f"S3 {action} failed for {key}: {e}", transient=isinstance(e, BotoConnectionError))


class S3FileStorage(FileStorageInterface):
    """
    Object store for loan documents in an S3 bucket (or an S3-compatible
    endpoint such as MinIO).

    The client retries nothing itself; a failed write surfaces to the
    pipeline as a storage failure for that file.
    """

    def __init__(
        self,
        bucket_name: str,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        region_name: str = "ap-south-1",
        endpoint_url: Optional[str] = None
    ):
        """
        Args:
            bucket_name: Bucket holding both the legacy customer folders and ``documents/``
            aws_access_key_id: Access key (omit to use the instance role)
            aws_secret_access_key: Secret key (omit to use the instance role)
            region_name: Bucket region
            endpoint_url: Custom endpoint for S3-compatible services
        """
        self.bucket_name = bucket_name
        self.region_name = region_name
        self.endpoint_url = endpoint_url

        self.s3_client = boto3.client(
            "s3",
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            region_name=region_name,
            endpoint_url=endpoint_url,
            config=Config(signature_version="s3v4", retries={"max_attempts": 1})
        )

    async def _run(self, fn: Callable[[], T]) -> T:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, fn)

    async def initialize(self):
        """Check the bucket is reachable with the configured credentials."""
        try:
            await self._run(lambda: self.s3_client.head_bucket(Bucket=self.bucket_name))
        except ClientError as e:
            code = _error_code(e)
            if code == "404":
                raise ValueError(f"S3 bucket '{self.bucket_name}' does not exist") from e
            if code == "403":
                raise ValueError(f"Access denied to S3 bucket '{self.bucket_name}'") from e
            raise ValueError(f"Error accessing S3 bucket '{self.bucket_name}': {e}") from e
        logger.info(f"S3 bucket '{self.bucket_name}' reachable in {self.region_name}")

    async def close(self):
        pass

    def _object_url(self, file_path: str) -> str:
        """Direct (unsigned) URL of an object."""
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{quote(file_path)}"
        return f"https://{self.bucket_name}.s3.{self.region_name}.amazonaws.com/{quote(file_path)}"

    async def save_file(
        self,
        file: BinaryIO,
        file_path: str,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None
    ) -> str:
        extra_args = {"ContentType": content_type or "application/octet-stream"}
        if metadata:
            extra_args["Metadata"] = metadata

        try:
            await self._run(
                lambda: self.s3_client.upload_fileobj(file, self.bucket_name, file_path, ExtraArgs=extra_args)
            )
        except (ClientError, BotoCoreError) as e:
            raise _to_storage_error("upload", file_path, e) from e
        except Exception as e:
            # s3transfer wraps client errors in its own failure types
            raise StorageError(f"S3 upload failed for {file_path}: {e}") from e

        return self._object_url(file_path)

    async def get_file(self, file_path: str) -> bytes:
        def _download() -> bytes:
            try:
                response = self.s3_client.get_object(Bucket=self.bucket_name, Key=file_path)
            except ClientError as e:
                if _error_code(e) in _MISSING_CODES:
                    raise FileNotFoundError(f"File not found in S3: {file_path}") from e
                raise _to_storage_error("download", file_path, e) from e
            return response["Body"].read()

        return await self._run(_download)

    async def get_metadata(self, file_path: str) -> Dict:
        def _head() -> Dict:
            try:
                head = self.s3_client.head_object(Bucket=self.bucket_name, Key=file_path)
            except ClientError as e:
                if _error_code(e) in _MISSING_CODES:
                    raise FileNotFoundError(f"File not found in S3: {file_path}") from e
                raise _to_storage_error("head", file_path, e) from e
            return {
                "content_type": head.get("ContentType") or "application/octet-stream",
                "metadata": head.get("Metadata") or {}
            }

        return await self._run(_head)

    async def delete_file(self, file_path: str) -> bool:
        # delete_object succeeds for missing keys, so existence is checked first
        if not await self.file_exists(file_path):
            return False
        try:
            await self._run(lambda: self.s3_client.delete_object(Bucket=self.bucket_name, Key=file_path))
        except ClientError as e:
            raise _to_storage_error("delete", file_path, e) from e
        return True

    async def file_exists(self, file_path: str) -> bool:
        try:
            await self.get_metadata(file_path)
        except FileNotFoundError:
            return False
        return True

    async def get_file_url(self, file_path: str, expires_in: Optional[int] = 3600) -> str:
        """Presigned GET URL, valid for ``expires_in`` seconds (1 hour by default)."""
        return await self._run(lambda: self.s3_client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket_name, "Key": file_path},
            ExpiresIn=expires_in or 3600
        ))

    async def list_objects(self, prefix: str = "", delimiter: Optional[str] = None) -> ListResult:
        """List objects under a prefix, following pagination."""
        def _list() -> ListResult:
            params = {"Bucket": self.bucket_name, "Prefix": prefix}
            if delimiter:
                params["Delimiter"] = delimiter

            result = ListResult()
            for page in self.s3_client.get_paginator("list_objects_v2").paginate(**params):
                for item in page.get("Contents", []):
                    result.objects.append(ObjectInfo(
                        key=item["Key"],
                        size=item.get("Size", 0),
                        last_modified=item.get("LastModified")
                    ))
                result.common_prefixes.extend(common["Prefix"] for common in page.get("CommonPrefixes", []))
            return result

        try:
            return await self._run(_list)
        except (ClientError, BotoCoreError) as e:
            raise _to_storage_error("list", prefix or "/", e) from e
