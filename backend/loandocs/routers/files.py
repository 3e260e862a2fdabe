"""
Files Router - serves blobs written by the local storage adapter.

URLs minted by LocalFileStorage.get_file_url point here; S3 deployments
hand out presigned URLs instead.
"""
from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse, Response

from .dependencies import get_storage
from ..services.storage import LocalFileStorage, StorageError

router = APIRouter()


@router.get("/files/{key:path}")
async def get_file(key: str):
    """Get a stored object by key."""
    storage = get_storage()

    try:
        exists = await storage.file_exists(key)
    except StorageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not exists:
        raise HTTPException(status_code=404, detail="File not found")

    side = await storage.get_metadata(key)
    if isinstance(storage, LocalFileStorage):
        return FileResponse(storage._get_full_path(key), media_type=side.get("content_type"))

    content = await storage.get_file(key)
    return Response(content=content, media_type=side.get("content_type") or "application/octet-stream")
