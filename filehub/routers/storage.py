"""
Storage Router for FileHub.

Endpoints:
- GET /storage/{bucket}/{path} - Stream an object given a valid signed URL token
"""

import logging
from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from ..dependencies import get_storage
from ..exceptions import InvalidSignedURLError
from ..storage import LocalObjectStorage

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/storage",
    tags=["storage"],
    responses={403: {"description": "Invalid or expired signed URL"}},
)


@router.get("/{bucket}/{path:path}")
async def read_object(
    bucket: str,
    path: str,
    token: str = Query(..., description="Signed URL token"),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """
    Serve a stored object.

    No bearer token is needed; the signed URL token is the credential and is
    bound to this bucket and path.
    """
    if bucket != storage.bucket:
        raise InvalidSignedURLError()

    object_path = storage.verify_signed_token(token, bucket=bucket, path=path)
    file_path, content_type = storage.open_object(object_path)

    return FileResponse(
        str(file_path),
        media_type=content_type,
        headers={"Cache-Control": "private, no-store"},
    )
