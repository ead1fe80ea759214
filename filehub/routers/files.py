"""
Files Router for FileHub.

Endpoints:
- GET /files - Search visible files (query, category_id, uncategorized)
- POST /files - Upload a file as base64
- GET /files/browse - Folder view for the file browser
- GET /files/{file_id} - File metadata
- PATCH /files/{file_id} - Update metadata (uploader or admin)
- DELETE /files/{file_id} - Delete file (admin)
- GET /files/{file_id}/download-url - Signed download URL
- GET /files/{file_id}/download - Redirect to the signed download URL
- GET /files/{file_id}/preview - Signed URL plus preview kind
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import RedirectResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..db_models import DBProfile
from ..dependencies import get_current_user, get_storage
from ..file_service import FileService
from ..models import FilePreview, FileRecord, FileUpdate, FileUpload, FolderView, SignedDownload
from ..permissions import change_audience
from ..realtime import ChangeAction, broadcast_change, push_notifications
from ..storage import LocalObjectStorage

# Initialize logger
logger = logging.getLogger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)

UPLOAD_RATE_LIMIT = "1000/minute" if settings.testing else "20/minute"

# Create router
router = APIRouter(
    prefix="/files",
    tags=["files"],
    responses={401: {"description": "Unauthorized"}},
)

# =============================================================================
# Listing Endpoints
# =============================================================================

@router.get("", response_model=List[FileRecord])
async def search_files(
    query: Optional[str] = Query(None, description="Case-insensitive substring of the file name"),
    category_id: Optional[str] = Query(None),
    uncategorized: bool = Query(False, description="Only files outside any folder"),
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Visible files, newest first."""
    return FileService(db).search_files(
        current_user,
        query=query,
        category_id=category_id,
        uncategorized=uncategorized,
    )


@router.get("/browse", response_model=FolderView)
async def browse(
    category_id: Optional[str] = Query(None, description="Folder to open; omit for the root"),
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return FileService(db).browse(current_user, category_id)

# =============================================================================
# Upload Endpoint
# =============================================================================

@router.post("", response_model=FileRecord, status_code=status.HTTP_201_CREATED)
@limiter.limit(UPLOAD_RATE_LIMIT)
async def upload_file(
    request: Request,
    upload: FileUpload,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """
    Upload a file encoded as base64.

    The bytes are stored under a generated path and every profile receives a
    file_upload notification (only admins when the folder is hidden).

    Raises:
        400: Invalid base64 or filename
        404: Target folder missing or hidden
        413: File larger than FILEHUB_MAX_UPLOAD_SIZE_MB
    """
    request_id = getattr(request.state, "request_id", "-")
    logger.info(f"[{request_id}] Upload '{upload.filename}' by {current_user.id}")

    record, deliveries = FileService(db).upload_file(
        current_user,
        storage,
        filename=upload.filename,
        content=upload.content,
        content_type=upload.content_type,
        name=upload.name,
        description=upload.description,
        category_id=upload.category_id,
    )

    await broadcast_change("files", ChangeAction.INSERT, record.id, change_audience(db, record.category_id))
    await push_notifications(deliveries)
    return record

# =============================================================================
# Single File Endpoints
# =============================================================================

@router.get("/{file_id}", response_model=FileRecord)
async def get_file(
    file_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return FileService(db).get_file(current_user, file_id)


@router.patch("/{file_id}", response_model=FileRecord)
async def update_file(
    file_id: str,
    update: FileUpdate,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Rename, re-describe or move a file. "category_id": null uncategorizes it."""
    service = FileService(db)
    previous_category_id = service.get_file(current_user, file_id).category_id
    record = service.update_file(
        current_user,
        file_id,
        update.model_dump(exclude_unset=True),
    )
    await broadcast_change(
        "files",
        ChangeAction.UPDATE,
        record.id,
        change_audience(db, previous_category_id, record.category_id),
    )
    return record


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    file_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """Delete a file (admin). Storage cleanup is best-effort."""
    category_id = FileService(db).delete_file(current_user, storage, file_id)
    await broadcast_change("files", ChangeAction.DELETE, file_id, change_audience(db, category_id))

# =============================================================================
# Download Endpoints
# =============================================================================

@router.get("/{file_id}/download-url", response_model=SignedDownload)
async def get_download_url(
    file_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    return FileService(db).signed_download(current_user, storage, file_id)


@router.get("/{file_id}/download")
async def download_file(
    file_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    """Redirect to a short-lived signed URL for the file."""
    download = FileService(db).signed_download(current_user, storage, file_id)
    return RedirectResponse(download["url"], status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.get("/{file_id}/preview", response_model=FilePreview)
async def preview_file(
    file_id: str,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: LocalObjectStorage = Depends(get_storage)
):
    return FileService(db).preview(current_user, storage, file_id)
