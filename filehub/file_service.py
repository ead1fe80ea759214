"""
File service.

Uploads go to object storage under a generated path first, then the
metadata row is inserted and every profile is notified (only admins when
the folder is hidden). Reads honor folder visibility: non-admins never
receive a file that lives in a hidden folder.
"""

import base64
import binascii
import logging
import mimetypes
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from .category_service import CategoryService
from .config import settings
from .constants import DEFAULT_CONTENT_TYPE, NOTIFICATION_FILE_UPLOAD
from .db_models import DBComment, DBFile, DBPost, DBProfile, new_id
from .exceptions import FileTooLargeError, NotFoundError, StorageError, ValidationError
from .notification_service import NotificationService
from .permissions import (
    apply_file_visibility,
    change_audience,
    hidden_categories_for,
    require_admin,
    require_owner_or_admin,
)
from .sanitization import sanitize_description, sanitize_filename, sanitize_name, sanitize_search_query
from .storage import LocalObjectStorage, generate_object_path, preview_kind

logger = logging.getLogger(__name__)


def decode_base64_content(content: str, max_size: int) -> bytes:
    """
    Decode a base64 upload, accepting an optional data: URL prefix.

    Raises:
        ValidationError: If the content is not valid base64
        FileTooLargeError: If the decoded bytes exceed max_size
    """
    if content.startswith("data:") and "," in content:
        content = content.split(",", 1)[1]

    # Cheap upper bound before decoding the whole payload
    if len(content) * 3 // 4 > max_size + 3:
        raise FileTooLargeError(len(content) * 3 // 4, max_size)

    try:
        data = base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"Invalid base64 content: {exc}")

    if len(data) > max_size:
        raise FileTooLargeError(len(data), max_size)
    return data


def guess_content_type(filename: str, declared: Optional[str] = None) -> str:
    if declared and declared.strip():
        return declared.strip().lower()
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or DEFAULT_CONTENT_TYPE


class FileService:
    """Service for file metadata and stored objects."""

    def __init__(self, db: Session):
        self.db = db
        self.categories = CategoryService(db)
        self.notifications = NotificationService(db)

    # =========================================================================
    # Lookups
    # =========================================================================

    def _get(self, file_id: str) -> DBFile:
        record = self.db.query(DBFile).filter(DBFile.id == file_id).first()
        if record is None:
            raise NotFoundError("File", file_id)
        return record

    def get_file(self, caller: DBProfile, file_id: str) -> DBFile:
        """Single file; files in hidden folders 404 for non-admins."""
        record = self._get(file_id)
        if record.category_id is not None and record.category_id in hidden_categories_for(self.db, caller):
            raise NotFoundError("File", file_id)
        return record

    def search_files(
        self,
        caller: DBProfile,
        query: Optional[str] = None,
        category_id: Optional[str] = None,
        uncategorized: bool = False,
    ) -> List[DBFile]:
        """
        Visible files, newest first.

        query is a case-insensitive substring match on the name.
        uncategorized=True restricts to files outside any folder and wins
        over category_id.
        """
        files = apply_file_visibility(self.db.query(DBFile), hidden_categories_for(self.db, caller))

        pattern = sanitize_search_query(query)
        if pattern:
            files = files.filter(DBFile.name.ilike(f"%{pattern}%", escape="\\"))

        if uncategorized:
            files = files.filter(DBFile.category_id.is_(None))
        elif category_id is not None:
            files = files.filter(DBFile.category_id == category_id)

        return files.order_by(DBFile.created_at.desc()).all()

    def browse(self, caller: DBProfile, category_id: Optional[str] = None) -> Dict[str, Any]:
        """
        One folder of the file browser.

        Returns the current folder (None at the root), its breadcrumbs, its
        visible sub-folders and its files, both sorted by name.
        """
        current = None
        trail = []
        if category_id is not None:
            current = self.categories.get_category(caller, category_id)
            trail = self.categories.breadcrumbs(caller, category_id)

        folders = self.categories.list_children(caller, category_id)

        files = self.db.query(DBFile)
        if category_id is None:
            files = files.filter(DBFile.category_id.is_(None))
        else:
            files = files.filter(DBFile.category_id == category_id)

        return {
            "current_folder": current,
            "breadcrumbs": trail,
            "folders": folders,
            "files": files.order_by(DBFile.name.asc()).all(),
        }

    # =========================================================================
    # Writes
    # =========================================================================

    def upload_file(
        self,
        caller: DBProfile,
        storage: LocalObjectStorage,
        filename: str,
        content: str,
        content_type: Optional[str] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> Tuple[DBFile, List[Dict[str, Any]]]:
        """
        Store an upload and record it.

        Returns:
            (file row, notification deliveries for the change feed)
        """
        filename = sanitize_filename(filename)
        display_name = sanitize_name(name, "File name") if name and name.strip() else filename
        description = sanitize_description(description)
        data = decode_base64_content(content, settings.max_upload_size_bytes)

        if category_id is not None:
            self.categories.get_category(caller, category_id)

        file_type = guess_content_type(filename, content_type)
        # Uploads into hidden folders are only announced to admins
        recipients = change_audience(self.db, category_id)

        path = generate_object_path(caller.id, filename)
        storage.upload(path, data, content_type=file_type)

        # Nothing may leave the object behind without a row pointing at it
        try:
            record = DBFile(
                id=new_id(),
                name=display_name,
                description=description,
                file_path=path,
                file_size=len(data),
                file_type=file_type,
                category_id=category_id,
                uploaded_by=caller.id,
            )
            self.db.add(record)

            notification_text = f"New file uploaded: {display_name}"
            if recipients is None:
                deliveries = self.notifications.notify_all_profiles(
                    notification_text, NOTIFICATION_FILE_UPLOAD, record.id
                )
            else:
                deliveries = self.notifications.fan_out(
                    notification_text, NOTIFICATION_FILE_UPLOAD, record.id, recipients
                )

            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"Failed to record upload {path}; removing stored object", exc_info=True)
            self._remove_object(storage, path)
            raise

        self.db.refresh(record)
        logger.info(f"Uploaded file {record.id} '{display_name}' ({len(data)} bytes) to {path}")
        return record, deliveries

    def update_file(self, caller: DBProfile, file_id: str, changes: dict) -> DBFile:
        """Uploader or admin may rename, re-describe or move a file."""
        record = self.get_file(caller, file_id)
        require_owner_or_admin(caller, record.uploaded_by, "edit this file")

        if "name" in changes and changes["name"] is not None:
            record.name = sanitize_name(changes["name"], "File name")
        if "description" in changes:
            record.description = sanitize_description(changes["description"])
        if "category_id" in changes:
            if changes["category_id"] is not None:
                self.categories.get_category(caller, changes["category_id"])
            record.category_id = changes["category_id"]

        self.db.commit()
        self.db.refresh(record)

        logger.info(f"Updated file {record.id}")
        return record

    def delete_file(self, caller: DBProfile, storage: LocalObjectStorage, file_id: str) -> Optional[str]:
        """
        Delete a file (admin only).

        Storage removal is best-effort: a failure is logged and the row is
        deleted anyway. Post and comment references to the file are cleared.

        Returns:
            Id of the folder the file lived in (None when uncategorized)
        """
        require_admin(caller, "delete files")
        record = self._get(file_id)
        category_id = record.category_id
        path = record.file_path

        self._remove_object(storage, path)

        self.db.query(DBPost).filter(DBPost.referenced_file_id == record.id).update(
            {DBPost.referenced_file_id: None}, synchronize_session=False
        )
        self.db.query(DBComment).filter(DBComment.referenced_file_id == record.id).update(
            {DBComment.referenced_file_id: None}, synchronize_session=False
        )
        self.db.delete(record)
        self.db.commit()

        logger.info(f"Deleted file {file_id} ({path})")
        return category_id

    def _remove_object(self, storage: LocalObjectStorage, path: str) -> None:
        try:
            storage.remove([path])
        except (StorageError, OSError) as e:
            logger.warning(f"Could not remove stored object {path}: {e}")

    # =========================================================================
    # Downloads
    # =========================================================================

    def signed_download(self, caller: DBProfile, storage: LocalObjectStorage, file_id: str) -> Dict[str, Any]:
        """Signed URL for a visible file."""
        record = self.get_file(caller, file_id)
        expires_in = settings.signed_url_expire_seconds
        url = storage.create_signed_url(record.file_path, expires_in)
        return {"url": url, "name": record.name, "expires_in": expires_in}

    def preview(self, caller: DBProfile, storage: LocalObjectStorage, file_id: str) -> Dict[str, Any]:
        """Signed URL plus the preview kind for the file's MIME type."""
        download = self.signed_download(caller, storage, file_id)
        record = self._get(file_id)
        download.update({"file_type": record.file_type, "kind": preview_kind(record.file_type)})
        return download
