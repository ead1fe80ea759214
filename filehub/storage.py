"""
Object storage for uploaded files.

Objects live on the local filesystem under <storage_root>/<bucket>/<path>.
Paths are opaque strings generated by generate_object_path(); clients never
choose them. Reads go through signed URLs: a short-lived JWT bound to one
bucket and path, served by GET /storage/{bucket}/{path}?token=...

Content types are kept in a sidecar JSON file under
<storage_root>/.meta/<bucket>/<path>.json so the object directory only
holds object bytes.
"""

import json
import logging
import os
import secrets
import shutil
import tempfile
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from jose import ExpiredSignatureError, JWTError, jwt

from .config import settings
from .constants import (
    DEFAULT_CONTENT_TYPE,
    JWT_ALGORITHM,
    MAX_SIGNED_URL_EXPIRE_SECONDS,
    SIGNED_URL_PURPOSE,
    TEXT_PREVIEW_TYPES,
)
from .exceptions import (
    InvalidSignedURLError,
    StorageConflictError,
    StorageError,
    StorageObjectNotFoundError,
    ValidationError,
)
from .sanitization import get_file_extension

logger = logging.getLogger(__name__)

META_DIR = ".meta"


# =============================================================================
# Path Helpers
# =============================================================================

def generate_object_path(uploader_id: str, filename: str) -> str:
    """
    Build the storage path for a new upload.

    Format: <uploader_id>/<ms-timestamp>-<random>.<ext>

    Examples:
        >>> generate_object_path("3f2a...", "report.PDF")
        "3f2a.../1718000000000-9c1e4b7a2d3f.pdf"
    """
    timestamp_ms = int(time.time() * 1000)
    suffix = secrets.token_hex(6)
    return f"{uploader_id}/{timestamp_ms}-{suffix}.{get_file_extension(filename)}"


def preview_kind(content_type: Optional[str]) -> str:
    """Map a MIME type to the inline preview a client can render."""
    content_type = (content_type or "").split(";")[0].strip().lower()

    if content_type.startswith("image/"):
        return "image"
    if content_type == "application/pdf":
        return "pdf"
    if content_type.startswith("text/") or content_type in TEXT_PREVIEW_TYPES:
        return "text"
    return "none"


def _validate_object_path(path: str) -> str:
    if not path or not path.strip():
        raise ValidationError("Storage path cannot be empty")

    path = path.strip().strip("/")
    parts = path.split("/")

    if "\\" in path or "\x00" in path or any(part in ("", ".", "..") for part in parts):
        raise ValidationError(f"Invalid storage path: '{path}'")
    if parts[0] == META_DIR:
        raise ValidationError(f"Invalid storage path: '{path}'")

    return path


# =============================================================================
# Local Object Storage
# =============================================================================

class LocalObjectStorage:
    """
    A single storage bucket on the local filesystem.

    Mirrors the small bucket API the application needs: upload, remove,
    exists, list, and signed read URLs.
    """

    def __init__(
        self,
        root: str,
        bucket: str,
        secret_key: str,
        public_base_url: str = "",
    ):
        self.root = Path(root)
        self.bucket = bucket
        self.secret_key = secret_key
        self.public_base_url = public_base_url.rstrip("/")

        self.bucket_dir = self.root / bucket
        self.meta_dir = self.root / META_DIR / bucket
        self.bucket_dir.mkdir(parents=True, exist_ok=True)
        self.meta_dir.mkdir(parents=True, exist_ok=True)

    def _object_file(self, path: str) -> Path:
        return self.bucket_dir / _validate_object_path(path)

    def _meta_file(self, path: str) -> Path:
        return self.meta_dir / f"{_validate_object_path(path)}.json"

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def upload(
        self,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
        upsert: bool = False,
    ) -> Dict:
        """
        Store bytes at path.

        Uses atomic write (temp file in the target directory, then rename) so
        a crash never leaves a partially written object.

        Raises:
            StorageConflictError: If the path is taken and upsert is False
            StorageError: If the write fails
        """
        target = self._object_file(path)
        if target.exists() and not upsert:
            raise StorageConflictError(path)

        content_type = content_type or DEFAULT_CONTENT_TYPE

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="wb",
                dir=str(target.parent),
                delete=False,
                suffix=".tmp",
            ) as tmp_file:
                tmp_file.write(data)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
                tmp_path = tmp_file.name
            shutil.move(tmp_path, str(target))

            meta_file = self._meta_file(path)
            meta_file.parent.mkdir(parents=True, exist_ok=True)
            meta_file.write_text(
                json.dumps({"content_type": content_type, "size": len(data)}),
                encoding="utf-8",
            )
        except OSError as e:
            logger.error(f"Storage write failed for {self.bucket}/{path}: {e}", exc_info=True)
            raise StorageError(f"Failed to store object: {e}") from e

        logger.info(f"Stored object {self.bucket}/{path} ({len(data)} bytes)")
        return {"path": path, "size": len(data), "content_type": content_type}

    def remove(self, paths: Iterable[str]) -> List[str]:
        """
        Delete objects. Missing paths are skipped.

        Returns:
            The paths that were actually removed
        """
        removed = []
        for path in paths:
            target = self._object_file(path)
            if not target.exists():
                logger.debug(f"Skip removing missing object {self.bucket}/{path}")
                continue
            try:
                target.unlink()
                meta_file = self._meta_file(path)
                if meta_file.exists():
                    meta_file.unlink()
            except OSError as e:
                raise StorageError(f"Failed to remove object: {e}") from e
            removed.append(path)

        if removed:
            logger.info(f"Removed {len(removed)} object(s) from {self.bucket}")
        return removed

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def exists(self, path: str) -> bool:
        return self._object_file(path).is_file()

    def list(self, folder: str = "") -> List[Dict]:
        """
        List the direct children of a folder ("" is the bucket root).

        Sub-folders are returned with is_folder=True and no size.
        """
        directory = self.bucket_dir / _validate_object_path(folder) if folder.strip("/") else self.bucket_dir
        if not directory.is_dir():
            return []

        entries = []
        for child in sorted(directory.iterdir(), key=lambda p: p.name):
            if child.name.endswith(".tmp"):
                continue
            if child.is_dir():
                entries.append({"name": child.name, "is_folder": True, "size": None, "updated_at": None})
            else:
                stat = child.stat()
                entries.append({
                    "name": child.name,
                    "is_folder": False,
                    "size": stat.st_size,
                    "updated_at": datetime.utcfromtimestamp(stat.st_mtime).isoformat(),
                })
        return entries

    def open_object(self, path: str) -> Tuple[Path, str]:
        """
        Locate an object on disk.

        Returns:
            (filesystem path, content type)

        Raises:
            StorageObjectNotFoundError: If nothing is stored at path
        """
        target = self._object_file(path)
        if not target.is_file():
            raise StorageObjectNotFoundError(path)

        content_type = DEFAULT_CONTENT_TYPE
        meta_file = self._meta_file(path)
        if meta_file.exists():
            content_type = json.loads(meta_file.read_text(encoding="utf-8")).get("content_type", content_type)

        return target, content_type

    def read(self, path: str) -> bytes:
        target, _ = self.open_object(path)
        return target.read_bytes()

    # -------------------------------------------------------------------------
    # Signed URLs
    # -------------------------------------------------------------------------

    def create_signed_url(self, path: str, expires_in: int) -> str:
        """
        Create a time-limited URL for reading one object.

        Raises:
            StorageObjectNotFoundError: If nothing is stored at path
            ValidationError: If expires_in is out of range
        """
        if expires_in < 1 or expires_in > MAX_SIGNED_URL_EXPIRE_SECONDS:
            raise ValidationError(
                f"expires_in must be between 1 and {MAX_SIGNED_URL_EXPIRE_SECONDS} seconds"
            )

        path = _validate_object_path(path)
        if not self.exists(path):
            raise StorageObjectNotFoundError(path)

        payload = {
            "typ": SIGNED_URL_PURPOSE,
            "bucket": self.bucket,
            "path": path,
            "exp": datetime.utcnow() + timedelta(seconds=expires_in),
        }
        token = jwt.encode(payload, self.secret_key, algorithm=JWT_ALGORITHM)

        return f"{self.public_base_url}/storage/{self.bucket}/{path}?token={token}"

    def verify_signed_token(self, token: str, bucket: Optional[str] = None, path: Optional[str] = None) -> str:
        """
        Check a signed URL token.

        When bucket/path are given the token must have been issued for them.

        Returns:
            The object path the token grants access to

        Raises:
            InvalidSignedURLError: If the token is expired, tampered, or for another object
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[JWT_ALGORITHM])
        except ExpiredSignatureError:
            raise InvalidSignedURLError("Signed URL has expired")
        except JWTError:
            raise InvalidSignedURLError()

        if payload.get("typ") != SIGNED_URL_PURPOSE:
            raise InvalidSignedURLError()
        if payload.get("bucket") != self.bucket or (bucket is not None and bucket != self.bucket):
            raise InvalidSignedURLError()
        if path is not None and payload.get("path") != path.strip("/"):
            raise InvalidSignedURLError()

        return payload["path"]


# =============================================================================
# Default Instance
# =============================================================================

_storage: Optional[LocalObjectStorage] = None


def get_object_storage() -> LocalObjectStorage:
    """Lazily build the storage bucket configured in settings."""
    global _storage
    if _storage is None:
        _storage = LocalObjectStorage(
            root=settings.storage_root,
            bucket=settings.storage_bucket,
            secret_key=settings.secret_key,
            public_base_url=settings.public_base_url,
        )
        logger.info(f"Object storage ready at {_storage.bucket_dir}")
    return _storage
