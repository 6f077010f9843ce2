# backend/portal/services/blob_store.py
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional

from ..config import settings
from ..domain.errors import ErrorCode, InputValidationError, NotFoundError

ALLOWED_PHOTO_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}
CAPTION_MAX_LEN = 500

_UNSAFE_FILENAME = re.compile(r"[^a-zA-Z0-9._-]")
_STORAGE_KEY = re.compile(r"^[A-Za-z0-9._-]+$")


@dataclass(frozen=True)
class PhotoUpload:
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def sanitize_filename(name: Optional[str]) -> str:
    base = Path(name or "photo").name
    return _UNSAFE_FILENAME.sub("_", base) or "photo"


def clean_caption(caption: Optional[str]) -> Optional[str]:
    c = (caption or "").strip()
    return c[:CAPTION_MAX_LEN] if c else None


def _too_large() -> InputValidationError:
    mb = settings.photo_max_bytes / (1024 * 1024)
    return InputValidationError(f"File is too large (max {mb:g}MB)", code=ErrorCode.INVALID_FILE)


def read_capped(stream: BinaryIO, *, max_bytes: Optional[int] = None) -> bytes:
    """
    Read an upload body, stopping one byte past the limit.

    An oversized file is rejected without ever holding more than
    `max_bytes + 1` bytes of it in memory.
    """
    limit = settings.photo_max_bytes if max_bytes is None else max_bytes
    data = stream.read(limit + 1)
    if len(data) > limit:
        raise _too_large()
    return data


def validate_photo_upload(upload: PhotoUpload) -> str:
    """Returns the file extension to store under; raises INVALID_FILE otherwise."""
    ctype = (upload.content_type or "").split(";", 1)[0].strip().lower()
    ext = ALLOWED_PHOTO_TYPES.get(ctype)
    if ext is None:
        raise InputValidationError("Only JPEG, PNG and WebP images are allowed", code=ErrorCode.INVALID_FILE)
    if upload.size > settings.photo_max_bytes:
        raise _too_large()
    if upload.size < settings.photo_min_bytes:
        raise InputValidationError("File is too small to be a valid image", code=ErrorCode.INVALID_FILE)
    return ext


def photo_url(storage_key: str) -> str:
    return f"/api/uploads/{storage_key}"


def new_storage_key(owner_id: int, ext: str) -> str:
    return f"{owner_id}-{uuid.uuid4()}{ext}"


class LocalBlobStore:
    """
    Binary store keyed by opaque storage key, backed by one flat directory.

    Keys are generated server-side; anything that isn't a plain file name is
    refused so a key can never escape the base directory.
    """

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)

    def _path(self, key: str) -> Path:
        if not key or not _STORAGE_KEY.match(key) or key in (".", ".."):
            raise InputValidationError("Invalid storage key")
        return self.base_dir / key

    def save(self, key: str, data: bytes) -> str:
        path = self._path(key)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return key

    def read(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError("file not found")
        return path.read_bytes()

    def delete(self, key: str) -> bool:
        path = self._path(key)
        if not path.is_file():
            return False
        path.unlink()
        return True


def get_blob_store() -> LocalBlobStore:
    return LocalBlobStore(settings.uploads_dir)


def media_type_for(key: str) -> str:
    ext = Path(key).suffix.lower()
    for ctype, e in ALLOWED_PHOTO_TYPES.items():
        if e == ext:
            return ctype
    return "application/octet-stream"
