"""BlobStore — local file storage for uploaded images with public URLs."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from cozy.config import settings

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB per image

AVATARS_BUCKET = "avatars"
MEMORY_IMAGES_BUCKET = "memory_images"

_SAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9._\-]")


class BlobStore:
    """Bucketed file storage rooted in a local directory.

    Uploaded files are served back by the API under ``/storage/<bucket>/<path>``;
    :meth:`public_url` builds that address from ``public_base_url``.

    All methods are synchronous — local file I/O is fast enough that
    wrapping in ``asyncio.to_thread()`` isn't worth the complexity.
    """

    def __init__(self, root: Path | None = None, base_url: str | None = None) -> None:
        self._root = (root or settings.storage_dir).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._base_url = (base_url or settings.public_base_url).rstrip("/")

    # -- Path helpers ----------------------------------------------------------

    @staticmethod
    def sanitize_filename(name: str) -> str:
        """Replace unsafe characters, strip leading dots, truncate to 255 chars.

        Raises ``ValueError`` if the result is empty.
        """
        sanitized = _SAFE_FILENAME_RE.sub("_", name)
        sanitized = sanitized.lstrip(".")
        sanitized = sanitized[:255]
        if not sanitized:
            msg = f"Filename is empty after sanitization: {name!r}"
            raise ValueError(msg)
        return sanitized

    def resolve(self, bucket: str, path: str) -> Path:
        """Resolve *path* inside *bucket*, rejecting directory traversal."""
        bucket_dir = self._root / self.sanitize_filename(bucket)
        parts = [self.sanitize_filename(p) for p in path.split("/") if p]
        if not parts:
            msg = f"Path resolves to empty after sanitization: {path!r}"
            raise ValueError(msg)
        target = bucket_dir.joinpath(*parts).resolve()
        if not target.is_relative_to(bucket_dir.resolve()):
            msg = f"Path traversal detected: {path!r}"
            raise ValueError(msg)
        return target

    def relative_path(self, bucket: str, path: str) -> str:
        """The sanitised path as it appears in public URLs."""
        target = self.resolve(bucket, path)
        bucket_dir = (self._root / self.sanitize_filename(bucket)).resolve()
        return target.relative_to(bucket_dir).as_posix()

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self._base_url}/storage/{self.sanitize_filename(bucket)}/{self.relative_path(bucket, path)}"

    def path_from_url(self, bucket: str, url: str) -> str | None:
        """The path inside *bucket* that *url* points at, or None for foreign URLs."""
        prefix = f"{self._base_url}/storage/{self.sanitize_filename(bucket)}/"
        if not url.startswith(prefix) or len(url) == len(prefix):
            return None
        return url[len(prefix) :]

    # -- File operations -------------------------------------------------------

    def upload(self, bucket: str, path: str, data: bytes) -> str:
        """Store *data* at *path* in *bucket* and return its public URL.

        Overwrites an existing file at the same path. Raises ``ValueError``
        for empty or oversized uploads.
        """
        if not data:
            msg = "Upload is empty"
            raise ValueError(msg)
        if len(data) > MAX_FILE_SIZE:
            msg = f"File too large: {len(data)} bytes (max {MAX_FILE_SIZE})"
            raise ValueError(msg)

        target = self.resolve(bucket, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info("Stored %d bytes at %s/%s", len(data), bucket, path)
        return self.public_url(bucket, path)

    def read(self, bucket: str, path: str) -> bytes:
        """Read a stored file. Raises ``FileNotFoundError`` if it doesn't exist."""
        target = self.resolve(bucket, path)
        if not target.is_file():
            msg = f"File not found: {bucket}/{path}"
            raise FileNotFoundError(msg)
        return target.read_bytes()

    def delete(self, bucket: str, path: str) -> bool:
        """Delete a file. Returns True if deleted, False if not found."""
        target = self.resolve(bucket, path)
        if not target.is_file():
            return False
        target.unlink()
        return True


def file_extension(filename: str, default: str = "jpg") -> str:
    """Lower-cased extension of *filename*, or *default* when it has none."""
    if "." not in filename:
        return default
    ext = filename.rsplit(".", 1)[1].lower()
    return _SAFE_FILENAME_RE.sub("", ext) or default
