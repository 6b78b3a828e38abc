"""Blob storage for uploaded homework images.

Submissions only ever hold the opaque URL returned by :meth:`BlobStore.put`,
so the backing store can change without touching the Submission contract.
"""
import base64
import binascii
import hashlib
import logging
import mimetypes
import os
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)

BLOB_SCHEME = "blob://"


class BlobNotFoundError(Exception):
    """Raised when a URL cannot be resolved to stored bytes."""


class BlobStore(ABC):
    @abstractmethod
    def put(self, data: bytes, content_type: str = "application/octet-stream") -> str:
        """Store ``data`` and return a URL for it."""

    @abstractmethod
    def get(self, url: str) -> bytes:
        """Return the bytes behind ``url``."""


class DataUriBlobStore(BlobStore):
    """Keeps the bytes inline as a ``data:`` URI."""

    def put(self, data: bytes, content_type: str = "application/octet-stream") -> str:
        return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"

    def get(self, url: str) -> bytes:
        if not url.startswith("data:") or ";base64," not in url:
            raise BlobNotFoundError("Not a base64 data URI")
        try:
            return base64.b64decode(url.split(";base64,", 1)[1], validate=True)
        except (binascii.Error, ValueError) as e:
            raise BlobNotFoundError(f"Corrupt data URI: {e}") from e


class FileSystemBlobStore(BlobStore):
    """Content-addressed files under a directory, addressed as ``blob://<sha256><ext>``."""

    def __init__(self, root: str = "uploads"):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info(f"FileSystemBlobStore initialized with directory: {self.root}")

    def _path(self, name: str) -> Path:
        path = (self.root / name).resolve()
        if path.parent != self.root:
            raise BlobNotFoundError(f"Invalid blob name: {name}")
        return path

    def put(self, data: bytes, content_type: str = "application/octet-stream") -> str:
        digest = hashlib.sha256(data).hexdigest()
        ext = mimetypes.guess_extension(content_type) or ""
        name = f"{digest}{ext}"
        path = self._path(name)
        if not path.exists():
            tmp = path.with_suffix(path.suffix + ".tmp")
            tmp.write_bytes(data)
            os.replace(tmp, path)
            logger.debug(f"Saved blob to {path}")
        return f"{BLOB_SCHEME}{name}"

    def get(self, url: str) -> bytes:
        if not url.startswith(BLOB_SCHEME):
            raise BlobNotFoundError(f"Not a blob URL: {url[:40]}")
        path = self._path(url[len(BLOB_SCHEME):])
        if not path.exists():
            raise BlobNotFoundError(f"Blob not found: {url}")
        return path.read_bytes()


class CompositeBlobStore(BlobStore):
    """Writes to one store but reads any URL scheme either store produced."""

    def __init__(self, primary: BlobStore, fallback: BlobStore):
        self.primary = primary
        self.fallback = fallback

    def put(self, data: bytes, content_type: str = "application/octet-stream") -> str:
        return self.primary.put(data, content_type)

    def get(self, url: str) -> bytes:
        try:
            return self.primary.get(url)
        except BlobNotFoundError:
            return self.fallback.get(url)


def blob_store_from_env() -> BlobStore:
    kind = os.getenv("IMAGE_STORAGE", "datauri").lower()
    if kind == "filesystem":
        # Older rows may still hold data URIs
        return CompositeBlobStore(FileSystemBlobStore(os.getenv("UPLOAD_DIR", "uploads")), DataUriBlobStore())
    return DataUriBlobStore()
