"""
Byte storage for document images.
Local filesystem under STORAGE_ROOT (volume mount). Anything that implements
get/put/delete/exists can stand in for it.
"""

from pathlib import Path
from typing import Optional, Protocol

import structlog

from docverify.config import settings
from docverify.pipeline.errors import ProcessingError
from docverify.storage.paths import ensure_parent_dirs, resolve_within

logger = structlog.get_logger(__name__)


class StorageError(ProcessingError):
    """A document's bytes could not be read or written."""
    def __init__(self, message: str):
        super().__init__(message, "ERR_STORAGE")


class DocumentStorage(Protocol):
    def get(self, storage_ref: str) -> bytes: ...

    def put(self, storage_ref: str, data: bytes) -> str: ...

    def delete(self, storage_ref: str) -> bool: ...

    def exists(self, storage_ref: str) -> bool: ...


class LocalFileStorage:
    """
    Save and load document bytes on the local filesystem.
    All references are relative to the root; references escaping it are rejected.
    """

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or settings.STORAGE_ROOT).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, storage_ref: str) -> Path:
        full_path = resolve_within(self.root, storage_ref)
        if full_path is None:
            raise StorageError(f"Invalid storage reference: {storage_ref!r}")
        return full_path

    def get(self, storage_ref: str) -> bytes:
        full_path = self._path(storage_ref)
        if not full_path.is_file():
            raise StorageError(f"Document not found in storage: {storage_ref}")
        try:
            return full_path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read {storage_ref}: {e}") from e

    def put(self, storage_ref: str, data: bytes) -> str:
        """Save raw bytes. Returns the reference."""
        full_path = ensure_parent_dirs(self._path(storage_ref))
        try:
            full_path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to write {storage_ref}: {e}") from e
        logger.info("document_stored", storage_ref=storage_ref, size_bytes=len(data))
        return storage_ref

    def delete(self, storage_ref: str) -> bool:
        """Delete a document. Returns True if it existed."""
        full_path = self._path(storage_ref)
        if full_path.is_file():
            full_path.unlink()
            logger.info("document_deleted", storage_ref=storage_ref)
            return True
        return False

    def exists(self, storage_ref: str) -> bool:
        return self._path(storage_ref).is_file()
