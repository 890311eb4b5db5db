"""
Storage reference helpers.
References are POSIX paths relative to STORAGE_ROOT.
"""

import mimetypes
from pathlib import Path, PurePosixPath
from typing import Optional

DEFAULT_MIME_TYPE = "image/jpeg"
PLACEHOLDER_SIZE_BYTES = 1024


def placeholder_file_name(document_type: str) -> str:
    """File name given to a record first seen through a verification request."""
    return f"{document_type}_document.jpg"


def guess_mime_type(name: str) -> str:
    mime, _ = mimetypes.guess_type(name)
    return mime or DEFAULT_MIME_TYPE


def resolve_within(root: Path, storage_ref: str) -> Optional[Path]:
    """Absolute path for a reference, or None if it escapes the root."""
    ref = PurePosixPath(storage_ref)
    if not storage_ref or ref.is_absolute():
        return None
    full_path = (root / ref).resolve()
    if full_path != root and root not in full_path.parents:
        return None
    return full_path


def ensure_parent_dirs(full_path: Path) -> Path:
    full_path.parent.mkdir(parents=True, exist_ok=True)
    return full_path
