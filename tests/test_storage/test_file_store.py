"""
Tests for local document storage.
"""

import pytest

from docverify.pipeline.errors import ProcessingError
from docverify.storage.file_store import LocalFileStorage, StorageError
from docverify.storage.paths import guess_mime_type, placeholder_file_name


class TestLocalFileStorage:

    def test_put_get_roundtrip(self, storage):
        storage.put("APP-1/PAN/card.jpg", b"bytes")
        assert storage.get("APP-1/PAN/card.jpg") == b"bytes"
        assert storage.exists("APP-1/PAN/card.jpg")

    def test_delete(self, storage):
        storage.put("a/b.jpg", b"1")
        assert storage.delete("a/b.jpg") is True
        assert storage.delete("a/b.jpg") is False
        assert not storage.exists("a/b.jpg")

    def test_missing_object(self, storage):
        with pytest.raises(StorageError):
            storage.get("nope/none.jpg")

    def test_storage_error_is_a_processing_error(self):
        assert issubclass(StorageError, ProcessingError)

    @pytest.mark.parametrize("ref", ["../escape.jpg", "a/../../escape.jpg", "/etc/passwd", ""])
    def test_references_outside_root_are_rejected(self, storage, ref):
        with pytest.raises(StorageError):
            storage.get(ref)

    def test_root_is_created(self, tmp_path):
        root = tmp_path / "new" / "root"
        LocalFileStorage(root=str(root))
        assert root.is_dir()


class TestPaths:

    def test_placeholder_file_name(self):
        assert placeholder_file_name("AADHAAR") == "AADHAAR_document.jpg"

    @pytest.mark.parametrize("name,mime", [
        ("scan.png", "image/png"),
        ("scan.pdf", "application/pdf"),
        ("scan.jpg", "image/jpeg"),
        ("storage-id-without-extension", "image/jpeg"),
    ])
    def test_guess_mime_type(self, name, mime):
        assert guess_mime_type(name) == mime
