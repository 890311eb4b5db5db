"""
Shared test fixtures.
Pipelines are wired with in-memory collaborators and local file storage
under tmp_path; no database, Redis or Tesseract is needed.
"""

import pytest

from docverify.events.audit import InMemoryAuditLogger
from docverify.events.publisher import InMemoryPublisher
from docverify.pipeline.extractor import OcrExtractor
from docverify.pipeline.orchestrator import VerificationPipeline
from docverify.repository.documents import InMemoryDocumentRepository
from docverify.storage.file_store import LocalFileStorage


@pytest.fixture
def storage(tmp_path):
    return LocalFileStorage(root=str(tmp_path / "documents"))


@pytest.fixture
def repository():
    return InMemoryDocumentRepository()


@pytest.fixture
def publisher():
    return InMemoryPublisher()


@pytest.fixture
def audit():
    return InMemoryAuditLogger()


@pytest.fixture
def make_pipeline(storage, repository, publisher, audit):
    """Build a pipeline; OCR defaults to unavailable (mock text)."""
    def _make(engine=None, max_concurrent_applicants=1, **overrides):
        collaborators = {
            "repository": repository,
            "storage": storage,
            "extractor": OcrExtractor(engine),
            "publisher": publisher,
            "audit": audit,
        }
        collaborators.update(overrides)
        return VerificationPipeline(max_concurrent_applicants=max_concurrent_applicants, **collaborators)
    return _make


@pytest.fixture
def make_message():
    """Inbound verify-document message in wire (camelCase) form."""
    def _make(applicants: dict, application_id="APP-1001", event_id="EVT-1"):
        return {
            "eventId": event_id,
            "applicationId": application_id,
            "timestamp": "2024-05-01T10:00:00Z",
            "applicantDocuments": {
                applicant_id: {
                    "storageRef": storage_ref,
                    "documentType": document_type,
                    "expectedIdentifier": expected,
                }
                for applicant_id, (storage_ref, document_type, expected) in applicants.items()
            },
        }
    return _make


@pytest.fixture
def stored(storage):
    """Put placeholder image bytes in storage and return the reference."""
    def _put(storage_ref: str, data: bytes = b"\xff\xd8\xff\xe0fake-jpeg") -> str:
        return storage.put(storage_ref, data)
    return _put
