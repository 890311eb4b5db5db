"""
Tests for RQ job wiring.
"""

from docverify.config import settings
from docverify.engines.tesseract_engine import TesseractEngine
from docverify.worker import jobs


class _FakeJob:
    id = "job-1"


class _FakeQueue:
    def __init__(self):
        self.calls = []

    def enqueue(self, func, *args, **kwargs):
        self.calls.append((func, args, kwargs))
        return _FakeJob()


class TestEnqueue:

    def test_enqueue_with_retry(self, monkeypatch):
        queue = _FakeQueue()
        monkeypatch.setattr(jobs, "get_queue", lambda: queue)
        payload = {"applicationId": "APP-1", "eventId": "E-1", "applicantDocuments": {}}

        assert jobs.enqueue_verification(payload) == "job-1"

        func, args, kwargs = queue.calls[0]
        assert func is jobs.verify_documents_job
        assert args == (payload,)
        assert kwargs["retry"].max == settings.JOB_MAX_RETRIES
        assert kwargs["job_timeout"] == settings.JOB_TIMEOUT_SECONDS


class TestVerifyDocumentsJob:

    def test_returns_published_message(self, monkeypatch):
        async def fake_verify(payload):
            return {"applicationNumber": payload["applicationId"], "status": "COMPLETED"}

        monkeypatch.setattr(jobs, "_verify_async", fake_verify)
        result = jobs.verify_documents_job({"applicationId": "APP-1", "eventId": "E-1"})
        assert result == {"applicationNumber": "APP-1", "status": "COMPLETED"}


class TestBuildEngine:

    def test_ocr_disabled(self, monkeypatch):
        monkeypatch.setattr(settings, "ENABLE_OCR", False)
        assert jobs.build_engine() is None

    def test_ocr_enabled(self, monkeypatch):
        monkeypatch.setattr(settings, "ENABLE_OCR", True)
        monkeypatch.setattr(settings, "TESSERACT_CMD", None)
        engine = jobs.build_engine()
        assert isinstance(engine, TesseractEngine)
        assert engine.lang == settings.TESSERACT_LANG
