"""
Tests for the verification pipeline orchestrator.
OCR is unavailable unless a test passes an engine, so documents are read
from each type's mock text.
"""

import asyncio

import pytest

from docverify.engines.stub_engine import StubEngine
from docverify.events.audit import InMemoryAuditLogger
from docverify.models.enums import AuditAction, DocumentStatus, DocumentType, FailureKind, VerificationStatus
from docverify.pipeline.extractor import OcrExtractor
from docverify.pipeline.outcomes import ApplicantFailure, fold


class _FailingPublisher:
    def __init__(self, fail_outcome=False, fail_errors=False):
        self.fail_outcome = fail_outcome
        self.fail_errors = fail_errors
        self.outcomes = []

    async def publish_outcome(self, outcome):
        if self.fail_outcome:
            raise ConnectionError("redis down")
        self.outcomes.append(outcome)

    async def publish_validation_error(self, event):
        if self.fail_errors:
            raise ConnectionError("redis down")


class _HoldingExtractor:
    """Blocks forever on documents whose bytes are b"held"."""

    def __init__(self, inner):
        self.inner = inner
        self.cancelled = False

    async def extract(self, content, document_type):
        if content == b"held":
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        return await self.inner.extract(content, document_type)


class _AuditDownOnProcessed(InMemoryAuditLogger):
    async def record(self, action, details=None, application_id=None, event_id=None):
        if action == AuditAction.DOCUMENT_PROCESSED:
            raise RuntimeError("audit store down")
        await super().record(action, details, application_id, event_id)


class TestAggregateStatus:

    def test_all_match_is_completed(self, make_pipeline, make_message, stored, publisher):
        stored("A/pan.jpg")
        stored("B/aadhaar.jpg")
        message = make_message({
            "A": ("A/pan.jpg", "PAN", "ABCDE1234F"),
            "B": ("B/aadhaar.jpg", "AADHAAR", "1234 5678 9012"),
        })
        outcome = asyncio.run(make_pipeline().run_message(message))

        assert outcome.status == VerificationStatus.COMPLETED
        assert set(outcome.customer_results) == {"A", "B"}
        assert publisher.outcomes == [outcome]
        assert publisher.validation_errors == []

    def test_one_match_one_mismatch_is_partial(self, make_pipeline, make_message, stored, publisher):
        stored("A/pan.jpg")
        stored("B/pan.jpg")
        message = make_message({
            "A": ("A/pan.jpg", "PAN", "abcde 1234f"),
            "B": ("B/pan.jpg", "PAN", "ZZZZZ9999Z"),
        })
        outcome = asyncio.run(make_pipeline().run_message(message))

        assert outcome.status == VerificationStatus.PARTIAL_SUCCESS
        assert list(outcome.customer_results) == ["A"]
        assert len(outcome.customer_results["A"]) == 1
        assert len(publisher.validation_errors) == 1

        error = publisher.validation_errors[0]
        assert error.applicant_id == "B"
        assert error.expected_document_id == "ZZZZZ9999Z"
        assert error.extracted_document_id == "ABCDE1234F"
        assert error.application_id == "APP-1001"
        assert "Expected ZZZZZ9999Z" in error.error_message

    def test_processing_error_counts_toward_partial(self, make_pipeline, make_message, stored, publisher, audit):
        stored("A/pan.jpg")
        message = make_message({
            "A": ("A/pan.jpg", "PAN", "ABCDE1234F"),
            "B": ("B/missing.jpg", "PAN", "ABCDE1234F"),
        })
        outcome = asyncio.run(make_pipeline().run_message(message))

        assert outcome.status == VerificationStatus.PARTIAL_SUCCESS
        assert list(outcome.customer_results) == ["A"]
        assert publisher.validation_errors == []
        assert AuditAction.PROCESSING_ERROR in audit.actions()

    def test_every_applicant_failing_is_partial(self, make_pipeline, make_message, repository, audit):
        message = make_message({
            "A": ("A/missing.jpg", "PAN", "ABCDE1234F"),
            "B": ("B/missing.jpg", "PAN", "ABCDE1234F"),
        })
        outcome = asyncio.run(make_pipeline().run_message(message))

        assert outcome.status == VerificationStatus.PARTIAL_SUCCESS
        assert outcome.customer_results == {}
        assert outcome.error_message is None
        assert audit.actions().count(AuditAction.PROCESSING_ERROR) == 2
        assert AuditAction.REQUEST_FAILED not in audit.actions()
        for applicant_id in ("A", "B"):
            assert repository.documents[(applicant_id, DocumentType.PAN)].status == DocumentStatus.FAILED

    def test_missing_expected_identifier_is_a_mismatch(self, make_pipeline, make_message, stored, publisher):
        stored("A/pan.jpg")
        message = make_message({"A": ("A/pan.jpg", "PAN", None)})
        outcome = asyncio.run(make_pipeline().run_message(message))

        assert outcome.status == VerificationStatus.PARTIAL_SUCCESS
        assert outcome.customer_results == {}
        assert len(publisher.validation_errors) == 1
        assert publisher.validation_errors[0].expected_document_id is None

    def test_error_event_keeps_requested_document_type(self, make_pipeline, make_message, stored, publisher):
        stored("A/pan.jpg")
        message = make_message({"A": ("A/pan.jpg", "PANCARD", "ZZZZZ9999Z")})
        asyncio.run(make_pipeline().run_message(message))

        error = publisher.validation_errors[0]
        assert error.document_type == "PANCARD"
        assert error.model_dump(by_alias=True)["documentType"] == "PANCARD"


class TestRequestFold:

    def test_no_results_is_completed(self):
        assert fold([]).status == VerificationStatus.COMPLETED

    def test_failures_alone_are_partial(self):
        acc = fold([
            ApplicantFailure("A", FailureKind.PROCESSING, "Document not found", "PAN"),
            ApplicantFailure("B", FailureKind.VALIDATION, "Expected X, but extracted Y", "PAN"),
        ])
        assert acc.status == VerificationStatus.PARTIAL_SUCCESS
        assert acc.customer_results() == {}
        assert acc.failure_summary() == "A: Document not found; B: Expected X, but extracted Y"


class TestFatalErrors:

    def test_unknown_document_type_fails_whole_request(
        self, make_pipeline, make_message, stored, repository, publisher, audit
    ):
        stored("A/pan.jpg")
        message = make_message({
            "A": ("A/pan.jpg", "PAN", "ABCDE1234F"),
            "B": ("B/passport.jpg", "PASSPORT", "P1234567"),
        })
        outcome = asyncio.run(make_pipeline().run_message(message))

        assert outcome.status == VerificationStatus.FAILED
        assert outcome.customer_results == {}
        assert "Unsupported document type: PASSPORT" in outcome.error_message
        assert repository.documents == {}
        assert publisher.outcomes == [outcome]
        assert AuditAction.REQUEST_FAILED in audit.actions()

    def test_malformed_message_fails_with_known_ids(self, make_pipeline, publisher):
        outcome = asyncio.run(make_pipeline().run_message({"applicationId": "APP-9", "eventId": "E-9"}))

        assert outcome.status == VerificationStatus.FAILED
        assert outcome.application_id == "APP-9"
        assert outcome.request_id == "E-9"
        assert outcome.error_message.startswith("Malformed verification request")
        assert len(publisher.outcomes) == 1

    def test_empty_applicant_map_is_malformed(self, make_pipeline, make_message):
        outcome = asyncio.run(make_pipeline().run_message(make_message({})))
        assert outcome.status == VerificationStatus.FAILED

    def test_outcome_publish_failure_propagates(self, make_pipeline, make_message, stored):
        stored("A/pan.jpg")
        pipeline = make_pipeline(publisher=_FailingPublisher(fail_outcome=True))
        with pytest.raises(ConnectionError):
            asyncio.run(pipeline.run_message(make_message({"A": ("A/pan.jpg", "PAN", "ABCDE1234F")})))

    def test_error_event_publish_failure_does_not_abort(self, make_pipeline, make_message, stored):
        stored("A/pan.jpg")
        stored("B/pan.jpg")
        failing = _FailingPublisher(fail_errors=True)
        message = make_message({
            "A": ("A/pan.jpg", "PAN", "ABCDE1234F"),
            "B": ("B/pan.jpg", "PAN", "WRONG0000X"),
        })
        outcome = asyncio.run(make_pipeline(publisher=failing).run_message(message))
        assert outcome.status == VerificationStatus.PARTIAL_SUCCESS
        assert failing.outcomes == [outcome]

    def test_escaped_applicant_error_cancels_siblings(self, make_pipeline, make_message, stored, publisher):
        stored("A/pan.jpg")
        stored("B/pan.jpg", b"held")
        extractor = _HoldingExtractor(OcrExtractor())
        pipeline = make_pipeline(
            max_concurrent_applicants=2, extractor=extractor, audit=_AuditDownOnProcessed()
        )
        message = make_message({
            "A": ("A/pan.jpg", "PAN", "ABCDE1234F"),
            "B": ("B/pan.jpg", "PAN", "ABCDE1234F"),
        })
        outcome = asyncio.run(asyncio.wait_for(pipeline.run_message(message), timeout=5))

        assert outcome.status == VerificationStatus.FAILED
        assert "audit store down" in outcome.error_message
        assert extractor.cancelled
        assert publisher.outcomes == [outcome]


class TestDocumentLifecycle:

    def test_reprocessing_does_not_duplicate(self, make_pipeline, make_message, stored, repository, audit):
        stored("A/pan.jpg")
        message = make_message({"A": ("A/pan.jpg", "PAN", "ABCDE1234F")})
        pipeline = make_pipeline()

        first = asyncio.run(pipeline.run_message(message))
        second = asyncio.run(pipeline.run_message(message))

        assert len(repository.documents) == 1
        assert len(repository.extractions) == 1
        assert len(repository.validations) == 1
        first_id = first.customer_results["A"][0].document_id
        assert second.customer_results["A"][0].document_id == first_id
        assert audit.actions().count(AuditAction.DOCUMENT_CREATED) == 1
        assert audit.actions().count(AuditAction.DOCUMENT_FOUND) == 1

    def test_record_is_completed_with_real_size(self, make_pipeline, make_message, stored, repository):
        stored("A/aadhaar.png", b"x" * 2048)
        message = make_message({"A": ("A/aadhaar.png", "AADHAR", "123456789012")})
        asyncio.run(make_pipeline().run_message(message))

        record = repository.documents[("A", DocumentType.AADHAAR)]
        assert record.status == DocumentStatus.COMPLETED
        assert record.file_size_bytes == 2048
        assert record.mime_type == "image/png"
        assert record.file_name == "AADHAAR_document.jpg"

    def test_audit_trail_order(self, make_pipeline, make_message, stored, audit):
        stored("A/pan.jpg")
        asyncio.run(make_pipeline().run_message(make_message({"A": ("A/pan.jpg", "PAN", "ABCDE1234F")})))
        assert audit.actions() == [
            AuditAction.REQUEST_RECEIVED,
            AuditAction.DOCUMENT_CREATED,
            AuditAction.DOCUMENT_PROCESSED,
            AuditAction.OUTCOME_PUBLISHED,
        ]
        assert all(entry.application_id == "APP-1001" for entry in audit.entries)
        assert all(entry.event_id == "EVT-1" for entry in audit.entries)


class TestCustomerResult:

    def test_result_payload(self, make_pipeline, make_message, stored):
        stored("A/aadhaar.jpg")
        message = make_message({"A": ("A/aadhaar.jpg", "AADHAAR", "1234 5678 9012")})
        outcome = asyncio.run(make_pipeline().run_message(message))
        result = outcome.customer_results["A"][0]

        assert result.document_type == "AADHAAR"
        assert result.storage_ref == "A/aadhaar.jpg"
        assert result.is_authentic
        assert result.is_complete
        assert result.confidence_score == pytest.approx(0.91)
        assert result.extracted_data["aadhaar_number"] == {"value": "123456789012", "confidence": 0.9}
        assert result.verification_details["document_type"] == "AADHAAR"
        assert "aadhaar_number" in result.verification_details["field_validations"]

    def test_ocr_engine_output_is_used(self, make_pipeline, make_message, stored):
        stored("A/pan.jpg")
        engine = StubEngine(
            text="PQRST6789K\nName: Priya Sharma\nFather's Name: Ravi Sharma\nDOB: 15/08/1985",
            block_confidences=[0.95],
        )
        message = make_message({"A": ("A/pan.jpg", "PAN", "PQRST6789K")})
        outcome = asyncio.run(make_pipeline(engine=engine).run_message(message))

        assert outcome.status == VerificationStatus.COMPLETED
        assert outcome.customer_results["A"][0].raw_text.startswith("PQRST6789K")
        assert engine.calls == 1

    def test_bounded_concurrency_matches_sequential(self, make_pipeline, make_message, stored):
        applicants = {}
        for i in range(5):
            stored(f"P{i}/pan.jpg")
            applicants[f"P{i}"] = (f"P{i}/pan.jpg", "PAN", "ABCDE1234F" if i % 2 == 0 else "XXXXX0000X")
        outcome = asyncio.run(make_pipeline(max_concurrent_applicants=3).run_message(make_message(applicants)))

        assert outcome.status == VerificationStatus.PARTIAL_SUCCESS
        assert sorted(outcome.customer_results) == ["P0", "P2", "P4"]

    def test_wire_message(self, make_pipeline, make_message, stored):
        stored("A/pan.jpg")
        outcome = asyncio.run(make_pipeline().run_message(make_message({"A": ("A/pan.jpg", "PAN", "ABCDE1234F")})))
        message = outcome.to_message()

        assert message["applicationNumber"] == "APP-1001"
        assert message["requestId"] == "EVT-1"
        assert message["status"] == "COMPLETED"
        assert isinstance(message["completedAt"], int)
        assert "errorMessage" not in message
        result = message["customerResults"]["A"][0]
        assert set(result) == {
            "documentId", "storageRef", "documentType", "isAuthentic", "isComplete",
            "confidenceScore", "rawText", "extractedData", "verificationDetails",
        }
