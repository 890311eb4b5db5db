"""
Verification pipeline orchestrator.

One request fans out over its applicants; each applicant's document goes
through the same stages and ends as an ApplicantSuccess or ApplicantFailure:

    RESOLVE -> LOAD -> EXTRACT -> VALIDATE -> CROSS-CHECK

Failures are isolated per applicant. Problems found before the loop (an
unsupported document type) abort the whole request with a single FAILED
outcome and no partial results. Exactly one aggregate outcome is published per
request, plus one validation error event per identifier mismatch.
"""

import asyncio
import time
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from docverify.config import settings
from docverify.events.audit import AuditLogger
from docverify.events.publisher import ResultPublisher
from docverify.models.enums import (
    AuditAction,
    DocumentStatus,
    DocumentType,
    FailureKind,
    VerificationStatus,
)
from docverify.observability.logging import bind_request_context
from docverify.observability.metrics import (
    document_failures_total,
    documents_verified_total,
    pipeline_stage_duration_seconds,
    validation_scores,
    verification_duration_seconds,
    verification_requests_total,
)
from docverify.pipeline.comparator import compare, extract_canonical_id
from docverify.pipeline.errors import PipelineError, ProcessingError
from docverify.pipeline.extractor import OcrExtractor
from docverify.pipeline.outcomes import ApplicantFailure, ApplicantResult, ApplicantSuccess, fold
from docverify.pipeline.validator import validate
from docverify.repository.documents import DocumentRepository
from docverify.rules.registry import find_rule_set
from docverify.schemas.contracts import DocumentRecord
from docverify.schemas.events import (
    AggregateOutcome,
    CustomerDocumentResult,
    DocumentDetail,
    ValidationErrorEvent,
    VerificationRequest,
)
from docverify.storage.file_store import DocumentStorage
from docverify.storage.paths import PLACEHOLDER_SIZE_BYTES, guess_mime_type, placeholder_file_name

logger = structlog.get_logger(__name__)


class VerificationPipeline:
    """
    Processes one verification request end-to-end.
    Collaborators are injected so the worker, the API and the tests can wire
    SQL/Redis or in-memory implementations.
    """

    def __init__(
        self,
        repository: DocumentRepository,
        storage: DocumentStorage,
        extractor: OcrExtractor,
        publisher: ResultPublisher,
        audit: AuditLogger,
        max_concurrent_applicants: Optional[int] = None,
    ):
        self.repository = repository
        self.storage = storage
        self.extractor = extractor
        self.publisher = publisher
        self.audit = audit
        self.max_concurrent_applicants = max(
            1, max_concurrent_applicants or settings.MAX_CONCURRENT_APPLICANTS
        )

    # ── Entry points ─────────────────────────────────────────

    async def run_message(self, payload: dict[str, Any]) -> AggregateOutcome:
        """Parse a raw inbound message and run it. Malformed messages yield a FAILED outcome."""
        try:
            request = VerificationRequest.model_validate(payload)
        except ValidationError as e:
            source = payload if isinstance(payload, dict) else {}
            application_id = _str_or_none(source.get("applicationId") or source.get("application_id"))
            event_id = _str_or_none(source.get("eventId") or source.get("event_id"))
            bind_request_context(application_id, event_id)
            logger.warning("malformed_request", errors=e.error_count())
            return await self._fail(application_id, event_id, f"Malformed verification request: {_first_error(e)}")
        return await self.run(request)

    async def run(self, request: VerificationRequest) -> AggregateOutcome:
        started_at = time.time()
        bind_request_context(request.application_id, request.event_id)
        logger.info("verification_started", applicant_count=len(request.applicant_documents))

        await self.audit.record(
            AuditAction.REQUEST_RECEIVED,
            {
                "applicant_count": len(request.applicant_documents),
                "timestamp": request.timestamp,
            },
            request.application_id,
            request.event_id,
        )

        try:
            plan = self._resolve_document_types(request)
            results = await self._process_applicants(request, plan)
        except PipelineError as e:
            logger.error("verification_aborted", error_code=e.error_code, error=e.message)
            return await self._fail(request.application_id, request.event_id, e.message)
        except Exception as e:
            logger.exception("verification_aborted", error=str(e))
            return await self._fail(request.application_id, request.event_id, f"Unexpected error: {e}")

        acc = fold(results)
        outcome = AggregateOutcome(
            application_id=request.application_id,
            request_id=request.event_id,
            status=acc.status,
            customer_results=acc.customer_results(),
        )
        await self._publish(outcome)

        duration = time.time() - started_at
        verification_duration_seconds.observe(duration)
        logger.info(
            "verification_completed",
            status=outcome.status.value,
            succeeded=len(acc.successes),
            failed=len(acc.failures),
            failures=acc.failure_summary(),
            duration_s=round(duration, 2),
        )
        return outcome

    # ── Request-level stages ─────────────────────────────────

    def _resolve_document_types(
        self, request: VerificationRequest
    ) -> list[tuple[str, DocumentDetail, DocumentType]]:
        """Map every applicant's document type up front; any unknown type is fatal."""
        plan = []
        for applicant_id, detail in request.applicant_documents.items():
            document_type = DocumentType.resolve(detail.document_type)
            if document_type is None or find_rule_set(document_type) is None:
                raise PipelineError(
                    f"Unsupported document type: {detail.document_type}",
                    "ERR_UNKNOWN_DOCUMENT_TYPE",
                )
            plan.append((applicant_id, detail, document_type))
        return plan

    async def _process_applicants(
        self,
        request: VerificationRequest,
        plan: list[tuple[str, DocumentDetail, DocumentType]],
    ) -> list[ApplicantResult]:
        if self.max_concurrent_applicants == 1 or len(plan) == 1:
            return [await self._process_applicant(request, *item) for item in plan]

        semaphore = asyncio.Semaphore(self.max_concurrent_applicants)

        async def bounded(item):
            async with semaphore:
                return await self._process_applicant(request, *item)

        tasks = [asyncio.ensure_future(bounded(item)) for item in plan]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            # One applicant escaped its isolation; stop the rest before the request fails
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _publish(self, outcome: AggregateOutcome) -> None:
        # A failed publish propagates so the message is redelivered
        await self.publisher.publish_outcome(outcome)
        verification_requests_total.labels(status=outcome.status.value).inc()
        await self.audit.record(
            AuditAction.OUTCOME_PUBLISHED,
            {"status": outcome.status.value, "applicants": sorted(outcome.customer_results)},
            outcome.application_id,
            outcome.request_id,
        )

    async def _fail(
        self, application_id: Optional[str], event_id: Optional[str], message: str
    ) -> AggregateOutcome:
        await self.audit.record(AuditAction.REQUEST_FAILED, {"error": message}, application_id, event_id)
        outcome = AggregateOutcome(
            application_id=application_id,
            request_id=event_id,
            status=VerificationStatus.FAILED,
            error_message=message,
        )
        await self._publish(outcome)
        return outcome

    # ── Per-applicant stages ─────────────────────────────────

    async def _resolve_document(
        self,
        request: VerificationRequest,
        applicant_id: str,
        detail: DocumentDetail,
        document_type: DocumentType,
    ) -> DocumentRecord:
        """Find the (applicant, type) record or register a placeholder; committed on its own."""
        existing = await self.repository.find_by_applicant_and_type(applicant_id, document_type)
        if existing is None:
            record = await self.repository.upsert_document(DocumentRecord(
                applicant_id=applicant_id,
                document_type=document_type,
                storage_ref=detail.storage_ref,
                file_name=placeholder_file_name(document_type.value),
                file_size_bytes=PLACEHOLDER_SIZE_BYTES,
                status=DocumentStatus.PENDING,
            ))
            action = AuditAction.DOCUMENT_CREATED
        else:
            record = await self.repository.upsert_document(existing.model_copy(update={
                "storage_ref": detail.storage_ref,
                "status": DocumentStatus.PENDING,
            }))
            action = AuditAction.DOCUMENT_FOUND

        await self.audit.record(
            action,
            {
                "document_id": record.document_id,
                "applicant_id": applicant_id,
                "document_type": document_type.value,
                "storage_ref": record.storage_ref,
            },
            request.application_id,
            request.event_id,
        )
        return record

    async def _process_applicant(
        self,
        request: VerificationRequest,
        applicant_id: str,
        detail: DocumentDetail,
        document_type: DocumentType,
    ) -> ApplicantResult:
        log = logger.bind(applicant_id=applicant_id, document_type=document_type.value)
        record: Optional[DocumentRecord] = None

        try:
            record = await self._resolve_document(request, applicant_id, detail, document_type)

            with pipeline_stage_duration_seconds.labels(stage="load").time():
                content = await asyncio.to_thread(self.storage.get, record.storage_ref)
            await self.repository.set_status(
                record.document_id,
                DocumentStatus.PROCESSING,
                file_size_bytes=len(content),
                mime_type=guess_mime_type(record.storage_ref),
            )

            with pipeline_stage_duration_seconds.labels(stage="extract").time():
                extraction = await self.extractor.extract(content, document_type)
            await self.repository.upsert_extraction(record.document_id, extraction)
            await self.repository.set_status(record.document_id, DocumentStatus.COMPLETED)

            with pipeline_stage_duration_seconds.labels(stage="validate").time():
                validation = validate(document_type, extraction.structured_fields)
            await self.repository.upsert_validation(record.document_id, validation)
            validation_scores.labels(document_type=document_type.value).observe(validation.overall_score)

        except ProcessingError as e:
            log.warning("document_processing_failed", error_code=e.error_code, error=e.message)
            return await self._processing_failure(request, applicant_id, detail, document_type, record, e.message)
        except Exception as e:
            log.exception("document_processing_failed", error=str(e))
            return await self._processing_failure(
                request, applicant_id, detail, document_type, record, f"Unexpected error: {e}"
            )

        # ── Cross-check ──────────────────────────────────────
        extracted_id = extract_canonical_id(extraction.structured_fields, document_type)
        if not compare(detail.expected_identifier, extracted_id):
            return await self._validation_failure(
                request, applicant_id, detail, document_type, record, extracted_id
            )

        await self.audit.record(
            AuditAction.DOCUMENT_PROCESSED,
            {
                "document_id": record.document_id,
                "applicant_id": applicant_id,
                "is_authentic": validation.is_authentic,
                "is_complete": validation.is_complete,
                "overall_score": validation.overall_score,
            },
            request.application_id,
            request.event_id,
        )
        documents_verified_total.labels(
            document_type=document_type.value,
            authentic=str(validation.is_authentic).lower(),
        ).inc()
        log.info(
            "document_verified",
            document_id=record.document_id,
            is_authentic=validation.is_authentic,
            is_complete=validation.is_complete,
            overall_score=validation.overall_score,
        )

        return ApplicantSuccess(
            applicant_id=applicant_id,
            result=CustomerDocumentResult(
                document_id=record.document_id,
                storage_ref=detail.storage_ref,
                document_type=document_type.value,
                is_authentic=validation.is_authentic,
                is_complete=validation.is_complete,
                confidence_score=validation.overall_score,
                raw_text=extraction.raw_text,
                extracted_data=extraction.fields_as_dict(),
                verification_details=validation.details_as_dict(),
            ),
        )

    async def _validation_failure(
        self,
        request: VerificationRequest,
        applicant_id: str,
        detail: DocumentDetail,
        document_type: DocumentType,
        record: DocumentRecord,
        extracted_id: Optional[str],
    ) -> ApplicantFailure:
        message = (
            f"Document validation failed: Expected {detail.expected_identifier}, "
            f"but extracted {extracted_id}"
        )
        logger.warning(
            "identifier_mismatch",
            applicant_id=applicant_id,
            document_type=document_type.value,
            expected=detail.expected_identifier,
            extracted=extracted_id,
        )

        event = ValidationErrorEvent(
            application_id=request.application_id,
            applicant_id=applicant_id,
            storage_ref=detail.storage_ref,
            document_type=detail.document_type,
            expected_document_id=detail.expected_identifier,
            extracted_document_id=extracted_id,
            error_message=message,
        )
        try:
            await self.publisher.publish_validation_error(event)
        except Exception as e:
            logger.error("validation_error_publish_failed", applicant_id=applicant_id, error=str(e))

        await self.audit.record(
            AuditAction.VALIDATION_FAILED,
            {
                "document_id": record.document_id,
                "applicant_id": applicant_id,
                "storage_ref": detail.storage_ref,
                "expected": detail.expected_identifier,
                "extracted": extracted_id,
            },
            request.application_id,
            request.event_id,
        )
        document_failures_total.labels(
            document_type=document_type.value, kind=FailureKind.VALIDATION.value
        ).inc()
        return ApplicantFailure(applicant_id, FailureKind.VALIDATION, message, document_type.value)

    async def _processing_failure(
        self,
        request: VerificationRequest,
        applicant_id: str,
        detail: DocumentDetail,
        document_type: DocumentType,
        record: Optional[DocumentRecord],
        message: str,
    ) -> ApplicantFailure:
        if record is not None and record.document_id:
            try:
                await self.repository.set_status(record.document_id, DocumentStatus.FAILED)
            except Exception as e:
                logger.error("document_status_update_failed", document_id=record.document_id, error=str(e))

        await self.audit.record(
            AuditAction.PROCESSING_ERROR,
            {
                "document_id": record.document_id if record else None,
                "applicant_id": applicant_id,
                "storage_ref": detail.storage_ref,
                "error": message,
            },
            request.application_id,
            request.event_id,
        )
        document_failures_total.labels(
            document_type=document_type.value, kind=FailureKind.PROCESSING.value
        ).inc()
        return ApplicantFailure(applicant_id, FailureKind.PROCESSING, message, document_type.value)


def _str_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _first_error(e: ValidationError) -> str:
    err = e.errors()[0]
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err.get('msg')}" if location else str(err.get("msg"))
