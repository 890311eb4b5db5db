"""
Document persistence.

Documents are unique by (applicant_id, document_type); extraction and
validation results are unique by document. Every write is an upsert so a
redelivered request never duplicates rows. Each SQL operation runs in its own
session and commits on its own.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Protocol

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docverify.models.enums import DocumentStatus, DocumentType
from docverify.models.tables import DocumentRow, ExtractionResultRow, ValidationOutcomeRow
from docverify.schemas.contracts import DocumentRecord, ExtractionResult, ValidationOutcome

logger = structlog.get_logger(__name__)


class DocumentRepository(Protocol):
    async def find_by_applicant_and_type(
        self, applicant_id: str, document_type: DocumentType
    ) -> Optional[DocumentRecord]: ...

    async def upsert_document(self, record: DocumentRecord) -> DocumentRecord: ...

    async def set_status(
        self,
        document_id: str,
        status: DocumentStatus,
        file_size_bytes: Optional[int] = None,
        mime_type: Optional[str] = None,
    ) -> None: ...

    async def upsert_extraction(self, document_id: str, result: ExtractionResult) -> None: ...

    async def upsert_validation(self, document_id: str, outcome: ValidationOutcome) -> None: ...

    async def get_extraction(self, document_id: str) -> Optional[ExtractionResult]: ...

    async def get_validation(self, document_id: str) -> Optional[ValidationOutcome]: ...


def _to_record(row: DocumentRow) -> DocumentRecord:
    return DocumentRecord(
        document_id=str(row.doc_id),
        applicant_id=row.applicant_id,
        document_type=DocumentType(row.document_type),
        storage_ref=row.storage_ref,
        file_name=row.file_name,
        file_size_bytes=row.file_size_bytes,
        mime_type=row.mime_type,
        status=DocumentStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlDocumentRepository:
    """PostgreSQL-backed repository (INSERT ... ON CONFLICT DO UPDATE)."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        if session_factory is None:
            from docverify.models.database import async_session_factory
            session_factory = async_session_factory
        self.session_factory = session_factory

    async def find_by_applicant_and_type(
        self, applicant_id: str, document_type: DocumentType
    ) -> Optional[DocumentRecord]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DocumentRow).where(
                    DocumentRow.applicant_id == applicant_id,
                    DocumentRow.document_type == document_type.value,
                )
            )
            row = result.scalar_one_or_none()
            return _to_record(row) if row else None

    async def upsert_document(self, record: DocumentRecord) -> DocumentRecord:
        values = {
            "applicant_id": record.applicant_id,
            "document_type": record.document_type.value,
            "storage_ref": record.storage_ref,
            "file_name": record.file_name,
            "file_size_bytes": record.file_size_bytes,
            "mime_type": record.mime_type,
            "status": record.status.value,
        }
        stmt = insert(DocumentRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[DocumentRow.applicant_id, DocumentRow.document_type],
            set_={
                "storage_ref": stmt.excluded.storage_ref,
                "file_name": stmt.excluded.file_name,
                "file_size_bytes": stmt.excluded.file_size_bytes,
                "mime_type": stmt.excluded.mime_type,
                "status": stmt.excluded.status,
                "updated_at": func.now(),
            },
        ).returning(DocumentRow.doc_id, DocumentRow.created_at, DocumentRow.updated_at)

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            doc_id, created_at, updated_at = result.one()
            await session.commit()

        return record.model_copy(update={
            "document_id": str(doc_id),
            "created_at": created_at,
            "updated_at": updated_at,
        })

    async def set_status(
        self,
        document_id: str,
        status: DocumentStatus,
        file_size_bytes: Optional[int] = None,
        mime_type: Optional[str] = None,
    ) -> None:
        values = {"status": status.value, "updated_at": func.now()}
        if file_size_bytes is not None:
            values["file_size_bytes"] = file_size_bytes
        if mime_type is not None:
            values["mime_type"] = mime_type

        async with self.session_factory() as session:
            await session.execute(
                update(DocumentRow).where(DocumentRow.doc_id == uuid.UUID(document_id)).values(**values)
            )
            await session.commit()

    async def upsert_extraction(self, document_id: str, result: ExtractionResult) -> None:
        values = {
            "doc_id": uuid.UUID(document_id),
            "raw_text": result.raw_text,
            "structured_fields": result.fields_as_dict(),
            "overall_confidence": round(result.overall_confidence, 4),
            "processing_time_ms": result.processing_time_ms,
            "engine_name": result.engine_name,
            "is_mock": result.is_mock,
        }
        stmt = insert(ExtractionResultRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ExtractionResultRow.doc_id],
            set_={
                "raw_text": stmt.excluded.raw_text,
                "structured_fields": stmt.excluded.structured_fields,
                "overall_confidence": stmt.excluded.overall_confidence,
                "processing_time_ms": stmt.excluded.processing_time_ms,
                "engine_name": stmt.excluded.engine_name,
                "is_mock": stmt.excluded.is_mock,
                "updated_at": func.now(),
            },
        )
        async with self.session_factory() as session:
            await session.execute(stmt)
            await session.commit()

    async def upsert_validation(self, document_id: str, outcome: ValidationOutcome) -> None:
        values = {
            "doc_id": uuid.UUID(document_id),
            "is_authentic": outcome.is_authentic,
            "is_complete": outcome.is_complete,
            "overall_score": round(outcome.overall_score, 4),
            "format_checks": outcome.format_checks,
            "per_field_detail": {
                name: detail.model_dump() for name, detail in outcome.per_field_detail.items()
            },
        }
        stmt = insert(ValidationOutcomeRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ValidationOutcomeRow.doc_id],
            set_={
                "is_authentic": stmt.excluded.is_authentic,
                "is_complete": stmt.excluded.is_complete,
                "overall_score": stmt.excluded.overall_score,
                "format_checks": stmt.excluded.format_checks,
                "per_field_detail": stmt.excluded.per_field_detail,
                "updated_at": func.now(),
            },
        )
        async with self.session_factory() as session:
            await session.execute(stmt)
            await session.commit()

    async def get_extraction(self, document_id: str) -> Optional[ExtractionResult]:
        async with self.session_factory() as session:
            row = await session.scalar(
                select(ExtractionResultRow).where(ExtractionResultRow.doc_id == uuid.UUID(document_id))
            )
            if row is None:
                return None
            return ExtractionResult(
                raw_text=row.raw_text,
                structured_fields=row.structured_fields or {},
                overall_confidence=row.overall_confidence,
                processing_time_ms=row.processing_time_ms,
                engine_name=row.engine_name or "",
                is_mock=row.is_mock,
            )

    async def get_validation(self, document_id: str) -> Optional[ValidationOutcome]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ValidationOutcomeRow, DocumentRow.document_type)
                .join(DocumentRow, DocumentRow.doc_id == ValidationOutcomeRow.doc_id)
                .where(ValidationOutcomeRow.doc_id == uuid.UUID(document_id))
            )
            found = result.one_or_none()
            if found is None:
                return None
            row, document_type = found
            return ValidationOutcome(
                document_type=DocumentType(document_type),
                is_authentic=row.is_authentic,
                is_complete=row.is_complete,
                overall_score=row.overall_score,
                format_checks=row.format_checks or {},
                per_field_detail=row.per_field_detail or {},
            )


class InMemoryDocumentRepository:
    """Same contract as SqlDocumentRepository, held in dicts. Used by tests and local runs."""

    def __init__(self):
        self.documents: dict[tuple[str, DocumentType], DocumentRecord] = {}
        self.extractions: dict[str, ExtractionResult] = {}
        self.validations: dict[str, ValidationOutcome] = {}

    def _by_id(self, document_id: str) -> tuple[tuple[str, DocumentType], DocumentRecord]:
        for key, record in self.documents.items():
            if record.document_id == document_id:
                return key, record
        raise KeyError(f"Unknown document: {document_id}")

    async def find_by_applicant_and_type(
        self, applicant_id: str, document_type: DocumentType
    ) -> Optional[DocumentRecord]:
        return self.documents.get((applicant_id, document_type))

    async def upsert_document(self, record: DocumentRecord) -> DocumentRecord:
        key = (record.applicant_id, record.document_type)
        now = datetime.now(timezone.utc)
        existing = self.documents.get(key)
        stored = record.model_copy(update={
            "document_id": existing.document_id if existing else str(uuid.uuid4()),
            "created_at": existing.created_at if existing else now,
            "updated_at": now,
        })
        self.documents[key] = stored
        return stored

    async def set_status(
        self,
        document_id: str,
        status: DocumentStatus,
        file_size_bytes: Optional[int] = None,
        mime_type: Optional[str] = None,
    ) -> None:
        key, record = self._by_id(document_id)
        changes = {"status": status, "updated_at": datetime.now(timezone.utc)}
        if file_size_bytes is not None:
            changes["file_size_bytes"] = file_size_bytes
        if mime_type is not None:
            changes["mime_type"] = mime_type
        self.documents[key] = record.model_copy(update=changes)

    async def upsert_extraction(self, document_id: str, result: ExtractionResult) -> None:
        self._by_id(document_id)
        self.extractions[document_id] = result

    async def upsert_validation(self, document_id: str, outcome: ValidationOutcome) -> None:
        self._by_id(document_id)
        self.validations[document_id] = outcome

    async def get_extraction(self, document_id: str) -> Optional[ExtractionResult]:
        return self.extractions.get(document_id)

    async def get_validation(self, document_id: str) -> Optional[ValidationOutcome]:
        return self.validations.get(document_id)
