"""
SQLAlchemy ORM models.
One row per (applicant_id, document_type); extraction and validation results
are 1:1 with a document and replaced in place on reprocessing.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import ENUM, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from docverify.models.database import Base
from docverify.models.enums import DocumentStatus, DocumentType


# ────────────────────────────────────────────────────────────
# DOCUMENTS
# ────────────────────────────────────────────────────────────
class DocumentRow(Base):
    __tablename__ = "documents"

    doc_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
        server_default=text("gen_random_uuid()")
    )
    applicant_id: Mapped[str] = mapped_column(Text, nullable=False)
    document_type: Mapped[str] = mapped_column(
        ENUM(*[t.value for t in DocumentType], name="document_type_enum"),
        nullable=False,
    )
    storage_ref: Mapped[str] = mapped_column(Text, nullable=False)
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    file_size_bytes: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, server_default="0"
    )
    mime_type: Mapped[str] = mapped_column(
        Text, nullable=False, default="image/jpeg", server_default="image/jpeg"
    )
    status: Mapped[str] = mapped_column(
        ENUM(*[s.value for s in DocumentStatus], name="document_status_enum"),
        nullable=False, default="PENDING", server_default="PENDING"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )

    extraction = relationship(
        "ExtractionResultRow", back_populates="document", uselist=False, cascade="all, delete-orphan"
    )
    validation = relationship(
        "ValidationOutcomeRow", back_populates="document", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("applicant_id", "document_type", name="uq_documents_applicant_type"),
        Index("idx_documents_status", "status"),
    )


# ────────────────────────────────────────────────────────────
# EXTRACTION RESULTS
# ────────────────────────────────────────────────────────────
class ExtractionResultRow(Base):
    __tablename__ = "extraction_results"

    result_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
        server_default=text("gen_random_uuid()")
    )
    doc_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.doc_id", ondelete="CASCADE"), nullable=False
    )
    raw_text: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    # fieldName -> {"value": str, "confidence": float}
    structured_fields: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    overall_confidence: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False)
    processing_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    engine_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_mock: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )

    document = relationship("DocumentRow", back_populates="extraction")

    __table_args__ = (
        UniqueConstraint("doc_id", name="uq_extraction_results_doc"),
    )


# ────────────────────────────────────────────────────────────
# VALIDATION OUTCOMES
# ────────────────────────────────────────────────────────────
class ValidationOutcomeRow(Base):
    __tablename__ = "validation_outcomes"

    outcome_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
        server_default=text("gen_random_uuid()")
    )
    doc_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.doc_id", ondelete="CASCADE"), nullable=False
    )
    is_authentic: Mapped[bool] = mapped_column(Boolean, nullable=False)
    is_complete: Mapped[bool] = mapped_column(Boolean, nullable=False)
    overall_score: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False)
    format_checks: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    per_field_detail: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )

    document = relationship("DocumentRow", back_populates="validation")

    __table_args__ = (
        UniqueConstraint("doc_id", name="uq_validation_outcomes_doc"),
    )


# ────────────────────────────────────────────────────────────
# AUDIT LOG (append-only)
# ────────────────────────────────────────────────────────────
class AuditLogEntry(Base):
    __tablename__ = "audit_log"

    audit_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
    application_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    event_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )

    __table_args__ = (
        Index("idx_audit_application", "application_id"),
        Index("idx_audit_action", "action"),
    )
