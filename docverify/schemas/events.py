"""
Wire schemas for the verification message flow.

Inbound:  VerificationRequest  (verify-document message body)
Outbound: AggregateOutcome     (document-verification-completed)
          ValidationErrorEvent (document-verification-error)

Field names on the wire are camelCase; Python attributes are snake_case.
Serialise with ``model_dump(by_alias=True, mode="json")``.
"""

import time
import uuid
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from docverify.models.enums import VerificationStatus


def epoch_millis() -> int:
    return int(time.time() * 1000)


# ── Inbound ──────────────────────────────────────────────────

class DocumentDetail(BaseModel):
    """One applicant's document within a verification request."""
    storage_ref: str = Field(
        min_length=1,
        validation_alias=AliasChoices("storageRef", "storageId", "storage_ref"),
        serialization_alias="storageRef",
    )
    document_type: str = Field(
        min_length=1,
        validation_alias=AliasChoices("documentType", "document_type"),
        serialization_alias="documentType",
    )
    expected_identifier: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("expectedIdentifier", "documentId", "expected_identifier"),
        serialization_alias="expectedIdentifier",
    )

    model_config = {"frozen": True}


class VerificationRequest(BaseModel):
    """Inbound verify-document message. Immutable once parsed."""
    event_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("eventId", "event_id"),
        serialization_alias="eventId",
    )
    application_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("applicationId", "application_id"),
        serialization_alias="applicationId",
    )
    timestamp: Optional[str] = None
    applicant_documents: dict[str, DocumentDetail] = Field(
        validation_alias=AliasChoices("applicantDocuments", "applicantStorageIds", "applicant_documents"),
        serialization_alias="applicantDocuments",
    )

    model_config = {"frozen": True}

    @field_validator("timestamp", mode="before")
    @classmethod
    def _stringify_timestamp(cls, v):
        return None if v is None else str(v)

    @field_validator("applicant_documents")
    @classmethod
    def _require_applicants(cls, v):
        if not v:
            raise ValueError("request carries no applicant documents")
        return v


# ── Outbound ─────────────────────────────────────────────────

class CustomerDocumentResult(BaseModel):
    """Verification result for one applicant document that passed every stage."""
    document_id: str = Field(serialization_alias="documentId")
    storage_ref: str = Field(serialization_alias="storageRef")
    document_type: str = Field(serialization_alias="documentType")
    is_authentic: bool = Field(serialization_alias="isAuthentic")
    is_complete: bool = Field(serialization_alias="isComplete")
    confidence_score: float = Field(ge=0.0, le=1.0, serialization_alias="confidenceScore")
    raw_text: str = Field(default="", serialization_alias="rawText")
    extracted_data: dict[str, Any] = Field(default_factory=dict, serialization_alias="extractedData")
    verification_details: dict[str, Any] = Field(default_factory=dict, serialization_alias="verificationDetails")


class AggregateOutcome(BaseModel):
    """Single summary event for one verification request."""
    application_id: Optional[str] = Field(default=None, serialization_alias="applicationNumber")
    request_id: Optional[str] = Field(default=None, serialization_alias="requestId")
    status: VerificationStatus
    completed_at: int = Field(default_factory=epoch_millis, serialization_alias="completedAt")
    customer_results: dict[str, list[CustomerDocumentResult]] = Field(
        default_factory=dict, serialization_alias="customerResults"
    )
    error_message: Optional[str] = Field(default=None, serialization_alias="errorMessage")

    def to_message(self) -> dict:
        message = self.model_dump(by_alias=True, mode="json")
        if message.get("errorMessage") is None:
            message.pop("errorMessage", None)
        return message


class ValidationErrorEvent(BaseModel):
    """Published once per document whose extracted identifier does not match."""
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()), serialization_alias="eventId")
    application_id: str = Field(serialization_alias="applicationId")
    applicant_id: str = Field(serialization_alias="applicantId")
    storage_ref: str = Field(serialization_alias="storageRef")
    document_type: str = Field(serialization_alias="documentType")
    expected_document_id: Optional[str] = Field(default=None, serialization_alias="expectedDocumentId")
    extracted_document_id: Optional[str] = Field(default=None, serialization_alias="extractedDocumentId")
    error_message: str = Field(serialization_alias="errorMessage")
    timestamp: int = Field(default_factory=epoch_millis)

    def to_message(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
