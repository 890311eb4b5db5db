"""
Core pipeline contracts.
FieldValue is THE unit of extracted data: every stage (extraction, validation,
publication) passes typed FieldValue pairs, never loose dicts.

Invariants:
- confidence and score values are clamped to [0.0, 1.0] on construction
- ExtractionResult / ValidationOutcome exist at most once per DocumentRecord
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from docverify.models.enums import DocumentStatus, DocumentType


def clamp_unit(value: float) -> float:
    """Clamp a confidence/score into [0.0, 1.0]."""
    if value is None:
        return 0.0
    return max(0.0, min(1.0, float(value)))


class FieldValue(BaseModel):
    """A single extracted field and the confidence attached to it."""
    value: str
    confidence: float = 0.0

    model_config = {"frozen": True}

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v):
        return clamp_unit(v)


class OcrResponse(BaseModel):
    """What the OCR capability returns for one document image."""
    text: str = ""
    block_confidences: list[float] = []

    @field_validator("block_confidences", mode="before")
    @classmethod
    def _clamp_blocks(cls, v):
        return [clamp_unit(c) for c in (v or [])]


class ExtractionResult(BaseModel):
    """Raw text plus structured fields for one document."""
    raw_text: str = ""
    structured_fields: dict[str, FieldValue] = {}
    overall_confidence: float = 0.0
    processing_time_ms: int = 0
    engine_name: str = ""
    is_mock: bool = False

    @field_validator("overall_confidence", mode="before")
    @classmethod
    def _clamp_overall(cls, v):
        return clamp_unit(v)

    def fields_as_dict(self) -> dict[str, dict]:
        """Wire representation: fieldName -> {value, confidence}."""
        return {name: fv.model_dump() for name, fv in self.structured_fields.items()}


class FieldValidation(BaseModel):
    """Per-field validation detail."""
    value: Optional[str] = None
    confidence: float = 0.0
    format_valid: bool = True
    required: bool = False
    valid: bool = True

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v):
        return clamp_unit(v)


class ValidationOutcome(BaseModel):
    """Result of validating one document's structured fields."""
    document_type: DocumentType
    is_authentic: bool = False
    is_complete: bool = False
    overall_score: float = 0.0
    format_checks: dict[str, bool] = {}
    per_field_detail: dict[str, FieldValidation] = {}

    @field_validator("overall_score", mode="before")
    @classmethod
    def _clamp_score(cls, v):
        return clamp_unit(v)

    def details_as_dict(self) -> dict:
        """Wire representation of the validation detail block."""
        return {
            "document_type": self.document_type.value,
            "field_validations": {
                name: detail.model_dump() for name, detail in self.per_field_detail.items()
            },
        }


class DocumentRecord(BaseModel):
    """A document known to the service, unique by (applicant_id, document_type)."""
    document_id: Optional[str] = None
    applicant_id: str
    document_type: DocumentType
    storage_ref: str
    file_name: str
    file_size_bytes: int = Field(default=0, ge=0)
    mime_type: str = "image/jpeg"
    status: DocumentStatus = DocumentStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
