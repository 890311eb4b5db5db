"""
Python enums shared by the pipeline, the wire schemas and the ORM tables.
Values are what gets stored and published; do not rename them.
"""

from enum import Enum
from typing import Optional


class DocumentType(str, Enum):
    AADHAAR = "AADHAAR"
    PAN = "PAN"
    DRIVING_LICENSE = "DRIVING_LICENSE"
    BANK_STATEMENT = "BANK_STATEMENT"

    @classmethod
    def resolve(cls, name: Optional[str]) -> Optional["DocumentType"]:
        """Map a wire name (case-insensitive, legacy aliases allowed) to a member."""
        if not name:
            return None
        key = name.strip().upper().replace("-", "_").replace(" ", "_")
        key = DOCUMENT_TYPE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return None


# Legacy spellings still sent by upstream producers
DOCUMENT_TYPE_ALIASES = {
    "AADHAR": "AADHAAR",
    "PANCARD": "PAN",
    "PAN_CARD": "PAN",
    "DL": "DRIVING_LICENSE",
    "DRIVING_LICENCE": "DRIVING_LICENSE",
}


class DocumentStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    UPLOADED = "UPLOADED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class VerificationStatus(str, Enum):
    COMPLETED = "COMPLETED"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"
    FAILED = "FAILED"


class FailureKind(str, Enum):
    VALIDATION = "VALIDATION_FAILURE"
    PROCESSING = "PROCESSING_ERROR"


class AuditAction(str, Enum):
    REQUEST_RECEIVED = "VERIFY_DOCUMENT_EVENT_RECEIVED"
    DOCUMENT_CREATED = "DOCUMENT_CREATED_FOR_PROCESSING"
    DOCUMENT_FOUND = "DOCUMENT_FOUND_FOR_PROCESSING"
    DOCUMENT_PROCESSED = "DOCUMENT_PROCESSED_SUCCESSFULLY"
    VALIDATION_FAILED = "DOCUMENT_VALIDATION_FAILED"
    PROCESSING_ERROR = "DOCUMENT_PROCESSING_ERROR"
    REQUEST_FAILED = "VERIFY_DOCUMENT_EVENT_ERROR"
    OUTCOME_PUBLISHED = "DOCUMENT_VERIFICATION_COMPLETED_EVENT_PUBLISHED"
