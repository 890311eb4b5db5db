"""
Document validation - completeness, format and confidence checks.

isAuthentic requires every declared format check to pass AND every extracted
field to clear CONFIDENCE_THRESHOLD. Completeness is reported separately and
does not gate authenticity.
"""

from typing import Mapping, Optional

import structlog

from docverify.models.enums import DocumentType
from docverify.rules.registry import get_rule_set
from docverify.schemas.contracts import FieldValidation, FieldValue, ValidationOutcome

logger = structlog.get_logger(__name__)

CONFIDENCE_THRESHOLD = 0.70

# ── Weights for the overall score ────────────────────────────
SCORE_WEIGHTS = {
    "mean_field_confidence": 0.6,
    "format_pass_rate": 0.4,
}


def _has_value(field: Optional[FieldValue]) -> bool:
    return field is not None and bool(field.value.strip())


def validate(document_type: DocumentType, fields: Mapping[str, FieldValue]) -> ValidationOutcome:
    """
    Validate one document's structured fields against its rule set.
    Pure: the same inputs always give the same outcome.
    Raises RuleSetNotFoundError for an unregistered document type.
    """
    rules = get_rule_set(document_type)

    # ── Completeness ─────────────────────────────────────────
    missing = sorted(name for name in rules.required_fields if not _has_value(fields.get(name)))
    is_complete = not missing

    # ── Format checks (absent field fails its check) ─────────
    format_checks = {
        name: name in fields and bool(pattern.fullmatch(fields[name].value))
        for name, pattern in rules.format_patterns.items()
    }
    formats_ok = all(format_checks.values())

    # ── Confidence gate ──────────────────────────────────────
    low_confidence = sorted(
        name for name, fv in fields.items() if fv.confidence < CONFIDENCE_THRESHOLD
    )
    confidence_ok = not low_confidence

    # ── Weighted score ───────────────────────────────────────
    mean_confidence = (
        sum(fv.confidence for fv in fields.values()) / len(fields) if fields else 0.0
    )
    format_rate = (
        sum(1 for ok in format_checks.values() if ok) / len(format_checks) if format_checks else 0.0
    )
    score = (
        SCORE_WEIGHTS["mean_field_confidence"] * mean_confidence
        + SCORE_WEIGHTS["format_pass_rate"] * format_rate
    )

    # ── Per-field detail ─────────────────────────────────────
    per_field = {}
    for name, fv in fields.items():
        required = name in rules.required_fields
        format_valid = format_checks.get(name, True)
        per_field[name] = FieldValidation(
            value=fv.value,
            confidence=fv.confidence,
            format_valid=format_valid,
            required=required,
            valid=(not required or _has_value(fv)) and format_valid,
        )

    outcome = ValidationOutcome(
        document_type=document_type,
        is_authentic=formats_ok and confidence_ok,
        is_complete=is_complete,
        overall_score=round(score, 4),
        format_checks=format_checks,
        per_field_detail=per_field,
    )

    logger.debug(
        "document_validated",
        document_type=document_type.value,
        is_authentic=outcome.is_authentic,
        is_complete=outcome.is_complete,
        overall_score=outcome.overall_score,
        missing_fields=missing,
        low_confidence_fields=low_confidence,
    )
    return outcome
