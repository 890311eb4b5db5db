"""
OCR extraction stage: document bytes -> raw text + structured fields.

The OCR engine supplies text and per-block confidences. When no engine is
usable the stage substitutes the rule set's deterministic mock text with
MOCK_CONFIDENCE so the rest of the pipeline still runs; this path never raises.
Structured fields are pulled from the text with the rule set's ordered rules
(first match only, fixed confidence per rule).
"""

import re
import time
from typing import Optional

import structlog

from docverify.engines.base import EngineError, EngineUnavailableError, OcrEngine
from docverify.models.enums import DocumentType
from docverify.observability.metrics import ocr_latency_seconds, ocr_mock_fallback_total
from docverify.pipeline.errors import OcrProcessingError, ProcessingError
from docverify.rules.registry import RuleSet, RuleSetNotFoundError, get_rule_set
from docverify.schemas.contracts import ExtractionResult, FieldValue, OcrResponse

logger = structlog.get_logger(__name__)

MOCK_CONFIDENCE = 0.85
MOCK_ENGINE_NAME = "mock"

_DISALLOWED_CHARS = re.compile(r"[^A-Za-z0-9 ./\-]")
_WHITESPACE = re.compile(r"\s+")


def normalize_value(value: str, compact: bool = False) -> str:
    """Keep ASCII letters, digits, space and ./- ; collapse whitespace."""
    value = _WHITESPACE.sub(" ", value)
    value = _DISALLOWED_CHARS.sub("", value)
    value = _WHITESPACE.sub(" ", value).strip()
    if compact:
        value = value.replace(" ", "")
    return value


def extract_fields(text: str, rules: RuleSet) -> dict[str, FieldValue]:
    """Apply the rule set's extraction rules to OCR text."""
    fields: dict[str, FieldValue] = {}
    for rule in rules.extraction_rules:
        if rule.field_name in fields:
            continue
        match = rule.pattern.search(text)
        if not match:
            continue
        raw = match.group(1) if rule.pattern.groups else match.group(0)
        value = normalize_value(raw or "", compact=rule.compact)
        if value:
            fields[rule.field_name] = FieldValue(value=value, confidence=rule.confidence)
    return fields


def mean_confidence(block_confidences: list[float]) -> float:
    if not block_confidences:
        return 0.0
    return sum(block_confidences) / len(block_confidences)


class OcrExtractor:
    """
    Extraction stage. Pass engine=None to always run on mock text
    (OCR disabled or not installed).
    """

    def __init__(self, engine: Optional[OcrEngine] = None):
        self.engine = engine
        self._engine_healthy = False

    async def _engine_available(self) -> bool:
        if self.engine is None:
            return False
        if not self._engine_healthy:
            self._engine_healthy = await self.engine.health_check()
        return self._engine_healthy

    async def _recognize(self, content: bytes, document_type: DocumentType) -> Optional[OcrResponse]:
        """OCR the bytes; None means the engine is unavailable and mock text applies."""
        if not await self._engine_available():
            return None

        started = time.perf_counter()
        try:
            response = await self.engine.recognize(content)
        except EngineUnavailableError as e:
            self._engine_healthy = False
            logger.warning(
                "ocr_engine_unavailable",
                engine=e.engine_name,
                document_type=document_type.value,
                error=e.message,
            )
            return None
        except EngineError as e:
            raise OcrProcessingError(f"OCR failed: {e}") from e
        finally:
            ocr_latency_seconds.labels(engine_name=self.engine.engine_name).observe(
                time.perf_counter() - started
            )
        return response

    async def extract(self, content: bytes, document_type: DocumentType) -> ExtractionResult:
        """
        Run OCR and field extraction for one document.
        Raises ProcessingError on OCR failure or a missing rule set.
        """
        started = time.perf_counter()
        try:
            rules = get_rule_set(document_type)
        except RuleSetNotFoundError as e:
            raise ProcessingError(str(e), "ERR_NO_RULE_SET") from e

        response = await self._recognize(content, document_type)
        if response is None:
            ocr_mock_fallback_total.labels(document_type=document_type.value).inc()
            logger.info("ocr_mock_fallback", document_type=document_type.value)
            text = rules.mock_text
            confidence = MOCK_CONFIDENCE
            engine_name = MOCK_ENGINE_NAME
        else:
            text = response.text
            confidence = mean_confidence(response.block_confidences)
            engine_name = self.engine.engine_name

        fields = extract_fields(text, rules)
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        logger.info(
            "extraction_complete",
            document_type=document_type.value,
            engine=engine_name,
            field_count=len(fields),
            overall_confidence=round(confidence, 4),
            processing_time_ms=elapsed_ms,
        )

        return ExtractionResult(
            raw_text=text,
            structured_fields=fields,
            overall_confidence=confidence,
            processing_time_ms=elapsed_ms,
            engine_name=engine_name,
            is_mock=response is None,
        )
