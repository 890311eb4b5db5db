"""
Stub OCR engine for testing pipeline plumbing.
Returns canned text and confidences without touching Tesseract.
"""

from typing import Optional

from docverify.engines.base import EngineError, EngineUnavailableError, OcrEngine
from docverify.schemas.contracts import OcrResponse


class StubEngine(OcrEngine):
    """Fake adapter with configurable output, health and failure mode."""

    def __init__(
        self,
        text: str = "",
        block_confidences: Optional[list[float]] = None,
        healthy: bool = True,
        fail_with: Optional[EngineError] = None,
    ):
        self.text = text
        self.block_confidences = list(block_confidences or [])
        self.healthy = healthy
        self.fail_with = fail_with
        self.calls = 0

    @property
    def engine_name(self) -> str:
        return "stub"

    @property
    def engine_version(self) -> str:
        return "0.1.0"

    async def recognize(self, content: bytes) -> OcrResponse:
        self.calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        return OcrResponse(text=self.text, block_confidences=self.block_confidences)

    async def health_check(self) -> bool:
        return self.healthy

    @classmethod
    def unavailable(cls) -> "StubEngine":
        """An engine whose backend raises EngineUnavailableError on every call."""
        return cls(fail_with=EngineUnavailableError("stub", "backend offline"))
