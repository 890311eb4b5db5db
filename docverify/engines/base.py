"""
Abstract base class for OCR engines.
Every engine turns document image bytes into an OcrResponse.
"""

from abc import ABC, abstractmethod

from docverify.schemas.contracts import OcrResponse


class OcrEngine(ABC):
    """
    Abstract base class for all OCR engines.

    Every engine must:
    1. Accept raw image bytes
    2. Return OcrResponse (text + per-block confidences in [0, 1])
    3. Report its name and version
    4. Raise EngineUnavailableError when the backend cannot be reached,
       EngineError for anything else
    """

    @property
    @abstractmethod
    def engine_name(self) -> str:
        """Unique identifier: 'tesseract', 'stub'"""
        ...

    @property
    @abstractmethod
    def engine_version(self) -> str:
        ...

    @abstractmethod
    async def recognize(self, content: bytes) -> OcrResponse:
        """Recognize text in one document image."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify engine is available and responding."""
        ...


class EngineError(Exception):
    """Raised when an OCR engine fails on a document."""

    def __init__(self, engine_name: str, error_code: str, message: str):
        self.engine_name = engine_name
        self.error_code = error_code
        self.message = message
        super().__init__(f"[{engine_name}] {error_code}: {message}")


class EngineUnavailableError(EngineError):
    """The engine backend is missing or not responding; callers may fall back."""

    def __init__(self, engine_name: str, message: str):
        super().__init__(engine_name, "ERR_ENGINE_UNAVAILABLE", message)
