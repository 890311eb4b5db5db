"""
Tesseract OCR engine for document images.
Uses pytesseract word-level data; confidences are averaged per Tesseract block
and text is rebuilt line by line in reading order.
"""

import asyncio
import io
from typing import Optional

import pytesseract
import structlog
from PIL import Image, UnidentifiedImageError

from docverify.engines.base import EngineError, EngineUnavailableError, OcrEngine
from docverify.schemas.contracts import OcrResponse

logger = structlog.get_logger(__name__)

# Tesseract reports -1 for non-word boxes; anything this low is noise
MIN_WORD_CONFIDENCE = 10


def _rebuild(data: dict) -> tuple[str, list[float]]:
    """Group word boxes into lines and blocks. Returns (text, block confidences)."""
    lines: dict[tuple[int, int, int], list[str]] = {}
    blocks: dict[int, list[float]] = {}

    for i in range(len(data["text"])):
        word = (data["text"][i] or "").strip()
        conf = int(float(data["conf"][i]))
        if not word or conf < MIN_WORD_CONFIDENCE:
            continue
        block = data["block_num"][i]
        key = (block, data["par_num"][i], data["line_num"][i])
        lines.setdefault(key, []).append(word)
        blocks.setdefault(block, []).append(conf / 100.0)

    text = "\n".join(" ".join(words) for _, words in sorted(lines.items()))
    confidences = [sum(c) / len(c) for _, c in sorted(blocks.items())]
    return text, confidences


class TesseractEngine(OcrEngine):
    """Tesseract OCR; blocking calls run in a worker thread."""

    engine_name = "tesseract"
    engine_version = "5.x"

    def __init__(self, lang: str = "eng+hin", psm: int = 3, cmd: Optional[str] = None):
        """
        Args:
            lang: Tesseract language codes ('eng+hin' reads bilingual ID cards)
            psm: Page segmentation mode (3 = fully automatic)
            cmd: Path to the tesseract binary, if not on PATH
        """
        self.lang = lang
        self.psm = psm
        if cmd:
            pytesseract.pytesseract.tesseract_cmd = cmd

    def _recognize_sync(self, content: bytes) -> OcrResponse:
        try:
            img = Image.open(io.BytesIO(content))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise EngineError(self.engine_name, "ERR_BAD_IMAGE", f"Unreadable image: {e}") from e

        try:
            data = pytesseract.image_to_data(
                img,
                lang=self.lang,
                config=f"--psm {self.psm}",
                output_type=pytesseract.Output.DICT,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise EngineUnavailableError(self.engine_name, str(e)) from e
        except pytesseract.TesseractError as e:
            raise EngineError(self.engine_name, "ERR_OCR", str(e)) from e

        text, confidences = _rebuild(data)
        logger.debug(
            "tesseract_recognition_complete",
            block_count=len(confidences),
            char_count=len(text),
        )
        return OcrResponse(text=text, block_confidences=confidences)

    async def recognize(self, content: bytes) -> OcrResponse:
        return await asyncio.to_thread(self._recognize_sync, content)

    async def health_check(self) -> bool:
        """Check if Tesseract is installed and accessible."""
        try:
            version = await asyncio.to_thread(pytesseract.get_tesseract_version)
            self.engine_version = str(version)
            return True
        except Exception as e:
            logger.warning("tesseract_unavailable", error=str(e))
            return False
