"""
Tests for Tesseract output handling (no Tesseract binary needed).
"""

import asyncio

import pytest

from docverify.engines.base import EngineError
from docverify.engines.tesseract_engine import TesseractEngine, _rebuild


def _data(words):
    """Build an image_to_data DICT from (block, par, line, text, conf) tuples."""
    keys = ("block_num", "par_num", "line_num", "text", "conf")
    return {key: [w[i] for w in words] for i, key in enumerate(keys)}


class TestRebuild:

    def test_lines_and_block_confidences(self):
        data = _data([
            (1, 1, 1, "INCOME", 90),
            (1, 1, 1, "TAX", 80),
            (1, 1, 2, "ABCDE1234F", 70),
            (2, 1, 1, "Name:", 60),
            (2, 1, 1, "John", "40.5"),
        ])
        text, confidences = _rebuild(data)
        assert text == "INCOME TAX\nABCDE1234F\nName: John"
        assert confidences == pytest.approx([0.8, 0.5])

    def test_noise_is_dropped(self):
        data = _data([
            (1, 0, 0, "", -1),
            (1, 1, 1, "  ", 95),
            (1, 1, 1, "~", 5),
            (1, 1, 1, "PAN", 88),
        ])
        text, confidences = _rebuild(data)
        assert text == "PAN"
        assert confidences == pytest.approx([0.88])

    def test_empty(self):
        assert _rebuild(_data([])) == ("", [])


class TestTesseractEngine:

    def test_unreadable_image(self):
        with pytest.raises(EngineError) as exc:
            asyncio.run(TesseractEngine().recognize(b"not an image"))
        assert exc.value.error_code == "ERR_BAD_IMAGE"
