# src/media_explainer/ocr.py
"""Image text recognition via Tesseract."""

import logging
from pathlib import Path

import pytesseract
from PIL import Image

logger = logging.getLogger(__name__)


class TesseractOcr:
    """OCR engine backed by the tesseract binary through pytesseract."""

    def __init__(self, language: str = "eng"):
        self.language = language

    def recognize(self, image_path: str | Path) -> str:
        """Return the raw recognized text. Errors propagate to the caller."""
        with Image.open(image_path) as image:
            text = pytesseract.image_to_string(image, lang=self.language)
        logger.debug(f"OCR extracted {len(text.strip())} characters from {Path(image_path).name}")
        return text
