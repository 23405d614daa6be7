"""
OCR fallback for pages without native text.
"""
import logging
from typing import Any, Dict, List

import pytesseract
from PIL import Image
from PyQt5.QtCore import QThread, pyqtSignal

from .models import OcrWord, RasterImage

logger = logging.getLogger(__name__)


class OcrError(Exception):
    """Raised when the OCR engine can't process a raster."""


class OcrEngine:
    """Tesseract word recognition on a complete page raster."""

    def __init__(self, language: str = "eng"):
        self.language = language

    def recognize(self, image: RasterImage) -> List[OcrWord]:
        """
        Recognize words on a raster.

        Returns:
            Words with boxes in raster pixels

        Raises:
            OcrError: if Tesseract is missing or fails
        """
        try:
            pil_image = Image.frombytes("RGB", (image.width, image.height), image.samples)
            data = pytesseract.image_to_data(
                pil_image,
                lang=self.language,
                output_type=pytesseract.Output.DICT,
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError,
                ValueError, OSError) as e:
            raise OcrError(f"OCR failed: {e}") from e

        return parse_ocr_data(data)


def parse_ocr_data(data: Dict[str, Any]) -> List[OcrWord]:
    """Parse pytesseract ``image_to_data`` output, dropping empty and unconfident boxes."""
    words = []
    for i in range(len(data.get("text", []))):
        text = str(data["text"][i]).strip()
        try:
            conf = float(data["conf"][i])
        except (TypeError, ValueError):
            continue

        if text and conf > 0:
            left = float(data["left"][i])
            top = float(data["top"][i])
            words.append(OcrWord(
                text=text,
                bbox=(left, top, left + float(data["width"][i]), top + float(data["height"][i])),
                confidence=conf / 100.0,
            ))
    return words


class OcrWorker(QThread):
    """Worker thread running OCR for one page render without freezing the UI."""

    # Signals
    finished = pyqtSignal(int, int, object)  # page_number, generation, List[OcrWord]
    failed = pyqtSignal(int, int, str)  # page_number, generation, error message

    def __init__(self, page_number: int, generation: int, image: RasterImage,
                 engine: OcrEngine, parent=None):
        super().__init__(parent)
        self.page_number = page_number
        self.generation = generation
        self.image = image
        self.engine = engine

    def run(self):
        """Execute OCR in background thread."""
        try:
            words = self.engine.recognize(self.image)
        except OcrError as e:
            logger.warning("OCR failed for page %d: %s", self.page_number, e)
            self.failed.emit(self.page_number, self.generation, str(e))
            return

        logger.debug("OCR found %d words on page %d (generation %d)",
                     len(words), self.page_number, self.generation)
        self.finished.emit(self.page_number, self.generation, words)
