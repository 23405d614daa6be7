from dataclasses import dataclass
from enum import Enum
from typing import Tuple

# ==============================================================================
# Types
# ==============================================================================


class TextSource(Enum):
    """Where a run of selectable text came from."""

    NATIVE = "native"  # The document's own text objects
    OCR = "ocr"  # Recognized from the rendered raster


# ==============================================================================
# Text Layer Objects
# ==============================================================================


@dataclass
class NativeTextItem:
    """A text span as listed by the engine, in document points."""

    text: str
    x: float
    y: float  # top of the span
    width: float
    height: float
    font_name: str = ""
    font_size: float = 12.0


@dataclass
class TextRun:
    """A positioned, selectable string on a page. Ephemeral, derived per render."""

    text: str
    rect: Tuple[float, float, float, float]  # x, y, width, height
    source: TextSource
    column: int = 0  # reading column, 0 when column detection is off
    font_size: float = 12.0

    @property
    def center(self) -> Tuple[float, float]:
        x, y, w, h = self.rect
        return (x + w / 2, y + h / 2)

    def contains_point(self, x: float, y: float) -> bool:
        rx, ry, rw, rh = self.rect
        return rx <= x <= rx + rw and ry <= y <= ry + rh


# ==============================================================================
# OCR Objects
# ==============================================================================


@dataclass
class OcrWord:
    """A recognized word, in raster pixels."""

    text: str
    bbox: Tuple[float, float, float, float]  # x0, y0, x1, y1
    confidence: float = 0.0


@dataclass
class RasterImage:
    """A complete rendered page buffer (RGB, no alpha)."""

    width: int
    height: int
    samples: bytes
    scale: float
    device_pixel_ratio: float = 1.0
