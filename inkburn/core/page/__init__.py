"""
Page rendering and text layers for PDF documents.
"""

from .models import NativeTextItem, OcrWord, RasterImage, TextRun, TextSource
from .ocr import OcrEngine, OcrError, OcrWorker
from .page_model import PageModel, RenderResult
from .text_layer import PageTextLayer, TextLayerSynthesizer

__all__ = [
    "NativeTextItem",
    "OcrEngine",
    "OcrError",
    "OcrWord",
    "OcrWorker",
    "PageModel",
    "PageTextLayer",
    "RasterImage",
    "RenderResult",
    "TextLayerSynthesizer",
    "TextRun",
    "TextSource",
]
