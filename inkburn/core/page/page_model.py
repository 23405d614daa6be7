"""
Per-page model: rendering, text layer and OCR staleness tracking.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import fitz

from .models import OcrWord, RasterImage
from .text_layer import PageTextLayer, TextLayerSynthesizer

logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """A finished render of one page at one generation."""

    page_number: int
    generation: int
    image: RasterImage
    needs_ocr: bool


class PageModel:
    """
    Model for a single PDF page.

    Every change that invalidates a render (scale change, the page leaving
    the viewport) bumps ``generation``. Asynchronous results tagged with an
    older generation are discarded on arrival.
    """

    def __init__(self, doc: fitz.Document, page_number: int,
                 synthesizer: Optional[TextLayerSynthesizer] = None, scale: float = 1.0):
        self._doc = doc
        self.page_number = page_number  # 1-based
        self.synthesizer = synthesizer or TextLayerSynthesizer()
        self.scale = scale

        self.generation = 0
        self.visible = False
        self.text_layer = PageTextLayer()

        self._page: Optional[fitz.Page] = None
        self._render_dpr = 1.0

        # Accepted OCR words in document points, reused by later renders at any zoom
        self._ocr_words: Optional[List[OcrWord]] = None

    @property
    def page(self) -> fitz.Page:
        """Get the underlying fitz page, loading if necessary."""
        if self._page is None:
            self._page = self._doc.load_page(self.page_number - 1)
        return self._page

    @property
    def width(self) -> float:
        """Page width in points."""
        return self.page.rect.width

    @property
    def height(self) -> float:
        """Page height in points."""
        return self.page.rect.height

    def set_visible(self, visible: bool) -> None:
        """Gate rendering on viewport visibility. Hiding cancels in-flight work."""
        if self.visible and not visible:
            self.generation += 1
            logger.debug("Page %d left the viewport, generation %d",
                         self.page_number, self.generation)
        self.visible = visible

    def set_scale(self, scale: float) -> None:
        if scale == self.scale:
            return
        self.scale = scale
        self.generation += 1

    def render(self, device_pixel_ratio: float = 1.0) -> Optional[RenderResult]:
        """
        Render the page and rebuild its native text layer.

        Returns:
            RenderResult, or None for pages outside the viewport
        """
        if not self.visible:
            logger.debug("Skipping render of invisible page %d", self.page_number)
            return None

        self.generation += 1
        self._render_dpr = device_pixel_ratio

        zoom = self.scale * device_pixel_ratio
        pix = self.page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
        image = RasterImage(
            width=pix.width,
            height=pix.height,
            samples=bytes(pix.samples),
            scale=self.scale,
            device_pixel_ratio=device_pixel_ratio,
        )

        items = self.synthesizer.native_items(self.page)
        runs = self.synthesizer.synthesize(self.width, items)
        if not runs and self._ocr_words is not None:
            runs = self.synthesizer.runs_from_ocr(self.width, self._ocr_words, 1.0)
            logger.debug("Reusing OCR text for page %d", self.page_number)
            needs_ocr = False
        else:
            needs_ocr = not runs
        self.text_layer = PageTextLayer(runs)

        return RenderResult(
            page_number=self.page_number,
            generation=self.generation,
            image=image,
            needs_ocr=needs_ocr,
        )

    @property
    def has_ocr_text(self) -> bool:
        return self._ocr_words is not None

    def accept_ocr(self, generation: int, words: Sequence[OcrWord]) -> bool:
        """
        Install an OCR text layer if it belongs to the current render.

        Returns:
            True if the words were applied, False if they were stale
        """
        if generation != self.generation or not self.visible:
            logger.debug("Discarding stale OCR for page %d (generation %d, current %d)",
                         self.page_number, generation, self.generation)
            return False

        factor = self.scale * self._render_dpr
        self._ocr_words = [
            OcrWord(word.text, tuple(v / factor for v in word.bbox), word.confidence)
            for word in words
        ]
        runs = self.synthesizer.runs_from_ocr(self.width, self._ocr_words, 1.0)
        self.text_layer = PageTextLayer(runs)
        return True

    def __repr__(self) -> str:
        return f"PageModel(page={self.page_number}, generation={self.generation})"
