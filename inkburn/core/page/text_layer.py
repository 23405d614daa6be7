"""
Selectable text layer synthesis for PDF pages.

Native text is preferred. A page with too few native items is treated as a
scanned image and gets its text layer from OCR instead (see ``ocr.py``).
"""
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import fitz

from .models import NativeTextItem, OcrWord, TextRun, TextSource

logger = logging.getLogger(__name__)

# Fragment merging, as multiples of the font size
SAME_LINE_FACTOR = 0.5
MIN_GAP_FACTOR = -0.5
MAX_GAP_FACTOR = 4.0
MAX_GAP_FACTOR_COLUMNS = 1.5
SPACE_GAP_FACTOR = 0.25


class TextLayerSynthesizer:
    """
    Builds ordered text runs for one page from native text or OCR words.

    Args:
        has_text_threshold: A page needs more native items than this to skip OCR
        detect_columns: Split the page at its vertical midline into two
            reading columns
    """

    def __init__(self, has_text_threshold: int = 5, detect_columns: bool = False):
        self.has_text_threshold = has_text_threshold
        self.detect_columns = detect_columns

    def native_items(self, page: fitz.Page) -> List[NativeTextItem]:
        """
        List the page's text spans in document points.

        Extraction failures are parse errors: logged, and the page reads as empty.
        """
        try:
            text_dict = page.get_text("dict", flags=fitz.TEXT_PRESERVE_WHITESPACE)
        except (RuntimeError, ValueError) as e:
            logger.warning("Failed to extract text from page %d: %s", page.number + 1, e)
            return []

        items = []
        for block in text_dict.get("blocks", []):
            # Skip image blocks
            if block.get("type") != 0:
                continue
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    text = span.get("text", "")
                    if not text.strip():
                        continue
                    x0, y0, x1, y1 = span.get("bbox", (0, 0, 0, 0))
                    items.append(NativeTextItem(
                        text=text,
                        x=x0,
                        y=y0,
                        width=x1 - x0,
                        height=y1 - y0,
                        font_name=span.get("font", ""),
                        font_size=span.get("size", 12.0),
                    ))
        return items

    def has_text(self, items: Sequence[NativeTextItem]) -> bool:
        return len(items) > self.has_text_threshold

    def synthesize(self, page_width: float, items: Sequence[NativeTextItem]) -> List[TextRun]:
        """
        Build runs from native items.

        Returns an empty list when the page doesn't have enough native text;
        the caller then schedules OCR.
        """
        if not self.has_text(items):
            return []
        return self._merge(page_width, items, TextSource.NATIVE)

    def runs_from_ocr(self, page_width: float, words: Iterable[OcrWord], scale: float,
                      device_pixel_ratio: float = 1.0) -> List[TextRun]:
        """
        Build runs from OCR words recognized on a raster rendered at ``scale``.

        Boxes are in raster pixels; they are divided by the device pixel ratio
        and then by the scale to land in document points.
        """
        items = []
        for word in words:
            x0, y0, x1, y1 = (v / device_pixel_ratio / scale for v in word.bbox)
            items.append(NativeTextItem(
                text=word.text,
                x=x0,
                y=y0,
                width=x1 - x0,
                height=y1 - y0,
                font_size=y1 - y0,
            ))
        return self._merge(page_width, items, TextSource.OCR)

    def column_of(self, page_width: float, item: NativeTextItem) -> int:
        if not self.detect_columns:
            return 0
        return 0 if item.x + item.width / 2 < page_width / 2 else 1

    def _merge(self, page_width: float, items: Sequence[NativeTextItem],
               source: TextSource) -> List[TextRun]:
        """Group items into lines per column and join fragments on each line."""
        max_gap_factor = MAX_GAP_FACTOR_COLUMNS if self.detect_columns else MAX_GAP_FACTOR

        # Column-major, then top to bottom
        keyed = sorted(
            ((self.column_of(page_width, item), item) for item in items),
            key=lambda pair: (pair[0], pair[1].y, pair[1].x),
        )

        lines: List[Tuple[int, List[NativeTextItem]]] = []
        for column, item in keyed:
            if lines:
                line_column, line_items = lines[-1]
                anchor = line_items[0]
                tolerance = SAME_LINE_FACTOR * max(anchor.font_size, item.font_size)
                if line_column == column and abs(item.y - anchor.y) < tolerance:
                    line_items.append(item)
                    continue
            lines.append((column, [item]))

        runs = []
        for column, line_items in lines:
            line_items.sort(key=lambda i: i.x)
            current = None
            for item in line_items:
                if current is not None:
                    fs = current.font_size
                    gap = item.x - (current.x + current.width)
                    if (item.font_name == current.font_name
                            and MIN_GAP_FACTOR * fs < gap < max_gap_factor * fs):
                        separator = " " if gap > SPACE_GAP_FACTOR * fs else ""
                        right = max(current.x + current.width, item.x + item.width)
                        bottom = max(current.y + current.height, item.y + item.height)
                        top = min(current.y, item.y)
                        current = NativeTextItem(
                            text=current.text + separator + item.text,
                            x=current.x,
                            y=top,
                            width=right - current.x,
                            height=bottom - top,
                            font_name=current.font_name,
                            font_size=current.font_size,
                        )
                        continue
                    runs.append(self._to_run(current, column, source))
                current = item
            if current is not None:
                runs.append(self._to_run(current, column, source))
        return runs

    @staticmethod
    def _to_run(item: NativeTextItem, column: int, source: TextSource) -> TextRun:
        return TextRun(
            text=item.text,
            rect=(item.x, item.y, item.width, item.height),
            source=source,
            column=column,
            font_size=item.font_size,
        )


class PageTextLayer:
    """
    Invisible, selectable text overlay of one page.

    Runs are kept in reading order; selection always follows that order so a
    drag inside one column never picks up text from the neighbouring column.
    """

    def __init__(self, runs: Sequence[TextRun] = ()):
        self.runs: List[TextRun] = list(runs)

    @property
    def source(self) -> Optional[TextSource]:
        return self.runs[0].source if self.runs else None

    def run_at(self, x: float, y: float) -> Optional[TextRun]:
        """Find the run under a document point."""
        for run in self.runs:
            if run.contains_point(x, y):
                return run
        return None

    def nearest_run(self, x: float, y: float, max_distance: float = 20.0) -> Optional[TextRun]:
        """
        Find the run nearest to a point within max_distance.

        Useful when a drag starts between words.
        """
        exact = self.run_at(x, y)
        if exact:
            return exact

        best_run = None
        best_dist = float("inf")
        for run in self.runs:
            rx, ry, rw, rh = run.rect
            dx = max(rx - x, 0.0, x - (rx + rw))
            dy = max(ry - y, 0.0, y - (ry + rh))
            dist = (dx ** 2 + dy ** 2) ** 0.5
            if dist < best_dist and dist <= max_distance:
                best_dist = dist
                best_run = run
        return best_run

    def runs_between(self, start: TextRun, end: TextRun) -> List[TextRun]:
        """
        Get all runs between start and end (inclusive) in reading order.

        Uses identity, so pass runs obtained from this layer.
        """
        start_idx = self._index(start)
        end_idx = self._index(end)
        if start_idx > end_idx:
            start_idx, end_idx = end_idx, start_idx
        return self.runs[start_idx:end_idx + 1]

    def _index(self, run: TextRun) -> int:
        for index, candidate in enumerate(self.runs):
            if candidate is run:
                return index
        raise ValueError("run does not belong to this text layer")

    @staticmethod
    def selection_rects(runs: Sequence[TextRun]) -> List[Tuple[float, float, float, float]]:
        """Rectangles (x, y, width, height) to tint for a selection."""
        return [run.rect for run in runs]

    @staticmethod
    def text_for(runs: Sequence[TextRun]) -> str:
        """
        Extract the text of a selection.

        Runs on the same line are separated by a space, lines by a newline.
        """
        if not runs:
            return ""

        parts = [runs[0].text]
        for previous, run in zip(runs, runs[1:]):
            same_line = (run.column == previous.column
                         and abs(run.rect[1] - previous.rect[1]) < SAME_LINE_FACTOR * previous.font_size)
            parts.append(" " if same_line else "\n")
            parts.append(run.text)
        return "".join(parts)

    @property
    def full_text(self) -> str:
        """Get all text on the page."""
        return self.text_for(self.runs)

    def __len__(self) -> int:
        return len(self.runs)
