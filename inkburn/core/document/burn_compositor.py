import logging
from typing import Dict, List, Sequence

import fitz  # PyMuPDF
from PyQt5.QtCore import QObject, pyqtSignal

from ..annotations.embedded import serialize_embedded
from ..annotations.models import Annotation, AnnotationKind, hex_to_rgb

logger = logging.getLogger(__name__)

DEFAULT_HIGHLIGHT_COLOR = "#facc15"
DEFAULT_HIGHLIGHT_OPACITY = 0.4
DEFAULT_INK_COLOR = "#ff0000"
DEFAULT_INK_WIDTH = 3.0
DEFAULT_INK_OPACITY = 0.5

# Document info keys PyMuPDF accepts back in set_metadata
METADATA_KEYS = ('author', 'producer', 'creator', 'title', 'subject',
                 'keywords', 'creationDate', 'modDate')


class BurnError(Exception):
    """Raised when a burn can't be completed. The source bytes are untouched."""


class BurnCompositor(QObject):
    """Draws annotations into page content and embeds the annotation set."""

    # Signal for progress updates (optional, can be left unconnected)
    progress_signal = pyqtSignal(int, int)  # current, total pages

    def burn(self, source_bytes: bytes, annotations: Sequence[Annotation]) -> bytes:
        """
        Produce a new document with the annotations composited in.

        Highlights and ink that are not yet burned are drawn into the page
        content; notes are never drawn. The whole set, burned records included,
        is embedded in the ``keywords`` metadata so it can be read back.

        Args:
            source_bytes: The current document bytes
            annotations: The visible annotation set at burn time

        Returns:
            The new document bytes

        Raises:
            BurnError: on any failure; nothing is partially applied
        """
        try:
            doc = fitz.open(stream=source_bytes, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            raise BurnError(f"Source document could not be opened: {e}") from e

        try:
            # Group drawable annotations by page
            annotations_by_page: Dict[int, List[Annotation]] = {}
            for ann in annotations:
                if not 1 <= ann.page <= doc.page_count:
                    raise BurnError(
                        f"Annotation {ann.id} is on page {ann.page}, "
                        f"document has {doc.page_count} pages"
                    )
                if ann.burned or ann.is_note:
                    continue
                annotations_by_page.setdefault(ann.page, []).append(ann)

            total_pages = len(annotations_by_page)
            for current, (page_number, page_annotations) in enumerate(sorted(annotations_by_page.items())):
                self.progress_signal.emit(current, total_pages)
                page = doc[page_number - 1]
                for ann in page_annotations:
                    self._draw_annotation(page, ann)
            self.progress_signal.emit(total_pages, total_pages)

            metadata = {k: v for k, v in (doc.metadata or {}).items()
                        if k in METADATA_KEYS and v is not None}
            metadata['keywords'] = serialize_embedded(annotations)
            doc.set_metadata(metadata)

            result = doc.tobytes(garbage=4, deflate=True)
        except BurnError:
            raise
        except (RuntimeError, ValueError, TypeError) as e:
            raise BurnError(f"Failed to burn annotations: {e}") from e
        finally:
            doc.close()

        logger.info("Burned %d annotations (%d pages drawn)", len(annotations), total_pages)
        return result

    def _draw_annotation(self, page: fitz.Page, annotation: Annotation):
        """Draw a single annotation into the page content (top-left origin, points)."""
        if annotation.kind is AnnotationKind.HIGHLIGHT:
            x, y, w, h = annotation.bbox
            color = hex_to_rgb(annotation.color or DEFAULT_HIGHLIGHT_COLOR)
            opacity = annotation.opacity if annotation.opacity is not None else DEFAULT_HIGHLIGHT_OPACITY
            page.draw_rect(
                fitz.Rect(x, y, x + w, y + h),
                color=None,
                fill=color,
                fill_opacity=opacity,
                width=0,
                overlay=True,
            )

        elif annotation.kind is AnnotationKind.INK:
            points = annotation.points or []
            if len(points) < 2:
                return
            color = hex_to_rgb(annotation.color or DEFAULT_INK_COLOR)
            width = annotation.stroke_width if annotation.stroke_width is not None else DEFAULT_INK_WIDTH
            opacity = annotation.opacity if annotation.opacity is not None else DEFAULT_INK_OPACITY

            shape = page.new_shape()
            for start, end in zip(points, points[1:]):
                shape.draw_line(fitz.Point(start[0], start[1]), fitz.Point(end[0], end[1]))
            shape.finish(color=color, width=width, stroke_opacity=opacity,
                         lineCap=1, lineJoin=1, closePath=False)
            shape.commit()

        elif annotation.kind is AnnotationKind.NOTE:
            # Notes stay overlays
            return

        else:
            raise BurnError(f"Unknown annotation kind: {annotation.kind!r}")
