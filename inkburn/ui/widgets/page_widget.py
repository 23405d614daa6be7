"""
Interactive page widget: rendered page, text selection and annotation overlay.
"""
import logging
from typing import List, Optional

from PyQt5.QtCore import QPointF, QRectF, Qt, pyqtSignal
from PyQt5.QtGui import QBrush, QColor, QImage, QMouseEvent, QPainter, QPainterPath, QPen, QPixmap
from PyQt5.QtWidgets import QLabel

from ...controllers import AnnotationController
from ...core.annotations import Annotation, AnnotationKind
from ...core.annotations.manager import NOTE_HIT_SIZE
from ...core.coordinates import rect_to_screen, to_document, to_screen
from ...core.page import PageModel, RasterImage, TextRun
from ...core.tools import ToolState

logger = logging.getLogger(__name__)

SELECTION_COLOR = QColor(0, 89, 195, 100)


def raster_to_pixmap(image: RasterImage) -> QPixmap:
    """Wrap a rendered raster in a QPixmap with the right device pixel ratio."""
    qimage = QImage(image.samples, image.width, image.height, image.width * 3, QImage.Format_RGB888)
    pixmap = QPixmap.fromImage(qimage.copy())
    pixmap.setDevicePixelRatio(image.device_pixel_ratio)
    return pixmap


def _qcolor(hex_color: Optional[str], opacity: Optional[float], fallback: str) -> QColor:
    color = QColor(hex_color or fallback)
    color.setAlphaF(1.0 if opacity is None else opacity)
    return color


class PageWidget(QLabel):
    """
    Page widget forwarding pointer input to the annotation controller.

    Features:
    - Run-level text selection in reading order
    - Annotation display
    - Ink preview while drawing
    """

    # Signals
    ocr_requested = pyqtSignal(int, int, object)  # page_number, generation, RasterImage
    selection_changed = pyqtSignal()

    def __init__(self, page_model: PageModel, controller: AnnotationController, parent=None):
        super().__init__(parent)

        self.page_model = page_model
        self.controller = controller

        # Selection state (cursor tool)
        self._selection_start: Optional[TextRun] = None
        self._selected_runs: List[TextRun] = []

        self.annotations: List[Annotation] = []

        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.StrongFocus)
        self._show_placeholder()

    @property
    def page_number(self) -> int:
        return self.page_model.page_number

    @property
    def scale(self) -> float:
        return self.page_model.scale

    def _show_placeholder(self):
        width, height = to_screen((self.page_model.width, self.page_model.height), self.scale)
        self.setFixedSize(int(width), int(height))

    def set_visible_in_viewport(self, visible: bool):
        """Render on entering the viewport; leaving it cancels pending OCR."""
        was_visible = self.page_model.visible
        self.page_model.set_visible(visible)
        if visible and not was_visible:
            self.refresh()

    def refresh(self):
        """Render the page and request OCR if it has no native text."""
        result = self.page_model.render(self.devicePixelRatioF())
        if result is None:
            return

        pixmap = raster_to_pixmap(result.image)
        self.setPixmap(pixmap)
        self._show_placeholder()
        self._clear_selection()

        if result.needs_ocr:
            self.ocr_requested.emit(self.page_number, result.generation, result.image)

    def set_scale(self, scale: float):
        """Update zoom; stored geometry is untouched, only the transform changes."""
        if scale == self.scale:
            return
        self.page_model.set_scale(scale)
        self._show_placeholder()
        if self.page_model.visible:
            self.refresh()

    def set_annotations(self, annotations: List[Annotation]):
        """Set annotations to display on this page."""
        self.annotations = annotations
        self.update()

    # Selection

    def _clear_selection(self):
        self._selection_start = None
        if self._selected_runs:
            self._selected_runs = []
            self.selection_changed.emit()

    def selected_text(self) -> str:
        return self.page_model.text_layer.text_for(self._selected_runs)

    # Mouse event handlers

    def mousePressEvent(self, event: QMouseEvent):
        self.setFocus()
        if event.button() != Qt.LeftButton:
            return

        pixel = (event.pos().x(), event.pos().y())
        state = self.controller.state

        if state in (ToolState.CURSOR, ToolState.HIGHLIGHT_PENDING):
            x, y = to_document(pixel, self.scale)
            self._clear_selection()
            self.controller.clear_selection()
            self._selection_start = self.page_model.text_layer.nearest_run(x, y, 20.0 / self.scale)
        elif state is ToolState.INK:
            self.controller.pointer_down(self.page_number, pixel, self.scale)
        else:
            self.controller.click(self.page_number, pixel, self.scale)
        self.update()

    def mouseMoveEvent(self, event: QMouseEvent):
        if not event.buttons() & Qt.LeftButton:
            return

        pixel = (event.pos().x(), event.pos().y())
        state = self.controller.state

        if state is ToolState.INK:
            self.controller.pointer_move(self.page_number, pixel, self.scale)
        elif self._selection_start is not None:
            x, y = to_document(pixel, self.scale)
            end = self.page_model.text_layer.nearest_run(x, y, 20.0 / self.scale)
            if end is not None:
                self._selected_runs = self.page_model.text_layer.runs_between(self._selection_start, end)
                self.selection_changed.emit()
        self.update()

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() != Qt.LeftButton:
            return

        if self.controller.state is ToolState.INK:
            self.controller.pointer_up()
        elif self._selected_runs:
            layer = self.page_model.text_layer
            self.controller.set_selection(
                self.page_number,
                layer.selection_rects(self._selected_runs),
                layer.text_for(self._selected_runs),
            )
        self._selection_start = None
        self.update()

    # Painting

    def paintEvent(self, event):
        super().paintEvent(event)

        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing)
        try:
            self._paint_selection(painter)
            self._paint_annotations(painter)
            self._paint_drafts(painter)
        finally:
            painter.end()

    def _paint_selection(self, painter: QPainter):
        """Paint the selection tint; the text layer itself is invisible."""
        if not self._selected_runs:
            return
        painter.setBrush(QBrush(SELECTION_COLOR))
        painter.setPen(Qt.NoPen)
        for run in self._selected_runs:
            painter.drawRect(QRectF(*rect_to_screen(run.rect, self.scale)))

    def _paint_annotations(self, painter: QPainter):
        """Paint annotations on this page."""
        for ann in self.annotations:
            if ann.kind is AnnotationKind.HIGHLIGHT:
                # Burned highlights are already part of the rendered page
                if not ann.burned:
                    self._paint_highlight(painter, ann)
            elif ann.kind is AnnotationKind.INK:
                if not ann.burned:
                    self._paint_ink(painter, ann.points or [], ann.color, ann.opacity, ann.stroke_width)
            elif ann.kind is AnnotationKind.NOTE:
                self._paint_note(painter, ann.bbox[0], ann.bbox[1], ann.color)
            else:
                raise ValueError(f"unknown annotation kind: {ann.kind!r}")

    def _paint_highlight(self, painter: QPainter, ann: Annotation):
        painter.setBrush(QBrush(_qcolor(ann.color, ann.opacity, "#facc15")))
        painter.setPen(Qt.NoPen)
        painter.drawRect(QRectF(*rect_to_screen(ann.bbox, self.scale)))

    def _paint_ink(self, painter: QPainter, points, color, opacity, stroke_width):
        if len(points) < 2:
            return

        pen = QPen(_qcolor(color, opacity, "#ff0000"), (stroke_width or 3.0) * self.scale)
        pen.setCapStyle(Qt.RoundCap)
        pen.setJoinStyle(Qt.RoundJoin)
        painter.setPen(pen)
        painter.setBrush(Qt.NoBrush)

        path = QPainterPath()
        path.moveTo(QPointF(*to_screen(points[0], self.scale)))
        for point in points[1:]:
            path.lineTo(QPointF(*to_screen(point, self.scale)))
        painter.drawPath(path)

    def _paint_note(self, painter: QPainter, x: float, y: float, color: Optional[str]):
        sx, sy = to_screen((x, y), self.scale)
        size = NOTE_HIT_SIZE * self.scale
        painter.setBrush(QBrush(_qcolor(color, 1.0, "#fef9c3")))
        painter.setPen(QPen(QColor(161, 98, 7), 1))
        painter.drawRect(QRectF(sx, sy, size, size))

    def _paint_drafts(self, painter: QPainter):
        """Paint the stroke in progress and the open draft note."""
        tools = self.controller.tools
        settings = tools.settings

        if tools.stroke is not None and tools.stroke.page == self.page_number:
            self._paint_ink(painter, tools.stroke.points, settings.ink_color,
                            settings.ink_opacity, settings.ink_stroke_width)

        draft = tools.draft_note
        if draft is not None and draft.page == self.page_number and draft.editing is None:
            self._paint_note(painter, draft.x, draft.y, settings.note_color)
