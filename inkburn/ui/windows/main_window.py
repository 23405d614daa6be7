"""
Main application window for Inkburn PDF.
"""
import logging
import os
from typing import Dict, List, Optional, Set

import pyperclip
from PyQt5.QtCore import Qt, QTimer, pyqtSignal
from PyQt5.QtGui import QKeySequence
from PyQt5.QtWidgets import (
    QAction,
    QActionGroup,
    QFileDialog,
    QInputDialog,
    QMainWindow,
    QMessageBox,
    QProgressDialog,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from ...config import Settings, save_settings
from ...controllers import AnnotationController
from ...core.annotations import AnnotationManager, AnnotationStore
from ...core.coordinates import clamp_scale
from ...core.document import PDFDocumentReader, save_pdf_bytes
from ...core.export import BurnResult
from ...core.page import OcrEngine, OcrWorker, PageModel, RasterImage, TextLayerSynthesizer
from ...core.tools import ToolState, ToolStateMachine
from ...utils import get_app_data_dir
from ..widgets import AnnotationPanel, PageWidget

logger = logging.getLogger(__name__)

STORE_FILENAME = "annotations.json"
ZOOM_STEP = 1.25


class MainWindow(QMainWindow):
    """Main application window: page list, tool bar and background workers."""

    # Signals
    document_loaded = pyqtSignal(str)

    def __init__(self, settings: Settings, file_path: Optional[str] = None):
        super().__init__()
        self.settings = settings

        # Initialize core components
        self._init_core_components()

        # Setup UI
        self._setup_window()
        self._create_toolbar()

        # Load file if provided
        if file_path and os.path.exists(file_path):
            self.load_pdf(file_path)

    def _init_core_components(self):
        """Initialize core business logic components."""
        self.pdf_reader = PDFDocumentReader()
        self.store = AnnotationStore(get_app_data_dir() / STORE_FILENAME)
        self.synthesizer = TextLayerSynthesizer(
            has_text_threshold=self.settings.has_text_threshold,
            detect_columns=self.settings.detect_columns,
        )
        self.ocr_engine = OcrEngine(self.settings.ocr_language)

        # Created per document
        self.annotation_manager: Optional[AnnotationManager] = None
        self.annotation_controller: Optional[AnnotationController] = None

        # View state
        self.scale = clamp_scale(self.settings.initial_scale,
                                 self.settings.min_scale, self.settings.max_scale)
        self.page_widgets: Dict[int, PageWidget] = {}

        # Running OCR workers by page (kept referenced until they finish)
        self._ocr_workers: Dict[int, OcrWorker] = {}
        self._ocr_deferred: Set[int] = set()
        self._retired_ocr: List[OcrWorker] = []
        self._burn_progress: Optional[QProgressDialog] = None

        # Timer to catch up after fast scrolling stops
        self._scroll_idle_timer = QTimer()
        self._scroll_idle_timer.setSingleShot(True)
        self._scroll_idle_timer.timeout.connect(self.update_visible_pages)

    def _setup_window(self):
        """Setup main window properties."""
        self.setWindowTitle("Inkburn PDF")
        self.setMinimumSize(800, 600)

        self.page_container = QWidget()
        self.page_layout = QVBoxLayout(self.page_container)
        self.page_layout.setAlignment(Qt.AlignHCenter)
        self.page_layout.setSpacing(20)

        self.scroll_area = QScrollArea()
        self.scroll_area.setWidgetResizable(True)
        self.scroll_area.setWidget(self.page_container)
        self.scroll_area.verticalScrollBar().valueChanged.connect(self._on_scroll)
        self.setCentralWidget(self.scroll_area)

        self.annotation_panel = AnnotationPanel(self.settings, self)
        self.annotation_panel.jump_requested.connect(self.jump_to_page)
        self.annotation_panel.remove_requested.connect(self._remove_from_panel)
        self.addDockWidget(Qt.RightDockWidgetArea, self.annotation_panel)

        self.statusBar().showMessage("No PDF Loaded")

    def _add_action(self, toolbar, text: str, slot, shortcut: Optional[str] = None,
                    checkable: bool = False) -> QAction:
        action = QAction(text, self)
        action.setCheckable(checkable)
        if shortcut:
            action.setShortcut(QKeySequence(shortcut))
        action.triggered.connect(slot)
        toolbar.addAction(action)
        return action

    def _create_toolbar(self):
        """Create the top toolbar."""
        toolbar = self.addToolBar("Main")
        toolbar.setMovable(False)

        self._add_action(toolbar, "Open", self.open_pdf, "Ctrl+O")
        toolbar.addSeparator()

        # Tools
        self.tool_group = QActionGroup(self)
        self.tool_actions: Dict[ToolState, QAction] = {}
        for tool, label, shortcut in (
            (ToolState.CURSOR, "Select", "V"),
            (ToolState.NOTE, "Note", "N"),
            (ToolState.INK, "Ink", "P"),
            (ToolState.ERASER, "Eraser", "E"),
        ):
            action = self._add_action(toolbar, label, lambda _=False, t=tool: self.select_tool(t),
                                      shortcut, checkable=True)
            self.tool_group.addAction(action)
            self.tool_actions[tool] = action
        self.tool_actions[ToolState.CURSOR].setChecked(True)

        self.highlight_action = self._add_action(toolbar, "Highlight", self.commit_highlight, "H")
        self.highlight_action.setEnabled(False)
        self._add_action(toolbar, "Copy", self.copy_selected_text, "Ctrl+C")
        toolbar.addSeparator()

        # Zoom
        self._add_action(toolbar, "Zoom Out", lambda: self.set_scale(self.scale / ZOOM_STEP), "Ctrl+-")
        self._add_action(toolbar, "Zoom In", lambda: self.set_scale(self.scale * ZOOM_STEP), "Ctrl+=")
        self.columns_action = self._add_action(toolbar, "Columns", self.toggle_columns, checkable=True)
        self.columns_action.setChecked(self.settings.detect_columns)
        toolbar.addSeparator()

        self.retry_action = self._add_action(toolbar, "Retry Save", self.retry_pending)
        self.retry_action.setEnabled(False)
        self._add_action(toolbar, "Burn", self.burn_annotations, "Ctrl+S")
        toolbar.addSeparator()
        toolbar.addAction(self.annotation_panel.toggleViewAction())

    # Document loading

    def open_pdf(self):
        """Open a PDF file dialog."""
        file_path, _ = QFileDialog.getOpenFileName(self, "Open PDF", "", "PDF Files (*.pdf)")
        if file_path:
            self.load_pdf(file_path)

    def load_pdf(self, file_path: str):
        """Load a PDF file and its annotations."""
        success, total_pages = self.pdf_reader.load_pdf(file_path)
        if not success:
            QMessageBox.critical(self, "Error", f"Error loading PDF: {file_path}")
            return

        self.annotation_manager = AnnotationManager(
            self.store, self.pdf_reader.document_id, total_pages, self.settings.dedupe_tolerance
        )
        self.annotation_manager.load(self.pdf_reader.read_embedded())

        tools = ToolStateMachine(self.annotation_manager, self.settings)
        self.annotation_controller = AnnotationController(self.annotation_manager, tools, self)
        self.annotation_controller.annotations_changed.connect(self._on_annotations_changed)
        self.annotation_controller.draft_changed.connect(self._on_draft_changed)
        self.annotation_controller.note_draft_opened.connect(self._on_note_draft_opened)
        self.annotation_controller.feedback.connect(self._show_feedback)
        self.annotation_controller.persistence_failed.connect(self._on_persistence_failed)
        self.annotation_controller.burn_finished.connect(self._on_burn_finished)

        self.tool_actions[ToolState.CURSOR].setChecked(True)
        self._build_pages()

        self.setWindowTitle(f"Inkburn PDF - {os.path.basename(file_path)}")
        self.statusBar().showMessage(f"{total_pages} pages")
        self.document_loaded.emit(file_path)

    def _build_pages(self):
        """Create one widget per page; rendering waits until a page is visible."""
        self._clear_pages()
        for page_number in range(1, self.pdf_reader.total_pages + 1):
            model = PageModel(self.pdf_reader.doc, page_number, self.synthesizer, self.scale)
            widget = PageWidget(model, self.annotation_controller)
            widget.ocr_requested.connect(self._start_ocr)
            widget.selection_changed.connect(self._on_draft_changed)
            widget.set_annotations(self.annotation_manager.get_annotations_for_page(page_number))
            self.page_layout.addWidget(widget)
            self.page_widgets[page_number] = widget

        self.annotation_panel.set_annotations(self.annotation_manager.visible)
        QTimer.singleShot(0, self.update_visible_pages)

    def _clear_pages(self):
        self._retire_ocr_workers()
        for widget in self.page_widgets.values():
            widget.set_visible_in_viewport(False)
            self.page_layout.removeWidget(widget)
            widget.deleteLater()
        self.page_widgets.clear()

    # Viewport

    def _on_scroll(self):
        self.update_visible_pages()
        self._scroll_idle_timer.start(150)

    def update_visible_pages(self):
        """Render pages near the viewport and cancel work for the rest."""
        scroll_y = self.scroll_area.verticalScrollBar().value()
        viewport_height = self.scroll_area.viewport().height()
        top = scroll_y - viewport_height
        bottom = scroll_y + 2 * viewport_height

        for widget in self.page_widgets.values():
            geometry = widget.geometry()
            visible = geometry.bottom() >= top and geometry.top() <= bottom
            widget.set_visible_in_viewport(visible)

    def jump_to_page(self, page_number: int):
        """Scroll so the top of a page (1-based) is at the top of the viewport."""
        widget = self.page_widgets.get(page_number)
        if widget is not None:
            self.scroll_area.verticalScrollBar().setValue(widget.y())

    def set_scale(self, scale: float):
        scale = clamp_scale(scale, self.settings.min_scale, self.settings.max_scale)
        if scale == self.scale:
            return
        self.scale = scale
        for widget in self.page_widgets.values():
            widget.set_scale(scale)
        QTimer.singleShot(0, self.update_visible_pages)
        self.statusBar().showMessage(f"Zoom {int(scale * 100)}%", 2000)

    def toggle_columns(self, checked: bool):
        self.settings.detect_columns = checked
        self.synthesizer.detect_columns = checked
        save_settings(self.settings)
        for widget in self.page_widgets.values():
            if widget.page_model.visible:
                widget.refresh()

    # OCR

    def _start_ocr(self, page_number: int, generation: int, image: RasterImage):
        if page_number in self._ocr_workers:
            # One Tesseract run per page; the page re-renders when it finishes
            self._ocr_deferred.add(page_number)
            return

        worker = OcrWorker(page_number, generation, image, self.ocr_engine)
        worker.finished.connect(self._on_ocr_finished)
        worker.failed.connect(self._on_ocr_failed)
        self._ocr_workers[page_number] = worker
        worker.start()

    def _retire_ocr_workers(self):
        """Detach running OCR from pages that are going away; threads run to completion."""
        self._retired_ocr = [w for w in self._retired_ocr if w.isRunning()]
        for worker in self._ocr_workers.values():
            worker.finished.disconnect(self._on_ocr_finished)
            worker.failed.disconnect(self._on_ocr_failed)
            self._retired_ocr.append(worker)
        self._ocr_workers.clear()
        self._ocr_deferred.clear()

    def _release_ocr_worker(self, page_number: int) -> bool:
        """Forget the page's worker. Returns True if a newer request was waiting."""
        worker = self._ocr_workers.pop(page_number, None)
        if worker is not None:
            worker.deleteLater()
        if page_number in self._ocr_deferred:
            self._ocr_deferred.discard(page_number)
            return True
        return False

    def _on_ocr_finished(self, page_number: int, generation: int, words: list):
        deferred = self._release_ocr_worker(page_number)
        widget = self.page_widgets.get(page_number)
        if widget is None:
            return
        accepted = widget.page_model.accept_ocr(generation, words)
        if not accepted and deferred and widget.page_model.visible:
            widget.refresh()

    def _on_ocr_failed(self, page_number: int, generation: int, message: str):
        self._release_ocr_worker(page_number)
        self.statusBar().showMessage(f"Text recognition failed on page {page_number}", 5000)

    # Tools

    def select_tool(self, tool: ToolState):
        if self.annotation_controller is None:
            return
        self.annotation_controller.select_tool(tool)
        cursor = Qt.ArrowCursor if tool is ToolState.CURSOR else Qt.CrossCursor
        for widget in self.page_widgets.values():
            widget.setCursor(cursor)

    def commit_highlight(self):
        if self.annotation_controller is not None:
            self.annotation_controller.commit_highlight()

    def _on_note_draft_opened(self, draft):
        existing = draft.editing.text if draft.editing is not None else ""
        text, ok = QInputDialog.getMultiLineText(self, "Note", "Note text:", existing)
        if ok:
            self.annotation_controller.save_note(text)
        else:
            self.annotation_controller.cancel_note()

    def _remove_from_panel(self, annotation):
        if self.annotation_controller is not None:
            self.annotation_controller.remove_annotation(annotation)

    def copy_selected_text(self):
        """Copy selected text to clipboard."""
        text = "\n".join(t for t in (w.selected_text() for w in self.page_widgets.values()) if t)
        if text:
            pyperclip.copy(text)
        else:
            self.statusBar().showMessage("No text has been selected.", 3000)

    def _on_annotations_changed(self):
        """Update annotations on all pages without re-rendering them."""
        for page_number, widget in self.page_widgets.items():
            widget.set_annotations(self.annotation_manager.get_annotations_for_page(page_number))
        self.retry_action.setEnabled(bool(self.annotation_manager.pending))
        self.annotation_panel.set_annotations(self.annotation_manager.visible)

    def _on_draft_changed(self):
        tools = self.annotation_controller.tools if self.annotation_controller else None
        self.highlight_action.setEnabled(tools is not None and tools.state is ToolState.HIGHLIGHT_PENDING)
        for widget in self.page_widgets.values():
            widget.update()

    def _show_feedback(self, message: str):
        self.statusBar().showMessage(message, 5000)

    def _on_persistence_failed(self, message: str):
        if self.annotation_manager is not None and self.annotation_manager.pending:
            self.retry_action.setEnabled(True)
            message += "\n\nThe annotation stays visible. Use \"Retry Save\" to try again."
        QMessageBox.warning(self, "Annotations Not Saved", message)

    def retry_pending(self):
        if self.annotation_controller is None:
            return
        if self.annotation_controller.retry_pending():
            self.retry_action.setEnabled(False)

    # Burn

    def burn_annotations(self) -> bool:
        """Burn the visible annotations into the PDF on a worker thread."""
        if not self.pdf_reader.doc or self.annotation_controller is None:
            QMessageBox.warning(self, "No PDF", "No PDF document is currently loaded.")
            return False

        if not self.annotation_manager.has_unburned_changes:
            QMessageBox.information(self, "Nothing to Burn", "There are no new annotations to burn.")
            return False

        worker = self.annotation_controller.start_burn(self.pdf_reader.source_bytes)
        if worker is None:
            return False

        progress = QProgressDialog("Burning annotations into the PDF...", None, 0, 0, self)
        progress.setWindowTitle("Burning")
        progress.setWindowModality(Qt.WindowModality.WindowModal)
        progress.setMinimumDuration(0)
        progress.setCancelButton(None)
        progress.show()
        self._burn_progress = progress
        return True

    def _on_burn_finished(self, result: BurnResult):
        if self._burn_progress is not None:
            self._burn_progress.close()
            self._burn_progress = None

        if not result.success:
            QMessageBox.critical(self, "Burn Failed", f"The PDF was not changed.\n\n{result.error}")
            return

        file_path = self.pdf_reader.current_file_path
        if file_path and not save_pdf_bytes(result.result_bytes, file_path):
            QMessageBox.critical(self, "Save Failed", f"Could not write {file_path}.")
            return

        success, _ = self.pdf_reader.replace_bytes(result.result_bytes)
        if not success:
            QMessageBox.critical(self, "Error", "The burned PDF could not be reopened.")
            return

        self.annotation_controller.adopt_burn(self.pdf_reader.read_embedded())
        self._build_pages()
        self.statusBar().showMessage("Annotations burned into the PDF.", 5000)

    # Event Handlers

    def keyPressEvent(self, event):  # type: ignore[override]
        """Escape cancels the current draft."""
        if event.key() == Qt.Key.Key_Escape and self.annotation_controller is not None:
            self.annotation_controller.clear_selection()
            self.annotation_controller.cancel_note()
            event.accept()
            return
        super().keyPressEvent(event)

    def closeEvent(self, event):  # type: ignore[override]
        """Warn before quitting with annotations that failed to save."""
        if self.annotation_manager is not None and self.annotation_manager.pending:
            result = QMessageBox.question(
                self,
                "Unsaved Annotations",
                "Some annotations could not be saved and will be lost. Quit anyway?",
                QMessageBox.Yes | QMessageBox.No,
                QMessageBox.No,
            )
            if result != QMessageBox.Yes:
                event.ignore()
                return

        self._clear_pages()
        for worker in self._retired_ocr:
            worker.wait()
        self.pdf_reader.close_document()
        event.accept()
