"""
Controller for annotation tools and burning.
"""
import logging
from typing import List, Optional, Sequence

from PyQt5.QtCore import QObject, pyqtSignal

from ..core.annotations import Annotation, AnnotationManager
from ..core.coordinates import Point, Rect
from ..core.export import BurnRequest, BurnResult, BurnWorker
from ..core.tools import OutcomeKind, ToolOutcome, ToolState, ToolStateMachine

logger = logging.getLogger(__name__)


class AnnotationController(QObject):
    """Routes UI events to the tool state machine and reports what happened."""

    # Signals
    annotations_changed = pyqtSignal()  # Visible set was recomputed
    draft_changed = pyqtSignal()  # Selection, stroke or draft note changed
    note_draft_opened = pyqtSignal(object)  # DraftNote waiting for text
    feedback = pyqtSignal(str)  # Message for the status bar
    persistence_failed = pyqtSignal(str)  # Error message
    burn_finished = pyqtSignal(object)  # BurnResult

    def __init__(self, manager: AnnotationManager, tools: ToolStateMachine, parent=None):
        super().__init__(parent)
        self.manager = manager
        self.tools = tools
        self._burn_worker: Optional[BurnWorker] = None
        self._burn_request: Optional[BurnRequest] = None

    @property
    def state(self) -> ToolState:
        return self.tools.state

    def _handle(self, outcome: ToolOutcome) -> ToolOutcome:
        """Translate a tool outcome into signals."""
        if outcome.kind in (OutcomeKind.CREATED, OutcomeKind.UPDATED,
                            OutcomeKind.REMOVED, OutcomeKind.FAILED):
            self.annotations_changed.emit()
        if outcome.kind is not OutcomeKind.NONE:
            self.draft_changed.emit()

        if not outcome.durable:
            self.persistence_failed.emit(outcome.message or "Annotation could not be saved.")
        elif outcome.message:
            self.feedback.emit(outcome.message)
        return outcome

    # ------------------------------------------------------------------
    # Tool events
    # ------------------------------------------------------------------

    def select_tool(self, tool: ToolState) -> ToolOutcome:
        return self._handle(self.tools.select_tool(tool))

    def set_selection(self, page: int, rects: Sequence[Rect], text: str) -> ToolOutcome:
        return self._handle(self.tools.set_selection(page, rects, text))

    def clear_selection(self) -> ToolOutcome:
        return self._handle(self.tools.clear_selection())

    def commit_highlight(self) -> ToolOutcome:
        if self.tools.selection is None:
            self.feedback.emit("Select text before highlighting.")
        return self._handle(self.tools.commit_highlight())

    def click(self, page: int, pixel: Point, scale: float) -> ToolOutcome:
        outcome = self._handle(self.tools.click(page, pixel, scale))
        if outcome.kind is OutcomeKind.DRAFT_UPDATED and self.tools.draft_note is not None:
            self.note_draft_opened.emit(self.tools.draft_note)
        return outcome

    def save_note(self, text: str) -> ToolOutcome:
        return self._handle(self.tools.save_note(text))

    def cancel_note(self) -> ToolOutcome:
        return self._handle(self.tools.cancel_note())

    def pointer_down(self, page: int, pixel: Point, scale: float) -> ToolOutcome:
        return self._handle(self.tools.pointer_down(page, pixel, scale))

    def pointer_move(self, page: int, pixel: Point, scale: float) -> ToolOutcome:
        return self._handle(self.tools.pointer_move(page, pixel, scale))

    def pointer_up(self) -> ToolOutcome:
        return self._handle(self.tools.pointer_up())

    def remove_annotation(self, annotation: Annotation) -> ToolOutcome:
        """Delete an annotation picked outside the page (the annotation list)."""
        return self._handle(self.tools.erase(annotation))

    def retry_pending(self) -> bool:
        """
        Re-attempt failed saves.

        Returns:
            True if nothing is pending any more
        """
        failures = [r for r in self.manager.retry_pending() if not r.durable]
        if failures:
            self.persistence_failed.emit(failures[0].error or "Annotation could not be saved.")
            return False
        self.feedback.emit("All annotations saved.")
        return True

    def annotations_for_page(self, page: int) -> List[Annotation]:
        return self.manager.get_annotations_for_page(page)

    # ------------------------------------------------------------------
    # Burn
    # ------------------------------------------------------------------

    @property
    def burning(self) -> bool:
        return self._burn_worker is not None and self._burn_worker.isRunning()

    def start_burn(self, source_bytes: bytes) -> Optional[BurnWorker]:
        """
        Burn the visible set into ``source_bytes`` on a worker thread.

        Returns:
            The started worker, or None if a burn is already running
        """
        if self.burning:
            self.feedback.emit("A burn is already in progress.")
            return None

        self._burn_request = BurnRequest.create(source_bytes, self.manager.visible)
        self._burn_worker = BurnWorker(self._burn_request)
        self._burn_worker.finished.connect(self._on_burn_finished)
        self._burn_worker.start()
        logger.info("Started burn of %d annotations", len(self._burn_request.annotations))
        return self._burn_worker

    def _on_burn_finished(self, result: BurnResult):
        if not result.success:
            self._burn_request = None
        self.burn_finished.emit(result)

    def adopt_burn(self, embedded: Sequence[Annotation]) -> None:
        """
        Take the annotations read back from the burned document as the new baseline.

        Args:
            embedded: Embedded annotations of the new document bytes
        """
        if self._burn_request is None:
            return
        self.manager.apply_burn(self._burn_request.annotations, embedded)
        self._burn_request = None
        self.annotations_changed.emit()
