import copy
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from PyQt5.QtCore import QThread, pyqtSignal

from ..annotations.models import Annotation
from ..document.burn_compositor import BurnCompositor, BurnError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BurnRequest:
    """Everything the burn thread needs. Holds private copies, never UI-owned objects."""
    source_bytes: bytes
    annotations: List[Annotation]

    @classmethod
    def create(cls, source_bytes: bytes, annotations: Sequence[Annotation]) -> "BurnRequest":
        return cls(bytes(source_bytes), copy.deepcopy(list(annotations)))


@dataclass(frozen=True)
class BurnResult:
    success: bool
    result_bytes: Optional[bytes] = None
    error: Optional[str] = None


class BurnWorker(QThread):
    """Worker thread for burning annotations into a PDF without freezing the UI."""

    # Signals
    finished = pyqtSignal(object)  # BurnResult
    page_progress = pyqtSignal(int, int)  # current, total pages

    def __init__(self, request: BurnRequest, parent=None):
        super().__init__(parent)
        self.request = request
        self.compositor = BurnCompositor()

    def run(self):
        """Execute the burn in a background thread."""
        self.compositor.progress_signal.connect(self._on_page_progress)
        try:
            result_bytes = self.compositor.burn(self.request.source_bytes, self.request.annotations)
        except BurnError as e:
            logger.error("Burn failed: %s", e)
            self.finished.emit(BurnResult(success=False, error=str(e)))
            return
        except Exception as e:
            logger.exception("Burn worker crashed")
            self.finished.emit(BurnResult(success=False, error=f"Error during burn: {e}"))
            return
        finally:
            self.compositor.progress_signal.disconnect(self._on_page_progress)

        self.finished.emit(BurnResult(success=True, result_bytes=result_bytes))

    def _on_page_progress(self, current, total):
        """Handle page-level progress updates."""
        self.page_progress.emit(current, total)
