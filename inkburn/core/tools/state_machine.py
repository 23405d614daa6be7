"""
Interactive tool state machine.

Turns pointer events and tool actions into annotation commits. Pixel input is
converted to document points on entry; everything the machine keeps (drafts,
selection, stroke) is in document points.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from ...config import Settings
from ..annotations.manager import BURNED_MESSAGE, AnnotationManager, RemoveOutcome
from ..annotations.models import Annotation, AnnotationKind
from ..coordinates import Point, Rect, to_document

logger = logging.getLogger(__name__)


class ToolState(Enum):
    CURSOR = "cursor"
    HIGHLIGHT_PENDING = "highlight-pending"
    NOTE = "note"
    INK = "ink"
    ERASER = "eraser"


# Tools the user can pick; highlight-pending is only reached through a selection
SELECTABLE_TOOLS = (ToolState.CURSOR, ToolState.NOTE, ToolState.INK, ToolState.ERASER)


class OutcomeKind(Enum):
    NONE = "none"
    STATE_CHANGED = "state_changed"
    DRAFT_UPDATED = "draft_updated"
    CREATED = "created"
    UPDATED = "updated"
    REMOVED = "removed"
    REJECTED = "rejected"
    DISCARDED = "discarded"
    FAILED = "failed"  # store write failed, visible set recomputed


@dataclass
class ToolOutcome:
    """What a tool call did. ``durable`` is False when a commit could not be saved."""
    kind: OutcomeKind
    annotations: List[Annotation] = field(default_factory=list)
    message: Optional[str] = None
    durable: bool = True


@dataclass
class Selection:
    page: int
    rects: List[Rect]
    text: str


@dataclass
class DraftNote:
    page: int
    x: float
    y: float
    editing: Optional[Annotation] = None  # existing note being edited


@dataclass
class Stroke:
    page: int
    points: List[Point] = field(default_factory=list)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ToolStateMachine:
    """
    Tool states: cursor, highlight-pending, note, ink and eraser.

    Starts in cursor and has no terminal state. Every commit goes through
    ``AnnotationManager.add`` so the local store stays the only write path.
    """

    def __init__(self, manager: AnnotationManager, settings: Optional[Settings] = None):
        self.manager = manager
        self.settings = settings or Settings()

        self.state = ToolState.CURSOR
        self.selection: Optional[Selection] = None
        self.draft_note: Optional[DraftNote] = None
        self.stroke: Optional[Stroke] = None

    # ------------------------------------------------------------------
    # Tool selection
    # ------------------------------------------------------------------

    def select_tool(self, tool: ToolState) -> ToolOutcome:
        """Switch tools. Any selection, stroke or open draft note is dropped."""
        if tool not in SELECTABLE_TOOLS:
            raise ValueError(f"{tool.value} can't be selected directly")

        self._cancel_drafts()
        self.state = tool
        logger.debug("Tool changed to %s", tool.value)
        return ToolOutcome(OutcomeKind.STATE_CHANGED)

    def _cancel_drafts(self):
        self.selection = None
        self.draft_note = None
        self.stroke = None

    # ------------------------------------------------------------------
    # Cursor / highlight
    # ------------------------------------------------------------------

    def set_selection(self, page: int, rects: Sequence[Rect], text: str) -> ToolOutcome:
        """
        Record a text selection (document points). A non-empty selection moves
        the cursor tool to highlight-pending.
        """
        if self.state not in (ToolState.CURSOR, ToolState.HIGHLIGHT_PENDING):
            return ToolOutcome(OutcomeKind.NONE)

        if not rects or not text.strip():
            return self.clear_selection()

        self.selection = Selection(page, list(rects), text)
        self.state = ToolState.HIGHLIGHT_PENDING
        return ToolOutcome(OutcomeKind.STATE_CHANGED)

    def clear_selection(self) -> ToolOutcome:
        if self.state is not ToolState.HIGHLIGHT_PENDING:
            return ToolOutcome(OutcomeKind.NONE)
        self.selection = None
        self.state = ToolState.CURSOR
        return ToolOutcome(OutcomeKind.STATE_CHANGED)

    def commit_highlight(self) -> ToolOutcome:
        """Create one highlight per selection rectangle, all carrying the selected text."""
        if self.state is not ToolState.HIGHLIGHT_PENDING or self.selection is None:
            return ToolOutcome(OutcomeKind.NONE)

        selection = self.selection
        created_at = _now()
        annotations = [
            Annotation(
                page=selection.page,
                kind=AnnotationKind.HIGHLIGHT,
                bbox=tuple(rect),
                text=selection.text,
                color=self.settings.highlight_color,
                opacity=self.settings.highlight_opacity,
                created_at=created_at,
            )
            for rect in selection.rects
        ]

        self.selection = None
        self.state = ToolState.CURSOR
        return self._commit(annotations)

    # ------------------------------------------------------------------
    # Clicks (note, eraser)
    # ------------------------------------------------------------------

    def click(self, page: int, pixel: Point, scale: float,
              viewport_origin: Point = (0.0, 0.0)) -> ToolOutcome:
        """
        Handle a click on a page.

        Args:
            page: 1-based page number
            pixel: Click position in widget pixels
            scale: Current zoom
            viewport_origin: Pixel position of the page's top-left corner
        """
        x, y = to_document(pixel, scale, viewport_origin)

        if self.state is ToolState.NOTE:
            hit = self.manager.get_annotation_at_point(page, x, y, scale)
            if hit is not None and hit.is_note:
                self.draft_note = DraftNote(page, hit.bbox[0], hit.bbox[1], editing=hit)
            else:
                self.draft_note = DraftNote(page, x, y)
            return ToolOutcome(OutcomeKind.DRAFT_UPDATED)

        if self.state is ToolState.ERASER:
            return self._erase_at(page, x, y, scale)

        return ToolOutcome(OutcomeKind.NONE)

    def _erase_at(self, page: int, x: float, y: float, scale: float) -> ToolOutcome:
        target = self.manager.get_annotation_at_point(page, x, y, scale, prefer_removable=True)
        if target is None:
            return ToolOutcome(OutcomeKind.NONE)
        return self.erase(target)

    def erase(self, target: Annotation) -> ToolOutcome:
        """Remove ``target`` (and its highlight siblings). Works from any tool."""
        result = self.manager.remove(target)
        if result.outcome is RemoveOutcome.REJECTED_BURNED:
            return ToolOutcome(OutcomeKind.REJECTED, [target], BURNED_MESSAGE)
        if result.outcome is RemoveOutcome.REMOVED:
            return ToolOutcome(OutcomeKind.REMOVED, [target])
        if result.outcome is RemoveOutcome.FAILED:
            return ToolOutcome(
                OutcomeKind.FAILED, [target],
                message=f"Annotation not removed: {result.error}", durable=False,
            )
        return ToolOutcome(OutcomeKind.NONE)

    def save_note(self, text: str) -> ToolOutcome:
        """Commit the open draft note. Blank text discards it."""
        draft = self.draft_note
        if draft is None:
            return ToolOutcome(OutcomeKind.NONE)

        self.draft_note = None
        if not text.strip():
            return ToolOutcome(OutcomeKind.DISCARDED)

        if draft.editing is not None:
            result = self.manager.update_note_text(draft.editing, text)
            return ToolOutcome(
                OutcomeKind.UPDATED, [result.annotation],
                message=result.error, durable=result.durable,
            )

        note = Annotation(
            page=draft.page,
            kind=AnnotationKind.NOTE,
            bbox=(draft.x, draft.y, 0.0, 0.0),
            text=text,
            color=self.settings.note_color,
            created_at=_now(),
        )
        return self._commit([note])

    def cancel_note(self) -> ToolOutcome:
        if self.draft_note is None:
            return ToolOutcome(OutcomeKind.NONE)
        self.draft_note = None
        return ToolOutcome(OutcomeKind.DISCARDED)

    # ------------------------------------------------------------------
    # Ink
    # ------------------------------------------------------------------

    def pointer_down(self, page: int, pixel: Point, scale: float,
                     viewport_origin: Point = (0.0, 0.0)) -> ToolOutcome:
        if self.state is not ToolState.INK:
            return ToolOutcome(OutcomeKind.NONE)
        self.stroke = Stroke(page, [to_document(pixel, scale, viewport_origin)])
        return ToolOutcome(OutcomeKind.DRAFT_UPDATED)

    def pointer_move(self, page: int, pixel: Point, scale: float,
                     viewport_origin: Point = (0.0, 0.0)) -> ToolOutcome:
        if self.stroke is None or self.stroke.page != page:
            return ToolOutcome(OutcomeKind.NONE)
        self.stroke.points.append(to_document(pixel, scale, viewport_origin))
        return ToolOutcome(OutcomeKind.DRAFT_UPDATED)

    def pointer_up(self) -> ToolOutcome:
        """Finish the stroke. A single point is not a stroke and is discarded."""
        stroke = self.stroke
        if stroke is None:
            return ToolOutcome(OutcomeKind.NONE)

        self.stroke = None
        if len(stroke.points) < 2:
            return ToolOutcome(OutcomeKind.DISCARDED)

        ink = Annotation(
            page=stroke.page,
            kind=AnnotationKind.INK,
            bbox=_bounds(stroke.points),
            points=list(stroke.points),
            color=self.settings.ink_color,
            opacity=self.settings.ink_opacity,
            stroke_width=self.settings.ink_stroke_width,
            created_at=_now(),
        )
        return self._commit([ink])

    # ------------------------------------------------------------------

    def _commit(self, annotations: List[Annotation]) -> ToolOutcome:
        errors = []
        for annotation in annotations:
            result = self.manager.add(annotation)
            if not result.durable:
                errors.append(result.error)

        if errors:
            return ToolOutcome(OutcomeKind.CREATED, annotations,
                               message=f"Annotation not saved: {errors[0]}", durable=False)
        return ToolOutcome(OutcomeKind.CREATED, annotations)


def _bounds(points: Sequence[Point]) -> Tuple[float, float, float, float]:
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return (min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))
