"""
Owner of the visible annotation set for one open document.

The local store is the single source of truth for non-burned data. The visible
set is derived: it is recomputed with ``merge`` after every store mutation and
is never patched in place.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Annotation, AnnotationKind
from .reconcile import DEFAULT_TOLERANCE, merge
from .store import AnnotationStore, PersistenceError

logger = logging.getLogger(__name__)

BURNED_MESSAGE = "Burned annotations cannot be removed."

NOTE_HIT_SIZE = 24.0  # document points covered by a note marker


class RemoveOutcome(Enum):
    REMOVED = "removed"
    REJECTED_BURNED = "rejected_burned"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass
class SaveResult:
    """Outcome of a store write. ``durable`` is False until a write succeeds."""
    annotation: Annotation
    durable: bool
    error: Optional[str] = None


@dataclass
class RemoveResult:
    outcome: RemoveOutcome
    error: Optional[str] = None


class AnnotationManager:
    """Manages the annotations of one document through the store and merge path."""

    def __init__(self, store: AnnotationStore, document_id: str, page_count: int,
                 tolerance: float = DEFAULT_TOLERANCE):
        self.store = store
        self.document_id = document_id
        self.page_count = page_count
        self.tolerance = tolerance

        self._local: List[Annotation] = []
        self._embedded: List[Annotation] = []
        self._visible: Tuple[Annotation, ...] = ()

        # Records kept in memory whose last write failed, by id
        self._pending: Dict[str, Annotation] = {}

    # ------------------------------------------------------------------
    # Loading and the derived visible set
    # ------------------------------------------------------------------

    def load(self, embedded: Iterable[Annotation]) -> None:
        """
        Load the local set from the store and take ``embedded`` as the burned baseline.

        Args:
            embedded: Annotations read from the document's metadata
        """
        self._local = self.store.list_by_document(self.document_id)
        self._embedded = list(embedded)
        self._pending.clear()
        self._recompute()
        logger.info(
            "Loaded %d local and %d embedded annotations for %s (%d visible)",
            len(self._local), len(self._embedded), self.document_id, len(self._visible),
        )

    def _recompute(self) -> None:
        dismissed = set(self.store.dismissed(self.document_id))
        embedded = [ann for ann in self._embedded if ann.id is None or ann.id not in dismissed]
        self._visible = tuple(merge(self._local, embedded, self.tolerance))

    @property
    def visible(self) -> Tuple[Annotation, ...]:
        return self._visible

    @property
    def pending(self) -> List[Annotation]:
        """Annotations visible but not yet durable."""
        return list(self._pending.values())

    @property
    def has_unburned_changes(self) -> bool:
        return any(not ann.burned and not ann.is_note for ann in self._local)

    def get_annotations_for_page(self, page: int) -> List[Annotation]:
        """
        Get all visible annotations for a specific page.

        Args:
            page: 1-based page number
        """
        return [ann for ann in self._visible if ann.page == page]

    # ------------------------------------------------------------------
    # Mutations (the only write path)
    # ------------------------------------------------------------------

    def add(self, annotation: Annotation) -> SaveResult:
        """
        Validate, persist and show a new annotation.

        A failed write keeps the annotation visible and tracked as pending.

        Raises:
            ValueError: for invalid annotations or pages out of range
        """
        annotation.validate()
        if annotation.page > self.page_count:
            raise ValueError(
                f"page {annotation.page} is outside the document (1..{self.page_count})"
            )
        if annotation.burned:
            raise ValueError("new annotations can't be burned")

        if not annotation.id:
            annotation.id = self.store.new_id()
        self._replace_local(annotation)
        return self._persist(annotation)

    def update_note_text(self, annotation: Annotation, text: str) -> SaveResult:
        """
        Change a note's text. Also valid for notes read back from the document;
        the edited copy becomes local and supersedes the embedded one by id.
        """
        if not annotation.is_note:
            raise ValueError("only note text can be edited")

        updated = Annotation(
            page=annotation.page,
            kind=annotation.kind,
            bbox=annotation.bbox,
            text=text,
            color=annotation.color,
            opacity=annotation.opacity,
            stroke_width=annotation.stroke_width,
            created_at=annotation.created_at,
            id=annotation.id or self.store.new_id(),
        )
        self._replace_local(updated)
        return self._persist(updated)

    def remove(self, annotation: Annotation) -> RemoveResult:
        """
        Remove an annotation.

        Highlights take their sibling fragments (same page, kind and text)
        with them. Burned content is rejected with no state change. A failed
        store write stops the removal; fragments already deleted stay deleted
        and the visible set is recomputed either way.
        """
        if not annotation.removable:
            logger.info("Refusing to remove burned %s on page %d",
                        annotation.kind.value, annotation.page)
            return RemoveResult(RemoveOutcome.REJECTED_BURNED)

        if annotation.kind is AnnotationKind.HIGHLIGHT:
            targets = [
                ann for ann in self._visible
                if ann.kind is AnnotationKind.HIGHLIGHT and not ann.burned
                and ann.page == annotation.page and ann.text == annotation.text
            ]
        else:
            targets = [ann for ann in self._visible if ann is annotation or (
                annotation.id is not None and ann.id == annotation.id)]

        if not targets:
            return RemoveResult(RemoveOutcome.NOT_FOUND)

        local_ids = {ann.id for ann in self._local}
        try:
            for target in targets:
                if target.id in local_ids:
                    self.store.delete(target.id)
                    self._local = [ann for ann in self._local if ann.id != target.id]
                    self._pending.pop(target.id, None)
                if target.is_note and any(e.id == target.id for e in self._embedded):
                    self.store.dismiss(self.document_id, target.id)
        except PersistenceError as e:
            logger.error("Could not remove %s on page %d: %s",
                         annotation.kind.value, annotation.page, e)
            return RemoveResult(RemoveOutcome.FAILED, error=str(e))
        finally:
            self._recompute()

        return RemoveResult(RemoveOutcome.REMOVED)

    def retry_pending(self) -> List[SaveResult]:
        """Re-attempt every write that failed before."""
        return [self._persist(ann) for ann in list(self._pending.values())]

    def apply_burn(self, burned_set: Iterable[Annotation], embedded: Iterable[Annotation]) -> None:
        """
        Adopt the result of a successful burn.

        Non-note local records that were burned now live in the page content
        and the embedded metadata, so they leave the store. Local notes stay
        (they dedupe by id against their embedded copy).

        Args:
            burned_set: The annotation set handed to the compositor
            embedded: The annotations read back from the new document bytes
        """
        burned_ids = {ann.id for ann in burned_set if ann.id and not ann.is_note}
        for ann in list(self._local):
            if ann.id in burned_ids:
                try:
                    self.store.delete(ann.id)
                except PersistenceError as e:
                    # It would reappear next to its burned copy on reload
                    logger.error("Could not drop burned annotation %s from the store: %s", ann.id, e)
                    continue
                self._local.remove(ann)
                self._pending.pop(ann.id, None)

        self._embedded = list(embedded)
        self._recompute()

    def _replace_local(self, annotation: Annotation) -> None:
        for index, existing in enumerate(self._local):
            if existing.id == annotation.id:
                self._local[index] = annotation
                break
        else:
            self._local.append(annotation)
        self._recompute()

    def _persist(self, annotation: Annotation) -> SaveResult:
        try:
            self.store.put(self.document_id, annotation)
        except PersistenceError as e:
            logger.error("Annotation %s is visible but not saved: %s", annotation.id, e)
            self._pending[annotation.id] = annotation
            return SaveResult(annotation, durable=False, error=str(e))

        self._pending.pop(annotation.id, None)
        return SaveResult(annotation, durable=True)

    # ------------------------------------------------------------------
    # Hit testing
    # ------------------------------------------------------------------

    def get_annotation_at_point(self, page: int, x: float, y: float,
                                scale: float = 1.0,
                                prefer_removable: bool = False) -> Optional[Annotation]:
        """
        Get the topmost visible annotation at a document point.

        Args:
            page: 1-based page number
            x, y: Position in document points
            scale: Current zoom, used to keep the ink hit tolerance constant on screen
            prefer_removable: Return a removable hit over a burned one stacked above it
        """
        hits = [ann for ann in reversed(self.get_annotations_for_page(page))
                if self._point_in_annotation(ann, x, y, scale)]
        if prefer_removable:
            for ann in hits:
                if ann.removable:
                    return ann
        return hits[0] if hits else None

    def _point_in_annotation(self, annotation: Annotation, x: float, y: float,
                             scale: float) -> bool:
        bx, by, bw, bh = annotation.bbox

        if annotation.kind is AnnotationKind.HIGHLIGHT:
            return bx <= x <= bx + bw and by <= y <= by + bh

        if annotation.kind is AnnotationKind.NOTE:
            return bx <= x <= bx + NOTE_HIT_SIZE and by <= y <= by + NOTE_HIT_SIZE

        if annotation.kind is AnnotationKind.INK:
            points = annotation.points or []
            stroke = annotation.stroke_width or 0.0
            tolerance = max(stroke / 2.0 + 2.0 / scale, 5.0 / scale)
            for p1, p2 in zip(points, points[1:]):
                if _point_near_segment(x, y, p1, p2, tolerance):
                    return True
            return False

        raise ValueError(f"unknown annotation kind: {annotation.kind!r}")


def _point_near_segment(px: float, py: float, p1: Tuple[float, float],
                        p2: Tuple[float, float], tolerance: float) -> bool:
    """Check if a point is within ``tolerance`` of a line segment."""
    x1, y1 = p1
    x2, y2 = p2
    length_sq = (x2 - x1) ** 2 + (y2 - y1) ** 2

    if length_sq == 0:
        return ((px - x1) ** 2 + (py - y1) ** 2) ** 0.5 <= tolerance

    t = max(0.0, min(1.0, ((px - x1) * (x2 - x1) + (py - y1) * (y2 - y1)) / length_sq))
    nearest_x = x1 + t * (x2 - x1)
    nearest_y = y1 + t * (y2 - y1)
    return ((px - nearest_x) ** 2 + (py - nearest_y) ** 2) ** 0.5 <= tolerance
