"""
Reconciliation of the local annotation set with the set embedded in a document.

A burn re-embeds the exact local annotations that existed at burn time, so
without this step every reload after a burn would show each annotation twice.
The bbox tolerance absorbs rounding drift from the burn pipeline.
"""
from typing import Iterable, List, Sequence

from .models import Annotation

DEFAULT_TOLERANCE = 2.0  # document points


def bbox_matches(a: Annotation, b: Annotation, tolerance: float = DEFAULT_TOLERANCE) -> bool:
    """All four components strictly within ``tolerance``."""
    return all(abs(u - v) < tolerance for u, v in zip(a.bbox, b.bbox))


def is_duplicate(local: Annotation, embedded: Annotation,
                 tolerance: float = DEFAULT_TOLERANCE) -> bool:
    """
    Decide whether an embedded record represents the same annotation as a local one.

    Only records on the same page and of the same kind are comparable.
    """
    if local.page != embedded.page or local.kind is not embedded.kind:
        return False

    if local.id and embedded.id and local.id == embedded.id:
        return True

    if not bbox_matches(local, embedded, tolerance):
        return False

    local_text = (local.text or '').strip()
    embedded_text = (embedded.text or '').strip()
    if local_text or embedded_text:
        return local_text == embedded_text

    # Untagged geometry (e.g. ink) matching within tolerance
    return True


def merge(local: Sequence[Annotation], embedded: Iterable[Annotation],
          tolerance: float = DEFAULT_TOLERANCE) -> List[Annotation]:
    """
    Merge local and embedded annotations into the visible set.

    Local records always win. Embedded records are appended, in order, unless
    they duplicate a local record. Pure and deterministic.

    Args:
        local: Annotations from the local store
        embedded: Annotations read from the document metadata
        tolerance: Maximum (exclusive) bbox drift for a geometric match

    Returns:
        New list: all local records followed by the distinct embedded ones
    """
    merged = list(local)
    for candidate in embedded:
        if not any(is_duplicate(existing, candidate, tolerance) for existing in local):
            merged.append(candidate)
    return merged
