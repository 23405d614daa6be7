"""
Plain-text views of the visible annotation set: list entries and the
page-by-page digest of highlighted text.
"""
from typing import Iterable, List

from .models import Annotation, AnnotationKind

EMPTY_TEXT = "(no content)"


def ordered_by_page(annotations: Iterable[Annotation]) -> List[Annotation]:
    """Sort by page, keeping visible-set order within a page."""
    return sorted(annotations, key=lambda ann: ann.page)


def _one_line(text: str) -> str:
    return " ".join(text.split())


def entry_title(annotation: Annotation) -> str:
    title = f"Page {annotation.page} - {annotation.kind.value.capitalize()}"
    if annotation.burned:
        title += " (burned)"
    return title


def entry_label(annotation: Annotation) -> str:
    """Two-line list label: title, then the annotation text."""
    return f"{entry_title(annotation)}\n{_one_line(annotation.text) or EMPTY_TEXT}"


def compile_highlights(annotations: Iterable[Annotation]) -> str:
    """
    Collect highlighted text page by page.

    Highlight fragments sharing a page and text (one selection spanning several
    lines) appear once. Burned and local highlights are both included.

    Returns:
        The digest, or an empty string when nothing is highlighted
    """
    lines: List[str] = []
    seen = set()
    current_page = None

    for ann in ordered_by_page(annotations):
        if ann.kind is not AnnotationKind.HIGHLIGHT:
            continue
        text = _one_line(ann.text)
        if not text or (ann.page, text) in seen:
            continue
        seen.add((ann.page, text))

        if ann.page != current_page:
            if lines:
                lines.append("")
            lines.append(f"Page {ann.page}")
            current_page = ann.page
        lines.append(f"- {text}")

    return "\n".join(lines)
