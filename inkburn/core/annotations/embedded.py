"""
Annotation sets embedded in a PDF's ``keywords`` metadata field.

The field holds a private sentinel immediately followed by a JSON array of
annotation records. Presence in the field implies the record is burned, except
notes, which stay editable overlays.
"""
import json
import logging
from typing import Iterable, List, Optional, Sequence, Union

import fitz  # PyMuPDF

from .models import Annotation, AnnotationKind

logger = logging.getLogger(__name__)

SENTINEL = "PDF_ANNOTATOR_DATA:::"


def serialize_embedded(annotations: Iterable[Annotation]) -> str:
    """Build the metadata field value for an annotation set."""
    payload = [ann.to_dict() for ann in annotations]
    return SENTINEL + json.dumps(payload, separators=(',', ':'), ensure_ascii=False)


def parse_embedded(keywords: Union[str, Sequence[str], None],
                   page_count: Optional[int] = None) -> List[Annotation]:
    """
    Extract the embedded annotation set from a keywords value.

    Never raises: a missing sentinel, malformed JSON or a non-array payload
    yields an empty list. Malformed records, and records pointing outside
    ``1..page_count`` when it is known, are skipped.

    Args:
        keywords: Raw keywords field (string, or list of keyword strings)
        page_count: Number of pages in the document, if known

    Returns:
        Annotations marked burned, except notes
    """
    if not keywords:
        return []
    if not isinstance(keywords, str):
        keywords = ' '.join(str(k) for k in keywords)

    _, found, payload = keywords.partition(SENTINEL)
    if not found:
        return []

    try:
        # Tolerate trailing keywords after the array
        parsed, _ = json.JSONDecoder().raw_decode(payload.lstrip())
    except ValueError as e:
        logger.warning("Embedded annotation payload is not valid JSON: %s", e)
        return []

    if not isinstance(parsed, list):
        logger.warning("Embedded annotation payload is not an array")
        return []

    annotations = []
    for index, record in enumerate(parsed):
        try:
            ann = Annotation.from_dict(record)
        except ValueError as e:
            logger.warning("Skipping embedded annotation #%d: %s", index, e)
            continue

        if ann.page < 1 or (page_count is not None and ann.page > page_count):
            logger.warning("Skipping embedded annotation #%d on missing page %d", index, ann.page)
            continue

        ann.burned = ann.kind is not AnnotationKind.NOTE
        annotations.append(ann)

    return annotations


def read_embedded(doc: fitz.Document) -> List[Annotation]:
    """Read the embedded annotation set of an open document."""
    try:
        keywords = (doc.metadata or {}).get('keywords')
    except (RuntimeError, ValueError) as e:
        logger.warning("Could not read document metadata: %s", e)
        return []
    return parse_embedded(keywords, doc.page_count)
