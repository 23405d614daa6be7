"""
Annotation data model.

An annotation is one of a closed set of kinds (highlight, note, ink). Geometry
is kept in document points; see ``inkburn.core.coordinates``.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

BBox = Tuple[float, float, float, float]  # x, y, width, height


class AnnotationKind(Enum):
    HIGHLIGHT = "highlight"
    NOTE = "note"
    INK = "ink"


def hex_to_rgb(color: str) -> Tuple[float, float, float]:
    """Convert ``#rrggbb`` to an (r, g, b) tuple in the 0-1 range."""
    value = int(color.lstrip('#'), 16)
    return (((value >> 16) & 255) / 255.0,
            ((value >> 8) & 255) / 255.0,
            (value & 255) / 255.0)


@dataclass
class Annotation:
    """Represents a single annotation on a PDF page."""
    page: int  # 1-based page number
    kind: AnnotationKind
    bbox: BBox = (0.0, 0.0, 0.0, 0.0)

    # Ink only: polyline in document points
    points: Optional[List[Tuple[float, float]]] = None

    # Highlight: the selected text. Note: user content.
    text: str = ""

    # Rendering attributes
    color: Optional[str] = None  # "#rrggbb"
    opacity: Optional[float] = None
    stroke_width: Optional[float] = None

    created_at: Optional[str] = None  # UX only, never used for identity
    id: Optional[str] = None

    # Read projection of the document's embedded metadata, never stored locally
    burned: bool = field(default=False, compare=False)

    @property
    def is_note(self) -> bool:
        return self.kind is AnnotationKind.NOTE

    @property
    def removable(self) -> bool:
        """Burned content can't be deleted, except notes which stay overlays."""
        return not self.burned or self.is_note

    def validate(self) -> None:
        """
        Check kind-specific requirements.

        Raises:
            ValueError: if the record is inconsistent
        """
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if len(self.bbox) != 4:
            raise ValueError("bbox must have four components")

        if self.kind is AnnotationKind.HIGHLIGHT:
            if self.points:
                raise ValueError("highlight annotations carry no points")
            if self.color is None or self.opacity is None:
                raise ValueError("highlight requires color and opacity")
        elif self.kind is AnnotationKind.INK:
            if not self.points:
                raise ValueError("ink annotations require points")
            if self.color is None or self.opacity is None or self.stroke_width is None:
                raise ValueError("ink requires color, opacity and stroke width")
        elif self.kind is AnnotationKind.NOTE:
            if self.points:
                raise ValueError("note annotations carry no points")
        else:
            raise ValueError(f"unknown annotation kind: {self.kind!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert annotation to the wire/storage dictionary (``burned`` omitted)."""
        data: Dict[str, Any] = {
            'page': self.page,
            'kind': self.kind.value,
            'bbox': [float(v) for v in self.bbox],
            'text': self.text,
        }
        if self.id is not None:
            data['id'] = self.id
        if self.points is not None:
            data['points'] = [[float(x), float(y)] for x, y in self.points]
        if self.color is not None:
            data['color'] = self.color
        if self.opacity is not None:
            data['opacity'] = self.opacity
        if self.stroke_width is not None:
            data['strokeWidth'] = self.stroke_width
        if self.created_at is not None:
            data['createdAt'] = self.created_at
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any], burned: bool = False) -> "Annotation":
        """
        Create annotation from dictionary.

        Accepts the legacy ``type`` key in place of ``kind`` and ignores
        ``isBurned``; burn state is decided by the caller.

        Raises:
            ValueError: if required fields are missing or malformed
        """
        if not isinstance(data, dict):
            raise ValueError("annotation record must be an object")

        try:
            kind = AnnotationKind(data.get('kind', data.get('type')))
            page = int(data['page'])
            bbox_data = data.get('bbox') or [0, 0, 0, 0]
            bbox = tuple(float(v) for v in bbox_data)
            points_data = data.get('points')
            points = [(float(p[0]), float(p[1])) for p in points_data] if points_data else None
        except (KeyError, TypeError, IndexError) as e:
            raise ValueError(f"malformed annotation record: {e}") from e

        if len(bbox) != 4:
            raise ValueError("bbox must have four components")

        for key in ('id', 'text', 'color', 'createdAt'):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"{key} must be a string, got {type(value).__name__}")

        try:
            opacity = data.get('opacity')
            opacity = float(opacity) if opacity is not None else None
            stroke_width = data.get('strokeWidth')
            stroke_width = float(stroke_width) if stroke_width is not None else None
        except TypeError as e:
            raise ValueError(f"malformed annotation record: {e}") from e

        return Annotation(
            page=page,
            kind=kind,
            bbox=bbox,
            points=points,
            text=data.get('text') or "",
            color=data.get('color'),
            opacity=opacity,
            stroke_width=stroke_width,
            created_at=data.get('createdAt'),
            id=data.get('id'),
            burned=burned,
        )
