"""
Page-local coordinate model.

Annotation geometry is always stored in document points (scale independent).
Only rendering and pointer capture work in on-screen pixels; changing the zoom
changes the transform, never the stored geometry.
"""
from typing import Tuple

Point = Tuple[float, float]
Rect = Tuple[float, float, float, float]  # x, y, width, height


def to_screen(point: Point, scale: float) -> Point:
    """Convert a document point to page-relative pixels at ``scale``."""
    return (point[0] * scale, point[1] * scale)


def to_document(pixel: Point, scale: float, viewport_origin: Point = (0.0, 0.0)) -> Point:
    """
    Convert a pixel position to document points.

    Args:
        pixel: Position in widget pixels
        scale: Current zoom factor
        viewport_origin: Pixel position of the page's top-left corner

    Returns:
        (x, y) in document points
    """
    return ((pixel[0] - viewport_origin[0]) / scale,
            (pixel[1] - viewport_origin[1]) / scale)


def rect_to_screen(rect: Rect, scale: float) -> Rect:
    x, y, w, h = rect
    return (x * scale, y * scale, w * scale, h * scale)


def rect_to_document(rect: Rect, scale: float, viewport_origin: Point = (0.0, 0.0)) -> Rect:
    x, y = to_document((rect[0], rect[1]), scale, viewport_origin)
    return (x, y, rect[2] / scale, rect[3] / scale)


def clamp_scale(scale: float, minimum: float = 0.1, maximum: float = 5.0) -> float:
    """Clamp a requested zoom factor. Callers clamp; the conversions above never do."""
    return max(minimum, min(maximum, scale))
