"""
Custom widgets for PDF viewing and annotation.
"""

from .annotation_panel import AnnotationPanel
from .page_widget import PageWidget

__all__ = [
    "AnnotationPanel",
    "PageWidget",
]
