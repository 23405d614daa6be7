"""
Core business logic for Inkburn PDF.
"""

from .annotations import Annotation, AnnotationKind, AnnotationManager, AnnotationStore
from .document import BurnCompositor, BurnError, PDFDocumentReader
from .page import PageModel, PageTextLayer, TextLayerSynthesizer
from .tools import ToolState, ToolStateMachine

__all__ = [
    "Annotation",
    "AnnotationKind",
    "AnnotationManager",
    "AnnotationStore",
    "BurnCompositor",
    "BurnError",
    "PDFDocumentReader",
    "PageModel",
    "PageTextLayer",
    "TextLayerSynthesizer",
    "ToolState",
    "ToolStateMachine",
]
