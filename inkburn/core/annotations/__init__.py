"""
Annotation model, local store and embedded-metadata reconciliation.
"""
from .digest import compile_highlights, entry_label, entry_title, ordered_by_page
from .embedded import SENTINEL, parse_embedded, read_embedded, serialize_embedded
from .manager import AnnotationManager, RemoveOutcome, RemoveResult, SaveResult
from .models import Annotation, AnnotationKind
from .reconcile import merge
from .store import AnnotationStore, BurnedAnnotationError, PersistenceError

__all__ = [
    'Annotation',
    'AnnotationKind',
    'AnnotationManager',
    'AnnotationStore',
    'BurnedAnnotationError',
    'PersistenceError',
    'RemoveOutcome',
    'RemoveResult',
    'SENTINEL',
    'SaveResult',
    'compile_highlights',
    'entry_label',
    'entry_title',
    'merge',
    'ordered_by_page',
    'parse_embedded',
    'read_embedded',
    'serialize_embedded',
]
