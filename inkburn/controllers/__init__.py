"""
Controllers connecting the UI with the annotation core.
"""
from .annotation_controller import AnnotationController

__all__ = ['AnnotationController']
