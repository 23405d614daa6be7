"""
Inkburn PDF: annotate, reconcile and burn markup into PDF documents.
"""

__version__ = "0.1.0"
