"""
PDF document handling and burning.
"""
from .burn_compositor import BurnCompositor, BurnError
from .pdf_reader import PDFDocumentReader, document_id_for_path, save_pdf_bytes

__all__ = ['BurnCompositor', 'BurnError', 'PDFDocumentReader', 'document_id_for_path', 'save_pdf_bytes']
