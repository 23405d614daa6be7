"""
PDF document loading and the engine-facing operations the viewer needs.
"""
import hashlib
import logging
import os
import tempfile
from typing import List, Optional, Tuple

import fitz  # PyMuPDF

from ..annotations.embedded import read_embedded
from ..annotations.models import Annotation

logger = logging.getLogger(__name__)


def document_id_for_path(file_path: str) -> str:
    """Stable local id of a document: SHA-256 of its absolute path."""
    return hashlib.sha256(os.path.abspath(file_path).encode('utf-8')).hexdigest()


class PDFDocumentReader:
    """Handles PDF document loading and basic operations."""

    def __init__(self):
        self.doc: Optional[fitz.Document] = None
        self.total_pages: int = 0
        self.current_file_path: Optional[str] = None
        self.document_id: Optional[str] = None
        self.source_bytes: Optional[bytes] = None

    def load_pdf(self, file_path: str) -> Tuple[bool, int]:
        """
        Load a PDF document from disk.

        Args:
            file_path: Path to the PDF file

        Returns:
            Tuple of (success flag, number of pages)
        """
        try:
            with open(file_path, 'rb') as f:
                data = f.read()
        except OSError as e:
            logger.error("Error reading %s: %s", file_path, e)
            return False, 0

        success, pages = self.load_bytes(data, document_id_for_path(file_path))
        if success:
            self.current_file_path = file_path
        return success, pages

    def load_bytes(self, data: bytes, document_id: str) -> Tuple[bool, int]:
        """
        Load a PDF document from memory.

        Args:
            data: Raw PDF bytes
            document_id: Caller-supplied id (e.g. a remote file id)

        Returns:
            Tuple of (success flag, number of pages)
        """
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            logger.error("Error loading PDF %s: %s", document_id, e)
            return False, 0

        # Close existing document if any
        if self.doc:
            self.close_document()

        self.doc = doc
        self.total_pages = doc.page_count
        self.document_id = document_id
        self.source_bytes = data
        logger.info("Opened document %s (%d pages)", document_id, self.total_pages)
        return True, self.total_pages

    def replace_bytes(self, data: bytes) -> Tuple[bool, int]:
        """Swap in new document bytes (e.g. after a burn) keeping the document id."""
        path = self.current_file_path
        success, pages = self.load_bytes(data, self.document_id)
        self.current_file_path = path
        return success, pages

    def close_document(self) -> None:
        """Close the current PDF document and clear all state."""
        if self.doc:
            self.doc.close()
            self.doc = None

        self.total_pages = 0
        self.current_file_path = None
        self.document_id = None
        self.source_bytes = None

    def get_page_size(self, page_number: int) -> Tuple[float, float]:
        """
        Get the size of a page in points.

        Args:
            page_number: 1-based page number

        Returns:
            Tuple of (width, height) in points
        """
        if not self.doc or not 1 <= page_number <= self.total_pages:
            return 0.0, 0.0
        rect = self.doc.load_page(page_number - 1).rect
        return rect.width, rect.height

    def read_embedded(self) -> List[Annotation]:
        """Read the burned baseline embedded in the open document."""
        if not self.doc:
            return []
        return read_embedded(self.doc)


def save_pdf_bytes(data: bytes, output_path: str) -> bool:
    """
    Atomically write PDF bytes to disk.

    Returns:
        True if save was successful
    """
    output_dir = os.path.dirname(os.path.abspath(output_path))
    temp_fd, temp_path = tempfile.mkstemp(suffix='.pdf', dir=output_dir)
    try:
        with os.fdopen(temp_fd, 'wb') as f:
            f.write(data)
        os.replace(temp_path, output_path)
        return True
    except OSError as e:
        logger.error("Failed to save PDF to %s: %s", output_path, e)
        if os.path.exists(temp_path):
            os.remove(temp_path)
        return False
