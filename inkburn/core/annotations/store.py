"""
Local, page-indexed persistence for annotations that have not been burned.
"""
import json
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import Annotation

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class PersistenceError(Exception):
    """Raised when the store can't write to disk. The caller decides about retries."""


class BurnedAnnotationError(ValueError):
    """Raised when a burned annotation is handed to the local store."""


class AnnotationStore:
    """
    JSON-file table of annotation records keyed by id, indexed by document id.

    Layout::

        {"version": 1,
         "annotations": {"<id>": {...record, "documentId": "<doc>"}},
         "dismissed": {"<doc>": ["<embedded note id>", ...]}}
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._records: Dict[str, Dict[str, Any]] = {}
        self._dismissed: Dict[str, List[str]] = {}
        self._load()

    @staticmethod
    def new_id() -> str:
        return f"local-{uuid.uuid4().hex}"

    def _load(self) -> None:
        """Read the table from disk. A corrupt file is logged and treated as empty."""
        if not self.path.exists():
            return

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            records = data.get('annotations', {})
            dismissed = data.get('dismissed', {})
            if not isinstance(records, dict) or not isinstance(dismissed, dict):
                raise ValueError("unexpected store layout")
            self._records = records
            self._dismissed = {doc: list(ids) for doc, ids in dismissed.items()}
        except (OSError, ValueError, AttributeError) as e:
            logger.warning("Annotation store %s is unreadable, starting empty: %s", self.path, e)
            self._records = {}
            self._dismissed = {}

    def _flush(self) -> None:
        """Atomically write the table to disk."""
        data = {
            'version': STORE_VERSION,
            'annotations': self._records,
            'dismissed': self._dismissed,
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(suffix='.json', dir=str(self.path.parent))
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2)
                os.replace(temp_path, self.path)
            except BaseException:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise
        except OSError as e:
            raise PersistenceError(f"Failed to write annotation store {self.path}: {e}") from e

    def put(self, document_id: str, annotation: Annotation) -> Annotation:
        """
        Insert or update an annotation, keyed by id.

        The id is assigned on the given object before writing, so a failed
        write still leaves the caller with a stable identity to retry with.

        Raises:
            BurnedAnnotationError: for burned annotations
            PersistenceError: if the write fails
        """
        if annotation.burned:
            raise BurnedAnnotationError("burned annotations are never stored locally")

        if not annotation.id:
            annotation.id = self.new_id()

        record = annotation.to_dict()
        record['documentId'] = document_id
        previous = self._records.get(annotation.id)
        self._records[annotation.id] = record
        try:
            self._flush()
        except PersistenceError:
            # Keep the durable table in sync with what is on disk
            if previous is None:
                del self._records[annotation.id]
            else:
                self._records[annotation.id] = previous
            raise
        return annotation

    def get(self, annotation_id: str) -> Optional[Annotation]:
        record = self._records.get(annotation_id)
        if record is None:
            return None
        return Annotation.from_dict(record)

    def list_by_document(self, document_id: str) -> List[Annotation]:
        """Get all stored annotations for a document, in insertion order."""
        result = []
        for record in self._records.values():
            if record.get('documentId') != document_id:
                continue
            try:
                result.append(Annotation.from_dict(record))
            except ValueError as e:
                logger.warning("Skipping malformed stored annotation %s: %s", record.get('id'), e)
        return result

    def delete(self, annotation_id: str) -> bool:
        """
        Delete a stored annotation.

        Returns:
            True if a record was removed

        Raises:
            PersistenceError: if the write fails
        """
        record = self._records.pop(annotation_id, None)
        if record is None:
            return False
        try:
            self._flush()
        except PersistenceError:
            self._records[annotation_id] = record
            raise
        return True

    def dismiss(self, document_id: str, annotation_id: str) -> None:
        """Remember that an embedded note was deleted by the user."""
        ids = self._dismissed.setdefault(document_id, [])
        if annotation_id in ids:
            return
        ids.append(annotation_id)
        try:
            self._flush()
        except PersistenceError:
            ids.remove(annotation_id)
            raise

    def dismissed(self, document_id: str) -> List[str]:
        return list(self._dismissed.get(document_id, []))

    def __len__(self) -> int:
        return len(self._records)
