"""
Side panel listing the visible annotations, with the highlight digest tab.
"""
import logging
from typing import List, Sequence

import pyperclip
from PyQt5.QtCore import Qt, pyqtSignal
from PyQt5.QtGui import QColor, QIcon, QPixmap
from PyQt5.QtWidgets import (
    QDockWidget,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from ...config import Settings
from ...core.annotations import (
    Annotation,
    AnnotationKind,
    compile_highlights,
    entry_label,
    ordered_by_page,
)

logger = logging.getLogger(__name__)


def _swatch(color: str) -> QIcon:
    pixmap = QPixmap(10, 10)
    pixmap.fill(QColor(color))
    return QIcon(pixmap)


class AnnotationPanel(QDockWidget):
    """Dockable list of the visible annotations."""

    jump_requested = pyqtSignal(int)  # 1-based page
    remove_requested = pyqtSignal(object)  # Annotation

    def __init__(self, settings: Settings, parent=None):
        super().__init__("Annotations", parent)
        self.setObjectName("annotation_panel")
        self.setAllowedAreas(Qt.LeftDockWidgetArea | Qt.RightDockWidgetArea)
        self.settings = settings
        self._annotations: List[Annotation] = []

        tabs = QTabWidget()
        tabs.addTab(self._build_list_tab(), "Annotations")
        tabs.addTab(self._build_digest_tab(), "Highlights")
        self.setWidget(tabs)
        self.setMinimumWidth(250)

    def _build_list_tab(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)

        self.count_label = QLabel()
        layout.addWidget(self.count_label)

        self.list_widget = QListWidget()
        self.list_widget.setWordWrap(True)
        self.list_widget.setToolTip("Click an item to jump to that page.")
        self.list_widget.itemClicked.connect(self._item_clicked)
        self.list_widget.currentItemChanged.connect(self._update_delete_button)
        layout.addWidget(self.list_widget)

        self.delete_button = QPushButton("Delete")
        self.delete_button.setEnabled(False)
        self.delete_button.clicked.connect(self._delete_current)
        layout.addWidget(self.delete_button)
        return page

    def _build_digest_tab(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)

        self.digest_edit = QPlainTextEdit()
        self.digest_edit.setReadOnly(True)
        layout.addWidget(self.digest_edit)

        buttons = QHBoxLayout()
        copy_button = QPushButton("Copy")
        copy_button.clicked.connect(self.copy_digest)
        save_button = QPushButton("Save...")
        save_button.clicked.connect(self.save_digest)
        buttons.addWidget(copy_button)
        buttons.addWidget(save_button)
        layout.addLayout(buttons)
        return page

    def set_annotations(self, annotations: Sequence[Annotation]):
        """Rebuild the list and the digest from the visible set."""
        self._annotations = ordered_by_page(annotations)

        self.list_widget.clear()
        for ann in self._annotations:
            item = QListWidgetItem(entry_label(ann))
            item.setData(Qt.UserRole, ann)
            item.setIcon(_swatch(ann.color or self._default_color(ann.kind)))
            if ann.burned:
                item.setToolTip("Burned into the PDF. It can't be removed.")
            self.list_widget.addItem(item)

        count = len(self._annotations)
        self.count_label.setText(f"{count} annotation{'s' if count != 1 else ''}"
                                 if count else "No annotations.")
        self.digest_edit.setPlainText(compile_highlights(self._annotations))
        self._update_delete_button()

    def _default_color(self, kind: AnnotationKind) -> str:
        if kind is AnnotationKind.HIGHLIGHT:
            return self.settings.highlight_color
        if kind is AnnotationKind.INK:
            return self.settings.ink_color
        return self.settings.note_color

    def _item_clicked(self, item: QListWidgetItem):
        ann = item.data(Qt.UserRole)
        if ann is not None:
            self.jump_requested.emit(ann.page)

    def _update_delete_button(self, *args):
        item = self.list_widget.currentItem()
        ann = item.data(Qt.UserRole) if item is not None else None
        self.delete_button.setEnabled(ann is not None and ann.removable)

    def _delete_current(self):
        item = self.list_widget.currentItem()
        if item is None:
            return
        ann = item.data(Qt.UserRole)
        if ann is not None and ann.removable:
            self.remove_requested.emit(ann)

    def copy_digest(self):
        text = self.digest_edit.toPlainText()
        if text:
            pyperclip.copy(text)

    def save_digest(self):
        """Write the highlight digest to a text file."""
        text = self.digest_edit.toPlainText()
        if not text:
            QMessageBox.information(self, "Nothing to Save", "There are no highlights yet.")
            return

        path, _ = QFileDialog.getSaveFileName(self, "Save Highlights", "highlights.txt",
                                              "Text Files (*.txt)")
        if not path:
            return
        try:
            with open(path, 'w', encoding='utf-8') as f:
                f.write(text + "\n")
        except OSError as e:
            logger.error("Could not save highlights to %s: %s", path, e)
            QMessageBox.warning(self, "Save Failed", f"Could not write {path}:\n{e}")
