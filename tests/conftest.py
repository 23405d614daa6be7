"""Shared fixtures: in-memory PDFs, a temporary store and a Qt core application."""

import fitz
import pytest
from PyQt5.QtCore import QCoreApplication

from inkburn.core.annotations import Annotation, AnnotationKind, AnnotationManager, AnnotationStore

DOC_ID = "doc-1"


def make_pdf(pages=2, lines=0, title=None):
    """Build a PDF in memory; ``lines`` text lines are written on every page."""
    doc = fitz.open()
    for _ in range(pages):
        page = doc.new_page(width=595, height=842)
        for i in range(lines):
            page.insert_text((72, 72 + i * 20), f"Line number {i} of sample text", fontsize=11)
    if title:
        doc.set_metadata({"title": title})
    data = doc.tobytes()
    doc.close()
    return data


def highlight(page=1, bbox=(10.0, 20.0, 100.0, 12.0), text="hello", **kwargs):
    kwargs.setdefault("color", "#4ade80")
    kwargs.setdefault("opacity", 0.4)
    return Annotation(page=page, kind=AnnotationKind.HIGHLIGHT, bbox=bbox, text=text, **kwargs)


def ink(page=1, points=((10.0, 10.0), (50.0, 50.0)), **kwargs):
    pts = [tuple(p) for p in points]
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    bbox = (min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))
    kwargs.setdefault("color", "#22c55e")
    kwargs.setdefault("opacity", 0.35)
    kwargs.setdefault("stroke_width", 4.0)
    return Annotation(page=page, kind=AnnotationKind.INK, bbox=bbox, points=pts, **kwargs)


def note(page=1, x=30.0, y=40.0, text="remember", **kwargs):
    kwargs.setdefault("color", "#fef9c3")
    return Annotation(page=page, kind=AnnotationKind.NOTE, bbox=(x, y, 0.0, 0.0), text=text, **kwargs)


@pytest.fixture(scope="session")
def qapp():
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "annotations.json"


@pytest.fixture
def store(store_path):
    return AnnotationStore(store_path)


@pytest.fixture
def manager(store):
    mgr = AnnotationManager(store, DOC_ID, page_count=2)
    mgr.load([])
    return mgr


@pytest.fixture
def pdf_bytes():
    return make_pdf(pages=2)
