"""Tests for document loading and per-user directories."""

import os
import sys

import pytest

from inkburn.core.document import BurnCompositor, PDFDocumentReader, document_id_for_path, save_pdf_bytes
from inkburn.utils import get_app_data_dir, get_config_dir

from conftest import highlight, make_pdf


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "sample.pdf"
    path.write_bytes(make_pdf(pages=3))
    return path


class TestPDFDocumentReader:
    def test_load_pdf(self, pdf_file):
        reader = PDFDocumentReader()
        assert reader.load_pdf(str(pdf_file)) == (True, 3)
        assert reader.document_id == document_id_for_path(str(pdf_file))
        assert reader.source_bytes == pdf_file.read_bytes()
        assert reader.get_page_size(1) == (595, 842)
        assert reader.get_page_size(4) == (0.0, 0.0)
        reader.close_document()
        assert reader.doc is None

    def test_missing_file(self, tmp_path):
        assert PDFDocumentReader().load_pdf(str(tmp_path / "nope.pdf")) == (False, 0)

    def test_not_a_pdf(self):
        reader = PDFDocumentReader()
        assert reader.load_bytes(b"plain text", "remote-1") == (False, 0)
        assert reader.doc is None

    def test_document_id_uses_absolute_path(self, pdf_file, monkeypatch):
        monkeypatch.chdir(pdf_file.parent)
        assert document_id_for_path("sample.pdf") == document_id_for_path(str(pdf_file))

    def test_replace_bytes_keeps_identity(self, pdf_file):
        reader = PDFDocumentReader()
        reader.load_pdf(str(pdf_file))
        document_id = reader.document_id

        burned = BurnCompositor().burn(reader.source_bytes, [highlight()])
        assert reader.replace_bytes(burned) == (True, 3)
        assert reader.document_id == document_id
        assert reader.current_file_path == str(pdf_file)
        assert [a.burned for a in reader.read_embedded()] == [True]

    def test_read_embedded_without_document(self):
        assert PDFDocumentReader().read_embedded() == []


class TestSavePdfBytes:
    def test_atomic_write(self, tmp_path):
        target = tmp_path / "out.pdf"
        assert save_pdf_bytes(b"%PDF-1.7", str(target))
        assert target.read_bytes() == b"%PDF-1.7"
        assert os.listdir(tmp_path) == ["out.pdf"]


@pytest.mark.skipif(os.name == "nt" or sys.platform == "darwin", reason="XDG layout")
class TestUserDirectories:
    def test_xdg_overrides(self, tmp_path, monkeypatch):
        monkeypatch.delenv("INKBURN_HOME", raising=False)
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
        assert get_app_data_dir() == tmp_path / "data" / "InkburnPDF"
        assert get_config_dir() == tmp_path / "config" / "InkburnPDF"
        assert get_config_dir().is_dir()

    def test_home_override_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))
        monkeypatch.setenv("INKBURN_HOME", str(tmp_path / "portable"))
        assert get_app_data_dir() == tmp_path / "portable" / "data"
        assert get_config_dir() == tmp_path / "portable" / "config"
