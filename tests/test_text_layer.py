"""Tests for text layer synthesis, fragment merging and column-aware selection."""

import fitz
import pytest

from inkburn.core.page import NativeTextItem, OcrWord, PageTextLayer, TextLayerSynthesizer, TextSource

from conftest import make_pdf

PAGE_WIDTH = 600.0


def item(text, x, y, width=40.0, font="Helv", size=10.0):
    return NativeTextItem(text=text, x=x, y=y, width=width, height=size,
                          font_name=font, font_size=size)


def two_column_items():
    items = []
    for line in range(3):
        y = 100.0 + line * 20.0
        items.append(item(f"L{line}", 50.0, y, width=200.0))
        items.append(item(f"R{line}", 350.0, y, width=200.0))
    return items


class TestHasText:
    def test_threshold_is_exclusive(self):
        synth = TextLayerSynthesizer(has_text_threshold=5)
        items = [item(str(i), 0, i * 20.0) for i in range(5)]
        assert synth.synthesize(PAGE_WIDTH, items) == []
        items.append(item("5", 0, 200.0))
        assert len(synth.synthesize(PAGE_WIDTH, items)) == 6

    def test_native_items_from_page(self):
        doc = fitz.open(stream=make_pdf(pages=2, lines=6), filetype="pdf")
        try:
            synth = TextLayerSynthesizer()
            items = synth.native_items(doc[0])
            assert len(items) >= 6
            assert synth.has_text(items)
            assert all(i.width > 0 for i in items)
        finally:
            doc.close()

    def test_blank_page_has_no_items(self):
        doc = fitz.open(stream=make_pdf(pages=1), filetype="pdf")
        try:
            assert TextLayerSynthesizer().native_items(doc[0]) == []
        finally:
            doc.close()


class TestFragmentMerge:
    def merge(self, items, detect_columns=False):
        return TextLayerSynthesizer(has_text_threshold=0, detect_columns=detect_columns).synthesize(
            PAGE_WIDTH, items)

    def test_close_fragments_join_without_space(self):
        runs = self.merge([item("Hel", 0, 0, width=15), item("lo", 16, 0, width=10)])
        assert [r.text for r in runs] == ["Hello"]
        assert runs[0].rect == (0, 0, 26, 10)

    def test_word_gap_inserts_space(self):
        runs = self.merge([item("Hello", 0, 0, width=30), item("world", 33, 0)])
        assert [r.text for r in runs] == ["Hello world"]

    def test_large_gap_splits(self):
        runs = self.merge([item("left", 0, 0, width=30), item("right", 80, 0)])
        assert [r.text for r in runs] == ["left", "right"]

    def test_column_mode_uses_smaller_gap(self):
        items = [item("a", 0, 0, width=10), item("b", 30, 0)]
        assert len(self.merge(items)) == 1
        assert len(self.merge(items, detect_columns=True)) == 2

    def test_font_change_splits(self):
        runs = self.merge([item("bold", 0, 0, width=20, font="Helv-Bold"), item("plain", 21, 0)])
        assert len(runs) == 2

    def test_baseline_jitter_stays_on_line(self):
        runs = self.merge([item("a", 0, 0, width=10), item("b", 10.5, 3.0)])
        assert [r.text for r in runs] == ["ab"]

    def test_different_lines_do_not_merge(self):
        runs = self.merge([item("top", 0, 0), item("bottom", 0, 12)])
        assert [r.text for r in runs] == ["top", "bottom"]

    def test_native_source(self):
        runs = self.merge([item("x", 0, 0)])
        assert runs[0].source is TextSource.NATIVE


class TestColumns:
    def test_reading_order_is_column_major(self):
        synth = TextLayerSynthesizer(detect_columns=True)
        runs = synth.synthesize(PAGE_WIDTH, two_column_items())
        assert [r.text for r in runs] == ["L0", "L1", "L2", "R0", "R1", "R2"]
        assert [r.column for r in runs] == [0, 0, 0, 1, 1, 1]

    def test_selection_stays_in_column(self):
        synth = TextLayerSynthesizer(detect_columns=True)
        layer = PageTextLayer(synth.synthesize(PAGE_WIDTH, two_column_items()))
        start = layer.run_at(60, 105)
        end = layer.run_at(60, 145)
        assert [r.text for r in layer.runs_between(start, end)] == ["L0", "L1", "L2"]

    def test_without_detection_selection_crosses_columns(self):
        layer = PageTextLayer(TextLayerSynthesizer().synthesize(PAGE_WIDTH, two_column_items()))
        start = layer.run_at(60, 105)
        end = layer.run_at(60, 125)
        assert [r.text for r in layer.runs_between(start, end)] == ["L0", "R0", "L1"]


class TestOcrRuns:
    def test_boxes_divided_by_ratio_then_scale(self):
        words = [OcrWord("scan", (100.0, 50.0, 200.0, 70.0), 0.9)]
        runs = TextLayerSynthesizer().runs_from_ocr(PAGE_WIDTH, words, scale=2.0, device_pixel_ratio=2.0)
        assert runs[0].rect == pytest.approx((25.0, 12.5, 25.0, 5.0))
        assert runs[0].source is TextSource.OCR

    def test_words_on_a_line_join(self):
        words = [OcrWord("two", (0, 0, 30, 10), 0.9), OcrWord("words", (34, 0, 80, 10), 0.9)]
        runs = TextLayerSynthesizer().runs_from_ocr(PAGE_WIDTH, words, scale=1.0)
        assert [r.text for r in runs] == ["two words"]


class TestPageTextLayer:
    def layer(self):
        return PageTextLayer(TextLayerSynthesizer(detect_columns=True).synthesize(
            PAGE_WIDTH, two_column_items()))

    def test_run_at_misses(self):
        assert self.layer().run_at(5, 5) is None

    def test_nearest_run(self):
        layer = self.layer()
        assert layer.nearest_run(45, 105).text == "L0"
        assert layer.nearest_run(5, 5, max_distance=10) is None

    def test_runs_between_is_order_independent(self):
        layer = self.layer()
        start, end = layer.runs[0], layer.runs[2]
        assert layer.runs_between(end, start) == layer.runs_between(start, end)

    def test_foreign_run_rejected(self):
        layer = self.layer()
        with pytest.raises(ValueError):
            layer.runs_between(layer.runs[0], item_run())

    def test_text_for_lines(self):
        layer = self.layer()
        assert layer.text_for(layer.runs[:2]) == "L0\nL1"
        assert layer.text_for([]) == ""

    def test_selection_rects(self):
        layer = self.layer()
        assert layer.selection_rects(layer.runs[:1]) == [(50.0, 100.0, 200.0, 10.0)]

    def test_len_and_source(self):
        layer = self.layer()
        assert len(layer) == 6
        assert layer.source is TextSource.NATIVE
        assert PageTextLayer().source is None


def item_run():
    return TextLayerSynthesizer(has_text_threshold=0).synthesize(PAGE_WIDTH, [item("x", 0, 0)])[0]
