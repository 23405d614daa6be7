"""Tests for the annotation list labels and the highlight digest."""

from inkburn.core.annotations import compile_highlights, entry_label, entry_title, ordered_by_page

from conftest import highlight, ink, note


def burned(ann):
    ann.burned = not ann.is_note
    return ann


class TestEntries:
    def test_ordered_by_page_is_stable(self):
        a = note(page=2, text="a")
        b = highlight(page=1, text="b")
        c = ink(page=2)
        d = highlight(page=1, text="d")
        assert ordered_by_page([a, b, c, d]) == [b, d, a, c]

    def test_title_marks_burned(self):
        assert entry_title(highlight(page=3)) == "Page 3 - Highlight"
        assert entry_title(burned(highlight(page=3))) == "Page 3 - Highlight (burned)"
        assert entry_title(burned(note(page=1))) == "Page 1 - Note"

    def test_label_collapses_whitespace(self):
        assert entry_label(note(text="two\n  lines")) == "Page 1 - Note\ntwo lines"

    def test_label_without_text(self):
        assert entry_label(ink()).endswith("\n(no content)")


class TestCompileHighlights:
    def test_groups_by_page(self):
        annotations = [
            highlight(page=2, text="later"),
            highlight(page=1, text="first"),
            burned(highlight(page=1, text="second")),
        ]
        assert compile_highlights(annotations) == (
            "Page 1\n- first\n- second\n\nPage 2\n- later"
        )

    def test_sibling_fragments_once(self):
        annotations = [
            highlight(bbox=(10, 20, 100, 12), text="spans two lines"),
            highlight(bbox=(10, 34, 60, 12), text="spans two lines"),
        ]
        assert compile_highlights(annotations) == "Page 1\n- spans two lines"

    def test_ignores_notes_ink_and_blank_text(self):
        annotations = [note(text="a note"), ink(), highlight(text="   ")]
        assert compile_highlights(annotations) == ""
