"""Tests for the annotation model: validation and serialization."""

import pytest

from inkburn.core.annotations import Annotation, AnnotationKind
from inkburn.core.annotations.models import hex_to_rgb

from conftest import highlight, ink, note


class TestHexToRgb:
    def test_white(self):
        assert hex_to_rgb("#ffffff") == (1.0, 1.0, 1.0)

    def test_channels(self):
        assert hex_to_rgb("#ff0000") == (1.0, 0.0, 0.0)

    def test_invalid_raises(self):
        with pytest.raises(ValueError):
            hex_to_rgb("#zzzzzz")


class TestValidate:
    def test_valid_kinds(self):
        highlight().validate()
        ink().validate()
        note().validate()

    def test_page_must_be_positive(self):
        with pytest.raises(ValueError):
            highlight(page=0).validate()

    def test_highlight_requires_color(self):
        ann = Annotation(page=1, kind=AnnotationKind.HIGHLIGHT, bbox=(0, 0, 1, 1), opacity=0.4)
        with pytest.raises(ValueError):
            ann.validate()

    def test_ink_requires_points(self):
        ann = ink()
        ann.points = []
        with pytest.raises(ValueError):
            ann.validate()

    def test_ink_requires_stroke_width(self):
        ann = ink()
        ann.stroke_width = None
        with pytest.raises(ValueError):
            ann.validate()

    def test_points_on_highlight_rejected(self):
        ann = highlight()
        ann.points = [(0.0, 0.0), (1.0, 1.0)]
        with pytest.raises(ValueError):
            ann.validate()


class TestRemovable:
    def test_local_is_removable(self):
        assert highlight().removable

    def test_burned_highlight_is_not(self):
        assert not highlight(burned=True).removable

    def test_burned_note_stays_removable(self):
        assert note(burned=True).removable


class TestSerialization:
    def test_wire_names(self):
        data = ink(id="local-1", created_at="2024-01-01T00:00:00+00:00").to_dict()
        assert data["kind"] == "ink"
        assert data["strokeWidth"] == 4.0
        assert data["createdAt"] == "2024-01-01T00:00:00+00:00"
        assert data["points"] == [[10.0, 10.0], [50.0, 50.0]]
        assert "burned" not in data

    def test_round_trip(self):
        original = ink(id="local-2")
        assert Annotation.from_dict(original.to_dict()) == original

    def test_legacy_type_key(self):
        ann = Annotation.from_dict({"type": "note", "page": 2, "bbox": [1, 2, 0, 0], "text": "x"})
        assert ann.kind is AnnotationKind.NOTE
        assert ann.page == 2

    def test_burn_flag_ignored(self):
        ann = Annotation.from_dict({"kind": "highlight", "page": 1, "isBurned": True})
        assert ann.burned is False

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError):
            Annotation.from_dict({"kind": "stamp", "page": 1})

    def test_missing_page_raises(self):
        with pytest.raises(ValueError):
            Annotation.from_dict({"kind": "note"})

    def test_short_bbox_raises(self):
        with pytest.raises(ValueError):
            Annotation.from_dict({"kind": "note", "page": 1, "bbox": [1, 2]})

    def test_not_a_dict_raises(self):
        with pytest.raises(ValueError):
            Annotation.from_dict(["note"])
