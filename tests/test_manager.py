"""Tests for the annotation manager: the store + merge path behind the visible set."""

import pytest

from inkburn.core.annotations import AnnotationManager, PersistenceError, RemoveOutcome

from conftest import DOC_ID, highlight, ink, note


def burned(ann):
    ann.burned = not ann.is_note
    return ann


def reopen(store, embedded=()):
    mgr = AnnotationManager(store, DOC_ID, page_count=2)
    mgr.load(embedded)
    return mgr


class TestAdd:
    def test_add_persists_and_shows(self, manager, store):
        result = manager.add(highlight())
        assert result.durable
        assert result.annotation.id.startswith("local-")
        assert manager.visible == (result.annotation,)
        assert store.list_by_document(DOC_ID) == [result.annotation]

    def test_visible_is_immutable(self, manager):
        manager.add(note())
        assert isinstance(manager.visible, tuple)

    def test_page_outside_document(self, manager):
        with pytest.raises(ValueError):
            manager.add(highlight(page=3))

    def test_invalid_annotation(self, manager):
        bad = ink()
        bad.points = None
        with pytest.raises(ValueError):
            manager.add(bad)
        assert manager.visible == ()

    def test_failed_write_stays_visible_and_pending(self, manager, store, monkeypatch):
        def fail():
            raise PersistenceError("disk full")
        monkeypatch.setattr(store, "_flush", fail)

        result = manager.add(ink())
        assert not result.durable
        assert "disk full" in result.error
        assert result.annotation in manager.visible
        assert manager.pending == [result.annotation]

        monkeypatch.undo()
        retried = manager.retry_pending()
        assert [r.durable for r in retried] == [True]
        assert manager.pending == []
        assert store.get(result.annotation.id) == result.annotation

    def test_annotations_for_page(self, manager):
        first = manager.add(highlight(page=1)).annotation
        manager.add(note(page=2))
        assert manager.get_annotations_for_page(1) == [first]


class TestLoad:
    def test_burned_copy_of_local_is_hidden(self, manager, store):
        local = manager.add(highlight()).annotation
        embedded = [burned(highlight(id=local.id))]
        mgr = reopen(store, embedded)
        assert len(mgr.visible) == 1
        assert not mgr.visible[0].burned

    def test_embedded_only_records_shown(self, store):
        mgr = reopen(store, [burned(ink(id="x")), note(id="n")])
        assert len(mgr.visible) == 2

    def test_has_unburned_changes(self, manager):
        assert not manager.has_unburned_changes
        manager.add(note())
        assert not manager.has_unburned_changes
        manager.add(ink())
        assert manager.has_unburned_changes


class TestRemove:
    def test_remove_local(self, manager, store):
        ann = manager.add(ink()).annotation
        assert manager.remove(ann).outcome is RemoveOutcome.REMOVED
        assert manager.visible == ()
        assert store.get(ann.id) is None

    def test_burned_content_rejected(self, store):
        mgr = reopen(store, [burned(highlight(id="b"))])
        before = mgr.visible
        assert mgr.remove(mgr.visible[0]).outcome is RemoveOutcome.REJECTED_BURNED
        assert mgr.visible == before

    def test_highlight_takes_sibling_fragments(self, manager):
        first = manager.add(highlight(bbox=(10, 20, 100, 12), text="two lines")).annotation
        manager.add(highlight(bbox=(10, 34, 80, 12), text="two lines"))
        other = manager.add(highlight(bbox=(10, 60, 50, 12), text="another")).annotation

        assert manager.remove(first).outcome is RemoveOutcome.REMOVED
        assert manager.visible == (other,)

    def test_sibling_removal_spares_burned_fragments(self, store):
        mgr = reopen(store, [burned(highlight(id="b", bbox=(300, 300, 10, 10), text="same"))])
        local = mgr.add(highlight(text="same")).annotation
        mgr.remove(local)
        assert [a.id for a in mgr.visible] == ["b"]

    def test_embedded_note_stays_deleted_after_reload(self, store):
        embedded = [note(id="n1")]
        mgr = reopen(store, embedded)
        assert mgr.remove(mgr.visible[0]).outcome is RemoveOutcome.REMOVED
        assert mgr.visible == ()
        assert reopen(store, embedded).visible == ()

    def test_unknown_annotation(self, manager):
        assert manager.remove(ink(id="ghost")).outcome is RemoveOutcome.NOT_FOUND

    def test_failed_delete_keeps_record_visible(self, manager, store, monkeypatch):
        ann = manager.add(ink()).annotation

        def fail():
            raise PersistenceError("disk full")
        monkeypatch.setattr(store, "_flush", fail)

        result = manager.remove(ann)
        assert result.outcome is RemoveOutcome.FAILED
        assert "disk full" in result.error
        assert manager.visible == (ann,)
        assert store.get(ann.id) == ann

    def test_partial_sibling_failure_recomputes_visible(self, manager, store, monkeypatch):
        first = manager.add(highlight(bbox=(10, 20, 100, 12), text="two")).annotation
        second = manager.add(highlight(bbox=(10, 34, 80, 12), text="two")).annotation

        flush = store._flush
        calls = []

        def fail_second():
            calls.append(1)
            if len(calls) > 1:
                raise PersistenceError("disk full")
            flush()
        monkeypatch.setattr(store, "_flush", fail_second)

        assert manager.remove(first).outcome is RemoveOutcome.FAILED
        assert manager.visible == (second,)
        assert store.get(first.id) is None
        assert store.get(second.id) == second


class TestNotes:
    def test_edit_embedded_note_supersedes_it(self, store):
        mgr = reopen(store, [note(id="n1", text="old")])
        result = mgr.update_note_text(mgr.visible[0], "new")
        assert result.durable
        assert [a.text for a in mgr.visible] == ["new"]
        assert store.get("n1").text == "new"

    def test_only_notes_are_editable(self, manager):
        ann = manager.add(highlight()).annotation
        with pytest.raises(ValueError):
            manager.update_note_text(ann, "x")


class TestApplyBurn:
    def test_burned_local_records_leave_the_store(self, manager, store):
        hl = manager.add(highlight()).annotation
        nt = manager.add(note()).annotation
        burn_set = list(manager.visible)
        embedded = [burned(highlight(id=hl.id)), note(id=nt.id)]

        manager.apply_burn(burn_set, embedded)

        assert store.get(hl.id) is None
        assert store.get(nt.id) is not None
        assert len(manager.visible) == 2
        assert [a.burned for a in manager.visible if a.id == hl.id] == [True]
        assert not manager.has_unburned_changes

    def test_reload_after_burn_has_no_duplicates(self, manager, store):
        manager.add(highlight())
        manager.add(ink(page=2))
        manager.add(note())
        burn_set = list(manager.visible)
        embedded = [burned(type(a).from_dict(a.to_dict())) for a in burn_set]

        manager.apply_burn(burn_set, embedded)
        assert len(reopen(store, embedded).visible) == 3


class TestHitTest:
    def test_highlight_hit(self, manager):
        ann = manager.add(highlight(bbox=(10, 20, 100, 12))).annotation
        assert manager.get_annotation_at_point(1, 50, 25) is ann
        assert manager.get_annotation_at_point(1, 50, 50) is None
        assert manager.get_annotation_at_point(2, 50, 25) is None

    def test_ink_hit_near_segment(self, manager):
        ann = manager.add(ink(points=[(0, 0), (100, 0)])).annotation
        assert manager.get_annotation_at_point(1, 50, 2) is ann
        assert manager.get_annotation_at_point(1, 50, 30) is None

    def test_note_marker_hit(self, manager):
        ann = manager.add(note(x=30, y=40)).annotation
        assert manager.get_annotation_at_point(1, 35, 45) is ann

    def test_topmost_wins(self, manager):
        manager.add(highlight(bbox=(0, 0, 100, 100), text="below"))
        top = manager.add(highlight(bbox=(0, 0, 100, 100), text="above")).annotation
        assert manager.get_annotation_at_point(1, 10, 10) is top

    def test_removable_preferred_under_burned(self, store):
        mgr = reopen(store, [burned(highlight(id="b", bbox=(0, 0, 100, 100), text="burned"))])
        local = mgr.add(highlight(bbox=(0, 0, 100, 100), text="local")).annotation

        assert mgr.get_annotation_at_point(1, 10, 10).id == "b"
        assert mgr.get_annotation_at_point(1, 10, 10, prefer_removable=True) is local
