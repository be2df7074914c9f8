"""
Tests for UndoRedoManager.
"""

from datetime import datetime

import pytest

from simple_timeline.data.event_store import EventStore
from simple_timeline.interaction.undo_redo import UndoRedoManager
from simple_timeline.models import Event, Timeline, TimePrecision
from simple_timeline.utils.error_handler import StoreError


@pytest.fixture
def timeline(store):
    return store.add_timeline(Timeline("January", datetime(2024, 1, 1), datetime(2024, 2, 1)))


@pytest.fixture
def event(store, timeline):
    return store.add_event(Event(
        start_date=datetime(2024, 1, 10, 9),
        end_date=datetime(2024, 1, 10, 11),
        precision=TimePrecision.TIME,
        timeline_id=timeline.id
    ))


@pytest.fixture
def manager(store):
    return UndoRedoManager(store)


def moved(manager, event, new_start):
    original = event.start_date
    event.move_to(new_start)
    manager.record_move(event, original)


class TestUndoRedo:
    """Test history symmetry and stack discipline."""

    def test_undo_then_redo_restores_state(self, manager, event):
        moved(manager, event, datetime(2024, 1, 12, 9))

        assert manager.undo() is event
        assert event.start_date == datetime(2024, 1, 10, 9)
        assert event.end_date == datetime(2024, 1, 10, 11)
        assert manager.can_redo and not manager.can_undo

        assert manager.redo() is event
        assert event.start_date == datetime(2024, 1, 12, 9)
        assert event.end_date == datetime(2024, 1, 12, 11)
        assert manager.can_undo and not manager.can_redo

    def test_multiple_moves_undo_in_reverse_order(self, manager, event):
        moved(manager, event, datetime(2024, 1, 11, 9))
        moved(manager, event, datetime(2024, 1, 12, 9))

        manager.undo()
        assert event.start_date == datetime(2024, 1, 11, 9)
        manager.undo()
        assert event.start_date == datetime(2024, 1, 10, 9)
        assert manager.undo() is None

    def test_recording_clears_redo(self, manager, event):
        moved(manager, event, datetime(2024, 1, 11, 9))
        manager.undo()
        moved(manager, event, datetime(2024, 1, 15, 9))
        assert not manager.can_redo

    def test_empty_stacks(self, manager):
        assert manager.undo() is None
        assert manager.redo() is None

    def test_clear(self, manager, event):
        moved(manager, event, datetime(2024, 1, 11, 9))
        manager.undo()
        moved(manager, event, datetime(2024, 1, 12, 9))
        manager.clear()
        assert not manager.can_undo
        assert not manager.can_redo


class TestDeletedEvents:

    def test_actions_for_deleted_events_are_dropped(self, manager, store, event, timeline):
        other = store.add_event(Event(start_date=datetime(2024, 1, 20), timeline_id=timeline.id))
        moved(manager, other, datetime(2024, 1, 21))
        moved(manager, event, datetime(2024, 1, 11, 9))

        store.delete_event(event.id)
        assert manager.undo() is other
        assert other.start_date == datetime(2024, 1, 20)
        assert not manager.can_undo

    def test_only_deleted_entry_leaves_history_empty(self, manager, store, event):
        moved(manager, event, datetime(2024, 1, 11, 9))
        store.delete_event(event.id)
        assert manager.undo() is None
        assert not manager.can_redo


class TestSaveFailure:

    @pytest.fixture
    def failing_save(self, monkeypatch, store):
        def save_event(event):
            raise StoreError("Timeline database is locked while saving event")
        monkeypatch.setattr(store, "save_event", save_event)

    def test_failed_undo_keeps_event_and_history(self, manager, event, failing_save):
        moved(manager, event, datetime(2024, 1, 12, 9))

        with pytest.raises(StoreError):
            manager.undo()

        assert event.start_date == datetime(2024, 1, 12, 9)
        assert event.end_date == datetime(2024, 1, 12, 11)
        assert len(manager.undo_stack) == 1
        assert not manager.can_redo

    def test_failed_redo_keeps_event_and_history(self, manager, store, event, monkeypatch):
        moved(manager, event, datetime(2024, 1, 12, 9))
        manager.undo()

        def save_event(event):
            raise StoreError("Timeline database is locked while saving event")
        monkeypatch.setattr(store, "save_event", save_event)

        with pytest.raises(StoreError):
            manager.redo()

        assert event.start_date == datetime(2024, 1, 10, 9)
        assert len(manager.redo_stack) == 1
        assert not manager.can_undo


def test_undo_is_persisted(tmp_path):
    """An undone move is written back to the database."""
    db_path = str(tmp_path / "timelines.db")
    store = EventStore(db_path)
    timeline = store.add_timeline(Timeline("January", datetime(2024, 1, 1), datetime(2024, 2, 1)))
    event = store.add_event(Event(start_date=datetime(2024, 1, 10), timeline_id=timeline.id))
    manager = UndoRedoManager(store)

    moved(manager, event, datetime(2024, 1, 15))
    store.save_event(event)
    manager.undo()
    store.close()

    reopened = EventStore(db_path)
    try:
        assert reopened.get_event(event.id).start_date == datetime(2024, 1, 10)
    finally:
        reopened.close()
