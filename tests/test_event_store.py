"""
Tests for the SQLite event store.
"""

import os
from datetime import datetime

import pytest

from simple_timeline.data.event_store import EventStore
from simple_timeline.models import Event, Timeline, TimePrecision
from simple_timeline.utils.error_handler import ErrorHandler, StoreError


@pytest.fixture
def timeline(store):
    return store.add_timeline(Timeline("January", datetime(2024, 1, 1), datetime(2024, 2, 1)))


class TestTimelines:

    def test_add_and_get(self, store, timeline):
        assert store.get_timeline(timeline.id) is timeline

    def test_list_ordered_by_name(self, store):
        store.add_timeline(Timeline("Zeta", datetime(2024, 1, 1), datetime(2024, 2, 1)))
        store.add_timeline(Timeline("Alpha", datetime(2024, 1, 1), datetime(2024, 2, 1)))
        assert [t.name for t in store.list_timelines()] == ["Alpha", "Zeta"]

    def test_save_updates_range(self, tmp_path):
        db_path = str(tmp_path / "timelines.db")
        store = EventStore(db_path)
        timeline = store.add_timeline(Timeline("Trip", datetime(2024, 1, 1), datetime(2024, 2, 1)))
        timeline.end_date = datetime(2024, 3, 1)
        store.save_timeline(timeline)
        store.close()

        reopened = EventStore(db_path)
        try:
            assert reopened.get_timeline(timeline.id).end_date == datetime(2024, 3, 1)
        finally:
            reopened.close()

    def test_delete_cascades_to_events(self, store, timeline):
        event = store.add_event(Event(start_date=datetime(2024, 1, 5), timeline_id=timeline.id))
        store.delete_timeline(timeline.id)
        assert store.get_timeline(timeline.id) is None
        assert store.get_event(event.id) is None

    def test_unknown_timeline(self, store):
        assert store.get_timeline("missing") is None


class TestEvents:

    def test_events_ordered_by_start(self, store, timeline):
        late = store.add_event(Event(start_date=datetime(2024, 1, 20), timeline_id=timeline.id))
        early = store.add_event(Event(start_date=datetime(2024, 1, 5), timeline_id=timeline.id))
        assert store.events_for_timeline(timeline.id) == [early, late]

    def test_same_id_returns_same_object(self, store, timeline):
        event = store.add_event(Event(start_date=datetime(2024, 1, 5), timeline_id=timeline.id))
        assert store.get_event(event.id) is event
        assert store.events_for_timeline(timeline.id)[0] is event

    def test_fields_survive_reopen(self, tmp_path):
        db_path = str(tmp_path / "timelines.db")
        store = EventStore(db_path)
        timeline = store.add_timeline(Timeline("Trip", datetime(2024, 1, 1), datetime(2024, 2, 1)))
        event = store.add_event(Event(
            start_date=datetime(2024, 1, 5, 9, 30),
            end_date=datetime(2024, 1, 5, 12),
            title="Museum",
            details="Bring tickets",
            precision=TimePrecision.TIME,
            color_hex="#FF8800",
            is_arc_event=True,
            people=["Sam", "Alex"],
            locations=["Louvre"],
            timeline_id=timeline.id
        ))
        store.close()

        reopened = EventStore(db_path)
        try:
            loaded = reopened.get_event(event.id)
            assert loaded is not event
            assert loaded == event
            assert sorted(loaded.people) == ["Alex", "Sam"]
        finally:
            reopened.close()

    def test_save_rewrites_names(self, tmp_path):
        db_path = str(tmp_path / "timelines.db")
        store = EventStore(db_path)
        event = store.add_event(Event(start_date=datetime(2024, 1, 5), people=["Sam"]))
        event.people = ["Robin"]
        event.title = "Renamed"
        store.save_event(event)
        store.close()

        reopened = EventStore(db_path)
        try:
            loaded = reopened.get_event(event.id)
            assert loaded.people == ["Robin"]
            assert loaded.title == "Renamed"
        finally:
            reopened.close()

    def test_delete_event(self, store, timeline):
        event = store.add_event(Event(start_date=datetime(2024, 1, 5), timeline_id=timeline.id))
        store.delete_event(event.id)
        assert store.get_event(event.id) is None
        assert store.events_for_timeline(timeline.id) == []

    def test_unknown_event(self, store):
        assert store.get_event("missing") is None


class TestErrors:

    def test_duplicate_id_raises_store_error(self, store):
        event = store.add_event(Event(start_date=datetime(2024, 1, 5)))
        with pytest.raises(StoreError) as info:
            store.add_event(Event(start_date=datetime(2024, 1, 6), id=event.id))
        assert info.value.recovery_suggestions

    def test_unopenable_path(self, tmp_path):
        missing_dir = os.path.join(str(tmp_path), "missing", "timelines.db")
        with pytest.raises(StoreError):
            EventStore(missing_dir)

    def test_errors_reach_error_handler(self, qapp, store):
        handler = ErrorHandler()
        store.error_handler = handler
        event = store.add_event(Event(start_date=datetime(2024, 1, 5)))
        with pytest.raises(StoreError):
            store.add_event(Event(start_date=datetime(2024, 1, 6), id=event.id))
        assert handler.get_error_count() == 1
