"""
Tests for TimelineSession wiring: timeline selection, layout, navigation,
editing and drag integration.
"""

from datetime import datetime

import pytest

from simple_timeline.config import TimelineConfig
from simple_timeline.models import Event, Timeline, TimePrecision
from simple_timeline.session import TimelineSession

pytestmark = pytest.mark.usefixtures("qapp")


@pytest.fixture
def config(tmp_path):
    return TimelineConfig(str(tmp_path / "config.json"))


@pytest.fixture
def january(store):
    return store.add_timeline(Timeline("January", datetime(2024, 1, 1), datetime(2024, 2, 1)))


@pytest.fixture
def session(store, config):
    timeline_session = TimelineSession(store, config)
    timeline_session.set_visible_size(400, 600)
    return timeline_session


def add_event(store, timeline, start, **kwargs):
    return store.add_event(Event(start_date=start, timeline_id=timeline.id, **kwargs))


class TestTimelineSelection:

    def test_first_timeline_by_name(self, session, store, january):
        store.add_timeline(Timeline("Archive", datetime(2023, 1, 1), datetime(2023, 2, 1)))
        assert session.load_initial_timeline().name == "Archive"

    def test_last_active_timeline_wins(self, session, store, january, config):
        store.add_timeline(Timeline("Archive", datetime(2023, 1, 1), datetime(2023, 2, 1)))
        config.last_active_timeline_id = january.id
        assert session.load_initial_timeline() is january

    def test_missing_last_active_falls_back(self, session, january, config):
        config.last_active_timeline_id = "gone"
        assert session.load_initial_timeline() is january

    def test_no_timelines(self, session):
        assert session.load_initial_timeline() is None
        assert session.layouts == []
        assert session.viewport.mapper is None

    def test_choice_is_remembered(self, session, january, tmp_path):
        session.set_active_timeline(january.id)
        assert TimelineConfig(str(tmp_path / "config.json")).last_active_timeline_id == january.id

    def test_switching_clears_history(self, session, store, january):
        other = store.add_timeline(Timeline("Other", datetime(2024, 3, 1), datetime(2024, 4, 1)))
        event = add_event(store, january, datetime(2024, 1, 10))
        session.set_active_timeline(january.id)
        session.undo_manager.record_move(event, datetime(2024, 1, 9))
        assert session.can_undo

        session.set_active_timeline(other.id)
        assert not session.can_undo
        assert session.viewport.center_date == datetime(2024, 3, 16, 12)


class TestLayout:

    def test_layout_after_axis_strip(self, session, store, january):
        add_event(store, january, datetime(2024, 1, 5))
        layouts = []
        session.layouts_changed.connect(layouts.append)
        session.set_active_timeline(january.id)

        frame = layouts[-1][0].frame
        mapper = session.viewport.mapper
        pps = mapper.points_per_second(session.viewport.zoom_scale)
        assert frame.left() == pytest.approx(60.0)
        assert frame.width() == pytest.approx(340.0)
        assert frame.top() == pytest.approx(4 * 86400 * pps)

    def test_unconfigured_timeline_has_no_layouts(self, session, store):
        empty = store.add_timeline(Timeline("Empty", datetime(2024, 1, 1), datetime(2024, 1, 1)))
        add_event(store, empty, datetime(2024, 1, 1))
        session.set_active_timeline(empty.id)
        assert session.layouts == []
        assert session.active_range() is None

    def test_zoom_relayouts(self, session, store, january):
        add_event(store, january, datetime(2024, 1, 5))
        session.set_active_timeline(january.id)
        before = session.layouts[0].frame.top()
        session.viewport.set_zoom(1.0)
        assert session.layouts[0].frame.top() > before


class TestNavigation:

    @pytest.fixture
    def zoomed(self, session, store, january):
        add_event(store, january, datetime(2024, 1, 5), id='early')
        add_event(store, january, datetime(2024, 1, 20), id='late')
        session.set_active_timeline(january.id)
        # Five hours visible around Jan 16 12:00
        session.viewport.set_zoom(1.0)
        return session

    def test_visible_window(self, zoomed):
        start, end = zoomed.viewport.visible_interval()
        assert abs((start - datetime(2024, 1, 16, 9, 30)).total_seconds()) < 1e-3
        assert abs((end - datetime(2024, 1, 16, 14, 30)).total_seconds()) < 1e-3

    def test_next_and_previous(self, zoomed):
        assert zoomed.next_event().id == 'late'
        assert zoomed.previous_event().id == 'early'
        assert zoomed.can_scroll_to_next
        assert zoomed.can_scroll_to_previous

    def test_scroll_to_next_event(self, zoomed):
        requests = []
        zoomed.viewport.scroll_requested.connect(lambda offset, animated: requests.append(animated))
        assert zoomed.scroll_to_next_event().id == 'late'
        assert zoomed.viewport.center_date == datetime(2024, 1, 20)
        assert requests == [True]
        assert zoomed.next_event() is None

    def test_scroll_to_previous_event(self, zoomed):
        zoomed.scroll_to_previous_event()
        assert zoomed.viewport.center_date == datetime(2024, 1, 5)
        assert zoomed.previous_event() is None

    def test_go_to_date(self, zoomed):
        zoomed.scroll_to_date(datetime(2024, 1, 25, 8))
        assert zoomed.viewport.center_date == datetime(2024, 1, 25, 8)


class TestTapToAdd:

    def test_date_for_tap(self, session, january):
        session.set_active_timeline(january.id)
        session.viewport.set_zoom(1.0)
        origin = session.viewport.mapper.position(datetime(2024, 1, 3, 6), 1.0)
        assert session.date_for_tap(origin, 200.0) == datetime(2024, 1, 3, 6)

    def test_axis_strip_is_not_a_target(self, session, january):
        session.set_active_timeline(january.id)
        assert session.date_for_tap(100.0, 30.0) is None

    def test_disabled(self, session, january, config):
        session.set_active_timeline(january.id)
        config.display.is_tap_to_add_enabled = False
        assert session.date_for_tap(100.0, 200.0) is None


class TestEditing:

    def test_day_precision_normalized_to_midnight(self, session, store, january):
        session.set_active_timeline(january.id)
        event = session.save_event(Event(start_date=datetime(2024, 1, 7, 15, 45),
                                         end_date=datetime(2024, 1, 8, 9)))
        assert event.start_date == datetime(2024, 1, 7)
        assert event.end_date == datetime(2024, 1, 8)
        assert event.timeline_id == january.id
        assert store.get_event(event.id) is event

    def test_time_precision_kept(self, session, january):
        session.set_active_timeline(january.id)
        event = session.save_event(Event(start_date=datetime(2024, 1, 7, 15, 45),
                                         precision=TimePrecision.TIME))
        assert event.start_date == datetime(2024, 1, 7, 15, 45)

    def test_range_grows_when_unconstrained(self, session, january, config):
        config.display.constrain_events_to_bounds = False
        session.set_active_timeline(january.id)
        session.save_event(Event(start_date=datetime(2024, 2, 10)))
        assert january.start_date == datetime(2024, 1, 1)
        assert january.end_date > datetime(2024, 2, 10)
        assert session.viewport.mapper.date_range.end_date == january.end_date

    def test_range_fixed_when_constrained(self, session, january):
        session.set_active_timeline(january.id)
        session.save_event(Event(start_date=datetime(2024, 2, 10)))
        assert january.end_date == datetime(2024, 2, 1)

    def test_opening_editor_clears_history(self, session, store, january):
        event = add_event(store, january, datetime(2024, 1, 10))
        session.set_active_timeline(january.id)
        session.undo_manager.record_move(event, datetime(2024, 1, 9))
        session.open_editor()
        assert not session.can_undo

    def test_delete_event(self, session, store, january):
        event = add_event(store, january, datetime(2024, 1, 10))
        session.set_active_timeline(january.id)
        session.delete_event(event.id)
        assert session.layouts == []


class TestDragIntegration:

    @pytest.fixture
    def event(self, session, store, january):
        event = add_event(store, january, datetime(2024, 1, 10, 9), end_date=datetime(2024, 1, 10, 11),
                          precision=TimePrecision.TIME)
        session.set_active_timeline(january.id)
        session.viewport.set_zoom(1.0)
        return event

    def test_scrolling_disabled_while_active(self, session, event):
        session.drag.press(event.id)
        assert not session.viewport.scroll_enabled
        session.drag.release()
        assert session.viewport.scroll_enabled

    def test_live_layout_and_pinning(self, session, store, january, event):
        add_event(store, january, datetime(2024, 1, 10, 9), end_date=datetime(2024, 1, 10, 11),
                  precision=TimePrecision.TIME, id='0-first')
        session.drag.press(event.id)
        session.drag.hold_elapsed()
        session.drag.move(60.0)

        layouts = {layout.event_id: layout for layout in session.layouts}
        assert layouts[event.id].lane == 0
        assert layouts[event.id].frame.top() == pytest.approx(
            session.viewport.mapper.position(datetime(2024, 1, 10, 9, 30), 1.0))

    def test_commit_persists_and_undo_restores(self, session, store, event):
        history = []
        session.history_changed.connect(lambda: history.append(True))
        session.drag.press(event.id)
        session.drag.hold_elapsed()
        session.drag.move(120.0)
        session.drag.release()

        assert event.start_date == datetime(2024, 1, 10, 10)
        assert history
        assert session.can_undo

        assert session.undo() is event
        assert event.start_date == datetime(2024, 1, 10, 9)
        assert session.redo() is event
        assert event.start_date == datetime(2024, 1, 10, 10)

    def test_undo_ignored_during_drag(self, session, event):
        session.undo_manager.record_move(event, datetime(2024, 1, 9, 9))
        session.drag.press(event.id)
        assert session.undo() is None
        assert session.can_undo

    def test_switching_timeline_cancels_drag(self, session, store, event):
        other = store.add_timeline(Timeline("Other", datetime(2024, 3, 1), datetime(2024, 4, 1)))
        session.drag.press(event.id)
        session.drag.hold_elapsed()
        session.drag.move(600.0)
        session.set_active_timeline(other.id)
        assert event.start_date == datetime(2024, 1, 10, 9)
        assert not session.drag.is_active
