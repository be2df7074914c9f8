"""
Tests for card text formatting and graphics item creation.
"""

from datetime import datetime

import pytest
from PyQt5.QtCore import QRectF

from simple_timeline.config import DisplaySettings
from simple_timeline.models import Event, Marker, Orientation, TimePrecision
from simple_timeline.rendering.event_renderer import EventRenderer, format_duration, format_event_dates


class TestFormatDuration:

    def test_mixed_units(self):
        assert format_duration(26 * 3600 + 5 * 60) == "1d 2h 5m"

    def test_years_and_months(self):
        assert format_duration(400 * 86400) == "1y 1mo 5d"

    def test_empty(self):
        assert format_duration(0) is None
        assert format_duration(-5) is None

    def test_under_a_minute(self):
        assert format_duration(30) == "0m"


class TestFormatEventDates:

    def test_point_day_event(self):
        assert format_event_dates(Event(start_date=datetime(2024, 1, 5))) == "Jan 5, 2024"

    def test_same_day_time_range(self):
        event = Event(start_date=datetime(2024, 3, 4, 9), end_date=datetime(2024, 3, 4, 17, 30),
                      precision=TimePrecision.TIME)
        assert format_event_dates(event) == "Mar 4, 2024, 09:00 - 17:30"

    def test_multi_day_time_range(self):
        event = Event(start_date=datetime(2024, 3, 4, 22), end_date=datetime(2024, 3, 5, 2),
                      precision=TimePrecision.TIME)
        assert format_event_dates(event) == "Mar 4, 2024, 22:00 - Mar 5, 2024, 02:00"

    def test_day_range(self):
        event = Event(start_date=datetime(2024, 1, 1), end_date=datetime(2024, 1, 3))
        assert format_event_dates(event) == "Jan 1, 2024 - Jan 3, 2024"

    def test_zero_length_range_shows_start_only(self):
        event = Event(start_date=datetime(2024, 1, 1), end_date=datetime(2024, 1, 1))
        assert format_event_dates(event) == "Jan 1, 2024"


class TestCardLines:

    @pytest.fixture
    def event(self):
        return Event(start_date=datetime(2024, 3, 4, 9), end_date=datetime(2024, 3, 4, 11),
                     title="Workshop", details="Room 2", precision=TimePrecision.TIME,
                     people=["Sam", "Alex"], locations=["Berlin"])

    def test_all_fields(self, event):
        lines = EventRenderer(DisplaySettings()).card_lines(event)
        assert lines == ["Workshop", "Mar 4, 2024, 09:00 - 11:00", "2h", "Room 2", "Alex, Sam", "Berlin"]

    def test_toggles(self, event):
        settings = DisplaySettings(show_title=False, show_duration=False, show_people=False)
        lines = EventRenderer(settings).card_lines(event)
        assert lines == ["Mar 4, 2024, 09:00 - 11:00", "Room 2", "Berlin"]

    def test_point_event_has_no_duration_line(self):
        lines = EventRenderer().card_lines(Event(start_date=datetime(2024, 1, 5), title="Launch"))
        assert lines == ["Launch", "Jan 5, 2024"]


@pytest.mark.usefixtures("qapp")
class TestItems:

    def test_card_carries_event_id(self):
        event = Event(start_date=datetime(2024, 1, 5), title="Launch", id="launch")
        card = EventRenderer().create_event_card(event, QRectF(60, 100, 200, 44))
        assert card.data(0) == "launch"
        assert card.rect() == QRectF(60, 100, 200, 44)

    def test_arc_bar_covers_touch_area(self):
        event = Event(start_date=datetime(2024, 1, 5), is_arc_event=True, id="arc")
        item = EventRenderer().create_arc_bar(event, QRectF(48, 0, 22, 500))
        assert item.data(0) == "arc"
        assert item.rect().width() == 22

    def test_major_tick_is_longer(self):
        renderer = EventRenderer()
        minor, _ = renderer.create_marker_tick(Marker(datetime(2024, 1, 1, 1), "01:00", False), 120, 60)
        major, label = renderer.create_marker_tick(Marker(datetime(2024, 1, 2), "Jan 2 00:00", True), 240, 60)
        assert major.line().length() > minor.line().length()
        assert label.text() == "Jan 2 00:00"

    def test_horizontal_tick(self):
        tick, _ = EventRenderer().create_marker_tick(Marker(datetime(2024, 1, 1), "Jan 1", True), 300, 60,
                                                     Orientation.HORIZONTAL)
        assert tick.line().x1() == tick.line().x2() == 300
