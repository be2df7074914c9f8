"""
Event Renderer - Handles visual representation of timeline events.

This module provides the EventRenderer class which creates QGraphicsItem objects
for event cards, arc bars, axis ticks and the axis line, plus the text helpers
used on the cards.
"""

from PyQt5.QtWidgets import (QGraphicsRectItem, QGraphicsItem, QGraphicsLineItem,
                             QGraphicsSimpleTextItem)
from PyQt5.QtCore import Qt, QRectF
from PyQt5.QtGui import QColor, QPen, QBrush, QFont

from simple_timeline.models import Orientation, TimePrecision

# Calendar approximations for duration text
MINUTE_SECONDS = 60
HOUR_SECONDS = 3600
DAY_SECONDS = 86400
MONTH_SECONDS = 30 * DAY_SECONDS
YEAR_SECONDS = 365 * DAY_SECONDS


def format_date(dt):
    return f"{dt.strftime('%b')} {dt.day}, {dt.year}"


def format_time(dt):
    return f"{dt.hour:02d}:{dt.minute:02d}"


def format_event_dates(event):
    """
    Format the date line of an event card.

    Time-precision events include the time of day. The end part drops its
    date when it falls on the same day as the start, and is omitted entirely
    when it renders the same as the start.

    Args:
        event (Event): Event to describe

    Returns:
        str: e.g. "Mar 4, 2024, 09:00 - 17:30"
    """
    if event.precision == TimePrecision.TIME:
        start_text = f"{format_date(event.start_date)}, {format_time(event.start_date)}"
    else:
        start_text = format_date(event.start_date)

    end = event.end_date
    if end is None:
        return start_text

    if event.precision == TimePrecision.TIME:
        if end.date() == event.start_date.date():
            end_text = format_time(end)
        else:
            end_text = f"{format_date(end)}, {format_time(end)}"
    else:
        end_text = format_date(end)

    if end_text == start_text:
        return start_text
    return f"{start_text} - {end_text}"


def format_duration(seconds):
    """
    Format a duration in abbreviated units.

    Args:
        seconds (float): Duration in seconds

    Returns:
        str: e.g. "1y 2mo 3d 4h 5m", or None for an empty duration
    """
    if seconds is None or seconds <= 0:
        return None

    remaining = int(seconds)
    parts = []
    for unit_seconds, suffix in ((YEAR_SECONDS, 'y'), (MONTH_SECONDS, 'mo'), (DAY_SECONDS, 'd'),
                                 (HOUR_SECONDS, 'h'), (MINUTE_SECONDS, 'm')):
        value, remaining = divmod(remaining, unit_seconds)
        if value:
            parts.append(f"{value}{suffix}")

    if not parts:
        return "0m"
    return " ".join(parts)


class EventRenderer:
    """
    Handles rendering of event cards and axis decorations.

    This class provides methods to create QGraphicsItem objects for:
    - Event cards (title, dates, duration, details, people, locations)
    - Arc event bars in the side lane
    - Axis line and tick markers with labels
    """

    CARD_PADDING = 8
    CARD_ALPHA = 51  # 20% tint of the event color
    ARC_BAR_SIZE = 4

    AXIS_COLOR = '#94A3B8'
    CARD_BORDER_COLOR = '#CBD5E1'
    TEXT_COLOR = '#1E293B'

    MINOR_TICK_LENGTH = 8
    MAJOR_TICK_LENGTH = 16

    def __init__(self, display_settings=None):
        """
        Initialize the event renderer.

        Args:
            display_settings (DisplaySettings): Which card fields to show
        """
        self.display_settings = display_settings

    def card_lines(self, event):
        """
        Get the text lines shown on an event card.

        Args:
            event (Event): Event to describe

        Returns:
            list: Lines in display order
        """
        settings = self.display_settings
        lines = []
        if settings is None or settings.show_title:
            lines.append(event.title)
        lines.append(format_event_dates(event))
        if settings is None or settings.show_duration:
            duration_text = format_duration(event.duration) if event.is_duration else None
            if duration_text:
                lines.append(duration_text)
        if (settings is None or settings.show_details) and event.details:
            lines.append(event.details)
        if (settings is None or settings.show_people) and event.people:
            lines.append(", ".join(sorted(event.people)))
        if (settings is None or settings.show_locations) and event.locations:
            lines.append(", ".join(sorted(event.locations)))
        return lines

    def create_event_card(self, event, frame):
        """
        Create a card for a regular event.

        Args:
            event (Event): Event to render
            frame (QRectF): Layout frame in scene coordinates

        Returns:
            QGraphicsRectItem: Card item with a text child, event id in data(0)
        """
        color = QColor(event.color)
        tint = QColor(color)
        tint.setAlpha(self.CARD_ALPHA)

        card = QGraphicsRectItem(QRectF(frame))
        card.setBrush(QBrush(tint))
        card.setPen(QPen(QColor(self.CARD_BORDER_COLOR), 1))
        card.setFlag(QGraphicsItem.ItemClipsChildrenToShape, True)
        card.setAcceptHoverEvents(True)
        card.setData(0, event.id)
        card.setToolTip(self._create_tooltip(event))

        text = QGraphicsSimpleTextItem("\n".join(self.card_lines(event)), card)
        text.setBrush(QBrush(QColor(self.TEXT_COLOR)))
        text.setFont(QFont("Segoe UI", 9))
        text.setPos(frame.left() + self.CARD_PADDING, frame.top() + self.CARD_PADDING / 2)

        # Accent strip along the leading edge
        accent = QGraphicsRectItem(frame.left(), frame.top(), 3, frame.height(), card)
        accent.setBrush(QBrush(color))
        accent.setPen(QPen(Qt.NoPen))

        return card

    def create_arc_bar(self, event, frame, orientation=Orientation.VERTICAL):
        """
        Create a thin bar for an arc event.

        The item covers the whole (touch-expanded) frame so it is easy to
        hit; only a narrow strip on the event side is painted.
        """
        hit_area = QGraphicsRectItem(QRectF(frame))
        hit_area.setPen(QPen(Qt.NoPen))
        hit_area.setBrush(QBrush(Qt.transparent))
        hit_area.setData(0, event.id)
        hit_area.setToolTip(self._create_tooltip(event))

        if orientation == Orientation.VERTICAL:
            bar_rect = QRectF(frame.right() - self.ARC_BAR_SIZE, frame.top(), self.ARC_BAR_SIZE, frame.height())
        else:
            bar_rect = QRectF(frame.left(), frame.bottom() - self.ARC_BAR_SIZE, frame.width(), self.ARC_BAR_SIZE)
        bar = QGraphicsRectItem(bar_rect, hit_area)
        bar.setBrush(QBrush(QColor(event.color)))
        bar.setPen(QPen(Qt.NoPen))

        return hit_area

    def create_axis_line(self, axis_position, length, orientation=Orientation.VERTICAL):
        """Create the axis line at a cross-axis position spanning the content."""
        if orientation == Orientation.VERTICAL:
            line = QGraphicsLineItem(axis_position, 0, axis_position, length)
        else:
            line = QGraphicsLineItem(0, axis_position, length, axis_position)
        line.setPen(QPen(QColor(self.AXIS_COLOR), 1))
        line.setZValue(-10)
        return line

    def create_marker_tick(self, marker, position, axis_position, orientation=Orientation.VERTICAL):
        """
        Create a tick with its label.

        Args:
            marker (Marker): Marker to draw
            position (float): Main-axis position of the marker
            axis_position (float): Cross-axis position of the axis line
            orientation (Orientation): Direction of the time axis

        Returns:
            tuple: (QGraphicsLineItem, QGraphicsSimpleTextItem)
        """
        tick_length = self.MAJOR_TICK_LENGTH if marker.is_major else self.MINOR_TICK_LENGTH
        pen = QPen(QColor(self.AXIS_COLOR), 2 if marker.is_major else 1)

        label = QGraphicsSimpleTextItem(marker.label)
        label.setBrush(QBrush(QColor(self.AXIS_COLOR)))
        label.setFont(QFont("Segoe UI", 8, QFont.Bold if marker.is_major else QFont.Normal))
        label_rect = label.boundingRect()

        if orientation == Orientation.VERTICAL:
            tick = QGraphicsLineItem(axis_position - tick_length, position, axis_position, position)
            label.setPos(axis_position - tick_length - label_rect.width() - 2,
                         position - label_rect.height() / 2)
        else:
            tick = QGraphicsLineItem(position, axis_position - tick_length, position, axis_position)
            label.setPos(position - label_rect.width() / 2,
                         axis_position - tick_length - label_rect.height() - 2)

        tick.setPen(pen)
        tick.setZValue(-5)
        label.setZValue(-5)
        return tick, label

    def apply_drag_highlight(self, item, active=True):
        """Raise and outline the card being dragged."""
        if active:
            item.setPen(QPen(QColor(self.TEXT_COLOR), 2))
            item.setZValue(50)
        else:
            item.setPen(QPen(QColor(self.CARD_BORDER_COLOR), 1))
            item.setZValue(0)

    def _create_tooltip(self, event):
        tooltip = f"<b>{event.title or 'Untitled'}</b><br>{format_event_dates(event)}"
        duration_text = format_duration(event.duration) if event.is_duration else None
        if duration_text:
            tooltip += f"<br><b>Duration:</b> {duration_text}"
        return tooltip
