"""
Timeline data model.

Plain data records shared by the layout engine, the viewport and the record
store. Events are owned by the store and mutated in place by the drag and
undo machinery; everything the engine derives from them (layout rectangles,
markers) is ephemeral and recomputed on demand.
"""

import logging
import uuid
from collections import namedtuple
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum, IntEnum
from typing import List, Optional

from simple_timeline.utils.error_handler import ConfigurationError

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0
DEFAULT_COLOR_HEX = '#5792F2'

# Expansion buffer applied when an event falls outside its timeline range
RANGE_EXPANSION_RATIO = 0.05


def new_identifier() -> str:
    """Return a fresh stable identifier for a timeline or event."""
    return uuid.uuid4().hex


def start_of_day(dt: datetime) -> datetime:
    """Truncate a datetime to midnight of the same day."""
    return datetime(dt.year, dt.month, dt.day)


class TimePrecision(IntEnum):
    """Whether an event's time of day matters for display and rounding."""
    DAY = 0
    TIME = 1

    def __str__(self):
        return "Date" if self is TimePrecision.DAY else "Date & Time"


class Orientation(Enum):
    """Direction the time axis runs in."""
    VERTICAL = 'vertical'
    HORIZONTAL = 'horizontal'

    @classmethod
    def for_size(cls, width: float, height: float) -> 'Orientation':
        """Horizontal when the visible area is wider than it is tall."""
        return cls.HORIZONTAL if width > height else cls.VERTICAL


@dataclass
class Event:
    """
    A point-in-time or duration event on a timeline.

    The presence of ``end_date`` makes the event a duration event. The editor
    guarantees ``end_date >= start_date``; the engine tolerates violations by
    treating the duration as zero.
    """

    start_date: datetime
    end_date: Optional[datetime] = None
    title: str = ''
    details: str = ''
    precision: TimePrecision = TimePrecision.DAY
    color_hex: Optional[str] = None
    is_arc_event: bool = False
    people: List[str] = field(default_factory=list)
    locations: List[str] = field(default_factory=list)
    timeline_id: Optional[str] = None
    id: str = field(default_factory=new_identifier)

    @property
    def is_duration(self) -> bool:
        return self.end_date is not None

    @property
    def duration(self) -> float:
        """Raw duration in seconds, zero for point and inverted events."""
        if self.end_date is None:
            return 0.0
        return max(0.0, (self.end_date - self.start_date).total_seconds())

    @property
    def effective_duration(self) -> float:
        """
        Duration used for layout, in seconds.

        Day-precision spans cover whole days: an event from Jan 1 to Jan 3
        occupies three full days, not the two days between the two midnights.
        """
        if self.precision == TimePrecision.DAY and self.end_date is not None:
            days = (start_of_day(self.end_date) - start_of_day(self.start_date)).total_seconds()
            return max(0.0, days + SECONDS_PER_DAY)
        return self.duration

    @property
    def color(self) -> str:
        return self.color_hex or DEFAULT_COLOR_HEX

    @property
    def sort_key(self):
        return (self.start_date, self.id)

    def move_to(self, new_start: datetime, duration: Optional[float] = None):
        """
        Move the event so it starts at ``new_start``.

        Duration events keep their length: ``duration`` when given, otherwise
        the current raw duration.
        """
        if duration is None:
            duration = self.duration
        self.start_date = new_start
        if self.is_duration:
            self.end_date = new_start + timedelta(seconds=duration)


@dataclass(frozen=True)
class TimelineRange:
    """The addressable time axis of a timeline."""

    start_date: datetime
    end_date: datetime

    def __post_init__(self):
        if not isinstance(self.start_date, datetime) or not isinstance(self.end_date, datetime):
            raise ConfigurationError("start_date and end_date must be datetime objects")
        if self.end_date <= self.start_date:
            raise ConfigurationError(
                "Timeline end must be after its start",
                details=f"start={self.start_date.isoformat()} end={self.end_date.isoformat()}"
            )

    @property
    def duration(self) -> float:
        return (self.end_date - self.start_date).total_seconds()

    def contains(self, date: datetime) -> bool:
        return self.start_date <= date <= self.end_date

    def clamp_start(self, start: datetime, duration: float = 0.0) -> datetime:
        """
        Clamp an event start so that the event, including its duration, stays
        inside the range. Events longer than the range are pinned to the start.
        """
        latest_start = self.end_date - timedelta(seconds=duration)
        upper = max(self.start_date, latest_start)
        return min(max(start, self.start_date), upper)

    def expanded_to_include(self, start: datetime, end: Optional[datetime] = None) -> 'TimelineRange':
        """
        Grow the range so that ``[start, end]`` fits inside it.

        Each side that had to grow gets an extra buffer of 5% of the grown span,
        or one day when the grown span is empty. Returns ``self`` when the span
        already fits.
        """
        end = end or start
        new_start = self.start_date
        new_end = self.end_date

        expand_start = start < new_start
        expand_end = end > new_end
        if not expand_start and not expand_end:
            return self

        if expand_start:
            new_start = start
        if expand_end:
            new_end = end

        total = (new_end - new_start).total_seconds()
        buffer = timedelta(seconds=total * RANGE_EXPANSION_RATIO if total > 0 else SECONDS_PER_DAY)
        if expand_start:
            new_start -= buffer
        if expand_end:
            new_end += buffer

        logger.info(f"Expanding timeline range to {new_start.isoformat()} - {new_end.isoformat()}")
        return TimelineRange(new_start, new_end)


@dataclass
class Timeline:
    """A named timeline and its configured range."""

    name: str
    start_date: datetime
    end_date: datetime
    id: str = field(default_factory=new_identifier)

    @property
    def is_configured(self) -> bool:
        return self.end_date > self.start_date

    @property
    def date_range(self) -> TimelineRange:
        return TimelineRange(self.start_date, self.end_date)

    def apply_range(self, date_range: TimelineRange):
        self.start_date = date_range.start_date
        self.end_date = date_range.end_date


@dataclass
class LayoutRect:
    """Screen rectangle computed for one event. Never persisted."""

    event_id: str
    frame: object  # QRectF
    lane: int = 0
    lane_count: int = 1
    group: int = 0
    is_arc: bool = False


Marker = namedtuple('Marker', ['date', 'label', 'is_major'])


@dataclass(frozen=True)
class UndoAction:
    """A committed move of one event."""

    event_id: str
    from_date: datetime
    to_date: datetime


@dataclass
class RenderableRegion:
    """Axis markers and events near the visible part of the timeline."""

    markers: List[Marker] = field(default_factory=list)
    events: List[Event] = field(default_factory=list)
