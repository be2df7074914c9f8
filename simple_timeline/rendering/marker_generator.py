"""
Marker Generator - Produces tick marks for the time axis.

This module provides the MarkerGenerator class which picks a calendar unit
(hour, day, week, month, year or a multi-year step) for the current zoom so
that ticks never crowd closer than a minimum pixel spacing, snaps the first
tick to a calendar boundary and walks forward through the requested interval.
"""

import logging
from collections import namedtuple
from datetime import datetime, timedelta

from simple_timeline.models import Marker

logger = logging.getLogger(__name__)

HOUR_SECONDS = 3600.0
DAY_SECONDS = 86400.0

# Shortest calendar length of each unit. Using the shortest length keeps the
# spacing floor true for February and for non-leap years.
UNIT_MIN_SECONDS = {
    'hour': HOUR_SECONDS,
    'day': DAY_SECONDS,
    'month': 28 * DAY_SECONDS,
    'year': 365 * DAY_SECONDS,
}

# Next coarser unit, used to flag major markers
MAJOR_UNIT = {
    'hour': 'day',
    'day': 'month',
    'month': 'year',
    'year': 'year',
}

Scale = namedtuple('Scale', ['unit', 'step'])

# Scales tried from finest to coarsest
SCALES = (
    Scale('hour', 1),
    Scale('day', 1),
    Scale('day', 7),
    Scale('month', 1),
    Scale('year', 1),
    Scale('year', 5),
    Scale('year', 10),
    Scale('year', 50),
    Scale('year', 100),
    Scale('year', 1000),
)


def add_months(dt, months):
    """Add calendar months, keeping the first-of-month boundaries used by markers."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    return dt.replace(year=year, month=month, day=1)


class MarkerGenerator:
    """
    Generates axis tick marks for a visible interval at a given zoom.

    The generator is a pure function of (interval, zoom): calling it twice
    with the same input yields the same markers, so callers can restart it
    freely. Callers always bound the interval; the sequence is lazy.
    """

    # Minimum distance between consecutive markers in pixels
    DEFAULT_MIN_SPACING = 80.0

    def __init__(self, mapper, min_spacing=DEFAULT_MIN_SPACING):
        """
        Initialize the marker generator.

        Args:
            mapper (TimeAxisMapper): Mapper providing the zoom scale
            min_spacing (float): Minimum pixel spacing between markers
        """
        self.mapper = mapper
        self.min_spacing = min_spacing

    def choose_scale(self, zoom):
        """
        Choose the finest scale whose markers stay at least min_spacing apart.

        Args:
            zoom (float): Zoom factor

        Returns:
            Scale: (unit, step) tuple; the coarsest scale when nothing fits
        """
        pps = self.mapper.points_per_second(zoom)
        for scale in SCALES:
            if pps * UNIT_MIN_SECONDS[scale.unit] * scale.step > self.min_spacing:
                return scale
        return SCALES[-1]

    def markers(self, start, end, zoom):
        """Get the markers for an interval as a list."""
        return list(self.iter_markers(start, end, zoom))

    def iter_markers(self, start, end, zoom):
        """
        Lazily yield markers from the boundary containing ``start`` through ``end``.

        Args:
            start (datetime): Interval start
            end (datetime): Interval end (inclusive)
            zoom (float): Zoom factor

        Yields:
            Marker: (date, label, is_major) triples in ascending date order
        """
        if end < start:
            return

        scale = self.choose_scale(zoom)
        current = self._snap(start, scale)

        while current <= end:
            is_major = self._is_major(current, scale)
            yield Marker(current, self._format_label(current, scale, is_major), is_major)

            next_date = self._advance(current, scale)
            if next_date is None or next_date <= current:
                logger.debug(f"Marker generation stopped at {current.isoformat()} ({scale.unit} x{scale.step})")
                return
            current = next_date

    def _snap(self, dt, scale):
        """
        Round datetime down to the boundary of the scale's unit.

        Args:
            dt (datetime): Datetime to round
            scale (Scale): Selected scale

        Returns:
            datetime: Boundary at or before dt
        """
        if scale.unit == 'hour':
            return datetime(dt.year, dt.month, dt.day, dt.hour)
        elif scale.unit == 'day':
            day = datetime(dt.year, dt.month, dt.day)
            if scale.step == 7:
                # Round to Monday
                day -= timedelta(days=day.weekday())
            return day
        elif scale.unit == 'month':
            return datetime(dt.year, dt.month, 1)
        elif scale.step > 1:
            year = max(1, (dt.year // scale.step) * scale.step)
            return datetime(year, 1, 1)
        else:
            return datetime(dt.year, 1, 1)

    def _advance(self, dt, scale):
        """Step one scale interval forward, or None past the calendar's end."""
        try:
            if scale.unit == 'hour':
                return dt + timedelta(hours=scale.step)
            elif scale.unit == 'day':
                return dt + timedelta(days=scale.step)
            elif scale.unit == 'month':
                return add_months(dt, scale.step)
            else:
                return dt.replace(year=dt.year + scale.step)
        except (OverflowError, ValueError):
            return None

    def _is_major(self, dt, scale):
        """
        Check if a marker also sits on the next coarser boundary.

        Multi-year markers are major on multiples of ten steps.
        """
        if scale.unit == 'year' and scale.step > 1:
            return dt.year % (scale.step * 10) == 0

        try:
            previous = dt - timedelta(seconds=1)
        except OverflowError:
            return True
        major_unit = MAJOR_UNIT[scale.unit]
        return self._component(dt, major_unit) != self._component(previous, major_unit)

    @staticmethod
    def _component(dt, unit):
        if unit == 'day':
            return (dt.year, dt.month, dt.day)
        elif unit == 'month':
            return (dt.year, dt.month)
        return dt.year

    def _format_label(self, dt, scale, is_major):
        """
        Format datetime as label text based on scale.

        Args:
            dt (datetime): Marker date
            scale (Scale): Selected scale
            is_major (bool): Major markers carry the coarser context

        Returns:
            str: Label text
        """
        month = dt.strftime('%b')
        if scale.unit == 'hour':
            if is_major:
                return f"{month} {dt.day} {dt.hour:02d}:00"
            return f"{dt.hour:02d}:00"
        elif scale.unit == 'day':
            if is_major:
                return f"{month} {dt.day}"
            return str(dt.day)
        elif scale.unit == 'month':
            if is_major:
                return f"{month} {dt.year}"
            return month
        else:
            return str(dt.year)
