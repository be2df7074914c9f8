"""
Time Axis Mapper - Converts between absolute time and pixel offsets.

This module provides the TimeAxisMapper class which manages:
- Points-per-second scale calculations for a zoom factor
- Date <-> main-axis position conversion
- Minimum tappable lengths for event cards
- Minimum and clamped zoom bounds for a viewport size
"""

from datetime import timedelta

from simple_timeline.models import Orientation


class TimeAxisMapper:
    """
    Linear, invertible mapping between time and pixels for one timeline range.

    The mapping is parameterized by a positive zoom factor. At zoom 1.0 one
    hour of time occupies BASE_PX_PER_HOUR pixels. Position 0 corresponds to
    the start of the timeline range.

    ``date_at(position(d, z), z) == d`` holds for every date and zoom (within
    floating point tolerance); pan and pinch compose the two repeatedly.
    """

    # Pixels occupied by one hour at zoom 1.0
    BASE_PX_PER_HOUR = 120.0

    # Zoom bounds (the lower bound depends on the viewport, see min_zoom)
    MAX_ZOOM = 200.0

    # Minimum main-axis size of a card in pixels
    STACKED_MIN_POINTS = 44.0  # vertical axis, cards stacked top to bottom
    INLINE_MIN_POINTS = 180.0  # horizontal axis, card content laid out inline

    def __init__(self, date_range):
        """
        Initialize the mapper.

        Args:
            date_range (TimelineRange): Range whose start maps to position 0
        """
        self.date_range = date_range

    @property
    def range_start(self):
        return self.date_range.start_date

    @property
    def total_duration(self):
        """Total duration of the range in seconds."""
        return self.date_range.duration

    def points_per_second(self, zoom):
        """
        Get the scale for a zoom factor.

        Args:
            zoom (float): Zoom factor

        Returns:
            float: Pixels per second of time
        """
        return (self.BASE_PX_PER_HOUR * zoom) / 3600.0

    def position(self, date, zoom):
        """
        Get the main-axis position of a date.

        Args:
            date (datetime): Date to convert
            zoom (float): Zoom factor

        Returns:
            float: Offset in pixels from the start of the range
        """
        return (date - self.range_start).total_seconds() * self.points_per_second(zoom)

    def date_at(self, position, zoom):
        """
        Get the date at a main-axis position.

        Args:
            position (float): Offset in pixels from the start of the range
            zoom (float): Zoom factor

        Returns:
            datetime: Date at that position, or the range start when the zoom
            is too small to resolve a position
        """
        pps = self.points_per_second(zoom)
        if pps <= 0:
            return self.range_start
        return self.range_start + timedelta(seconds=position / pps)

    def date_interval(self, position, length, zoom):
        """
        Get the (start, end) dates covered by a span of pixels.

        Args:
            position (float): Offset of the span start
            length (float): Span length in pixels
            zoom (float): Zoom factor

        Returns:
            tuple: (start_date, end_date)
        """
        return (self.date_at(position, zoom), self.date_at(position + length, zoom))

    def pure_length(self, seconds, zoom):
        """Pixel length of a duration, without any minimum."""
        return seconds * self.points_per_second(zoom)

    def min_main_axis_points(self, orientation=Orientation.VERTICAL):
        """
        Get the minimum main-axis card size for an orientation.

        Stacked (vertical) cards only need a tap target; inline (horizontal)
        cards need room for their content.
        """
        if orientation == Orientation.HORIZONTAL:
            return self.INLINE_MIN_POINTS
        return self.STACKED_MIN_POINTS

    def length(self, seconds, zoom, orientation=Orientation.VERTICAL):
        """Pixel length of a duration, never below the tappable minimum."""
        return max(self.pure_length(seconds, zoom), self.min_main_axis_points(orientation))

    def min_visual_duration(self, zoom, orientation=Orientation.VERTICAL):
        """
        Get the duration that maps to the minimum card length.

        Returns:
            float: Seconds, or 0.0 when the zoom is not positive
        """
        pps = self.points_per_second(zoom)
        if pps <= 0:
            return 0.0
        return self.min_main_axis_points(orientation) / pps

    def min_zoom(self, axis_length):
        """
        Get the smallest zoom allowed for a viewport.

        At the minimum zoom the whole range fits inside the viewport. Short
        ranges never shrink below zoom 1.0.

        Args:
            axis_length (float): Viewport length along the time axis

        Returns:
            float: Minimum zoom factor
        """
        total = self.total_duration
        if total <= 0 or axis_length <= 0:
            return 1.0
        length_at_one = self.pure_length(total, 1.0)
        if length_at_one > axis_length:
            return axis_length / length_at_one
        return 1.0

    def clamp_zoom(self, zoom, axis_length):
        """Clamp a zoom factor to [min_zoom(axis_length), MAX_ZOOM]."""
        return max(self.min_zoom(axis_length), min(self.MAX_ZOOM, zoom))

    def content_length(self, zoom, axis_length):
        """Length of the scrollable content, never shorter than the viewport."""
        return max(self.pure_length(self.total_duration, zoom), axis_length)

    def __repr__(self):
        return (
            f"TimeAxisMapper(start={self.date_range.start_date.isoformat()}, "
            f"end={self.date_range.end_date.isoformat()})"
        )
