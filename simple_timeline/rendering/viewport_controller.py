"""
Viewport Controller - Owns zoom, scroll position and center date.

This module provides the ViewportController class which implements:
- Initial fit of a timeline range into the viewport
- Programmatic scroll-to-date with clamping to the content bounds
- Pinch zoom about the viewport center
- Debounced derivation of the center date from user scrolling
"""

import logging
from datetime import timedelta

from PyQt5.QtCore import QObject, pyqtSignal

from simple_timeline.models import Orientation
from simple_timeline.rendering.time_axis import TimeAxisMapper
from simple_timeline.utils.debouncer import Debouncer

logger = logging.getLogger(__name__)


class ViewportController(QObject):
    """
    Mediates between the scroll surface and the timeline's time axis.

    ``scroll_position`` is the raw offset of the content origin relative to
    the viewport: it is negative once content has scrolled past the origin.
    ``center_date`` is the date under the viewport midpoint. Programmatic
    scrolls (scroll_to_date, pinch, initial fit) move the surface; user
    scrolls update the center date only after a quiet period.

    Signals:
        zoom_changed: Emitted with the new zoom factor
        center_date_changed: Emitted with the new center date
        scroll_requested: Emitted with (content offset, animated) when the
            surface must move
        scroll_position_changed: Emitted with the raw position on every
            accepted user scroll
        visible_size_changed: Emitted with (width, height)
    """

    zoom_changed = pyqtSignal(float)
    center_date_changed = pyqtSignal(object)
    scroll_requested = pyqtSignal(float, bool)
    scroll_position_changed = pyqtSignal(float)
    visible_size_changed = pyqtSignal(float, float)

    # Quiet period before a user scroll becomes a new center date
    CENTER_DEBOUNCE_MS = 100

    # Initial fit: range plus this fraction, and hourly spacing for short ranges
    FIT_BUFFER_RATIO = 0.1
    SHORT_RANGE_SECONDS = 3 * 86400.0
    SHORT_RANGE_HOUR_SPACING = 100.0
    SHORT_RANGE_ZOOM_FACTOR = 30.0

    def __init__(self, parent=None):
        """
        Initialize the viewport controller.

        Args:
            parent: Parent QObject
        """
        super().__init__(parent)
        self.mapper = None
        self._zoom_scale = 1.0
        self._scroll_position = 0.0
        self._center_date = None
        self._width = 0.0
        self._height = 0.0
        self._is_programmatic = False
        self._scroll_enabled = True
        self._initial_zoom = None
        self._needs_fit = False

        # Incremented whenever the active timeline or its bounds change
        self._context_id = 0
        self._pending_context_id = 0
        self._center_debouncer = Debouncer(self.CENTER_DEBOUNCE_MS, self._on_scroll_settled, self)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def zoom_scale(self):
        return self._zoom_scale

    @property
    def scroll_position(self):
        return self._scroll_position

    @property
    def center_date(self):
        return self._center_date

    @property
    def context_id(self):
        return self._context_id

    @property
    def is_scrolling_programmatically(self):
        return self._is_programmatic

    @property
    def scroll_enabled(self):
        return self._scroll_enabled

    @property
    def orientation(self):
        return Orientation.for_size(self._width, self._height)

    @property
    def axis_length(self):
        """Viewport length along the time axis."""
        if self.orientation == Orientation.VERTICAL:
            return self._height
        return self._width

    @property
    def cross_axis_length(self):
        """Viewport length across the time axis."""
        if self.orientation == Orientation.VERTICAL:
            return self._width
        return self._height

    @property
    def visible_size(self):
        return (self._width, self._height)

    def min_zoom(self):
        if self.mapper is None:
            return 1.0
        return self.mapper.min_zoom(self.axis_length)

    def content_length(self):
        """Length of the scrollable content along the time axis."""
        if self.mapper is None:
            return self.axis_length
        return self.mapper.content_length(self._zoom_scale, self.axis_length)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self, date_range):
        """
        Reinitialize for a timeline range (new timeline or new bounds).

        Pending debounced work from the previous context is discarded. When
        the viewport has no size yet the fit is deferred until it has one.

        Args:
            date_range (TimelineRange): Range of the active timeline
        """
        self._context_id += 1
        self._center_debouncer.cancel()
        self._initial_zoom = None
        self.mapper = TimeAxisMapper(date_range)
        self._scroll_position = 0.0

        if self.axis_length <= 0:
            self._needs_fit = True
            self._set_center(date_range.start_date + timedelta(seconds=date_range.duration / 2.0))
            return

        self._fit()

    def update_range(self, date_range):
        """
        Swap in new bounds for the same timeline.

        Unlike reset, the zoom (re-clamped) and the center date are kept.
        """
        if self.mapper is None or self._needs_fit:
            self.reset(date_range)
            return

        # Settle a pending user scroll so the kept center is the one on screen
        self.flush()
        center = self._center_date
        self._context_id += 1
        self._center_debouncer.cancel()
        self.mapper = TimeAxisMapper(date_range)
        if self.axis_length <= 0:
            return

        if center is None:
            center = date_range.start_date + timedelta(seconds=date_range.duration / 2.0)
        self._zoom_about(self.mapper.clamp_zoom(self._zoom_scale, self.axis_length), center)

    def clear(self):
        """Drop the active range (no timeline, or an unconfigured one)."""
        self._context_id += 1
        self._center_debouncer.cancel()
        self.mapper = None
        self._center_date = None
        self._needs_fit = False
        self._scroll_position = 0.0

    def _fit(self):
        """Choose the initial zoom and center on the middle of the range."""
        self._needs_fit = False
        axis_length = self.axis_length
        total = self.mapper.total_duration

        buffered = total * (1.0 + self.FIT_BUFFER_RATIO)
        fit_zoom = axis_length / self.mapper.pure_length(buffered, 1.0)

        if total <= self.SHORT_RANGE_SECONDS:
            required_pps = self.SHORT_RANGE_HOUR_SPACING / 3600.0
            fit_zoom = max(fit_zoom, required_pps * self.SHORT_RANGE_ZOOM_FACTOR)

        zoom = self.mapper.clamp_zoom(fit_zoom, axis_length)
        center = self.mapper.range_start + timedelta(seconds=total / 2.0)
        logger.info(f"Fitted viewport: zoom={zoom:.4f} center={center.isoformat()}")
        self._zoom_about(zoom, center)

    def set_visible_size(self, width, height):
        """
        Update the viewport size.

        The zoom is re-clamped for the new size and the center date kept.
        """
        width = max(0.0, float(width))
        height = max(0.0, float(height))
        if (width, height) == (self._width, self._height):
            return

        # Read the center under the old size before it changes
        self.flush()
        self._width = width
        self._height = height

        if self.mapper is not None and self.axis_length > 0:
            if self._needs_fit:
                self._fit()
            else:
                self._zoom_about(self.mapper.clamp_zoom(self._zoom_scale, self.axis_length), self._center_date)

        self.visible_size_changed.emit(width, height)

    def set_scroll_enabled(self, enabled):
        """Enable or disable scrolling and pinching (disabled while dragging)."""
        self._scroll_enabled = bool(enabled)

    # ------------------------------------------------------------------
    # Programmatic scrolling
    # ------------------------------------------------------------------

    def scroll_to_date(self, date, animated=False):
        """
        Center the viewport on a date.

        The target offset is clamped to the content so the view never shows
        space before the start or after the end of the range.

        Args:
            date (datetime): Date to center
            animated (bool): Whether the surface should animate the move

        Returns:
            float: Anchor ratio (0.0 start .. 1.0 end) applied to the surface,
            or None when the viewport has no size
        """
        if self.mapper is None:
            return None

        self._is_programmatic = True
        self._set_center(date)

        axis_length = self.axis_length
        if axis_length <= 0:
            return None

        max_offset = self.content_length() - axis_length
        if max_offset > 0:
            desired = self.mapper.position(date, self._zoom_scale) - axis_length / 2.0
            offset = max(0.0, min(desired, max_offset))
            anchor = offset / max_offset
        else:
            offset = 0.0
            anchor = 0.0

        self._scroll_position = -offset
        self.scroll_requested.emit(offset, animated)

        # Clears the programmatic flag once the surface has settled
        self._arm_debounce()
        return anchor

    def set_zoom(self, zoom):
        """Set the zoom (clamped) while keeping the center date in place."""
        if self.mapper is None or self.axis_length <= 0:
            return
        center = self._date_at_viewport_center()
        self._zoom_about(self.mapper.clamp_zoom(zoom, self.axis_length), center)

    # ------------------------------------------------------------------
    # Pinch zoom
    # ------------------------------------------------------------------

    def begin_pinch(self):
        """Start a pinch gesture; the zoom at this point is the baseline."""
        if not self._scroll_enabled or self.mapper is None:
            return
        self._initial_zoom = self._zoom_scale

    def update_pinch(self, scale_factor):
        """
        Apply a pinch scale factor relative to the zoom at gesture start.

        The date under the viewport center is read before the zoom changes
        and scrolled back to the center afterwards.

        Args:
            scale_factor (float): Cumulative gesture magnification
        """
        if not self._scroll_enabled or self.mapper is None:
            return
        axis_length = self.axis_length
        if axis_length <= 0:
            return

        self._is_programmatic = True
        date_at_center = self._date_at_viewport_center()
        if self._initial_zoom is None:
            self._initial_zoom = self._zoom_scale

        self._zoom_about(self.mapper.clamp_zoom(self._initial_zoom * scale_factor, axis_length), date_at_center)

    def end_pinch(self):
        """Finish a pinch gesture."""
        self._initial_zoom = None
        self._is_programmatic = False

    # ------------------------------------------------------------------
    # User scrolling
    # ------------------------------------------------------------------

    def on_raw_scroll(self, position, programmatic=False):
        """
        Record a scroll position reported by the surface.

        The center date follows after CENTER_DEBOUNCE_MS without further
        scrolling; every new position restarts the wait. A user scroll takes
        over from a programmatic scroll that has not settled yet.

        Args:
            position (float): Raw content origin offset (negative when scrolled)
            programmatic (bool): True when the surface is only echoing a
                scroll_requested move (including animation frames)
        """
        if not self._scroll_enabled:
            return
        if position == self._scroll_position:
            return
        if not programmatic:
            self._is_programmatic = False
        self._scroll_position = position
        self.scroll_position_changed.emit(position)
        self._arm_debounce()

    def flush(self):
        """Settle a pending scroll immediately."""
        self._center_debouncer.flush()

    def _arm_debounce(self):
        self._pending_context_id = self._context_id
        self._center_debouncer.trigger()

    def _on_scroll_settled(self):
        if self._pending_context_id != self._context_id:
            logger.debug("Discarding scroll settle from a previous timeline context")
            return
        if self._is_programmatic:
            self._is_programmatic = False
            return
        self._update_center_date_from_scroll()

    def _update_center_date_from_scroll(self):
        if self.mapper is None or self.axis_length <= 0:
            return
        self._set_center(self._date_at_viewport_center())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _date_at_viewport_center(self):
        return self.date_at_viewport(self.axis_length / 2.0)

    def date_at_viewport(self, main_axis_offset):
        """
        Get the date at an offset measured from the viewport's leading edge.

        Args:
            main_axis_offset (float): Offset along the time axis in viewport pixels

        Returns:
            datetime: Date under that point, or None without a timeline
        """
        if self.mapper is None:
            return None
        return self.mapper.date_at(-self._scroll_position + main_axis_offset, self._zoom_scale)

    def visible_interval(self):
        """
        Get the dates at the two ends of the viewport.

        Returns:
            tuple: (start, end), or None when there is no timeline or no size
        """
        if self.mapper is None or self.axis_length <= 0:
            return None
        return self.mapper.date_interval(-self._scroll_position, self.axis_length, self._zoom_scale)

    # ------------------------------------------------------------------
    # Internal setters
    # ------------------------------------------------------------------

    def _zoom_about(self, zoom, center):
        """Apply a zoom, recenter on a date, then announce the new zoom."""
        changed = zoom != self._zoom_scale
        self._zoom_scale = zoom
        if center is not None:
            self.scroll_to_date(center, animated=False)
        if changed:
            self.zoom_changed.emit(zoom)

    def _set_center(self, date):
        if date == self._center_date:
            return
        self._center_date = date
        self.center_date_changed.emit(date)

    def __repr__(self):
        return (
            f"ViewportController(zoom={self._zoom_scale:.4f}, "
            f"scroll={self._scroll_position:.1f}, "
            f"center={self._center_date})"
        )
