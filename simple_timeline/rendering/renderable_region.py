"""
Renderable Region - Viewport culling for markers and events.

This module provides the RenderableRegionBuilder class which implements:
- Viewport culling (only markers and events near the visible interval)
- A buffer of several viewport lengths on each side so short scrolls do not
  expose unrendered content
- Debounced rebuilds while the user scrolls
"""

import logging
from datetime import timedelta

from PyQt5.QtCore import QObject, pyqtSignal

from simple_timeline.models import RenderableRegion
from simple_timeline.rendering.marker_generator import MarkerGenerator
from simple_timeline.utils.debouncer import Debouncer

logger = logging.getLogger(__name__)


class RenderableRegionBuilder(QObject):
    """
    Builds the set of markers and events worth rendering around the viewport.

    Zoom and size changes and programmatic scrolls (go-to-date, navigation,
    fitting) rebuild immediately; user scrolling rebuilds after
    SCROLL_DEBOUNCE_MS of quiet.

    Signals:
        region_changed: Emitted with a RenderableRegion after each rebuild
    """

    region_changed = pyqtSignal(object)

    SCROLL_DEBOUNCE_MS = 50

    # Buffer on each side, in multiples of the visible duration
    VIEWPORT_BUFFER = 4.0

    def __init__(self, viewport, events_provider, min_marker_spacing=MarkerGenerator.DEFAULT_MIN_SPACING,
                 parent=None):
        """
        Initialize the region builder.

        Args:
            viewport (ViewportController): Source of zoom, scroll and size
            events_provider (callable): Returns the active timeline's events
            min_marker_spacing (float): Minimum pixel spacing between markers
            parent: Parent QObject
        """
        super().__init__(parent)
        self.viewport = viewport
        self.events_provider = events_provider
        self.min_marker_spacing = min_marker_spacing
        self.region = RenderableRegion()

        self._pending_context_id = None
        self._scroll_debouncer = Debouncer(self.SCROLL_DEBOUNCE_MS, self._on_scroll_settled, self)

        viewport.zoom_changed.connect(self.rebuild)
        viewport.visible_size_changed.connect(self.rebuild)
        viewport.scroll_requested.connect(self.rebuild)
        viewport.scroll_position_changed.connect(self.schedule_rebuild)

    def schedule_rebuild(self, *args):
        """Rebuild after the scroll debounce."""
        self._pending_context_id = self.viewport.context_id
        self._scroll_debouncer.trigger()

    def flush(self):
        self._scroll_debouncer.flush()

    def _on_scroll_settled(self):
        if self._pending_context_id != self.viewport.context_id:
            logger.debug("Discarding region rebuild from a previous timeline context")
            return
        self.rebuild()

    def buffered_interval(self):
        """
        Get the visible interval widened by the buffer on both sides.

        Returns:
            tuple: (start, end), or None when nothing is visible
        """
        interval = self.viewport.visible_interval()
        if interval is None:
            return None
        start, end = interval
        if end <= start:
            return None

        buffer = (end - start) * self.VIEWPORT_BUFFER
        try:
            return (start - buffer, end + buffer)
        except OverflowError:
            logger.warning("Buffered interval exceeds the calendar; using the visible interval")
            return (start, end)

    def rebuild(self, *args):
        """
        Recompute the region now.

        Returns:
            RenderableRegion: The new region, or None when nothing is visible
        """
        self._scroll_debouncer.cancel()
        mapper = self.viewport.mapper
        if mapper is None:
            return None

        interval = self.buffered_interval()
        if interval is None:
            return None
        start, end = interval

        generator = MarkerGenerator(mapper, self.min_marker_spacing)
        markers = generator.markers(start, end, self.viewport.zoom_scale)
        events = [event for event in self.events_provider() if self._intersects(event, start, end)]

        self.region = RenderableRegion(markers=markers, events=events)
        logger.debug(f"Region rebuilt: {len(markers)} markers, {len(events)} events")
        self.region_changed.emit(self.region)
        return self.region

    @staticmethod
    def _intersects(event, start, end):
        event_end = event.start_date + timedelta(seconds=event.effective_duration)
        return event.start_date <= end and event_end >= start
