"""
Timeline Session - Wires the engine components for one active timeline.

This module provides the TimelineSession class which owns the viewport,
region builder, drag rescheduler and undo history, reads events from the
record store and publishes fresh layouts whenever zoom, size or event
positions change.
"""

import logging

from PyQt5.QtCore import QObject, pyqtSignal

from simple_timeline.config import TimelineConfig
from simple_timeline.interaction.drag_rescheduler import DragRescheduler
from simple_timeline.interaction.undo_redo import UndoRedoManager
from simple_timeline.models import TimePrecision, start_of_day
from simple_timeline.rendering.layout_engine import LayoutEngine
from simple_timeline.rendering.renderable_region import RenderableRegionBuilder
from simple_timeline.rendering.viewport_controller import ViewportController
from simple_timeline.utils.error_handler import ErrorHandler, TimelineError

logger = logging.getLogger(__name__)


class TimelineSession(QObject):
    """
    Application-side coordinator for the active timeline.

    Signals:
        layouts_changed: Emitted with the list of LayoutRect after each layout pass
        timeline_changed: Emitted with the new active Timeline (or None)
        history_changed: Emitted when undo/redo availability may have changed
    """

    layouts_changed = pyqtSignal(list)
    timeline_changed = pyqtSignal(object)
    history_changed = pyqtSignal()

    # Cross-axis size of the axis strip (ticks and labels)
    AXIS_SIZE = 60.0

    def __init__(self, store, config=None, error_handler=None, parent=None):
        """
        Initialize the session.

        Args:
            store (EventStore): Record store for timelines and events
            config (TimelineConfig): Preferences; defaults to an unsaved instance
            error_handler (ErrorHandler): Receives store failures raised inside
                signal handlers
            parent: Parent QObject
        """
        super().__init__(parent)
        self.store = store
        self.config = config or TimelineConfig()
        self.error_handler = error_handler or ErrorHandler(self)
        self.timeline = None
        self.layouts = []

        self.viewport = ViewportController(self)
        self.undo_manager = UndoRedoManager(store)
        self.drag = DragRescheduler(
            self.viewport,
            self.undo_manager,
            self.store.get_event,
            settings=self.config.display,
            range_provider=self.active_range,
            parent=self
        )
        self.region_builder = RenderableRegionBuilder(self.viewport, self.events, parent=self)

        self.viewport.zoom_changed.connect(self._on_viewport_changed)
        self.viewport.visible_size_changed.connect(self._on_viewport_changed)
        self.drag.drag_active_changed.connect(self._on_drag_active_changed)
        self.drag.event_moved.connect(self._on_event_moved)
        self.drag.drag_committed.connect(self._on_drag_committed)

    # ------------------------------------------------------------------
    # Active timeline
    # ------------------------------------------------------------------

    @property
    def display(self):
        return self.config.display

    def active_range(self):
        """Range of the active timeline, or None when there is none to show."""
        if self.timeline is None or not self.timeline.is_configured:
            return None
        return self.timeline.date_range

    def events(self):
        """Events of the active timeline ordered by start date."""
        if self.timeline is None:
            return []
        return self.store.events_for_timeline(self.timeline.id)

    def load_initial_timeline(self):
        """
        Activate the last used timeline, else the first by name, else none.

        Returns:
            Timeline: The activated timeline, or None
        """
        timeline = None
        last_id = self.config.last_active_timeline_id
        if last_id:
            timeline = self.store.get_timeline(last_id)
            if timeline is None:
                logger.warning(f"Last active timeline {last_id} no longer exists")

        if timeline is None:
            timelines = self.store.list_timelines()
            timeline = timelines[0] if timelines else None

        self.set_active_timeline(timeline.id if timeline else None)
        return timeline

    def set_active_timeline(self, timeline_id):
        """
        Switch the active timeline.

        Undo history is cleared, the viewport refits to the new range and
        the choice is remembered in the configuration.

        Args:
            timeline_id (str): Timeline to activate, or None for no timeline
        """
        self.drag.cancel()
        self.undo_manager.clear()

        timeline = self.store.get_timeline(timeline_id) if timeline_id else None
        if timeline_id and timeline is None:
            logger.warning(f"Cannot activate unknown timeline {timeline_id}")

        self.timeline = timeline
        date_range = self.active_range()
        if date_range is not None:
            self.viewport.reset(date_range)
        else:
            self.viewport.clear()

        self.config.set_last_active_timeline_id(timeline.id if timeline else None)
        logger.info(f"Active timeline: {timeline.name if timeline else 'none'}")

        self.timeline_changed.emit(timeline)
        self.history_changed.emit()
        self.recompute_layout()
        self.region_builder.rebuild()

    def set_visible_size(self, width, height):
        self.viewport.set_visible_size(width, height)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def recompute_layout(self, force=False):
        """
        Lay out the active timeline's events.

        Passes requested while a drag gesture is active are skipped unless
        forced by the drag itself.

        Args:
            force (bool): Lay out even while a drag is active

        Returns:
            list: LayoutRect objects (empty for an unconfigured timeline)
        """
        if self.drag.is_active and not force:
            return self.layouts

        mapper = self.viewport.mapper
        if self.active_range() is None or mapper is None:
            self.layouts = []
        else:
            engine = LayoutEngine(mapper, axis_offset=self.AXIS_SIZE)
            pinned = self.drag.active_event_id if self.drag.is_dragging else None
            self.layouts = engine.layout(
                self.events(),
                self.viewport.zoom_scale,
                self.viewport.cross_axis_length - self.AXIS_SIZE,
                self.viewport.orientation,
                pinned_event_id=pinned
            )

        self.layouts_changed.emit(self.layouts)
        return self.layouts

    def _on_viewport_changed(self, *args):
        self.recompute_layout()

    def _on_drag_active_changed(self, active):
        self.viewport.set_scroll_enabled(not active)
        if not active:
            self.recompute_layout()

    def _on_event_moved(self, event_id):
        self.recompute_layout(force=True)

    def _on_drag_committed(self, event_id, original_start):
        event = self.store.get_event(event_id)
        if event is None:
            return
        try:
            self.store.save_event(event)
        except TimelineError as e:
            self.error_handler.handle_error(e, "saving a rescheduled event")
        self.region_builder.rebuild()
        self.history_changed.emit()

    # ------------------------------------------------------------------
    # Undo / redo
    # ------------------------------------------------------------------

    @property
    def can_undo(self):
        return self.undo_manager.can_undo

    @property
    def can_redo(self):
        return self.undo_manager.can_redo

    def undo(self):
        """Undo the last move. Ignored while a drag is active."""
        return self._apply_history(self.undo_manager.undo)

    def redo(self):
        """Redo the last undone move. Ignored while a drag is active."""
        return self._apply_history(self.undo_manager.redo)

    def _apply_history(self, operation):
        if self.drag.is_active:
            return None
        try:
            event = operation()
        except TimelineError as e:
            self.error_handler.handle_error(e, "applying move history")
            event = None
        if event is not None:
            self.recompute_layout()
            self.region_builder.rebuild()
        self.history_changed.emit()
        return event

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next_event(self):
        """First event starting after the end of the visible interval."""
        interval = self.viewport.visible_interval()
        if interval is None:
            return None
        visible_end = interval[1]
        for event in self.events():
            if event.start_date > visible_end:
                return event
        return None

    def previous_event(self):
        """Last event starting before the start of the visible interval."""
        interval = self.viewport.visible_interval()
        if interval is None:
            return None
        visible_start = interval[0]
        previous = None
        for event in self.events():
            if event.start_date >= visible_start:
                break
            previous = event
        return previous

    @property
    def can_scroll_to_next(self):
        return self.next_event() is not None

    @property
    def can_scroll_to_previous(self):
        return self.previous_event() is not None

    def scroll_to_next_event(self):
        event = self.next_event()
        if event is not None:
            self.viewport.scroll_to_date(event.start_date, animated=True)
        return event

    def scroll_to_previous_event(self):
        event = self.previous_event()
        if event is not None:
            self.viewport.scroll_to_date(event.start_date, animated=True)
        return event

    def scroll_to_date(self, date, animated=True):
        """Center the viewport on a date (go-to-date)."""
        return self.viewport.scroll_to_date(date, animated=animated)

    # ------------------------------------------------------------------
    # Tap to add and editing
    # ------------------------------------------------------------------

    def date_for_tap(self, main_axis, cross_axis):
        """
        Get the date for a tap in content coordinates.

        Args:
            main_axis (float): Position along the time axis
            cross_axis (float): Position across the time axis

        Returns:
            datetime: Date under the tap, or None when tap-to-add is off,
            the tap lands on the axis strip, or there is no timeline
        """
        if not self.display.is_tap_to_add_enabled:
            return None
        if cross_axis <= self.AXIS_SIZE:
            return None
        mapper = self.viewport.mapper
        if mapper is None:
            return None
        return mapper.date_at(main_axis, self.viewport.zoom_scale)

    def open_editor(self):
        """Called when any editor opens; edits there invalidate move history."""
        self.drag.cancel()
        self.undo_manager.clear()
        self.history_changed.emit()

    def save_event(self, event):
        """
        Save an event coming back from the editor.

        Day-precision dates are truncated to midnight. With bounds
        constraining off, the timeline range grows to include the event.

        Args:
            event (Event): New or edited event

        Returns:
            Event: The saved event
        """
        if event.precision == TimePrecision.DAY:
            event.start_date = start_of_day(event.start_date)
            if event.end_date is not None:
                event.end_date = start_of_day(event.end_date)

        if self.timeline is not None:
            if event.timeline_id is None:
                event.timeline_id = self.timeline.id
            self._expand_range_for(event)

        self.store.save_event(event)
        self.recompute_layout()
        self.region_builder.rebuild()
        return event

    def _expand_range_for(self, event):
        date_range = self.active_range()
        if date_range is None or self.display.constrain_events_to_bounds:
            return
        end = event.start_date
        if event.end_date is not None:
            end = max(event.end_date, event.start_date)
        new_range = date_range.expanded_to_include(event.start_date, end)
        if new_range is date_range:
            return

        self.timeline.apply_range(new_range)
        self.store.save_timeline(self.timeline)
        self.viewport.update_range(new_range)

    def delete_event(self, event_id):
        """Delete an event from the active timeline."""
        self.store.delete_event(event_id)
        self.recompute_layout()
        self.region_builder.rebuild()
