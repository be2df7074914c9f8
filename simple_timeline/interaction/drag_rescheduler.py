"""
Drag Rescheduler - Long-press-then-drag rescheduling of events.

This module provides the DragRescheduler class, an explicit state machine:

    IDLE -> PRESSING -> DRAGGING -> (COMMITTED | CANCELLED) -> IDLE

A press only turns into a drag once the hold threshold elapses, which keeps
taps and scroll flicks from moving events. While a gesture is PRESSING or
DRAGGING the rescheduler reports itself active so the viewport can stop
scrolling.
"""

import logging
from datetime import timedelta

from PyQt5.QtCore import QObject, QTimer, pyqtSignal

logger = logging.getLogger(__name__)


class DragState:
    """Drag gesture states."""
    IDLE = 'idle'
    PRESSING = 'pressing'
    DRAGGING = 'dragging'
    COMMITTED = 'committed'
    CANCELLED = 'cancelled'


class DragRescheduler(QObject):
    """
    Moves an event along the time axis by a drag gesture.

    Signals:
        state_changed: Emitted with the new DragState value
        drag_started: Emitted with the event id when the hold elapses
        event_moved: Emitted with the event id after each live mutation
        drag_committed: Emitted with (event id, original start) on release
        drag_cancelled: Emitted with the event id after a revert
        tapped: Emitted with the event id when released before the hold elapses
        drag_active_changed: Emitted with True on press and False when idle again
    """

    state_changed = pyqtSignal(str)
    drag_started = pyqtSignal(str)
    event_moved = pyqtSignal(str)
    drag_committed = pyqtSignal(str, object)
    drag_cancelled = pyqtSignal(str)
    tapped = pyqtSignal(str)
    drag_active_changed = pyqtSignal(bool)

    # Minimum hold before motion moves the event
    HOLD_DURATION_MS = 200

    def __init__(self, viewport, undo_manager, event_lookup, settings=None, range_provider=None,
                 parent=None):
        """
        Initialize the drag rescheduler.

        Args:
            viewport (ViewportController): Provides the mapper and zoom
            undo_manager (UndoRedoManager): Receives committed moves
            event_lookup (callable): Returns the live Event for an id, or None
            settings (DisplaySettings): Drag and bounds toggles, read per gesture
            range_provider (callable): Returns the active TimelineRange, or None
            parent: Parent QObject
        """
        super().__init__(parent)
        self.viewport = viewport
        self.undo_manager = undo_manager
        self.event_lookup = event_lookup
        self.settings = settings
        self.range_provider = range_provider

        self._state = DragState.IDLE
        self._event_id = None
        self._original_start = None
        self._original_duration = 0.0
        self._baseline = 0.0
        self._last_translation = 0.0

        self._hold_timer = QTimer(self)
        self._hold_timer.setSingleShot(True)
        self._hold_timer.timeout.connect(self.hold_elapsed)

    @property
    def state(self):
        return self._state

    @property
    def is_active(self):
        """True while a gesture is PRESSING or DRAGGING."""
        return self._state in (DragState.PRESSING, DragState.DRAGGING)

    @property
    def is_dragging(self):
        return self._state == DragState.DRAGGING

    @property
    def active_event_id(self):
        return self._event_id

    @property
    def original_start_date(self):
        return self._original_start

    def _set_state(self, state):
        self._state = state
        self.state_changed.emit(state)

    def press(self, event_id):
        """
        Begin a press on an event card.

        Args:
            event_id (str): Event under the pointer

        Returns:
            bool: True when the press was accepted
        """
        if self._state != DragState.IDLE:
            return False
        if self.settings is not None and not self.settings.is_drag_enabled:
            return False
        if self.event_lookup(event_id) is None:
            logger.warning(f"Press on unknown event {event_id}")
            return False

        self._event_id = event_id
        self._baseline = 0.0
        self._last_translation = 0.0
        self._set_state(DragState.PRESSING)
        self.drag_active_changed.emit(True)
        self._hold_timer.start(self.HOLD_DURATION_MS)
        return True

    def hold_elapsed(self):
        """Turn the press into a drag once the hold threshold has passed."""
        if self._state != DragState.PRESSING:
            return

        event = self.event_lookup(self._event_id)
        if event is None:
            logger.warning(f"Event {self._event_id} disappeared during press")
            self._finish()
            return

        self._original_start = event.start_date
        self._original_duration = event.duration
        # Motion made while holding is not applied
        self._baseline = self._last_translation
        self._set_state(DragState.DRAGGING)
        self.drag_started.emit(self._event_id)
        logger.debug(f"Drag started for event {self._event_id} at {self._original_start.isoformat()}")

    def move(self, translation):
        """
        Apply the pointer translation along the time axis.

        Args:
            translation (float): Cumulative main-axis translation since the press
        """
        if self._state == DragState.PRESSING:
            self._last_translation = translation
            return
        if self._state != DragState.DRAGGING:
            return

        mapper = self.viewport.mapper
        if mapper is None:
            return
        pps = mapper.points_per_second(self.viewport.zoom_scale)
        if pps <= 0:
            return

        event = self.event_lookup(self._event_id)
        if event is None:
            return

        offset_seconds = (translation - self._baseline) / pps
        try:
            new_start = self._original_start + timedelta(seconds=offset_seconds)
        except OverflowError:
            logger.debug(f"Drag offset {offset_seconds:.0f}s is outside the calendar")
            return

        if self.settings is None or self.settings.constrain_events_to_bounds:
            date_range = self.range_provider() if self.range_provider else None
            if date_range is not None:
                new_start = date_range.clamp_start(new_start, self._original_duration)

        event.move_to(new_start, self._original_duration)
        self.event_moved.emit(self._event_id)

    def release(self):
        """
        End the gesture.

        A release while PRESSING is a tap. A release while DRAGGING commits
        the move and records it for undo when the event actually moved.
        """
        if self._state == DragState.PRESSING:
            self._hold_timer.stop()
            event_id = self._event_id
            self._finish()
            self.tapped.emit(event_id)
            return

        if self._state != DragState.DRAGGING:
            return

        event_id = self._event_id
        original_start = self._original_start
        event = self.event_lookup(event_id)

        self._set_state(DragState.COMMITTED)
        if event is not None and event.start_date != original_start:
            self.undo_manager.record_move(event, original_start)
        logger.debug(f"Drag committed for event {event_id}")
        self._finish()
        self.drag_committed.emit(event_id, original_start)

    def cancel(self):
        """
        Abort the gesture.

        An interrupted drag restores the original start (and end) and leaves
        the undo history untouched.
        """
        if self._state == DragState.PRESSING:
            self._hold_timer.stop()
            self._finish()
            return

        if self._state != DragState.DRAGGING:
            return

        event_id = self._event_id
        event = self.event_lookup(event_id)
        if event is not None:
            event.move_to(self._original_start, self._original_duration)

        self._set_state(DragState.CANCELLED)
        logger.debug(f"Drag cancelled for event {event_id}")
        self._finish()
        self.drag_cancelled.emit(event_id)

    def _finish(self):
        self._event_id = None
        self._original_start = None
        self._original_duration = 0.0
        self._baseline = 0.0
        self._last_translation = 0.0
        self._set_state(DragState.IDLE)
        self.drag_active_changed.emit(False)
