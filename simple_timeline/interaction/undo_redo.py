"""
Undo/Redo Manager - Linear move history for rescheduled events.

Actions reference events by id. An action whose event has been deleted since
it was recorded is dropped when it comes off the stack.
"""

import logging

from simple_timeline.models import UndoAction
from simple_timeline.utils.error_handler import StoreError

logger = logging.getLogger(__name__)


class UndoRedoManager:
    """
    Two-stack history of committed event moves.

    Recording a new move clears the redo stack. History is unbounded and
    lives only as long as the manager.
    """

    def __init__(self, store):
        """
        Initialize the manager.

        Args:
            store (EventStore): Resolves event ids and persists moves
        """
        self.store = store
        self.undo_stack = []
        self.redo_stack = []

    @property
    def can_undo(self):
        return bool(self.undo_stack)

    @property
    def can_redo(self):
        return bool(self.redo_stack)

    def record_move(self, event, from_date):
        """
        Record that an event moved from ``from_date`` to its current start.

        Args:
            event (Event): The moved event
            from_date (datetime): Start before the move
        """
        self.undo_stack.append(UndoAction(event.id, from_date, event.start_date))
        self.redo_stack.clear()

    def undo(self):
        """
        Revert the most recent move.

        Returns:
            Event: The event moved back, or None when nothing was undone

        Raises:
            StoreError: If the move cannot be saved; the entry stays on the
                undo stack and the event keeps its current dates
        """
        return self._pop_and_apply(self.undo_stack, self.redo_stack, forward=False)

    def redo(self):
        """
        Re-apply the most recently undone move.

        Returns:
            Event: The event moved forward, or None when nothing was redone
        """
        return self._pop_and_apply(self.redo_stack, self.undo_stack, forward=True)

    def clear(self):
        self.undo_stack.clear()
        self.redo_stack.clear()

    def _pop_and_apply(self, source, target, forward):
        while source:
            action = source.pop()
            event = self.store.get_event(action.event_id)
            if event is None:
                logger.debug(f"Dropping history entry for deleted event {action.event_id}")
                continue

            previous_start = event.start_date
            duration = event.duration
            event.move_to(action.to_date if forward else action.from_date, duration)
            try:
                self.store.save_event(event)
            except StoreError:
                # Leave memory, database and history as they were
                event.move_to(previous_start, duration)
                source.append(action)
                raise
            target.append(action)
            return event
        return None
