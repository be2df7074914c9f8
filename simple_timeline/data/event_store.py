"""
Event Store
===========

This module provides SQLite persistence for timelines and their events.

The EventStore is responsible for:
- Creating the schema on first use
- Adding, reading, updating and deleting timelines and events
- Returning live Event and Timeline objects: the same id always maps to the
  same Python object, so in-place mutations made by the drag and undo
  machinery are visible to the next layout pass
- Translating sqlite errors into StoreError with recovery guidance
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, List, Optional

from simple_timeline.models import Event, Timeline, TimePrecision
from simple_timeline.utils.error_handler import ErrorHandler, create_store_error_with_guidance

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS timelines (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    start_date TEXT NOT NULL,
    end_date TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS events (
    id TEXT PRIMARY KEY,
    timeline_id TEXT REFERENCES timelines(id) ON DELETE CASCADE,
    title TEXT NOT NULL DEFAULT '',
    details TEXT NOT NULL DEFAULT '',
    start_date TEXT NOT NULL,
    end_date TEXT,
    precision INTEGER NOT NULL DEFAULT 0,
    color_hex TEXT,
    is_arc_event INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_events_timeline_start ON events(timeline_id, start_date);
CREATE TABLE IF NOT EXISTS event_people (
    event_id TEXT NOT NULL REFERENCES events(id) ON DELETE CASCADE,
    name TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS event_locations (
    event_id TEXT NOT NULL REFERENCES events(id) ON DELETE CASCADE,
    name TEXT NOT NULL
);
"""


def _to_text(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def _from_text(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class EventStore:
    """
    SQLite-backed record store for timelines and events.

    Usage:
        store = EventStore("timelines.db")
        timeline = store.add_timeline(Timeline("Trip", start, end))
        store.add_event(Event(start_date=day, title="Flight", timeline_id=timeline.id))
    """

    def __init__(self, db_path: str = ":memory:", error_handler: Optional[ErrorHandler] = None):
        """
        Open (and if necessary create) the store.

        Args:
            db_path: SQLite database path, ":memory:" for a private in-memory store
            error_handler: Optional ErrorHandler notified of store failures

        Raises:
            StoreError: If the database cannot be opened
        """
        self.db_path = db_path
        self.error_handler = error_handler
        self._timelines: Dict[str, Timeline] = {}
        self._events: Dict[str, Event] = {}

        try:
            self._conn = sqlite3.connect(db_path, timeout=30.0)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise self._store_error("opening the timeline database", e)

        logger.info(f"EventStore opened: {db_path}")

    def _store_error(self, operation: str, error: Exception):
        store_error = create_store_error_with_guidance(operation, self.db_path, error)
        logger.error(f"{store_error.message}: {error}")
        if self.error_handler:
            self.error_handler.handle_error(store_error, operation)
        return store_error

    @contextmanager
    def _transaction(self, operation: str):
        """Run statements in one transaction, raising StoreError on failure."""
        try:
            with self._conn:
                yield self._conn
        except sqlite3.Error as e:
            raise self._store_error(operation, e)

    def _query(self, operation: str, sql: str, params=()) -> List[sqlite3.Row]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise self._store_error(operation, e)

    # ------------------------------------------------------------------
    # Timelines
    # ------------------------------------------------------------------

    def add_timeline(self, timeline: Timeline) -> Timeline:
        """Insert a new timeline and return the live object."""
        with self._transaction(f"adding timeline '{timeline.name}'") as conn:
            conn.execute(
                "INSERT INTO timelines (id, name, start_date, end_date) VALUES (?, ?, ?, ?)",
                (timeline.id, timeline.name, _to_text(timeline.start_date), _to_text(timeline.end_date))
            )
        self._timelines[timeline.id] = timeline
        logger.debug(f"Added timeline {timeline.id} ({timeline.name})")
        return timeline

    def get_timeline(self, timeline_id: str) -> Optional[Timeline]:
        """Get a timeline by id, or None."""
        if timeline_id in self._timelines:
            return self._timelines[timeline_id]
        rows = self._query("reading timeline", "SELECT * FROM timelines WHERE id = ?", (timeline_id,))
        return self._timeline_from_row(rows[0]) if rows else None

    def list_timelines(self) -> List[Timeline]:
        """Get all timelines ordered by name."""
        rows = self._query("listing timelines", "SELECT * FROM timelines ORDER BY name, id")
        return [self._timeline_from_row(row) for row in rows]

    def save_timeline(self, timeline: Timeline):
        """Persist a timeline's name and range."""
        with self._transaction(f"saving timeline '{timeline.name}'") as conn:
            conn.execute(
                "UPDATE timelines SET name = ?, start_date = ?, end_date = ? WHERE id = ?",
                (timeline.name, _to_text(timeline.start_date), _to_text(timeline.end_date), timeline.id)
            )
        self._timelines[timeline.id] = timeline

    def delete_timeline(self, timeline_id: str):
        """Delete a timeline together with its events."""
        with self._transaction("deleting timeline") as conn:
            conn.execute("DELETE FROM timelines WHERE id = ?", (timeline_id,))
        self._timelines.pop(timeline_id, None)
        for event_id in [e.id for e in self._events.values() if e.timeline_id == timeline_id]:
            del self._events[event_id]
        logger.info(f"Deleted timeline {timeline_id}")

    def _timeline_from_row(self, row: sqlite3.Row) -> Timeline:
        cached = self._timelines.get(row['id'])
        if cached is not None:
            return cached
        timeline = Timeline(
            name=row['name'],
            start_date=_from_text(row['start_date']),
            end_date=_from_text(row['end_date']),
            id=row['id']
        )
        self._timelines[timeline.id] = timeline
        return timeline

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_event(self, event: Event) -> Event:
        """Insert a new event and return the live object."""
        with self._transaction(f"adding event '{event.title}'") as conn:
            conn.execute(
                "INSERT INTO events (id, timeline_id, title, details, start_date, end_date, "
                "precision, color_hex, is_arc_event) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                self._event_params(event)
            )
            self._write_names(conn, event)
        self._events[event.id] = event
        logger.debug(f"Added event {event.id} ({event.title})")
        return event

    def get_event(self, event_id: str) -> Optional[Event]:
        """Get an event by id, or None when it does not exist."""
        if event_id in self._events:
            return self._events[event_id]
        rows = self._query("reading event", "SELECT * FROM events WHERE id = ?", (event_id,))
        return self._event_from_row(rows[0]) if rows else None

    def events_for_timeline(self, timeline_id: str) -> List[Event]:
        """
        Get a timeline's events ordered by start date.

        Events already loaded keep their in-memory state, which is the
        authoritative copy while a drag is in progress.
        """
        rows = self._query(
            "reading timeline events",
            "SELECT * FROM events WHERE timeline_id = ?",
            (timeline_id,)
        )
        events = [self._event_from_row(row) for row in rows]
        events.sort(key=lambda e: e.sort_key)
        return events

    def save_event(self, event: Event):
        """Persist all fields of an event, inserting it if it is new."""
        with self._transaction(f"saving event '{event.title}'") as conn:
            conn.execute(
                "INSERT OR REPLACE INTO events (id, timeline_id, title, details, start_date, end_date, "
                "precision, color_hex, is_arc_event) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                self._event_params(event)
            )
            self._write_names(conn, event)
        self._events[event.id] = event

    def delete_event(self, event_id: str):
        """Delete an event. Unknown ids are ignored."""
        with self._transaction("deleting event") as conn:
            conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
        self._events.pop(event_id, None)

    @staticmethod
    def _event_params(event: Event):
        return (
            event.id,
            event.timeline_id,
            event.title,
            event.details,
            _to_text(event.start_date),
            _to_text(event.end_date),
            int(event.precision),
            event.color_hex,
            1 if event.is_arc_event else 0,
        )

    @staticmethod
    def _write_names(conn: sqlite3.Connection, event: Event):
        conn.execute("DELETE FROM event_people WHERE event_id = ?", (event.id,))
        conn.execute("DELETE FROM event_locations WHERE event_id = ?", (event.id,))
        conn.executemany(
            "INSERT INTO event_people (event_id, name) VALUES (?, ?)",
            [(event.id, name) for name in event.people]
        )
        conn.executemany(
            "INSERT INTO event_locations (event_id, name) VALUES (?, ?)",
            [(event.id, name) for name in event.locations]
        )

    def _event_from_row(self, row: sqlite3.Row) -> Event:
        cached = self._events.get(row['id'])
        if cached is not None:
            return cached

        people = [r['name'] for r in self._query(
            "reading event people", "SELECT name FROM event_people WHERE event_id = ?", (row['id'],))]
        locations = [r['name'] for r in self._query(
            "reading event locations", "SELECT name FROM event_locations WHERE event_id = ?", (row['id'],))]

        event = Event(
            start_date=_from_text(row['start_date']),
            end_date=_from_text(row['end_date']),
            title=row['title'],
            details=row['details'],
            precision=TimePrecision(row['precision']),
            color_hex=row['color_hex'],
            is_arc_event=bool(row['is_arc_event']),
            people=people,
            locations=locations,
            timeline_id=row['timeline_id'],
            id=row['id']
        )
        self._events[event.id] = event
        return event

    def close(self):
        """Close the database connection."""
        try:
            self._conn.close()
        except sqlite3.Error as e:
            logger.debug(f"Could not close {self.db_path}: {e}")
        self._events.clear()
        self._timelines.clear()
        logger.info(f"EventStore closed: {self.db_path}")
