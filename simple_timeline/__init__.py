"""
Simple Timeline Engine

This package lays out dated events on a zoomable, scrollable time axis: it maps
time to pixels, generates axis markers, packs overlapping events into lanes,
manages the viewport (zoom, scroll, center date) and reschedules events by
drag with undo/redo.
"""

__version__ = "1.0.0"
__author__ = "Simple Timeline Development Team"

from .models import Event, Timeline, TimelineRange, TimePrecision, Orientation
from .session import TimelineSession

__all__ = [
    'Event',
    'Timeline',
    'TimelineRange',
    'TimePrecision',
    'Orientation',
    'TimelineSession',
]
