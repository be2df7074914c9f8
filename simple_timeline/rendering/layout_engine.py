"""
Layout Engine - Packs events into non-overlapping lanes.

This module provides the LayoutEngine class which converts a set of events,
a zoom factor and the available cross-axis size into one screen rectangle
per event:

1. Arc events go to a thin side lane of their own.
2. Regular events get a visual interval that is never shorter than the
   minimum tappable card length.
3. A single sweep over events sorted by start splits them into collision
   groups (maximal runs of chain-overlapping visual intervals).
4. Inside each group, events go to the first lane that is free at their
   start (greedy interval colouring, which uses the minimum number of lanes).
5. Lanes split the cross axis evenly, never narrower than a tap target.
"""

import logging
from datetime import timedelta

from PyQt5.QtCore import QRectF

from simple_timeline.models import LayoutRect, Orientation

logger = logging.getLogger(__name__)


class LayoutEngine:
    """
    Computes lane-packed rectangles for timeline events.

    The output is deterministic for a given input: events are ordered by
    (start date, id) before any packing happens.
    """

    # Thin full-span marker lane for arc events
    ARC_LANE_SIZE = 10.0
    # Extra tappable area on the axis side of the arc lane
    TOUCH_EXPANSION = 12.0
    # Narrowest lane on dense timelines
    MIN_LANE_SIZE = 44.0

    def __init__(self, mapper, axis_offset=0.0, arc_lane_size=ARC_LANE_SIZE,
                 touch_expansion=TOUCH_EXPANSION, min_lane_size=MIN_LANE_SIZE):
        """
        Initialize the layout engine.

        Args:
            mapper (TimeAxisMapper): Time <-> pixel mapping
            axis_offset (float): Cross-axis offset where the event area starts
                (the width of the axis strip)
            arc_lane_size (float): Cross-axis size of the arc lane
            touch_expansion (float): Extra cross-axis tap area for arc events
            min_lane_size (float): Minimum cross-axis size of a lane
        """
        self.mapper = mapper
        self.axis_offset = axis_offset
        self.arc_lane_size = arc_lane_size
        self.touch_expansion = touch_expansion
        self.min_lane_size = min_lane_size

    def layout(self, events, zoom, cross_axis_extent, orientation=Orientation.VERTICAL,
               pinned_event_id=None):
        """
        Lay out events.

        Args:
            events (list): Event objects
            zoom (float): Zoom factor
            cross_axis_extent (float): Space available across the time axis
            orientation (Orientation): Direction of the time axis
            pinned_event_id (str): Event being dragged; it keeps lane 0 of its group

        Returns:
            list: LayoutRect objects, arc events first, then groups in start order
        """
        if not events:
            return []

        arc_events = sorted((e for e in events if e.is_arc_event), key=lambda e: e.sort_key)
        regular_events = [e for e in events if not e.is_arc_event]

        layouts = [self._arc_layout(event, zoom, orientation) for event in arc_events]

        has_arc_lane = bool(arc_events)
        container_size = cross_axis_extent - (self.arc_lane_size if has_arc_lane else 0.0)
        container_offset = self.axis_offset + (self.arc_lane_size if has_arc_lane else 0.0)

        if not regular_events:
            return layouts

        if self.mapper.points_per_second(zoom) <= 0:
            logger.warning(f"Skipping layout of {len(regular_events)} events: zoom {zoom} has no scale")
            return layouts

        groups = self.collision_groups(regular_events, zoom, orientation)
        for group_index, group in enumerate(groups):
            lanes, lane_count = self.assign_lanes(group, zoom, orientation, pinned_event_id)

            if container_size <= 0:
                # Not laid out yet; everything shares one lane of the given size
                lane_size = container_size
            else:
                lane_size = max(self.min_lane_size, container_size / lane_count)

            for event in group:
                lane = lanes[event.id]
                cross_start = container_offset
                if container_size > 0:
                    cross_start += lane * lane_size
                frame = self._frame(
                    self.mapper.position(event.start_date, zoom),
                    self.mapper.length(event.effective_duration, zoom, orientation),
                    cross_start,
                    lane_size,
                    orientation
                )
                layouts.append(LayoutRect(event.id, frame, lane, lane_count, group_index))

        logger.debug(f"Laid out {len(events)} events in {len(groups)} groups at zoom {zoom:.4f}")
        return layouts

    def visual_end(self, event, min_duration):
        """End of the event's visual interval."""
        return event.start_date + timedelta(seconds=max(event.effective_duration, min_duration))

    def collision_groups(self, events, zoom, orientation=Orientation.VERTICAL):
        """
        Split events into collision groups with a single sweep.

        A new group starts whenever an event starts at or after the furthest
        visual end seen so far in the current group.

        Args:
            events (list): Regular (non-arc) events
            zoom (float): Zoom factor
            orientation (Orientation): Direction of the time axis

        Returns:
            list: Groups (lists of events), each sorted by start date
        """
        if not events:
            return []

        min_duration = self.mapper.min_visual_duration(zoom, orientation)
        sorted_events = sorted(events, key=lambda e: e.sort_key)

        groups = []
        current_group = [sorted_events[0]]
        group_end = self.visual_end(sorted_events[0], min_duration)

        for event in sorted_events[1:]:
            if event.start_date < group_end:
                current_group.append(event)
                group_end = max(group_end, self.visual_end(event, min_duration))
            else:
                groups.append(current_group)
                current_group = [event]
                group_end = self.visual_end(event, min_duration)

        groups.append(current_group)
        return groups

    def assign_lanes(self, group, zoom, orientation=Orientation.VERTICAL, pinned_event_id=None):
        """
        Assign each event of a collision group to the first free lane.

        The pinned (dragged) event, when present in the group, is placed in
        lane 0 before anything else so that it does not jump between lanes
        while its start changes frame to frame.

        Args:
            group (list): Events of one collision group, sorted by start
            zoom (float): Zoom factor
            orientation (Orientation): Direction of the time axis
            pinned_event_id (str): Event to pin to lane 0

        Returns:
            tuple: (dict mapping event id to lane index, lane count)
        """
        min_duration = self.mapper.min_visual_duration(zoom, orientation)
        lane_ends = []
        event_lanes = {}

        ordered = list(group)
        pinned = [e for e in ordered if e.id == pinned_event_id]
        if pinned:
            ordered = pinned + [e for e in ordered if e.id != pinned_event_id]

        for event in ordered:
            visual_end = self.visual_end(event, min_duration)
            for index, lane_end in enumerate(lane_ends):
                if event.start_date >= lane_end:
                    event_lanes[event.id] = index
                    lane_ends[index] = visual_end
                    break
            else:
                event_lanes[event.id] = len(lane_ends)
                lane_ends.append(visual_end)

        return event_lanes, max(1, len(lane_ends))

    def _arc_layout(self, event, zoom, orientation):
        """Frame for an arc event in the side lane next to the axis."""
        start = self.mapper.position(event.start_date, zoom)
        length = max(1.0, self.mapper.pure_length(event.effective_duration, zoom))
        frame = self._frame(
            start,
            length,
            self.axis_offset - self.touch_expansion,
            self.arc_lane_size + self.touch_expansion,
            orientation
        )
        return LayoutRect(event.id, frame, lane=0, lane_count=1, group=-1, is_arc=True)

    @staticmethod
    def _frame(main_start, main_length, cross_start, cross_size, orientation):
        if orientation == Orientation.VERTICAL:
            return QRectF(cross_start, main_start, cross_size, main_length)
        return QRectF(main_start, cross_start, main_length, cross_size)
