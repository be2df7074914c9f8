"""
Timeline Canvas - Main visualization component for the timeline.

This module provides the TimelineCanvas class which uses QGraphicsView and QGraphicsScene
to render a TimelineSession: the time axis with its markers, event cards in their
lanes and arc bars next to the axis. Input is translated into session calls:
- Wheel scrolls along the time axis; Ctrl+wheel zooms about the viewport center
- Press-and-hold on a card starts a drag reschedule; a quick click is a tap
- A click on empty space (outside the axis strip) requests a new event
"""

import logging

from PyQt5.QtWidgets import QGraphicsView, QGraphicsScene
from PyQt5.QtCore import Qt, pyqtSignal, QRectF, QTimer
from PyQt5.QtGui import QPainter, QBrush, QColor

from simple_timeline.models import Orientation
from simple_timeline.rendering.event_renderer import EventRenderer
from simple_timeline.utils.animation_manager import SmoothScrollAnimation

logger = logging.getLogger(__name__)


class TimelineCanvas(QGraphicsView):
    """
    Timeline visualization canvas using QGraphicsView.

    Signals:
        event_tapped: Emitted with the event id when a card is clicked
        add_requested: Emitted with the date under a click on empty space
    """

    event_tapped = pyqtSignal(str)
    add_requested = pyqtSignal(object)

    # Z-ORDER CONSTANTS
    Z_AXIS = -10
    Z_EVENT_CARDS = 5
    Z_ARC_BARS = 8

    # Ctrl+wheel magnification per notch
    WHEEL_ZOOM_STEP = 1.15
    # A wheel-zoom gesture ends after this much wheel silence
    PINCH_IDLE_MS = 250
    # Clicks that move less than this are taps, not pans
    TAP_SLOP = 4

    def __init__(self, session, parent=None):
        """
        Initialize the timeline canvas.

        Args:
            session (TimelineSession): Session to render and control
            parent: Parent widget
        """
        super().__init__(parent)
        self.session = session

        self.scene = QGraphicsScene(self)
        self.setScene(self.scene)
        self.scene.setItemIndexMethod(QGraphicsScene.NoIndex)
        self.scene.setBackgroundBrush(QBrush(QColor("#F8FAFC")))

        self.event_renderer = EventRenderer(session.display)
        self.scroll_animation = SmoothScrollAnimation(self, parent=self)

        self.card_items = {}  # event_id -> card item
        self.axis_items = []
        self._region_event_ids = None
        self._applying_scroll = False

        self._pinching = False
        self._pinch_factor = 1.0
        self._pinch_timer = QTimer(self)
        self._pinch_timer.setSingleShot(True)
        self._pinch_timer.timeout.connect(self._end_pinch)

        self._press_pos = None
        self._is_panning = False
        self._pan_last_pos = None

        self._setup_viewport()
        self._connect_session()

    def _setup_viewport(self):
        """Configure rendering and scrolling behavior."""
        self.setViewportUpdateMode(QGraphicsView.MinimalViewportUpdate)
        self.setRenderHint(QPainter.Antialiasing, True)
        self.setDragMode(QGraphicsView.NoDrag)
        self.setAlignment(Qt.AlignLeft | Qt.AlignTop)

        # Scrolling is driven by wheel and pan input; hidden bars keep the
        # viewport size independent of the content size
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarAlwaysOff)

        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.StrongFocus)

    def _connect_session(self):
        session = self.session
        session.layouts_changed.connect(self._render_layouts)
        session.timeline_changed.connect(self._on_timeline_changed)
        session.region_builder.region_changed.connect(self._on_region_changed)
        session.viewport.scroll_requested.connect(self._apply_scroll)
        session.drag.tapped.connect(self.event_tapped)

        self.horizontalScrollBar().valueChanged.connect(self._on_horizontal_scroll)
        self.verticalScrollBar().valueChanged.connect(self._on_vertical_scroll)

    @property
    def orientation(self):
        return self.session.viewport.orientation

    def _main_scrollbar(self):
        if self.orientation == Orientation.HORIZONTAL:
            return self.horizontalScrollBar()
        return self.verticalScrollBar()

    def _cross_scrollbar(self):
        if self.orientation == Orientation.HORIZONTAL:
            return self.verticalScrollBar()
        return self.horizontalScrollBar()

    def _main_axis(self, point):
        return point.x() if self.orientation == Orientation.HORIZONTAL else point.y()

    def _cross_axis(self, point):
        return point.y() if self.orientation == Orientation.HORIZONTAL else point.x()

    # ------------------------------------------------------------------
    # Scene updates
    # ------------------------------------------------------------------

    def _update_scene_rect(self):
        viewport = self.session.viewport
        content = viewport.content_length()
        cross = viewport.cross_axis_length
        for item in self.card_items.values():
            rect = item.sceneBoundingRect()
            cross = max(cross, rect.bottom() if self.orientation == Orientation.HORIZONTAL else rect.right())

        if self.orientation == Orientation.HORIZONTAL:
            self.scene.setSceneRect(QRectF(0, 0, content, cross))
        else:
            self.scene.setSceneRect(QRectF(0, 0, cross, content))

    def _clear_cards(self):
        for item in self.card_items.values():
            self.scene.removeItem(item)
        self.card_items.clear()

    def _clear_axis(self):
        for item in self.axis_items:
            self.scene.removeItem(item)
        self.axis_items = []

    def _render_layouts(self, layouts):
        """
        Replace the event cards with the given layout.

        Only events in the current renderable region are drawn, plus the
        event being dragged.

        Args:
            layouts (list): LayoutRect objects from the session
        """
        self._clear_cards()

        events = {event.id: event for event in self.session.events()}
        drag = self.session.drag
        dragged_id = drag.active_event_id if drag.is_dragging else None
        orientation = self.orientation

        for layout in layouts:
            if (self._region_event_ids is not None and layout.event_id not in self._region_event_ids
                    and layout.event_id != dragged_id):
                continue
            event = events.get(layout.event_id)
            if event is None:
                continue

            if layout.is_arc:
                item = self.event_renderer.create_arc_bar(event, layout.frame, orientation)
                item.setZValue(self.Z_ARC_BARS)
            else:
                item = self.event_renderer.create_event_card(event, layout.frame)
                item.setZValue(self.Z_EVENT_CARDS)
            if layout.event_id == dragged_id:
                self.event_renderer.apply_drag_highlight(item, True)

            self.scene.addItem(item)
            self.card_items[layout.event_id] = item

        self._update_scene_rect()

    def _on_region_changed(self, region):
        self._region_event_ids = {event.id for event in region.events}
        self._render_axis(region.markers)
        self._render_layouts(self.session.layouts)

    def _render_axis(self, markers):
        """Draw the axis line and the region's tick markers."""
        self._clear_axis()
        viewport = self.session.viewport
        mapper = viewport.mapper
        if mapper is None:
            return

        axis_position = self.session.AXIS_SIZE
        orientation = self.orientation
        line = self.event_renderer.create_axis_line(axis_position, viewport.content_length(), orientation)
        line.setZValue(self.Z_AXIS)
        self.scene.addItem(line)
        self.axis_items.append(line)

        for marker in markers:
            position = mapper.position(marker.date, viewport.zoom_scale)
            for item in self.event_renderer.create_marker_tick(marker, position, axis_position, orientation):
                self.scene.addItem(item)
                self.axis_items.append(item)

    def _on_timeline_changed(self, timeline):
        self.scroll_animation.stop()
        self._region_event_ids = None
        self._clear_cards()
        self._clear_axis()
        self._update_scene_rect()

    # ------------------------------------------------------------------
    # Scrolling
    # ------------------------------------------------------------------

    def _apply_scroll(self, offset, animated):
        self._update_scene_rect()
        self._applying_scroll = True
        try:
            self.scroll_animation.scroll_axis_to(offset, self.orientation, animated)
        finally:
            self._applying_scroll = False

    def _report_scroll(self, value):
        # Jumps and animation frames echo a viewport request; anything else is the user
        programmatic = self._applying_scroll or self.scroll_animation.is_running
        self.session.viewport.on_raw_scroll(-float(value), programmatic=programmatic)

    def _on_horizontal_scroll(self, value):
        if self.orientation == Orientation.HORIZONTAL:
            self._report_scroll(value)

    def _on_vertical_scroll(self, value):
        if self.orientation == Orientation.VERTICAL:
            self._report_scroll(value)

    def wheelEvent(self, event):
        """
        Handle mouse wheel events.

        Ctrl+wheel zooms about the viewport center; the plain wheel scrolls
        along the time axis, horizontal wheel deltas scroll across it.

        Args:
            event: QWheelEvent
        """
        viewport = self.session.viewport
        delta = event.angleDelta()

        if event.modifiers() & Qt.ControlModifier:
            if delta.y() != 0 and viewport.scroll_enabled:
                if not self._pinching:
                    viewport.begin_pinch()
                    self._pinching = True
                    self._pinch_factor = 1.0
                step = self.WHEEL_ZOOM_STEP if delta.y() > 0 else 1.0 / self.WHEEL_ZOOM_STEP
                self._pinch_factor *= step
                viewport.update_pinch(self._pinch_factor)
                self._pinch_timer.start(self.PINCH_IDLE_MS)
            event.accept()
            return

        if not viewport.scroll_enabled:
            event.accept()
            return

        self.scroll_animation.stop()
        if delta.y() != 0:
            main = self._main_scrollbar()
            main.setValue(main.value() - delta.y())
        if delta.x() != 0:
            cross = self._cross_scrollbar()
            cross.setValue(cross.value() - delta.x())
        event.accept()

    def _end_pinch(self):
        self._pinching = False
        self._pinch_factor = 1.0
        self.session.viewport.end_pinch()

    # ------------------------------------------------------------------
    # Mouse and keyboard
    # ------------------------------------------------------------------

    def _event_id_at(self, pos):
        item = self.itemAt(pos)
        while item is not None:
            event_id = item.data(0)
            if isinstance(event_id, str) and event_id in self.card_items:
                return event_id
            item = item.parentItem()
        return None

    def mousePressEvent(self, event):
        """
        Handle mouse press events.

        A press on a card starts a drag gesture; a press on empty space
        starts panning.

        Args:
            event: QMouseEvent
        """
        if event.button() != Qt.LeftButton:
            super().mousePressEvent(event)
            return

        self._press_pos = event.pos()
        event_id = self._event_id_at(event.pos())
        if event_id is not None and self.session.drag.press(event_id):
            event.accept()
            return
        if event_id is not None:
            # Drag disabled: a click on a card is still a tap
            self.event_tapped.emit(event_id)
            self._press_pos = None
            event.accept()
            return

        if self.session.viewport.scroll_enabled:
            self.scroll_animation.stop()
            self._is_panning = True
            self._pan_last_pos = event.pos()
            self.setCursor(Qt.ClosedHandCursor)
        event.accept()

    def mouseMoveEvent(self, event):
        """
        Handle mouse move events for dragging and panning.

        Args:
            event: QMouseEvent
        """
        drag = self.session.drag
        if drag.is_active and self._press_pos is not None:
            drag.move(self._main_axis(event.pos() - self._press_pos))
            event.accept()
            return

        if self._is_panning and self._pan_last_pos is not None:
            delta = event.pos() - self._pan_last_pos
            self._pan_last_pos = event.pos()
            main = self._main_scrollbar()
            main.setValue(main.value() - int(self._main_axis(delta)))
            event.accept()
            return

        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):
        """
        Handle mouse release events.

        Ends a drag, or a pan; a pan that barely moved is a tap on empty
        space and may request a new event.

        Args:
            event: QMouseEvent
        """
        if event.button() != Qt.LeftButton:
            super().mouseReleaseEvent(event)
            return

        drag = self.session.drag
        if drag.is_active:
            drag.release()
        elif self._is_panning and self._press_pos is not None:
            moved = (event.pos() - self._press_pos).manhattanLength()
            if moved < self.TAP_SLOP:
                scene_pos = self.mapToScene(event.pos())
                date = self.session.date_for_tap(self._main_axis(scene_pos), self._cross_axis(scene_pos))
                if date is not None:
                    self.add_requested.emit(date)

        self._is_panning = False
        self._pan_last_pos = None
        self._press_pos = None
        self.setCursor(Qt.ArrowCursor)
        event.accept()

    def keyPressEvent(self, event):
        """
        Handle keyboard shortcuts.

        Escape cancels a drag; Ctrl+Z undoes and Ctrl+Shift+Z redoes a move.

        Args:
            event: QKeyEvent
        """
        modifiers = event.modifiers()
        if event.key() == Qt.Key_Escape and self.session.drag.is_active:
            self.session.drag.cancel()
            self._press_pos = None
            event.accept()
            return
        if event.key() == Qt.Key_Z and modifiers & Qt.ControlModifier:
            if modifiers & Qt.ShiftModifier:
                self.session.redo()
            else:
                self.session.undo()
            event.accept()
            return
        super().keyPressEvent(event)

    def focusOutEvent(self, event):
        """An interrupted gesture reverts the dragged event."""
        self.session.drag.cancel()
        self._press_pos = None
        super().focusOutEvent(event)

    def resizeEvent(self, event):
        """
        Handle resize events; the visible size drives orientation and zoom bounds.

        Args:
            event: QResizeEvent
        """
        super().resizeEvent(event)
        size = self.viewport().size()
        self.session.set_visible_size(size.width(), size.height())
        self._update_scene_rect()
