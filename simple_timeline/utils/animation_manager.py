"""
Animation Manager - Eased scrolling along the time axis.
"""

from PyQt5.QtCore import QObject, QPropertyAnimation, QEasingCurve

from simple_timeline.models import Orientation


class SmoothScrollAnimation(QObject):
    """
    Smooth scrolling animation for programmatic timeline navigation.

    Animates the scrollbar that runs along the time axis. A new request
    replaces a running animation instead of queueing behind it.
    """

    def __init__(self, graphics_view, duration=300, parent=None):
        """
        Initialize smooth scroll animation.

        Args:
            graphics_view (QGraphicsView): The graphics view to animate
            duration (int): Animation duration in milliseconds
            parent: Parent QObject
        """
        super().__init__(parent)
        self.graphics_view = graphics_view
        self.duration = duration

        self.h_animation = self._make_animation(graphics_view.horizontalScrollBar())
        self.v_animation = self._make_animation(graphics_view.verticalScrollBar())

    def _make_animation(self, scrollbar):
        animation = QPropertyAnimation(scrollbar, b"value", self)
        animation.setDuration(self.duration)
        animation.setEasingCurve(QEasingCurve.OutCubic)
        return animation

    def _axis(self, orientation):
        if orientation == Orientation.HORIZONTAL:
            return self.graphics_view.horizontalScrollBar(), self.h_animation
        return self.graphics_view.verticalScrollBar(), self.v_animation

    @property
    def is_running(self):
        return (self.h_animation.state() == QPropertyAnimation.Running
                or self.v_animation.state() == QPropertyAnimation.Running)

    def scroll_axis_to(self, value, orientation=Orientation.VERTICAL, animated=True):
        """
        Scroll the time-axis scrollbar to a value.

        Args:
            value (float): Target scrollbar value (content offset)
            orientation (Orientation): Direction of the time axis
            animated (bool): Ease towards the target instead of jumping
        """
        scrollbar, animation = self._axis(orientation)
        target = int(round(value))
        animation.stop()

        if not animated or scrollbar.value() == target:
            scrollbar.setValue(target)
            return

        animation.setStartValue(scrollbar.value())
        animation.setEndValue(target)
        animation.start()

    def stop(self):
        self.h_animation.stop()
        self.v_animation.stop()
