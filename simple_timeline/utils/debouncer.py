"""
Debouncer - Cancellable delayed callback on a single-shot QTimer.

A new trigger cancels the pending one and restarts the delay, so the callback
runs once after input has been quiet for ``delay_ms``.
"""

from PyQt5.QtCore import QObject, QTimer


class Debouncer(QObject):
    """
    Runs a callback after a quiet period.

    Cancellation is idempotent. A callback that fires after state moved on
    must re-check that state itself; the debouncer only guarantees that at
    most one call happens per quiet period.
    """

    def __init__(self, delay_ms, callback, parent=None):
        """
        Initialize the debouncer.

        Args:
            delay_ms (int): Quiet period in milliseconds
            callback (callable): Called with no arguments when the timer fires
            parent (QObject): Parent object
        """
        super().__init__(parent)
        self.delay_ms = delay_ms
        self._callback = callback
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._fire)

    @property
    def is_pending(self):
        return self._timer.isActive()

    def trigger(self):
        """Cancel any pending call and start a new quiet period."""
        self._timer.stop()
        self._timer.start(self.delay_ms)

    def cancel(self):
        """Drop the pending call, if any."""
        self._timer.stop()

    def flush(self):
        """Run the pending call now. Does nothing when nothing is pending."""
        if self._timer.isActive():
            self._timer.stop()
            self._fire()

    def _fire(self):
        self._callback()
