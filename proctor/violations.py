"""
Tab-switch / focus-loss violation accounting.

ViolationMonitor turns visibility edges into a monotonically increasing
violation count. It only reports counts; the limit that forces a phase
change belongs to the orchestrator.

VisibilityWatcher polls an away check on a background thread and feeds the
monitor, for hosts that cannot push visibility events.
"""

import threading
import time
from typing import Callable, Optional


class ViolationMonitor:
    """Counts discrete "became hidden" events while armed."""

    def __init__(self, on_violation: Optional[Callable[[int], None]] = None, initial_count: int = 0):
        self.on_violation = on_violation
        self.violation_count = initial_count
        self.armed = False
        self.hidden = False
        self._lock = threading.Lock()

    def arm(self):
        with self._lock:
            self.armed = True
            self.hidden = False

    def disarm(self):
        with self._lock:
            self.armed = False

    def signal_hidden(self) -> bool:
        """
        Report that the exam window lost visibility.

        Repeated hidden signals without a visible signal in between count once.

        Returns:
            True if a new violation was recorded
        """
        with self._lock:
            if not self.armed or self.hidden:
                self.hidden = True
                return False
            self.hidden = True
            self.violation_count += 1
            count = self.violation_count

        if self.on_violation:
            self.on_violation(count)
        return True

    def signal_visible(self):
        with self._lock:
            self.hidden = False

    def on_visibility_change(self, hidden: bool) -> bool:
        """Single entry point matching a visibilitychange-style event."""
        if hidden:
            return self.signal_hidden()
        self.signal_visible()
        return False


class VisibilityWatcher:
    """
    Polls an away check and forwards visibility edges to a ViolationMonitor.

    The away check returns True while the candidate is considered away from the
    exam (window hidden, machine online during an offline exam...).
    """

    def __init__(
        self,
        monitor: ViolationMonitor,
        away_check: Callable[[], bool],
        check_interval_seconds: float = 15,
        session_logger=None,
    ):
        self.monitor = monitor
        self.away_check = away_check
        self.check_interval_seconds = check_interval_seconds
        self.session_logger = session_logger
        self.monitoring_active = False
        self.watch_thread = None
        self.check_count = 0

    def check_once(self) -> bool:
        """
        Run the away check once and forward its result.

        Returns:
            True if a new violation was recorded
        """
        self.check_count += 1
        try:
            away = bool(self.away_check())
        except Exception as e:
            if self.session_logger:
                self.session_logger("VISIBILITY_PROBE_ERROR", f"Check #{self.check_count}: {e}")
            return False

        return self.monitor.on_visibility_change(away)

    def start_monitoring(self):
        """Start background polling."""
        if self.monitoring_active:
            return

        self.monitoring_active = True
        self.watch_thread = threading.Thread(
            target=self._monitor_background,
            daemon=True
        )
        self.watch_thread.start()

        if self.session_logger:
            self.session_logger("VISIBILITY_MONITORING_STARTED",
                                f"Polling every {self.check_interval_seconds}s")

    def stop_monitoring(self):
        """Stop background polling."""
        was_active = self.monitoring_active
        self.monitoring_active = False
        if (self.watch_thread and self.watch_thread.is_alive()
                and self.watch_thread is not threading.current_thread()):
            self.watch_thread.join(timeout=2.0)

        if was_active and self.session_logger:
            self.session_logger("VISIBILITY_MONITORING_STOPPED", "Visibility polling deactivated")

    def _monitor_background(self):
        """Background monitoring loop."""
        last_check_time = 0.0
        while self.monitoring_active:
            current_time = time.monotonic()
            if current_time - last_check_time >= self.check_interval_seconds:
                self.check_once()
                last_check_time = current_time
            time.sleep(0.5)
