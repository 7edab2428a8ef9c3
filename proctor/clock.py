"""
Countdown clock for the session deadline.

The clock is driven by an injectable monotonic time source. poll() converts
elapsed real time into whole ticks, so a background thread, an event loop or
a test can all drive it the same way.
"""

import threading
import time
from typing import Callable, Optional


def format_time(seconds: int) -> str:
    """Format remaining time as MM:SS, or HH:MM:SS from one hour up."""
    seconds = max(int(seconds), 0)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class SessionClock:
    """Ticks once per interval while running and fires on_expire once at zero."""

    def __init__(
        self,
        on_tick: Optional[Callable[[int], None]] = None,
        on_expire: Optional[Callable[[], None]] = None,
        tick_seconds: int = 1,
        time_source: Callable[[], float] = time.monotonic,
    ):
        self.on_tick = on_tick
        self.on_expire = on_expire
        self.tick_seconds = tick_seconds
        self.time_source = time_source

        self.remaining_seconds = 0
        self.running = False
        self.expired = False

        self._lock = threading.Lock()
        self._last_tick: Optional[float] = None
        self._thread: Optional[threading.Thread] = None
        self._thread_active = False

    def start(self, initial_seconds: int):
        """Start counting down from initial_seconds."""
        with self._lock:
            self.remaining_seconds = max(int(initial_seconds), 0)
            self.expired = False
            self.running = True
            self._last_tick = self.time_source()
            already_zero = self.remaining_seconds == 0

        if already_zero:
            self._expire()

    def stop(self):
        """Stop the clock. Safe to call from inside on_tick/on_expire."""
        with self._lock:
            self.running = False
            self._thread_active = False
            thread = self._thread

        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    def tick(self):
        """Advance the countdown by one tick."""
        with self._lock:
            if not self.running:
                return
            self.remaining_seconds -= 1
            remaining = self.remaining_seconds

        if self.on_tick:
            self.on_tick(remaining)

        if remaining <= 0:
            self._expire()

    def poll(self) -> int:
        """
        Fire one tick per whole interval elapsed since the previous tick.

        Returns:
            Number of ticks fired
        """
        fired = 0
        while True:
            with self._lock:
                if not self.running or self._last_tick is None:
                    return fired
                now = self.time_source()
                if now - self._last_tick < self.tick_seconds:
                    return fired
                self._last_tick += self.tick_seconds
            self.tick()
            fired += 1

    def _expire(self):
        with self._lock:
            if self.expired:
                return
            self.expired = True
            self.running = False
            self.remaining_seconds = 0

        if self.on_expire:
            self.on_expire()

    def run_in_background(self, poll_interval: float = 0.2):
        """Drive the clock from a daemon thread until stop() is called."""
        with self._lock:
            if self._thread_active:
                return
            self._thread_active = True
            self._thread = threading.Thread(
                target=self._monitor_background,
                args=(poll_interval,),
                daemon=True
            )
            self._thread.start()

    def _monitor_background(self, poll_interval: float):
        """Background thread polling the time source."""
        while self._thread_active and self.running:
            self.poll()
            time.sleep(poll_interval)
