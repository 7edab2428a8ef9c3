"""
Append-only session event log.

Every component reports through a ``session_logger(event, details)``
callable; SessionLog is the standard implementation backing it.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple


class SessionLog:
    """Timestamped event log, mirrored to a file when a path is given."""

    def __init__(self, log_path: Optional[Path] = None, clock=datetime.now):
        self.log_path = Path(log_path) if log_path is not None else None
        self.entries: List[Tuple[str, str, str]] = []
        self._clock = clock

    def log(self, event: str, details: str = ""):
        """Append an entry to the session log."""
        timestamp = self._clock().strftime("%Y-%m-%d %H:%M:%S")
        self.entries.append((timestamp, event, details))

        if self.log_path is None:
            return

        log_entry = f"[{timestamp}] - {event}"
        if details:
            log_entry += f" - {details}"
        log_entry += "\n"

        with open(self.log_path, 'a', encoding='utf-8') as f:
            f.write(log_entry)

    __call__ = log

    def events(self) -> List[str]:
        """Event names in the order they were logged."""
        return [event for _, event, _ in self.entries]

    def render(self) -> str:
        lines = []
        for timestamp, event, details in self.entries:
            line = f"[{timestamp}] - {event}"
            if details:
                line += f" - {details}"
            lines.append(line)
        return "\n".join(lines)
