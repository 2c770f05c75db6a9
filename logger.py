"""
Status Logger - tracks what the agent is doing.

SRP: This class has one responsibility - logging and status management.
"""

from datetime import datetime
from typing import Callable, List, Optional
from dataclasses import dataclass
import threading


@dataclass
class LogEntry:
    """
    Represents a single log entry.
    """
    timestamp: datetime
    message: str
    level: str = "INFO"

    def __str__(self) -> str:
        time_str = self.timestamp.strftime("%H:%M:%S")
        return f"[{time_str}] {self.level}: {self.message}"


class StatusLogger:
    """
    Keeps a bounded history of agent log entries.

    The engine writes from its event-loop thread while the GUI reads from
    the Tk thread, so entries are guarded by a lock.
    """

    def __init__(self, max_entries: int = 50):
        """
        Initialize the logger.

        Args:
            max_entries: Maximum number of log entries to keep in memory
        """
        self._log_entries: List[LogEntry] = []
        self._max_entries = max_entries
        self._current_status = "Ready"
        self._lock = threading.Lock()
        self._listener: Optional[Callable[[LogEntry], None]] = None

    def on_entry(self, callback: Optional[Callable[[LogEntry], None]]) -> None:
        """Register a callback invoked for every new entry (e.g. to mirror into a widget)."""
        self._listener = callback

    def log_info(self, message: str) -> None:
        """Log an informational message."""
        self._add_entry(message, "INFO")

    def log_warning(self, message: str) -> None:
        """Log a warning message."""
        self._add_entry(message, "WARNING")

    def log_error(self, message: str) -> None:
        """Log an error message."""
        self._add_entry(message, "ERROR")

    def update_status(self, status: str) -> None:
        """
        Update the current status.

        Args:
            status: The new status message
        """
        self._current_status = status
        self.log_info(status)

    def get_current_status(self) -> str:
        """Returns the current status message."""
        return self._current_status

    def get_recent_logs(self, count: int = 10) -> List[LogEntry]:
        """
        Get the most recent log entries, oldest first.

        Args:
            count: Number of recent entries to return
        """
        with self._lock:
            return self._log_entries[-count:]

    def get_all_logs(self) -> List[LogEntry]:
        """Returns all log entries."""
        with self._lock:
            return self._log_entries.copy()

    def clear_logs(self) -> None:
        """Clear all log entries."""
        with self._lock:
            self._log_entries.clear()
        self.log_info("Log history cleared")

    def _add_entry(self, message: str, level: str) -> None:
        entry = LogEntry(
            timestamp=datetime.now(),
            message=message,
            level=level
        )

        with self._lock:
            self._log_entries.append(entry)
            # Trim old entries if we exceed max
            if len(self._log_entries) > self._max_entries:
                self._log_entries = self._log_entries[-self._max_entries:]

        if self._listener:
            try:
                self._listener(entry)
            except Exception:
                pass
