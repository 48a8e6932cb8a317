"""
Run context bounding the network activity of one invocation
"""

import threading
import time
from typing import Optional

from .errors import CancelledError


class RunContext:
    """Deadline and cancellation flag shared by all remote calls of a run."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Cancel the run; subsequent remote calls fail."""
        self._cancelled.set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def expired(self) -> bool:
        if self._cancelled.is_set():
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self) -> None:
        """Raise CancelledError if the run was cancelled or timed out."""
        if self._cancelled.is_set():
            raise CancelledError("run cancelled")
        if self.expired():
            raise CancelledError(f"run timed out after {self.timeout:g}s")
