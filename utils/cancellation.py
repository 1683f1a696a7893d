"""
Cooperative cancellation for long-running browser tasks.

The agent loop checks the token at every point where it is about to talk to the
browser or the model. Cancelling from another thread (or a signal handler) only
flips the flag; the loop notices at its next check.
"""
import threading
from typing import Callable, Optional

from error_handling import TaskCancelledError

WAIT_SLICE_MS = 100


class CancellationToken:
    """Thread-safe, one-shot cancellation flag."""

    def __init__(self):
        self._event = threading.Event()
        self._reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def raise_if_cancelled(self) -> None:
        """Raise TaskCancelledError if cancel() has been called."""
        if self._event.is_set():
            raise TaskCancelledError(
                f"Task was cancelled: {self._reason}" if self._reason else "Task was cancelled"
            )

    def wait(self, milliseconds: float, wait_ms: Optional[Callable[[float], None]] = None,
             slice_ms: float = WAIT_SLICE_MS) -> None:
        """
        Wait for `milliseconds` in short slices, checking the token between them.

        Args:
            milliseconds: Total time to wait
            wait_ms: Performs one slice (e.g. BrowserSession.wait_ms so the
                browser keeps processing events); defaults to a plain wait
            slice_ms: Longest uninterrupted stretch

        Raises:
            TaskCancelledError: if the token is cancelled before or during the wait
        """
        self.raise_if_cancelled()
        remaining = max(float(milliseconds), 0.0)
        while remaining > 0:
            step = min(slice_ms, remaining)
            if wait_ms is None:
                self._event.wait(step / 1000)
            else:
                wait_ms(step)
            remaining -= step
            self.raise_if_cancelled()
