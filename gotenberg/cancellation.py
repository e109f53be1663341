"""Cancellation scopes with optional deadlines, shared by long-running operations."""

from __future__ import annotations

import threading
import time


class Cancelled(Exception):
    """Raised or reported when a scope has been cancelled explicitly."""


class DeadlineExceeded(TimeoutError):
    """Raised or reported when a scope's deadline has passed."""


class CancelScope:
    """A thread-safe cancellation signal with an optional timeout in seconds.

    Once a scope is done, its error is fixed: the first of an explicit
    cancellation or an expired deadline wins.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._error: Exception | None = None
        self._deadline = None if timeout is None else time.monotonic() + timeout

    def _check_deadline_locked(self) -> None:
        if (
            self._error is None
            and self._deadline is not None
            and time.monotonic() >= self._deadline
        ):
            self._error = DeadlineExceeded("context deadline exceeded")
            self._event.set()

    def cancel(self) -> None:
        """Cancel the scope; does nothing if it is already done."""
        with self._lock:
            self._check_deadline_locked()
            if self._error is None:
                self._error = Cancelled("context canceled")
                self._event.set()

    def error(self) -> Exception | None:
        """Return why the scope is done, or None while it is still active."""
        with self._lock:
            self._check_deadline_locked()
            return self._error

    def done(self) -> bool:
        """Tell whether the scope has been cancelled or has expired."""
        return self.error() is not None

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the scope is done or ``timeout`` elapses; return done()."""
        end = None if timeout is None else time.monotonic() + timeout
        while not self.done():
            limits = [value for value in (self.remaining(),) if value is not None]
            if end is not None:
                left = end - time.monotonic()
                if left <= 0:
                    break
                limits.append(left)
            self._event.wait(min(limits) if limits else None)
        return self.done()