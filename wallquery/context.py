"""
Cancellation Context

Network calls in wallquery take a FetchContext, the Python stand-in for a cancellable request
context. A context may carry a deadline, and any thread may cancel it. Cancelling closes the
responses the transport is currently reading, so an in-flight download stops promptly instead
of running to completion.
"""

import threading
import time
from contextlib import contextmanager
from typing import Optional

from wallquery.errors import Canceled


class FetchContext:
    """
    Cancellation flag plus optional deadline shared by one or more network calls.

    timeout is in seconds from construction. A context is cheap; create one per rotation
    cycle or per user action.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.deadline = None if timeout is None else time.monotonic() + timeout
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._in_flight = set()

    @classmethod
    def background(cls) -> "FetchContext":
        """A context that is never cancelled and has no deadline."""

        return cls()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        """Seconds left until the deadline, or None if there is no deadline."""

        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def cancel(self) -> None:
        """Cancel the context and close every response still being read under it."""

        self._cancelled.set()

        with self._lock:
            in_flight = list(self._in_flight)
            self._in_flight.clear()

        for response in in_flight:
            response.close()

    def check(self) -> None:
        """Raise Canceled if the context was cancelled or its deadline has passed."""

        if self.cancelled:
            raise Canceled("operation was cancelled")

        if self.expired:
            raise Canceled("operation deadline exceeded")

    @contextmanager
    def track(self, response):
        """Register response so that cancel() can close it while it is being read."""

        with self._lock:
            self._in_flight.add(response)

        try:
            yield response
        finally:
            with self._lock:
                self._in_flight.discard(response)
