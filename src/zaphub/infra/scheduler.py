"""Cancellable deferred calls.

The session registry schedules its auto-connect and auto-expire actions
through a Scheduler so each one has a handle that can be cancelled when the
session is deleted. ThreadingScheduler runs callbacks on daemon timer
threads; tests inject a scheduler they can advance by hand.
"""

import threading
from typing import Callable, Protocol


class ScheduledCall(Protocol):
    """Handle to a pending deferred call."""

    def cancel(self) -> None:
        """Prevent the call from running. No-op once it has run."""
        ...


class Scheduler(Protocol):
    """Anything that can run a callback after a delay."""

    def call_later(self, delay: float, fn: Callable[[], None]) -> ScheduledCall:
        ...


class ThreadingScheduler:
    """Scheduler backed by threading.Timer (daemon threads)."""

    def __init__(self) -> None:
        self._timers: set[threading.Timer] = set()
        self._lock = threading.Lock()

    def call_later(self, delay: float, fn: Callable[[], None]) -> threading.Timer:
        def run() -> None:
            with self._lock:
                self._timers.discard(timer)
            fn()

        timer = threading.Timer(delay, run)
        timer.daemon = True
        with self._lock:
            self._timers.add(timer)
        timer.start()
        return timer

    def pending(self) -> int:
        """Number of timers that have neither fired nor been cancelled."""
        with self._lock:
            return sum(1 for t in self._timers if not t.finished.is_set())

    def shutdown(self) -> None:
        """Cancel every pending timer (application shutdown)."""
        with self._lock:
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()
