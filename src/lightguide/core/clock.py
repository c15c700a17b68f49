"""Monotonic clock and scheduler.

Everything time-related in the core goes through a Clock so that timing
logic can run against real time (SystemClock) or against a VirtualClock
that tests advance deterministically.

All durations and timestamps are milliseconds.
"""

import heapq
import itertools
import logging
import threading
import time
from collections.abc import Callable
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle for a delayed or repeating callback."""

    def __init__(self, name: str = "task"):
        self.name = name
        self._cancelled = threading.Event()
        self._timer: Optional[threading.Timer] = None

    def cancel(self) -> None:
        """Stop the task. Safe to call more than once."""
        self._cancelled.set()
        if self._timer is not None:
            self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()


class Clock(Protocol):
    """Time source and scheduler used by the core components."""

    def now(self) -> float:
        """Current monotonic time in milliseconds."""
        ...

    def sleep(self, duration_ms: float) -> None:
        """Block for duration_ms."""
        ...

    def wait(self, event: threading.Event, timeout_ms: float) -> bool:
        """Block until event is set or timeout_ms elapsed. Returns event state."""
        ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ScheduledTask:
        """Run callback once after delay_ms."""
        ...

    def call_repeating(self, interval_ms: float, callback: Callable[[], None]) -> ScheduledTask:
        """Run callback every interval_ms until the returned task is cancelled."""
        ...


def _run_safely(task: ScheduledTask, callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception as e:
        logger.error(f"Error in scheduled {task.name}: {e}", exc_info=True)


class SystemClock:
    """Clock backed by time.monotonic() and daemon threads."""

    def now(self) -> float:
        return time.monotonic() * 1000.0

    def sleep(self, duration_ms: float) -> None:
        if duration_ms > 0:
            time.sleep(duration_ms / 1000.0)

    def wait(self, event: threading.Event, timeout_ms: float) -> bool:
        return event.wait(max(timeout_ms, 0.0) / 1000.0)

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(getattr(callback, "__name__", "task"))

        def fire():
            if not task.cancelled:
                _run_safely(task, callback)

        timer = threading.Timer(max(delay_ms, 0.0) / 1000.0, fire)
        timer.daemon = True
        task._timer = timer
        timer.start()
        return task

    def call_repeating(self, interval_ms: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(getattr(callback, "__name__", "task"))

        def loop():
            # Event.wait returns True once cancelled
            while not task._cancelled.wait(interval_ms / 1000.0):
                _run_safely(task, callback)

        threading.Thread(target=loop, name=f"repeat-{task.name}", daemon=True).start()
        return task


class VirtualClock:
    """
    Manually advanced clock for deterministic tests and simulations.

    Time only moves when advance(), sleep() or wait() is called. Due callbacks
    run synchronously in the calling thread, in time order, with now() set to
    their due time. wait() stops early as soon as a callback sets the event.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._lock = threading.RLock()
        self._queue: list[tuple[float, int, ScheduledTask, Callable[[], None], Optional[float]]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        with self._lock:
            return self._now

    def advance(self, duration_ms: float) -> None:
        """Move time forward, running every callback that becomes due."""
        self._run_until(self.now() + duration_ms)

    def sleep(self, duration_ms: float) -> None:
        self.advance(max(duration_ms, 0.0))

    def wait(self, event: threading.Event, timeout_ms: float) -> bool:
        if event.is_set():
            return True
        self._run_until(self.now() + max(timeout_ms, 0.0), event)
        return event.is_set()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ScheduledTask:
        return self._schedule(delay_ms, callback, None)

    def call_repeating(self, interval_ms: float, callback: Callable[[], None]) -> ScheduledTask:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        return self._schedule(interval_ms, callback, interval_ms)

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks that have not been cancelled."""
        with self._lock:
            return sum(1 for entry in self._queue if not entry[2].cancelled)

    def _schedule(
        self, delay_ms: float, callback: Callable[[], None], interval: Optional[float]
    ) -> ScheduledTask:
        task = ScheduledTask(getattr(callback, "__name__", "task"))
        with self._lock:
            due = self._now + max(delay_ms, 0.0)
            heapq.heappush(self._queue, (due, next(self._sequence), task, callback, interval))
        return task

    def _run_until(self, target: float, event: Optional[threading.Event] = None) -> None:
        while True:
            with self._lock:
                if not self._queue or self._queue[0][0] > target:
                    break
                due, _, task, callback, interval = heapq.heappop(self._queue)
                if task.cancelled:
                    continue
                self._now = max(self._now, due)
                if interval is not None:
                    heapq.heappush(
                        self._queue, (due + interval, next(self._sequence), task, callback, interval)
                    )

            _run_safely(task, callback)

            if event is not None and event.is_set():
                return

        with self._lock:
            self._now = max(self._now, target)
