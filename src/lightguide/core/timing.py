"""Guide note timing classification.

For every guide note onset the classifier looks for the played note that is
closest in time:

1. Backward: the most recent played note of the same number no older than
   ``missed_threshold``. If it is within ``delayed_threshold`` it is taken
   immediately, an early note inside the tolerance is conclusive.
2. Forward: otherwise the history is polled every ``delayed_threshold / 4``
   for a later note. The wait is bounded by the backward candidate's offset
   (a later note further away could not win) or by ``missed_threshold``.
   Whichever direction has the smaller absolute offset wins.

This is a nearest-neighbour heuristic per guide note, not an assignment
between the two streams; extra played notes only show up in the aggregate
statistics.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from lightguide.models import GuideNoteOnset, TimingResult
from lightguide.protocols import TimingObserver
from lightguide.utils import ObserverManager

from .clock import Clock
from .history import NoteHistory

logger = logging.getLogger(__name__)


class NoteTimingClassifier:
    """Matches guide note onsets against the played note history."""

    def __init__(
        self,
        history: NoteHistory,
        clock: Clock,
        delayed_threshold: float = 100,
        missed_threshold: float = 500,
        max_workers: int = 8,
    ):
        """
        Args:
            history: Played notes to search
            clock: Time source used for the forward poll
            delayed_threshold: Max |offset| (ms) considered in time
            missed_threshold: Max |offset| (ms) for which a match is attempted
            max_workers: Concurrent classifications run by submit()
        """
        if delayed_threshold <= 0 or missed_threshold < delayed_threshold:
            raise ValueError("Thresholds must satisfy 0 < delayed_threshold <= missed_threshold")

        self._history = history
        self._clock = clock
        self.delayed_threshold = delayed_threshold
        self.missed_threshold = missed_threshold
        self.poll_interval = delayed_threshold / 4

        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()
        self._stopping = threading.Event()
        self._observers = ObserverManager[TimingObserver](observer_type_name="timing")

    def register_observer(self, observer: TimingObserver) -> None:
        self._observers.register(observer)

    def unregister_observer(self, observer: TimingObserver) -> None:
        self._observers.unregister(observer)

    def classify(self, onset: GuideNoteOnset) -> TimingResult:
        """
        Classify one guide onset, blocking until it is resolved.

        Always returns a result: an unexpected error or a shutdown while
        waiting resolves to the best candidate found so far, or to a missed
        result (timing_offset None).
        """
        try:
            offset = self._match(onset)
        except Exception as e:
            logger.error(f"Error classifying guide note {onset.note_number}: {e}", exc_info=True)
            offset = None

        result = TimingResult.for_onset(onset, offset)
        logger.debug(f"Guide note {result.note_identifier} resolved: {result.format_offset()}")
        self._observers.notify("on_timing_result", result)
        return result

    def submit(self, onset: GuideNoteOnset) -> Future[TimingResult]:
        """Classify in a worker thread; returns a Future for the result."""
        with self._executor_lock:
            if self._stopping.is_set():
                raise RuntimeError("Classifier has been shut down")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="timing"
                )
            return self._executor.submit(self.classify, onset)

    def shutdown(self, wait: bool = True) -> None:
        """Resolve pending classifications promptly and stop the workers."""
        self._stopping.set()
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def restart(self) -> None:
        """Accept submissions again after shutdown(); workers are created lazily."""
        with self._executor_lock:
            self._stopping.clear()

    def _match(self, onset: GuideNoteOnset) -> Optional[float]:
        now = onset.onset_time
        note = onset.note_number

        past_offset: Optional[float] = None
        candidate = self._history.find_last_before(
            note, now - self.missed_threshold, not_later_than=now
        )
        if candidate is not None:
            past_offset = candidate.timestamp - now
            if abs(past_offset) <= self.delayed_threshold:
                return past_offset

        timeout = abs(past_offset) if past_offset is not None else self.missed_threshold
        deadline = now + timeout

        while True:
            late = self._history.find_first_after(note, now)
            if late is not None:
                future_offset = late.timestamp - now
                if past_offset is None or abs(future_offset) < abs(past_offset):
                    return future_offset
                return past_offset

            remaining = deadline - self._clock.now()
            if remaining <= 0 or self._stopping.is_set():
                return past_offset

            self._clock.wait(self._stopping, min(self.poll_interval, remaining))
