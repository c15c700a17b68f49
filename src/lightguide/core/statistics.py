"""Timing statistics over a practice take.

Scoring (0-1000): in-time notes earn full points, early and late notes a
quarter, and every accidental note (played without a guide note) costs
twice a full note.
"""

import logging
import math
import threading
from collections import deque
from typing import Optional

from lightguide.models import AggregatedStats, TimingCategory, TimingResult
from lightguide.protocols import StatisticsObserver
from lightguide.utils import ObserverManager

from .clock import Clock, ScheduledTask
from .history import NoteHistory

logger = logging.getLogger(__name__)

IN_TIME_POINTS = 1000
EARLY_POINTS = 250
LATE_POINTS = 250
ACCIDENTAL_PENALTY = 2000


def categorize_offset(
    timing_offset: Optional[float], delayed_threshold: float, missed_threshold: float
) -> TimingCategory:
    """Category of a timing offset; None (unresolved) counts as missed."""
    if timing_offset is None or abs(timing_offset) > missed_threshold:
        return TimingCategory.MISSED
    if abs(timing_offset) <= delayed_threshold:
        return TimingCategory.IN_TIME
    if timing_offset < 0:
        return TimingCategory.EARLY
    return TimingCategory.LATE


def round_half_up(value: float, digits: int = 0) -> float:
    """Round half up (0.125 -> 0.13); the builtin round() rounds half to even."""
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def _ratio(count: int, total: int) -> float:
    return round_half_up(count / (total or 1), 2)


def _points(count: int, total: int, points: int) -> int:
    return int(round_half_up(count / (total or 1) * points))


class StatisticsAggregator:
    """
    Collects timing results and reduces them to AggregatedStats.

    Subscribes to the classifier as a TimingObserver. When no guide note has
    been judged for ``pause_threshold`` ms, ``flush_if_idle`` publishes the
    statistics and starts a new take by clearing the results and the
    played note history.
    """

    def __init__(
        self,
        history: NoteHistory,
        clock: Clock,
        delayed_threshold: float = 100,
        missed_threshold: float = 500,
        pause_threshold: float = 3000,
        max_results: int = 10_000,
    ):
        self._history = history
        self._clock = clock
        self.delayed_threshold = delayed_threshold
        self.missed_threshold = missed_threshold
        self.pause_threshold = pause_threshold

        self._results: deque[TimingResult] = deque(maxlen=max_results)
        self._lock = threading.Lock()
        self._observers = ObserverManager[StatisticsObserver](observer_type_name="statistics")

    def register_observer(self, observer: StatisticsObserver) -> None:
        self._observers.register(observer)

    def unregister_observer(self, observer: StatisticsObserver) -> None:
        self._observers.unregister(observer)

    def on_timing_result(self, result: TimingResult) -> None:
        """TimingObserver hook."""
        self.record(result)

    def record(self, result: TimingResult) -> None:
        """Add a result to the current take."""
        with self._lock:
            self._results.append(result)

        category = categorize_offset(
            result.timing_offset, self.delayed_threshold, self.missed_threshold
        )
        if category is TimingCategory.MISSED:
            logger.info(f"Guide Note {result.note_identifier} MISSED")
        else:
            logger.info(
                f"Guide Note {result.note_identifier} {result.format_offset()} ({category.value})"
            )

    @property
    def results(self) -> list[TimingResult]:
        with self._lock:
            return list(self._results)

    def compute(self, notes_played: Optional[int] = None) -> AggregatedStats:
        """
        Reduce the current take to counts, ratios and a score.

        Args:
            notes_played: Played note count; defaults to the notes appended
                to the history since the take started
        """
        if notes_played is None:
            notes_played = self._history.appended_count
        return self._summarize(self.results, notes_played)

    def _summarize(self, results: list[TimingResult], notes_played: int) -> AggregatedStats:
        counts = {category: 0 for category in TimingCategory}
        cumulated_offset = 0.0
        matched = 0
        for result in results:
            category = categorize_offset(
                result.timing_offset, self.delayed_threshold, self.missed_threshold
            )
            counts[category] += 1
            if category is not TimingCategory.MISSED:
                cumulated_offset += abs(result.timing_offset)
                matched += 1

        in_time = counts[TimingCategory.IN_TIME]
        early = counts[TimingCategory.EARLY]
        late = counts[TimingCategory.LATE]
        missed = counts[TimingCategory.MISSED]
        accidental = max(0, notes_played - in_time - early - late - missed)

        # Each term is rounded from the raw quotient, not from the rounded ratio
        score = (
            _points(in_time, notes_played, IN_TIME_POINTS)
            + _points(early, notes_played, EARLY_POINTS)
            + _points(late, notes_played, LATE_POINTS)
            - _points(accidental, notes_played, ACCIDENTAL_PENALTY)
        )

        return AggregatedStats(
            notes_played=notes_played,
            guide_notes=len(results),
            in_time_notes=in_time,
            early_notes=early,
            late_notes=late,
            missed_notes=missed,
            accidental_notes=accidental,
            avg_timing_offset=round_half_up(cumulated_offset / (matched or 1)),
            in_time_ratio=_ratio(in_time, notes_played),
            early_ratio=_ratio(early, notes_played),
            late_ratio=_ratio(late, notes_played),
            missed_ratio=_ratio(missed, notes_played),
            accidental_ratio=_ratio(accidental, notes_played),
            score=max(0, score),
        )

    def flush_if_idle(self, now: Optional[float] = None) -> Optional[AggregatedStats]:
        """
        Publish and reset the take if the last result is older than the pause threshold.

        The results and the played note count are taken out in one step, so
        anything recorded while the statistics are published belongs to the
        next take.

        Returns:
            The published statistics, or None if the take is still running
        """
        now = self._clock.now() if now is None else now
        with self._lock:
            if not self._results:
                return None
            if now - self._results[-1].observed_time <= self.pause_threshold:
                return None
            batch = list(self._results)
            self._results.clear()
            notes_played = self._history.clear()

        stats = self._summarize(batch, notes_played)
        logger.info(f"Aggregated Statistics:\n{stats.format_table()}")
        self._observers.notify("on_statistics", stats)
        return stats

    def clear(self) -> None:
        """Discard the current take and the played note history."""
        with self._lock:
            self._results.clear()
            self._history.clear()

    def start_watchdog(self, interval: float) -> ScheduledTask:
        """Check for an idle take every `interval` ms."""
        return self._clock.call_repeating(interval, self.flush_if_idle)
