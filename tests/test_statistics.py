"""Unit tests for timing statistics."""

import logging
from unittest.mock import Mock

import pytest

from lightguide.core import NoteHistory, StatisticsAggregator, categorize_offset
from lightguide.models import PlayedNoteEvent, TimingCategory, TimingResult
from lightguide.protocols import StatisticsObserver


def result(offset, observed_time=0, note=60):
    return TimingResult(
        note_number=note,
        note_identifier="C4",
        observed_time=observed_time,
        timing_offset=offset,
    )


@pytest.fixture
def aggregator(history, clock):
    return StatisticsAggregator(
        history, clock, delayed_threshold=100, missed_threshold=500, pause_threshold=3000
    )


@pytest.mark.unit
class TestCategorizeOffset:
    """Test offset categories."""

    @pytest.mark.parametrize(
        "offset,expected",
        [
            (0, TimingCategory.IN_TIME),
            (100, TimingCategory.IN_TIME),
            (-100, TimingCategory.IN_TIME),
            (-101, TimingCategory.EARLY),
            (101, TimingCategory.LATE),
            (500, TimingCategory.LATE),
            (501, TimingCategory.MISSED),
            (-501, TimingCategory.MISSED),
            (None, TimingCategory.MISSED),
        ],
    )
    def test_categories(self, offset, expected):
        assert categorize_offset(offset, 100, 500) is expected


@pytest.mark.unit
class TestCompute:
    """Test counts, ratios and score."""

    def test_mixed_batch(self, aggregator):
        """6 in time, 2 early, 1 late, 1 missed out of 10 played notes."""
        for offset in (0, 10, -10, 20, -20, 10):
            aggregator.record(result(offset))
        aggregator.record(result(-150))
        aggregator.record(result(-150))
        aggregator.record(result(150))
        aggregator.record(result(None))

        stats = aggregator.compute(notes_played=10)

        assert stats.in_time_notes == 6
        assert stats.early_notes == 2
        assert stats.late_notes == 1
        assert stats.missed_notes == 1
        assert stats.accidental_notes == 0
        assert stats.in_time_ratio == 0.6
        assert stats.early_ratio == 0.2
        assert stats.late_ratio == 0.1
        # 1000 * 0.6 + 250 * 0.2 + 250 * 0.1 - 2000 * 0
        assert stats.score == 675

    def test_accidental_notes(self, aggregator):
        aggregator.record(result(0))
        aggregator.record(result(0))

        stats = aggregator.compute(notes_played=5)

        assert stats.accidental_notes == 3
        assert stats.accidental_ratio == 0.6

    def test_score_clamped_at_zero(self, aggregator):
        aggregator.record(result(0))

        stats = aggregator.compute(notes_played=10)

        assert stats.accidental_notes == 9
        assert stats.score == 0

    def test_perfect_take(self, aggregator):
        for _ in range(4):
            aggregator.record(result(0))

        assert aggregator.compute(notes_played=4).score == 1000

    def test_no_notes_played(self, aggregator):
        """Zero played notes uses a denominator of 1 instead of failing."""
        aggregator.record(result(None))

        stats = aggregator.compute(notes_played=0)

        assert stats.missed_ratio == 1.0
        assert stats.score == 0

    def test_average_offset_over_matched_notes(self, aggregator):
        aggregator.record(result(-20))
        aggregator.record(result(40))
        aggregator.record(result(None))

        assert aggregator.compute(notes_played=2).avg_timing_offset == 30

    def test_notes_played_defaults_to_history(self, aggregator, history):
        for timestamp in (0, 10, 20):
            history.append(PlayedNoteEvent(timestamp=timestamp, note_number=60))
        aggregator.record(result(0))

        stats = aggregator.compute()

        assert stats.notes_played == 3
        assert stats.accidental_notes == 2

    @pytest.mark.parametrize(
        "in_time,played,score",
        [(1, 3, 333), (1, 8, 125), (2, 3, 667)],
    )
    def test_score_rounds_raw_quotient_half_up(self, aggregator, in_time, played, score):
        """The rest of the played notes are missed, so there are no accidental notes."""
        for _ in range(in_time):
            aggregator.record(result(0))
        for _ in range(played - in_time):
            aggregator.record(result(None))

        assert aggregator.compute(notes_played=played).score == score

    def test_ratios_round_half_up(self, aggregator):
        aggregator.record(result(0))

        stats = aggregator.compute(notes_played=8)

        assert stats.in_time_ratio == 0.13
        assert stats.accidental_ratio == 0.88

    def test_average_offset_rounds_half_up(self, aggregator):
        aggregator.record(result(2))
        aggregator.record(result(-3))

        assert aggregator.compute(notes_played=2).avg_timing_offset == 3

    def test_notes_played_counts_trimmed_history(self, clock):
        history = NoteHistory(max_events=4)
        aggregator = StatisticsAggregator(history, clock)
        for timestamp in range(10):
            history.append(PlayedNoteEvent(timestamp=timestamp, note_number=60))
        aggregator.record(result(0))

        stats = aggregator.compute()

        assert stats.notes_played == 10
        assert stats.accidental_notes == 9

    def test_table(self, aggregator):
        aggregator.record(result(0))
        table = aggregator.compute(notes_played=1).format_table()
        assert "Score: 1000/1000" in table
        assert "In Time Notes" in table


@pytest.mark.unit
class TestIdleFlush:
    """Test the pause-triggered session boundary."""

    def test_no_flush_while_playing(self, aggregator, clock):
        aggregator.record(result(0, observed_time=0))
        clock.advance(3000)

        assert aggregator.flush_if_idle() is None
        assert len(aggregator.results) == 1

    def test_flush_after_pause(self, aggregator, clock, history):
        observer = Mock(spec=StatisticsObserver)
        aggregator.register_observer(observer)
        history.append(PlayedNoteEvent(timestamp=0, note_number=60))
        aggregator.record(result(0, observed_time=0))
        clock.advance(3001)

        stats = aggregator.flush_if_idle()

        assert stats.score == 1000
        observer.on_statistics.assert_called_once_with(stats)
        assert aggregator.results == []
        assert len(history) == 0

    def test_activity_during_publish_starts_next_take(self, aggregator, clock, history):
        """Results and played notes arriving while observers run are kept."""

        def play_on(stats):
            history.append(PlayedNoteEvent(timestamp=clock.now(), note_number=62))
            aggregator.record(result(0, observed_time=clock.now(), note=62))

        observer = Mock(spec=StatisticsObserver)
        observer.on_statistics.side_effect = play_on
        aggregator.register_observer(observer)
        history.append(PlayedNoteEvent(timestamp=0, note_number=60))
        aggregator.record(result(0, observed_time=0))
        clock.advance(3001)

        stats = aggregator.flush_if_idle()

        assert stats.notes_played == 1
        assert stats.guide_notes == 1
        assert len(aggregator.results) == 1
        assert aggregator.results[0].note_number == 62
        assert history.appended_count == 1

    def test_empty_batch_never_flushes(self, aggregator, clock):
        clock.advance(10_000)
        assert aggregator.flush_if_idle() is None

    def test_watchdog(self, aggregator, clock):
        observer = Mock(spec=StatisticsObserver)
        aggregator.register_observer(observer)
        aggregator.start_watchdog(500)
        aggregator.record(result(0, observed_time=0))

        clock.advance(3000)
        observer.on_statistics.assert_not_called()

        clock.advance(500)
        observer.on_statistics.assert_called_once()

    def test_on_timing_result_logs_category(self, aggregator, caplog):
        with caplog.at_level(logging.INFO, logger="lightguide.core.statistics"):
            aggregator.on_timing_result(result(150))
            aggregator.on_timing_result(result(None))

        assert "Guide Note C4 +150ms (late)" in caplog.text
        assert "Guide Note C4 MISSED" in caplog.text
        assert len(aggregator.results) == 2
