"""
Typing Collector Tests

Word counting, inter-key delays and WPM derivation from text-change
notifications.
"""

import pytest

from core.collectors.keystroke import count_words, words_per_minute


# =============================================================================
# Helpers
# =============================================================================

class TestWordCounting:
    """Words are non-empty whitespace-delimited tokens."""

    @pytest.mark.parametrize("text,expected", [
        ("", 0),
        ("   ", 0),
        ("hello", 1),
        ("a  b", 2),
        ("  leading and trailing  ", 3),
        ("tabs\tand\nnewlines", 3),
    ])
    def test_count_words(self, text, expected):
        assert count_words(text) == expected

    def test_wpm_guard_on_zero_elapsed(self):
        assert words_per_minute(10, 0.0) == 0.0
        assert words_per_minute(10, -5.0) == 0.0

    def test_wpm_scales_to_minutes(self):
        assert words_per_minute(10, 30_000.0) == pytest.approx(20.0)


# =============================================================================
# Collector
# =============================================================================

class TestTypingCollector:
    """Text-change processing while monitoring."""

    def test_delays_have_one_fewer_entry_than_changes(self, typing_collector):
        typing_collector.start(now=0.0)

        typing_collector.on_text_changed("h", now=100.0)
        typing_collector.on_text_changed("he", now=250.0)
        typing_collector.on_text_changed("hel", now=450.0)

        assert typing_collector.keystroke_count == 3
        assert typing_collector.inter_key_delays == [150, 200]
        assert typing_collector.average_inter_key_delay == pytest.approx(175.0)

    def test_delays_are_truncated_to_whole_ms(self, typing_collector):
        typing_collector.start(now=0.0)

        typing_collector.on_text_changed("a", now=10.0)
        typing_collector.on_text_changed("ab", now=10.9)

        assert typing_collector.inter_key_delays == [0]

    def test_counts_reflect_current_text(self, typing_collector):
        """Deleting text lowers the word count."""
        typing_collector.start(now=0.0)

        typing_collector.on_text_changed("one two three", now=1_000.0)
        typing_collector.on_text_changed("one two", now=2_000.0)

        assert typing_collector.total_words == 2
        assert typing_collector.total_characters == 7

    def test_live_wpm_published_only_after_time_passes(self, typing_collector):
        speeds = []
        typing_collector.typing_speed_stream.subscribe(speeds.append)
        typing_collector.start(now=0.0)

        typing_collector.on_text_changed("instant", now=0.0)
        assert speeds == []

        typing_collector.on_text_changed("word " * 10, now=60_000.0)
        assert speeds == [pytest.approx(10.0)]

    def test_average_delay_stream_starts_at_second_change(self, typing_collector):
        delays = []
        typing_collector.average_delay_stream.subscribe(delays.append)
        typing_collector.start(now=0.0)

        typing_collector.on_text_changed("a", now=100.0)
        typing_collector.on_text_changed("ab", now=300.0)

        assert delays == [pytest.approx(200.0)]

    def test_changes_while_idle_are_ignored(self, typing_collector):
        typing_collector.on_text_changed("ignored text", now=100.0)

        assert typing_collector.keystroke_count == 0
        assert typing_collector.total_words == 0


class TestTypingStop:
    """stop() freezes and publishes the final statistic."""

    def test_stop_publishes_final_stat(self, typing_collector):
        stats = []
        typing_collector.stat_stream.subscribe(stats.append)
        typing_collector.start(now=0.0)

        typing_collector.on_text_changed("the quick brown", now=10_000.0)
        typing_collector.on_text_changed("the quick brown fox", now=12_000.0)
        stat = typing_collector.stop(now=30_000.0)

        assert stats == [stat]
        assert stat.total_words == 4
        assert stat.total_characters == 19
        assert stat.elapsed_ms == 30_000.0
        assert stat.words_per_minute == pytest.approx(8.0)
        assert stat.average_delay_ms == pytest.approx(2_000.0)

    def test_stop_with_no_elapsed_time_reports_zero_wpm(self, typing_collector):
        typing_collector.start(now=5_000.0)
        typing_collector.on_text_changed("fast words", now=5_000.0)

        stat = typing_collector.stop(now=5_000.0)

        assert stat.words_per_minute == 0.0

    def test_stop_when_idle_returns_none(self, typing_collector):
        assert typing_collector.stop(now=0.0) is None

    def test_final_speed_is_kept_after_stop(self, typing_collector):
        typing_collector.start(now=0.0)
        typing_collector.on_text_changed("one two three four five", now=30_000.0)
        typing_collector.stop(now=60_000.0)

        assert typing_collector.current_typing_speed(now=600_000.0) == pytest.approx(5.0)
        assert typing_collector.final_stat.words_per_minute == pytest.approx(5.0)

    def test_double_start_keeps_session(self, typing_collector):
        typing_collector.start(now=0.0)
        typing_collector.on_text_changed("kept", now=100.0)

        typing_collector.start(now=500.0)

        assert typing_collector.keystroke_count == 1
        assert typing_collector.snapshot(now=60_000.0).elapsed_ms == 60_000.0

    def test_restart_resets_metrics(self, typing_collector):
        typing_collector.start(now=0.0)
        typing_collector.on_text_changed("old text", now=100.0)
        typing_collector.stop(now=200.0)

        typing_collector.start(now=1_000.0)

        assert typing_collector.keystroke_count == 0
        assert typing_collector.inter_key_delays == []
        assert typing_collector.final_stat is None
