from __future__ import annotations

from unittest.mock import Mock, patch

import pytest

from addrmap.services.progress import ProgressTracker, is_tty_enabled, percent_complete


def test_is_tty_enabled_returns_stdout_isatty():
    """Test that is_tty_enabled returns sys.stdout.isatty()."""
    with patch('sys.stdout.isatty', return_value=True):
        assert is_tty_enabled() is True

    with patch('sys.stdout.isatty', return_value=False):
        assert is_tty_enabled() is False


@pytest.mark.parametrize(
    "done,total,expected",
    [
        (1, 3, 33),
        (2, 3, 67),
        (3, 3, 100),
        (1, 8, 13),  # 12.5 は切り上げ
        (299, 300, 99),  # 99.67 でも 100 にはしない
        (0, 0, 100),
    ],
)
def test_percent_complete(done, total, expected):
    assert percent_complete(done, total) == expected


class TestProgressTracker:
    """Test cases for ProgressTracker class."""

    def test_init_with_tty_enabled(self):
        """Test ProgressTracker initialization when TTY is enabled."""
        with patch('addrmap.services.progress.is_tty_enabled', return_value=True), \
             patch('addrmap.services.progress.tqdm') as mock_tqdm:

            tracker = ProgressTracker(5, description="Geocoding")

            assert tracker.total_rows == 5
            assert tracker.completed_rows == 0
            assert tracker.enabled is True
            mock_tqdm.assert_called_once_with(
                total=5,
                desc="Geocoding",
                unit="row",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def test_init_with_tty_disabled(self):
        """Test ProgressTracker initialization when TTY is disabled."""
        with patch('addrmap.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(5)

            assert tracker.enabled is False
            assert tracker.pbar is None
            assert tracker.percent == 0

    def test_advance_updates_bar_and_callback(self):
        """Test advance drives both the bar and the percentage stream."""
        mock_pbar = Mock()
        seen: list[int] = []
        with patch('addrmap.services.progress.is_tty_enabled', return_value=True), \
             patch('addrmap.services.progress.tqdm', return_value=mock_pbar):
            with ProgressTracker(2, on_progress=seen.append) as tracker:
                tracker.advance()
                tracker.set_postfix(resolved=1)
                tracker.advance()

        assert seen == [50, 100]
        assert tracker.emitted == [50, 100]
        assert mock_pbar.update.call_count == 2
        mock_pbar.set_postfix.assert_called_once_with(resolved=1)
        mock_pbar.close.assert_called_once()

    def test_hundred_is_emitted_once(self):
        """Test that extra advance calls after completion emit nothing."""
        with patch('addrmap.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(1)
            tracker.advance()
            tracker.advance()
            tracker.complete_empty()

        assert tracker.emitted == [100]

    def test_large_batch_is_monotonic(self):
        """Test the stream never decreases and ends with a single 100."""
        with patch('addrmap.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(300)
            for _ in range(300):
                tracker.advance()

        assert tracker.emitted == sorted(tracker.emitted)
        assert tracker.emitted[-2] == 99
        assert tracker.emitted.count(100) == 1

    def test_complete_empty(self):
        """Test an empty batch reports 100 exactly once."""
        with patch('addrmap.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(0)
            tracker.complete_empty()
            tracker.complete_empty()

        assert tracker.emitted == [100]

    def test_close_without_bar_is_noop(self):
        """Test close when TTY is disabled."""
        with patch('addrmap.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(1)
            tracker.close()
            assert tracker.pbar is None
