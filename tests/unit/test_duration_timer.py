"""Unit tests for DurationTimer."""

import threading

import pytest

from speak2text.audio.timer import DurationTimer


@pytest.mark.unit
class TestDurationTimer:

    @pytest.mark.parametrize("seconds,expected", [
        (0, "0:00"),
        (5, "0:05"),
        (59, "0:59"),
        (60, "1:00"),
        (125, "2:05"),
    ])
    def test_format_duration(self, seconds, expected):
        assert DurationTimer.format_duration(seconds) == expected

    def test_tick_and_reset(self):
        timer = DurationTimer()

        assert timer.tick() == 1
        assert timer.tick() == 2
        timer.reset()
        assert timer.elapsed_seconds == 0

    def test_start_schedules_ticks(self):
        timer = DurationTimer(interval_seconds=0.01)
        fired = threading.Event()
        calls = []

        def on_tick():
            calls.append(1)
            if len(calls) >= 3:
                fired.set()

        timer.start(on_tick)
        try:
            assert fired.wait(2.0)
            assert timer.is_active
        finally:
            timer.cancel()

        # Ticks are only counted by the owner
        assert timer.elapsed_seconds == 0

    def test_cancel_stops_ticks(self):
        timer = DurationTimer(interval_seconds=0.01)
        calls = []
        timer.start(lambda: calls.append(1))

        timer.cancel()
        count = len(calls)
        threading.Event().wait(0.05)

        assert len(calls) == count
        assert timer.is_active is False

    def test_cancel_when_not_started(self):
        timer = DurationTimer()

        timer.cancel()

        assert timer.is_active is False
