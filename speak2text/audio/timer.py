"""Elapsed-time counter for batch recordings."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class DurationTimer:
    """Counts whole seconds of an in-progress batch recording.

    The timer only schedules ticks; the count itself is advanced by the
    owner calling ``tick()`` when it handles a tick, so a single thread
    ever writes it.
    """

    def __init__(self, interval_seconds: float = 1.0):
        self.interval_seconds = interval_seconds
        self.elapsed_seconds = 0
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def is_active(self) -> bool:
        return self._stop_event is not None

    def start(self, on_tick: Callable[[], None]) -> None:
        """Begin calling ``on_tick`` every interval until cancelled."""
        self.cancel()
        stop_event = threading.Event()

        def _run():
            while not stop_event.wait(self.interval_seconds):
                on_tick()

        self._stop_event = stop_event
        self._thread = threading.Thread(target=_run, daemon=True)
        self._thread.name = "DurationTimerThread"
        self._thread.start()
        logger.debug("Recording timer started")

    def cancel(self) -> None:
        """Stop scheduling ticks. Safe to call when not running."""
        if self._stop_event is None:
            return
        self._stop_event.set()
        thread = self._thread
        self._stop_event = None
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)
        logger.debug(f"Recording timer stopped at {self.elapsed_seconds}s")

    def tick(self) -> int:
        self.elapsed_seconds += 1
        return self.elapsed_seconds

    def reset(self) -> None:
        self.elapsed_seconds = 0

    @staticmethod
    def format_duration(seconds: int) -> str:
        """Format seconds as m:ss."""
        mins, secs = divmod(int(seconds), 60)
        return f"{mins}:{secs:02d}"
