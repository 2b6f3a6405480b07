"""Publishes orchestrator notifications using pubsub.pub."""

import logging
from typing import List, Optional

from pubsub import pub

from ..audio.timer import DurationTimer
from ..models.gateway import HistoryItem
from ..models.segment import Segment
from ..models.state import CaptureState, ErrorKind

logger = logging.getLogger(__name__)

STATE_TOPIC = "capture_state"
TRANSCRIPT_TOPIC = "transcript_updated"
TIMER_TOPIC = "recording_timer"
HISTORY_TOPIC = "history_updated"
WARNING_TOPIC = "capture_warning"


class CaptureEventPublisher:
    """Publishes capture state, transcript, timer, history and warning events for the UI."""

    def __init__(self, prefix: str = ""):
        """Initialize publisher.

        Args:
            prefix: Optional prefix for every topic name, to run several engines side by side
        """
        self.prefix = prefix
        logger.info(f"CaptureEventPublisher initialized with prefix: '{prefix}'")

    def topic(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def _send(self, name: str, **data) -> None:
        try:
            pub.sendMessage(self.topic(name), **data)
        except Exception as e:
            # Listener failures must not reach the orchestrator thread
            logger.error(f"Listener error on topic '{self.topic(name)}': {e}", exc_info=True)

    def publish_state(self, state: CaptureState) -> None:
        self._send(STATE_TOPIC, state=state)
        logger.debug(f"Published state: {state}")

    def publish_transcript(self, text: str, segment: Optional[Segment] = None) -> None:
        self._send(TRANSCRIPT_TOPIC, text=text, segment=segment)

    def publish_timer(self, elapsed_seconds: int) -> None:
        self._send(TIMER_TOPIC, elapsed_seconds=elapsed_seconds,
                   display=DurationTimer.format_duration(elapsed_seconds))

    def publish_history(self, items: List[HistoryItem]) -> None:
        self._send(HISTORY_TOPIC, items=items)

    def publish_warning(self, kind: ErrorKind, message: str) -> None:
        self._send(WARNING_TOPIC, kind=kind, message=message)
