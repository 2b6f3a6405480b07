"""Recording buffer that accumulates fragments for batch transcription."""

import time
import logging
import threading
from typing import Optional

from ..models.recording import AudioFrame, RecordingSession, ValidatedRecording
from ..exceptions import (
    EmptyRecordingError,
    RecordingTooShortError,
    RecordingTooLargeError,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_BYTES = 1000
DEFAULT_MAX_BYTES = 25 * 1024 * 1024


class RecordingBuffer:
    """Holds the fragments of the open recording session and validates them on finalize."""

    def __init__(self, min_bytes: int = DEFAULT_MIN_BYTES, max_bytes: int = DEFAULT_MAX_BYTES):
        """Initialize recording buffer.

        Args:
            min_bytes: Recordings smaller than this cannot contain usable speech
            max_bytes: Upper bound on the payload sent to the transcription service
        """
        if min_bytes > max_bytes:
            raise ValueError(f"min_bytes ({min_bytes}) exceeds max_bytes ({max_bytes})")
        self.min_bytes = min_bytes
        self.max_bytes = max_bytes

        self.session: Optional[RecordingSession] = None
        self.lock = threading.Lock()
        self.total_bytes = 0

        logger.info(f"RecordingBuffer initialized: {min_bytes}-{max_bytes} bytes accepted")

    def open(self, session_id: int, encoding: str, sample_rate: int, channels: int = 1) -> RecordingSession:
        """Start a new recording session, replacing any previous one."""
        with self.lock:
            if self.session is not None:
                logger.warning(f"Discarding unfinished recording session {self.session.session_id}")
            self.session = RecordingSession(
                session_id=session_id,
                encoding=encoding,
                sample_rate=sample_rate,
                channels=channels,
            )
            self.total_bytes = 0
        logger.debug(f"Opened recording session {session_id} ({encoding})")
        return self.session

    def append(self, fragment: bytes) -> None:
        """Add a fragment to the open session."""
        with self.lock:
            if self.session is None:
                raise RuntimeError("No recording session is open")
            if self.session.finalized:
                raise RuntimeError(f"Recording session {self.session.session_id} is already finalized")
            if not fragment:
                return

            frame = AudioFrame(
                data=fragment,
                timestamp=time.time(),
                frame_number=len(self.session.fragments)
            )
            self.session.fragments.append(frame)
            self.total_bytes += len(fragment)

            logger.debug(f"Added fragment: {len(fragment)} bytes, "
                         f"session now has {len(self.session.fragments)} fragments ({self.total_bytes} bytes)")

    def finalize(self, encoding: Optional[str] = None) -> ValidatedRecording:
        """Freeze the session and assemble its fragments into one validated payload.

        Args:
            encoding: Encoding tag for the payload; defaults to the session's

        Returns:
            ValidatedRecording ready for upload

        Raises:
            EmptyRecordingError: No fragments or zero bytes
            RecordingTooShortError: Fewer than min_bytes
            RecordingTooLargeError: More than max_bytes
        """
        with self.lock:
            if self.session is None:
                raise RuntimeError("No recording session is open")
            self.session.finalized = True
            session = self.session
            size = self.total_bytes

        logger.info(f"Finalizing session {session.session_id}: "
                    f"{session.fragment_count} fragments, {size} bytes")

        if session.fragment_count == 0 or size == 0:
            raise EmptyRecordingError()
        if size < self.min_bytes:
            raise RecordingTooShortError(size, self.min_bytes)
        if size > self.max_bytes:
            raise RecordingTooLargeError(size, self.max_bytes)

        return ValidatedRecording(
            data=b''.join(frame.data for frame in session.fragments),
            encoding=encoding or session.encoding,
            sample_rate=session.sample_rate,
            channels=session.channels,
        )

    def discard(self) -> None:
        """Drop the current session."""
        with self.lock:
            if self.session is not None:
                logger.debug(f"Discarded recording session {self.session.session_id}")
            self.session = None
            self.total_bytes = 0

    @property
    def is_open(self) -> bool:
        return self.session is not None

    def get_buffer_stats(self) -> dict:
        """Get buffer statistics."""
        with self.lock:
            if self.session is None:
                return {"open": False, "fragment_count": 0, "total_bytes": 0, "elapsed_seconds": 0}
            return {
                "open": True,
                "session_id": self.session.session_id,
                "fragment_count": self.session.fragment_count,
                "total_bytes": self.total_bytes,
                "elapsed_seconds": self.session.elapsed_seconds,
                "finalized": self.session.finalized,
            }
