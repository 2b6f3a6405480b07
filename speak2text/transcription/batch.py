"""Batch recognition through the remote transcription service."""

import logging
from typing import Optional

from ..audio.encoding import package_for_upload
from ..exceptions import TranscriptionError, PersistenceUnavailableError
from ..models.recording import ValidatedRecording
from ..models.segment import CaptureMode, Segment
from ..storage.gateway import PersistenceGateway

logger = logging.getLogger(__name__)


class BatchRecognizer:
    """Uploads one validated recording and returns its transcript segment.

    Failed attempts are not retried; the user re-records instead.
    """

    def __init__(self, gateway: PersistenceGateway, language: Optional[str] = None):
        self.gateway = gateway
        self.language = language

    async def transcribe(self, recording: ValidatedRecording,
                         duration_seconds: Optional[float] = None) -> Segment:
        """Transcribe a validated recording.

        Args:
            recording: Payload that passed size validation
            duration_seconds: Recorded duration, used when the service reports none

        Returns:
            Segment with the transcript

        Raises:
            TranscriptionError: Service rejected the recording or could not be reached
        """
        payload = package_for_upload(recording.data, recording.encoding,
                                     recording.sample_rate, recording.channels)
        logger.info(f"Sending {recording.filename} to server: {len(payload)} bytes "
                    f"({recording.content_type})")

        try:
            response = await self.gateway.transcribe_audio(
                payload, recording.filename, recording.content_type
            )
        except PersistenceUnavailableError as e:
            logger.error(f"Error sending audio: {e.message}")
            raise TranscriptionError(e.message) from e

        if not response.success:
            message = response.message or "Transcription failed"
            logger.error(f"Transcription failed: {message}")
            raise TranscriptionError(message)

        text = (response.transcript or "").strip()
        if not text:
            raise TranscriptionError("Transcription returned no text")

        confidence = response.confidence
        if confidence is not None and not 0.0 <= confidence <= 1.0:
            logger.warning(f"Ignoring out-of-range confidence from server: {confidence}")
            confidence = None

        logger.info(f"Transcription successful: '{text}'")
        return Segment(
            text=text,
            source=CaptureMode.BATCH,
            confidence=confidence,
            language=response.language or self.language,
            duration_seconds=response.duration if response.duration is not None else duration_seconds,
        )
