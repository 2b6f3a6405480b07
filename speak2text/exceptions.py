"""speak2text exception hierarchy.

Every exception carries the ErrorKind the orchestrator reports when it
resolves the failure into an Error state or a warning.
"""

from typing import Optional

from .models.state import ErrorKind


class Speak2TextError(Exception):
    """Base exception for all speak2text errors."""

    kind = ErrorKind.BACKEND_FAULT

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        self.message = message
        super().__init__(message)


class DeviceError(Speak2TextError):
    """Raised when the microphone cannot be opened or used."""

    kind = ErrorKind.DEVICE_ERROR


class RecognizerUnavailableError(Speak2TextError):
    """Raised when no streaming recognizer can be initialized on this platform."""

    kind = ErrorKind.RECOGNIZER_UNAVAILABLE


class RecordingValidationError(Speak2TextError):
    """Base class for recordings rejected before upload."""


class EmptyRecordingError(RecordingValidationError):
    kind = ErrorKind.EMPTY_RECORDING

    def __init__(self) -> None:
        super().__init__("No audio data recorded. Try speaking for a longer duration.")


class RecordingTooShortError(RecordingValidationError):
    kind = ErrorKind.RECORDING_TOO_SHORT

    def __init__(self, size: int, min_bytes: int) -> None:
        self.size = size
        self.min_bytes = min_bytes
        super().__init__("Recording too short. Please speak for at least 1-2 seconds.")


class RecordingTooLargeError(RecordingValidationError):
    kind = ErrorKind.RECORDING_TOO_LARGE

    def __init__(self, size: int, max_bytes: int) -> None:
        self.size = size
        self.max_bytes = max_bytes
        limit_mb = max_bytes // (1024 * 1024)
        super().__init__(
            f"Recording too large. Maximum size is {limit_mb}MB. Try shorter recordings."
        )


class TranscriptionError(Speak2TextError):
    """Raised when the batch backend rejects a recording or cannot be reached."""

    kind = ErrorKind.TRANSCRIPTION_ERROR


class PersistenceUnavailableError(Speak2TextError):
    """Raised when the remote service fails or reports failure.

    Categories: "connection", "timeout", "http", "network",
    "invalid_response", "rejected".
    """

    kind = ErrorKind.PERSISTENCE_UNAVAILABLE

    def __init__(self, message: str, category: str = "unknown",
                 status: Optional[int] = None) -> None:
        self.category = category
        self.status = status
        super().__init__(message)
