"""Capture state models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .segment import CaptureMode


class CaptureStatus(Enum):
    """Top-level status of the capture lifecycle."""
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    ERROR = "error"


class ErrorKind(Enum):
    """Reportable failure categories."""
    DEVICE_ERROR = "device_error"
    DEVICE_NOT_READY = "device_not_ready"
    RECOGNIZER_UNAVAILABLE = "recognizer_unavailable"
    EMPTY_RECORDING = "empty_recording"
    RECORDING_TOO_SHORT = "recording_too_short"
    RECORDING_TOO_LARGE = "recording_too_large"
    TRANSCRIPTION_ERROR = "transcription_error"
    BACKEND_FAULT = "backend_fault"
    PERSISTENCE_UNAVAILABLE = "persistence_unavailable"


@dataclass(frozen=True)
class CaptureState:
    """Exactly one of Idle, Listening{mode}, Processing or Error{kind, message}."""
    status: CaptureStatus
    mode: Optional[CaptureMode] = None
    error_kind: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def idle(cls) -> "CaptureState":
        return cls(CaptureStatus.IDLE)

    @classmethod
    def listening(cls, mode: CaptureMode) -> "CaptureState":
        return cls(CaptureStatus.LISTENING, mode=mode)

    @classmethod
    def processing(cls) -> "CaptureState":
        return cls(CaptureStatus.PROCESSING, mode=CaptureMode.BATCH)

    @classmethod
    def error(cls, kind: ErrorKind, message: str) -> "CaptureState":
        return cls(CaptureStatus.ERROR, error_kind=kind, message=message)

    @property
    def is_idle(self) -> bool:
        return self.status is CaptureStatus.IDLE

    @property
    def is_listening(self) -> bool:
        return self.status is CaptureStatus.LISTENING

    @property
    def is_processing(self) -> bool:
        return self.status is CaptureStatus.PROCESSING

    @property
    def is_error(self) -> bool:
        return self.status is CaptureStatus.ERROR

    @property
    def is_busy(self) -> bool:
        """True while a capture or its batch transcription is in progress."""
        return self.status in (CaptureStatus.LISTENING, CaptureStatus.PROCESSING)

    def __str__(self) -> str:
        if self.is_listening:
            return f"Listening({self.mode.value})"
        if self.is_error:
            return f"Error({self.error_kind.value}: {self.message})"
        return self.status.value.capitalize()
