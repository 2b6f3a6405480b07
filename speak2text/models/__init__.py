"""Data models for the speak2text engine."""

from .segment import CaptureMode, Segment
from .transcript import Transcript
from .recording import AudioFrame, RecordingSession, ValidatedRecording
from .state import CaptureState, CaptureStatus, ErrorKind
from .gateway import HealthStatus, HistoryItem, TranscribeResponse
from .events import (
    Command,
    DeviceFragment,
    DeviceFault,
    DeviceReady,
    StreamingResult,
    StreamingFault,
    StreamingEnded,
    TimerTick,
    FinalizeRecording,
    UploadResult,
    SegmentSaveResult,
    HistoryResult,
    HealthResult,
)

__all__ = [
    "CaptureMode",
    "Segment",
    "Transcript",
    "AudioFrame",
    "RecordingSession",
    "ValidatedRecording",
    "CaptureState",
    "CaptureStatus",
    "ErrorKind",
    "HealthStatus",
    "HistoryItem",
    "TranscribeResponse",
    # Inbound events
    "Command",
    "DeviceFragment",
    "DeviceFault",
    "DeviceReady",
    "StreamingResult",
    "StreamingFault",
    "StreamingEnded",
    "TimerTick",
    "FinalizeRecording",
    "UploadResult",
    "SegmentSaveResult",
    "HistoryResult",
    "HealthResult",
]
