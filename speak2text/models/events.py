"""Inbound messages delivered to the capture orchestrator.

Every asynchronous input (host commands, device fragments, recognizer
results, timer ticks, gateway completions) is converted into one of these
before it reaches the state machine. Events produced by a capture session
carry its ``session_id`` so the orchestrator can drop stale deliveries.
"""

import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Optional, List, Any

from .segment import Segment


@dataclass
class Command:
    """A host operation awaiting its resulting CaptureState."""
    name: str
    args: tuple = ()
    future: Future = field(default_factory=Future)


@dataclass
class DeviceFragment:
    """One chunk of captured audio."""
    data: bytes
    sequence_number: int
    timestamp: float = field(default_factory=time.time)
    peak_level: float = 0.0
    session_id: int = 0


@dataclass
class DeviceFault:
    """Capture device I/O failure while recording."""
    message: str
    session_id: int = 0


@dataclass
class DeviceReady:
    """Outcome of opening the capture device."""
    encoding: Optional[str] = None
    error: Optional[Exception] = None


@dataclass
class StreamingResult:
    """Final text from one streaming recognition result batch."""
    text: str
    confidence: Optional[float] = None
    language: Optional[str] = None
    session_id: int = 0


@dataclass
class StreamingFault:
    """Streaming backend raised mid-session."""
    message: str
    session_id: int = 0


@dataclass
class StreamingEnded:
    """Streaming backend closed the session on its own."""
    session_id: int = 0


@dataclass
class TimerTick:
    session_id: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class FinalizeRecording:
    """Fragment delivery has settled; freeze and validate the session."""
    session_id: int


@dataclass
class UploadResult:
    session_id: int
    segment: Optional[Segment] = None
    error: Optional[Exception] = None


@dataclass
class SegmentSaveResult:
    segment: Segment
    error: Optional[Exception] = None


@dataclass
class HistoryResult:
    items: Optional[List[Any]] = None
    error: Optional[Exception] = None


@dataclass
class HealthResult:
    status: Optional[Any] = None
    error: Optional[Exception] = None
