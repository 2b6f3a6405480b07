"""Recording session models for batch capture."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List


def file_extension(encoding: str) -> str:
    """Upload filename extension for a negotiated encoding."""
    return "webm" if "webm" in encoding else "wav"


def content_type(encoding: str) -> str:
    """MIME type without codec parameters."""
    return encoding.split(";", 1)[0].strip() or "audio/wav"


@dataclass
class AudioFrame:
    """A single captured fragment with timestamp."""
    data: bytes
    timestamp: float  # Time when this fragment was delivered
    frame_number: int


@dataclass
class RecordingSession:
    """The in-progress batch recording. At most one exists at a time."""
    session_id: int
    encoding: str
    sample_rate: int
    channels: int
    started_at: datetime = field(default_factory=datetime.now)
    fragments: List[AudioFrame] = field(default_factory=list)
    elapsed_seconds: int = 0
    finalized: bool = False

    @property
    def total_bytes(self) -> int:
        return sum(len(frame.data) for frame in self.fragments)

    @property
    def fragment_count(self) -> int:
        return len(self.fragments)


@dataclass(frozen=True)
class ValidatedRecording:
    """A finalized recording that passed size validation and is ready to upload."""
    data: bytes
    encoding: str
    sample_rate: int
    channels: int

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def file_extension(self) -> str:
        return file_extension(self.encoding)

    @property
    def filename(self) -> str:
        return f"recording.{self.file_extension}"

    @property
    def content_type(self) -> str:
        return content_type(self.encoding)
