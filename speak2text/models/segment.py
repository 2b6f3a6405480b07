"""Transcript segment models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any


class CaptureMode(Enum):
    """Which recognition backend a capture session uses."""
    STREAMING = "streaming"
    BATCH = "batch"

    @property
    def method_tag(self) -> str:
        """Method name stored alongside saved transcripts on the remote service."""
        return "webkit" if self is CaptureMode.STREAMING else "whisper"


@dataclass(frozen=True)
class Segment:
    """One finalized unit of transcribed text with provenance metadata."""
    text: str
    source: CaptureMode
    confidence: Optional[float] = None  # 0.0 to 1.0
    language: Optional[str] = None
    duration_seconds: Optional[float] = None
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if self.confidence is not None and not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Segment confidence out of range: {self.confidence}")

    @property
    def method(self) -> str:
        return self.source.method_tag

    def to_payload(self) -> Dict[str, Any]:
        """Body for the save-segment request."""
        return {
            "text": self.text,
            "confidence": self.confidence,
            "method": self.method,
            "language": self.language,
            "duration": self.duration_seconds,
        }
