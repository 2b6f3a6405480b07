"""Audio buffering and timing.

The PyAudio-backed ``CaptureDevice`` lives in ``speak2text.audio.capture``
and is imported from there directly.
"""

from .buffer import RecordingBuffer
from .timer import DurationTimer

__all__ = [
    'RecordingBuffer',
    'DurationTimer'
]
