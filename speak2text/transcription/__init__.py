"""Recognition backends for speak2text.

``GoogleStreamingRecognizer`` lives in ``speak2text.transcription.google_backend``
and is imported from there when streaming credentials are configured.
"""

from .base import AbstractStreamingRecognizer, RecognizerEvent
from .batch import BatchRecognizer

__all__ = [
    "AbstractStreamingRecognizer",
    "RecognizerEvent",
    "BatchRecognizer",
]
