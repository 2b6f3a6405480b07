"""Abstract base class for streaming recognition backends."""

from abc import ABC, abstractmethod
from typing import Callable, Union
import logging

from ..models.events import StreamingResult, StreamingFault, StreamingEnded

logger = logging.getLogger(__name__)

RecognizerEvent = Union[StreamingResult, StreamingFault, StreamingEnded]


class AbstractStreamingRecognizer(ABC):
    """Continuous recognizer that reports final results as they become available."""

    def __init__(self, language: str = "en-US"):
        """Initialize recognizer with its fixed recognition language."""
        self.language = language

    @abstractmethod
    def initialize(self) -> bool:
        """Initialize backend resources and verify configuration.

        Returns:
            True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    def start(self, callback: Callable[[RecognizerEvent], None]) -> None:
        """Start a recognition session.

        Args:
            callback: Receives a StreamingResult per result batch with final
                text, a StreamingFault on backend errors, and StreamingEnded
                when the backend closes the session
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop the current session. Final results may still be delivered."""
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up backend resources."""
        pass
