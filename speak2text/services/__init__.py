"""Services layer for speak2text application logic."""

from .orchestrator import CaptureOrchestrator
from .publisher import CaptureEventPublisher
from .worker import BackgroundWorker

__all__ = [
    "CaptureOrchestrator",
    "CaptureEventPublisher",
    "BackgroundWorker",
]
