"""Remote persistence and transcription service client."""

from .gateway import PersistenceGateway

__all__ = ["PersistenceGateway"]
