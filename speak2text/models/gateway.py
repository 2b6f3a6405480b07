"""Wire models for the remote transcription/persistence service."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class HealthStatus(BaseModel):
    """Response of ``GET /health``."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    transcription_backend_configured: bool = Field(False, alias="openai_key_configured")


class HistoryItem(BaseModel):
    """A transcript previously saved on the service."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(alias="_id")
    text: str
    method: str = "webkit"
    language: Optional[str] = None
    duration: Optional[float] = None
    confidence: Optional[float] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")


class HistoryResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool
    data: List[HistoryItem] = Field(default_factory=list)
    message: Optional[str] = None


class SaveResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool
    message: Optional[str] = None


class TranscribeResponse(BaseModel):
    """Response of ``POST /transcribe-audio``."""
    model_config = ConfigDict(extra="ignore")

    success: bool
    transcript: Optional[str] = None
    message: Optional[str] = None
    language: Optional[str] = None
    duration: Optional[float] = None
    confidence: Optional[float] = None
