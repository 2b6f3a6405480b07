"""HTTP client for the remote transcription and history service."""

import asyncio
import logging
from typing import Any, Dict, List

import aiohttp
from pydantic import ValidationError

from ..exceptions import PersistenceUnavailableError
from ..models.gateway import (
    HealthStatus,
    HistoryItem,
    HistoryResponse,
    SaveResponse,
    TranscribeResponse,
)
from ..models.segment import Segment

logger = logging.getLogger(__name__)


class PersistenceGateway:
    """Async client for health check, history, segment saving and audio transcription.

    Every call opens its own ``aiohttp.ClientSession`` so the gateway can be
    driven from any event loop. Transport failures raise
    ``PersistenceUnavailableError`` with a category for the caller to report.
    """

    def __init__(self, base_url: str = "http://localhost:5000", timeout_seconds: float = 30.0):
        """Initialize gateway.

        Args:
            base_url: Base URL of the service
            timeout_seconds: Total timeout per request
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        logger.info(f"PersistenceGateway initialized for {self.base_url}")

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Execute a request and return the decoded JSON body.

        Raises:
            PersistenceUnavailableError: On connection, timeout, HTTP status,
                network or decoding errors
        """
        url = f"{self.base_url}{path}"
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(method, url, **kwargs) as response:
                    if response.status >= 400:
                        error_text = await response.text()
                        raise PersistenceUnavailableError(
                            f"Server error: {response.status} {response.reason} - {error_text}",
                            category="http",
                            status=response.status,
                        )
                    body = await response.json(content_type=None)
        except asyncio.TimeoutError:
            raise PersistenceUnavailableError(
                f"Request to {path} timed out. The server may be overloaded.",
                category="timeout",
            ) from None
        except aiohttp.ClientConnectionError as e:
            raise PersistenceUnavailableError(
                f"Cannot connect to server at {self.base_url}: {e}",
                category="connection",
            ) from None
        except aiohttp.ClientError as e:
            raise PersistenceUnavailableError(f"Network error: {e}", category="network") from None
        except ValueError as e:
            raise PersistenceUnavailableError(
                f"Invalid response from {path}: {e}", category="invalid_response"
            ) from None

        if not isinstance(body, dict):
            raise PersistenceUnavailableError(
                f"Invalid response from {path}: expected a JSON object", category="invalid_response"
            )
        return body

    @staticmethod
    def _parse(model, body: Dict[str, Any], path: str):
        try:
            return model.model_validate(body)
        except ValidationError as e:
            raise PersistenceUnavailableError(
                f"Invalid response from {path}: {e}", category="invalid_response"
            ) from None

    # -- health --

    async def check_health(self) -> HealthStatus:
        body = await self._request("GET", "/health")
        status = self._parse(HealthStatus, body, "/health")
        logger.info(f"Server health check: {body}")
        return status

    # -- history --

    async def fetch_history(self) -> List[HistoryItem]:
        body = await self._request("GET", "/transcriptions")
        response = self._parse(HistoryResponse, body, "/transcriptions")
        if not response.success:
            raise PersistenceUnavailableError(
                response.message or "History fetch reported failure", category="rejected"
            )
        logger.info(f"Fetched transcripts: {len(response.data)}")
        return response.data

    async def save_segment(self, segment: Segment) -> SaveResponse:
        body = await self._request("POST", "/transcriptions", json=segment.to_payload())
        response = self._parse(SaveResponse, body, "/transcriptions")
        if not response.success:
            raise PersistenceUnavailableError(
                f"Failed to save: {response.message or 'unknown error'}", category="rejected"
            )
        return response

    # -- transcription --

    async def transcribe_audio(self, data: bytes, filename: str,
                               content_type: str) -> TranscribeResponse:
        """Upload a recording as multipart field ``audio``."""
        form = aiohttp.FormData()
        form.add_field("audio", data, filename=filename, content_type=content_type)
        body = await self._request("POST", "/transcribe-audio", data=form)
        return self._parse(TranscribeResponse, body, "/transcribe-audio")
