"""Google Speech-to-Text streaming recognition backend."""

import queue
import logging
from threading import Thread
from typing import Optional, Callable, Iterator

from .base import AbstractStreamingRecognizer, RecognizerEvent
from ..audio.capture import CaptureDevice
from ..exceptions import RecognizerUnavailableError
from ..models.events import (
    DeviceFragment,
    DeviceFault,
    StreamingResult,
    StreamingFault,
    StreamingEnded,
)

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


class GoogleStreamingRecognizer(AbstractStreamingRecognizer):
    """Continuous Google Speech-to-Text recognition fed from its own capture device."""

    def __init__(self,
                 credentials_path: str,
                 device: CaptureDevice,
                 language: str = "en-US",
                 fragment_interval_ms: int = 100,
                 enable_automatic_punctuation: bool = True):
        """Initialize Google streaming recognizer.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            device: Capture device delivering 16-bit PCM (LINEAR16)
            language: Language code (e.g., 'en-US', 'es-ES')
            fragment_interval_ms: Audio cadence sent to the service
            enable_automatic_punctuation: Enable automatic punctuation
        """
        super().__init__(language)
        self.credentials_path = credentials_path
        if not self.credentials_path:
            raise ValueError("Google credentials path is required - cannot initialize without credentials")
        self.device = device
        self.fragment_interval_ms = fragment_interval_ms
        self.client = None
        self.service_name = "Google Speech-to-Text"
        self.streaming_config = speech.StreamingRecognitionConfig(
            config=speech.RecognitionConfig(
                encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
                sample_rate_hertz=device.profile.sample_rate,
                audio_channel_count=device.profile.channels,
                language_code=self.language,
                enable_automatic_punctuation=enable_automatic_punctuation,
            ),
            # Interim results are requested but never emitted
            interim_results=True,
        )

        self.recognize_thread: Optional[Thread] = None
        self.audio_queue: Optional[queue.Queue] = None
        self.is_active = False

    def initialize(self) -> bool:
        """Initialize Google Speech client and open the microphone."""
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
        self.client = speech.SpeechClient(credentials=credentials)
        logger.info(f"Using Google Cloud project: {credentials.project_id}")

        self.device.open()

        logger.info("Google streaming recognizer initialized successfully")
        return True

    def start(self, callback: Callable[[RecognizerEvent], None]) -> None:
        if self.client is None:
            raise RecognizerUnavailableError("Google streaming recognizer is not initialized")
        if self.is_active:
            logger.warning("Streaming recognition already in progress")
            return

        logger.info(f"Starting streaming recognition ({self.language})")
        audio_queue = queue.Queue()
        self.audio_queue = audio_queue

        def on_device_event(event) -> None:
            if isinstance(event, DeviceFragment):
                audio_queue.put(event.data)
            elif isinstance(event, DeviceFault):
                audio_queue.put(None)
                callback(StreamingFault(message=f"Microphone error: {event.message}"))

        self.device.start(self.fragment_interval_ms, on_device_event)

        self.recognize_thread = Thread(
            target=self._recognize_continuously,
            args=(audio_queue, callback),
            daemon=True,
        )
        self.recognize_thread.name = "GoogleStreamingThread"
        self.is_active = True
        self.recognize_thread.start()

    def stop(self) -> None:
        if not self.is_active:
            return

        logger.info("Stopping streaming recognition")
        self.device.stop()
        self.audio_queue.put(None)

        # The service answers the closed request stream with its last final results
        if self.recognize_thread and self.recognize_thread.is_alive():
            self.recognize_thread.join(timeout=5.0)
            if self.recognize_thread.is_alive():
                logger.warning("Streaming recognition thread did not stop cleanly")

        self.is_active = False

    def cleanup(self) -> None:
        """Clean up Google Speech client and microphone."""
        self.stop()
        self.device.close()
        self.client = None

    @staticmethod
    def _request_stream(audio_queue: queue.Queue) -> Iterator[speech.StreamingRecognizeRequest]:
        while True:
            chunk = audio_queue.get()
            if chunk is None:
                return
            yield speech.StreamingRecognizeRequest(audio_content=chunk)

    def _recognize_continuously(self, audio_queue: queue.Queue,
                                callback: Callable[[RecognizerEvent], None]) -> None:
        """Internal method: consume streaming responses in background thread."""
        try:
            responses = self.client.streaming_recognize(
                config=self.streaming_config,
                requests=self._request_stream(audio_queue),
            )
            for response in responses:
                result = self._extract_final_result(response)
                if result is not None:
                    callback(result)
        except gax_exceptions.GoogleAPICallError as e:
            logger.error(f"Google streaming recognition error: {e}")
            callback(StreamingFault(message=str(e)))
            return
        except Exception as e:
            # Auth refresh and retry exhaustion surface outside GoogleAPICallError
            logger.error(f"Streaming recognition failed: {e}", exc_info=True)
            callback(StreamingFault(message=str(e)))
            return

        logger.info("Google streaming session ended")
        callback(StreamingEnded())

    def _extract_final_result(self, response) -> Optional[StreamingResult]:
        """Concatenate the final alternatives of one response into a single result."""
        texts = []
        confidences = []
        for result in response.results:
            if not result.is_final or not result.alternatives:
                continue
            alternative = result.alternatives[0]
            text = alternative.transcript.strip()
            if text:
                texts.append(text)
            if alternative.confidence:
                confidences.append(alternative.confidence)

        if not texts:
            return None

        confidence = sum(confidences) / len(confidences) if confidences else None
        text = " ".join(texts)
        logger.debug(f"Final result: '{text}' (confidence: {confidence})")
        return StreamingResult(text=text, confidence=confidence, language=self.language)
