"""Pytest configuration and fixtures for speak2text tests."""

import time
import uuid
import logging
import tempfile
from types import SimpleNamespace
from unittest.mock import Mock, patch

import numpy as np
import pytest

from speak2text.audio.timer import DurationTimer
from speak2text.config import Speak2TextConfig
from speak2text.models.events import (
    DeviceFragment,
    DeviceFault,
    StreamingResult,
    StreamingFault,
    StreamingEnded,
)
from speak2text.models.gateway import HealthStatus, HistoryItem, SaveResponse, TranscribeResponse
from speak2text.services.orchestrator import CaptureOrchestrator
from speak2text.services.publisher import CaptureEventPublisher
from speak2text.transcription.base import AbstractStreamingRecognizer
from speak2text.transcription.batch import BatchRecognizer


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without hardware or network")
    config.addinivalue_line("markers", "integration: tests wiring several components together")


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # 1600 samples of 16-bit audio (100ms at 16kHz)
    sample_rate = 16000
    duration = 1600 / sample_rate
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1600, False)
    wave_data = np.sin(2 * np.pi * freq * t)

    # Convert to 16-bit integers
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.start_stream.return_value = None
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def wait_until():
    """Poll a predicate until it is true or the timeout expires."""
    def _wait(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
        deadline = time.time() + timeout
        while time.time() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()
    return _wait


class FakeCaptureDevice:
    """Capture device driven by the test instead of a microphone."""

    def __init__(self, encoding: str = "audio/wav", open_error: Exception = None):
        self.profile = SimpleNamespace(sample_rate=16000, channels=1)
        self.negotiated = encoding
        self.open_error = open_error
        self.encoding = None
        self.callback = None
        self.is_capturing = False
        self.open_calls = 0
        self.start_calls = 0
        self.stop_calls = 0
        self.closed = False
        self.sequence = 0

    @property
    def is_ready(self) -> bool:
        return self.encoding is not None

    def open(self) -> str:
        self.open_calls += 1
        if self.open_error is not None:
            raise self.open_error
        self.encoding = self.negotiated
        return self.encoding

    def start(self, fragment_interval_ms, callback) -> None:
        self.start_calls += 1
        self.callback = callback
        self.is_capturing = True

    def stop(self) -> None:
        if self.is_capturing:
            self.stop_calls += 1
        self.is_capturing = False

    def close(self) -> None:
        self.stop()
        self.closed = True

    def emit(self, data: bytes) -> None:
        self.sequence += 1
        self.callback(DeviceFragment(data=data, sequence_number=self.sequence))

    def fault(self, message: str) -> None:
        self.callback(DeviceFault(message=message))


class FakeStreamingRecognizer(AbstractStreamingRecognizer):
    """Streaming recognizer whose results are pushed by the test."""

    def __init__(self, start_error: Exception = None):
        super().__init__("en-US")
        self.start_error = start_error
        self.callback = None
        self.start_calls = 0
        self.stop_calls = 0
        self.cleaned_up = False

    def initialize(self) -> bool:
        return True

    def start(self, callback) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        self.callback = callback

    def stop(self) -> None:
        self.stop_calls += 1

    def cleanup(self) -> None:
        self.cleaned_up = True

    def emit(self, text: str, confidence: float = 0.9) -> None:
        self.callback(StreamingResult(text=text, confidence=confidence, language="en-US"))

    def fault(self, message: str) -> None:
        self.callback(StreamingFault(message=message))

    def end(self) -> None:
        self.callback(StreamingEnded())


class FakeGateway:
    """In-memory stand-in for PersistenceGateway."""

    def __init__(self):
        self.base_url = "http://localhost:5000"
        self.health = HealthStatus(transcription_backend_configured=True)
        self.health_error = None
        self.history = [HistoryItem(id="1", text="earlier note")]
        self.history_error = None
        self.save_error = None
        self.transcribe_response = TranscribeResponse(success=True, transcript="hello")
        self.transcribe_error = None
        self.saved = []
        self.uploads = []
        self.history_calls = 0

    async def check_health(self):
        if self.health_error is not None:
            raise self.health_error
        return self.health

    async def fetch_history(self):
        self.history_calls += 1
        if self.history_error is not None:
            raise self.history_error
        return list(self.history)

    async def save_segment(self, segment):
        if self.save_error is not None:
            raise self.save_error
        self.saved.append(segment)
        return SaveResponse(success=True)

    async def transcribe_audio(self, data, filename, content_type):
        self.uploads.append((data, filename, content_type))
        if self.transcribe_error is not None:
            raise self.transcribe_error
        return self.transcribe_response


@pytest.fixture
def fake_device():
    return FakeCaptureDevice()


@pytest.fixture
def fake_recognizer():
    return FakeStreamingRecognizer()


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def test_config():
    """Default configuration with the settle delay disabled."""
    config = Speak2TextConfig()
    config.set('recording.settle_delay_ms', 0)
    config.set('orchestrator.command_timeout_seconds', 5)
    return config


@pytest.fixture
def publisher():
    # Unique topic names keep pubsub listeners from leaking between tests
    return CaptureEventPublisher(prefix=f"t{uuid.uuid4().hex}_")


@pytest.fixture
def make_orchestrator(test_config, fake_device, fake_gateway, publisher):
    """Factory for started orchestrators; all are shut down after the test."""
    created = []

    def _make(streaming_recognizer=None, device=None, timer=None):
        orchestrator = CaptureOrchestrator(
            config=test_config,
            device=device or fake_device,
            batch_recognizer=BatchRecognizer(fake_gateway),
            gateway=fake_gateway,
            streaming_recognizer=streaming_recognizer,
            publisher=publisher,
            timer=timer or DurationTimer(interval_seconds=0.05),
        )
        orchestrator.start()
        created.append(orchestrator)
        return orchestrator

    yield _make

    for orchestrator in created:
        orchestrator.shutdown()


@pytest.fixture
def orchestrator(make_orchestrator, fake_recognizer):
    return make_orchestrator(streaming_recognizer=fake_recognizer)
