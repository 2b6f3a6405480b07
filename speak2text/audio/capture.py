"""Microphone capture device delivering fixed-cadence audio fragments."""

import time
import logging
from dataclasses import dataclass
from threading import Thread, Event
from typing import Optional, Callable, Iterable, Union

import numpy as np
import pyaudio

from ..models.events import DeviceFragment, DeviceFault
from ..exceptions import DeviceError
from .encoding import (
    DEFAULT_ENCODING_PREFERENCES,
    PLATFORM_DEFAULT_ENCODING,
    negotiate_encoding,
)

logger = logging.getLogger(__name__)

DeviceEvent = Union[DeviceFragment, DeviceFault]


@dataclass(frozen=True)
class CaptureProfile:
    """Fixed microphone capture profile."""
    sample_rate: int = 44100
    channels: int = 1
    echo_cancellation: bool = True
    noise_suppression: bool = True
    sample_width: int = 2  # 16-bit


class CaptureDevice:
    """Microphone handle that is opened once and reused across recording sessions."""

    # The input stream yields raw 16-bit PCM
    SUPPORTED_ENCODINGS = (PLATFORM_DEFAULT_ENCODING, "audio/l16")

    def __init__(
        self,
        profile: Optional[CaptureProfile] = None,
        encoding_preferences: Iterable[str] = DEFAULT_ENCODING_PREFERENCES,
        input_device_index: Optional[int] = None,
        format: int = pyaudio.paInt16,
    ):
        """Initialize capture device.

        Args:
            profile: Capture profile (mono, 44.1kHz, echo cancellation and noise suppression)
            encoding_preferences: Encodings to try in order before the platform default
            input_device_index: PyAudio input device, None for the host default
            format: PyAudio sample format
        """
        self.profile = profile or CaptureProfile()
        self.encoding_preferences = tuple(encoding_preferences)
        self.input_device_index = input_device_index
        self.format = format
        self.encoding: Optional[str] = None

        # Capture thread management
        self.capture_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_capturing = False

        # Statistics tracking
        self.total_fragments = 0

        # PyAudio resources, acquired at most once
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

    @property
    def is_ready(self) -> bool:
        return self.stream is not None and self.encoding is not None

    @classmethod
    def is_type_supported(cls, encoding: str) -> bool:
        return encoding.split(";", 1)[0].strip().lower() in cls.SUPPORTED_ENCODINGS

    def open(self) -> str:
        """Acquire the microphone and negotiate the recording encoding.

        Returns:
            The negotiated encoding

        Raises:
            DeviceError: No input device, or access was denied
        """
        if self.is_ready:
            return self.encoding

        logger.info("Setting up capture device...")
        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            self.stream = self.pyaudio_instance.open(
                format=self.format,
                channels=self.profile.channels,
                rate=self.profile.sample_rate,
                input=True,
                input_device_index=self.input_device_index,
                frames_per_buffer=self.frames_per_fragment(100),
                start=False,
            )
        except (OSError, ValueError) as e:
            logger.error(f"Error accessing microphone: {e}")
            self._release()
            raise DeviceError(f"Microphone access denied: {e}") from e

        if self.profile.echo_cancellation or self.profile.noise_suppression:
            # PortAudio exposes no processing controls; the host audio stack applies them if configured
            logger.debug("Echo cancellation/noise suppression requested from host audio stack")

        self.encoding = negotiate_encoding(self.encoding_preferences, self.is_type_supported)
        logger.info(f"Microphone access granted: {self.profile.sample_rate}Hz, "
                    f"{self.profile.channels} channel(s), encoding {self.encoding}")
        return self.encoding

    def frames_per_fragment(self, fragment_interval_ms: int) -> int:
        return max(1, int(self.profile.sample_rate * fragment_interval_ms / 1000))

    def start(self, fragment_interval_ms: int, callback: Callable[[DeviceEvent], None]) -> None:
        """Begin delivering a fragment every ``fragment_interval_ms`` to ``callback``."""
        if not self.is_ready:
            raise DeviceError("Capture device is not open")
        if self.is_capturing:
            logger.warning("Capture already in progress")
            return

        logger.info(f"Starting capture: {fragment_interval_ms}ms fragments")
        self.stop_event.clear()
        self.total_fragments = 0
        try:
            self.stream.start_stream()
        except OSError as e:
            raise DeviceError(f"Failed to start recording: {e}") from e

        self.capture_thread = Thread(
            target=self._capture_continuously,
            args=(self.frames_per_fragment(fragment_interval_ms), callback),
            daemon=True,
        )
        self.capture_thread.name = "CaptureDeviceThread"
        self.is_capturing = True
        self.capture_thread.start()

    def stop(self) -> None:
        """Stop delivery. Returns after the last fragment was handed to the callback."""
        if not self.is_capturing:
            logger.debug("Capture device not active")
            return

        logger.info("Stopping capture")
        self.stop_event.set()

        if self.capture_thread and self.capture_thread.is_alive():
            self.capture_thread.join(timeout=2.0)
            if self.capture_thread.is_alive():
                logger.warning("Capture thread did not stop cleanly")

        try:
            self.stream.stop_stream()
        except OSError as e:
            logger.warning(f"Error stopping input stream: {e}")

        self.is_capturing = False
        logger.info(f"Capture stopped. Total fragments: {self.total_fragments}")

    def close(self) -> None:
        """Release the microphone. Only called on teardown."""
        self.stop()
        self._release()
        logger.info("Capture device closed")

    def _release(self) -> None:
        if self.stream is not None:
            try:
                self.stream.close()
            except OSError as e:
                logger.warning(f"Error closing input stream: {e}")
            self.stream = None
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None
        self.encoding = None

    @staticmethod
    def peak_level(data: bytes) -> float:
        """Peak amplitude of 16-bit PCM data in [0, 1]."""
        samples = np.frombuffer(data, dtype=np.int16)
        if samples.size == 0:
            return 0.0
        return float(np.abs(samples.astype(np.int32)).max()) / 32768.0

    def _capture_continuously(self, frames: int, callback: Callable[[DeviceEvent], None]) -> None:
        """Internal method: capture loop in background thread."""
        try:
            while not self.stop_event.is_set():
                data = self.stream.read(frames, exception_on_overflow=False)
                if not data:
                    continue
                self.total_fragments += 1
                callback(DeviceFragment(
                    data=data,
                    sequence_number=self.total_fragments,
                    timestamp=time.time(),
                    peak_level=self.peak_level(data),
                ))
        except OSError as e:
            logger.error(f"Capture device error: {e}")
            callback(DeviceFault(message=str(e)))
