"""Encoding negotiation and upload packaging for captured audio."""

import io
import wave
import logging
from typing import Callable, Iterable

from ..models.recording import file_extension, content_type

logger = logging.getLogger(__name__)

DEFAULT_ENCODING_PREFERENCES = (
    "audio/webm;codecs=opus",
    "audio/webm",
    "audio/mp4",
)

# Raw 16-bit PCM from the input stream, wrapped in a WAV container on upload
PLATFORM_DEFAULT_ENCODING = "audio/wav"

__all__ = [
    "DEFAULT_ENCODING_PREFERENCES",
    "PLATFORM_DEFAULT_ENCODING",
    "negotiate_encoding",
    "file_extension",
    "content_type",
    "is_wav_container",
    "wrap_pcm_as_wav",
    "package_for_upload",
]


def negotiate_encoding(preferences: Iterable[str],
                       is_supported: Callable[[str], bool],
                       default: str = PLATFORM_DEFAULT_ENCODING) -> str:
    """Pick the first supported encoding, falling back to the platform default.

    Args:
        preferences: Encodings in order of preference
        is_supported: Predicate telling whether the device can produce an encoding
        default: Encoding used when no preference is supported

    Returns:
        The negotiated encoding
    """
    for encoding in preferences:
        if encoding and is_supported(encoding):
            logger.info(f"Using encoding: {encoding}")
            return encoding
    logger.info(f"No preferred encoding supported, using platform default: {default}")
    return default


def is_wav_container(data: bytes) -> bool:
    return len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WAVE"


def wrap_pcm_as_wav(pcm: bytes, sample_rate: int, channels: int = 1,
                    sample_width: int = 2) -> bytes:
    """Wrap raw PCM frames in a WAV container.

    Args:
        pcm: Raw interleaved PCM frames
        sample_rate: Sample rate in Hz
        channels: Number of channels
        sample_width: Bytes per sample (2 for 16-bit)

    Returns:
        WAV file contents
    """
    output = io.BytesIO()
    with wave.open(output, 'wb') as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return output.getvalue()


def package_for_upload(data: bytes, encoding: str, sample_rate: int,
                       channels: int, sample_width: int = 2) -> bytes:
    """Return the bytes to upload for a recording in the given encoding."""
    if content_type(encoding) == PLATFORM_DEFAULT_ENCODING and not is_wav_container(data):
        return wrap_pcm_as_wav(data, sample_rate, channels, sample_width)
    return data
