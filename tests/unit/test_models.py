"""Unit tests for the capture state, segment and transcript models."""

import pytest

from speak2text.models.gateway import HealthStatus, HistoryItem
from speak2text.models.segment import CaptureMode, Segment
from speak2text.models.state import CaptureState, CaptureStatus, ErrorKind
from speak2text.models.transcript import Transcript


@pytest.mark.unit
class TestCaptureState:

    def test_constructors(self):
        assert CaptureState.idle().status is CaptureStatus.IDLE
        assert CaptureState.listening(CaptureMode.STREAMING).mode is CaptureMode.STREAMING
        assert CaptureState.processing().mode is CaptureMode.BATCH
        error = CaptureState.error(ErrorKind.EMPTY_RECORDING, "nothing")
        assert error.error_kind is ErrorKind.EMPTY_RECORDING
        assert error.message == "nothing"

    def test_busy_states(self):
        assert CaptureState.listening(CaptureMode.BATCH).is_busy
        assert CaptureState.processing().is_busy
        assert not CaptureState.idle().is_busy
        assert not CaptureState.error(ErrorKind.BACKEND_FAULT, "x").is_busy

    def test_str(self):
        assert str(CaptureState.idle()) == "Idle"
        assert str(CaptureState.listening(CaptureMode.STREAMING)) == "Listening(streaming)"
        assert str(CaptureState.error(ErrorKind.TRANSCRIPTION_ERROR, "x")) == "Error(transcription_error: x)"


@pytest.mark.unit
class TestSegment:

    def test_method_tags(self):
        assert Segment(text="a", source=CaptureMode.STREAMING).method == "webkit"
        assert Segment(text="a", source=CaptureMode.BATCH).method == "whisper"

    def test_confidence_range(self):
        with pytest.raises(ValueError):
            Segment(text="a", source=CaptureMode.BATCH, confidence=1.5)

    def test_payload(self):
        segment = Segment(text="note", source=CaptureMode.BATCH, confidence=0.5,
                          language="en", duration_seconds=1.0)

        assert segment.to_payload() == {
            "text": "note", "confidence": 0.5, "method": "whisper", "language": "en", "duration": 1.0,
        }


@pytest.mark.unit
class TestTranscript:

    def test_empty(self):
        transcript = Transcript()

        assert transcript.text == ""
        assert transcript.is_empty()

    def test_each_segment_followed_by_space(self):
        transcript = Transcript()
        transcript.append(Segment(text="hello", source=CaptureMode.STREAMING))
        transcript.append(Segment(text="world", source=CaptureMode.BATCH))

        assert transcript.text == "hello world "
        assert len(transcript) == 2

    def test_clear(self):
        transcript = Transcript()
        transcript.append(Segment(text="hello", source=CaptureMode.STREAMING))

        transcript.clear()

        assert transcript.text == ""
        assert transcript.segments == ()


@pytest.mark.unit
class TestGatewayModels:

    def test_health_alias(self):
        assert HealthStatus.model_validate({"openai_key_configured": True}).transcription_backend_configured
        assert not HealthStatus.model_validate({"status": "ok"}).transcription_backend_configured

    def test_history_item_aliases(self):
        item = HistoryItem.model_validate({"_id": "x1", "text": "hi", "createdAt": "2024-01-02T03:04:05Z"})

        assert item.id == "x1"
        assert item.method == "webkit"
        assert item.created_at.day == 2
