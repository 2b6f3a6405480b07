"""End-to-end batch flow: orchestrator, real gateway and a local aiohttp service."""

import asyncio
import threading

import pytest
from aiohttp import web

from speak2text.audio.timer import DurationTimer
from speak2text.models.segment import CaptureMode
from speak2text.models.state import CaptureState, ErrorKind
from speak2text.services.orchestrator import CaptureOrchestrator
from speak2text.storage.gateway import PersistenceGateway
from speak2text.transcription.batch import BatchRecognizer


class TranscriptionService:
    """Minimal stand-in for the remote transcription and history service."""

    def __init__(self):
        self.saved = []
        self.uploads = []
        self.transcript = "hello"
        self.reject_with = None
        self.base_url = None

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/health", self.health)
        app.router.add_get("/transcriptions", self.history)
        app.router.add_post("/transcriptions", self.save)
        app.router.add_post("/transcribe-audio", self.transcribe)
        return app

    async def health(self, request):
        return web.json_response({"status": "ok", "openai_key_configured": True})

    async def history(self, request):
        data = [{"_id": str(i), **item} for i, item in enumerate(self.saved)]
        return web.json_response({"success": True, "data": data})

    async def save(self, request):
        self.saved.append(await request.json())
        return web.json_response({"success": True})

    async def transcribe(self, request):
        form = await request.post()
        field = form["audio"]
        self.uploads.append((field.filename, field.content_type, field.file.read()))
        if self.reject_with is not None:
            return web.json_response({"success": False, "message": self.reject_with})
        return web.json_response({"success": True, "transcript": self.transcript, "language": "en"})


@pytest.fixture
def service():
    """Run the service on a background event loop for the duration of a test."""
    svc = TranscriptionService()
    loop = asyncio.new_event_loop()
    runner = web.AppRunner(svc.make_app())
    loop.run_until_complete(runner.setup())
    site = web.TCPSite(runner, "127.0.0.1", 0)
    loop.run_until_complete(site.start())
    port = runner.addresses[0][1]

    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()

    svc.base_url = f"http://127.0.0.1:{port}"
    yield svc

    loop.call_soon_threadsafe(loop.stop)
    thread.join(5.0)
    loop.run_until_complete(runner.cleanup())
    loop.close()


@pytest.fixture
def live_orchestrator(service, test_config, fake_device, publisher):
    gateway = PersistenceGateway(service.base_url, timeout_seconds=5)
    orchestrator = CaptureOrchestrator(
        config=test_config,
        device=fake_device,
        batch_recognizer=BatchRecognizer(gateway),
        gateway=gateway,
        publisher=publisher,
        timer=DurationTimer(interval_seconds=0.05),
    )
    orchestrator.start()
    yield orchestrator
    orchestrator.shutdown()


@pytest.mark.integration
class TestBatchFlow:

    def test_recording_is_transcribed_saved_and_listed(self, live_orchestrator, fake_device, service,
                                                       sample_audio_chunk):
        live_orchestrator.select_mode(CaptureMode.BATCH)
        assert live_orchestrator.wait_for(lambda o: o.device_ready)

        assert live_orchestrator.start_capture().is_listening
        for _ in range(5):
            fake_device.emit(sample_audio_chunk)
        assert live_orchestrator.stop_capture() == CaptureState.processing()

        assert live_orchestrator.wait_for(lambda o: any(item.text == "hello" for item in o.history))
        assert live_orchestrator.state.is_idle
        assert live_orchestrator.transcript_text == "hello "

        filename, content_type, data = service.uploads[0]
        assert filename == "recording.wav"
        assert content_type == "audio/wav"
        assert len(data) == 44 + 5 * len(sample_audio_chunk)
        assert service.saved[0]["method"] == "whisper"
        assert service.saved[0]["language"] == "en"

    def test_rejected_recording(self, live_orchestrator, fake_device, service, sample_audio_chunk):
        service.reject_with = "Unsupported audio format"
        live_orchestrator.select_mode(CaptureMode.BATCH)
        assert live_orchestrator.wait_for(lambda o: o.device_ready)

        live_orchestrator.start_capture()
        fake_device.emit(sample_audio_chunk)
        live_orchestrator.stop_capture()

        assert live_orchestrator.wait_for(lambda o: o.state.is_error)
        assert live_orchestrator.state == CaptureState.error(
            ErrorKind.TRANSCRIPTION_ERROR, "Unsupported audio format")
        assert service.saved == []

    def test_short_recording_never_uploaded(self, live_orchestrator, fake_device, service):
        live_orchestrator.select_mode(CaptureMode.BATCH)
        assert live_orchestrator.wait_for(lambda o: o.device_ready)

        live_orchestrator.start_capture()
        fake_device.emit(b'\x00' * 100)
        live_orchestrator.stop_capture()

        assert live_orchestrator.wait_for(lambda o: o.state.is_error)
        assert live_orchestrator.state.error_kind is ErrorKind.RECORDING_TOO_SHORT
        assert service.uploads == []
