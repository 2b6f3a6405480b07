"""Capture orchestrator: the state machine that owns the dictation lifecycle.

The orchestrator is a single-writer actor. Host commands, device
fragments, recognizer results, timer ticks and gateway completions are all
posted to one inbox and handled one at a time on the actor thread, which is
the only writer of the capture state, the transcript and the recording
session. Blocking work (device preparation, uploads, history calls) runs on
a BackgroundWorker and reports back through the inbox.
"""

import queue
import asyncio
import logging
import threading
from dataclasses import replace
from typing import Any, Callable, List, Optional

from ..audio.buffer import RecordingBuffer
from ..audio.timer import DurationTimer
from ..config import Speak2TextConfig
from ..exceptions import Speak2TextError, RecordingValidationError, DeviceError
from ..models.events import (
    Command,
    DeviceFragment,
    DeviceFault,
    DeviceReady,
    StreamingResult,
    StreamingFault,
    StreamingEnded,
    TimerTick,
    FinalizeRecording,
    UploadResult,
    SegmentSaveResult,
    HistoryResult,
    HealthResult,
)
from ..models.gateway import HealthStatus, HistoryItem
from ..models.segment import CaptureMode, Segment
from ..models.state import CaptureState, CaptureStatus, ErrorKind
from ..models.transcript import Transcript
from ..storage.gateway import PersistenceGateway
from ..transcription.base import AbstractStreamingRecognizer
from ..transcription.batch import BatchRecognizer
from .publisher import CaptureEventPublisher
from .worker import BackgroundWorker

logger = logging.getLogger(__name__)

DEVICE_NOT_READY_MESSAGE = "Microphone not ready. Please wait for it to be prepared and try again."
RECOGNIZER_UNAVAILABLE_MESSAGE = "Speech recognition is not available on this platform. Use batch mode instead."


class CaptureOrchestrator:
    """Selects the active recognizer, drives capture and reconciles results into one transcript."""

    def __init__(self,
                 config: Speak2TextConfig,
                 device,
                 batch_recognizer: BatchRecognizer,
                 gateway: PersistenceGateway,
                 streaming_recognizer: Optional[AbstractStreamingRecognizer] = None,
                 publisher: Optional[CaptureEventPublisher] = None,
                 worker: Optional[BackgroundWorker] = None,
                 timer: Optional[DurationTimer] = None):
        """Initialize the orchestrator.

        Args:
            config: Application configuration
            device: Capture device for batch recordings (open/start/stop/close)
            batch_recognizer: Uploads validated recordings
            gateway: Remote history and health service
            streaming_recognizer: Continuous recognizer, None when unavailable
            publisher: Outbound notifications for the UI
            worker: Runs gateway coroutines and device preparation
            timer: Elapsed-time counter for batch recordings
        """
        self.config = config
        self.device = device
        self.batch_recognizer = batch_recognizer
        self.gateway = gateway
        self.streaming_recognizer = streaming_recognizer
        self.publisher = publisher or CaptureEventPublisher()
        self.worker = worker or BackgroundWorker("gateway")
        self.timer = timer or DurationTimer()
        self.buffer = RecordingBuffer(
            min_bytes=config.get('recording.min_bytes', 1000),
            max_bytes=config.get('recording.max_bytes', 25 * 1024 * 1024),
        )

        self.fragment_interval_ms = config.get('audio.fragment_interval_ms', 100)
        self.settle_delay_seconds = config.get('recording.settle_delay_ms', 100) / 1000.0
        self.command_timeout = config.get('orchestrator.command_timeout_seconds', 10)

        # State owned by the actor thread
        self.state = CaptureState.idle()
        self.mode = CaptureMode(config.get('capture.default_mode', 'streaming'))
        self.transcript = Transcript()
        self.history: List[HistoryItem] = []
        self.health: Optional[HealthStatus] = None
        self.last_warning: Optional[str] = None
        self.device_ready = False
        self.device_preparing = False
        self._session_counter = 0
        self._streaming_session_id: Optional[int] = None

        # Actor plumbing
        self.inbox = queue.Queue()
        self.actor_thread: Optional[threading.Thread] = None
        self.is_running = False
        self._changed = threading.Condition()

        self._handlers = {
            Command: self._on_command,
            DeviceFragment: self._on_device_fragment,
            DeviceFault: self._on_device_fault,
            DeviceReady: self._on_device_ready,
            StreamingResult: self._on_streaming_result,
            StreamingFault: self._on_streaming_fault,
            StreamingEnded: self._on_streaming_ended,
            TimerTick: self._on_timer_tick,
            FinalizeRecording: self._on_finalize_recording,
            UploadResult: self._on_upload_result,
            SegmentSaveResult: self._on_segment_saved,
            HistoryResult: self._on_history_result,
            HealthResult: self._on_health_result,
        }
        self._commands = {
            "start_capture": self._start_capture,
            "stop_capture": self._stop_capture,
            "clear_transcript": self._clear_transcript,
            "select_mode": self._select_mode,
        }

        logger.info(f"CaptureOrchestrator initialized (default mode: {self.mode.value}, "
                    f"streaming {'available' if streaming_recognizer else 'unavailable'})")

    # -- lifecycle --

    def start(self) -> None:
        """Start the actor thread and queue startup work."""
        if self.is_running:
            logger.warning("Orchestrator already running")
            return

        self.worker.start()
        self.actor_thread = threading.Thread(target=self._run, daemon=True)
        self.actor_thread.name = "CaptureOrchestratorThread"
        self.is_running = True
        self.actor_thread.start()

        self._check_health()
        self._refresh_history()
        if self.mode is CaptureMode.BATCH:
            self.post(Command("select_mode", (CaptureMode.BATCH,)))
        logger.info("CaptureOrchestrator started")

    def shutdown(self, timeout: float = 5.0) -> None:
        """Abort any capture, stop the actor and release devices."""
        if not self.is_running:
            return

        logger.info("Shutting down CaptureOrchestrator...")
        self.inbox.put(None)
        self.actor_thread.join(timeout)
        if self.actor_thread.is_alive():
            logger.warning("Orchestrator thread did not stop cleanly")
        self.is_running = False

        self.worker.shutdown(timeout=timeout)
        self.timer.cancel()
        try:
            self.device.close()
        except Exception as e:
            logger.warning(f"Error closing capture device: {e}")
        if self.streaming_recognizer is not None:
            try:
                self.streaming_recognizer.cleanup()
            except Exception as e:
                logger.warning(f"Error cleaning up streaming recognizer: {e}")
        logger.info("CaptureOrchestrator shut down")

    def post(self, event: Any) -> None:
        """Deliver an inbound event. Safe from any thread."""
        self.inbox.put(event)

    # -- host operations --

    def start_capture(self, mode: Optional[CaptureMode] = None) -> CaptureState:
        return self._call("start_capture", mode)

    def stop_capture(self) -> CaptureState:
        return self._call("stop_capture")

    def clear_transcript(self) -> CaptureState:
        return self._call("clear_transcript")

    def select_mode(self, mode: CaptureMode) -> CaptureState:
        return self._call("select_mode", mode)

    def refresh_history(self) -> None:
        self._refresh_history()

    @property
    def transcript_text(self) -> str:
        return self.transcript.text

    def wait_for(self, predicate: Callable[["CaptureOrchestrator"], bool], timeout: float = 10.0) -> bool:
        """Block until ``predicate(self)`` holds after some handled event."""
        with self._changed:
            return self._changed.wait_for(lambda: predicate(self), timeout)

    def _call(self, name: str, *args) -> CaptureState:
        if not self.is_running:
            raise RuntimeError("Orchestrator is not running")
        command = Command(name, args)
        if threading.current_thread() is self.actor_thread:
            return self._commands[name](*args)
        self.post(command)
        return command.future.result(timeout=self.command_timeout)

    # -- actor loop --

    def _run(self) -> None:
        """Internal method: handle inbox events one at a time."""
        try:
            while True:
                event = self.inbox.get()
                if event is None:
                    break
                self._dispatch(event)
                with self._changed:
                    self._changed.notify_all()
        finally:
            self._abort_capture()
            logger.debug("Orchestrator thread exiting")

    def _dispatch(self, event: Any) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.warning(f"Ignoring unknown event: {type(event).__name__}")
            return
        try:
            handler(event)
        except Exception as e:
            logger.error(f"Unhandled error handling {type(event).__name__}: {e}", exc_info=True)
            if self.state.is_busy:
                self._abort_capture()
                self._enter_error(ErrorKind.BACKEND_FAULT, f"Unexpected error: {e}")

    def _on_command(self, command: Command) -> None:
        try:
            command.future.set_result(self._commands[command.name](*command.args))
        except Exception as e:
            command.future.set_exception(e)
            raise

    # -- transitions --

    def _set_state(self, state: CaptureState) -> CaptureState:
        if state != self.state:
            logger.info(f"State: {self.state} -> {state}")
        self.state = state
        self.publisher.publish_state(state)
        return state

    def _enter_error(self, kind: ErrorKind, message: str) -> CaptureState:
        self.timer.cancel()
        logger.warning(f"Capture error ({kind.value}): {message}")
        return self._set_state(CaptureState.error(kind, message))

    def _warn(self, kind: ErrorKind, message: str) -> None:
        logger.warning(f"{kind.value}: {message}")
        self.last_warning = message
        self.publisher.publish_warning(kind, message)

    def _next_session_id(self) -> int:
        self._session_counter += 1
        return self._session_counter

    def _start_capture(self, mode: Optional[CaptureMode] = None) -> CaptureState:
        if self.state.status not in (CaptureStatus.IDLE, CaptureStatus.ERROR):
            logger.warning(f"start_capture rejected while {self.state}")
            return self.state

        mode = mode or self.mode
        self.mode = mode
        if self.state.is_error:
            self._set_state(CaptureState.idle())

        if mode is CaptureMode.STREAMING:
            return self._start_streaming()
        return self._start_batch()

    def _start_streaming(self) -> CaptureState:
        if self.streaming_recognizer is None:
            return self._enter_error(ErrorKind.RECOGNIZER_UNAVAILABLE, RECOGNIZER_UNAVAILABLE_MESSAGE)

        session_id = self._next_session_id()
        self._streaming_session_id = session_id
        self._set_state(CaptureState.listening(CaptureMode.STREAMING))
        try:
            self.streaming_recognizer.start(
                lambda event, sid=session_id: self.post(replace(event, session_id=sid))
            )
        except Exception as e:
            logger.error(f"Error starting streaming recognition: {e}")
            self._streaming_session_id = None
            kind = e.kind if isinstance(e, Speak2TextError) else ErrorKind.BACKEND_FAULT
            return self._enter_error(kind, f"Failed to start speech recognition: {e}")
        logger.info("Streaming recognition started")
        return self.state

    def _start_batch(self) -> CaptureState:
        if not self.device_ready:
            self._prepare_device()
            return self._enter_error(ErrorKind.DEVICE_NOT_READY, DEVICE_NOT_READY_MESSAGE)

        session_id = self._next_session_id()
        self._streaming_session_id = None
        self.buffer.open(
            session_id=session_id,
            encoding=self.device.encoding,
            sample_rate=self.device.profile.sample_rate,
            channels=self.device.profile.channels,
        )
        self.timer.reset()
        self._set_state(CaptureState.listening(CaptureMode.BATCH))
        try:
            self.device.start(
                self.fragment_interval_ms,
                lambda event, sid=session_id: self.post(replace(event, session_id=sid)),
            )
        except DeviceError as e:
            self.buffer.discard()
            return self._enter_error(ErrorKind.DEVICE_ERROR, e.message)

        self.timer.start(lambda sid=session_id: self.post(TimerTick(session_id=sid)))
        logger.info(f"Batch recording {session_id} started")
        return self.state

    def _stop_capture(self) -> CaptureState:
        if not self.state.is_listening:
            logger.debug(f"stop_capture ignored while {self.state}")
            return self.state

        if self.state.mode is CaptureMode.STREAMING:
            self._set_state(CaptureState.idle())
            try:
                self.streaming_recognizer.stop()
            except Exception as e:
                logger.warning(f"Error stopping streaming recognition: {e}")
            logger.info("Streaming recognition stopped")
            return self.state

        session = self.buffer.session
        self.timer.cancel()
        self.device.stop()
        self._set_state(CaptureState.processing())

        # device.stop() returns after its last fragment was posted, so the
        # finalize message queues behind every fragment of this session
        finalize = FinalizeRecording(session_id=session.session_id)
        if self.settle_delay_seconds > 0:
            settle = threading.Timer(self.settle_delay_seconds, self.post, args=(finalize,))
            settle.daemon = True
            settle.start()
        else:
            self.post(finalize)
        logger.info(f"Batch recording {session.session_id} stopped after {session.elapsed_seconds}s")
        return self.state

    def _clear_transcript(self) -> CaptureState:
        if self.state.is_busy:
            logger.warning(f"clear_transcript rejected while {self.state}")
            return self.state
        self.transcript.clear()
        self.publisher.publish_transcript(self.transcript.text, None)
        return self._set_state(CaptureState.idle())

    def _select_mode(self, mode: CaptureMode) -> CaptureState:
        if self.state.is_busy:
            logger.warning(f"select_mode rejected while {self.state}")
            return self.state
        self.mode = mode
        logger.info(f"Capture mode: {mode.value}")
        if mode is CaptureMode.BATCH:
            self._prepare_device()
        return self._set_state(CaptureState.idle())

    def _abort_capture(self) -> None:
        """Tear down any active capture without producing a segment."""
        self.timer.cancel()
        if self.state.is_listening and self.state.mode is CaptureMode.STREAMING:
            self._streaming_session_id = None
            try:
                self.streaming_recognizer.stop()
            except Exception as e:
                logger.warning(f"Error stopping streaming recognition: {e}")
        elif self.state.is_busy:
            try:
                self.device.stop()
            except Exception as e:
                logger.warning(f"Error stopping capture device: {e}")
            self.buffer.discard()

    # -- device --

    def _prepare_device(self) -> None:
        if self.device_ready or self.device_preparing:
            return
        self.device_preparing = True

        async def open_device():
            return await asyncio.to_thread(self.device.open)

        self.worker.submit(
            "open_device",
            open_device,
            lambda encoding, error: self.post(DeviceReady(encoding=encoding, error=error)),
        )

    def _on_device_ready(self, event: DeviceReady) -> None:
        self.device_preparing = False
        if event.error is None:
            self.device_ready = True
            logger.info(f"Capture device ready ({event.encoding})")
            return

        self.device_ready = False
        message = event.error.message if isinstance(event.error, Speak2TextError) else str(event.error)
        if self.state.is_busy:
            self._warn(ErrorKind.DEVICE_ERROR, message)
        else:
            self._enter_error(ErrorKind.DEVICE_ERROR, message)

    def _on_device_fragment(self, event: DeviceFragment) -> None:
        session = self.buffer.session
        if session is None or session.finalized or event.session_id != session.session_id:
            logger.debug(f"Dropping stale fragment {event.sequence_number} from session {event.session_id}")
            return
        self.buffer.append(event.data)

    def _on_device_fault(self, event: DeviceFault) -> None:
        session = self.buffer.session
        if (not self.state.is_listening or self.state.mode is not CaptureMode.BATCH
                or session is None or event.session_id != session.session_id):
            logger.debug(f"Ignoring device fault from session {event.session_id}: {event.message}")
            return
        self._abort_capture()
        self._enter_error(ErrorKind.BACKEND_FAULT, f"Recording error: {event.message}")

    def _on_timer_tick(self, event: TimerTick) -> None:
        session = self.buffer.session
        if (not self.state.is_listening or session is None
                or event.session_id != session.session_id):
            return
        session.elapsed_seconds = self.timer.tick()
        logger.debug(f"Recording duration: {session.elapsed_seconds} seconds")
        self.publisher.publish_timer(session.elapsed_seconds)

    # -- batch completion --

    def _on_finalize_recording(self, event: FinalizeRecording) -> None:
        session = self.buffer.session
        if not self.state.is_processing or session is None or event.session_id != session.session_id:
            logger.debug(f"Ignoring finalize for session {event.session_id}")
            return

        try:
            recording = self.buffer.finalize()
        except RecordingValidationError as e:
            self.buffer.discard()
            self._enter_error(e.kind, e.message)
            return

        session_id = session.session_id
        duration = float(session.elapsed_seconds)
        submitted = self.worker.submit(
            "transcribe",
            lambda: self.batch_recognizer.transcribe(recording, duration_seconds=duration),
            lambda segment, error: self.post(UploadResult(session_id=session_id, segment=segment, error=error)),
        )
        if not submitted:
            self.buffer.discard()
            self._enter_error(ErrorKind.TRANSCRIPTION_ERROR, "Transcription worker is not running")

    def _on_upload_result(self, event: UploadResult) -> None:
        session = self.buffer.session
        if not self.state.is_processing or session is None or event.session_id != session.session_id:
            logger.debug(f"Ignoring upload result for session {event.session_id}")
            return

        self.buffer.discard()
        if event.error is not None:
            message = event.error.message if isinstance(event.error, Speak2TextError) else str(event.error)
            self._enter_error(ErrorKind.TRANSCRIPTION_ERROR, message)
            return

        self._append_segment(event.segment)
        self._set_state(CaptureState.idle())
        self._refresh_history()

    # -- streaming --

    def _on_streaming_result(self, event: StreamingResult) -> None:
        if self._streaming_session_id is None or event.session_id != self._streaming_session_id:
            logger.debug(f"Dropping result from stale streaming session {event.session_id}")
            return
        text = event.text.strip()
        if not text:
            return
        self._append_segment(Segment(
            text=text,
            source=CaptureMode.STREAMING,
            confidence=event.confidence,
            language=event.language or self.config.get('streaming.language'),
        ))

    def _on_streaming_fault(self, event: StreamingFault) -> None:
        if (event.session_id != self._streaming_session_id or not self.state.is_listening
                or self.state.mode is not CaptureMode.STREAMING):
            logger.debug(f"Ignoring fault from streaming session {event.session_id}: {event.message}")
            return
        self._abort_capture()
        self._enter_error(ErrorKind.BACKEND_FAULT, f"Speech recognition error: {event.message}")

    def _on_streaming_ended(self, event: StreamingEnded) -> None:
        if event.session_id != self._streaming_session_id:
            return
        self._streaming_session_id = None
        if self.state.is_listening and self.state.mode is CaptureMode.STREAMING:
            logger.info("Streaming session ended by the recognizer")
            self._set_state(CaptureState.idle())

    # -- transcript and gateway --

    def _append_segment(self, segment: Segment) -> None:
        self.transcript.append(segment)
        logger.info(f"Transcript += '{segment.text}' ({segment.source.value})")
        self.publisher.publish_transcript(self.transcript.text, segment)
        self.worker.submit(
            "save_segment",
            lambda: self.gateway.save_segment(segment),
            lambda _, error: self.post(SegmentSaveResult(segment=segment, error=error)),
        )

    def _on_segment_saved(self, event: SegmentSaveResult) -> None:
        if event.error is not None:
            self._warn(ErrorKind.PERSISTENCE_UNAVAILABLE, f"Error saving transcript: {event.error}")

    def _refresh_history(self) -> None:
        self.worker.submit(
            "fetch_history",
            self.gateway.fetch_history,
            lambda items, error: self.post(HistoryResult(items=items, error=error)),
        )

    def _on_history_result(self, event: HistoryResult) -> None:
        if event.error is not None:
            self._warn(ErrorKind.PERSISTENCE_UNAVAILABLE, f"Error fetching saved transcripts: {event.error}")
            return
        self.history = list(event.items or [])
        self.publisher.publish_history(self.history)

    def _check_health(self) -> None:
        self.worker.submit(
            "check_health",
            self.gateway.check_health,
            lambda status, error: self.post(HealthResult(status=status, error=error)),
        )

    def _on_health_result(self, event: HealthResult) -> None:
        if event.error is not None:
            self._warn(ErrorKind.PERSISTENCE_UNAVAILABLE,
                       f"Cannot connect to server. Make sure it is running at {self.gateway.base_url}.")
            return
        self.health = event.status
        if not self.health.transcription_backend_configured:
            self._warn(ErrorKind.PERSISTENCE_UNAVAILABLE,
                       "Transcription backend not configured on server. Batch transcription will not work.")
