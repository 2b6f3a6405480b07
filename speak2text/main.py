"""Main application entry point for speak2text."""

import sys
import argparse
import logging
from pathlib import Path
from typing import Optional

from .audio.capture import CaptureDevice, CaptureProfile
from .config import Speak2TextConfig
from .models.segment import CaptureMode
from .models.state import CaptureStatus
from .services.orchestrator import CaptureOrchestrator
from .storage.gateway import PersistenceGateway
from .transcription.base import AbstractStreamingRecognizer
from .transcription.batch import BatchRecognizer

logger = logging.getLogger(__name__)

__version__ = "0.1.0"


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = Speak2TextConfig(config_path)
        # Command line overrides config
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.orchestrator: Optional[CaptureOrchestrator] = None

    def init(self) -> CaptureOrchestrator:
        logger.info("Initializing services...")

        profile = CaptureProfile(
            sample_rate=self.config.get('audio.sample_rate', 44100),
            channels=self.config.get('audio.channels', 1),
            echo_cancellation=self.config.get('audio.echo_cancellation', True),
            noise_suppression=self.config.get('audio.noise_suppression', True),
        )
        device = CaptureDevice(
            profile=profile,
            encoding_preferences=self.config.get('audio.preferred_encodings'),
            input_device_index=self.config.get('audio.input_device_index'),
        )
        logger.info(f"Audio settings: {profile.sample_rate}Hz, {profile.channels} channels")

        gateway = PersistenceGateway(
            base_url=self.config.get('server.base_url', 'http://localhost:5000'),
            timeout_seconds=self.config.get('server.timeout_seconds', 30),
        )
        batch_recognizer = BatchRecognizer(gateway)

        self.orchestrator = CaptureOrchestrator(
            config=self.config,
            device=device,
            batch_recognizer=batch_recognizer,
            gateway=gateway,
            streaming_recognizer=self._create_streaming_recognizer(),
        )
        self.orchestrator.start()
        return self.orchestrator

    def _create_streaming_recognizer(self) -> Optional[AbstractStreamingRecognizer]:
        """Build the Google recognizer, or None when streaming cannot run here."""
        if not self.config.get('streaming.enabled', True):
            logger.info("Streaming recognition disabled in configuration")
            return None

        try:
            credentials_path = self.config.get_google_credentials_path()
        except FileNotFoundError as e:
            logger.warning(f"Streaming recognition unavailable: {e}")
            return None
        if credentials_path is None:
            logger.info("No Google credentials configured, streaming recognition unavailable")
            return None

        # Imported here so batch-only installs never load the Google client
        from .transcription.google_backend import GoogleStreamingRecognizer

        device = CaptureDevice(
            profile=CaptureProfile(
                sample_rate=self.config.get('streaming.sample_rate', 16000),
                channels=self.config.get('audio.channels', 1),
            ),
            input_device_index=self.config.get('audio.input_device_index'),
        )
        try:
            recognizer = GoogleStreamingRecognizer(
                credentials_path=credentials_path,
                device=device,
                language=self.config.get('streaming.language', 'en-US'),
                fragment_interval_ms=self.config.get('streaming.fragment_interval_ms', 100),
                enable_automatic_punctuation=self.config.get(
                    'google_cloud.enable_automatic_punctuation', True),
            )
            recognizer.initialize()
        except Exception as e:
            logger.warning(f"Streaming recognition unavailable: {e}")
            device.close()
            return None
        return recognizer

    def run(self, mode: Optional[CaptureMode], duration: int) -> int:
        """Run one unattended capture and print the result.

        Returns:
            Process exit code
        """
        orchestrator = self.orchestrator
        try:
            if (mode or orchestrator.mode) is CaptureMode.BATCH:
                orchestrator.select_mode(CaptureMode.BATCH)
                orchestrator.wait_for(lambda o: o.device_ready or not o.device_preparing,
                                      timeout=orchestrator.command_timeout)

            state = orchestrator.start_capture(mode)
            if state.is_listening:
                print(f"Listening ({state.mode.value}) for {duration} seconds...")
                orchestrator.wait_for(lambda o: not o.state.is_listening, timeout=duration)
                orchestrator.stop_capture()
                orchestrator.wait_for(lambda o: not o.state.is_busy,
                                      timeout=self.config.get('server.timeout_seconds', 30) + 5)

            state = orchestrator.state
            print(f"Transcript: {orchestrator.transcript_text.strip() or '(empty)'}")
            print(f"State: {state}")
            return 1 if state.status is CaptureStatus.ERROR else 0
        finally:
            self.cleanup()

    def cleanup(self) -> None:
        if self.orchestrator is not None:
            self.orchestrator.shutdown()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/speak2text.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("speak2text starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for speak2text."""
    parser = argparse.ArgumentParser(
        description="speak2text - dictation with streaming and batch speech recognition"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: logging.level from config)"
    )

    parser.add_argument(
        "--mode",
        type=str,
        choices=[m.value for m in CaptureMode],
        help="Capture mode (default: capture.default_mode from config)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=10,
        help="Seconds to capture before stopping (default: 10)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"speak2text v{__version__}"
    )

    args = parser.parse_args()

    server = None
    try:
        server = Server(args.config, args.log_level)
        server.init()
        mode = CaptureMode(args.mode) if args.mode else None
        sys.exit(server.run(mode, args.duration))
    except KeyboardInterrupt:
        if server is not None:
            server.cleanup()
        print("\nGoodbye!")
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        logging.error(f"Configuration error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
