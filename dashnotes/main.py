"""Main application entry point for DashNotes."""

import sys
import time
import argparse
import logging
from pathlib import Path
from typing import Optional

from .audio.capture import AudioEngine
from .config import DashNotesConfig
from .errors import PersistenceError
from .models.project import Project
from .services.capture_controller import CaptureSessionController
from .services.project_service import ProjectService
from .storage.project_store import ProjectStore
from .transcription.google_backend import GoogleStreamingRecognizer

logger = logging.getLogger(__name__)


class App:
    """Wires configuration, capture and projects together."""

    def __init__(self, config_path: Optional[str] = None, log_level: Optional[str] = None):
        self.config = DashNotesConfig(config_path)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))

    def init(self) -> None:
        logger.info("Initializing services...")

        chunk_size = self.config.get('audio.chunk_size', 1024)
        device_index = self.config.get('audio.input_device_index')
        logger.info(f"Audio settings: {chunk_size} samples/chunk, device={device_index}")

        self.audio_engine = AudioEngine(chunk_size=chunk_size, input_device_index=device_index)
        self.recognizer = GoogleStreamingRecognizer(
            credentials_path=self.config.get_credentials_path(),
            language=self.config.get('speech.language', 'fr-FR'),
            enable_automatic_punctuation=self.config.get('speech.enable_automatic_punctuation', True),
            interim_results=self.config.get('speech.interim_results', True),
        )
        self.controller = CaptureSessionController(self.recognizer, self.audio_engine)

        self.store = ProjectStore(self.config.get_data_directory())
        self.projects = ProjectService(
            self.store,
            controller=self.controller,
            key=self.config.get('storage.projects_key', 'projects'),
            write_failure_policy=self.config.get('storage.write_failure_policy', 'warn'),
        )
        self.projects.load()

    def run_auto(self, duration: int) -> Optional[Project]:
        """Record for ``duration`` seconds and keep the transcript as a project."""
        try:
            if not self.controller.start():
                print(f"Could not start recording: {self.controller.status_message}")
                return None
            deadline = time.monotonic() + duration
            while self.controller.is_listening and time.monotonic() < deadline:
                self.controller.pump(timeout=0.2)
            self.controller.pump()

            if not self.controller.is_listening:
                print(f"Recording ended early: {self.controller.status_message}")
                return None
            self.controller.stop()
            project = self.projects.create_project(self.controller.last_transcript or "")
            print(f"Saved '{project.title}': {project.details}")
            return project
        finally:
            self.cleanup()

    def run_interactive(self) -> None:
        from .ui.dashboard_screen import DashboardScreen
        try:
            DashboardScreen(self.controller, self.projects).run()
        finally:
            self.audio_engine.terminate()

    def cleanup(self) -> None:
        self.controller.shutdown()
        self.audio_engine.terminate()


def setup_logging(config: DashNotesConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/dashnotes.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("DashNotes starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for DashNotes."""
    parser = argparse.ArgumentParser(
        description="DashNotes - speak, see the transcript, keep it as a project",
        epilog="Commands: 1=Start/stop recording, a=Add project, l=List, e N=Edit, d N=Delete, q=Quit"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: dashnotes.yaml if present)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )
    parser.add_argument(
        "--auto",
        action="store_true",
        help="Record for --duration seconds, save the transcript as a project, then exit"
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=10,
        help="Duration in seconds for auto mode recording (default: 10)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version="DashNotes v0.1.0"
    )
    args = parser.parse_args()

    try:
        app = App(args.config, args.log_level)
        app.init()
        if args.auto:
            if app.run_auto(args.duration) is None:
                sys.exit(1)
        else:
            app.run_interactive()
    except KeyboardInterrupt:
        print("\nGoodbye!")
    except (FileNotFoundError, ValueError, PersistenceError) as e:
        print(f"Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
