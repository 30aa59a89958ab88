"""Pytest configuration and fixtures for DashNotes tests."""

import pytest
import tempfile
import logging
from typing import List, Optional
from unittest.mock import Mock, patch
import numpy as np
from pubsub import pub

from dashnotes.errors import EngineStartError, RecognitionError
from dashnotes.models.audio import AudioFormat
from dashnotes.models.events import AudioEvent
from dashnotes.models.transcription import TranscriptionResult
from dashnotes.services.capture_controller import CaptureSessionController
from dashnotes.storage.project_store import ProjectStore
from dashnotes.transcription.base import (
    AbstractRecognitionTask,
    AbstractStreamingRecognizer,
    AuthorizationStatus,
    BufferedRecognitionRequest,
)


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without hardware or network")
    config.addinivalue_line("markers", "integration: tests wiring several components together")
    config.addinivalue_line("markers", "hardware: tests that need a real microphone")


class FakeAudioEngine:
    """Audio engine double that records tap and start/stop activity."""

    def __init__(self, audio_format: AudioFormat = AudioFormat(sample_rate=16000, channels=1),
                 start_error: Optional[Exception] = None):
        self.audio_format = audio_format
        self.start_error = start_error
        self.tap = None
        self.is_running = False
        self.install_count = 0
        self.start_count = 0
        self.max_taps = 0

    @property
    def has_tap(self) -> bool:
        return self.tap is not None

    def input_format(self) -> AudioFormat:
        return self.audio_format

    def install_tap(self, callback, audio_format: AudioFormat) -> None:
        if self.tap is not None:
            raise RuntimeError("A tap is already installed on the audio input")
        self.tap = callback
        self.install_count += 1
        self.max_taps = max(self.max_taps, 1)

    def remove_tap(self) -> None:
        self.tap = None

    def start(self) -> None:
        self.start_count += 1
        if self.start_error is not None:
            raise self.start_error
        self.is_running = True

    def stop(self) -> None:
        self.is_running = False

    def emit(self, chunk: bytes) -> None:
        """Push a captured chunk through the tap, as the capture thread would."""
        if self.tap is not None:
            self.tap(AudioEvent(chunk_id="chunk_test", audio_data=chunk,
                                timestamp=0.0, sequence_number=0))


class FakeRecognitionTask(AbstractRecognitionTask):

    def __init__(self, recognizer: "FakeRecognizer", request, callback):
        self.recognizer = recognizer
        self.request = request
        self.callback = callback
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def hypothesis(self, text: str, is_final: bool = False) -> None:
        """Deliver a hypothesis without checking cancellation, like a late network callback."""
        self.callback(TranscriptionResult(text=text, is_final=is_final, service="fake"), None)

    def fail(self, message: str = "network lost") -> None:
        self.callback(None, RecognitionError(message))


class FakeRecognizer(AbstractStreamingRecognizer):
    """Streaming recognizer double with scripted authorization and availability."""

    def __init__(self, status: AuthorizationStatus = AuthorizationStatus.AUTHORIZED, available: bool = True):
        super().__init__("fr-FR")
        self.status = status
        self.available = available
        self.authorization_requests = 0
        self.requests: List[BufferedRecognitionRequest] = []
        self.tasks: List[FakeRecognitionTask] = []
        self.max_active_tasks = 0
        self.cleaned_up = False

    def request_authorization(self) -> AuthorizationStatus:
        self.authorization_requests += 1
        return self.status

    def is_available(self) -> bool:
        return self.available

    def create_request(self) -> BufferedRecognitionRequest:
        request = BufferedRecognitionRequest()
        self.requests.append(request)
        return request

    def recognition_task(self, request, audio_format, callback) -> FakeRecognitionTask:
        task = FakeRecognitionTask(self, request, callback)
        self.tasks.append(task)
        self.max_active_tasks = max(self.max_active_tasks, len(self.active_tasks))
        return task

    @property
    def active_tasks(self) -> List[FakeRecognitionTask]:
        return [task for task in self.tasks if not task.is_cancelled]

    @property
    def last_task(self) -> FakeRecognitionTask:
        return self.tasks[-1]

    def cleanup(self) -> None:
        self.cleaned_up = True


class TopicRecorder:
    """Keeps strong references to pubsub listeners and records what they receive."""

    def __init__(self):
        self.transcripts: List[str] = []
        self.statuses = []

    def on_transcript(self, text):
        self.transcripts.append(text)

    def on_status(self, status):
        self.statuses.append(status)

    @property
    def states(self):
        return [status.state for status in self.statuses]


@pytest.fixture(autouse=True)
def reset_pubsub():
    """Drop every pubsub listener after each test."""
    yield
    pub.unsubAll()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def fake_engine():
    return FakeAudioEngine()


@pytest.fixture
def fake_recognizer():
    return FakeRecognizer()


@pytest.fixture
def controller(fake_recognizer, fake_engine):
    return CaptureSessionController(fake_recognizer, fake_engine)


@pytest.fixture
def topic_recorder():
    recorder = TopicRecorder()
    pub.subscribe(recorder.on_transcript, "capture.transcript")
    pub.subscribe(recorder.on_status, "capture.state")
    return recorder


@pytest.fixture
def project_store(temp_data_dir):
    return ProjectStore(temp_data_dir)


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # 1024 samples of 16-bit audio (sine wave)
    sample_rate = 16000
    duration = 1024 / sample_rate
    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * 440 * t)
    audio_data = (wave_data * 32767 * 0.5).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_default_input_device_info.return_value = {
            'name': 'Test Microphone',
            'defaultSampleRate': 44100.0,
            'maxInputChannels': 2,
        }

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def failing_engine():
    return FakeAudioEngine(start_error=EngineStartError("Audio engine couldn't start: device busy"))
